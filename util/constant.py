from enum import Enum


class ITEM_STATUS(Enum):
    ok = (0, "Ok")
    disabled = (1, "Deactivated")
    toadd = (10, "Addition in progress...")
    tochange = (11, "Modification in progress...")
    torestore = (12, "Modification in progress...")
    tochangepwd = (13, "Modification in progress...")
    toenable = (14, "Activation in progress...")
    todisable = (15, "Deactivation in progress...")
    todelete = (16, "Deletion in progress...")
    ordered = (20, "Awaiting for approval")
    error = (99, "Unexpected error")  # errors sort last

    def __init__(self, order, label):
        self.order = order
        self.label = label

    @property
    def value(self):
        return self.name


class TICKET_STATUS(Enum):
    open = (0, "Open")
    answered = (1, "Answered")
    closed = (2, "Closed")

    def __init__(self, order, label):
        self.order = order
        self.label = label

    @property
    def value(self):
        return self.name


class TASK_STATUS(Enum):
    pending = (0, "Waiting for delivery")
    delivered = (1, "Delivered to daemon")
    acknowledged = (2, "Acknowledged by daemon")
    failed = (99, "Delivery failed")

    def __init__(self, order, label):
        self.order = order
        self.label = label

    @property
    def value(self):
        return self.name


class USER_TYPE:
    ADMIN = "admin"
    RESELLER = "reseller"
    CUSTOMER = "user"


# Owner of mail accounts, SSL certificates, ... (matches the daemon's vocabulary)
class DOMAIN_TYPE:
    DOMAIN = "dmn"
    ALIAS = "als"
    SUBDOMAIN = "sub"
    SUBDOMAIN_ALIAS = "alssub"

    ALL = (DOMAIN, ALIAS, SUBDOMAIN, SUBDOMAIN_ALIAS)


# mail_type prefixes per owning entity
MAIL_TYPE_PREFIX = {
    DOMAIN_TYPE.DOMAIN: "normal",
    DOMAIN_TYPE.ALIAS: "alias",
    DOMAIN_TYPE.SUBDOMAIN: "subdom",
    DOMAIN_TYPE.SUBDOMAIN_ALIAS: "alssub",
}

DEFAULT_MAIL_ACCOUNTS = ("abuse", "hostmaster", "postmaster", "webmaster")

DNS_RECORD_TYPES = ("A", "AAAA", "CNAME", "MX", "TXT", "SRV")

# Customer limits: -1 disables the feature, 0 means unlimited
LIMIT_DISABLED = -1
LIMIT_UNLIMITED = 0

# Customer limit columns and their reseller_props counterpart
LIMIT_FIELDS = {
    "subdomain_limit": "sub",
    "alias_limit": "als",
    "mail_limit": "mail",
    "ftp_limit": "ftp",
    "sql_db_limit": "sql_db",
    "sql_user_limit": "sql_user",
    "disk_limit": "disk",
    "traffic_limit": "traff",
}

MIB = 1048576
