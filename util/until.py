from datetime import datetime
import posixpath
import re
import idna

_DOMAIN_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_NAME_RE = re.compile(r"^[a-z0-9]([a-z0-9._-]*[a-z0-9])?$", re.IGNORECASE)


def format_datetime(value, format="%Y-%m-%d %H:%M:%S"):
    if isinstance(value, datetime):
        return value.strftime(format)
    return value


def encode_idna(name):
    """Convert a (possibly unicode) domain name to its ASCII form."""
    name = (name or "").strip().lower().rstrip(".")
    if not name:
        return name
    try:
        return idna.encode(name, uts46=True).decode("ascii")
    except idna.IDNAError:
        return name


def decode_idna(name):
    if not name:
        return name
    try:
        return idna.decode(name)
    except idna.IDNAError:
        return name


def is_valid_domain_name(name, min_labels=2):
    """Check an ASCII (IDNA encoded) domain name."""
    if not name or len(name) > 253:
        return False
    labels = name.split(".")
    if len(labels) < min_labels:
        return False
    if not all(_DOMAIN_LABEL_RE.match(label) for label in labels):
        return False
    # TLD can't be numeric
    return not labels[-1].isdigit()


def is_valid_subdomain_label(label):
    return bool(label) and bool(_DOMAIN_LABEL_RE.match(label))


def is_valid_account_name(name, max_length=64):
    """Local parts, FTP/SQL/htaccess user names."""
    return bool(name) and len(name) <= max_length and bool(_NAME_RE.match(name))


def normalize_path(path):
    """Normalize a web path: leading slash, no trailing slash, no '..' escape."""
    path = "/" + (path or "").strip().lstrip("/")
    normalized = posixpath.normpath(path)
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")
    return normalized


def bytes_human(num_bytes, decimals=2):
    if num_bytes is None:
        return "-"
    units = ["B", "KiB", "MiB", "GiB", "TiB"]
    value = float(num_bytes)
    for unit in units:
        if value < 1024 or unit == units[-1]:
            if unit == "B":
                return f"{int(value)} {unit}"
            return f"{value:.{decimals}f} {unit}"
        value /= 1024


def humanize_limit(value):
    if value is None:
        return "-"
    if value == -1:
        return "Disabled"
    if value == 0:
        return "Unlimited"
    return str(value)
