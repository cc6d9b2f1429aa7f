class PanelError(Exception):
    """Base error for panel operations; the message is shown to the user."""

    category = "danger"

    def __init__(self, message, category=None):
        super().__init__(message)
        self.message = message
        if category:
            self.category = category


class ValidationError(PanelError):
    pass


class LimitReachedError(PanelError):
    category = "warning"


class NotFoundError(PanelError):
    pass


class ItemNotStable(PanelError):
    """The item has a daemon operation in flight or failed."""

    category = "warning"

    def __init__(self, item, message=None):
        self.item = item
        super().__init__(
            message
            or f"{item!r} cannot be modified while its status is '{item.status}'."
        )


class InvalidStatusTransition(PanelError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Status cannot change from '{current}' to '{target}'.")


class DaemonRequestError(PanelError):
    pass
