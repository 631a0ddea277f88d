class NotifierError(Exception):
    """Raised when a notification could not be delivered."""


class NotifierNetworkError(NotifierError):
    """Raised when the notification endpoint cannot be reached."""
