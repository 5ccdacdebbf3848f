"""Exception hierarchy shared by the timer core and its collaborators."""


class FocusLogError(Exception):
    """Base class for all focuslog errors."""


class ValidationError(FocusLogError):
    """Raised when user input (e.g. an empty goal) is rejected."""


class InvalidStateError(FocusLogError):
    """Raised when an invalid state transition is attempted."""


class PersistenceError(FocusLogError):
    """Raised when the session log cannot be read or written."""


class NotificationError(FocusLogError):
    """Raised when a completion sound or alert cannot be delivered."""
