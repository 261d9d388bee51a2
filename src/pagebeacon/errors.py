"""Error taxonomy for the event client."""


class PageBeaconError(Exception):
    """Base class for all client errors."""


class MissingIdentity(PageBeaconError):
    """Raised when an operation needs a participant code and none is set."""

    def __init__(self, message: str = "Missing participant code!") -> None:
        super().__init__(message)


class SessionCreationFailed(PageBeaconError):
    """Raised when the collector refuses (or cannot be reached) to create a session."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Failed to create new session: {message}")
        self.server_message = message


class StorageCorrupted(PageBeaconError):
    """Raised by persisted-state parsers; always absorbed by the caller."""


class RequestFailed(PageBeaconError):
    """Raised when a collector request backing a user action fails."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code
