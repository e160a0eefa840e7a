"""Domain exceptions for Wine Value Finder."""


class WineValueError(Exception):
    """Base class for all domain errors."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ConfigurationError(WineValueError):
    """Raised when required configuration is missing or invalid."""


class SessionNotFoundError(WineValueError):
    """Raised when a session id does not exist (or has been swept)."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class LookupConflictError(WineValueError):
    """Raised when a lookup is started while one is already in progress."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Lookup already in progress")


class SessionNotReadyError(WineValueError):
    """Raised when a session is not in a state that allows the operation."""


class InvalidWineIndexError(WineValueError):
    """Raised when an edit targets a wine index outside the session."""

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Invalid wine index: {index}")


class UnsupportedFileTypeError(WineValueError):
    """Raised when an uploaded wine list has an unsupported extension."""

    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(
            f"File type {extension or '(none)'} not supported. Use PDF, JPG, PNG, GIF or WebP."
        )


class DocumentParseError(WineValueError):
    """Raised when a wine list document cannot be turned into wine records."""
