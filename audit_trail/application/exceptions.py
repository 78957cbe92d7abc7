"""Application-layer exceptions. Do not reuse domain exceptions."""


class ApplicationError(Exception):
    """Base for all application-layer errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StoreUnavailableError(ApplicationError):
    """Raised when an event store read or write fails. Writes are never retried here."""


class OperationTimeoutError(StoreUnavailableError):
    """Raised when a caller deadline expires before the store confirmed the operation."""


class RecordConflictError(ApplicationError):
    """Raised when a record key or resource version has already been written."""


class VersionConflictError(RecordConflictError):
    """Raised when a modification version is not greater than the latest recorded one."""


class DispatchFailureError(ApplicationError):
    """Raised by alert channels when a notification or restriction request fails."""
