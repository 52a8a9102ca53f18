"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class BackofficeAPIError(DomainException):
    """Back-office API returned an error or is unavailable"""

    def __init__(self, message: str, status_code: int | None = None, timeout: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timeout = timeout


class InvalidTransitionError(DomainException):
    """Session action not allowed from the current window status"""

    def __init__(self, action: str, status):
        super().__init__(f"Cannot {action} a teller window in status {status.value}")
        self.action = action
        self.status = status


class WindowNotOpenError(DomainException):
    """Conversion action attempted while the window is not open"""

    pass


class InvalidOpeningError(DomainException):
    """Opening data is incomplete (operator or balances)"""

    pass


class ReconciliationIncompleteError(DomainException):
    """Closing attempted before every amount was physically confirmed"""

    pass


class StorageCorruptionError(DomainException):
    """Durable storage holds a value that cannot be decoded"""

    pass


class SnapshotPersistenceError(DomainException):
    """Session snapshot could not be written to durable storage"""

    pass
