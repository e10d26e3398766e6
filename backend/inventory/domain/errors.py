from typing import Mapping, Optional


class DomainError(Exception):
    """Base domain error with a user-facing message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(DomainError):
    """Raised when input is invalid; carries field-scoped messages."""

    def __init__(self, errors: Mapping[str, str], message: Optional[str] = None) -> None:
        self.errors = dict(errors)
        super().__init__(message or "; ".join(self.errors.values()) or "Dados inválidos")


class NotFoundError(DomainError):
    """Raised when a referenced entity is missing."""


class DuplicateKeyError(DomainError):
    """Raised by repositories when a uniqueness constraint is violated."""

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message)


class DuplicateAssetNumberError(DomainError):
    """Raised when no free asset number could be claimed."""

    def __init__(self, message: str, asset_number: Optional[str] = None) -> None:
        self.asset_number = asset_number
        super().__init__(message)


class PersistenceError(DomainError):
    """Raised when the data store is unreachable or a write failed."""


class FileTooLargeError(DomainError):
    """Raised when an upload exceeds the size ceiling."""

    def __init__(self, message: str, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(message)


class ConversionError(DomainError):
    """Raised when a purchase could not be converted into equipment."""

    def __init__(self, message: str, step: str) -> None:
        self.step = step
        super().__init__(message)


class SignatureServiceError(DomainError):
    """Raised when the e-signature provider rejects or fails a call."""


class StatusConflictError(DomainError):
    """Raised when a row changed status since it was read."""

    def __init__(self, message: str, status: Optional[str] = None) -> None:
        self.status = status
        super().__init__(message)
