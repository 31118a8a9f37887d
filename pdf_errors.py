from __future__ import annotations


class FieldExtractError(Exception):
    """Base class for errors raised by the field extraction engine."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.__cause__ = cause


class FieldConfigError(FieldExtractError):
    """Raised when a field-set file cannot be read or is malformed."""

    def __init__(self, path: str, message: str | None = None, *, cause: Exception | None = None):
        self.path = path
        if message is None:
            message = f"Invalid field configuration: {path}"
        super().__init__(message, cause=cause)


class ScanCancelled(FieldExtractError):
    """Raised between pages when a scan's cancel event has been set."""

    def __init__(self, page_number: int):
        self.page_number = page_number
        super().__init__(f"Scan cancelled before page {page_number}")
