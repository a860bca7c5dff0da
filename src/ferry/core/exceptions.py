"""Ferry exception hierarchy."""

from __future__ import annotations


class FerryError(Exception):
    """Base exception for all Ferry errors."""


class ParseError(FerryError):
    """Uploaded content could not be turned into a table."""


class UnsupportedFileTypeError(ParseError):
    """File extension is not a delimited text format."""

    def __init__(self, filename: str, extension: str) -> None:
        self.filename = filename
        self.extension = extension
        super().__init__(
            f"Unsupported file type: .{extension or '?'} for {filename!r} "
            "(expected .csv, .tsv or .txt)"
        )


class UnknownTargetError(FerryError):
    """Import target is not in the field catalog."""


class MappingValidationError(FerryError):
    """Column mappings block the mapping -> validating transition."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__("Column mappings are not valid: " + "; ".join(self.reasons))


class InvalidTransitionError(FerryError):
    """Requested job status change is not allowed from the current status."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move import job from {current!r} to {requested!r}")


class PersistenceError(FerryError):
    """Entity repository create/delete failed."""

    def __init__(self, row_number: int, message: str) -> None:
        self.row_number = row_number
        super().__init__(f"Row {row_number}: {message}")


class RepositoryTimeoutError(PersistenceError):
    """Entity repository call exceeded its time budget."""


class JobNotFoundError(FerryError):
    """No import job stored under the given id."""


class StoreError(FerryError):
    """Job store backend operation failed."""


class CacheError(StoreError):
    """Redis operation failed."""
