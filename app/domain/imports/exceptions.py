"""Errors raised while running a candidate or job import."""

from typing import Optional


class ImportProcessingError(Exception):
    """Base class for import failures; `message` is safe to show to users."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class UnsupportedFormatError(ImportProcessingError):
    """Raised when the uploaded file is not CSV, XLS, or XLSX."""

    def __init__(self, file_name: str, message: Optional[str] = None):
        self.file_name = file_name
        super().__init__(
            message or "Unsupported file format. Please use CSV, XLS, or XLSX files."
        )


class ParseError(ImportProcessingError):
    """Raised when a CSV or Excel file cannot be decoded into rows."""


class EmptyFileError(ImportProcessingError):
    """Raised when a file parses cleanly but contains no data rows."""

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or "No data records found in file")


class UnknownImportTypeError(ImportProcessingError):
    """Raised when an import is neither a candidates nor a jobs import."""

    def __init__(self, import_type: str):
        self.import_type = import_type
        super().__init__(f"Unsupported import type: {import_type}")


class RowPersistenceError(ImportProcessingError):
    """Raised when creating the entity for a validated row fails."""

    def __init__(self, row_number: int, message: str):
        self.row_number = row_number
        super().__init__(message)
