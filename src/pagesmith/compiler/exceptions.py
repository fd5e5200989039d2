"""Compiler exceptions."""
from typing import Optional


class PagesmithError(Exception):
    """Base class for build errors."""


class SourceSyntaxError(PagesmithError):
    """Raised when a template, script or style source is malformed."""

    def __init__(self, message: str, file_path: str = "", line: int = 0, column: int = 0):
        self.message = message
        self.file_path = file_path
        self.line = line
        self.column = column
        super().__init__(message)

    def __str__(self) -> str:
        if self.file_path and self.line:
            return f"{self.file_path}:{self.line}:{self.column}: {self.message}"
        if self.file_path:
            return f"{self.file_path}: {self.message}"
        return self.message


class HelperMisuseError(SourceSyntaxError):
    """Raised when a path helper is called without a single string literal."""


class FileSystemError(PagesmithError):
    """Raised when a source can't be read or the output tree can't be written."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.message = message
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class ConfigurationError(PagesmithError):
    """Raised for an unrecognised build mode."""
