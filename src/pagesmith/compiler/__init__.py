"""Compiler module."""

from pagesmith.compiler.exceptions import (
    ConfigurationError,
    FileSystemError,
    HelperMisuseError,
    PagesmithError,
    SourceSyntaxError,
)
from pagesmith.compiler.routes import build_route_table

__all__ = [
    "PagesmithError",
    "SourceSyntaxError",
    "HelperMisuseError",
    "FileSystemError",
    "ConfigurationError",
    "build_route_table",
]
