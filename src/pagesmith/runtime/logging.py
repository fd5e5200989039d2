"""Logging setup for build output."""
import logging
import sys
from typing import IO, Optional

COMPILED_LOGGER = "pagesmith.compiled"

compiled_logger = logging.getLogger(COMPILED_LOGGER)
_handler: Optional[logging.Handler] = None


class CurrentStderr:
    """Writes to whatever sys.stderr is at the time of the write."""

    def write(self, message: str):
        return sys.stderr.write(message)

    def flush(self):
        sys.stderr.flush()

    def __getattr__(self, name):
        return getattr(sys.stderr, name)


def configure_logging(verbose: bool = True, stream: Optional[IO[str]] = None) -> None:
    """Install a plain message handler on the pagesmith logger.

    With verbose off, per-file 'compiled' lines are suppressed while
    warnings and errors still come through.
    """
    global _handler
    root = logging.getLogger("pagesmith")
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(stream if stream is not None else CurrentStderr())
    _handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(_handler)
    root.setLevel(logging.INFO)
    set_verbose(verbose)


def set_verbose(verbose: bool) -> None:
    compiled_logger.setLevel(logging.INFO if verbose else logging.WARNING)


def log_compiled(logical_path: str) -> None:
    compiled_logger.info(f"compiled: {logical_path}")
