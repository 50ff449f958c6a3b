"""
Errors raised by the thumbnail filter.
"""

from typing import Optional


class ThumbnailFilterError(Exception):
    """Base class for thumbnail filter failures."""
    pass


class ConfigurationError(ThumbnailFilterError):
    """Raised when the filter configuration is unusable."""

    def __init__(self, message: str, problems: Optional[list] = None):
        super().__init__(message)
        self.problems = problems or []


class StagingError(ThumbnailFilterError):
    """Raised when a source stream cannot be written to a temp file."""
    pass


class ConversionError(ThumbnailFilterError):
    """
    Raised when the external converter did not produce a thumbnail.

    Attributes:
        kind: One of EXIT, LAUNCH, INTERRUPTED, NO_OUTPUT
        exit_code: Converter exit status, if it ran to completion
        source: Basename of the file being converted
        stderr: Decoded (truncated) converter error output
    """

    EXIT = 'exit'
    LAUNCH = 'launch'
    INTERRUPTED = 'interrupted'
    NO_OUTPUT = 'no_output'

    STDERR_CAP = 1000

    def __init__(
        self,
        message: str,
        kind: str,
        exit_code: Optional[int] = None,
        source: Optional[str] = None,
        stderr: Optional[str] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.exit_code = exit_code
        self.source = source
        self.stderr = (stderr or '')[:self.STDERR_CAP]
