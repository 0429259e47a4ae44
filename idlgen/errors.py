"""
Error taxonomy for idlgen.

Every failure the compiler reports derives from ``IdlError``.  Lexical,
syntax and include errors carry a source location and format as
``file:line:col: message``.
"""

from typing import List, Optional


class IdlError(Exception):
    """Base class for all idlgen errors."""

    def __init__(self, message: str, filename: Optional[str] = None,
                 line: Optional[int] = None, column: Optional[int] = None):
        self.message = message
        self.filename = filename
        self.line = line
        self.column = column
        super().__init__(self._format())

    def _format(self) -> str:
        if self.line is None:
            return self.message
        return f"{self.filename}:{self.line}:{self.column}: {self.message}"


class LexError(IdlError):
    """Raised on an unterminated literal or comment, or an illegal character."""
    pass


class ParseError(IdlError):
    """Raised when the token stream does not match the IDL grammar."""
    pass


class IncludeError(IdlError):
    """Raised when an #include cannot be resolved or its file fails to parse."""
    pass


class ConfigError(IdlError):
    """Raised when a generator configuration file fails validation."""
    pass


class GenerationError(IdlError):
    """Raised when one or more artifacts could not be generated.

    ``failures`` holds ``(artifact path, reason)`` pairs.
    """

    def __init__(self, message: str, failures: Optional[List[tuple]] = None):
        self.failures = list(failures or [])
        super().__init__(message)
