"""Diagnostic codes and data structures.

Defines error codes, source spans, and diagnostic messages.
Python 3.13+. Zero external dependencies.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal

from chompy.enums import ErrorKind

__all__ = [
    "Diagnostic",
    "DiagnosticCode",
    "SourceSpan",
]


class DiagnosticCode(Enum):
    """Error codes with unique identifiers.

    Organized by category:
        1000-1999: Usage errors (cursor, buffer and session misuse)
        3000-3999: Parse errors (data did not match the grammar)
        4000-4999: Internal errors (parser contract violations)
    """

    # Usage errors (1000-1999)
    CURSOR_OUT_OF_BOUNDS = 1001
    STALE_MARK = 1002
    BUFFER_CLOSED = 1003
    BUFFER_LIMIT_EXCEEDED = 1004
    BUFFER_KIND_MISMATCH = 1005
    SESSION_STATE_INVALID = 1006
    INCOMPLETE_INPUT = 1007

    # Parse errors (3000-3999)
    TOKEN_MISMATCH = 3001
    PREDICATE_FAILED = 3002
    UNEXPECTED_END_OF_INPUT = 3003
    EMPTY_REPETITION = 3004
    TRAILING_INPUT = 3005
    FAILURE = 3006

    # Internal errors (4000-4999)
    PROTOCOL_VIOLATION = 4001

    @classmethod
    def for_kind(cls, kind: ErrorKind) -> "DiagnosticCode":
        """Map a parse error kind to its diagnostic code."""
        return cls[kind.name]


@dataclass(frozen=True, slots=True)
class SourceSpan:
    """Source location for error reporting.

    Note:
        Positions are token offsets. For ``str`` input that is characters
        (Unicode code points), for ``bytes`` input it is bytes.

    Attributes:
        start: Starting token offset (0-indexed)
        end: Ending token offset (exclusive)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """

    start: int
    end: int
    line: int
    column: int

    def __post_init__(self) -> None:
        """Validate SourceSpan invariants.

        Raises:
            ValueError: If start is negative, end precedes start, line is
                less than 1 (lines are 1-indexed), or column is less than 1
                (columns are 1-indexed).
        """
        if self.start < 0:
            msg = f"SourceSpan.start must be >= 0, got {self.start}"
            raise ValueError(msg)
        if self.end < self.start:
            msg = f"SourceSpan.end ({self.end}) must be >= start ({self.start})"
            raise ValueError(msg)
        if self.line < 1:
            msg = f"SourceSpan.line must be >= 1 (1-indexed), got {self.line}"
            raise ValueError(msg)
        if self.column < 1:
            msg = f"SourceSpan.column must be >= 1 (1-indexed), got {self.column}"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Structured diagnostic message.

    Inspired by Rust compiler diagnostics. Provides rich error information
    for both humans and tools.

    Attributes:
        code: Unique error code
        message: Human-readable error description
        span: Source location (None when no line/column is available)
        position: Token offset of the error (None for usage errors)
        hint: Suggestion for fixing the error
        expected: What the parser expected at the position
        received: What the parser found at the position
        context: Error context stack, innermost label first
        severity: Error severity level
    """

    code: DiagnosticCode
    message: str
    span: SourceSpan | None = None
    position: int | None = None
    hint: str | None = None
    expected: tuple[str, ...] | None = None
    received: str | None = None
    context: tuple[str, ...] | None = None
    severity: Literal["error", "warning"] = "error"

    def __str__(self) -> str:
        """Return human-readable error description."""
        return self.message

    def format_error(self) -> str:
        """Format diagnostic like the Rust compiler.

        Delegates to DiagnosticFormatter for consistent output.

        Example output:
            error[TOKEN_MISMATCH]: Expected 'a', found 'b'
              --> position 0
              = expected: 'a'
              = found: 'b'
              = context: header <- request

        Returns:
            Formatted error message
        """
        from .formatter import DiagnosticFormatter  # noqa: PLC0415 - circular

        return DiagnosticFormatter().format(self)
