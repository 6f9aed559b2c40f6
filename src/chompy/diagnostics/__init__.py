"""Diagnostic system for chompy errors.

Provides structured error diagnostics with codes, spans, and hints.
Inspired by Rust compiler diagnostics and Elm error messages.

Python 3.13+. Zero external dependencies.
"""

from .codes import Diagnostic, DiagnosticCode, SourceSpan
from .errors import (
    BufferClosedError,
    BufferKindError,
    BufferLimitExceededError,
    ChompError,
    CursorInvariantError,
    IncompleteInputError,
    ParseFailedError,
    ProtocolViolationError,
    SessionStateError,
    StaleMarkError,
    TokenBufferError,
)
from .formatter import DiagnosticFormatter, OutputFormat
from .templates import ErrorTemplate

__all__ = [
    "BufferClosedError",
    "BufferKindError",
    "BufferLimitExceededError",
    "ChompError",
    "CursorInvariantError",
    "Diagnostic",
    "DiagnosticCode",
    "DiagnosticFormatter",
    "ErrorTemplate",
    "IncompleteInputError",
    "OutputFormat",
    "ParseFailedError",
    "ProtocolViolationError",
    "SessionStateError",
    "SourceSpan",
    "StaleMarkError",
    "TokenBufferError",
]
