"""chompy exception hierarchy with structured diagnostics.

Exceptions are reserved for misuse of the engine (illegal cursor moves,
appending to a closed buffer, driving a finished session) and for surfacing
an unrecovered parse error at the API boundary. Inside combinators, errors
and Incomplete outcomes are ordinary return values and are never raised.

All exceptions optionally store a Diagnostic for rich error information.

Python 3.13+. Zero external dependencies.
"""

from typing import TYPE_CHECKING

from .codes import Diagnostic

if TYPE_CHECKING:
    from chompy.syntax.result import ParseError

__all__ = [
    "BufferClosedError",
    "BufferKindError",
    "BufferLimitExceededError",
    "ChompError",
    "CursorInvariantError",
    "IncompleteInputError",
    "ParseFailedError",
    "ProtocolViolationError",
    "SessionStateError",
    "StaleMarkError",
    "TokenBufferError",
]


class ChompError(Exception):
    """Base exception for all chompy errors.

    Attributes:
        diagnostic: Structured diagnostic information (optional)
    """

    def __init__(self, message: str | Diagnostic) -> None:
        """Initialize ChompError.

        Args:
            message: Error message string OR Diagnostic object
        """
        if isinstance(message, Diagnostic):
            self.diagnostic: Diagnostic | None = message
            super().__init__(message.message)
        else:
            self.diagnostic = None
            super().__init__(message)


class CursorInvariantError(ChompError):
    """Illegal cursor operation.

    A programming error in a parser, not a recoverable parse error:
    advancing past the buffered tokens, reading the current token when
    nothing is buffered, or rebasing onto a foreign buffer.
    """


class StaleMarkError(CursorInvariantError):
    """A mark was restored on a cursor of another generation.

    Marks are invalidated whenever the buffer is extended or closed.
    Re-mark after every Incomplete resumption.
    """


class TokenBufferError(ChompError):
    """Base class for token buffer misuse."""


class BufferClosedError(TokenBufferError):
    """Tokens were appended after end of stream was asserted."""


class BufferLimitExceededError(TokenBufferError):
    """Appending would grow the buffer past its configured maximum size."""


class BufferKindError(TokenBufferError, TypeError):
    """A chunk is incompatible with the tokens already buffered.

    Example: appending ``str`` data to a buffer that was created from ``bytes``.
    """


class SessionStateError(ChompError):
    """Operation is not valid in the session's current state."""


class ProtocolViolationError(ChompError):
    """A continuation resolved to Incomplete after end of stream was confirmed.

    Always fatal. Raised only by the session driving the retry protocol,
    never from inside a combinator, so alternation cannot recover from it.
    """


class ParseFailedError(ChompError):
    """An unrecovered parse error surfaced at the API boundary.

    Attributes:
        error: The ParseError with position, kind and context labels
    """

    def __init__(self, message: str | Diagnostic, error: "ParseError") -> None:
        """Initialize ParseFailedError.

        Args:
            message: Error message string OR Diagnostic object
            error: The unrecovered ParseError
        """
        super().__init__(message)
        self.error = error


class IncompleteInputError(ChompError):
    """A value was requested from an Incomplete result.

    Attributes:
        needed: Minimum number of further tokens the parser asked for
    """

    def __init__(self, message: str | Diagnostic, needed: int) -> None:
        """Initialize IncompleteInputError.

        Args:
            message: Error message string OR Diagnostic object
            needed: Minimum number of further tokens requested
        """
        super().__init__(message)
        self.needed = needed
