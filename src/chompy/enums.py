"""Enumerations for chompy type-safe constants.

Uses StrEnum (Python 3.11+) for automatic string conversion.
StrEnum members are strings themselves, eliminating boilerplate __str__ methods.

Python 3.13+.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Kind of a parse error.

    StrEnum provides automatic string conversion: str(ErrorKind.FAILURE) == "failure"
    """

    TOKEN_MISMATCH = "token_mismatch"
    """A specific token (or token sequence) was expected but another was found."""

    PREDICATE_FAILED = "predicate_failed"
    """A satisfy/take_while1 predicate rejected the token at a position."""

    UNEXPECTED_END_OF_INPUT = "unexpected_end_of_input"
    """End of stream was reached where more input was required."""

    EMPTY_REPETITION = "empty_repetition"
    """A many1/sep_by1/skip_many1 repetition matched zero times."""

    TRAILING_INPUT = "trailing_input"
    """end_of_input found unconsumed tokens."""

    FAILURE = "failure"
    """Explicit failure raised by a fail() parser."""

    PROTOCOL_VIOLATION = "protocol_violation"
    """A continuation asked for more input after end of stream was confirmed.

    Indicates a bug in a parser, never a problem with the data.
    """


class SessionState(StrEnum):
    """State of an incremental parse session.

    StrEnum provides automatic string conversion: str(SessionState.DONE) == "done"
    """

    RUNNING = "running"
    """The parser is being invoked against buffered input."""

    SUSPENDED = "suspended"
    """The last result was Incomplete; waiting for more input or end of stream."""

    DONE = "done"
    """Terminal: the parser produced a value."""

    FAILED = "failed"
    """Terminal: the parser produced an unrecovered error."""

    @property
    def is_terminal(self) -> bool:
        """True for DONE and FAILED."""
        return self in (SessionState.DONE, SessionState.FAILED)


__all__ = [
    "ErrorKind",
    "SessionState",
]
