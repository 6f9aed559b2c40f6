"""chompy - Incremental parser combinators for byte, text and token streams.

Build parsers by composing small parsing functions over an immutable
cursor. Every parser returns Done (a value), Error (a structured parse
error) or Incomplete (more input is needed), so the same grammar parses
complete buffers and data that arrives in chunks.

Public API:
    parse_only / parse_only_str - Parse complete input
    run - Drive a parser with a "more data" callback
    iter_parse - Parse consecutive records from one stream
    ParseSession - Feed chunks manually and resolve at end of stream
    Parser, Forward - Parser type and recursive declarations
    Done, Error, Incomplete, ParseError - The result algebra

Exceptions:
    ChompError - Base exception class
    ParseFailedError - Unrecovered parse error at the API boundary
    ProtocolViolationError - Parser asked for input after end of stream

Submodules:
    chompy.syntax.parser - All combinators (primitives, core, repetition)
    chompy.syntax.parser.ascii - ASCII predicates and number parsers
    chompy.diagnostics - Error codes, templates and formatting
"""

# Essential Public API - Minimal exports for clean namespace
from .diagnostics import (
    ChompError,
    IncompleteInputError,
    ParseFailedError,
    ProtocolViolationError,
)
from .runtime import ParseSession, chunks, iter_parse, parse_only, parse_only_str, run
from .syntax import Cursor, Done, Error, Incomplete, ParseError, TokenBuffer
from .syntax.parser import Forward, Parser

# Version information - Auto-populated from package metadata
# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("chompy")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "ChompError",
    "Cursor",
    "Done",
    "Error",
    "Forward",
    "Incomplete",
    "IncompleteInputError",
    "ParseError",
    "ParseFailedError",
    "ParseSession",
    "Parser",
    "ProtocolViolationError",
    "TokenBuffer",
    "__version__",
    "chunks",
    "iter_parse",
    "parse_only",
    "parse_only_str",
    "run",
]
