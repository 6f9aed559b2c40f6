"""Runtime: the incremental retry protocol and top-level entry points.

Public API:
    ParseSession: Feed chunks to a parser and resolve it at end of stream
    run: Drive a parser with a "more data" callback
    parse_only / parse_only_str: Parse complete input
    iter_parse: Parse consecutive records from one stream
"""

from .driver import MoreData, chunks, iter_parse, parse_only, parse_only_str, run
from .session import ParseSession

__all__ = [
    "MoreData",
    "ParseSession",
    "chunks",
    "iter_parse",
    "parse_only",
    "parse_only_str",
    "run",
]
