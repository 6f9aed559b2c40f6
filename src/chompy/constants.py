"""Shared constants for chompy.

This module provides centralized configuration constants used across the
syntax and runtime packages. Placing constants here avoids circular imports
and provides a single source of truth.

Constants are grouped by domain:
- Retry protocol: Defaults for Incomplete hints
- Input limits: Memory bounds for streaming buffers
- Diagnostics: Bounds on error context and rendering

Every limit can be overridden per call through keyword arguments
(``ParseSession(max_buffer_size=...)``, ``run(..., max_buffer_size=...)``).

Python 3.13+. Zero external dependencies.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Retry protocol
    "DEFAULT_NEEDED",
    # Input limits
    "MAX_BUFFER_SIZE",
    # Diagnostics
    "MAX_ERROR_CONTEXT_LABELS",
    "MAX_DISPLAYED_TOKENS",
]

# ============================================================================
# RETRY PROTOCOL
# ============================================================================

# Minimum number of additional tokens an Incomplete result asks for.
# The hint is non-binding: callers may append fewer or more tokens.
DEFAULT_NEEDED: int = 1

# ============================================================================
# INPUT LIMITS
# ============================================================================

# Default maximum number of buffered tokens per stream (64 MiB for bytes).
# Streaming sessions keep every received token so that alternation can
# backtrack; an unbounded producer would otherwise grow memory forever.
MAX_BUFFER_SIZE: int = 64 * 1024 * 1024

# ============================================================================
# DIAGNOSTICS
# ============================================================================

# Maximum labels kept on an error's context stack. Deeply recursive grammars
# would otherwise attach one label per nesting level.
MAX_ERROR_CONTEXT_LABELS: int = 32

# Maximum tokens rendered when an error message displays a token sequence.
MAX_DISPLAYED_TOKENS: int = 16
