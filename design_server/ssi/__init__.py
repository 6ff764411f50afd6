"""Server-side include (SSI) expansion.

The `engine.py` module resolves include fragments, variables and
conditional blocks, returning an `ExpansionResult` instead of raising.
"""

from .engine import ExpansionError, ExpansionResult, SSIEngine

__all__ = ["ExpansionError", "ExpansionResult", "SSIEngine"]
