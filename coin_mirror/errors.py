"""
Coin Mirror — Error taxonomy
──────────────────────────────
Pass-level calls (ranked page, batch price) fail the whole pass.
Per-entity calls (one create, one update) fail on their own.
"""

from typing import Optional


class MirrorError(Exception):
    """Base class for every error this package raises."""


class SourceUnavailable(MirrorError):
    """Price source errored, timed out or answered non-2xx."""


class StoreUnavailable(MirrorError):
    """Record store unreachable, timed out, throttled or 5xx."""


class StoreRejected(MirrorError):
    """Record store refused the request (validation, schema, auth)."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 error_type: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_type  = error_type


class NotFound(MirrorError):
    """No record matches a lookup."""


class AmbiguousSymbol(MirrorError):
    """More than one record carries the same symbol."""
