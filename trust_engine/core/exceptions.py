"""Exception hierarchy for the trust engine.

All exceptions inherit from TrustEngineError so callers can catch broadly
or narrowly as needed.
"""


class TrustEngineError(Exception):
    """Base exception for all trust engine errors."""


class NotFoundError(TrustEngineError):
    """Referenced dataset, column, metric or sample is absent, or a dataset has no rows."""


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------

class LedgerError(TrustEngineError):
    """Failed ledger operation."""


class MetricConflictError(LedgerError):
    """A metric with the same project and code already exists."""
