"""
Error Taxonomy
--------------
Fatal conditions for a generation or scoring run. Anything raised from here
aborts the run; per-claim numeric anomalies are clamped instead and never
surface as exceptions.
"""

from typing import Optional


class ClaimRiskError(Exception):
    """Base class for all run-aborting errors."""


class PreconditionError(ClaimRiskError):
    """Input data breaks referential integrity (e.g. a claim with no policy)."""

    def __init__(self, message: str, entity_id: Optional[str] = None):
        super().__init__(message)
        self.entity_id = entity_id


class CatalogError(ClaimRiskError):
    """Rule catalog or weight table is malformed. Raised before any claim is scored."""


class PersistenceError(ClaimRiskError):
    """A batched write failed; the run must not report success."""

    def __init__(self, message: str, table: str, batch_index: int, entity_id: Optional[str] = None):
        super().__init__(message)
        self.table = table
        self.batch_index = batch_index
        self.entity_id = entity_id
