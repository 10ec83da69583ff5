"""
Velocity Check
--------------
Counts claims sharing the claimant's address / bank account / device whose
loss_date falls within ±window_days of this claim's loss_date. The window is
symmetric and inclusive on both ends, and the claim itself is counted.

Returns:
    Optional[str] – e.g. "velocity_14d_address=4"
"""

from typing import Optional

from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.fraud_engine.relationship_index import RelationshipIndex
from claim_risk.models.catalog import KeyKind, RuleSpec


def velocity_count(ctx: ClaimContext, index: RelationshipIndex, key: KeyKind, window_days: int) -> int:
    shared_key = index.key_for(key, ctx.claim)
    return len(index.claims_within(key, shared_key, ctx.claim.loss_date, window_days))


def check_velocity(ctx: ClaimContext, index: RelationshipIndex, rule: RuleSpec) -> Optional[str]:
    count = velocity_count(ctx, index, rule.key, rule.window_days)
    if rule.comparison.passes(count, rule.threshold):
        return f"{rule.label}={count}"
    return None
