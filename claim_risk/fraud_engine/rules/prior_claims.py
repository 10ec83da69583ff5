"""
Prior Claims Check
------------------
Detects claimants who filed several earlier claims in a lookback window
(e.g. 3+ in the last 12 months, 2+ in the last 6 months).

Earlier means loss_date strictly before this claim's loss_date.

Returns:
    Optional[str] – e.g. "prior_claims_12m=3"
"""

from typing import Optional

from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.fraud_engine.relationship_index import RelationshipIndex
from claim_risk.models.catalog import RuleSpec


def prior_claims_count(ctx: ClaimContext, index: RelationshipIndex, lookback_days: int) -> int:
    return len(index.claims_before(ctx.claim.claimant_id, ctx.claim.loss_date, lookback_days))


def check_prior_claims(ctx: ClaimContext, index: RelationshipIndex, rule: RuleSpec) -> Optional[str]:
    count = prior_claims_count(ctx, index, rule.window_days)
    if rule.comparison.passes(count, rule.threshold):
        return f"{rule.label}={count}"
    return None
