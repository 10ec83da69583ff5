"""
Shared-Resource Reuse Check
---------------------------
Flags bank accounts, addresses and devices used across many claims.

By default the count covers every claim in the dataset sharing the key,
regardless of date. With `windowed=True` only claims within ±window_days of
this claim's loss date are counted.

Returns:
    Optional[str] – e.g. "bank_reuse=7"
"""

from typing import Optional

from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.fraud_engine.relationship_index import RelationshipIndex
from claim_risk.models.catalog import RuleSpec


def reuse_count(ctx: ClaimContext, index: RelationshipIndex, rule: RuleSpec, windowed: bool = False) -> int:
    shared_key = index.key_for(rule.key, ctx.claim)
    if windowed and rule.window_days is not None:
        return len(index.claims_within(rule.key, shared_key, ctx.claim.loss_date, rule.window_days))
    return index.count(rule.key, shared_key)


def check_key_reuse(
    ctx: ClaimContext,
    index: RelationshipIndex,
    rule: RuleSpec,
    windowed: bool = False,
) -> Optional[str]:
    count = reuse_count(ctx, index, rule, windowed)
    if rule.comparison.passes(count, rule.threshold):
        return f"{rule.label}={count}"
    return None
