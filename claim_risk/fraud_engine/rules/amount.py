"""
Suspicious Amount Check
-----------------------
Flags claim amounts sitting just around round reporting thresholds
(£5k / £10k / £15k / £20k), where each target has its own allowed variance.

Only the nearest matching target is reported, never several.

Returns:
    Optional[str] – e.g. "suspicious_amount≈10000"
"""

from typing import Optional, Sequence

from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.models.catalog import RuleSpec


def check_suspicious_amount(ctx: ClaimContext, rules: Sequence[RuleSpec]) -> Optional[str]:
    amount = ctx.claim.amount
    best: Optional[RuleSpec] = None
    best_distance = 0.0

    for rule in rules:
        distance = abs(amount - rule.target)
        if not rule.comparison.passes(distance, rule.threshold):
            continue
        if best is None or distance < best_distance:
            best, best_distance = rule, distance

    if best is None:
        return None
    return f"{best.label}≈{int(best.target)}"
