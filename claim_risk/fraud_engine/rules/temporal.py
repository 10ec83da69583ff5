"""
Temporal Rules
--------------
Date-based checks against the claim's own policy:

- late reporting (report_date − loss_date above threshold)
- policy inactive (loss before inception or after expiry)
- inception spike (loss within N days after inception, policy active)

Returns:
    Optional[str] – tag such as "late_reporting=37d", or None.
"""

from typing import Optional

from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.models.catalog import RuleSpec


def check_report_delay(ctx: ClaimContext, rule: RuleSpec) -> Optional[str]:
    delay = ctx.days_to_report
    if rule.comparison.passes(delay, rule.threshold):
        return f"{rule.label}={delay}d"
    return None


def check_before_inception(ctx: ClaimContext, rule: RuleSpec) -> Optional[str]:
    days_before = (ctx.policy.inception_date - ctx.claim.loss_date).days
    if days_before > rule.threshold:
        return rule.label
    return None


def check_after_expiry(ctx: ClaimContext, rule: RuleSpec) -> Optional[str]:
    days_after = (ctx.claim.loss_date - ctx.policy.expiry_date).days
    if days_after > rule.threshold:
        return rule.label
    return None


def check_inception_window(ctx: ClaimContext, rule: RuleSpec) -> Optional[str]:
    # mutually exclusive with policy_inactive
    if ctx.policy_inactive:
        return None
    since = ctx.days_since_inception
    if since >= 0 and rule.comparison.passes(since, rule.threshold):
        return rule.label
    return None
