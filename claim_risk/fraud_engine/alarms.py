"""
Rule Evaluator
--------------
Runs the configured rule catalog against one claim, in catalog order:

- temporal: late reporting, policy inactive (before/after), inception spike
- amount: suspicious amount near £5k/£10k/£15k/£20k (nearest target only)
- velocity: 3+ claims per address / bank / device within ±14 days
- reuse: bank / address / device shared across many claims
- history: prior claims in the last 12 / 6 months

rule_score is the flat ratio min(1, tag_count / rule_score_cap). Catalog
weights are deliberately not used here.

Usage:
    result = evaluate_rules(ctx, index, scoring_config)
"""

from typing import List, Optional

from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.fraud_engine.relationship_index import RelationshipIndex
from claim_risk.fraud_engine.rules import (
    check_after_expiry,
    check_before_inception,
    check_inception_window,
    check_key_reuse,
    check_prior_claims,
    check_report_delay,
    check_suspicious_amount,
    check_velocity,
)
from claim_risk.models.catalog import RuleKind, RuleSpec, ScoringConfig
from claim_risk.models.score import RuleResult
from claim_risk.utils.logger import logger


def _check(ctx: ClaimContext, index: RelationshipIndex, rule: RuleSpec, scoring_config: ScoringConfig) -> Optional[str]:
    kind = rule.kind
    if kind == RuleKind.REPORT_DELAY:
        return check_report_delay(ctx, rule)
    if kind == RuleKind.BEFORE_INCEPTION:
        return check_before_inception(ctx, rule)
    if kind == RuleKind.AFTER_EXPIRY:
        return check_after_expiry(ctx, rule)
    if kind == RuleKind.INCEPTION_WINDOW:
        return check_inception_window(ctx, rule)
    if kind == RuleKind.VELOCITY:
        return check_velocity(ctx, index, rule)
    if kind == RuleKind.KEY_REUSE:
        return check_key_reuse(ctx, index, rule, windowed=scoring_config.reuse_windowed)
    if kind == RuleKind.PRIOR_CLAIMS:
        return check_prior_claims(ctx, index, rule)
    raise ValueError(f"Unhandled rule kind: {kind}")


def rule_score_for(tag_count: int, scoring_config: ScoringConfig) -> float:
    return min(1.0, tag_count / scoring_config.rule_score_cap)


def evaluate_rules(ctx: ClaimContext, index: RelationshipIndex, scoring_config: ScoringConfig) -> RuleResult:
    """
    Evaluate every catalog rule for one claim.

    Args:
        ctx: Claim joined with its policy and claimant.
        index: Frozen relationship index for the current pass.
        scoring_config: Catalog and weights.

    Returns:
        RuleResult with all tags (uncapped, catalog order) and the rule score.
    """
    tags: List[str] = []
    amount_rules = [r for r in scoring_config.rules if r.kind == RuleKind.AMOUNT_PROXIMITY]
    amount_checked = False

    for rule in scoring_config.rules:
        if rule.kind == RuleKind.AMOUNT_PROXIMITY:
            # the whole amount family resolves at the position of its first member
            if amount_checked:
                continue
            amount_checked = True
            tag = check_suspicious_amount(ctx, amount_rules)
        else:
            tag = _check(ctx, index, rule, scoring_config)

        if tag is not None and tag not in tags:
            tags.append(tag)

    if tags:
        logger.debug(f"[RULES] {ctx.claim.claim_id}: {len(tags)} rule hits → {tags}")

    return RuleResult(
        claim_id=ctx.claim.claim_id,
        tags=tags,
        rule_score=rule_score_for(len(tags), scoring_config),
    )
