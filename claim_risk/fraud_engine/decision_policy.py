"""
Score Aggregator
----------------
Combines the rule, pseudo-ML and graph signals into the persisted score.

    risk_score = clamp(0.45 × rule_score + 0.35 × ml_score + 0.20 × graph_score, 0, 1)

Component scores are rounded to 2 decimals first and risk_score is computed
from those rounded values, so the stored row always satisfies the weighted
sum. Reasons are the first `max_reasons` rule tags; graph and ML signals do
not add reasons.

Risk banding (configuration, not stored on the row):
- low      < 0.30 → monitor
- medium   < 0.50 → review
- high     < 0.85 → investigate   (0.70 is the nominal high cut-off)
- critical ≥ 0.85 → escalate_siu
"""

import math
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable

from claim_risk.fraud_engine.ml_inference import clamp
from claim_risk.models.catalog import ScoringConfig
from claim_risk.models.score import RiskBand, RuleResult, ScoreRecord

BAND_ORDER = ("low", "medium", "high", "critical")


def round2(x: float) -> float:
    """Two-decimal rounding with halves going up (0.125 -> 0.13), unlike round()."""
    return math.floor(x * 100 + 0.5) / 100


def weighted_risk(rule_score: float, ml_score: float, graph_score: float, scoring_config: ScoringConfig) -> float:
    w = scoring_config.risk.weights
    return clamp(
        w["rule_score"] * rule_score + w["ml_score"] * ml_score + w["graph_score"] * graph_score,
        0.0,
        1.0,
    )


def aggregate(
    rule_result: RuleResult,
    ml_score: float,
    graph_score: float,
    scoring_config: ScoringConfig,
    created_at: datetime,
) -> ScoreRecord:
    """Build the complete score row for one claim."""
    rule_score = round2(clamp(rule_result.rule_score, 0.0, 1.0))
    ml_score = round2(clamp(ml_score, 0.0, 1.0))
    graph_score = round2(clamp(graph_score, 0.0, 1.0))
    risk_score = round2(weighted_risk(rule_score, ml_score, graph_score, scoring_config))

    return ScoreRecord(
        claim_id=rule_result.claim_id,
        rule_score=rule_score,
        ml_score=ml_score,
        graph_score=graph_score,
        risk_score=risk_score,
        reasons=list(rule_result.tags[: scoring_config.max_reasons]),
        created_at=created_at,
    )


def classify_risk(risk_score: float, scoring_config: ScoringConfig) -> RiskBand:
    """Map a risk score onto its band and recommended action."""
    thresholds = scoring_config.risk.thresholds
    actions = scoring_config.risk.actions

    if risk_score >= thresholds["critical"]:
        level = "critical"
    elif risk_score < thresholds["low"]:
        level = "low"
    elif risk_score < thresholds["medium"]:
        level = "medium"
    else:
        level = "high"
    return RiskBand(level=level, action=actions[level])


def band_distribution(scores: Iterable[ScoreRecord], scoring_config: ScoringConfig) -> Dict[str, int]:
    counts = Counter(classify_risk(s.risk_score, scoring_config).level for s in scores)
    return {level: counts.get(level, 0) for level in BAND_ORDER}
