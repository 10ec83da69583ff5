"""
Scoring Catalog
---------------
Builds the immutable `ScoringConfig` used for a scoring process.

- `default_scoring_config()` → reference catalog (rules, features, graph rules, bands)
- `load_scoring_config(path)` → default catalog with top-level keys overridden from JSON
- `build_scoring_config(overrides)` → same, from an in-memory dict

Any malformed entry raises `CatalogError` here, before a single claim is read.
"""

import json
from typing import Any, Dict, Optional
from pydantic import ValidationError

from claim_risk.errors import CatalogError
from claim_risk.fraud_engine import constants as c
from claim_risk.models.catalog import (
    Comparison,
    FeatureSpec,
    GraphRuleKind,
    GraphRuleSpec,
    KeyKind,
    RiskScoringConfig,
    RuleKind,
    RuleSpec,
    ScoringConfig,
    Severity,
)
from claim_risk.utils.logger import logger


# =========================================================
# 🚨 Rule Catalog (declared order == reason order)
# =========================================================
def _default_rules() -> list:
    rules = [
        dict(name="late_reporting", kind=RuleKind.REPORT_DELAY,
             description="Claims reported more than 30 days after loss date",
             threshold=c.LATE_REPORT_THRESHOLD_DAYS, comparison=Comparison.GT,
             weight=0.15, severity=Severity.MEDIUM),
        dict(name="policy_inactive_before", kind=RuleKind.BEFORE_INCEPTION,
             description="Loss occurred before policy inception date",
             threshold=0, weight=0.25, severity=Severity.CRITICAL, tag="policy_inactive"),
        dict(name="policy_inactive_after", kind=RuleKind.AFTER_EXPIRY,
             description="Loss occurred after policy expiry date",
             threshold=0, weight=0.25, severity=Severity.CRITICAL, tag="policy_inactive"),
        dict(name="inception_spike", kind=RuleKind.INCEPTION_WINDOW,
             description="Loss occurred within 3 days of policy inception",
             threshold=c.INCEPTION_SPIKE_DAYS, comparison=Comparison.LTE,
             weight=0.12, severity=Severity.MEDIUM),
    ]

    amount_weights = {5000: (0.08, Severity.LOW), 10000: (0.10, Severity.MEDIUM),
                      15000: (0.10, Severity.MEDIUM), 20000: (0.12, Severity.MEDIUM)}
    for target, variance in c.SUSPICIOUS_AMOUNT_VARIANCE.items():
        weight, severity = amount_weights[target]
        rules.append(dict(
            name=f"suspicious_amount_{target // 1000}k", kind=RuleKind.AMOUNT_PROXIMITY,
            description=f"Claim amount suspiciously close to £{target:,} threshold",
            target=target, threshold=variance, comparison=Comparison.LTE,
            weight=weight, severity=severity, tag="suspicious_amount",
        ))

    for key, weight in ((KeyKind.ADDRESS, 0.18), (KeyKind.BANK, 0.20), (KeyKind.DEVICE, 0.18)):
        rules.append(dict(
            name=f"velocity_{c.VELOCITY_WINDOW_DAYS}d_{key.value}", kind=RuleKind.VELOCITY,
            description=f"{c.VELOCITY_MIN_CLAIMS} or more claims sharing {key.value} within "
                        f"{c.VELOCITY_WINDOW_DAYS} days",
            key=key, threshold=c.VELOCITY_MIN_CLAIMS, window_days=c.VELOCITY_WINDOW_DAYS,
            comparison=Comparison.GTE, weight=weight, severity=Severity.HIGH,
        ))

    rules += [
        dict(name="bank_reuse_30d", kind=RuleKind.KEY_REUSE, key=KeyKind.BANK,
             description="Bank account used across more than 5 claims",
             threshold=c.BANK_REUSE_THRESHOLD, window_days=c.BANK_REUSE_WINDOW_DAYS,
             comparison=Comparison.GT, weight=0.16, severity=Severity.HIGH, tag="bank_reuse"),
        dict(name="address_reuse_90d", kind=RuleKind.KEY_REUSE, key=KeyKind.ADDRESS,
             description="Address used across more than 4 claims",
             threshold=c.ADDRESS_REUSE_THRESHOLD, window_days=c.ADDRESS_REUSE_WINDOW_DAYS,
             comparison=Comparison.GT, weight=0.14, severity=Severity.MEDIUM, tag="address_reuse"),
        dict(name="device_reuse_60d", kind=RuleKind.KEY_REUSE, key=KeyKind.DEVICE,
             description="Device used across more than 3 claims",
             threshold=c.DEVICE_REUSE_THRESHOLD, window_days=c.DEVICE_REUSE_WINDOW_DAYS,
             comparison=Comparison.GT, weight=0.12, severity=Severity.MEDIUM, tag="device_reuse"),
        dict(name="prior_claims_12m", kind=RuleKind.PRIOR_CLAIMS,
             description="Claimant has 3+ earlier claims in the last 12 months",
             threshold=c.PRIOR_CLAIMS_12M[0], window_days=c.PRIOR_CLAIMS_12M[1],
             comparison=Comparison.GTE, weight=0.10, severity=Severity.MEDIUM),
        dict(name="prior_claims_6m", kind=RuleKind.PRIOR_CLAIMS,
             description="Claimant has 2+ earlier claims in the last 6 months",
             threshold=c.PRIOR_CLAIMS_6M[0], window_days=c.PRIOR_CLAIMS_6M[1],
             comparison=Comparison.GTE, weight=0.08, severity=Severity.LOW),
    ]
    return rules


def _default_features() -> list:
    return [
        dict(name=name, normalize_range=rng, weight=weight)
        for name, (rng, weight) in c.FEATURE_TABLE.items()
    ]


# =========================================================
# 🕸️ Graph Catalog (only simple_degree enabled)
# =========================================================
def _default_graph_rules() -> list:
    return [
        dict(name="simple_degree", kind=GraphRuleKind.SIMPLE_DEGREE, enabled=True, weight=1.0,
             description="Bank/address degree centrality proxy",
             bank_weight=c.GRAPH_BANK_WEIGHT, address_weight=c.GRAPH_ADDRESS_WEIGHT,
             degree_range=c.GRAPH_DEGREE_RANGE, severity=Severity.HIGH),
        dict(name="high_degree_bank_node", kind=GraphRuleKind.HIGH_DEGREE, key=KeyKind.BANK,
             description="Bank account node connected to 8+ distinct claims",
             threshold=8, weight=0.25, severity=Severity.CRITICAL),
        dict(name="high_degree_address_node", kind=GraphRuleKind.HIGH_DEGREE, key=KeyKind.ADDRESS,
             description="Address node connected to 6+ distinct claimants",
             threshold=6, weight=0.20, severity=Severity.HIGH, distinct_claimants=True),
        dict(name="high_degree_device_node", kind=GraphRuleKind.HIGH_DEGREE, key=KeyKind.DEVICE,
             description="Device node connected to 5+ distinct claims",
             threshold=5, weight=0.18, severity=Severity.HIGH),
        dict(name="triangle_pattern", kind=GraphRuleKind.TRIANGLE,
             description="Claimant closes 3+ triangles of shared address/bank/device links",
             threshold=3, weight=0.22, severity=Severity.CRITICAL),
        dict(name="community_detection", kind=GraphRuleKind.COMMUNITY,
             description="Dense community with elevated average claim amounts",
             threshold=1.5, weight=0.15, severity=Severity.MEDIUM),
        dict(name="betweenness_centrality", kind=GraphRuleKind.CENTRALITY,
             description="Claimant with high betweenness centrality (broker role)",
             threshold=0.1, weight=0.12, severity=Severity.MEDIUM),
        dict(name="clustering_coefficient", kind=GraphRuleKind.CLUSTERING,
             description="Low clustering coefficient indicating artificial connections",
             threshold=0.3, weight=0.10, severity=Severity.LOW),
    ]


def _default_payload() -> Dict[str, Any]:
    return {
        "rules": _default_rules(),
        "features": _default_features(),
        "graph_rules": _default_graph_rules(),
        "risk": {"weights": dict(c.RISK_WEIGHTS)},
        "max_reasons": c.MAX_REASONS,
        "rule_score_cap": c.RULE_SCORE_CAP,
        "reuse_windowed": False,
    }


# =========================================================
# 🏗️ Builders
# =========================================================
def build_scoring_config(overrides: Optional[Dict[str, Any]] = None) -> ScoringConfig:
    """Validate the default catalog with top-level `overrides` applied."""
    payload = _default_payload()
    payload.update(overrides or {})
    try:
        scoring_config = ScoringConfig.model_validate(payload)
    except ValidationError as e:
        logger.error(f"[CATALOG] ❌ Invalid scoring configuration: {e}")
        raise CatalogError(f"Invalid scoring configuration: {e}") from e

    logger.debug(
        f"[CATALOG] Loaded {len(scoring_config.rules)} rules, {len(scoring_config.features)} features, "
        f"{len(scoring_config.enabled_graph_rules)} enabled graph rules."
    )
    return scoring_config


def default_scoring_config() -> ScoringConfig:
    return build_scoring_config()


def load_scoring_config(path: Optional[str] = None) -> ScoringConfig:
    """Load overrides from a JSON file; falls back to the default catalog when no path is given."""
    if not path:
        return default_scoring_config()

    try:
        with open(path, "r", encoding="utf-8") as f:
            overrides = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"[CATALOG] ❌ Could not read scoring config '{path}': {e}")
        raise CatalogError(f"Could not read scoring config '{path}': {e}") from e

    if not isinstance(overrides, dict):
        raise CatalogError(f"Scoring config '{path}' must contain a JSON object")

    logger.info(f"[CATALOG] Applying overrides from '{path}': {sorted(overrides)}")
    return build_scoring_config(overrides)
