"""
Pseudo-ML Anomaly Score
-----------------------
- Extracts a fixed 7-feature vector per claim from the claim, its policy and
  the relationship index
- Min-max normalizes each feature into [0, 1] with a fixed per-feature range
  (out-of-range values clamp, they never raise)
- Returns the weighted sum, clamped to [0, 1]

This is a fixed-weight formula, not a trained model.

Feature vector (7):
amount, days_to_report, days_since_inception, prior_claims_12m,
bank_reuse_count, address_degree, velocity_14d.
"""

import numpy as np

from claim_risk.fraud_engine.constants import PRIOR_CLAIMS_12M, VELOCITY_WINDOW_DAYS
from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.fraud_engine.relationship_index import RelationshipIndex
from claim_risk.fraud_engine.rules import prior_claims_count, velocity_count
from claim_risk.models.catalog import FEATURE_NAMES, KeyKind, ScoringConfig
from claim_risk.models.score import FeatureVector
from claim_risk.utils.logger import logger


# =========================================================
# 🔢 Normalisation helpers
# =========================================================
def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def scale(x: float, lo: float, hi: float) -> float:
    """Min-max scale into [0, 1]; 0 for a degenerate range."""
    if hi == lo:
        return 0.0
    return clamp((x - lo) / (hi - lo), 0.0, 1.0)


# =========================================================
# 🧠 Feature Extraction
# =========================================================
def extract_features(ctx: ClaimContext, index: RelationshipIndex) -> FeatureVector:
    """Raw feature values for one claim. Negative day counts are floored at 0."""
    claim = ctx.claim
    bank_key = index.key_for(KeyKind.BANK, claim)
    address_key = index.key_for(KeyKind.ADDRESS, claim)

    return FeatureVector(
        amount=claim.amount,
        days_to_report=max(0, ctx.days_to_report),
        days_since_inception=max(0, ctx.days_since_inception),
        prior_claims_12m=prior_claims_count(ctx, index, PRIOR_CLAIMS_12M[1]),
        bank_reuse_count=index.count(KeyKind.BANK, bank_key),
        address_degree=index.count(KeyKind.ADDRESS, address_key),
        velocity_14d=velocity_count(ctx, index, KeyKind.ADDRESS, VELOCITY_WINDOW_DAYS),
    )


# =========================================================
# ⚙️ Scoring
# =========================================================
def normalize_features(features: FeatureVector, scoring_config: ScoringConfig) -> np.ndarray:
    """Each feature scaled into [0, 1] by its configured range, in FEATURE_NAMES order."""
    raw = features.as_dict()
    values = np.array([raw[name] for name in FEATURE_NAMES], dtype=float)
    ranges = np.array([scoring_config.feature(name).normalize_range for name in FEATURE_NAMES], dtype=float)
    lo, hi = ranges[:, 0], ranges[:, 1]
    return np.clip((values - lo) / (hi - lo), 0.0, 1.0)


def feature_weights(scoring_config: ScoringConfig) -> np.ndarray:
    return np.array([scoring_config.feature(name).weight for name in FEATURE_NAMES], dtype=float)


def score_features(features: FeatureVector, scoring_config: ScoringConfig) -> float:
    """Weighted anomaly score in [0, 1]."""
    normalized = normalize_features(features, scoring_config)
    weights = feature_weights(scoring_config)
    return clamp(float(np.dot(weights, normalized)), 0.0, 1.0)


def compute_ml_score(ctx: ClaimContext, index: RelationshipIndex, scoring_config: ScoringConfig) -> float:
    features = extract_features(ctx, index)
    score = score_features(features, scoring_config)
    logger.debug(f"[ML] {ctx.claim.claim_id}: features={features.as_dict()} → ml_score={score:.4f}")
    return score
