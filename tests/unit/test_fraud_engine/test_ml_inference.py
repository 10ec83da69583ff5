"""
Unit Tests: Pseudo-ML Anomaly Score
-----------------------------------
Covers claim_risk/fraud_engine/ml_inference.py.
Validates:
- Feature extraction from claim, policy and relationship index
- Min-max scaling with clamping (never raises on out-of-range input)
- Weighted score stays inside [0, 1]

Run:
    pytest tests/unit/test_fraud_engine/test_ml_inference.py -v
"""

from datetime import date, timedelta

import numpy as np
import pytest

from claim_risk.fraud_engine.ml_inference import (
    clamp,
    compute_ml_score,
    extract_features,
    normalize_features,
    scale,
    score_features,
)
from claim_risk.models.score import FeatureVector


class TestScaling:
    def test_scale_inside_range(self):
        assert scale(5, 0, 10) == 0.5

    def test_scale_clamps(self):
        assert scale(-3, 0, 10) == 0.0
        assert scale(25, 0, 10) == 1.0

    def test_degenerate_range_is_zero(self):
        assert scale(5, 3, 3) == 0.0

    def test_clamp(self):
        assert clamp(1.7, 0.0, 1.0) == 1.0
        assert clamp(-0.2, 0.0, 1.0) == 0.0


class TestFeatureExtraction:
    def test_features_from_single_claim(self, factory):
        factory.claim("CLM-1", loss=date(2024, 3, 1), report=date(2024, 4, 15), amount=12500.0)
        index = factory.index()
        features = extract_features(factory.context("CLM-1", index), index)

        assert features.amount == 12500.0
        assert features.days_to_report == 45
        assert features.days_since_inception == 60
        assert features.prior_claims_12m == 0
        assert features.bank_reuse_count == 1
        assert features.address_degree == 1
        assert features.velocity_14d == 1

    def test_negative_day_counts_floor_at_zero(self, factory):
        # reported before the loss and lost before inception: both deltas negative
        factory.claim("CLM-1", loss=date(2023, 12, 20), report=date(2023, 12, 10))
        index = factory.index()
        features = extract_features(factory.context("CLM-1", index), index)
        assert features.days_to_report == 0
        assert features.days_since_inception == 0

    def test_shared_resources_counted(self, factory):
        base = date(2024, 5, 1)
        for i in range(4):
            factory.claim(f"CLM-{i}", loss=base + timedelta(days=i * 5))
        index = factory.index()
        features = extract_features(factory.context("CLM-3", index), index)

        assert features.bank_reuse_count == 4
        assert features.address_degree == 4
        assert features.prior_claims_12m == 3
        # day 15 sees days 5, 10 and itself within ±14
        assert features.velocity_14d == 3


class TestScore:
    def test_known_vector(self, factory, scoring_config):
        factory.claim("CLM-1", loss=date(2024, 3, 1), report=date(2024, 4, 15), amount=12500.0)
        index = factory.index()
        score = compute_ml_score(factory.context("CLM-1", index), index, scoring_config)

        expected = 0.15 * 0.5 + 0.20 * 0.5 + 0.10 * (60 / 730) + 0.20 * 0.1 + 0.10 * 0.1 + 0.10 * (1 / 8)
        assert score == pytest.approx(expected)

    def test_normalized_vector_order_and_bounds(self, scoring_config):
        features = FeatureVector(
            amount=50000, days_to_report=200, days_since_inception=365,
            prior_claims_12m=4, bank_reuse_count=20, address_degree=5, velocity_14d=2,
        )
        normalized = normalize_features(features, scoring_config)
        np.testing.assert_allclose(normalized, [1.0, 1.0, 0.5, 0.5, 1.0, 0.5, 0.25])

    def test_extreme_inputs_stay_in_unit_interval(self, scoring_config):
        maxed = FeatureVector(
            amount=1e9, days_to_report=10_000, days_since_inception=10_000,
            prior_claims_12m=100, bank_reuse_count=100, address_degree=100, velocity_14d=100,
        )
        assert score_features(maxed, scoring_config) == pytest.approx(1.0)
        assert score_features(FeatureVector(), scoring_config) == 0.0
