"""
Unit Tests: Scoring Service (in-memory)
---------------------------------------
Covers claim_risk/services/scoring_service.py without a database.
Validates:
- Reference validation names the offending entity
- One record per claim, in input order
- Parallel and sequential scoring agree
- Score rows satisfy the range / cap / weighted-sum invariants
"""

from datetime import date, timedelta

import pytest

from claim_risk.errors import PreconditionError
from claim_risk.fraud_engine.decision_policy import round2
from claim_risk.models.entities import Dataset
from claim_risk.services.scoring_service import score_dataset, validate_references


def _busy_dataset(factory) -> Dataset:
    base = date(2024, 4, 1)
    for i in range(12):
        claimant_id = f"CLT-{i % 4}"
        factory.claimant(claimant_id, address_id=f"ADR-{i % 2}", bank="BANK-R" if i % 3 == 0 else None)
        factory.claim(
            f"CLM-{i:02d}",
            claimant_id=claimant_id,
            loss=base + timedelta(days=3 * i),
            report=base + timedelta(days=3 * i + (40 if i % 5 == 0 else 2)),
            amount=9990.0 if i % 4 == 0 else 1500.0 + 100 * i,
        )
    return factory.dataset()


class TestValidateReferences:
    def test_unknown_policy(self, factory):
        factory.claim("CLM-1")
        dataset = factory.dataset()
        bad = dataset.claims[0].model_copy(update={"policy_id": "POL-MISSING"})
        with pytest.raises(PreconditionError) as exc:
            validate_references(dataset.model_copy(update={"claims": [bad]}))
        assert exc.value.entity_id == "CLM-1"

    def test_unknown_claimant(self, factory):
        factory.claim("CLM-1")
        dataset = factory.dataset()
        bad = dataset.claims[0].model_copy(update={"claimant_id": "CLT-GHOST"})
        with pytest.raises(PreconditionError) as exc:
            score_dataset(dataset.model_copy(update={"claims": [bad]}))
        assert exc.value.entity_id == "CLM-1"

    def test_unknown_address(self, factory):
        factory.claim("CLM-1")
        dataset = factory.dataset()
        with pytest.raises(PreconditionError) as exc:
            validate_references(dataset.model_copy(update={"addresses": []}))
        assert exc.value.entity_id == "CLT-1"

    def test_duplicate_claim_id(self, factory):
        claim = factory.claim("CLM-1")
        dataset = factory.dataset()
        with pytest.raises(PreconditionError):
            validate_references(dataset.model_copy(update={"claims": [claim, claim]}))


class TestScoreDataset:
    def test_one_record_per_claim_in_order(self, factory, scoring_config):
        dataset = _busy_dataset(factory)
        records = score_dataset(dataset, scoring_config, workers=4)
        assert [r.claim_id for r in records] == [c.claim_id for c in dataset.claims]

    def test_parallel_matches_sequential(self, factory, scoring_config):
        dataset = _busy_dataset(factory)
        sequential = score_dataset(dataset, scoring_config, workers=1)
        parallel = score_dataset(dataset, scoring_config, workers=4)
        assert [r.values() for r in sequential] == [r.values() for r in parallel]

    def test_invariants(self, factory, scoring_config):
        for record in score_dataset(_busy_dataset(factory), scoring_config):
            for value in (record.rule_score, record.ml_score, record.graph_score, record.risk_score):
                assert 0.0 <= value <= 1.0
                assert round(value, 2) == value
            assert len(record.reasons) <= 6
            expected = round2(0.45 * record.rule_score + 0.35 * record.ml_score + 0.20 * record.graph_score)
            assert record.risk_score == pytest.approx(expected, abs=1e-9)

    def test_zero_workers_rejected(self, factory, scoring_config):
        with pytest.raises(ValueError):
            score_dataset(_busy_dataset(factory), scoring_config, workers=0)

    def test_workers_default_from_config(self, factory, scoring_config, caplog):
        with caplog.at_level("INFO", logger="claim_risk"):
            score_dataset(_busy_dataset(factory), scoring_config)
        assert any("with 2 worker(s)" in r.message for r in caplog.records)

    def test_empty_dataset(self, scoring_config):
        assert score_dataset(Dataset(), scoring_config) == []
