"""
Unit Tests: Entity Generator
----------------------------
Covers claim_risk/services/generator.py.
Validates:
- Same seed → identical dataset, different seed → different dataset
- Referential integrity and unique, prefixed ids
- Injected fraud patterns are present (inactive, late, suspicious amounts,
  velocity bursts)
- Settings validation and the fixed default reference date

Run:
    pytest tests/unit/test_services/test_generator.py -v
"""

import re
from datetime import date

import pytest
from pydantic import ValidationError

from claim_risk.models.entities import Product
from claim_risk.config import config
from claim_risk.services.generator import DEFAULT_REFERENCE_DATE, EntityGenerator, GeneratorSettings, claims_by_product
from claim_risk.services.scoring_service import score_dataset, validate_references

REFERENCE_DATE = date(2024, 6, 1)


def _settings(**overrides) -> GeneratorSettings:
    values = dict(
        seed=7,
        num_claims=1000,
        num_policies=300,
        num_addresses=150,
        num_claimants=250,
        ring_count=5,
        velocity_clusters=3,
        reference_date=REFERENCE_DATE,
    )
    values.update(overrides)
    return GeneratorSettings(**values)


@pytest.fixture(scope="module")
def dataset():
    return EntityGenerator(_settings()).generate()


class TestDeterminism:
    def test_same_seed_same_dataset(self, dataset):
        again = EntityGenerator(_settings()).generate()
        assert again.model_dump() == dataset.model_dump()

    def test_generator_resets_between_calls(self):
        generator = EntityGenerator(_settings(num_claims=50, velocity_clusters=1))
        assert generator.generate().model_dump() == generator.generate().model_dump()

    def test_different_seed_differs(self, dataset):
        other = EntityGenerator(_settings(seed=8)).generate()
        assert [c.claim_id for c in other.claims] != [c.claim_id for c in dataset.claims]


class TestIntegrity:
    def test_references_resolve(self, dataset):
        validate_references(dataset)

    def test_entity_counts(self, dataset):
        assert len(dataset.addresses) == 150
        assert len(dataset.policies) == 300
        assert len(dataset.claimants) == 250
        # base claims plus 3 bursts of 3–6 claims
        assert 1000 + 3 * 3 <= len(dataset.claims) <= 1000 + 3 * 6

    def test_ids_unique_and_prefixed(self, dataset):
        groups = {
            "ADR": [a.address_id for a in dataset.addresses],
            "POL": [p.policy_id for p in dataset.policies],
            "CLT": [c.claimant_id for c in dataset.claimants],
            "CLM": [c.claim_id for c in dataset.claims],
        }
        for prefix, ids in groups.items():
            assert len(ids) == len(set(ids))
            assert all(re.fullmatch(rf"{prefix}-[A-Z0-9]{{8}}", i) for i in ids)

    def test_hashes_are_sha256_hex(self, dataset):
        for claimant in dataset.claimants:
            for value in (claimant.email_hash, claimant.phone_hash, claimant.bank_account_hash):
                assert re.fullmatch(r"[0-9a-f]{64}", value)

    def test_amounts_two_decimals(self, dataset):
        assert all(round(c.amount, 2) == c.amount and c.amount > 0 for c in dataset.claims)

    def test_policy_windows_valid(self, dataset):
        assert all(p.expiry_date > p.inception_date for p in dataset.policies)


class TestFraudPatterns:
    def test_product_split(self, dataset):
        counts = claims_by_product(dataset)
        # base split is 450 / 350 / 200; bursts only add to it
        assert counts[Product.AUTO.value] >= 450
        assert counts[Product.HOME.value] >= 350
        assert counts[Product.TRAVEL.value] >= 200

    def test_inactive_and_late_claims_injected(self, dataset):
        policies = {p.policy_id: p for p in dataset.policies}
        inactive = [c for c in dataset.claims if c.loss_date < policies[c.policy_id].inception_date]
        late = [c for c in dataset.claims if (c.report_date - c.loss_date).days > 30]
        assert inactive
        assert late

    def test_suspicious_amounts_injected(self, dataset):
        near = [c for c in dataset.claims if any(abs(c.amount - t) <= 20 for t in (4999, 9999, 14999, 19999))]
        assert near

    def test_velocity_burst_fires(self):
        burst_only = EntityGenerator(_settings(num_claims=0, velocity_clusters=1)).generate()
        records = score_dataset(burst_only, workers=1)
        assert len(records) >= 3
        assert all(any(r.startswith("velocity_14d_address=") for r in rec.reasons) for rec in records)


class TestSettings:
    def test_product_split_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            _settings(product_split={Product.AUTO: 0.5, Product.HOME: 0.5, Product.TRAVEL: 0.5})

    def test_ring_count_bounded_by_addresses(self):
        with pytest.raises(ValidationError):
            _settings(num_addresses=3, ring_count=5)


class TestReferenceDate:
    SMALL = dict(seed=1, num_claims=40, num_policies=20, num_addresses=10, num_claimants=15, ring_count=2, velocity_clusters=1)

    def test_default_is_fixed(self):
        assert GeneratorSettings().reference_date == DEFAULT_REFERENCE_DATE

    def test_unpinned_runs_match(self):
        first = EntityGenerator(GeneratorSettings(**self.SMALL)).generate()
        second = EntityGenerator(GeneratorSettings(**self.SMALL)).generate()
        assert first.model_dump() == second.model_dump()

    def test_anchor_shifts_dates(self):
        day_one = EntityGenerator(GeneratorSettings(**self.SMALL, reference_date=date(2026, 1, 1))).generate()
        day_two = EntityGenerator(GeneratorSettings(**self.SMALL, reference_date=date(2026, 1, 2))).generate()
        assert [c.loss_date for c in day_one.claims] != [c.loss_date for c in day_two.claims]

    def test_from_config_uses_configured_date(self, monkeypatch):
        monkeypatch.setattr(config, "GENERATOR_REFERENCE_DATE", date(2023, 7, 1))
        assert GeneratorSettings.from_config().reference_date == date(2023, 7, 1)
        assert GeneratorSettings.from_config(reference_date=date(2024, 2, 2)).reference_date == date(2024, 2, 2)
