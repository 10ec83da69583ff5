"""
Pytest Configuration File
-------------------------
Defines global test fixtures for the Claim Risk Engine.

Features:
- Config isolation (batch size, workers) per test
- EntityFactory for small hand-built datasets
- In-memory SQLite engine/session with all tables created
"""

from datetime import date, datetime
from typing import Dict, Optional

import pytest
from sqlalchemy.orm import Session

from claim_risk.config import config
from claim_risk.fraud_engine.catalog import default_scoring_config
from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.fraud_engine.relationship_index import RelationshipIndex, build_relationship_index
from claim_risk.models.entities import (
    Address,
    Claim,
    Claimant,
    ClaimStatus,
    Dataset,
    LossType,
    Policy,
    Product,
    Region,
)
from claim_risk.utils.db import create_db_engine, init_db

INCEPTION = date(2024, 1, 1)
EXPIRY = date(2024, 12, 31)
CREATED_AT = datetime(2024, 6, 1, 12, 0, 0)


# =========================================================
# 🏗️ Entity Factory
# =========================================================
class EntityFactory:
    """Builds datasets claim by claim; parents are created on demand."""

    def __init__(self):
        self.addresses: Dict[str, Address] = {}
        self.policies: Dict[str, Policy] = {}
        self.claimants: Dict[str, Claimant] = {}
        self.claims: Dict[str, Claim] = {}

    def address(self, address_id: str = "ADR-1") -> Address:
        if address_id not in self.addresses:
            self.addresses[address_id] = Address(
                address_id=address_id, line1="1 High Street", city="London", postcode="N1 1AA", lat=51.5, lon=-0.1
            )
        return self.addresses[address_id]

    def policy(
        self,
        policy_id: str = "POL-1",
        inception: date = INCEPTION,
        expiry: date = EXPIRY,
        product: Product = Product.AUTO,
    ) -> Policy:
        if policy_id not in self.policies:
            self.policies[policy_id] = Policy(
                policy_id=policy_id, inception_date=inception, expiry_date=expiry, product=product, region=Region.UK
            )
        return self.policies[policy_id]

    def claimant(
        self,
        claimant_id: str = "CLT-1",
        address_id: str = "ADR-1",
        bank: Optional[str] = None,
        device: Optional[str] = None,
    ) -> Claimant:
        if claimant_id not in self.claimants:
            self.address(address_id)
            self.claimants[claimant_id] = Claimant(
                claimant_id=claimant_id,
                name=f"Party {claimant_id}",
                email_hash="e" * 64,
                phone_hash="p" * 64,
                address_id=address_id,
                bank_account_hash=bank or f"BANK-{claimant_id}",
                device_id=device or f"DEV-{claimant_id}",
            )
        return self.claimants[claimant_id]

    def claim(
        self,
        claim_id: Optional[str] = None,
        policy_id: str = "POL-1",
        claimant_id: str = "CLT-1",
        loss: date = date(2024, 3, 1),
        report: Optional[date] = None,
        amount: float = 1000.0,
        loss_type: LossType = LossType.ACCIDENT,
    ) -> Claim:
        self.policy(policy_id)
        self.claimant(claimant_id)
        claim_id = claim_id or f"CLM-{len(self.claims) + 1:04d}"
        claim = Claim(
            claim_id=claim_id,
            policy_id=policy_id,
            claimant_id=claimant_id,
            loss_date=loss,
            report_date=report or loss,
            loss_type=loss_type,
            amount=amount,
            status=ClaimStatus.NEW,
        )
        self.claims[claim_id] = claim
        return claim

    def dataset(self) -> Dataset:
        return Dataset(
            addresses=list(self.addresses.values()),
            policies=list(self.policies.values()),
            claimants=list(self.claimants.values()),
            claims=list(self.claims.values()),
        )

    def index(self) -> RelationshipIndex:
        return build_relationship_index(self.claims.values(), self.claimants.values())

    def context(self, claim_id: str, index: Optional[RelationshipIndex] = None) -> ClaimContext:
        claim = self.claims[claim_id]
        claimant = index.claimant(claim.claimant_id) if index else self.claimants[claim.claimant_id]
        return ClaimContext(claim=claim, policy=self.policies[claim.policy_id], claimant=claimant)


# =========================================================
# 🧩 Test Config Fixture
# =========================================================
@pytest.fixture(autouse=True)
def mock_test_config(monkeypatch):
    """Deterministic run settings for every test."""
    monkeypatch.setattr(config, "BATCH_SIZE", 500)
    monkeypatch.setattr(config, "SCORING_WORKERS", 2)
    monkeypatch.setattr(config, "DEBUG", False)
    yield config


@pytest.fixture
def factory() -> EntityFactory:
    return EntityFactory()


@pytest.fixture(scope="session")
def scoring_config():
    return default_scoring_config()


# =========================================================
# 🗄️ Database Fixtures
# =========================================================
@pytest.fixture
def db_engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = Session(bind=db_engine)
    yield session
    session.close()
