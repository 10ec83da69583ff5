"""
Entity Generator
----------------
Produces a synthetic, relationally consistent claim dataset with injected
fraud patterns:

- Product split (AUTO 45% / HOME 35% / TRAVEL 20%) and fraud rate per product
- Late reporting, inactive-policy losses, inception spikes
- Just-below-threshold amounts (4999 / 9999 / 14999 / 19999 plus noise)
- Fraud rings: shared bank accounts, addresses and devices
- Velocity bursts: 3–6 claims sharing a ring address/bank/device within 14 days

Everything is driven by one seed (Faker + random.Random), so the same
settings always produce the same dataset.
"""

import random
import string
from collections import Counter
from datetime import date, timedelta
from typing import Dict, List, Optional, Set

from faker import Faker
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy.orm import Session

from claim_risk.config import config
from claim_risk.fraud_engine.constants import SUSPICIOUS_GENERATOR_TARGETS, VELOCITY_WINDOW_DAYS
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
from claim_risk.utils.db import save_dataset
from claim_risk.utils.logger import log_with_context, logger
from claim_risk.utils.security import anonymize_pii, hash_email

ID_ALPHABET = string.ascii_uppercase + string.digits
ID_LENGTH = 8

LOSS_TYPES_BY_PRODUCT: Dict[Product, List[LossType]] = {
    Product.AUTO: [LossType.ACCIDENT, LossType.THEFT, LossType.VANDALISM, LossType.WEATHER],
    Product.HOME: [LossType.FIRE, LossType.WATER, LossType.THEFT, LossType.WEATHER],
    Product.TRAVEL: [LossType.CANCELLATION, LossType.BAGGAGE, LossType.THEFT, LossType.ACCIDENT],
}

AMOUNT_RANGES: Dict[Product, tuple] = {
    Product.AUTO: (300, 12000),
    Product.HOME: (500, 25000),
    Product.TRAVEL: (100, 6000),
}

# fixed so a seed alone pins the dataset; override via GENERATOR_REFERENCE_DATE
DEFAULT_REFERENCE_DATE = date(2025, 1, 1)

# loss-type specific ranges override the product range
LOSS_TYPE_AMOUNT_RANGES: Dict[LossType, tuple] = {
    LossType.CANCELLATION: (200, 3000),
    LossType.BAGGAGE: (200, 2500),
}


# =========================================================
# ⚙️ Settings
# =========================================================
class GeneratorSettings(BaseModel):
    seed: int = 42
    num_claims: int = Field(5000, ge=0)
    num_policies: int = Field(4000, ge=len(Product))
    num_addresses: int = Field(2200, ge=1)
    num_claimants: int = Field(3200, ge=1)
    ring_count: int = Field(30, ge=1)
    velocity_clusters: int = Field(25, ge=0)
    cluster_size: tuple = (3, 6)
    reference_date: date = Field(DEFAULT_REFERENCE_DATE, description="Anchor for policy, claim and burst dates")
    product_split: Dict[Product, float] = Field(
        default_factory=lambda: {Product.AUTO: 0.45, Product.HOME: 0.35, Product.TRAVEL: 0.20}
    )
    fraud_rate: Dict[Product, float] = Field(
        default_factory=lambda: {Product.AUTO: 0.08, Product.HOME: 0.07, Product.TRAVEL: 0.06}
    )
    ring_bank_rate: float = Field(0.10, ge=0.0, le=1.0)
    ring_device_rate: float = Field(0.10, ge=0.0, le=1.0)
    ring_address_rate: float = Field(0.09, ge=0.0, le=1.0)
    noise_amount_rate: float = Field(0.03, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check(self) -> "GeneratorSettings":
        if set(self.product_split) != set(Product) or abs(sum(self.product_split.values()) - 1.0) > 1e-9:
            raise ValueError("product_split must cover AUTO/HOME/TRAVEL and sum to 1.0")
        if set(self.fraud_rate) != set(Product):
            raise ValueError("fraud_rate must cover AUTO/HOME/TRAVEL")
        if self.ring_count > self.num_addresses:
            raise ValueError("ring_count cannot exceed num_addresses")
        lo, hi = self.cluster_size
        if not 1 <= lo <= hi:
            raise ValueError(f"invalid cluster_size {self.cluster_size}")
        return self

    @classmethod
    def from_config(cls, **overrides) -> "GeneratorSettings":
        values = {
            "seed": config.GENERATOR_SEED,
            "num_claims": config.NUM_CLAIMS,
            "reference_date": config.GENERATOR_REFERENCE_DATE,
        }
        values.update(overrides)
        return cls(**values)


# =========================================================
# 🏭 Generator
# =========================================================
class EntityGenerator:
    """Builds one Dataset per `generate()` call from a fresh seeded state."""

    def __init__(self, settings: Optional[GeneratorSettings] = None):
        self.settings = settings or GeneratorSettings.from_config()

    def _reset(self) -> None:
        self.rng = random.Random(self.settings.seed)
        self.fake = Faker("en_GB")
        self.fake.seed_instance(self.settings.seed)
        self._used_ids: Set[str] = set()

    # -----------------------------------------------------
    # Helpers
    # -----------------------------------------------------
    def _new_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}-{''.join(self.rng.choices(ID_ALPHABET, k=ID_LENGTH))}"
            if candidate not in self._used_ids:
                self._used_ids.add(candidate)
                return candidate

    def _bank_hash(self) -> str:
        return anonymize_pii(self.fake.iban())

    def _pick_product(self) -> Product:
        r = self.rng.random()
        cumulative = 0.0
        for product in Product:
            cumulative += self.settings.product_split[product]
            if r < cumulative:
                return product
        return Product.TRAVEL

    def _normal_amount(self, product: Product, loss_type: LossType) -> float:
        lo, hi = LOSS_TYPE_AMOUNT_RANGES.get(loss_type, AMOUNT_RANGES[product])
        return float(self.rng.randint(lo, hi))

    def _suspicious_amount(self) -> float:
        target = self.rng.choice(SUSPICIOUS_GENERATOR_TARGETS)
        noise = self.rng.randint(-10, 19)
        return float(max(50, target + noise))

    # -----------------------------------------------------
    # Base entities
    # -----------------------------------------------------
    def _addresses(self) -> List[Address]:
        return [
            Address(
                address_id=self._new_id("ADR"),
                line1=self.fake.street_address().replace("\n", ", "),
                city=self.fake.city(),
                postcode=self.fake.postcode(),
                lat=float(self.fake.latitude()),
                lon=float(self.fake.longitude()),
            )
            for _ in range(self.settings.num_addresses)
        ]

    def _policies(self) -> List[Policy]:
        ref = self.settings.reference_date
        products = list(Product)
        policies = []
        for i in range(self.settings.num_policies):
            # every product needs at least one policy to attach claims to
            product = products[i] if i < len(products) else self._pick_product()
            inception = ref - timedelta(days=self.rng.randint(1, 730))
            policies.append(
                Policy(
                    policy_id=self._new_id("POL"),
                    inception_date=inception,
                    expiry_date=inception + timedelta(days=self.rng.randint(180, 720)),
                    product=product,
                    region=self.rng.choice(list(Region)),
                )
            )
        return policies

    def _claimants(self, addresses: List[Address], ring_banks, ring_devices, ring_addresses) -> List[Claimant]:
        s = self.settings
        claimants = []
        for _ in range(s.num_claimants):
            address_id = self.rng.choice(addresses).address_id
            bank = self.rng.choice(ring_banks) if self.rng.random() < s.ring_bank_rate else self._bank_hash()
            device = self.rng.choice(ring_devices) if self.rng.random() < s.ring_device_rate else self._new_id("DEV")
            if self.rng.random() < s.ring_address_rate:
                address_id = self.rng.choice(ring_addresses)
            claimants.append(
                Claimant(
                    claimant_id=self._new_id("CLT"),
                    name=self.fake.name(),
                    email_hash=hash_email(self.fake.email()),
                    phone_hash=anonymize_pii(self.fake.phone_number()),
                    address_id=address_id,
                    bank_account_hash=bank,
                    device_id=device,
                )
            )
        return claimants

    # -----------------------------------------------------
    # Claims
    # -----------------------------------------------------
    def _make_claim(self, product: Product, policy: Policy, claimant: Claimant, is_fraud: bool) -> Claim:
        rng = self.rng
        loss_type = rng.choice(LOSS_TYPES_BY_PRODUCT[product])
        inception = policy.inception_date

        span = (policy.expiry_date - inception).days
        loss = inception + timedelta(days=rng.randint(0, span))
        report = loss + timedelta(days=rng.randint(0, 7))

        flags: Set[str] = set()
        if is_fraud:
            if rng.random() < 0.35:
                flags.add("late")
            if rng.random() < 0.25:
                flags.add("inactive")
            if rng.random() < 0.25:
                flags.add("inception_spike")
            if rng.random() < 0.35:
                flags.add("suspicious_amount")
            if rng.random() < 0.35:
                flags.add("reuse")
        elif rng.random() < self.settings.noise_amount_rate:
            flags.add("suspicious_amount")

        if "inactive" in flags:
            loss = inception - timedelta(days=rng.randint(1, 120))
            report = loss + timedelta(days=rng.randint(1, 7))
        elif "inception_spike" in flags:
            loss = inception + timedelta(days=rng.randint(0, 3))
            report = loss + timedelta(days=rng.randint(0, 2))

        if "late" in flags:
            report = loss + timedelta(days=rng.randint(31, 90))

        amount = self._normal_amount(product, loss_type)
        if "suspicious_amount" in flags:
            amount = self._suspicious_amount()

        return Claim(
            claim_id=self._new_id("CLM"),
            policy_id=policy.policy_id,
            claimant_id=claimant.claimant_id,
            loss_date=loss,
            report_date=report,
            loss_type=loss_type,
            amount=round(amount, 2),
            status=rng.choice(list(ClaimStatus)),
        )

    def _claim_targets(self) -> Dict[Product, int]:
        n = self.settings.num_claims
        auto = round(n * self.settings.product_split[Product.AUTO])
        home = round(n * self.settings.product_split[Product.HOME])
        return {Product.AUTO: auto, Product.HOME: home, Product.TRAVEL: max(0, n - auto - home)}

    def _velocity_bursts(
        self,
        claimants: List[Claimant],
        policies_by_product: Dict[Product, List[Policy]],
        ring_banks,
        ring_devices,
        ring_addresses,
    ) -> List[Claim]:
        """Claimants are mutated onto shared ring keys before any index is built."""
        rng = self.rng
        ref = self.settings.reference_date
        latest_base = ref - timedelta(days=VELOCITY_WINDOW_DAYS)
        claims = []

        for _ in range(self.settings.velocity_clusters):
            address_id = rng.choice(ring_addresses)
            device_id = rng.choice(ring_devices)
            bank = rng.choice(ring_banks)
            product = rng.choice(list(Product))

            window_start = ref - timedelta(days=rng.randint(20, 120))
            base_loss = window_start + timedelta(days=rng.randint(0, (latest_base - window_start).days))

            for _ in range(rng.randint(*self.settings.cluster_size)):
                claimant = rng.choice(claimants)
                claimant.address_id = address_id
                claimant.device_id = device_id
                claimant.bank_account_hash = bank

                loss = base_loss + timedelta(days=rng.randint(0, VELOCITY_WINDOW_DAYS - 1))
                loss_type = rng.choice(LOSS_TYPES_BY_PRODUCT[product])
                claims.append(
                    Claim(
                        claim_id=self._new_id("CLM"),
                        policy_id=rng.choice(policies_by_product[product]).policy_id,
                        claimant_id=claimant.claimant_id,
                        loss_date=loss,
                        report_date=loss + timedelta(days=rng.randint(0, 5)),
                        loss_type=loss_type,
                        amount=self._suspicious_amount(),
                        status=ClaimStatus.NEW,
                    )
                )
        return claims

    # -----------------------------------------------------
    # Entry point
    # -----------------------------------------------------
    def generate(self) -> Dataset:
        self._reset()
        s = self.settings
        rng = self.rng

        addresses = self._addresses()
        policies = self._policies()

        ring_banks = [self._bank_hash() for _ in range(s.ring_count)]
        ring_addresses = [a.address_id for a in rng.sample(addresses, s.ring_count)]
        ring_devices = [self._new_id("DEV") for _ in range(s.ring_count)]

        claimants = self._claimants(addresses, ring_banks, ring_devices, ring_addresses)

        policies_by_product: Dict[Product, List[Policy]] = {p: [] for p in Product}
        for policy in policies:
            policies_by_product[policy.product].append(policy)

        claims: List[Claim] = []
        for product, total in self._claim_targets().items():
            fraud_n = round(total * s.fraud_rate[product])
            for i in range(total):
                is_fraud = i >= total - fraud_n
                claims.append(
                    self._make_claim(
                        product,
                        rng.choice(policies_by_product[product]),
                        rng.choice(claimants),
                        is_fraud,
                    )
                )

        claims.extend(self._velocity_bursts(claimants, policies_by_product, ring_banks, ring_devices, ring_addresses))

        dataset = Dataset(addresses=addresses, policies=policies, claimants=claimants, claims=claims)
        logger.info(f"[GENERATOR] 🏭 Generated dataset (seed={s.seed}): {dataset.summary()}")
        return dataset


# =========================================================
# 📊 Distribution Summary
# =========================================================
def claims_by_product(dataset: Dataset) -> Dict[str, int]:
    product_of = {p.policy_id: p.product for p in dataset.policies}
    counts = Counter(product_of[c.policy_id] for c in dataset.claims)
    return {product.value: counts.get(product, 0) for product in Product}


# =========================================================
# 🌱 Seed Run
# =========================================================
@log_with_context("info")
def run_seed(
    db: Session,
    settings: Optional[GeneratorSettings] = None,
    batch_size: Optional[int] = None,
    run_id: Optional[str] = None,
) -> Dict[str, int]:
    """Generate a dataset and persist it parent-first in batches."""
    dataset = EntityGenerator(settings).generate()
    written = save_dataset(db, dataset, batch_size)
    logger.info(f"[SEED] ✅ Seed complete: {written}", extra={"run_id": run_id})
    logger.info(f"[SEED] Claims by product: {claims_by_product(dataset)}", extra={"run_id": run_id})
    return written
