"""
Entity Models
-------------
Pydantic schemas for the persisted claim graph: addresses, policies,
claimants (parties) and claims. Field names match the storage columns.
Compatible with Pydantic v2.
"""

from datetime import date
from typing import List
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, model_validator


# =========================================================
# 🧩 ENUMS
# =========================================================
class Product(str, Enum):
    AUTO = "AUTO"
    HOME = "HOME"
    TRAVEL = "TRAVEL"


class Region(str, Enum):
    UK = "UK"
    FR = "FR"
    ES = "ES"
    IT = "IT"
    US = "US"


class LossType(str, Enum):
    THEFT = "THEFT"
    FIRE = "FIRE"
    WATER = "WATER"
    ACCIDENT = "ACCIDENT"
    CANCELLATION = "CANCELLATION"
    BAGGAGE = "BAGGAGE"
    VANDALISM = "VANDALISM"
    WEATHER = "WEATHER"


class ClaimStatus(str, Enum):
    NEW = "New"
    INVESTIGATING = "Investigating"
    APPROVED = "Approved"
    CLOSED = "Closed"


# =========================================================
# 🏠 ADDRESS
# =========================================================
class Address(BaseModel):
    """Physical address. Immutable once created."""
    address_id: str
    line1: str
    city: str
    postcode: str
    lat: float
    lon: float

    model_config = ConfigDict(frozen=True, extra="ignore")


# =========================================================
# 📄 POLICY
# =========================================================
class Policy(BaseModel):
    policy_id: str
    inception_date: date
    expiry_date: date
    product: Product
    region: Region

    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="after")
    def _check_dates(self) -> "Policy":
        if self.expiry_date <= self.inception_date:
            raise ValueError(
                f"Policy {self.policy_id}: expiry_date {self.expiry_date} must be after "
                f"inception_date {self.inception_date}"
            )
        return self


# =========================================================
# 👤 CLAIMANT (PARTY)
# =========================================================
class Claimant(BaseModel):
    """
    Person submitting claims. address_id, bank_account_hash and device_id are
    shared-resource keys; the generator reassigns them while injecting rings,
    so this model stays mutable until the dataset is handed to scoring.
    """
    claimant_id: str
    name: str
    email_hash: str
    phone_hash: str
    address_id: str
    bank_account_hash: str
    device_id: str

    model_config = ConfigDict(extra="ignore", validate_assignment=True)


# =========================================================
# 🧾 CLAIM
# =========================================================
class Claim(BaseModel):
    """Single reported loss. report_date >= loss_date is deliberately not enforced."""
    claim_id: str
    policy_id: str
    claimant_id: str
    loss_date: date
    report_date: date
    loss_type: LossType
    amount: float = Field(..., description="Claim amount (currency, 2 decimal places)")
    status: ClaimStatus = ClaimStatus.NEW

    model_config = ConfigDict(frozen=True, extra="ignore")


# =========================================================
# 📦 DATASET
# =========================================================
class Dataset(BaseModel):
    """Full entity set for one generation or scoring run."""
    addresses: List[Address] = Field(default_factory=list)
    policies: List[Policy] = Field(default_factory=list)
    claimants: List[Claimant] = Field(default_factory=list)
    claims: List[Claim] = Field(default_factory=list)

    def summary(self) -> dict:
        return {
            "addresses": len(self.addresses),
            "policies": len(self.policies),
            "claimants": len(self.claimants),
            "claims": len(self.claims),
        }


__all__ = [
    "Product",
    "Region",
    "LossType",
    "ClaimStatus",
    "Address",
    "Policy",
    "Claimant",
    "Claim",
    "Dataset",
]
