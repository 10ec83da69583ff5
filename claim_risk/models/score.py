"""
Score Models
------------
Defines data structures produced by the scoring engine: rule results, the
feature vector, persisted score records and risk bands.

✅ Compatible with Pydantic v2
"""

import json
from datetime import datetime
from typing import List, Dict
from pydantic import BaseModel, Field, ConfigDict

# hard cap on persisted reasons; catalogs may lower it, never raise it
MAX_REASONS = 6


# =========================================================
# 🚨 RULE RESULT
# =========================================================
class RuleResult(BaseModel):
    """Rule tags for one claim, in catalog order, plus the flat count ratio."""
    claim_id: str
    tags: List[str] = Field(default_factory=list, description="All triggered tags (uncapped)")
    rule_score: float = Field(0.0, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)

    @property
    def tag_count(self) -> int:
        return len(self.tags)


# =========================================================
# 📊 FEATURE VECTOR
# =========================================================
class FeatureVector(BaseModel):
    """Raw (un-normalized) features for the pseudo-ML anomaly score."""
    amount: float = Field(0.0, description="Claim amount")
    days_to_report: int = Field(0, description="Days between loss and report (floored at 0)")
    days_since_inception: int = Field(0, description="Days between inception and loss (floored at 0)")
    prior_claims_12m: int = Field(0, description="Claimant's earlier claims within 365 days")
    bank_reuse_count: int = Field(0, description="Claims sharing the claimant's bank account")
    address_degree: int = Field(0, description="Claims sharing the claimant's address")
    velocity_14d: int = Field(0, description="Address claims within +/-14 days of the loss date")

    model_config = ConfigDict(frozen=True)

    def as_dict(self) -> Dict[str, float]:
        return {name: float(getattr(self, name)) for name in type(self).model_fields}


# =========================================================
# 🧾 SCORE RECORD
# =========================================================
class ScoreRecord(BaseModel):
    """One row of the `scores` table."""
    claim_id: str
    rule_score: float = Field(..., ge=0.0, le=1.0)
    ml_score: float = Field(..., ge=0.0, le=1.0)
    graph_score: float = Field(..., ge=0.0, le=1.0)
    risk_score: float = Field(..., ge=0.0, le=1.0)
    reasons: List[str] = Field(default_factory=list, max_length=MAX_REASONS)
    created_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def reasons_json(self) -> str:
        return json.dumps(self.reasons, ensure_ascii=False)

    def values(self) -> tuple:
        """Comparable payload without the timestamp."""
        return (
            self.claim_id,
            self.rule_score,
            self.ml_score,
            self.graph_score,
            self.risk_score,
            tuple(self.reasons),
        )


# =========================================================
# 🎯 RISK BAND
# =========================================================
class RiskBand(BaseModel):
    level: str
    action: str

    model_config = ConfigDict(frozen=True)


# =========================================================
# 📦 RUN SUMMARY
# =========================================================
class ScoringSummary(BaseModel):
    run_id: str
    claims_scored: int = 0
    rows_written: int = 0
    band_counts: Dict[str, int] = Field(default_factory=dict)
    mean_risk_score: float = 0.0
    started_at: datetime
    finished_at: datetime


__all__ = [
    "RuleResult",
    "FeatureVector",
    "ScoreRecord",
    "RiskBand",
    "ScoringSummary",
]
