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
from claim_risk.models.score import FeatureVector, RiskBand, RuleResult, ScoreRecord, ScoringSummary

__all__ = [
    "Address",
    "Claim",
    "Claimant",
    "ClaimStatus",
    "Dataset",
    "LossType",
    "Policy",
    "Product",
    "Region",
    "FeatureVector",
    "RiskBand",
    "RuleResult",
    "ScoreRecord",
    "ScoringSummary",
]
