"""
Scoring Catalog Models
----------------------
Immutable configuration for one scoring process: the rule catalog, the
feature normalization table, the graph rule catalog and the aggregation
weights / risk bands.

Built once at startup and passed explicitly into every scorer, so tests can
swap in alternate weight tables without touching component internals.
Validation failures are turned into `CatalogError` by the loaders in
`claim_risk.fraud_engine.catalog`.
"""

from typing import Dict, Optional, Tuple
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from claim_risk.models.score import MAX_REASONS


# =========================================================
# 🧩 ENUMS
# =========================================================
class KeyKind(str, Enum):
    """Claim grouping keys held by the relationship index."""
    ADDRESS = "address"
    BANK = "bank"
    DEVICE = "device"
    CLAIMANT = "claimant"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Comparison(str, Enum):
    GT = "gt"
    GTE = "gte"
    LTE = "lte"

    def passes(self, value: float, threshold: float) -> bool:
        if self is Comparison.GT:
            return value > threshold
        if self is Comparison.GTE:
            return value >= threshold
        return value <= threshold


class RuleKind(str, Enum):
    REPORT_DELAY = "report_delay"
    BEFORE_INCEPTION = "before_inception"
    AFTER_EXPIRY = "after_expiry"
    INCEPTION_WINDOW = "inception_window"
    AMOUNT_PROXIMITY = "amount_proximity"
    VELOCITY = "velocity"
    KEY_REUSE = "key_reuse"
    PRIOR_CLAIMS = "prior_claims"


class GraphRuleKind(str, Enum):
    SIMPLE_DEGREE = "simple_degree"
    HIGH_DEGREE = "high_degree"
    TRIANGLE = "triangle"
    COMMUNITY = "community"
    CENTRALITY = "centrality"
    CLUSTERING = "clustering"


FEATURE_NAMES = (
    "amount",
    "days_to_report",
    "days_since_inception",
    "prior_claims_12m",
    "bank_reuse_count",
    "address_degree",
    "velocity_14d",
)


# =========================================================
# 🚨 RULE SPEC
# =========================================================
class RuleSpec(BaseModel):
    """One catalog entry. `weight` is carried for reporting; rule_score ignores it."""
    name: str
    description: str = ""
    kind: RuleKind
    threshold: float = Field(..., ge=0)
    weight: float = Field(0.0, ge=0.0, le=1.0)
    severity: Severity = Severity.MEDIUM
    comparison: Comparison = Comparison.GTE
    window_days: Optional[int] = Field(None, ge=0)
    key: Optional[KeyKind] = None
    target: Optional[float] = Field(None, gt=0)
    tag: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def label(self) -> str:
        return self.tag or self.name

    @model_validator(mode="after")
    def _check_kind_params(self) -> "RuleSpec":
        if self.kind in (RuleKind.VELOCITY, RuleKind.KEY_REUSE) and self.key is None:
            raise ValueError(f"rule '{self.name}': {self.kind.value} rules need a key")
        if self.kind in (RuleKind.VELOCITY, RuleKind.PRIOR_CLAIMS) and self.window_days is None:
            raise ValueError(f"rule '{self.name}': {self.kind.value} rules need window_days")
        if self.kind == RuleKind.AMOUNT_PROXIMITY and self.target is None:
            raise ValueError(f"rule '{self.name}': amount_proximity rules need a target amount")
        return self


# =========================================================
# 📊 FEATURE SPEC
# =========================================================
class FeatureSpec(BaseModel):
    name: str
    normalize_range: Tuple[float, float]
    weight: float = Field(..., ge=0.0, le=1.0)
    description: str = ""

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("name")
    @classmethod
    def _known_feature(cls, v: str) -> str:
        if v not in FEATURE_NAMES:
            raise ValueError(f"unknown feature '{v}' (expected one of {FEATURE_NAMES})")
        return v

    @field_validator("normalize_range")
    @classmethod
    def _ordered_range(cls, v: Tuple[float, float]) -> Tuple[float, float]:
        if v[1] <= v[0]:
            raise ValueError(f"normalize_range {v} must have max > min")
        return v


# =========================================================
# 🕸️ GRAPH RULE SPEC
# =========================================================
class GraphRuleSpec(BaseModel):
    name: str
    description: str = ""
    kind: GraphRuleKind
    threshold: float = Field(0.0, ge=0)
    weight: float = Field(..., gt=0.0, le=1.0)
    severity: Severity = Severity.MEDIUM
    enabled: bool = False
    key: Optional[KeyKind] = None
    distinct_claimants: bool = False
    # simple_degree parameters
    bank_weight: float = Field(0.6, ge=0.0, le=1.0)
    address_weight: float = Field(0.4, ge=0.0, le=1.0)
    degree_range: Tuple[float, float] = (0.0, 12.0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_kind_params(self) -> "GraphRuleSpec":
        if self.kind == GraphRuleKind.HIGH_DEGREE and self.key not in (KeyKind.ADDRESS, KeyKind.BANK, KeyKind.DEVICE):
            raise ValueError(f"graph rule '{self.name}': high_degree needs an address/bank/device key")
        if self.degree_range[1] <= self.degree_range[0]:
            raise ValueError(f"graph rule '{self.name}': degree_range must have max > min")
        return self


# =========================================================
# ⚖️ AGGREGATION / RISK BANDS
# =========================================================
class RiskScoringConfig(BaseModel):
    weights: Dict[str, float] = Field(
        default_factory=lambda: {"rule_score": 0.45, "ml_score": 0.35, "graph_score": 0.20}
    )
    thresholds: Dict[str, float] = Field(
        default_factory=lambda: {"low": 0.3, "medium": 0.5, "high": 0.7, "critical": 0.85}
    )
    actions: Dict[str, str] = Field(
        default_factory=lambda: {
            "low": "monitor",
            "medium": "review",
            "high": "investigate",
            "critical": "escalate_siu",
        }
    )

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_tables(self) -> "RiskScoringConfig":
        if set(self.weights) != {"rule_score", "ml_score", "graph_score"}:
            raise ValueError("weights must define exactly rule_score, ml_score and graph_score")
        if any(w < 0 for w in self.weights.values()) or abs(sum(self.weights.values()) - 1.0) > 1e-9:
            raise ValueError(f"signal weights must be non-negative and sum to 1.0, got {self.weights}")
        levels = ["low", "medium", "high", "critical"]
        if set(self.thresholds) != set(levels) or set(self.actions) != set(levels):
            raise ValueError(f"thresholds and actions must define exactly {levels}")
        cuts = [self.thresholds[level] for level in levels]
        if cuts != sorted(cuts) or not all(0.0 <= c <= 1.0 for c in cuts):
            raise ValueError(f"risk thresholds must be ascending within [0, 1], got {self.thresholds}")
        return self


# =========================================================
# 🧠 SCORING CONFIG
# =========================================================
class ScoringConfig(BaseModel):
    rules: Tuple[RuleSpec, ...]
    features: Tuple[FeatureSpec, ...]
    graph_rules: Tuple[GraphRuleSpec, ...]
    risk: RiskScoringConfig = Field(default_factory=RiskScoringConfig)
    max_reasons: int = Field(MAX_REASONS, ge=1, le=MAX_REASONS)
    rule_score_cap: int = Field(6, ge=1)
    reuse_windowed: bool = False

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_catalog(self) -> "ScoringConfig":
        names = [r.name for r in self.rules]
        if len(names) != len(set(names)):
            raise ValueError("rule names must be unique")

        feature_names = [f.name for f in self.features]
        if sorted(feature_names) != sorted(FEATURE_NAMES):
            raise ValueError(f"features must be exactly {FEATURE_NAMES}, got {feature_names}")
        total = sum(f.weight for f in self.features)
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"feature weights must sum to 1.0, got {total:.4f}")

        enabled = [g for g in self.graph_rules if g.enabled]
        if not enabled:
            raise ValueError("at least one graph rule must be enabled")
        return self

    @property
    def enabled_graph_rules(self) -> Tuple[GraphRuleSpec, ...]:
        return tuple(g for g in self.graph_rules if g.enabled)

    def feature(self, name: str) -> FeatureSpec:
        for spec in self.features:
            if spec.name == name:
                return spec
        raise KeyError(name)


__all__ = [
    "KeyKind",
    "Severity",
    "Comparison",
    "RuleKind",
    "GraphRuleKind",
    "FEATURE_NAMES",
    "RuleSpec",
    "FeatureSpec",
    "GraphRuleSpec",
    "RiskScoringConfig",
    "ScoringConfig",
]
