from claim_risk.fraud_engine.rules.amount import check_suspicious_amount
from claim_risk.fraud_engine.rules.prior_claims import check_prior_claims, prior_claims_count
from claim_risk.fraud_engine.rules.reuse import check_key_reuse, reuse_count
from claim_risk.fraud_engine.rules.temporal import (
    check_after_expiry,
    check_before_inception,
    check_inception_window,
    check_report_delay,
)
from claim_risk.fraud_engine.rules.velocity import check_velocity, velocity_count

__all__ = [
    "check_after_expiry",
    "check_before_inception",
    "check_inception_window",
    "check_key_reuse",
    "check_prior_claims",
    "check_report_delay",
    "check_suspicious_amount",
    "check_velocity",
    "prior_claims_count",
    "reuse_count",
    "velocity_count",
]
