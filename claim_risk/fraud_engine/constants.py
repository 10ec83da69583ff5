"""
Fraud Engine Constants
----------------------
Reference numbers shared by the default scoring catalog and the synthetic
entity generator.
"""

# ⏱️ Temporal rule thresholds (days)
LATE_REPORT_THRESHOLD_DAYS = 30
INCEPTION_SPIKE_DAYS = 3

# 💰 Suspicious amount targets -> allowed variance (GBP)
SUSPICIOUS_AMOUNT_VARIANCE = {
    5000: 50,
    10000: 100,
    15000: 150,
    20000: 200,
}

# Just-below amounts the generator aims at when injecting suspicious claims
SUSPICIOUS_GENERATOR_TARGETS = [4999, 9999, 14999, 19999]

# 🚀 Velocity
VELOCITY_WINDOW_DAYS = 14
VELOCITY_MIN_CLAIMS = 3

# ♻️ Shared-resource reuse: claim count that must be exceeded, nominal window
BANK_REUSE_THRESHOLD, BANK_REUSE_WINDOW_DAYS = 5, 30
ADDRESS_REUSE_THRESHOLD, ADDRESS_REUSE_WINDOW_DAYS = 4, 90
DEVICE_REUSE_THRESHOLD, DEVICE_REUSE_WINDOW_DAYS = 3, 60

# 📅 Prior claims (count, lookback days)
PRIOR_CLAIMS_12M = (3, 365)
PRIOR_CLAIMS_6M = (2, 182)

# 🧮 Rule score normalisation / reasons
MAX_REASONS = 6
RULE_SCORE_CAP = 6

# 🔢 Feature normalisation: name -> ((min, max), weight)
FEATURE_TABLE = {
    "amount": ((0, 25000), 0.15),
    "days_to_report": ((0, 90), 0.20),
    "days_since_inception": ((0, 730), 0.10),
    "prior_claims_12m": ((0, 8), 0.15),
    "bank_reuse_count": ((0, 10), 0.20),
    "address_degree": ((0, 10), 0.10),
    "velocity_14d": ((0, 8), 0.10),
}

# 🕸️ Simple degree graph formula
GRAPH_BANK_WEIGHT = 0.6
GRAPH_ADDRESS_WEIGHT = 0.4
GRAPH_DEGREE_RANGE = (0, 12)

# ⚖️ Aggregation weights
RISK_WEIGHTS = {"rule_score": 0.45, "ml_score": 0.35, "graph_score": 0.20}
