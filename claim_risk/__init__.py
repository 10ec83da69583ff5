"""Claim Risk Engine: rule, feature and graph risk scoring for insurance claims."""

__version__ = "0.1.0"
