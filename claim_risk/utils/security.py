"""
Security Utility
----------------
Handles:
- PII anonymization (emails, phones, bank accounts are never stored in clear)
- Masking for log output
"""

import hashlib

from claim_risk.utils.logger import logger


# =========================================================
# 🔒 PII Anonymization
# =========================================================
def anonymize_pii(data: str, method: str = "sha256") -> str:
    """
    Anonymize personally identifiable information.
    Supports:
    - "sha256" → irreversible 64-char hex digest (stored hashes)
    - "mask" → human-readable masking (e.g., emails) for logs
    """
    if not data:
        return ""

    if method == "sha256":
        return hashlib.sha256(data.encode("utf-8")).hexdigest()

    elif method == "mask":
        if "@" in data:
            local, domain = data.split("@", 1)
            domain_name, *rest = domain.split(".")
            return f"{local[0]}***@{domain_name[0]}***.{'.'.join(rest)}"
        return data[0] + "*" * (len(data) - 1)

    logger.warning(f"Unknown anonymization method: {method}")
    return data


def hash_email(email: str) -> str:
    """Emails are case-insensitive, so hash the lowercased form."""
    return anonymize_pii(email.strip().lower())
