"""
Unit Tests: Security Utility
----------------------------
Covers claim_risk/utils/security.py (PII hashing and masking).
"""

import hashlib

from claim_risk.utils.security import anonymize_pii, hash_email


class TestAnonymizePII:
    def test_sha256_full_digest(self):
        value = "GB82WEST12345698765432"
        assert anonymize_pii(value) == hashlib.sha256(value.encode("utf-8")).hexdigest()
        assert len(anonymize_pii(value)) == 64

    def test_empty_input(self):
        assert anonymize_pii("") == ""

    def test_mask_email(self):
        assert anonymize_pii("jane.doe@example.co.uk", method="mask") == "j***@e***.co.uk"

    def test_mask_plain_value(self):
        assert anonymize_pii("07700", method="mask") == "0****"

    def test_unknown_method_logs_warning(self, caplog):
        with caplog.at_level("WARNING", logger="claim_risk"):
            assert anonymize_pii("abc", method="rot13") == "abc"
        assert any("Unknown anonymization method" in r.message for r in caplog.records)

    def test_email_hash_is_case_insensitive(self):
        assert hash_email("Jane.Doe@Example.com ") == hash_email("jane.doe@example.com")
