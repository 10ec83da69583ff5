"""
Configuration management for the Claim Risk Engine.
---------------------------------------------------
- Loads environment variables from `.env` (for local) or runtime environment (AWS/Prod).
- Centralized access for database, logging, generator and scoring-run settings.
- Scoring weights and the rule catalog live in an immutable `ScoringConfig`
  (see `claim_risk.fraud_engine.catalog`); this module only points at it.
"""

import os
import json
from datetime import date
from typing import Optional
from dotenv import load_dotenv

# Load .env only in local/dev mode
if os.getenv("ENV", "local") == "local":
    load_dotenv()


class Config:
    """Central configuration object for all process-level environment variables."""

    # =========================================================
    # 🧩 Helper
    # =========================================================
    @staticmethod
    def _from_env(key: str, default: Optional[str] = None, cast=None):
        """Load environment variable with optional casting."""
        value = os.getenv(key, default)
        if cast and value is not None:
            try:
                return cast(value)
            except ValueError:
                return default
        return value

    # =========================================================
    # 🌐 DATABASE
    # =========================================================
    DB_URL: str = _from_env.__func__("DB_URL", "sqlite:///./claim_risk.db")
    AWS_REGION: str = _from_env.__func__("AWS_REGION", "eu-west-2")
    CLOUDWATCH_LOG_GROUP: str = _from_env.__func__("CLOUDWATCH_LOG_GROUP", "claim-risk-logs")

    # =========================================================
    # ⚙️ RUN SETTINGS
    # =========================================================
    BATCH_SIZE: int = _from_env.__func__("BATCH_SIZE", 500, int)
    SCORING_WORKERS: int = _from_env.__func__("SCORING_WORKERS", 4, int)
    GENERATOR_SEED: int = _from_env.__func__("GENERATOR_SEED", 42, int)
    NUM_CLAIMS: int = _from_env.__func__("NUM_CLAIMS", 5000, int)
    GENERATOR_REFERENCE_DATE: date = _from_env.__func__("GENERATOR_REFERENCE_DATE", "2025-01-01", date.fromisoformat)
    SCORING_CONFIG_PATH: Optional[str] = _from_env.__func__("SCORING_CONFIG_PATH")

    # =========================================================
    # 🚀 APP SETTINGS
    # =========================================================
    DEBUG: bool = _from_env.__func__("DEBUG", "False", lambda v: v.lower() == "true")
    LOG_LEVEL: str = _from_env.__func__("LOG_LEVEL", "INFO").upper()
    LOG_FILE: Optional[str] = _from_env.__func__("LOG_FILE")
    ENV: str = _from_env.__func__("ENV", "local")  # local/dev/prod

    # =========================================================
    # ✅ Computed Properties
    # =========================================================
    @property
    def is_sqlite(self) -> bool:
        return self.DB_URL.startswith("sqlite")

    @property
    def is_aws_runtime(self) -> bool:
        """Detect AWS runtime environment."""
        env_vars = ["AWS_EXECUTION_ENV", "ECS_CONTAINER_METADATA_URI", "LAMBDA_TASK_ROOT"]
        return any(os.getenv(v) for v in env_vars)

    # =========================================================
    # 📋 Config Summary
    # =========================================================
    @staticmethod
    def _redact(value: Optional[str]) -> Optional[str]:
        """Redact credentials embedded in a connection URL."""
        if not value:
            return None
        if "@" not in value:
            return value
        scheme, _, rest = value.partition("://")
        host = rest.split("@", 1)[1]
        return f"{scheme}://***@{host}"

    def summary(self) -> dict:
        return {
            "ENV": self.ENV,
            "DEBUG": self.DEBUG,
            "DB_URL": self._redact(self.DB_URL),
            "AWS_REGION": self.AWS_REGION,
            "BATCH_SIZE": self.BATCH_SIZE,
            "SCORING_WORKERS": self.SCORING_WORKERS,
            "GENERATOR_SEED": self.GENERATOR_SEED,
            "NUM_CLAIMS": self.NUM_CLAIMS,
            "GENERATOR_REFERENCE_DATE": str(self.GENERATOR_REFERENCE_DATE),
            "SCORING_CONFIG_PATH": self.SCORING_CONFIG_PATH,
            "AWS_RUNTIME": self.is_aws_runtime,
        }

    def print_summary(self) -> None:
        """Pretty-print configuration summary (safe for logs)."""
        print("\n🔧 Active Configuration:")
        print(json.dumps(self.summary(), indent=4))


# =========================================================
# Instantiate Global Config
# =========================================================
config = Config()

if __name__ == "__main__":
    config.print_summary()
