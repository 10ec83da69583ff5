"""
Main Entry Point
----------------
Command-line runner for the Claim Risk Engine.

Commands:
 - init-db  → create (or recreate) the five storage tables
 - seed     → generate a synthetic dataset and persist it
 - score    → run one full scoring pass and replace the scores table
 - bands    → print the risk band distribution of the stored scores

Any ClaimRiskError aborts the command: it is logged (with the offending
entity id where known) and the process exits with status 1.
"""

import argparse
import json
import sys
from datetime import date
from typing import List, Optional
from uuid import uuid4

from claim_risk.config import config
from claim_risk.errors import ClaimRiskError
from claim_risk.fraud_engine.catalog import load_scoring_config
from claim_risk.fraud_engine.decision_policy import band_distribution
from claim_risk.services.generator import GeneratorSettings, run_seed
from claim_risk.services.scoring_service import run_scoring_pass
from claim_risk.utils.db import create_db_engine, init_db, load_scores, session_scope
from claim_risk.utils.logger import logger


# =========================================================
# 🧭 Argument Parsing
# =========================================================
def int_at_least(minimum: int):
    """argparse type: integer with a lower bound (batch sizes, workers, claim counts)."""
    def parse(value: str) -> int:
        try:
            number = int(value)
        except ValueError:
            raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
        if number < minimum:
            raise argparse.ArgumentTypeError(f"must be at least {minimum}, got {number}")
        return number
    return parse


def iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="claim-risk", description="Insurance claim risk scoring engine.")
    parser.add_argument("--db-url", default=None, help="Override DB_URL for this command.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init-db", help="Create the storage tables.")
    p_init.add_argument("--drop", action="store_true", help="Drop existing tables first.")

    p_seed = sub.add_parser("seed", help="Generate and persist a synthetic dataset.")
    p_seed.add_argument("--seed", type=int, default=config.GENERATOR_SEED)
    p_seed.add_argument("--claims", type=int_at_least(0), default=config.NUM_CLAIMS)
    p_seed.add_argument("--batch-size", type=int_at_least(1), default=config.BATCH_SIZE)
    p_seed.add_argument(
        "--reference-date",
        type=iso_date,
        default=config.GENERATOR_REFERENCE_DATE,
        help="Anchor date for generated policy and claim dates (YYYY-MM-DD).",
    )

    p_score = sub.add_parser("score", help="Run a full scoring pass.")
    p_score.add_argument("--config", dest="config_path", default=config.SCORING_CONFIG_PATH)
    p_score.add_argument("--workers", type=int_at_least(1), default=config.SCORING_WORKERS)
    p_score.add_argument("--batch-size", type=int_at_least(1), default=config.BATCH_SIZE)

    p_bands = sub.add_parser("bands", help="Show the risk band distribution of stored scores.")
    p_bands.add_argument("--config", dest="config_path", default=config.SCORING_CONFIG_PATH)

    return parser


# =========================================================
# 🚀 Commands
# =========================================================
def _run(args: argparse.Namespace) -> None:
    engine = create_db_engine(args.db_url) if args.db_url else None
    run_id = uuid4().hex[:12]

    if args.command == "init-db":
        init_db(engine, drop_existing=args.drop)
        return

    if args.command == "seed":
        settings = GeneratorSettings.from_config(
            seed=args.seed, num_claims=args.claims, reference_date=args.reference_date
        )
        with session_scope(engine) as db:
            written = run_seed(db, settings=settings, batch_size=args.batch_size, run_id=run_id)
        print(json.dumps(written, indent=2))
        return

    if args.command == "score":
        scoring_config = load_scoring_config(args.config_path)
        with session_scope(engine) as db:
            summary = run_scoring_pass(
                db,
                scoring_config=scoring_config,
                workers=args.workers,
                batch_size=args.batch_size,
                run_id=run_id,
            )
        print(summary.model_dump_json(indent=2))
        return

    if args.command == "bands":
        scoring_config = load_scoring_config(args.config_path)
        with session_scope(engine) as db:
            scores = load_scores(db)
        print(json.dumps(band_distribution(scores, scoring_config), indent=2))


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        _run(args)
    except ClaimRiskError as e:
        entity_id = getattr(e, "entity_id", None)
        logger.error(
            f"❌ {args.command} aborted ({type(e).__name__}): {e}"
            + (f" [entity_id={entity_id}]" if entity_id else ""),
            extra={"entity_id": entity_id},
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
