"""
Scoring Service
---------------
Runs one full scoring pass:

1. Load entities and validate references (fatal on dangling ids)
2. Build the relationship index once (barrier; frozen afterwards)
3. Evaluate graph rules once over the whole index
4. Score claims in parallel (rules + features + graph → aggregator)
5. Replace score rows in batches

A pass is a pure function of the claim set: rescoring unchanged data yields
identical score values and reasons.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from functools import partial
from typing import Dict, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from claim_risk.config import config
from claim_risk.errors import PreconditionError
from claim_risk.fraud_engine.alarms import evaluate_rules
from claim_risk.fraud_engine.catalog import default_scoring_config
from claim_risk.fraud_engine.context import ClaimContext
from claim_risk.fraud_engine.decision_policy import aggregate, band_distribution
from claim_risk.fraud_engine.graph import GraphScorer
from claim_risk.fraud_engine.ml_inference import compute_ml_score
from claim_risk.fraud_engine.relationship_index import RelationshipIndex, build_relationship_index
from claim_risk.models.catalog import ScoringConfig
from claim_risk.models.entities import Dataset
from claim_risk.models.score import ScoreRecord, ScoringSummary
from claim_risk.utils.db import load_dataset, save_scores
from claim_risk.utils.logger import log_with_context, logger


def utc_now() -> datetime:
    # stored as naive UTC in the scores table
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =========================================================
# 🔍 Reference Validation
# =========================================================
def validate_references(dataset: Dataset) -> None:
    """Raise PreconditionError on the first dangling reference or duplicate claim id."""
    address_ids = {a.address_id for a in dataset.addresses}
    policy_ids = {p.policy_id for p in dataset.policies}
    claimant_ids = {c.claimant_id for c in dataset.claimants}

    for claimant in dataset.claimants:
        if claimant.address_id not in address_ids:
            raise PreconditionError(
                f"Claimant {claimant.claimant_id} references unknown address {claimant.address_id}",
                entity_id=claimant.claimant_id,
            )

    seen = set()
    for claim in dataset.claims:
        if claim.claim_id in seen:
            raise PreconditionError(f"Duplicate claim id {claim.claim_id}", entity_id=claim.claim_id)
        seen.add(claim.claim_id)
        if claim.policy_id not in policy_ids:
            raise PreconditionError(
                f"Claim {claim.claim_id} references unknown policy {claim.policy_id}",
                entity_id=claim.claim_id,
            )
        if claim.claimant_id not in claimant_ids:
            raise PreconditionError(
                f"Claim {claim.claim_id} references unknown claimant {claim.claimant_id}",
                entity_id=claim.claim_id,
            )


def build_contexts(dataset: Dataset, index: RelationshipIndex) -> List[ClaimContext]:
    policies = {p.policy_id: p for p in dataset.policies}
    return [
        ClaimContext(claim=claim, policy=policies[claim.policy_id], claimant=index.claimant(claim.claimant_id))
        for claim in dataset.claims
    ]


# =========================================================
# ⚙️ Per-claim Scoring
# =========================================================
def score_claim(
    ctx: ClaimContext,
    index: RelationshipIndex,
    graph_scores: Dict[str, float],
    scoring_config: ScoringConfig,
    created_at: datetime,
) -> ScoreRecord:
    rule_result = evaluate_rules(ctx, index, scoring_config)
    ml_score = compute_ml_score(ctx, index, scoring_config)
    graph_score = graph_scores.get(ctx.claim.claim_id, 0.0)
    return aggregate(rule_result, ml_score, graph_score, scoring_config, created_at)


def score_dataset(
    dataset: Dataset,
    scoring_config: Optional[ScoringConfig] = None,
    workers: Optional[int] = None,
    created_at: Optional[datetime] = None,
) -> List[ScoreRecord]:
    """
    Score every claim in the dataset.

    Returns:
        List[ScoreRecord]: one record per claim, in input order.
    """
    scoring_config = scoring_config or default_scoring_config()
    workers = workers if workers is not None else config.SCORING_WORKERS
    if workers < 1:
        raise ValueError(f"workers must be positive, got {workers}")
    created_at = created_at or utc_now()

    validate_references(dataset)
    index = build_relationship_index(dataset.claims, dataset.claimants)
    graph_scores = GraphScorer(scoring_config).evaluate(index)
    contexts = build_contexts(dataset, index)

    worker = partial(
        score_claim,
        index=index,
        graph_scores=graph_scores,
        scoring_config=scoring_config,
        created_at=created_at,
    )
    if workers <= 1 or len(contexts) < 2:
        records = [worker(ctx) for ctx in contexts]
    else:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            records = list(pool.map(worker, contexts))

    logger.info(f"[SCORING] ⚙️ Scored {len(records)} claims with {workers} worker(s).")
    return records


def summarize(
    run_id: str,
    records: List[ScoreRecord],
    rows_written: int,
    scoring_config: ScoringConfig,
    started_at: datetime,
    finished_at: datetime,
) -> ScoringSummary:
    mean = sum(r.risk_score for r in records) / len(records) if records else 0.0
    return ScoringSummary(
        run_id=run_id,
        claims_scored=len(records),
        rows_written=rows_written,
        band_counts=band_distribution(records, scoring_config),
        mean_risk_score=round(mean, 4),
        started_at=started_at,
        finished_at=finished_at,
    )


# =========================================================
# 🚀 Full Pass
# =========================================================
@log_with_context("info")
def run_scoring_pass(
    db: Session,
    scoring_config: Optional[ScoringConfig] = None,
    workers: Optional[int] = None,
    batch_size: Optional[int] = None,
    run_id: Optional[str] = None,
) -> ScoringSummary:
    """Load → score → replace scores. Any ClaimRiskError aborts the pass."""
    run_id = run_id or uuid4().hex[:12]
    scoring_config = scoring_config or default_scoring_config()
    started_at = utc_now()

    dataset = load_dataset(db)
    records = score_dataset(dataset, scoring_config, workers=workers, created_at=started_at)
    rows_written = save_scores(db, records, batch_size)

    summary = summarize(run_id, records, rows_written, scoring_config, started_at, utc_now())
    logger.info(
        f"[SCORING] ✅ Run {run_id}: {summary.claims_scored} claims, "
        f"mean risk {summary.mean_risk_score:.3f}, bands {summary.band_counts}",
        extra={"run_id": run_id},
    )
    return summary
