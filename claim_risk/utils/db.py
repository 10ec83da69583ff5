"""
Database Utility
----------------
Manages the Postgres (or SQLite fallback) connection, table creation,
batched writes and dataset loading for the scoring engine.

Tables (storage contract shared with the dashboard and SQL agent):
- addresses, policies, claim_parties, claims, scores
"""

import json
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Numeric,
    String,
    Text,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from claim_risk.config import config
from claim_risk.errors import PersistenceError, PreconditionError
from claim_risk.models.entities import Address, Claim, Claimant, Dataset, Policy
from claim_risk.models.score import ScoreRecord
from claim_risk.utils.logger import logger

# =========================================================
# 🧱 Tables
# =========================================================
Base = declarative_base()


class AddressRow(Base):
    __tablename__ = "addresses"

    address_id = Column(String(32), primary_key=True)
    line1 = Column(String(255), nullable=False)
    city = Column(String(128), nullable=False)
    postcode = Column(String(32), nullable=False)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)


class PolicyRow(Base):
    __tablename__ = "policies"

    policy_id = Column(String(32), primary_key=True)
    inception_date = Column(Date, nullable=False)
    expiry_date = Column(Date, nullable=False)
    product = Column(String(16), nullable=False)
    region = Column(String(8), nullable=False)


class ClaimPartyRow(Base):
    __tablename__ = "claim_parties"

    claimant_id = Column(String(32), primary_key=True)
    name = Column(String(255), nullable=False)
    email_hash = Column(String(64), nullable=False)
    phone_hash = Column(String(64), nullable=False)
    address_id = Column(String(32), ForeignKey("addresses.address_id"), nullable=False, index=True)
    bank_account_hash = Column(String(64), nullable=False, index=True)
    device_id = Column(String(32), nullable=False, index=True)


class ClaimRow(Base):
    __tablename__ = "claims"

    claim_id = Column(String(32), primary_key=True)
    policy_id = Column(String(32), ForeignKey("policies.policy_id"), nullable=False, index=True)
    claimant_id = Column(String(32), ForeignKey("claim_parties.claimant_id"), nullable=False, index=True)
    loss_date = Column(Date, nullable=False)
    report_date = Column(Date, nullable=False)
    loss_type = Column(String(32), nullable=False)
    amount = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    status = Column(String(16), nullable=False)


class ScoreRow(Base):
    __tablename__ = "scores"

    claim_id = Column(String(32), ForeignKey("claims.claim_id"), primary_key=True)
    rule_score = Column(Float, nullable=False)
    ml_score = Column(Float, nullable=False)
    graph_score = Column(Float, nullable=False)
    risk_score = Column(Float, nullable=False)
    reasons_json = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)


# =========================================================
# ⚙️ Engine / Session Setup
# =========================================================
def create_db_engine(url: Optional[str] = None, echo: bool = False) -> Engine:
    """Create an engine; SQLite URLs get thread-safe settings, in-memory ones a shared pool."""
    url = url or config.DB_URL
    if url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)
    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        connect_args={"connect_timeout": 10},
    )


engine = create_db_engine(config.DB_URL, echo=config.DEBUG)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(bind: Optional[Engine] = None) -> Iterator[Session]:
    """Session bound to `bind` (default engine), always closed on exit."""
    session = Session(bind=bind) if bind is not None else SessionLocal()
    try:
        yield session
    finally:
        session.close()


def init_db(bind: Optional[Engine] = None, drop_existing: bool = False) -> None:
    """Create all five tables (optionally dropping them first)."""
    target = bind if bind is not None else engine
    try:
        if drop_existing:
            Base.metadata.drop_all(target)
        Base.metadata.create_all(target)
        logger.info("✅ Database tables created.")
    except SQLAlchemyError as e:
        logger.error(f"❌ DB init error: {e}")
        raise


# =========================================================
# 🔁 Row Converters
# =========================================================
def _address_row(a: Address) -> Dict[str, Any]:
    return a.model_dump()


def _policy_row(p: Policy) -> Dict[str, Any]:
    return {
        "policy_id": p.policy_id,
        "inception_date": p.inception_date,
        "expiry_date": p.expiry_date,
        "product": p.product.value,
        "region": p.region.value,
    }


def _party_row(c: Claimant) -> Dict[str, Any]:
    return c.model_dump()


def _claim_row(c: Claim) -> Dict[str, Any]:
    return {
        "claim_id": c.claim_id,
        "policy_id": c.policy_id,
        "claimant_id": c.claimant_id,
        "loss_date": c.loss_date,
        "report_date": c.report_date,
        "loss_type": c.loss_type.value,
        "amount": round(c.amount, 2),
        "status": c.status.value,
    }


def _score_row(s: ScoreRecord) -> Dict[str, Any]:
    return {
        "claim_id": s.claim_id,
        "rule_score": s.rule_score,
        "ml_score": s.ml_score,
        "graph_score": s.graph_score,
        "risk_score": s.risk_score,
        "reasons_json": s.reasons_json,
        "created_at": s.created_at,
    }


# =========================================================
# 💾 Batched Writes
# =========================================================
def _chunks(rows: Sequence[Dict[str, Any]], batch_size: int) -> Iterator[Sequence[Dict[str, Any]]]:
    for start in range(0, len(rows), batch_size):
        yield rows[start:start + batch_size]


def write_batches(
    db: Session,
    model,
    rows: Sequence[Dict[str, Any]],
    key_field: str,
    batch_size: Optional[int] = None,
    before_insert: Optional[Callable[[Session, List[str]], None]] = None,
) -> int:
    """
    Insert rows in committed batches. A failing batch is rolled back and
    aborts the whole write with PersistenceError; nothing is skipped.

    Returns:
        int: number of rows written.
    """
    table = model.__tablename__
    batch_size = batch_size if batch_size is not None else config.BATCH_SIZE
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    written = 0
    for batch_index, chunk in enumerate(_chunks(rows, batch_size)):
        keys = [row[key_field] for row in chunk]
        try:
            if before_insert is not None:
                before_insert(db, keys)
            db.execute(insert(model), list(chunk))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"[DB] ❌ Batch {batch_index} into '{table}' failed (first {key_field}={keys[0]}): {e}",
                extra={"entity_id": keys[0]},
            )
            raise PersistenceError(
                f"Batch {batch_index} into '{table}' failed: {e}",
                table=table,
                batch_index=batch_index,
                entity_id=keys[0],
            ) from e
        written += len(chunk)
        logger.debug(f"[DB] 💾 {table}: batch {batch_index} committed ({len(chunk)} rows).")

    logger.info(f"[DB] 💾 {table}: {written} rows written in batches of {batch_size}.")
    return written


def save_dataset(db: Session, dataset: Dataset, batch_size: Optional[int] = None) -> Dict[str, int]:
    """Persist entities parent-first so foreign keys always resolve."""
    return {
        "addresses": write_batches(db, AddressRow, [_address_row(a) for a in dataset.addresses], "address_id", batch_size),
        "policies": write_batches(db, PolicyRow, [_policy_row(p) for p in dataset.policies], "policy_id", batch_size),
        "claim_parties": write_batches(
            db, ClaimPartyRow, [_party_row(c) for c in dataset.claimants], "claimant_id", batch_size
        ),
        "claims": write_batches(db, ClaimRow, [_claim_row(c) for c in dataset.claims], "claim_id", batch_size),
    }


def _delete_existing_scores(db: Session, claim_ids: List[str]) -> None:
    db.execute(delete(ScoreRow).where(ScoreRow.claim_id.in_(claim_ids)))


def save_scores(db: Session, scores: Sequence[ScoreRecord], batch_size: Optional[int] = None) -> int:
    """Replace score rows: each batch deletes prior rows for its claim_ids, then inserts, in one transaction."""
    return write_batches(
        db,
        ScoreRow,
        [_score_row(s) for s in scores],
        "claim_id",
        batch_size,
        before_insert=_delete_existing_scores,
    )


# =========================================================
# 📥 Loading
# =========================================================
def _to_model(model, entity_id: str, **fields):
    """Build an entity from a stored row; a row that breaks the model aborts the run."""
    try:
        return model(**fields)
    except ValidationError as e:
        problem = e.errors()[0].get("msg", str(e))
        logger.error(f"[DB] ❌ Stored {model.__name__} {entity_id} is invalid: {problem}", extra={"entity_id": entity_id})
        raise PreconditionError(f"Stored {model.__name__} '{entity_id}' is invalid: {problem}", entity_id=entity_id) from e


def load_dataset(db: Session) -> Dataset:
    """Read every entity table into a Dataset (rows ordered by primary key)."""
    try:
        addresses = [
            _to_model(
                Address,
                r.address_id,
                address_id=r.address_id,
                line1=r.line1,
                city=r.city,
                postcode=r.postcode,
                lat=r.lat,
                lon=r.lon,
            )
            for r in db.execute(select(AddressRow).order_by(AddressRow.address_id)).scalars()
        ]
        policies = [
            _to_model(
                Policy,
                r.policy_id,
                policy_id=r.policy_id,
                inception_date=r.inception_date,
                expiry_date=r.expiry_date,
                product=r.product,
                region=r.region,
            )
            for r in db.execute(select(PolicyRow).order_by(PolicyRow.policy_id)).scalars()
        ]
        claimants = [
            _to_model(
                Claimant,
                r.claimant_id,
                claimant_id=r.claimant_id,
                name=r.name,
                email_hash=r.email_hash,
                phone_hash=r.phone_hash,
                address_id=r.address_id,
                bank_account_hash=r.bank_account_hash,
                device_id=r.device_id,
            )
            for r in db.execute(select(ClaimPartyRow).order_by(ClaimPartyRow.claimant_id)).scalars()
        ]
        claims = [
            _to_model(
                Claim,
                r.claim_id,
                claim_id=r.claim_id,
                policy_id=r.policy_id,
                claimant_id=r.claimant_id,
                loss_date=r.loss_date,
                report_date=r.report_date,
                loss_type=r.loss_type,
                amount=r.amount,
                status=r.status,
            )
            for r in db.execute(select(ClaimRow).order_by(ClaimRow.claim_id)).scalars()
        ]
    except SQLAlchemyError as e:
        logger.error(f"[DB] ❌ Failed to load dataset: {e}")
        raise

    dataset = Dataset(addresses=addresses, policies=policies, claimants=claimants, claims=claims)
    logger.info(f"[DB] 📥 Loaded dataset: {dataset.summary()}")
    return dataset


def load_scores(db: Session) -> List[ScoreRecord]:
    rows = db.execute(select(ScoreRow).order_by(ScoreRow.claim_id)).scalars()
    return [
        ScoreRecord(
            claim_id=r.claim_id,
            rule_score=r.rule_score,
            ml_score=r.ml_score,
            graph_score=r.graph_score,
            risk_score=r.risk_score,
            reasons=json.loads(r.reasons_json),
            created_at=r.created_at,
        )
        for r in rows
    ]
