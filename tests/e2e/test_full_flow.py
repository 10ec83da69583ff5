"""
End-to-End Tests: Full Flow
---------------------------
Exercises the complete path: entities → database → scoring pass → stored
scores, plus the command-line runner (init-db → seed → score → bands).

Run:
    pytest tests/e2e/test_full_flow.py -v
"""

import json
from datetime import date, timedelta

import pytest
from sqlalchemy import select, text

from claim_risk.fraud_engine.decision_policy import classify_risk, round2
from claim_risk.main import main
from claim_risk.services.scoring_service import run_scoring_pass
from claim_risk.utils.db import ScoreRow, create_db_engine, load_scores, save_dataset, session_scope

INCEPTION = date(2024, 1, 1)


class TestInactivePolicyScenario:
    """Single claim just under £10k, lost five days before the policy started."""

    def test_stored_score(self, factory, db_session, scoring_config):
        loss = INCEPTION - timedelta(days=5)
        factory.claim("CLM-E2E", loss=loss, report=loss, amount=9949.0)
        save_dataset(db_session, factory.dataset())

        run_scoring_pass(db_session, scoring_config=scoring_config, run_id="e2e")
        (score,) = load_scores(db_session)

        assert score.reasons == ["policy_inactive", "suspicious_amount≈10000"]
        assert score.rule_score == 0.33
        assert score.ml_score == 0.1
        assert score.graph_score == 0.08
        assert score.risk_score == round2(0.45 * 0.33 + 0.35 * 0.1 + 0.20 * 0.08)
        assert classify_risk(score.risk_score, scoring_config).level == "low"

        raw = db_session.execute(select(ScoreRow.reasons_json)).scalar_one()
        assert json.loads(raw) == ["policy_inactive", "suspicious_amount≈10000"]


class TestCommandLine:
    def test_init_seed_score_bands(self, tmp_path, capsys):
        db_url = f"sqlite:///{tmp_path / 'claims.db'}"

        main(["--db-url", db_url, "init-db"])
        main([
            "--db-url", db_url, "seed",
            "--seed", "3", "--claims", "150", "--batch-size", "200", "--reference-date", "2025-01-01",
        ])
        seeded = json.loads(capsys.readouterr().out)
        assert seeded["claims"] >= 150 + 25 * 3
        assert seeded["claim_parties"] == 3200

        main(["--db-url", db_url, "score", "--workers", "2"])
        summary = json.loads(capsys.readouterr().out)
        assert summary["claims_scored"] == seeded["claims"]
        assert summary["rows_written"] == seeded["claims"]

        main(["--db-url", db_url, "bands"])
        bands = json.loads(capsys.readouterr().out)
        assert list(bands) == ["low", "medium", "high", "critical"]
        assert sum(bands.values()) == seeded["claims"]

    def test_bad_scoring_config_exits_with_status_1(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'claims.db'}"
        main(["--db-url", db_url, "init-db"])

        with pytest.raises(SystemExit) as exc:
            main(["--db-url", db_url, "score", "--config", str(tmp_path / "missing.json")])
        assert exc.value.code == 1

    def test_dangling_reference_exits_with_status_1(self, tmp_path, factory, caplog):
        db_url = f"sqlite:///{tmp_path / 'claims.db'}"
        main(["--db-url", db_url, "init-db"])

        factory.claim("CLM-1")
        broken = factory.dataset().model_copy(update={"addresses": []})
        with session_scope(create_db_engine(db_url)) as db:
            save_dataset(db, broken)

        with caplog.at_level("ERROR", logger="claim_risk"):
            with pytest.raises(SystemExit) as exc:
                main(["--db-url", db_url, "score"])

        assert exc.value.code == 1
        assert any(getattr(r, "entity_id", None) == "CLT-1" for r in caplog.records)

    def test_invalid_stored_policy_exits_with_status_1(self, tmp_path, factory, caplog):
        db_url = f"sqlite:///{tmp_path / 'claims.db'}"
        main(["--db-url", db_url, "init-db"])

        factory.claim("CLM-1")
        with session_scope(create_db_engine(db_url)) as db:
            save_dataset(db, factory.dataset())
            db.execute(text("UPDATE policies SET expiry_date = inception_date"))
            db.commit()

        with caplog.at_level("ERROR", logger="claim_risk"):
            with pytest.raises(SystemExit) as exc:
                main(["--db-url", db_url, "score"])

        assert exc.value.code == 1
        assert any(getattr(r, "entity_id", None) == "POL-1" for r in caplog.records)

    @pytest.mark.parametrize(
        "argv",
        [
            ["score", "--batch-size", "0"],
            ["score", "--workers", "0"],
            ["seed", "--batch-size", "-5"],
            ["seed", "--claims", "-1"],
            ["seed", "--reference-date", "01/01/2025"],
        ],
    )
    def test_bad_arguments_rejected_by_parser(self, argv, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--db-url", "sqlite://", *argv])
        assert exc.value.code == 2
        assert "argument" in capsys.readouterr().err
