from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import psycopg2
import pytest

from moovly_import.cli import main as cli_main
from moovly_import.db.batch_insert import InsertResult

JOB_HEADER = ["Customer Name *", "Pickup Address *", "Delivery Address *", "Scheduled Date *", "Driver Username"]


@pytest.fixture()
def mock_mode(monkeypatch):
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")


def test_cli_no_files_success(write_config, mock_mode, capsys):
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "SUMMARY files=0/0 success=0 failed=0 rows=0" in out


def test_cli_directory_missing(write_config, temp_workdir: Path, mock_mode, capsys):
    cfg_path = temp_workdir / "config" / "import.yml"
    cfg_path.write_text(cfg_path.read_text(encoding="utf-8").replace("./data", "./missing_dir"), encoding="utf-8")
    code = cli_main([])
    assert code == 1
    assert "ERROR directory not found:" in capsys.readouterr().out


def test_cli_config_missing(temp_workdir: Path, capsys):
    code = cli_main(["--config", "config/absent.yml"])
    assert code == 1
    assert "ERROR config: config file not found" in capsys.readouterr().out


def test_cli_all_rows_imported(write_config, workbook_factory, mock_mode, capsys):
    workbook_factory("jobs.xlsx", {"Jobs": [JOB_HEADER, ["ABC", "1 Main", "2 Oak", "2024-01-15", "Allocate Later"]]})
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "rows=1 accepted=1 rejected=0 persisted=1" in out
    assert "INFO jobs.xlsx/Jobs 1 jobs marked for later allocation" in out


def test_cli_rejected_rows_exit_partial(write_config, workbook_factory, mock_mode, capsys):
    workbook_factory(
        "jobs.xlsx",
        {
            "Jobs": [
                JOB_HEADER,
                ["ABC", "1 Main", "2 Oak", "2024-01-15", None],
                ["XYZ", None, "2 Oak", "2024-01-15", None],
            ]
        },
    )
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 2
    assert "WARN jobs.xlsx/Jobs Row 3: Missing required fields: Pickup Address" in out
    assert "accepted=1 rejected=1" in out


def test_cli_dry_run_persists_nothing(write_config, workbook_factory, mock_mode, capsys):
    workbook_factory("jobs.xlsx", {"Jobs": [JOB_HEADER, ["ABC", "1 Main", "2 Oak", "2024-01-15", None]]})
    code = cli_main(["--dry-run"])
    out = capsys.readouterr().out
    assert code == 0
    assert "accepted=1 rejected=0 persisted=0" in out
    assert "dry_run=True" in out


def test_cli_debug_flag(write_config, mock_mode, capsys):
    cli_main(["--debug"])
    out = capsys.readouterr().out
    assert "DEBUG debug mode enabled" in out
    assert "DEBUG DB connect disabled via DISABLE_DB_CONNECT=1" in out


def test_cli_template(temp_workdir: Path, capsys):
    code = cli_main(["--template", "job", "--output", "out/jobs.xlsx"])
    assert code == 0
    assert (temp_workdir / "out" / "jobs.xlsx").exists()
    assert "template written: out/jobs.xlsx" in capsys.readouterr().out


def test_cli_template_default_name(temp_workdir: Path):
    assert cli_main(["--template", "driver"]) == 0
    assert (temp_workdir / "driver_import_template.xlsx").exists()


def test_cli_inspect_data(write_config, workbook_factory, capsys):
    workbook_factory(
        "jobs.xlsx",
        {
            "Jobs": [
                JOB_HEADER,
                ["ABC", "1 Main", "2 Oak", "2024-01-15", "j.smith"],
                ["XYZ", None, None, None, None],
                ["DEF", "3 Pine", "4 Elm", "2024-01-16", "Allocate Later"],
            ],
            "Notes": [["x"], ["y"]],
        },
    )
    code = cli_main(["--inspect-data"])
    out = capsys.readouterr().out
    assert code == 0
    assert "FILE: jobs.xlsx" in out
    assert "SHEET: Jobs kind=job rows=3" in out
    assert "'customer_name': 'Customer Name *'" in out
    assert "'driver': 'j.smith (not resolved)'" in out
    assert "row 3: REJECTED Missing required fields: Pickup Address, Delivery Address, Scheduled Date" in out
    assert "row 4:" in out and "'driver': 'deferred'" in out
    assert "unmatched" not in out.lower()
    assert "SHEET: Notes" not in out


def test_cli_falls_back_to_mock_when_db_unreachable(write_config, monkeypatch, capsys):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("PGDSN", raising=False)

    def refuse(dsn):
        raise psycopg2.OperationalError("connection refused")

    monkeypatch.setattr(psycopg2, "connect", refuse)
    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert "WARN DB connection failed -> mock mode" in out
    assert "mode=mock" in out


def test_cli_error_after_connect_is_not_retried_in_mock_mode(write_config, monkeypatch, capsys):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    conn = MagicMock()
    monkeypatch.setattr(psycopg2, "connect", lambda dsn: conn)
    runs: list[object] = []

    def lost_mid_run(cfg, cursor=None, **kwargs):
        runs.append(cursor)
        raise psycopg2.OperationalError("server closed the connection unexpectedly")

    monkeypatch.setattr("moovly_import.cli.__main__.process_all", lost_mid_run)

    with pytest.raises(psycopg2.OperationalError):
        cli_main([])
    assert len(runs) == 1
    assert runs[0] is not None
    assert "mock mode" not in capsys.readouterr().out
    conn.close.assert_called_once()


def test_cli_live_mode_uses_connection(write_config, workbook_factory, monkeypatch, capsys):
    monkeypatch.delenv("DISABLE_DB_CONNECT", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://app@db/app")
    workbook_factory("jobs.xlsx", {"Jobs": [JOB_HEADER, ["ABC", "1 Main", "2 Oak", "2024-01-15", None]]})

    cursor = MagicMock()
    cursor.fetchall.return_value = []
    cursor.fetchone.return_value = (0,)
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    seen: list[str] = []

    def fake_connect(dsn):
        seen.append(dsn)
        return conn

    monkeypatch.setattr(psycopg2, "connect", fake_connect)
    monkeypatch.setattr(
        "moovly_import.db.record_store.batch_insert",
        lambda *a, **k: InsertResult(inserted_rows=1, returned_values=[(42,)]),
    )

    code = cli_main([])
    out = capsys.readouterr().out
    assert code == 0
    assert seen == ["postgresql://app@db/app"]
    assert "mode=live" in out
    statements = [c.args[0] for c in cursor.execute.call_args_list]
    assert statements[0] == "BEGIN"
    assert statements[-1] == "COMMIT"
    assert conn.autocommit is True
    conn.close.assert_called_once()
