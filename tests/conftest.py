# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from moovly_import.logging.init import reset_logging
from moovly_import.models.records import DriverLookup


@pytest.fixture(autouse=True)
def _clean_logging():
    # 各テストで stdout ハンドラを張り直す
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
sheet_kinds:
  Drivers: driver
  Jobs: job
tables:
  driver: drivers
  job: jobs
timezone: UTC
unmatched_sample_limit: 3
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_workbook(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
    """Write a real .xlsx; each sheet is a list of rows, first row = header."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture()
def make_xlsx() -> Callable[..., Path]:
    return make_workbook


@pytest.fixture()
def workbook_factory(temp_workdir: Path) -> Callable[..., Path]:
    def _factory(name: str, sheets: dict[str, list[list[object]]]) -> Path:
        return make_workbook(temp_workdir / "data" / name, sheets)
    return _factory


@pytest.fixture()
def driver_directory() -> list[DriverLookup]:
    return [
        DriverLookup(id=1, username="j.smith", name="John Smith", email="john@example.com"),
        DriverLookup(id=2, username="j.smithers", name="Jane Smithers", email="jane@example.com"),
    ]
