from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from moovly_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from moovly_import.excel.reader import DecodeError, read_workbook, sheet_rows
from moovly_import.excel.templates import write_template
from moovly_import.logging.init import log_summary, set_debug, setup_logging
from moovly_import.models.config_models import ImportConfig
from moovly_import.models.import_outcome import Accepted, ResolvedRecord
from moovly_import.models.records import JobRecord, MatchType, RecordKind
from moovly_import.resolver.batch import ResolveContext, describe_mapping, resolve_batch
from moovly_import.services.orchestrator import ProcessingError, ordered_sheets, process_all, scan_excel_files
from moovly_import.services.summary import render_summary_line

"""CLI entrypoint.

    python -m moovly_import.cli [--config PATH] [--debug] [--dry-run]
    python -m moovly_import.cli --inspect-data
    python -m moovly_import.cli --template job [--output jobs.xlsx]

Exit codes: 0 everything imported, 2 a workbook failed or rows were rejected
or could not be saved, 1 fatal (config / source directory).
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2

PREVIEW_ROWS = 3


def _connect(cfg: ImportConfig) -> Any:
    """Open a psycopg2 connection.

    接続情報の解決優先順位:
        1. DATABASE_URL / PGDSN (.env で読み込まれたものを含む)
        2. 個別 PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
        3. config/import.yml の database セクション
    """
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if not dsn:
        host = os.getenv("PGHOST", db_cfg.host or "localhost")
        port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
        user = os.getenv("PGUSER", db_cfg.user or "postgres")
        password = os.getenv("PGPASSWORD", db_cfg.password or "")
        database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"

    conn = psycopg2.connect(dsn)
    # トランザクション境界は orchestrator が BEGIN/COMMIT で明示する
    conn.autocommit = True
    return conn


@contextmanager
def _db_cursor(conn: Any) -> Iterator[Any]:
    """Yield a cursor; the connection is closed afterwards."""
    try:
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env; its values win over the existing environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Moovly driver / job spreadsheet bulk importer")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to import.yml")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--dry-run", action="store_true", help="Resolve and report only, save nothing")
    p.add_argument(
        "--inspect-data",
        action="store_true",
        help="Print header mapping and the first resolved rows of each sheet, then exit",
    )
    p.add_argument(
        "--template",
        choices=[k.value for k in RecordKind],
        help="Write the import template for a record kind and exit",
    )
    p.add_argument("--output", type=Path, help="Template output path")
    return p.parse_args(argv)


def _preview_values(record: ResolvedRecord) -> dict[str, Any]:
    """Record values for the preview.

    The preview does not read the driver directory, so a driver reference is
    shown as typed instead of as a match result.
    """
    values = record.to_values()
    if isinstance(record, JobRecord):
        values.pop("driver_id", None)
        match = record.driver_match
        if match is None or match.match_type is MatchType.DEFERRED:
            values["driver"] = "deferred"
        else:
            values["driver"] = f"{match.original_input} (not resolved)"
    return values


def _inspect_data(cfg: ImportConfig) -> int:
    try:
        files = scan_excel_files(Path(cfg.source_directory))
    except ProcessingError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    if not files:
        print("inspect: no .xlsx files")
        return EXIT_SUCCESS_ALL
    context = ResolveContext(timezone=cfg.timezone, sample_limit=cfg.unmatched_sample_limit)
    for f in files:
        print(f"FILE: {f.name}")
        try:
            raw = read_workbook(f)
        except DecodeError as e:
            print(f"  read_error: {e}")
            continue
        for sname in ordered_sheets(list(raw.keys()), cfg.sheet_kinds):
            kind = cfg.sheet_kinds[sname]
            try:
                headers, rows = sheet_rows(raw[sname], sname)
            except DecodeError as e:
                print(f"  SHEET: {sname} error={e}")
                continue
            print(f"  SHEET: {sname} kind={kind.value} rows={len(rows)} cols={headers}")
            print(f"    mapping={describe_mapping(headers, kind)}")
            preview = resolve_batch(rows[:PREVIEW_ROWS], kind, context)
            for outcome in preview.outcomes:
                if isinstance(outcome, Accepted):
                    print(f"    row {outcome.row_number}: {_preview_values(outcome.record)}")
                else:
                    print(f"    row {outcome.row_number}: REJECTED {outcome.reason}")
    return EXIT_SUCCESS_ALL


def _write_template(kind_name: str, output: Path | None) -> int:
    kind = RecordKind(kind_name)
    path = output or Path(f"{kind.value}_import_template.xlsx")
    write_template(kind, path)
    print(f"template written: {path}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # [] が渡された場合に sys.argv (pytest の引数) を読まないよう None のときのみ参照
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    if args.template:
        return _write_template(args.template, args.output)

    _load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    directory = Path(cfg.source_directory)
    if not directory.exists():
        logger.error(f"directory not found: {directory}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    logger.info(f"Processing files from: {directory}")

    # DISABLE_DB_CONNECT=1 でDB接続を完全に無効化 (テスト / ドライラン用)
    db_mode = "mock"
    try:
        if os.getenv("DISABLE_DB_CONNECT") == "1":
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            result = process_all(cfg, cursor=None, dry_run=args.dry_run)
        else:
            try:
                conn = _connect(cfg)
            except psycopg2.OperationalError as db_e:
                logger.warning(f"DB connection failed -> mock mode, nothing will be saved: {db_e}")
                result = process_all(cfg, cursor=None, dry_run=args.dry_run)
            else:
                db_mode = "live"
                with _db_cursor(conn) as cur:
                    result = process_all(cfg, cursor=cur, dry_run=args.dry_run)
    except ProcessingError as e:
        logger.error(f"processing: {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} dry_run={args.dry_run} accepted={result.accepted_rows}")

    total_files = result.success_files + result.failed_files
    summary_line = render_summary_line(total_files, result)
    # log_summary が "SUMMARY " を付与するので除去して渡す
    log_summary(summary_line[len("SUMMARY "):])

    if result.failed_files > 0 or result.has_row_problems:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
