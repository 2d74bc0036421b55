from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..db.record_store import InMemoryRecordStore, PostgresRecordStore, RecordStore
from ..excel.reader import DecodeError, read_workbook, sheet_rows
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.error_record import (
    DECODE_FAILURE,
    DRIVER_UNMATCHED,
    FILE_LEVEL_ROW,
    FILE_LEVEL_SHEET,
    PERSIST_FAILED,
    ROW_REJECTED,
    TRANSACTION_ERROR,
    ErrorRecord,
)
from ..models.excel_file import ExcelFile, FileStatus
from ..models.import_outcome import Accepted, DriverMatchStats
from ..models.processing_result import FileStat, ProcessingResult
from ..models.records import JobRecord, MatchType, RecordKind
from ..models.sheet_process import SheetImport
from ..resolver.batch import ResolveContext, resolve_batch
from .progress import ProgressTracker
from .summary import render_driver_report, render_persist_failure, render_rejection

"""Import orchestration.

process_all():
1. scan source_directory for .xlsx workbooks (non-recursive, name order)
2. per workbook, one transaction: decode -> resolve each mapped sheet ->
   bulk_create the accepted records
3. collect rejected rows, unmatched drivers and persistence failures into the
   error log, aggregate the SUMMARY figures

Driver sheets are handled before job sheets and the driver directory is
re-read for every sheet, so jobs can reference drivers created earlier in the
same run.

A workbook fails only when it cannot be decoded or committed; it is then
rolled back as a whole. Rejected rows never fail a workbook.
"""

logger = logging.getLogger(__name__)

_KIND_ORDER = {RecordKind.DRIVER: 0, RecordKind.JOB: 1}


class ProcessingError(Exception):
    """Fatal error that stops the whole run."""


def scan_excel_files(directory: Path) -> list[Path]:
    """Scan directory for .xlsx files (non-recursive).

    Raises:
        ProcessingError: If directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    try:
        return sorted(
            p for p in directory.iterdir()
            if p.is_file() and p.suffix == ".xlsx" and not p.name.startswith("~$")
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def ordered_sheets(sheet_names: list[str], sheet_kinds: dict[str, RecordKind]) -> list[str]:
    """Mapped sheets, driver kinds first, workbook order within a kind."""
    mapped = [s for s in sheet_names if s in sheet_kinds]
    return sorted(mapped, key=lambda s: _KIND_ORDER[sheet_kinds[s]])


def _log_sheet_outcome(
    sheet: SheetImport, file_name: str, error_log: ErrorLogBuffer
) -> None:
    if sheet.batch is None:
        return
    for rejected in sheet.batch.rejected:
        logger.warning("%s/%s %s", file_name, sheet.sheet_name, render_rejection(rejected))
        error_log.append(
            ErrorRecord.create(file_name, sheet.sheet_name, rejected.row_number, ROW_REJECTED, rejected.reason)
        )
    for outcome in sheet.batch.outcomes:
        if not isinstance(outcome, Accepted) or not isinstance(outcome.record, JobRecord):
            continue
        match = outcome.record.driver_match
        if match is not None and match.match_type is MatchType.UNMATCHED:
            error_log.append(
                ErrorRecord.create(
                    file_name,
                    sheet.sheet_name,
                    outcome.row_number,
                    DRIVER_UNMATCHED,
                    f"driver not found: {match.original_input} (job left unassigned)",
                )
            )
    for failure in sheet.persist_failures:
        logger.warning("%s/%s %s", file_name, sheet.sheet_name, render_persist_failure(failure))
        error_log.append(
            ErrorRecord.create(file_name, sheet.sheet_name, failure.row_number, PERSIST_FAILED, failure.message)
        )
    stats = sheet.batch.driver_match_stats
    if stats is not None:
        for line in render_driver_report(stats):
            logger.info("%s/%s %s", file_name, sheet.sheet_name, line)


def process_sheet(
    sheet_name: str,
    kind: RecordKind,
    df: pd.DataFrame,
    store: RecordStore,
    config: ImportConfig,
    *,
    dry_run: bool = False,
) -> SheetImport:
    """Resolve one sheet and hand its accepted records to the store.

    Raises DecodeError when the sheet has no header row.
    """
    _, rows = sheet_rows(df, sheet_name)
    context = ResolveContext(
        drivers=tuple(store.list_drivers()),
        timezone=config.timezone,
        sample_limit=config.unmatched_sample_limit,
    )
    batch = resolve_batch(rows, kind, context)
    logger.info(
        "sheet=%s kind=%s rows=%d accepted=%d rejected=%d",
        sheet_name,
        kind.value,
        len(rows),
        batch.accepted_count,
        batch.rejected_count,
    )
    if dry_run or not batch.accepted:
        return SheetImport(sheet_name=sheet_name, kind=kind, batch=batch)

    created = store.bulk_create(kind, batch.accepted)
    return SheetImport(
        sheet_name=sheet_name,
        kind=kind,
        batch=batch,
        persisted=created.successful,
        persist_failures=created.failures,
    )


def _rollback(store: RecordStore, name: str) -> None:
    try:
        store.rollback()
    except Exception as rollback_e:
        logger.debug("%s: rollback failed: %s", name, rollback_e)


def _failed_file(
    file_path: Path, start_time: datetime, error: str, sheets: list[SheetImport] | None = None
) -> ExcelFile:
    return ExcelFile(
        path=file_path,
        name=file_path.name,
        sheets=sheets or [],
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.FAILED,
        error=error,
    )


def process_file(
    file_path: Path,
    config: ImportConfig,
    store: RecordStore,
    error_log: ErrorLogBuffer,
    *,
    dry_run: bool = False,
) -> ExcelFile:
    """Process one workbook inside its own store transaction."""
    start_time = datetime.now(UTC)
    name = file_path.name

    try:
        raw_sheets = read_workbook(file_path)
    except DecodeError as e:
        logger.error("%s: %s", name, e)
        error_log.append(ErrorRecord.create(name, FILE_LEVEL_SHEET, FILE_LEVEL_ROW, DECODE_FAILURE, str(e)))
        return _failed_file(file_path, start_time, str(e))

    targets = ordered_sheets(list(raw_sheets.keys()), config.sheet_kinds)
    skipped = len(raw_sheets) - len(targets)
    if not targets:
        logger.info("%s: no mapped sheets (sheets=%s)", name, list(raw_sheets.keys()))

    sheets: list[SheetImport] = []
    try:
        store.begin()
        for sheet_name in targets:
            kind = config.sheet_kinds[sheet_name]
            try:
                sheet = process_sheet(
                    sheet_name, kind, raw_sheets[sheet_name], store, config, dry_run=dry_run
                )
            except DecodeError as e:
                # シート単位でも読めなければファイル全体をロールバック
                _rollback(store, name)
                logger.error("%s/%s: %s", name, sheet_name, e)
                error_log.append(ErrorRecord.create(name, sheet_name, FILE_LEVEL_ROW, DECODE_FAILURE, str(e)))
                sheets.append(SheetImport(sheet_name=sheet_name, kind=kind, error=str(e)))
                return _failed_file(file_path, start_time, str(e), sheets)
            sheets.append(sheet)
            _log_sheet_outcome(sheet, name, error_log)
        if dry_run:
            store.rollback()
        else:
            store.commit()
    except Exception as e:
        logger.error("%s: import aborted: %s", name, e)
        _rollback(store, name)
        error_log.append(ErrorRecord.create(name, FILE_LEVEL_SHEET, FILE_LEVEL_ROW, TRANSACTION_ERROR, str(e)))
        return _failed_file(file_path, start_time, str(e), sheets)

    return ExcelFile(
        path=file_path,
        name=name,
        sheets=sheets,
        start_time=start_time,
        end_time=datetime.now(UTC),
        status=FileStatus.SUCCESS,
        skipped_sheets=skipped,
    )


def _combine_stats(files: list[ExcelFile]) -> DriverMatchStats | None:
    combined: DriverMatchStats | None = None
    for f in files:
        for sheet in f.sheets:
            stats = sheet.batch.driver_match_stats if sheet.batch is not None else None
            if stats is None:
                continue
            combined = stats if combined is None else combined.combine(stats)
    return combined


def process_all(
    config: ImportConfig,
    cursor: Any = None,
    *,
    store: RecordStore | None = None,
    dry_run: bool = False,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Import every workbook of the configured directory.

    Args:
        config: Import configuration
        cursor: psycopg2 cursor (None = mock mode with an in-memory store)
        store: explicit record store, overrides the cursor based choice
        dry_run: resolve and report only, persist nothing
        error_log: buffer to collect error records (flushed at the end)

    Raises:
        ProcessingError: when the source directory cannot be scanned
    """
    start_time = datetime.now(UTC)
    if error_log is None:
        error_log = ErrorLogBuffer()
    if store is None:
        if cursor is not None:
            store = PostgresRecordStore(cursor, {kind: config.table_for(kind) for kind in RecordKind})
        else:
            store = InMemoryRecordStore()

    file_paths = scan_excel_files(Path(config.source_directory))

    files: list[ExcelFile] = []
    file_stats: list[FileStat] = []
    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            logger.info("file=%s", file_path.name)
            result = process_file(file_path, config, store, error_log, dry_run=dry_run)
            files.append(result)
            progress.finish_file(accepted=result.accepted, rejected=result.rejected)
            elapsed = 0.0
            if result.start_time and result.end_time:
                elapsed = (result.end_time - result.start_time).total_seconds()
            file_stats.append(
                FileStat(
                    file_name=result.name,
                    status=result.status.value,
                    total_rows=result.total_rows,
                    accepted_rows=result.accepted,
                    rejected_rows=result.rejected,
                    persisted_rows=result.persisted,
                    persist_failed_rows=result.persist_failed,
                    elapsed_seconds=elapsed,
                )
            )

    log_path = error_log.flush()
    if log_path is not None:
        logger.info("error log written: %s", log_path)

    end_time = datetime.now(UTC)
    succeeded = [f for f in files if f.status is FileStatus.SUCCESS]
    return ProcessingResult(
        success_files=len(succeeded),
        failed_files=len(files) - len(succeeded),
        total_rows=sum(f.total_rows for f in files),
        accepted_rows=sum(f.accepted for f in files),
        rejected_rows=sum(f.rejected for f in files),
        # ロールバックされたファイルの保存件数は数えない
        persisted_rows=sum(f.persisted for f in succeeded),
        persist_failed_rows=sum(f.persist_failed for f in files),
        skipped_sheets=sum(f.skipped_sheets for f in files),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        driver_stats=_combine_stats(files),
        file_stats=file_stats,
    )
