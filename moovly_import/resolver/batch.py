from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.import_outcome import (
    DEFAULT_SAMPLE_LIMIT,
    Accepted,
    BatchResult,
    DriverMatchStats,
    ImportOutcome,
    Rejected,
)
from ..models.records import (
    DriverLookup,
    DriverMatch,
    DriverRecord,
    JobRecord,
    MatchTier,
    MatchType,
    RecordKind,
)
from ..models.row_data import RawRow
from .aliases import DRIVER_REF_FIELD, ColumnAlias, ValueType, schema_for
from .drivers import generate_username, match_driver
from .fields import find_header, lookup, normalize_date, normalize_time, to_pin, to_text

"""Spreadsheet import resolver.

resolve_batch turns decoded rows into typed records, one ImportOutcome per
row in input order. It is a pure function of its inputs: the driver directory
is passed in explicitly and never mutated, nothing is persisted and nothing is
raised for bad cells.

Per row:
1. resolve every schema field through its aliases and coerce by value type
   (dates: Excel serial / datetime / generic string parsing)
2. reject the row when a required field is empty, naming the missing fields
3. only then resolve the driver reference (job rows), so rejected rows do not
   count towards driver match statistics
4. build the record with defaults applied
"""

__all__ = [
    "ResolveContext",
    "resolve_batch",
    "resolve_row",
    "summarize_driver_matches",
    "describe_mapping",
]

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = "medium"
DEFAULT_DRIVER_STATUS = "active"


@dataclass(frozen=True)
class ResolveContext:
    """Read-only inputs of a resolve call, current as of call time."""
    drivers: Sequence[DriverLookup] = ()
    timezone: str = "UTC"
    sample_limit: int = DEFAULT_SAMPLE_LIMIT


@dataclass
class _BatchState:
    # 同一バッチ内で生成したユーザー名の重複回避用
    taken_usernames: set[str] = field(default_factory=set)


def _resolve_fields(row: RawRow, kind: RecordKind, timezone: str) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for alias in schema_for(kind):
        raw = lookup(row, alias)
        if alias.value_type is ValueType.DATE:
            values[alias.field] = normalize_date(raw, timezone)
        elif alias.value_type is ValueType.TIME:
            values[alias.field] = normalize_time(raw)
        elif alias.value_type is ValueType.PIN:
            values[alias.field] = to_pin(raw)
        else:
            values[alias.field] = to_text(raw)
    return values


def _missing(kind: RecordKind, values: dict[str, Any]) -> list[ColumnAlias]:
    return [
        alias
        for alias in schema_for(kind)
        if alias.required and values.get(alias.field) in (None, "")
    ]


def _optional(text: str) -> str | None:
    return text or None


def _build_driver(row_number: int, values: dict[str, Any], state: _BatchState) -> DriverRecord:
    username = values["username"]
    if not username:
        username = generate_username(values["name"], state.taken_usernames)
        logger.debug("row=%d generated username=%s", row_number, username)
    state.taken_usernames.add(username.lower())
    return DriverRecord(
        row_number=row_number,
        username=username,
        name=values["name"],
        phone=values["phone"],
        license_number=values["license_number"],
        email=_optional(values["email"]),
        id_number=_optional(values["id_number"]),
        pin=values["pin"],
        status=(values["status"] or DEFAULT_DRIVER_STATUS).lower(),
    )


def _build_job(row_number: int, values: dict[str, Any], match: DriverMatch) -> JobRecord:
    return JobRecord(
        row_number=row_number,
        customer_name=values["customer_name"],
        pickup_address=values["pickup_address"],
        delivery_address=values["delivery_address"],
        scheduled_date=values["scheduled_date"],
        scheduled_time=values["scheduled_time"],
        priority=(values["priority"] or DEFAULT_PRIORITY).lower(),
        notes=_optional(values["notes"]),
        customer_phone=_optional(values["customer_phone"]),
        customer_email=_optional(values["customer_email"]),
        package_details=_optional(values["package_details"]),
        special_instructions=_optional(values["special_instructions"]),
        driver_id=match.driver_id,
        driver_match=match,
    )


def resolve_row(
    row: RawRow,
    kind: RecordKind,
    context: ResolveContext,
    state: _BatchState | None = None,
) -> ImportOutcome:
    """Resolve a single row into Accepted or Rejected."""
    if state is None:
        state = _BatchState(taken_usernames={d.username.lower() for d in context.drivers})
    values = _resolve_fields(row, kind, context.timezone)

    missing = _missing(kind, values)
    if missing:
        labels = tuple(a.label for a in missing)
        return Rejected(
            row_number=row.row_number,
            reason=f"Missing required fields: {', '.join(labels)}",
            missing_fields=labels,
        )

    if kind is RecordKind.DRIVER:
        return Accepted(row.row_number, _build_driver(row.row_number, values, state))

    match = match_driver(values[DRIVER_REF_FIELD], context.drivers)
    return Accepted(row.row_number, _build_job(row.row_number, values, match))


def summarize_driver_matches(
    outcomes: Iterable[ImportOutcome], sample_limit: int = DEFAULT_SAMPLE_LIMIT
) -> DriverMatchStats:
    """Fold accepted job outcomes into driver match counts."""
    matched = deferred = unmatched = 0
    by_tier: dict[MatchTier, int] = {}
    unmatched_inputs: list[str] = []
    for outcome in outcomes:
        if not isinstance(outcome, Accepted) or not isinstance(outcome.record, JobRecord):
            continue
        match = outcome.record.driver_match
        if match is None:
            continue
        if match.match_type is MatchType.MATCHED:
            matched += 1
            if match.tier is not None:
                by_tier[match.tier] = by_tier.get(match.tier, 0) + 1
        elif match.match_type is MatchType.DEFERRED:
            deferred += 1
        else:
            unmatched += 1
            if match.original_input not in unmatched_inputs:
                unmatched_inputs.append(match.original_input)
    return DriverMatchStats(
        matched=matched,
        deferred=deferred,
        unmatched=unmatched,
        matched_by_tier=by_tier,
        unmatched_inputs=tuple(unmatched_inputs),
        sample_limit=sample_limit,
    )


def resolve_batch(
    rows: Sequence[RawRow], kind: RecordKind, context: ResolveContext
) -> BatchResult:
    """Resolve rows in order. Always returns; one outcome per input row."""
    state = _BatchState(taken_usernames={d.username.lower() for d in context.drivers})
    outcomes = [resolve_row(row, kind, context, state) for row in rows]

    stats = None
    if kind is RecordKind.JOB:
        stats = summarize_driver_matches(outcomes, context.sample_limit)
    return BatchResult(kind=kind, outcomes=outcomes, driver_match_stats=stats)


def describe_mapping(headers: Sequence[str], kind: RecordKind) -> dict[str, str | None]:
    """Field -> header chosen by the alias resolver (None when unmapped)."""
    header_row = RawRow(row_number=1, cells={h: None for h in headers})
    return {alias.field: find_header(header_row, alias) for alias in schema_for(kind)}
