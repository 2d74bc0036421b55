from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Union

from .records import DriverRecord, JobRecord, MatchTier, RecordKind

"""Per-row import outcomes and batch level aggregation.

Every input row maps to exactly one outcome: Accepted (a resolved record) or
Rejected (row number + reason). Failures are data here, not log side effects;
the caller decides how to surface them.
"""

__all__ = [
    "ResolvedRecord",
    "Accepted",
    "Rejected",
    "ImportOutcome",
    "DriverMatchStats",
    "BatchResult",
    "DEFAULT_SAMPLE_LIMIT",
    "TRUNCATION_SUFFIX",
]

DEFAULT_SAMPLE_LIMIT = 3
TRUNCATION_SUFFIX = "..."

ResolvedRecord = Union[DriverRecord, JobRecord]


@dataclass(frozen=True)
class Accepted:
    row_number: int
    record: ResolvedRecord


@dataclass(frozen=True)
class Rejected:
    row_number: int
    reason: str
    missing_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row_number, "reason": self.reason}


ImportOutcome = Union[Accepted, Rejected]


@dataclass(frozen=True)
class DriverMatchStats:
    """Driver reference statistics over the accepted rows of a job batch.

    unmatched_inputs is deduplicated and keeps first-seen order.
    """
    matched: int = 0
    deferred: int = 0
    unmatched: int = 0
    matched_by_tier: dict[MatchTier, int] = field(default_factory=dict)
    unmatched_inputs: tuple[str, ...] = ()
    sample_limit: int = DEFAULT_SAMPLE_LIMIT

    @property
    def unmatched_samples(self) -> list[str]:
        return list(self.unmatched_inputs[: self.sample_limit])

    @property
    def truncated(self) -> bool:
        return len(self.unmatched_inputs) > self.sample_limit

    def format_unmatched(self) -> str:
        """Display form: first N inputs joined, '...' appended when cut."""
        text = ", ".join(self.unmatched_samples)
        if self.truncated:
            text += TRUNCATION_SUFFIX
        return text

    def format_tiers(self) -> str:
        """Non-zero tier counts in precedence order, e.g. 'full_name=2, partial=1'."""
        return ", ".join(
            f"{tier.value}={self.matched_by_tier[tier]}"
            for tier in MatchTier
            if self.matched_by_tier.get(tier)
        )

    def combine(self, other: DriverMatchStats) -> DriverMatchStats:
        """Merge stats of two job batches (e.g. two sheets of one run)."""
        tiers = dict(self.matched_by_tier)
        for tier, count in other.matched_by_tier.items():
            tiers[tier] = tiers.get(tier, 0) + count
        inputs = list(self.unmatched_inputs)
        inputs.extend(i for i in other.unmatched_inputs if i not in inputs)
        return DriverMatchStats(
            matched=self.matched + other.matched,
            deferred=self.deferred + other.deferred,
            unmatched=self.unmatched + other.unmatched,
            matched_by_tier=tiers,
            unmatched_inputs=tuple(inputs),
            sample_limit=self.sample_limit,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "matched": self.matched,
            "deferred": self.deferred,
            "unmatched": self.unmatched,
            "unmatchedSamples": self.unmatched_samples,
        }


@dataclass(frozen=True)
class BatchResult:
    """Ordered outcomes of one resolve_batch call plus summary counts."""
    kind: RecordKind
    outcomes: Sequence[ImportOutcome]
    driver_match_stats: DriverMatchStats | None = None  # job batches only

    @property
    def accepted(self) -> list[ResolvedRecord]:
        return [o.record for o in self.outcomes if isinstance(o, Accepted)]

    @property
    def rejected(self) -> list[Rejected]:
        return [o for o in self.outcomes if isinstance(o, Rejected)]

    @property
    def accepted_count(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, Accepted))

    @property
    def rejected_count(self) -> int:
        return sum(1 for o in self.outcomes if isinstance(o, Rejected))

    def to_dict(self) -> dict[str, Any]:
        """Caller-facing contract: accepted / rejected / driverMatchStats?"""
        data: dict[str, Any] = {
            "accepted": self.accepted,
            "rejected": [r.to_dict() for r in self.rejected],
        }
        if self.driver_match_stats is not None:
            data["driverMatchStats"] = self.driver_match_stats.to_dict()
        return data
