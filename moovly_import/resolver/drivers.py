from __future__ import annotations

from collections.abc import Callable, Sequence

from ..models.records import DriverLookup, DriverMatch, MatchTier, MatchType

"""Driver reference resolution for job rows.

The driver column is free text: a username, an email, a full name or part of
one. Matching is case-insensitive and tries the tiers in MatchTier order; the
first driver satisfying the first matching tier wins. An empty cell or the
"allocate later" sentinel is deferred without any match attempt.

An unresolved reference never fails the row: the job is accepted unassigned
and the DriverMatch carries the diagnostic.
"""

__all__ = [
    "ALLOCATE_LATER",
    "is_deferred",
    "match_driver",
    "generate_username",
]

ALLOCATE_LATER = "allocate later"


def is_deferred(text: str) -> bool:
    key = text.strip().lower()
    return key == "" or key == ALLOCATE_LATER


def _lower(value: str | None) -> str:
    return (value or "").strip().lower()


def _tiers(search: str) -> list[tuple[MatchTier, Callable[[DriverLookup], bool]]]:
    def username_or_email(d: DriverLookup) -> bool:
        return _lower(d.username) == search or (bool(d.email) and _lower(d.email) == search)

    def full_name(d: DriverLookup) -> bool:
        return _lower(d.name) == search

    def name_overlap(d: DriverLookup) -> bool:
        name = _lower(d.name)
        # 空の氏名は何にでも含まれてしまうので対象外
        return bool(name) and (search in name or name in search)

    def partial(d: DriverLookup) -> bool:
        return search in _lower(d.name) or search in _lower(d.username)

    return [
        (MatchTier.USERNAME_OR_EMAIL, username_or_email),
        (MatchTier.FULL_NAME, full_name),
        (MatchTier.NAME_OVERLAP, name_overlap),
        (MatchTier.PARTIAL, partial),
    ]


def match_driver(raw_text: str, drivers: Sequence[DriverLookup]) -> DriverMatch:
    """Resolve a driver cell against the directory. Never raises."""
    text = raw_text.strip()
    if is_deferred(text):
        return DriverMatch(match_type=MatchType.DEFERRED, original_input=text)

    search = text.lower()
    for tier, predicate in _tiers(search):
        for driver in drivers:
            if predicate(driver):
                return DriverMatch(
                    match_type=MatchType.MATCHED,
                    original_input=text,
                    driver_id=driver.id,
                    tier=tier,
                    matched_driver=driver.label,
                )
    return DriverMatch(match_type=MatchType.UNMATCHED, original_input=text)


def generate_username(full_name: str, taken: set[str]) -> str:
    """Derive 'first.l' from a full name, suffixed 2, 3, ... until unused.

    taken holds lower-cased usernames already in use; the caller owns it.
    """
    parts = full_name.lower().split()
    first = parts[0] if parts else "driver"
    base = first
    if len(parts) > 1:
        base = f"{first}.{parts[-1][0]}"
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}{suffix}"
        suffix += 1
    return candidate
