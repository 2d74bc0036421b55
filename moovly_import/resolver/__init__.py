"""Spreadsheet import resolver: alias based field mapping and row resolution."""

from .batch import ResolveContext, describe_mapping, resolve_batch, resolve_row
from .drivers import ALLOCATE_LATER, match_driver

__all__ = [
    "ALLOCATE_LATER",
    "ResolveContext",
    "describe_mapping",
    "match_driver",
    "resolve_batch",
    "resolve_row",
]
