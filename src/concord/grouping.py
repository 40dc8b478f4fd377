"""
grouping.py — Concord Ledger Revision Grouper

Partitions the records of one lineage by signature fingerprint. Within a
group, records are ordered newest first; the first record is the group
head. Byte-identical republishes from several sources collapse to one
record before grouping.

Ordering (used everywhere records are ranked):
  published_at descending, then record_id ascending. The record_id
  comparison is an arbitrary but deterministic tie-break; unpublished
  records (record_id None) sort as the empty string.
"""

from __future__ import annotations
from typing import Dict, Iterable, List, Set, Tuple

from .records import Record


def record_sort_key(record: Record) -> Tuple[int, str]:
    """Sort key placing the most recent record first."""
    return (-record.published_at, record.record_id or "")


def newest_first(records: Iterable[Record]) -> List[Record]:
    return sorted(records, key=record_sort_key)


def dedupe_records(records: Iterable[Record]) -> List[Record]:
    """
    Drop repeated copies of the same record, keeping first-seen order.

    Identity is the store-assigned record_id, or the canonical digest for
    records that were never published.
    """
    seen: Set[str] = set()
    out: List[Record] = []
    for record in records:
        key = record.identity()
        if key in seen:
            continue
        seen.add(key)
        out.append(record)
    return out


def group_by_fingerprint(records: Iterable[Record]) -> Dict[str, List[Record]]:
    """
    Partition records by the fingerprint of their signature list.

    Args:
        records: Records believed to share one correlation tag.

    Returns:
        Mapping of fingerprint to that group's records, newest first.
        Iteration order follows the groups' heads, newest first.
    """
    groups: Dict[str, List[Record]] = {}
    for record in dedupe_records(records):
        groups.setdefault(record.fingerprint(), []).append(record)

    for members in groups.values():
        members.sort(key=record_sort_key)

    ordered = sorted(groups.items(), key=lambda item: record_sort_key(item[1][0]))
    return dict(ordered)


def group_heads(groups: Dict[str, List[Record]]) -> Dict[str, Record]:
    """Most recent representative of each non-empty group."""
    return {fp: members[0] for fp, members in groups.items() if members}
