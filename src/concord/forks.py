"""
forks.py — Concord Ledger Fork Detector

Decides whether a lineage has converged or split.

Each fingerprint group is one signing-state point. A point is superseded
when some other point on the same document_id covers every one of its
signers with an equal or later signed_at: the later point was built on
top of it (ordinary signing) or merged it (fork resolution, where a
signer's older entry may have been replaced by a newer one). The points
nobody supersedes are the lineage tips. One tip means converged; two or
more tips means forked.

A forked lineage has no authoritative record. The caller must merge
before another signature is accepted; signing on top of one tip would
only add a third lineage.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .grouping import group_by_fingerprint, group_heads, record_sort_key
from .records import Record, SignatureEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fork:
    """The most recent record of one divergent signature lineage."""
    fork_head: Record
    signature_fingerprint: str

    @property
    def signatures(self) -> Tuple[SignatureEntry, ...]:
        return self.fork_head.payload.signatures

    @property
    def timestamp(self) -> int:
        return self.fork_head.published_at

    @property
    def signer_ids(self) -> Tuple[str, ...]:
        return self.fork_head.payload.signer_ids()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record_id": self.fork_head.record_id,
            "signature_fingerprint": self.signature_fingerprint,
            "signatures": [s.to_dict() for s in self.signatures],
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ForkReport:
    groups: Dict[str, List[Record]]
    tips: Tuple[Fork, ...]

    @property
    def forked(self) -> bool:
        return len(self.tips) > 1

    @property
    def head(self) -> Optional[Record]:
        """Authoritative record, or None while forked or empty."""
        if len(self.tips) != 1:
            return None
        return self.tips[0].fork_head


def _signed_at_map(record: Record) -> Dict[str, int]:
    return {s.signer_id: s.signed_at for s in record.payload.signatures}


def covers(later: Record, earlier: Record) -> bool:
    """
    True if ``later`` holds every signer of ``earlier`` at the same or a
    later time, on the same text.

    Points on different document_ids never supersede each other, so a draft
    revision racing a signature on the old text surfaces as a fork.
    """
    if later.payload.document_id != earlier.payload.document_id:
        return False
    mine = _signed_at_map(later)
    for signer_id, signed_at in _signed_at_map(earlier).items():
        if signer_id not in mine or mine[signer_id] < signed_at:
            return False
    return True


def detect_forks(records: List[Record]) -> ForkReport:
    """
    Group records by fingerprint and find the lineage tips.

    Args:
        records: All records of one lineage, already integrity-filtered.

    Returns:
        ForkReport with the groups and the unsuperseded tips, newest first.
    """
    groups = group_by_fingerprint(records)
    heads = group_heads(groups)

    tips: List[Fork] = []
    for fp, head in heads.items():
        superseded = any(
            other_fp != fp and covers(other, head)
            for other_fp, other in heads.items()
        )
        if not superseded:
            tips.append(Fork(fork_head=head, signature_fingerprint=fp))

    tips.sort(key=lambda f: record_sort_key(f.fork_head))
    if len(tips) > 1:
        logger.info(
            "Lineage %s is forked into %d tips",
            tips[0].fork_head.correlation_tag,
            len(tips),
        )
    return ForkReport(groups=groups, tips=tuple(tips))
