"""
reducer_v0.py — Concord Ledger Deterministic State Reducer

Folds the record set of one lineage into a DocumentState.

Core invariants:
  1. Records are immutable. Corrections are new records.
  2. State is never stored. It is recomputed from the records on every
     query, so two reductions of the same set are equal.
  3. A record whose document_id disagrees with its body_text is excluded
     and reported as an Anomaly. It never blocks its siblings.
  4. An empty lineage raises NotFoundError. Nothing is fabricated.

This reducer does NOT verify signatures. That belongs to verify.py and the
identity collaborator.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .canonical_json import content_id
from .errors import ContentIntegrityMismatchError, NotFoundError
from .forks import Fork, detect_forks
from .grouping import dedupe_records, newest_first
from .records import Record

logger = logging.getLogger(__name__)

REDUCER_NAME = "ConcordReducerV0"
REDUCER_VERSION = "0.1.0"


@dataclass(frozen=True)
class Anomaly:
    """A record excluded from reduction, with the reason."""
    record_id: Optional[str]
    code: str
    detail: str

    def to_dict(self) -> Dict[str, Any]:
        return {"record_id": self.record_id, "code": self.code, "detail": self.detail}


@dataclass(frozen=True)
class DocumentState:
    latest: Optional[Record]
    history: Tuple[Record, ...]
    forked: bool
    forks: Optional[Tuple[Fork, ...]]
    viewer: Optional[str] = None
    anomalies: Tuple[Anomaly, ...] = ()

    @property
    def correlation_tag(self) -> str:
        return self.history[0].correlation_tag

    @property
    def complete(self) -> bool:
        if self.latest is None:
            return False
        body = self.latest.payload
        return len(body.signatures) >= body.signers_required

    def awaiting_signature_of(self, party: str) -> bool:
        if self.latest is None:
            return False
        return (
            self.latest.requires(party)
            and self.latest.payload.signature_for(party) is None
        )

    @property
    def needs_viewer_signature(self) -> bool:
        return self.viewer is not None and self.awaiting_signature_of(self.viewer)

    def has_signed(self, party: str) -> bool:
        if self.latest is None:
            return False
        return self.latest.payload.signature_for(party) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_tag": self.correlation_tag,
            "latest": self.latest.to_dict() if self.latest else None,
            "history": [r.record_id for r in self.history],
            "forked": self.forked,
            "forks": [f.to_dict() for f in self.forks] if self.forks else None,
            "complete": self.complete,
            "needs_viewer_signature": self.needs_viewer_signature,
            "anomalies": [a.to_dict() for a in self.anomalies],
            "reducer": {"name": REDUCER_NAME, "version": REDUCER_VERSION},
        }


def partition_intact(records: Iterable[Record]) -> Tuple[List[Record], List[Anomaly]]:
    """Split records into content-intact ones and anomalies for the rest."""
    intact: List[Record] = []
    anomalies: List[Anomaly] = []
    for record in records:
        if record.payload.content_matches():
            intact.append(record)
            continue
        err = ContentIntegrityMismatchError(
            f"record={record.record_id} document_id={record.payload.document_id} "
            f"recomputed={content_id(record.payload.body_text)}"
        )
        logger.warning("Excluding record from reduction: %s", err)
        anomalies.append(Anomaly(record.record_id, err.code, err.message))
    return intact, anomalies


def reduce_records(
    records: Iterable[Record],
    viewer: Optional[str] = None,
) -> DocumentState:
    """
    Compute the authoritative state of one lineage.

    Args:
        records: Every known record for the lineage, in any order.
        viewer: Identity whose outstanding signature should be reported.

    Returns:
        DocumentState. ``latest`` is None while the lineage is forked.

    Raises:
        NotFoundError: No records, or every record failed the integrity check.
    """
    unique = dedupe_records(records)
    if not unique:
        raise NotFoundError("empty record set")

    intact, anomalies = partition_intact(unique)
    if not intact:
        raise NotFoundError(
            f"all {len(unique)} records failed the content integrity check",
            anomalies=anomalies,
        )

    report = detect_forks(intact)
    return DocumentState(
        latest=report.head,
        history=tuple(newest_first(intact)),
        forked=report.forked,
        forks=report.tips if report.forked else None,
        viewer=viewer,
        anomalies=tuple(anomalies),
    )
