"""Per-party document listing over a record store."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from .errors import NotFoundError
from .reducer_v0 import DocumentState, reduce_records
from .store import RecordStore

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("needs_signature", "signed", "finalized", "all")
SORT_ORDERS = ("newest", "oldest")


def document_status(state: DocumentState, party: str) -> str:
    """One status badge per document, most significant first."""
    if state.forked:
        return "forked"
    if state.complete:
        return "finalized"
    if state.has_signed(party):
        return "signed"
    if state.awaiting_signature_of(party):
        return "needs_signature"
    return "other"


def _matches(state: DocumentState, party: str, status: str) -> bool:
    if status == "needs_signature":
        return state.awaiting_signature_of(party)
    if status == "signed":
        return state.has_signed(party)
    if status == "finalized":
        return state.complete
    return True


@dataclass(frozen=True)
class DocumentSummary:
    correlation_tag: str
    title: str
    status: str
    created_at: int
    updated_at: int
    state: DocumentState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_tag": self.correlation_tag,
            "title": self.title,
            "status": self.status,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "forked": self.state.forked,
            "complete": self.state.complete,
        }


def list_documents(
    store: RecordStore,
    party: str,
    status: str = "all",
    order: str = "newest",
) -> List[DocumentSummary]:
    """
    Reduce every lineage ``party`` authored a record in or is required on.

    Raises:
        ValueError: Unknown status filter or sort order.
    """
    if status not in STATUS_FILTERS:
        raise ValueError(f"unknown status filter {status!r}; expected one of {STATUS_FILTERS}")
    if order not in SORT_ORDERS:
        raise ValueError(f"unknown sort order {order!r}; expected one of {SORT_ORDERS}")

    by_tag: Dict[str, list] = {}
    for record in store.all_records():
        by_tag.setdefault(record.correlation_tag, []).append(record)

    summaries: List[DocumentSummary] = []
    for tag, records in by_tag.items():
        if not any(r.author_id == party or r.requires(party) for r in records):
            continue
        try:
            state = reduce_records(records, viewer=party)
        except NotFoundError as exc:
            logger.warning("Skipping lineage %s: %s", tag, exc)
            continue
        if not _matches(state, party, status):
            continue
        shown = state.latest or state.history[0]
        summaries.append(DocumentSummary(
            correlation_tag=tag,
            title=shown.payload.title,
            status=document_status(state, party),
            created_at=shown.payload.created_at,
            updated_at=state.history[0].published_at,
            state=state,
        ))

    summaries.sort(
        key=lambda s: (s.updated_at, s.correlation_tag),
        reverse=(order == "newest"),
    )
    return summaries
