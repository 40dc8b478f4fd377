"""
merge.py — Concord Ledger Fork Merger

Combines two or more divergent tips into one superseding revision.

Algorithm:
  1. All fork heads must carry the same document_id. The common ancestor is
     the oldest intact record of the lineage with that document_id; its
     content-defining fields are the template of the merged body.
  2. Signatures are unioned per signer. When several forks hold an entry
     for the same signer, the one with the greatest signed_at wins
     (last-writer-wins; a signer's later act replaces their earlier one).
  3. The merged list is ordered by (signed_at, signer_id) so the result
     does not depend on the order the forks were given in.

The merged record covers every fork it was built from, so once published
the fork detector sees a single tip again. The forks stay in the log.
"""

from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .errors import InsufficientForksError, NoCommonAncestorError
from .forks import Fork
from .records import Clock, Record, SignatureEntry, unix_now

logger = logging.getLogger(__name__)


def _oldest_first_key(record: Record):
    return (record.published_at, record.record_id or "")


def find_common_ancestor(
    lineage_records: Iterable[Record],
    forks: Sequence[Fork],
) -> Record:
    """Oldest intact lineage record sharing the forks' document_id."""
    doc_ids = {f.fork_head.payload.document_id for f in forks}
    if len(doc_ids) != 1:
        raise NoCommonAncestorError(
            f"forks reference {len(doc_ids)} different document_ids: {sorted(doc_ids)}"
        )
    (doc_id,) = doc_ids

    candidates = [
        r for r in lineage_records
        if r.payload.document_id == doc_id and r.payload.content_matches()
    ]
    tags = {f.fork_head.correlation_tag for f in forks}
    candidates = [r for r in candidates if r.correlation_tag in tags]
    if not candidates:
        raise NoCommonAncestorError(f"no lineage record carries document_id={doc_id}")
    return min(candidates, key=_oldest_first_key)


def merge_signatures(forks: Iterable[Fork]) -> List[SignatureEntry]:
    """Per-signer last-writer-wins union of the forks' signature lists."""
    chosen: Dict[str, SignatureEntry] = {}
    for fork in forks:
        for entry in fork.signatures:
            current = chosen.get(entry.signer_id)
            if current is None or (entry.signed_at, entry.signature_bytes) > (
                current.signed_at,
                current.signature_bytes,
            ):
                chosen[entry.signer_id] = entry
    return sorted(chosen.values(), key=lambda s: (s.signed_at, s.signer_id))


def merge_forks(
    lineage_records: Iterable[Record],
    forks: Sequence[Fork],
    author_id: str,
    clock: Optional[Clock] = None,
) -> Record:
    """
    Build the revision that resolves ``forks``.

    Args:
        lineage_records: Every record of the lineage (used to find the ancestor).
        forks: The divergent tips, as reported by DocumentState.forks.
        author_id: Identity publishing the merge.
        clock: Source of published_at. Defaults to wall time.

    Returns:
        Unpublished Record (record_id None).

    Raises:
        InsufficientForksError: Fewer than two forks were given.
        NoCommonAncestorError: The forks do not share a base document.
    """
    forks = list(forks)
    if len(forks) < 2:
        raise InsufficientForksError(len(forks))

    records = list(lineage_records)
    ancestor = find_common_ancestor(records, forks)
    merged = merge_signatures(forks)
    body = ancestor.payload.with_signatures(merged)
    body.validate()

    logger.info(
        "Merged %d forks of %s into %d signatures",
        len(forks),
        ancestor.correlation_tag,
        len(merged),
    )
    return Record(
        author_id=author_id,
        published_at=(clock or unix_now)(),
        correlation_tag=ancestor.correlation_tag,
        payload=body,
        required_signers=ancestor.required_signers,
        kind=ancestor.kind,
    )
