"""
drafting.py — Concord Ledger document creation and draft revision

A document starts life as an unsigned Record. Until the first signature
lands its author may revise it; each revision with a changed body gets a
new document_id (identity follows content) but keeps the correlation tag,
so the lineage stays one lineage.
"""

from __future__ import annotations
import logging
import re
import secrets
from typing import Iterable, List, Optional

from .errors import DocumentLockedError, NotAuthorizedError, UnresolvedForkError
from .keys import normalize_identity
from .records import Clock, DocumentBody, Record, unix_now
from .reducer_v0 import DocumentState

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    return _SLUG_RE.sub("-", title.lower()).strip("-") or "document"


def new_correlation_tag(title: str) -> str:
    """Title slug plus a random suffix, so equal titles stay distinct."""
    return f"{slugify(title)}-{secrets.token_hex(4)}"


def normalize_signatories(signatories: Iterable[str]) -> List[str]:
    """Lowercase hex identities, invalid ones dropped, first occurrence kept."""
    out: List[str] = []
    for raw in signatories:
        identity = normalize_identity(raw)
        if identity is None:
            logger.warning("Skipping invalid signatory id: %.10s...", raw)
            continue
        if identity not in out:
            out.append(identity)
    return out


def create_document(
    title: str,
    body_text: str,
    signatories: Iterable[str],
    signers_required: int,
    author_id: str,
    clock: Optional[Clock] = None,
    correlation_tag: Optional[str] = None,
) -> Record:
    """
    Build the first revision of a new document.

    The document is not signed by its author on creation; the author signs
    explicitly, like every other party.

    Raises:
        MalformedRecordError: signers_required < 1.
    """
    now = (clock or unix_now)()
    body = DocumentBody.new(
        title=title,
        body_text=body_text,
        created_at=now,
        signers_required=signers_required,
    )
    return Record(
        author_id=author_id,
        published_at=now,
        correlation_tag=correlation_tag or new_correlation_tag(title),
        payload=body,
        required_signers=tuple(normalize_signatories(signatories)),
    )


def revise_draft(
    state: DocumentState,
    author_id: str,
    title: str,
    body_text: str,
    clock: Optional[Clock] = None,
) -> Record:
    """
    Replace the title and text of a document nobody has signed yet.

    Raises:
        UnresolvedForkError: The lineage is forked.
        DocumentLockedError: The latest revision already carries signatures.
        NotAuthorizedError: ``author_id`` did not author the latest revision.
    """
    if state.forked or state.latest is None:
        raise UnresolvedForkError(list(state.forks or ()))

    latest = state.latest
    current = latest.payload
    if current.signatures:
        raise DocumentLockedError(
            f"{len(current.signatures)} signature(s) on {current.document_id}"
        )
    if author_id != latest.author_id:
        raise NotAuthorizedError(f"author={latest.author_id} caller={author_id}")

    now = (clock or unix_now)()
    body = DocumentBody.new(
        title=title,
        body_text=body_text,
        created_at=now,
        signers_required=current.signers_required,
        version=current.version,
    )
    if body.document_id != current.document_id:
        logger.info(
            "Draft %s content changed: %s -> %s",
            latest.correlation_tag,
            current.document_id,
            body.document_id,
        )
    return Record(
        author_id=author_id,
        # must sort after the revision it replaces
        published_at=max(now, latest.published_at + 1),
        correlation_tag=latest.correlation_tag,
        payload=body,
        required_signers=latest.required_signers,
        kind=latest.kind,
    )
