"""
signer.py — Concord Ledger Signer

Appends exactly one signature to the authoritative revision and returns the
next revision as an unpublished Record. Publishing is the store's job.

Refusals:
  - UnresolvedForkError when the state is forked (merge first)
  - AlreadySignedError when the identity already has an entry

The new body differs from the previous one only in its signature list.
document_id keeps naming the agreed text; signature progress travels via
the correlation tag and the fingerprint.
"""

from __future__ import annotations
import logging
from typing import Callable, Optional

from .errors import AlreadySignedError, UnresolvedForkError
from .records import Clock, Record, SignatureEntry, unix_now
from .reducer_v0 import DocumentState

logger = logging.getLogger(__name__)

# sign(content_id, identity) -> signature bytes
SignFn = Callable[[str, str], bytes]


def append_signature(
    state: DocumentState,
    signer_identity: str,
    sign_fn: SignFn,
    clock: Optional[Clock] = None,
) -> Record:
    """
    Produce the next revision carrying ``signer_identity``'s signature.

    Args:
        state: Reduced state of the lineage.
        signer_identity: Identity (public key hex) of the signing party.
        sign_fn: Identity collaborator producing the signature over the
            document's content_id.
        clock: Source of the signing/publish time. Defaults to wall time.

    Returns:
        Unpublished Record (record_id None) authored by the signer.

    Raises:
        UnresolvedForkError: The lineage has divergent tips.
        AlreadySignedError: The signer already appears in the signature list.
    """
    if state.forked or state.latest is None:
        raise UnresolvedForkError(
            list(state.forks or ()),
            f"correlation_tag={state.correlation_tag}",
        )

    latest = state.latest
    body = latest.payload
    if body.signature_for(signer_identity) is not None:
        raise AlreadySignedError(
            f"signer={signer_identity} document_id={body.document_id}"
        )

    now = (clock or unix_now)()
    entry = SignatureEntry(
        signer_id=signer_identity,
        signature_bytes=sign_fn(body.document_id, signer_identity),
        signed_at=now,
    )
    new_body = body.with_signatures(body.signatures + (entry,))
    new_body.validate()

    logger.debug(
        "Signer %s appended signature %d/%d to %s",
        signer_identity,
        len(new_body.signatures),
        new_body.signers_required,
        latest.correlation_tag,
    )
    return Record(
        author_id=signer_identity,
        published_at=now,
        correlation_tag=latest.correlation_tag,
        payload=new_body,
        required_signers=latest.required_signers,
        kind=latest.kind,
    )
