"""
verify.py — Concord Ledger integrity checks

Optional pass callers run before trusting DocumentState.complete:

  1. The body's document_id must equal content_id(body_text).
  2. Every SignatureEntry must verify against the document_id via the
     injected verify collaborator.
  3. Duplicate signers count once (first entry wins).
  4. Completion is recomputed from the entries that verified.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from .records import DocumentBody, SignatureEntry
from .reducer_v0 import DocumentState

logger = logging.getLogger(__name__)

# verify(signer_id, content_id, signature_bytes) -> bool
VerifyFn = Callable[[str, str, bytes], bool]


@dataclass
class VerificationResult:
    valid: bool
    reason: Optional[str] = None
    valid_signatures: List[SignatureEntry] = field(default_factory=list)
    invalid_signers: List[str] = field(default_factory=list)
    complete: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "reason": self.reason,
            "valid_signatures": [s.to_dict() for s in self.valid_signatures],
            "invalid_signers": self.invalid_signers,
            "complete": self.complete,
        }


def verify_document(body: DocumentBody, verify_fn: VerifyFn) -> VerificationResult:
    if not body.content_matches():
        return VerificationResult(valid=False, reason="Content hash mismatch")

    valid: List[SignatureEntry] = []
    invalid: List[str] = []
    seen: Set[str] = set()
    for entry in body.signatures:
        if entry.signer_id in seen:
            continue
        seen.add(entry.signer_id)
        if verify_fn(entry.signer_id, body.document_id, entry.signature_bytes):
            valid.append(entry)
        else:
            logger.warning(
                "Signature by %s does not verify for document %s",
                entry.signer_id,
                body.document_id,
            )
            invalid.append(entry.signer_id)

    return VerificationResult(
        valid=not invalid,
        reason=f"{len(invalid)} invalid signature(s)" if invalid else None,
        valid_signatures=valid,
        invalid_signers=invalid,
        complete=len(valid) >= body.signers_required,
    )


def verify_history(
    state: DocumentState,
    verify_fn: VerifyFn,
) -> Dict[str, VerificationResult]:
    """
    Verify every record of a state's history.

    Returns:
        Mapping of record identity (record_id, or digest when unpublished)
        to its VerificationResult.
    """
    return {
        record.identity(): verify_document(record.payload, verify_fn)
        for record in state.history
    }
