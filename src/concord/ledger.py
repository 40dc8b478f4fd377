"""
ledger.py — Concord Ledger facade

Binds the engine to its collaborators: a record store, the caller's
keypair and a clock. Every read reduces fresh from the store; every write
builds one Record, signs it, and hands it to the store.

Example:
    from concord import Ledger, MemoryStore, SignerKeypair

    alice = SignerKeypair.generate()
    ledger = Ledger(MemoryStore(), alice)
    record = ledger.create("NDA", "Agreement text", [alice.identity], 1)
    result = ledger.sign(record.correlation_tag)
    assert result.success and ledger.state(record.correlation_tag).complete
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .drafting import create_document, revise_draft
from .errors import AlreadySignedError, InsufficientForksError, SigningError, UnresolvedForkError
from .forks import Fork
from .keys import SignerKeypair, sign_record, verify_signature
from .merge import merge_forks
from .query import DocumentSummary, list_documents
from .records import Clock, Record, unix_now
from .reducer_v0 import DocumentState, reduce_records
from .signer import append_signature
from .store import RecordStore
from .verify import VerificationResult, verify_history

logger = logging.getLogger(__name__)


@dataclass
class SigningResult:
    """Outcome of Ledger.sign. Expected refusals are values, not exceptions."""
    success: bool
    record: Optional[Record] = None
    forks: Optional[Tuple[Fork, ...]] = None
    message: Optional[str] = None
    code: Optional[str] = None

    @property
    def has_forks(self) -> bool:
        return bool(self.forks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "record_id": self.record.record_id if self.record else None,
            "has_forks": self.has_forks,
            "forks": [f.to_dict() for f in self.forks] if self.forks else None,
            "message": self.message,
            "code": self.code,
        }


class Ledger:
    """High-level facade for co-signing documents on an append-only store."""

    def __init__(
        self,
        store: RecordStore,
        keypair: Optional[SignerKeypair] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.keypair = keypair
        self.clock: Clock = clock or unix_now

    @property
    def identity(self) -> Optional[str]:
        return self.keypair.identity if self.keypair else None

    def _require_keypair(self) -> SignerKeypair:
        if self.keypair is None:
            raise ValueError(
                "ERROR: No signing identity. Writes require a keypair. "
                "Fix: construct Ledger with keypair=SignerKeypair.generate() "
                "or load one from a keyfile."
            )
        return self.keypair

    def _publish(self, record: Record) -> Record:
        keypair = self._require_keypair()
        return self.store.publish(sign_record(record, keypair))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def records(self, correlation_tag: str) -> List[Record]:
        return self.store.fetch_records_for(correlation_tag)

    def state(self, correlation_tag: str) -> DocumentState:
        """Reduce the lineage. Raises NotFoundError for an unknown tag."""
        return reduce_records(self.records(correlation_tag), viewer=self.identity)

    def verify(self, correlation_tag: str) -> Dict[str, VerificationResult]:
        return verify_history(self.state(correlation_tag), verify_signature)

    def documents(self, status: str = "all", order: str = "newest") -> List[DocumentSummary]:
        party = self._require_keypair().identity
        return list_documents(self.store, party, status=status, order=order)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        title: str,
        body_text: str,
        signatories: Iterable[str],
        signers_required: int,
        correlation_tag: Optional[str] = None,
    ) -> Record:
        keypair = self._require_keypair()
        record = create_document(
            title,
            body_text,
            signatories,
            signers_required,
            author_id=keypair.identity,
            clock=self.clock,
            correlation_tag=correlation_tag,
        )
        return self._publish(record)

    def sign(self, correlation_tag: str) -> SigningResult:
        """
        Add this identity's signature and publish the new revision.

        NotFoundError and PublishError propagate; fork and duplicate
        refusals come back as unsuccessful results.
        """
        keypair = self._require_keypair()
        state = self.state(correlation_tag)
        try:
            record = append_signature(state, keypair.identity, keypair.sign, self.clock)
        except UnresolvedForkError as exc:
            return SigningResult(
                success=False,
                forks=tuple(exc.forks),
                message="Document has multiple versions. Resolve them before signing.",
                code=exc.code,
            )
        except AlreadySignedError as exc:
            return SigningResult(
                success=False,
                message="You have already signed this document.",
                code=exc.code,
            )
        except SigningError as exc:
            return SigningResult(success=False, message=exc.message, code=exc.code)
        return SigningResult(success=True, record=self._publish(record))

    def resolve_forks(self, correlation_tag: str) -> Record:
        """
        Merge the lineage's forks and publish the result.

        Raises:
            InsufficientForksError: The lineage is not forked.
            NoCommonAncestorError: The forks do not share a base.
        """
        keypair = self._require_keypair()
        records = self.records(correlation_tag)
        state = reduce_records(records, viewer=keypair.identity)
        if not state.forks:
            raise InsufficientForksError(0, f"correlation_tag={correlation_tag} is not forked")
        merged = merge_forks(state.history, state.forks, keypair.identity, self.clock)
        return self._publish(merged)

    def revise(self, correlation_tag: str, title: str, body_text: str) -> Record:
        keypair = self._require_keypair()
        record = revise_draft(
            self.state(correlation_tag),
            keypair.identity,
            title,
            body_text,
            clock=self.clock,
        )
        return self._publish(record)
