"""Concord Ledger public API.

Co-signing of a single document over an append-only log of immutable,
signed records. Exposes the ``Ledger`` facade plus the engine entry points:
reduction, fork detection, signing and merging.

Example:
    from concord import Ledger, MemoryStore, SignerKeypair

    ledger = Ledger(MemoryStore(), SignerKeypair.generate())
    record = ledger.create("NDA", "Agreement text", [ledger.identity], 1)
    print(ledger.state(record.correlation_tag).complete)
"""

from .canonical_json import canonical_dumps, canonical_hash, content_id, signature_fingerprint
from .drafting import create_document, revise_draft
from .errors import (
    AlreadySignedError,
    ConcordError,
    ContentIntegrityMismatchError,
    DocumentLockedError,
    InsufficientForksError,
    MalformedRecordError,
    MergeError,
    NoCommonAncestorError,
    NotAuthorizedError,
    NotFoundError,
    PublishError,
    SigningError,
    UnresolvedForkError,
)
from .forks import Fork, ForkReport, detect_forks
from .grouping import group_by_fingerprint
from .keys import SignerKeypair, sign_record, verify_record_signature, verify_signature
from .ledger import Ledger, SigningResult
from .merge import merge_forks
from .query import list_documents
from .records import DocumentBody, Record, SignatureEntry
from .reducer_v0 import Anomaly, DocumentState, reduce_records
from .signer import append_signature
from .store import MemoryStore, NdjsonStore
from .verify import VerificationResult, verify_document, verify_history

__version__ = "0.1.0"

__all__ = [
    "AlreadySignedError",
    "Anomaly",
    "ConcordError",
    "ContentIntegrityMismatchError",
    "DocumentBody",
    "DocumentLockedError",
    "DocumentState",
    "Fork",
    "ForkReport",
    "InsufficientForksError",
    "Ledger",
    "MalformedRecordError",
    "MemoryStore",
    "MergeError",
    "NdjsonStore",
    "NoCommonAncestorError",
    "NotAuthorizedError",
    "NotFoundError",
    "PublishError",
    "Record",
    "SignatureEntry",
    "SignerKeypair",
    "SigningError",
    "SigningResult",
    "UnresolvedForkError",
    "VerificationResult",
    "append_signature",
    "canonical_dumps",
    "canonical_hash",
    "content_id",
    "create_document",
    "detect_forks",
    "group_by_fingerprint",
    "list_documents",
    "merge_forks",
    "reduce_records",
    "revise_draft",
    "sign_record",
    "signature_fingerprint",
    "verify_document",
    "verify_history",
    "verify_record_signature",
    "verify_signature",
]
