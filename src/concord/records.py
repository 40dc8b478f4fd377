"""
records.py — Concord Ledger Record Model

The immutable unit of storage. A Record carries one DocumentBody plus the
provenance the store needs: author, publish time, correlation tag and the
identities designated as required signers.

Invariants:
  1. Records are immutable. A new signature is a new Record.
  2. DocumentBody.document_id == content_id(body_text). A mismatch marks
     the record as corrupted; the reducer excludes it.
  3. At most one SignatureEntry per signer_id within one DocumentBody.
  4. signers_required >= 1.

from_dict() is the deserialization boundary: malformed payloads are
rejected there with MalformedRecordError and never reach the engine.
"""

from __future__ import annotations
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from .canonical_json import canonical_hash, content_id, signature_fingerprint
from .errors import MalformedRecordError

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

RECORD_KIND = 30023
IDENTITY_HEX_LENGTH = 64

Clock = Callable[[], int]


# ---------------------------------------------------------------------------
# Timestamp helper
# ---------------------------------------------------------------------------

def unix_now() -> int:
    """Current time in whole seconds since the epoch."""
    return int(time.time())


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise MalformedRecordError(f"{where} is missing '{key}'")
    return data[key]


def _as_int(value: Any, key: str) -> int:
    # bool is an int subclass; floats and numeric strings would truncate
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedRecordError(f"'{key}' must be an integer, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Signature entry
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignatureEntry:
    signer_id: str
    signature_bytes: bytes
    signed_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signer_id": self.signer_id,
            "signature": self.signature_bytes.hex(),
            "signed_at": self.signed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureEntry":
        if not isinstance(data, dict):
            raise MalformedRecordError("signature entry must be an object")
        raw_sig = _require(data, "signature", "signature entry")
        try:
            sig = bytes.fromhex(str(raw_sig))
        except ValueError:
            raise MalformedRecordError(f"signature is not hex: {raw_sig!r}")
        return cls(
            signer_id=str(_require(data, "signer_id", "signature entry")),
            signature_bytes=sig,
            signed_at=_as_int(_require(data, "signed_at", "signature entry"), "signed_at"),
        )


# ---------------------------------------------------------------------------
# Document body
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DocumentBody:
    """Content-addressed payload. ``title`` is not part of the hash input."""
    document_id: str
    title: str
    body_text: str
    version: int
    created_at: int
    signers_required: int
    signatures: Tuple[SignatureEntry, ...] = ()

    @classmethod
    def new(
        cls,
        title: str,
        body_text: str,
        created_at: int,
        signers_required: int,
        version: int = 1,
    ) -> "DocumentBody":
        body = cls(
            document_id=content_id(body_text),
            title=title,
            body_text=body_text,
            version=version,
            created_at=created_at,
            signers_required=signers_required,
        )
        body.validate()
        return body

    def content_matches(self) -> bool:
        return content_id(self.body_text) == self.document_id

    def validate(self) -> None:
        """Check structural invariants (not the content hash)."""
        if self.signers_required < 1:
            raise MalformedRecordError(
                f"signers_required must be >= 1, got {self.signers_required}"
            )
        seen = set()
        for entry in self.signatures:
            if entry.signer_id in seen:
                raise MalformedRecordError(
                    f"duplicate signature entry for signer {entry.signer_id}"
                )
            seen.add(entry.signer_id)

    def signer_ids(self) -> Tuple[str, ...]:
        return tuple(s.signer_id for s in self.signatures)

    def signature_for(self, signer_id: str) -> Optional[SignatureEntry]:
        for entry in self.signatures:
            if entry.signer_id == signer_id:
                return entry
        return None

    def fingerprint(self) -> str:
        return signature_fingerprint((s.signer_id, s.signed_at) for s in self.signatures)

    def with_signatures(self, signatures: Iterable[SignatureEntry]) -> "DocumentBody":
        return replace(self, signatures=tuple(signatures))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "title": self.title,
            "body_text": self.body_text,
            "version": self.version,
            "created_at": self.created_at,
            "signers_required": self.signers_required,
            "signatures": [s.to_dict() for s in self.signatures],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentBody":
        if not isinstance(data, dict):
            raise MalformedRecordError("payload must be an object")
        raw_sigs = data.get("signatures") or []
        if not isinstance(raw_sigs, list):
            raise MalformedRecordError("'signatures' must be a list")
        body = cls(
            document_id=str(_require(data, "document_id", "payload")),
            title=str(data.get("title") or ""),
            body_text=str(_require(data, "body_text", "payload")),
            version=_as_int(data.get("version", 1), "version"),
            created_at=_as_int(_require(data, "created_at", "payload"), "created_at"),
            signers_required=_as_int(
                _require(data, "signers_required", "payload"), "signers_required"
            ),
            signatures=tuple(SignatureEntry.from_dict(s) for s in raw_sigs),
        )
        body.validate()
        return body


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Record:
    """
    One immutable log entry.

    ``record_id`` is assigned by the store on publish; an unpublished record
    carries ``None``. ``sig`` is the author's optional signature over
    ``digest()``.
    """
    author_id: str
    published_at: int
    correlation_tag: str
    payload: DocumentBody
    required_signers: Tuple[str, ...] = ()
    record_id: Optional[str] = None
    sig: Optional[str] = None
    kind: int = RECORD_KIND

    def unsigned_dict(self) -> Dict[str, Any]:
        """Every field covered by ``digest()``: all but record_id and sig."""
        return {
            "kind": self.kind,
            "author_id": self.author_id,
            "published_at": self.published_at,
            "correlation_tag": self.correlation_tag,
            "required_signers": list(self.required_signers),
            "payload": self.payload.to_dict(),
        }

    def digest(self) -> str:
        return canonical_hash(self.unsigned_dict())

    def identity(self) -> str:
        """Deduplication key: the store id, or the digest when unpublished."""
        return self.record_id or self.digest()

    def requires(self, party: str) -> bool:
        return party in self.required_signers

    def fingerprint(self) -> str:
        return self.payload.fingerprint()

    def with_id(self, record_id: str) -> "Record":
        return replace(self, record_id=record_id)

    def with_sig(self, sig: str) -> "Record":
        return replace(self, sig=sig)

    def to_dict(self) -> Dict[str, Any]:
        d = self.unsigned_dict()
        d["record_id"] = self.record_id
        d["sig"] = self.sig
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        if not isinstance(data, dict):
            raise MalformedRecordError("record must be an object")
        required = data.get("required_signers") or []
        if not isinstance(required, list):
            raise MalformedRecordError("'required_signers' must be a list")
        record_id = data.get("record_id")
        sig = data.get("sig")
        return cls(
            author_id=str(_require(data, "author_id", "record")),
            published_at=_as_int(_require(data, "published_at", "record"), "published_at"),
            correlation_tag=str(_require(data, "correlation_tag", "record")),
            payload=DocumentBody.from_dict(_require(data, "payload", "record")),
            required_signers=tuple(str(p) for p in required),
            record_id=str(record_id) if record_id else None,
            sig=str(sig) if sig else None,
            kind=_as_int(data.get("kind", RECORD_KIND), "kind"),
        )
