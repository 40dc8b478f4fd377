"""
canonical_json.py — Concord Ledger content addressing

Deterministic JSON canonicalization for content-addressed hashing.

Canonical form (JCS-like, reference: RFC 8785):
- UTF-8 encoding
- Object keys sorted lexicographically by Unicode codepoint
- No insignificant whitespace
- No NaN/Infinity (raises ValueError)

Two identities are derived here:
- content_id(body_text): SHA-256 over the UTF-8 body text. This is the
  document_id carried by every DocumentBody.
- signature_fingerprint(pairs): SHA-256 over the canonical JSON of the
  sorted (signer_id, signed_at) pairs. Records with equal fingerprints are
  the same signing-state point of a lineage.
"""

from __future__ import annotations
import hashlib
import json
from typing import Any, Iterable, Tuple


def canonical_dumps(obj: Any) -> str:
    """Return canonical JSON string with sorted keys and no whitespace."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_bytes(obj: Any) -> bytes:
    """Return canonical JSON as UTF-8 bytes."""
    return canonical_dumps(obj).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return lowercase hex SHA-256 digest."""
    return hashlib.sha256(data).hexdigest()


def canonical_hash(obj: Any) -> str:
    """Return SHA-256 hex digest of canonical JSON bytes."""
    return sha256_hex(canonical_bytes(obj))


def content_id(body_text: str) -> str:
    """
    Content address of a document body.

    Accepts any valid text, including the empty string. Lone surrogates
    cannot be encoded as UTF-8 and raise UnicodeEncodeError.
    """
    return sha256_hex(body_text.encode("utf-8"))


def signature_fingerprint(pairs: Iterable[Tuple[str, int]]) -> str:
    """Stable digest of an unordered collection of (signer_id, signed_at) pairs."""
    ordered = sorted([str(signer), int(ts)] for signer, ts in pairs)
    return canonical_hash(ordered)
