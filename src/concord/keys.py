"""
keys.py — Concord Ledger Identity Layer

Implements the identity collaborator the engine is written against:
  - Ed25519 keypair generation (RFC 8032)
  - sign(content_id, identity) -> signature bytes
  - verify(signer_id, content_id, signature_bytes) -> bool
  - Record signing over Record.digest()
  - Keyfile load/save (hex-encoded raw keys)

Dependencies:
  - cryptography >= 41.0 (pip install cryptography)

Identities are the lowercase hex of the raw 32-byte public key, so any
party can verify a signature from the signer_id alone.

Security model:
  - Private keys never enter the log. They live in an operator-controlled
    keyfile or in memory.
  - The engine never inspects key material; it only calls sign/verify.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from .records import IDENTITY_HEX_LENGTH, Record

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Identity helpers
# ---------------------------------------------------------------------------

def identity_from_public_key(public_key: Ed25519PublicKey) -> str:
    return public_key.public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


def is_identity(value: str) -> bool:
    """True for a 64-character hex public key."""
    if not isinstance(value, str) or len(value) != IDENTITY_HEX_LENGTH:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


def normalize_identity(value: str) -> Optional[str]:
    """Lowercase a hex identity, or return None if it is not one."""
    candidate = str(value or "").strip().lower()
    return candidate if is_identity(candidate) else None


def load_public_key_hex(identity: str) -> Ed25519PublicKey:
    return Ed25519PublicKey.from_public_bytes(bytes.fromhex(identity))


def load_private_key_hex(hex_str: str) -> Ed25519PrivateKey:
    """Load an Ed25519 private key from hex-encoded raw bytes."""
    return Ed25519PrivateKey.from_private_bytes(bytes.fromhex(hex_str))


# ---------------------------------------------------------------------------
# Keypair
# ---------------------------------------------------------------------------

@dataclass
class SignerKeypair:
    """An Ed25519 keypair bound to its signer identity."""
    private_key: Ed25519PrivateKey
    identity: str

    @classmethod
    def generate(cls) -> "SignerKeypair":
        sk = Ed25519PrivateKey.generate()
        return cls(private_key=sk, identity=identity_from_public_key(sk.public_key()))

    @classmethod
    def from_private_hex(cls, hex_str: str) -> "SignerKeypair":
        sk = load_private_key_hex(hex_str)
        return cls(private_key=sk, identity=identity_from_public_key(sk.public_key()))

    def private_key_hex(self) -> str:
        """Export private key as hex. Never write this into the log."""
        raw = self.private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        )
        return raw.hex()

    def sign(self, content_id: str, identity: str) -> bytes:
        """
        Sign a document's content_id on behalf of ``identity``.

        Raises ValueError if ``identity`` is not this keypair's identity.
        """
        if identity != self.identity:
            raise ValueError(
                f"keypair for {self.identity} cannot sign as {identity}"
            )
        return sign_content(self.private_key, content_id)

    def to_keyfile_entry(self) -> Dict[str, Any]:
        return {
            "identity": self.identity,
            "algorithm": "Ed25519",
            "private_key_hex": self.private_key_hex(),
        }


# ---------------------------------------------------------------------------
# Content signatures
# ---------------------------------------------------------------------------

def sign_content(private_key: Ed25519PrivateKey, content_id: str) -> bytes:
    return private_key.sign(content_id.encode("utf-8"))


def verify_signature(signer_id: str, content_id: str, signature_bytes: bytes) -> bool:
    """Verify a SignatureEntry. Never raises; malformed input is False."""
    try:
        public_key = load_public_key_hex(signer_id)
        public_key.verify(signature_bytes, content_id.encode("utf-8"))
        return True
    except (InvalidSignature, ValueError, TypeError):
        return False


# ---------------------------------------------------------------------------
# Record signatures
# ---------------------------------------------------------------------------

def sign_record(record: Record, keypair: SignerKeypair) -> Record:
    """Attach the author's signature over ``record.digest()``."""
    if record.author_id != keypair.identity:
        raise ValueError(
            f"record author {record.author_id} does not match keypair {keypair.identity}"
        )
    sig = keypair.private_key.sign(record.digest().encode("utf-8"))
    return record.with_sig(sig.hex())


def verify_record_signature(record: Record) -> bool:
    """True iff the record carries a valid signature by its author."""
    if not record.sig:
        return False
    try:
        sig = bytes.fromhex(record.sig)
    except ValueError:
        return False
    return verify_signature(record.author_id, record.digest(), sig)


# ---------------------------------------------------------------------------
# Keyfile
# ---------------------------------------------------------------------------

def save_keyfile(path: Path, keypair: SignerKeypair) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(keypair.to_keyfile_entry(), indent=2), encoding="utf-8")


def load_keyfile(path: Path) -> SignerKeypair:
    """
    Load a keypair written by save_keyfile.

    Raises:
        ValueError: The file is not a keyfile or its identity does not
            match the private key.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or "private_key_hex" not in data:
        raise ValueError(f"{path} is not a Concord keyfile")
    keypair = SignerKeypair.from_private_hex(str(data["private_key_hex"]))
    declared = data.get("identity")
    if declared and declared != keypair.identity:
        raise ValueError(
            f"{path}: declared identity {declared} does not match private key"
        )
    return keypair
