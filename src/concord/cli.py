#!/usr/bin/env python3
"""
cli.py — Unified CLI for Concord Ledger

Commands:
  keygen    Generate an Ed25519 signing identity
  create    Publish a new unsigned document
  state     Show the reduced state of a document
  sign      Sign the current revision of a document
  merge     Resolve a forked document into one revision
  revise    Edit a document that has no signatures yet
  verify    Check content hashes and signatures across a document's history
  list      List documents relevant to an identity

The record log defaults to $CONCORD_LOG, then ./records.ndjson.
"""

from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

from .errors import ConcordError
from .keys import SignerKeypair, load_keyfile, save_keyfile
from .ledger import Ledger
from .query import SORT_ORDERS, STATUS_FILTERS
from .store import DEFAULT_LOG_NAME, NdjsonStore

LOG_ENV_VAR = "CONCORD_LOG"


def _fail_with_error(err: ConcordError) -> None:
    """Print a structured error message from a ``ConcordError`` and exit."""
    context = f" Context: {err.context}." if err.context else ""
    print(f"ERROR: {err.code}. {err.message}{context} (See: {err.doc_url})")
    sys.exit(1)


def _cli_error(what: str, why: str, fix: str) -> None:
    """Print a teaching-style CLI error and exit."""
    print(f"ERROR: {what}. {why}. Fix: {fix}.")
    sys.exit(1)


def _log_path(args: argparse.Namespace) -> Path:
    raw = getattr(args, "log", None) or os.environ.get(LOG_ENV_VAR) or DEFAULT_LOG_NAME
    return Path(raw).resolve()


def _load_keypair(args: argparse.Namespace) -> Optional[SignerKeypair]:
    keyfile = getattr(args, "keyfile", None)
    if not keyfile:
        return None
    path = Path(keyfile).resolve()
    if not path.exists():
        _cli_error(
            f"Keyfile not found: {path}",
            "signing and authoring commands need the caller's private key",
            "run `concord keygen --out <path>` or pass the correct `--keyfile`",
        )
    try:
        return load_keyfile(path)
    except (ValueError, json.JSONDecodeError) as exc:
        _cli_error(
            f"Unreadable keyfile {path}: {exc}",
            "the keyfile must be the JSON written by `concord keygen`",
            "regenerate the keyfile or restore it from backup",
        )
    return None


def _ledger(args: argparse.Namespace, need_key: bool = True) -> Ledger:
    keypair = _load_keypair(args)
    if need_key and keypair is None:
        _cli_error(
            "No --keyfile given",
            "this command publishes a record and must sign it",
            "pass `--keyfile <path>`",
        )
    return Ledger(NdjsonStore(_log_path(args)), keypair)


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2))


def cmd_keygen(args: argparse.Namespace) -> None:
    """Handle ``concord keygen``."""
    out = Path(args.out).resolve()
    if out.exists() and not args.force:
        _cli_error(
            f"Keyfile already exists: {out}",
            "overwriting a keyfile destroys the identity it holds",
            "choose another `--out` path or pass `--force`",
        )
    keypair = SignerKeypair.generate()
    save_keyfile(out, keypair)
    print(f"Identity: {keypair.identity}")
    print(f"Private key saved to: {out}")


def _read_body(raw: str) -> str:
    """Inline text, or the contents of ``@path``."""
    if not raw.startswith("@"):
        return raw
    path = Path(raw[1:]).resolve()
    if not path.exists():
        _cli_error(
            f"Body file not found: {path}",
            "file-based bodies require a readable text file",
            "create the file or pass the text inline",
        )
    return path.read_text(encoding="utf-8")


def cmd_create(args: argparse.Namespace) -> None:
    """Handle ``concord create``."""
    ledger = _ledger(args)
    record = ledger.create(
        args.title,
        _read_body(args.body),
        args.signatory or [],
        args.required,
        correlation_tag=args.tag,
    )
    print(f"Created {record.correlation_tag} (document_id={record.payload.document_id})")


def cmd_state(args: argparse.Namespace) -> None:
    """Handle ``concord state``."""
    ledger = _ledger(args, need_key=False)
    _print_json(ledger.state(args.tag).to_dict())


def cmd_sign(args: argparse.Namespace) -> None:
    """Handle ``concord sign``."""
    result = _ledger(args).sign(args.tag)
    if result.success and result.record is not None:
        print(f"Signed {args.tag} (record_id={result.record.record_id})")
        return
    _print_json(result.to_dict())
    sys.exit(1)


def cmd_merge(args: argparse.Namespace) -> None:
    """Handle ``concord merge``."""
    record = _ledger(args).resolve_forks(args.tag)
    names = ", ".join(record.payload.signer_ids()) or "none"
    print(f"Merged {args.tag} (record_id={record.record_id}, signers={names})")


def cmd_revise(args: argparse.Namespace) -> None:
    """Handle ``concord revise``."""
    ledger = _ledger(args)
    record = ledger.revise(args.tag, args.title, _read_body(args.body))
    print(f"Revised {args.tag} (document_id={record.payload.document_id})")


def cmd_verify(args: argparse.Namespace) -> None:
    """Handle ``concord verify``. Exits 1 if any revision fails."""
    results = _ledger(args, need_key=False).verify(args.tag)
    _print_json({rid: r.to_dict() for rid, r in results.items()})
    if not all(r.valid for r in results.values()):
        sys.exit(1)


def cmd_list(args: argparse.Namespace) -> None:
    """Handle ``concord list``."""
    docs = _ledger(args).documents(status=args.status, order=args.order)
    _print_json([d.to_dict() for d in docs])


def main(argv: Optional[list] = None) -> None:
    """CLI entrypoint."""
    parser = argparse.ArgumentParser(prog="concord", description="Concord Ledger CLI")
    parser.add_argument("--log", help=f"Record log path (default: ${LOG_ENV_VAR} or {DEFAULT_LOG_NAME})")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p_key = sub.add_parser("keygen", help="Generate a signing identity")
    p_key.add_argument("--out", required=True, help="Path to write the keyfile")
    p_key.add_argument("--force", action="store_true", help="Overwrite an existing keyfile")

    p_create = sub.add_parser("create", help="Publish a new document")
    p_create.add_argument("--keyfile", required=True)
    p_create.add_argument("--title", required=True)
    p_create.add_argument("--body", required=True, help="Body text, or @path to read it from a file")
    p_create.add_argument("--signatory", action="append", help="Required signer identity (repeatable)")
    p_create.add_argument("--required", type=int, default=1, help="Signatures needed for completion")
    p_create.add_argument("--tag", help="Explicit correlation tag")

    p_state = sub.add_parser("state", help="Show document state")
    p_state.add_argument("tag")
    p_state.add_argument("--keyfile", help="Report whether this identity still owes a signature")

    p_sign = sub.add_parser("sign", help="Sign a document")
    p_sign.add_argument("tag")
    p_sign.add_argument("--keyfile", required=True)

    p_merge = sub.add_parser("merge", help="Resolve a forked document")
    p_merge.add_argument("tag")
    p_merge.add_argument("--keyfile", required=True)

    p_rev = sub.add_parser("revise", help="Edit an unsigned document")
    p_rev.add_argument("tag")
    p_rev.add_argument("--keyfile", required=True)
    p_rev.add_argument("--title", required=True)
    p_rev.add_argument("--body", required=True, help="Body text, or @path to read it from a file")

    p_ver = sub.add_parser("verify", help="Verify a document's history")
    p_ver.add_argument("tag")

    p_list = sub.add_parser("list", help="List documents for an identity")
    p_list.add_argument("--keyfile", required=True)
    p_list.add_argument("--status", choices=STATUS_FILTERS, default="all")
    p_list.add_argument("--order", choices=SORT_ORDERS, default="newest")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    handlers = {
        "keygen": cmd_keygen,
        "create": cmd_create,
        "state": cmd_state,
        "sign": cmd_sign,
        "merge": cmd_merge,
        "revise": cmd_revise,
        "verify": cmd_verify,
        "list": cmd_list,
    }
    try:
        handlers[args.command](args)
    except ConcordError as err:
        _fail_with_error(err)


if __name__ == "__main__":
    main()
