"""
store.py — Concord Ledger record stores

The engine only needs two operations from its store:

  fetch_records_for(correlation_tag) -> list of Record
  publish(record) -> the published Record (record_id assigned)

Stores may return partial or stale sets; the reducer copes. A failed
publish raises PublishError and leaves the store unchanged. Stores never
retry.

Two implementations ship here:
  - MemoryStore: in-process list, for tests and embedding
  - NdjsonStore: append-only NDJSON file, one canonical JSON record per line
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from .canonical_json import canonical_dumps
from .errors import MalformedRecordError, PublishError
from .records import Record

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DEFAULT_LOG_NAME = "records.ndjson"


class RecordStore(Protocol):
    def fetch_records_for(self, correlation_tag: str) -> List[Record]: ...

    def publish(self, record: Record) -> Record: ...

    def all_records(self) -> List[Record]: ...


def assign_record_id(record: Record) -> Record:
    """Give an unpublished record its content-derived store id."""
    if record.record_id:
        return record
    return record.with_id(record.digest())


# ---------------------------------------------------------------------------
# NDJSON I/O
# ---------------------------------------------------------------------------

def load_records(path: Path) -> List[Record]:
    """
    Load records from an NDJSON file.

    Blank lines are skipped. Lines that are not JSON or not a well-formed
    record are skipped with a warning; they never reach the engine.
    """
    records: List[Record] = []
    if not path.exists():
        return records
    with path.open("r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                records.append(Record.from_dict(json.loads(stripped)))
            except json.JSONDecodeError as exc:
                logger.warning("%s:%d: skipping non-JSON line (%s)", path, line_num, exc)
            except MalformedRecordError as exc:
                logger.warning("%s:%d: skipping malformed record (%s)", path, line_num, exc)
    return records


def write_records(path: Path, records: Iterable[Record]) -> None:
    """Write records as NDJSON, replacing the file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for record in records:
            f.write(canonical_dumps(record.to_dict()) + "\n")


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class MemoryStore:
    """In-process store. Publishing the same record twice keeps both copies."""

    def __init__(self, records: Optional[Iterable[Record]] = None):
        self._records: List[Record] = [assign_record_id(r) for r in records or ()]

    def fetch_records_for(self, correlation_tag: str) -> List[Record]:
        return [r for r in self._records if r.correlation_tag == correlation_tag]

    def publish(self, record: Record) -> Record:
        published = assign_record_id(record)
        self._records.append(published)
        logger.info("Published %s to %s", published.record_id, published.correlation_tag)
        return published

    def all_records(self) -> List[Record]:
        return list(self._records)


class NdjsonStore:
    """Append-only NDJSON log on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def fetch_records_for(self, correlation_tag: str) -> List[Record]:
        return [r for r in load_records(self.path) if r.correlation_tag == correlation_tag]

    def publish(self, record: Record) -> Record:
        published = assign_record_id(record)
        line = canonical_dumps(published.to_dict()) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as exc:
            raise PublishError(f"{self.path}: {exc}") from exc
        logger.info("Published %s to %s", published.record_id, published.correlation_tag)
        return published

    def all_records(self) -> List[Record]:
        return load_records(self.path)
