"""
test_reducer_v0.py — State Reducer tests

  - idempotent reduction (no hidden counters)
  - NotFound on empty or fully corrupted input, never fabricated state
  - corrupted records excluded and reported, siblings still reduce
  - completion threshold at boundary values
  - awaiting_signature_of semantics
  - forked state exposes forks and no authoritative record
"""

import logging

import pytest

from concord.errors import NotFoundError
from concord.records import DocumentBody, Record
from concord.reducer_v0 import reduce_records

from factories import ALICE, BOB, CAROL, TAG, record, sig


def _corrupt(r, record_id="bad"):
    p = r.payload
    forged = DocumentBody(
        document_id=p.document_id,
        title=p.title,
        body_text=p.body_text + " plus a hidden clause",
        version=p.version,
        created_at=p.created_at,
        signers_required=p.signers_required,
        signatures=p.signatures,
    )
    return Record(
        author_id=r.author_id,
        published_at=r.published_at + 50,
        correlation_tag=r.correlation_tag,
        payload=forged,
        required_signers=r.required_signers,
        record_id=record_id,
    )


def test_empty_raises_not_found():
    with pytest.raises(NotFoundError):
        reduce_records([])


def test_single_record_is_latest():
    only = record(record_id="r0")
    state = reduce_records([only])
    assert state.forked is False
    assert state.forks is None
    assert state.latest is only
    assert state.history == (only,)
    assert state.correlation_tag == TAG


def test_reduction_is_idempotent():
    records = [
        record(published_at=100, record_id="r0"),
        record(signatures=(sig(ALICE, 101),), published_at=101, record_id="r1"),
    ]
    assert reduce_records(records, viewer=BOB) == reduce_records(list(records), viewer=BOB)


def test_input_order_does_not_matter():
    records = [
        record(published_at=100, record_id="r0"),
        record(signatures=(sig(ALICE, 101),), published_at=101, record_id="r1"),
        record(signatures=(sig(ALICE, 101), sig(BOB, 103)), published_at=103, record_id="r2"),
    ]
    assert reduce_records(records) == reduce_records(list(reversed(records)))


def test_history_newest_first_and_deduplicated():
    r0 = record(published_at=100, record_id="r0")
    r1 = record(signatures=(sig(ALICE, 101),), published_at=101, record_id="r1")
    state = reduce_records([r0, r1, r0])
    assert state.history == (r1, r0)


def test_corrupted_record_excluded_and_reported(caplog):
    good = record(signatures=(sig(ALICE, 101),), published_at=101, record_id="good")
    bad = _corrupt(good)

    with caplog.at_level(logging.WARNING, logger="concord.reducer_v0"):
        state = reduce_records([good, bad])

    assert state.latest is good
    assert state.history == (good,)
    assert [a.record_id for a in state.anomalies] == ["bad"]
    assert state.anomalies[0].code == "CONCORD_E001"
    assert "Excluding record" in caplog.text


def test_all_corrupted_raises_not_found_with_anomalies():
    bad = _corrupt(record(record_id="r0"))
    with pytest.raises(NotFoundError) as exc_info:
        reduce_records([bad])
    assert len(exc_info.value.anomalies) == 1


@pytest.mark.parametrize("required, signers, expected", [
    (1, [], False),
    (1, [ALICE], True),
    (3, [ALICE, BOB], False),
    (3, [ALICE, BOB, CAROL], True),
    (3, [ALICE, BOB, CAROL, "d" * 64], True),
])
def test_completion_threshold(required, signers, expected):
    sigs = tuple(sig(s, 100 + i) for i, s in enumerate(signers))
    r = record(signatures=sigs, signers_required=required, record_id="r")
    state = reduce_records([r])
    assert state.complete is expected


def test_awaiting_signature_of():
    r = record(signatures=(sig(ALICE, 101),), required=(ALICE, BOB), record_id="r")
    state = reduce_records([r], viewer=BOB)
    assert state.awaiting_signature_of(BOB)
    assert not state.awaiting_signature_of(ALICE)
    assert not state.awaiting_signature_of(CAROL)
    assert state.needs_viewer_signature


def test_signer_outside_required_set_is_never_awaited():
    r = record(required=(ALICE,), record_id="r")
    assert not reduce_records([r], viewer=BOB).needs_viewer_signature


def test_forked_state():
    base = record(published_at=99, record_id="r0")
    a = record(signatures=(sig(ALICE, 100),), published_at=100, record_id="r1")
    b = record(signatures=(sig(BOB, 101),), published_at=101, record_id="r2")

    state = reduce_records([base, a, b], viewer=CAROL)

    assert state.forked
    assert len(state.forks) == 2
    assert state.latest is None
    assert state.complete is False
    assert not state.awaiting_signature_of(BOB)
    assert len(state.history) == 3


def test_to_dict_shape():
    r = record(signatures=(sig(ALICE, 101),), record_id="r1")
    d = reduce_records([r], viewer=BOB).to_dict()
    assert d["latest"]["record_id"] == "r1"
    assert d["history"] == ["r1"]
    assert d["forked"] is False
    assert d["needs_viewer_signature"] is True
    assert d["reducer"]["name"] == "ConcordReducerV0"
