"""
test_ledger.py — end-to-end co-signing through the Ledger facade

Scenario: "Agreement text", two signers required. Alice and Bob both sign
the unsigned base before seeing each other's record, so the lineage forks.
A merge yields one record carrying both signatures and the document is
complete.
"""

import pytest

from concord.errors import InsufficientForksError, NotFoundError, PublishError
from concord.keys import SignerKeypair, sign_record, verify_record_signature
from concord.ledger import Ledger
from concord.signer import append_signature
from concord.store import MemoryStore

from factories import FixedClock


@pytest.fixture
def clock():
    return FixedClock(90)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def alice():
    return SignerKeypair.generate()


@pytest.fixture
def bob():
    return SignerKeypair.generate()


def _ledgers(store, clock, *keypairs):
    return [Ledger(store, kp, clock) for kp in keypairs]


def test_concurrent_signers_fork_then_merge(store, clock, alice, bob):
    la, lb = _ledgers(store, clock, alice, bob)
    base = la.create("NDA", "Agreement text", [alice.identity, bob.identity], 2, correlation_tag="nda")
    snapshot = la.state("nda")

    # Alice signs at t=100.
    clock.now = 100
    result = la.sign("nda")
    assert result.success

    # Bob signs the same pre-signature base at t=101 without seeing Alice's record.
    clock.now = 101
    bob_record = append_signature(snapshot, bob.identity, bob.sign, clock)
    store.publish(sign_record(bob_record, bob))

    forked = la.state("nda")
    assert forked.forked
    assert len(forked.forks) == 2
    assert not forked.complete

    refused = lb.sign("nda")
    assert not refused.success
    assert refused.has_forks
    assert refused.code == "CONCORD_E409"

    clock.now = 102
    merged = lb.resolve_forks("nda")
    assert set(merged.payload.signer_ids()) == {alice.identity, bob.identity}
    assert merged.payload.document_id == base.payload.document_id

    final = la.state("nda")
    assert not final.forked
    assert final.latest == merged
    assert final.complete
    assert la.verify("nda")[merged.record_id].valid


def test_sequential_signing_completes(store, clock, alice, bob):
    la, lb = _ledgers(store, clock, alice, bob)
    la.create("NDA", "Agreement text", [alice.identity, bob.identity], 2, correlation_tag="nda")
    assert la.state("nda").needs_viewer_signature

    clock.advance()
    assert la.sign("nda").success
    clock.advance()
    assert lb.state("nda").needs_viewer_signature
    assert lb.sign("nda").success

    state = la.state("nda")
    assert state.complete
    assert not state.forked
    assert not state.needs_viewer_signature


def test_sign_twice_reports_already_signed(store, clock, alice):
    (la,) = _ledgers(store, clock, alice)
    la.create("NDA", "x", [alice.identity], 2, correlation_tag="nda")
    clock.advance()
    assert la.sign("nda").success
    clock.advance()
    second = la.sign("nda")
    assert not second.success
    assert second.code == "CONCORD_E410"
    assert second.message == "You have already signed this document."


def test_published_records_carry_author_signatures(store, clock, alice):
    (la,) = _ledgers(store, clock, alice)
    record = la.create("NDA", "x", [alice.identity], 1, correlation_tag="nda")
    assert record.record_id == record.digest()
    assert verify_record_signature(record)


def test_unknown_document_is_not_fabricated(store, clock, alice):
    (la,) = _ledgers(store, clock, alice)
    with pytest.raises(NotFoundError):
        la.state("missing")
    with pytest.raises(NotFoundError):
        la.sign("missing")
    assert store.all_records() == []


def test_resolve_unforked_document_rejected(store, clock, alice):
    (la,) = _ledgers(store, clock, alice)
    la.create("NDA", "x", [alice.identity], 1, correlation_tag="nda")
    with pytest.raises(InsufficientForksError):
        la.resolve_forks("nda")


def test_revise_then_sign(store, clock, alice):
    (la,) = _ledgers(store, clock, alice)
    first = la.create("NDA", "Draft", [alice.identity], 1, correlation_tag="nda")
    clock.advance()
    revised = la.revise("nda", "NDA", "Final text")
    assert revised.payload.document_id != first.payload.document_id
    clock.advance()
    assert la.sign("nda").success
    assert la.state("nda").latest.payload.body_text == "Final text"


def test_publish_error_propagates(clock, alice):
    class FailingStore(MemoryStore):
        def publish(self, record):
            raise PublishError("relay unreachable")

    la = Ledger(FailingStore(), alice, clock)
    with pytest.raises(PublishError):
        la.create("NDA", "x", [alice.identity], 1)


def test_read_only_ledger_cannot_write(store, clock):
    ledger = Ledger(store, clock=clock)
    assert ledger.identity is None
    with pytest.raises(ValueError, match="No signing identity"):
        ledger.create("NDA", "x", [], 1)


def test_documents_lists_for_identity(store, clock, alice, bob):
    la, lb = _ledgers(store, clock, alice, bob)
    la.create("NDA", "x", [bob.identity], 1, correlation_tag="nda")
    docs = lb.documents(status="needs_signature")
    assert [d.correlation_tag for d in docs] == ["nda"]
