"""
test_merge_properties.py — property tests for fork resolution

For any set of concurrently published single-lineage tips over one base,
the merged record:
  M1. supersedes every tip (the regrouped lineage is not forked)
  M2. holds exactly the union of the tips' signers
  M3. keeps, per signer, the latest signed_at seen in any tip
"""

import pytest

from concord.forks import covers
from concord.merge import merge_forks
from concord.reducer_v0 import reduce_records

from factories import FixedClock, record, sig

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st
except ImportError:
    pytest.skip("hypothesis not installed", allow_module_level=True)

SIGNERS = [c * 64 for c in "abcdef"]

tip_signatures = st.dictionaries(
    keys=st.sampled_from(SIGNERS),
    values=st.integers(min_value=100, max_value=200),
    min_size=1,
    max_size=4,
)


@settings(max_examples=150, deadline=None)
@given(st.lists(tip_signatures, min_size=2, max_size=5))
def test_merge_supersedes_all_tips(tips):
    base = record(published_at=50, record_id="base")
    records = [base] + [
        record(
            signatures=tuple(sig(s, t) for s, t in sorted(sigs.items())),
            published_at=60 + i,
            record_id=f"tip-{i}",
        )
        for i, sigs in enumerate(tips)
    ]
    state = reduce_records(records)
    if not state.forked:
        return

    merged = merge_forks(state.history, state.forks, SIGNERS[0], FixedClock(500)).with_id("merged")
    after = reduce_records(records + [merged])

    assert not after.forked
    assert after.latest == merged
    for fork in state.forks:
        assert covers(merged, fork.fork_head)

    expected = {}
    for fork in state.forks:
        for entry in fork.signatures:
            expected[entry.signer_id] = max(expected.get(entry.signer_id, 0), entry.signed_at)
    assert {s.signer_id: s.signed_at for s in merged.payload.signatures} == expected
