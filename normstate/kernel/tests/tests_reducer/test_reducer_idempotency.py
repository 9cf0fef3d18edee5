"""
normstate Reducer -- Idempotency and Determinism Tests

Covers:
  - populate(R) applied twice equals populate(R) applied once
  - populate with duplicate ids is still idempotent
  - upsert of the same record twice equals once
  - replay of the same operation log always produces the same state
  - misuse operations are no-ops (state deep-equal and identical)
"""

import json

import pytest

from normstate.kernel.reducer import reduce, reduce_all, replay
from normstate.kernel.types import UNINITIALIZED


def snap_json(state):
    return json.dumps(state.to_dict(), sort_keys=True)


RECORD_SETS = [
    [],
    [{"id": 1, "text": "a"}],
    [{"id": 1, "text": "a"}, {"id": 2, "text": "b"}, {"id": 3, "text": "c"}],
    [{"id": "x"}, {"id": "y", "nested": {"k": [1, 2]}}],
    [{"id": 1, "v": 1}, {"id": 2}, {"id": 1, "v": 2}],
]


class TestPopulateIdempotency:
    @pytest.mark.parametrize("records", RECORD_SETS)
    def test_populate_twice_equals_once(self, todos, sink, records):
        once = reduce(UNINITIALIZED, todos.populate(records), sink=sink)
        twice = reduce(once, todos.populate(records), sink=sink)
        assert twice == once

    @pytest.mark.parametrize("records", RECORD_SETS)
    def test_populate_over_other_state_equals_fresh(self, todos, sink, records):
        other = reduce(UNINITIALIZED, todos.populate([{"id": 100}, {"id": 200}]), sink=sink)
        assert reduce(other, todos.populate(records), sink=sink) == reduce(
            UNINITIALIZED, todos.populate(records), sink=sink
        )


class TestUpsertIdempotency:
    def test_upsert_twice_equals_once(self, todos, sink):
        record = {"id": 1, "text": "a", "done": False}
        once = reduce(UNINITIALIZED, todos.upsert(record), sink=sink)
        twice = reduce(once, todos.upsert(record), sink=sink)
        assert twice == once

    def test_replace_twice_equals_once(self, todos, sink):
        record = {"id": 1, "text": "a"}
        base = reduce(UNINITIALIZED, todos.insert({"id": 1, "text": "old", "extra": 1}), sink=sink)
        once = reduce(base, todos.replace(record), sink=sink)
        twice = reduce(once, todos.replace(record), sink=sink)
        assert twice == once


class TestNoopsAreNoops:
    @pytest.mark.parametrize("build", [
        lambda ops: ops.update({"id": 404, "x": 1}),
        lambda ops: ops.delete(404),
    ])
    def test_noop_is_deep_equal_and_identical(self, todos, sink, build):
        state = reduce(UNINITIALIZED, todos.populate([{"id": 1}, {"id": 2}]), sink=sink)
        before = snap_json(state)
        result = reduce(state, build(todos), sink=sink)
        assert result is state
        assert snap_json(result) == before


class TestReplayDeterminism:
    def _log(self, todos):
        return [
            todos.populate([{"id": 1, "text": "a"}, {"id": 2, "text": "b"}]),
            todos.insert({"id": 3, "text": "c"}),
            todos.update({"id": 1, "done": True}),
            todos.delete(2),
            todos.replace({"id": 3, "text": "C"}),
            todos.upsert({"id": 4, "text": "d"}),
            todos.upsert({"id": 4, "done": False}),
            todos.delete(404),
        ]

    def test_replay_is_deterministic(self, todos, sink):
        results = {snap_json(replay(self._log(todos), sink=sink)) for _ in range(5)}
        assert len(results) == 1

    def test_replay_final_state(self, todos, sink):
        state = replay(self._log(todos), sink=sink)
        assert state.order == (1, 3, 4)
        assert dict(state.by_id) == {
            1: {"id": 1, "text": "a", "done": True},
            3: {"id": 3, "text": "C"},
            4: {"id": 4, "text": "d", "done": False},
        }

    def test_replay_equals_manual_fold(self, todos, sink):
        state = UNINITIALIZED
        for op in self._log(todos):
            state = reduce(state, op, sink=sink)
        assert state == replay(self._log(todos), sink=sink)

    def test_reduce_all_from_existing_state(self, todos, sink):
        base = reduce(UNINITIALIZED, todos.insert({"id": 1}), sink=sink)
        state = reduce_all(base, [todos.insert({"id": 2}), todos.delete(1)], sink=sink)
        assert state.order == (2,)

    def test_replay_of_nothing_is_uninitialized(self, sink):
        assert replay([], sink=sink) is UNINITIALIZED
