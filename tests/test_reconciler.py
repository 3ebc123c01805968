"""Tests for client-side thread reconciliation."""

from fairway.messages.models import Message
from fairway.messages.reconciler import (
    OPTIMISTIC_ID_OFFSET,
    append_realtime,
    discard_optimistic,
    merge_confirmed,
    merge_history,
    new_optimistic_id,
)


def _msg(id: int, body: str = "") -> Message:
    return Message(id=id, thread_id="t1", sender_id="u1", body=body or f"m{id}")


def _ids(messages):
    return [m.id for m in messages]


def test_optimistic_id_sorts_after_server_ids():
    opt = new_optimistic_id(now_ms=1_700_000_000_000)
    assert opt == 1_700_000_000_000 + OPTIMISTIC_ID_OFFSET
    assert new_optimistic_id() > 1_000_000


def test_confirmed_replaces_placeholder():
    opt = new_optimistic_id(now_ms=1000)
    state = [_msg(1), _msg(2), _msg(opt, "hello")]
    merged = merge_confirmed(state, opt, _msg(3, "hello"))
    assert _ids(merged) == [1, 2, 3]


def test_realtime_then_confirm_yields_one_copy():
    opt = new_optimistic_id(now_ms=1000)
    state = [_msg(1), _msg(opt)]
    state = append_realtime(state, _msg(2))
    state = merge_confirmed(state, opt, _msg(2))
    assert _ids(state) == [1, 2]


def test_confirm_then_realtime_yields_one_copy():
    opt = new_optimistic_id(now_ms=1000)
    state = merge_confirmed([_msg(1), _msg(opt)], opt, _msg(2))
    state = append_realtime(state, _msg(2))
    assert _ids(state) == [1, 2]


def test_merge_confirmed_is_idempotent():
    opt = new_optimistic_id(now_ms=1000)
    once = merge_confirmed([_msg(1), _msg(opt)], opt, _msg(5))
    twice = merge_confirmed(once, opt, _msg(5))
    assert once == twice


def test_append_realtime_duplicate_is_noop():
    state = [_msg(1), _msg(2)]
    assert append_realtime(state, _msg(2, "dup")) == state


def test_append_realtime_out_of_order_is_sorted():
    state = append_realtime([_msg(1), _msg(4)], _msg(3))
    assert _ids(state) == [1, 3, 4]


def test_discard_optimistic_rolls_back():
    opt = new_optimistic_id(now_ms=1000)
    state = discard_optimistic([_msg(1), _msg(opt)], opt)
    assert _ids(state) == [1]


def test_merge_history_prepends_without_duplicates():
    state = [_msg(5), _msg(6)]
    merged = merge_history(state, [_msg(3), _msg(4), _msg(5, "older copy"), _msg(4)])
    assert _ids(merged) == [3, 4, 5, 6]
    assert merged[2].body == "m5"


def test_inputs_are_not_mutated():
    opt = new_optimistic_id(now_ms=1000)
    state = [_msg(1), _msg(opt)]
    snapshot = list(state)
    merge_confirmed(state, opt, _msg(2))
    append_realtime(state, _msg(3))
    discard_optimistic(state, opt)
    merge_history(state, [_msg(0)])
    assert state == snapshot


def test_result_is_sorted_and_unique_after_any_sequence():
    opt = new_optimistic_id(now_ms=1000)
    state = [_msg(10), _msg(opt)]
    for step in (
        lambda s: append_realtime(s, _msg(12)),
        lambda s: append_realtime(s, _msg(11)),
        lambda s: merge_confirmed(s, opt, _msg(11)),
        lambda s: append_realtime(s, _msg(11)),
        lambda s: merge_history(s, [_msg(8), _msg(9), _msg(10)]),
    ):
        state = step(state)
        ids = _ids(state)
        assert ids == sorted(ids)
        assert len(ids) == len(set(ids))
    assert _ids(state) == [8, 9, 10, 11, 12]
