"""Client-side reconciliation of a thread's message list.

A client learns about messages through two unordered paths: the response to
its own send request and the realtime channel.  Both may deliver the same
message, late or twice.  Message ids are server-assigned and strictly
increasing, so sorting by id gives chronological order and the id is the
deduplication key.

All functions are pure: they return a new list and never mutate the input.
"""

from __future__ import annotations

import time
from typing import Iterable, Optional, Sequence

from fairway.messages.models import Message

# Placeholder ids sort after every id the server can have assigned by now.
OPTIMISTIC_ID_OFFSET = 10_000_000


def _sorted(messages: Iterable[Message]) -> list[Message]:
    return sorted(messages, key=lambda m: m.id)


def new_optimistic_id(now_ms: Optional[int] = None) -> int:
    """Return an id for a locally-sent message awaiting confirmation."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return now_ms + OPTIMISTIC_ID_OFFSET


def merge_confirmed(
    messages: Sequence[Message],
    optimistic_id: int,
    server_message: Message,
) -> list[Message]:
    """Replace the optimistic placeholder by the server-confirmed message.

    Drops the placeholder and any earlier delivery of ``server_message``, so
    applying it again yields the same list.
    """
    kept = [m for m in messages if m.id not in (optimistic_id, server_message.id)]
    kept.append(server_message)
    return _sorted(kept)


def append_realtime(messages: Sequence[Message], realtime_message: Message) -> list[Message]:
    """Add a message pushed by the realtime channel unless its id is already known."""
    if any(m.id == realtime_message.id for m in messages):
        return list(messages)
    return _sorted([*messages, realtime_message])


def discard_optimistic(messages: Sequence[Message], optimistic_id: int) -> list[Message]:
    """Roll back a placeholder after a failed send."""
    return [m for m in messages if m.id != optimistic_id]


def merge_history(messages: Sequence[Message], older: Iterable[Message]) -> list[Message]:
    """Merge a page of older messages loaded through pagination."""
    known = {m.id for m in messages}
    fresh: dict[int, Message] = {}
    for m in older:
        if m.id not in known:
            fresh.setdefault(m.id, m)
    return _sorted([*fresh.values(), *messages])
