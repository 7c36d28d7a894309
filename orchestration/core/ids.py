"""Id generation and clock seams for the scheduler."""
from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Protocol

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """Return a clock that always reports ``moment`` (useful for reproducible runs)."""

    return lambda: moment


class IdGenerator(Protocol):
    def next_id(self, kind: str) -> str: ...


class SequentialIdGenerator:
    """Per-kind monotonic counter: ``slot-00001``, ``slot-00002``, ``conflict-00001``..."""

    def __init__(self) -> None:
        self._counters: Counter[str] = Counter()

    def next_id(self, kind: str) -> str:
        self._counters[kind] += 1
        return f"{kind}-{self._counters[kind]:05d}"


class UUIDIdGenerator:
    def next_id(self, kind: str) -> str:
        return f"{kind}-{uuid.uuid4().hex}"
