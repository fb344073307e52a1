from __future__ import annotations                                  # deferred annotations, so the TypedDict below can be used in hints anywhere

from contextlib import contextmanager                               # turns KeyedLocks.hold into a `with` block
from typing import Callable, Dict, Hashable, Iterator, Optional, TypedDict
import threading                                                    # locks; many requests touch the stores at once
import copy                                                         # hand out copies so callers can't mutate what the store holds
import time                                                         # monotonic clock for position expiry
from datetime import datetime, timezone


class Position(TypedDict, total=False):  # which question a session must answer next
    assessment_type: str
    question_id: str
    attempt: int        # set once the first answer of an attempt is recorded
    updated_at: str


# ---- Helper function ----
def _ts_utc_iso() -> str:
    now_utc = datetime.now(timezone.utc)
    return now_utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---- Position store ----

class InMemoryPositionStore:
    """
    Session id -> Position. Process-local; positions are ephemeral and are
    never written alongside the respondent record.

    A position nobody touched for ``ttl_seconds`` is dropped, so abandoned
    sessions do not pile up. ``ttl_seconds=None`` keeps positions forever.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._positions: Dict[str, Position] = {}   # session_id -> Position
        self._touched: Dict[str, float] = {}        # session_id -> clock() at the last set
        self._lock = threading.RLock()              # re-entrant: set() calls evict_expired() while holding it
        self._ttl = ttl_seconds
        self._clock = clock

    def _expired(self, session_id: str, now: float) -> bool:
        return self._ttl is not None and now - self._touched[session_id] > self._ttl

    def get(self, session_id: str) -> Optional[Position]:
        with self._lock:
            position = self._positions.get(session_id)
            if position is None:
                return None
            if self._expired(session_id, self._clock()):
                # stale session: forget it, the caller has to start again
                self.clear(session_id)
                return None
            return copy.deepcopy(position)

    def set(self, session_id: str, position: Position) -> Position:
        # a position without both keys can't be resumed
        if not position.get("assessment_type") or not position.get("question_id"):
            raise ValueError("set: position needs assessment_type and question_id")

        with self._lock:
            self.evict_expired()

            stored = copy.deepcopy(position)
            stored["updated_at"] = _ts_utc_iso()
            self._positions[session_id] = stored
            self._touched[session_id] = self._clock()
            return copy.deepcopy(stored)

    def clear(self, session_id: str) -> None:
        with self._lock:
            # clearing an unknown session is fine
            self._positions.pop(session_id, None)
            self._touched.pop(session_id, None)

    def evict_expired(self) -> int:
        """Drop every expired position; returns how many were dropped."""
        if self._ttl is None:
            return 0

        with self._lock:
            now = self._clock()
            stale = [sid for sid in self._positions if self._expired(sid, now)]
            for sid in stale:
                self.clear(sid)
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._positions)


# ---- Per-key locks ----

class _Slot:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.holders = 0    # threads holding or waiting on this lock


class KeyedLocks:
    """
    One re-entrant lock per key, e.g. (proposer_id, assessment_type).
    A key's lock only exists while someone holds or waits on it.
    """

    def __init__(self) -> None:
        self._slots: Dict[Hashable, _Slot] = {}
        self._guard = threading.Lock()              # protects _slots and every holders count

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = _Slot()
            slot.holders += 1

        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.holders -= 1
                # last one out removes the key
                if slot.holders == 0:
                    del self._slots[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)
