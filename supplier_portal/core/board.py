"""
board.py: Status Board (kanban) for Supplier Portal

Groups work items into a fixed, ordered set of status buckets and moves
them between buckets with optimistic updates:

  1. Initialize: partition rows by status (unknown → first bucket)
  2. BeginMove: remember which card is being dragged
  3. CompleteMove: resolve the drop target, update locally, persist,
     roll back to the pre-move snapshot when persistence fails

Persistence is a plain callable ``persist(item, new_status)`` supplied by
the caller. The board itself never talks to the network.

Concurrency:
  - All state changes happen under one lock
  - A save still in flight blocks further moves of the same item (busy)
  - Re-initializing starts a new generation; late results from an older
    generation are dropped (stale)
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field, replace
from typing import Optional

log = logging.getLogger("portal.board")

DEFAULT_BUCKETS = ("Step 1", "Step 2", "Step 3", "Step 4", "Step 5")

# MoveResult states
NOOP = "noop"
BUSY = "busy"
PENDING = "pending"
SAVED = "saved"
REVERTED = "reverted"
STALE = "stale"


def bucket_slug(label: str) -> str:
    """Drop-zone id for a bucket label: 'Step 3' → 'step-3'."""
    return str(label).lower().replace(" ", "-")


# ─── Records ─────────────────────────────────────────────────────────────────

@dataclass
class WorkItem:
    """One upstream row on the board. Only ``status`` is ever changed."""
    id: object
    status: str
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict, id_key: str = "ROWID", status_key: str = "status") -> "WorkItem":
        data = dict(row)
        item_id = data.pop(id_key, None)
        status = data.pop(status_key, None)
        return cls(id=item_id, status="" if status is None else str(status), extra=data)

    def to_row(self, id_key: str = "ROWID", status_key: str = "status") -> dict:
        row = dict(self.extra)
        row[id_key] = self.id
        row[status_key] = self.status
        return row

    def copy(self) -> "WorkItem":
        return replace(self, extra=dict(self.extra))


@dataclass
class PersistOutcome:
    ok: bool
    error: Optional[str] = None


@dataclass
class MoveResult:
    state: str
    item_id: object = None
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None
    future: object = field(default=None, repr=False, compare=False)

    @property
    def moved(self) -> bool:
        """True when the item sits in its new bucket after this call."""
        return self.state in (SAVED, PENDING)

    def to_dict(self) -> dict:
        return {
            "state": self.state,
            "item_id": self.item_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "error": self.error,
            "reason": self.reason,
        }


def _interpret(outcome) -> tuple:
    """Normalize a persistence callback return value to (ok, error)."""
    if outcome is None or outcome is True:
        return True, None
    if outcome is False:
        return False, "persistence failed"
    if isinstance(outcome, PersistOutcome):
        return outcome.ok, (None if outcome.ok else (outcome.error or "persistence failed"))
    return bool(outcome), None if outcome else "persistence failed"


# ─── Board ───────────────────────────────────────────────────────────────────

class StatusBoard:
    """Kanban board over a fixed ordered set of status buckets.

    ``persist`` runs inline unless an ``executor`` is given. The portal routes
    always persist inline, inside the request that carries the user's token;
    the executor path is for callers that own their own worker pool.
    """

    def __init__(self, persist, buckets=DEFAULT_BUCKETS, executor=None, name: str = "board"):
        buckets = tuple(buckets)
        if not buckets:
            raise ValueError("StatusBoard needs at least one bucket")
        if len(set(buckets)) != len(buckets):
            raise ValueError(f"Duplicate bucket labels: {buckets}")
        self.name = name
        self.buckets = buckets
        self._persist = persist
        self._executor = executor
        self._lock = threading.Lock()
        self._items = OrderedDict()   # str(id) → WorkItem
        self._revisions = {}          # str(id) → int, bumped on every local move
        self._in_flight = set()
        self._generation = 0
        self.disabled = False
        self.active_id = None

    # ── Introspection ────────────────────────────────────────────────────────

    @property
    def generation(self) -> int:
        return self._generation

    def _bucket_of(self, item: WorkItem) -> str:
        return item.status if item.status in self.buckets else self.buckets[0]

    def bucket_of(self, item_id) -> Optional[str]:
        with self._lock:
            item = self._items.get(str(item_id))
            return self._bucket_of(item) if item else None

    def get(self, item_id) -> Optional[WorkItem]:
        with self._lock:
            item = self._items.get(str(item_id))
            return item.copy() if item else None

    def items(self) -> list:
        with self._lock:
            return [it.copy() for it in self._items.values()]

    def columns(self) -> "OrderedDict[str, list]":
        """Ordered bucket → items mapping. Every item appears exactly once."""
        with self._lock:
            cols = OrderedDict((b, []) for b in self.buckets)
            for item in self._items.values():
                cols[self._bucket_of(item)].append(item.copy())
            return cols

    def counts(self) -> dict:
        return {b: len(items) for b, items in self.columns().items()}

    def in_flight(self) -> set:
        with self._lock:
            return set(self._in_flight)

    def to_dict(self, id_key: str = "ROWID", status_key: str = "status") -> dict:
        cols = self.columns()
        return {
            "name": self.name,
            "generation": self._generation,
            "disabled": self.disabled,
            "buckets": [
                {"label": b, "slug": bucket_slug(b),
                 "items": [it.to_row(id_key, status_key) for it in items]}
                for b, items in cols.items()
            ],
        }

    # ── Operations ───────────────────────────────────────────────────────────

    def initialize(self, items, disabled: bool = False,
                   id_key: str = "ROWID", status_key: str = "status"):
        """Replace all local state with ``items`` and start a new generation.

        Accepts WorkItem instances or raw upstream rows. When identifiers
        repeat, the last row wins. Any in-flight results from the previous
        generation will be discarded when they arrive.
        """
        fresh = OrderedDict()
        for it in items:
            item = it.copy() if isinstance(it, WorkItem) else WorkItem.from_row(it, id_key, status_key)
            if item.id is None:
                log.debug("%s: skipping row without id", self.name)
                continue
            key = str(item.id)
            fresh.pop(key, None)
            fresh[key] = item
        with self._lock:
            self._generation += 1
            self._items = fresh
            self._revisions = {}
            self._in_flight = set()
            self.disabled = bool(disabled)
            self.active_id = None
            gen = self._generation
        log.info("%s: initialized %d items (generation %d%s)",
                 self.name, len(fresh), gen, ", disabled" if disabled else "")
        return self

    def resolve_drop_target(self, over_id) -> Optional[str]:
        with self._lock:
            return self._resolve(over_id)

    def _resolve(self, over_id) -> Optional[str]:
        if over_id is None:
            return None
        over = str(over_id)
        if over in self.buckets:
            return over
        for bucket in self.buckets:
            if bucket_slug(bucket) == over:
                return bucket
        item = self._items.get(over)
        if item is not None:
            return self._bucket_of(item)
        return None

    def begin_move(self, item_id) -> Optional[WorkItem]:
        """Record the dragged item. Returns it for the drag preview."""
        with self._lock:
            if self.disabled:
                return None
            item = self._items.get(str(item_id))
            if item is None:
                self.active_id = None
                return None
            self.active_id = str(item_id)
            return item.copy()

    def complete_move(self, item_id, over_id) -> MoveResult:
        """Drop ``item_id`` over ``over_id``. Never raises."""
        key = str(item_id)
        with self._lock:
            self.active_id = None
            if self.disabled:
                return self._noop(item_id, "disabled")
            item = self._items.get(key)
            if item is None:
                return self._noop(item_id, "unknown item")
            target = self._resolve(over_id)
            if target is None:
                return self._noop(item_id, f"unresolved drop target {over_id!r}")
            current = self._bucket_of(item)
            if target == current:
                return self._noop(item_id, "same bucket", current)
            if key in self._in_flight:
                log.debug("%s: item %s busy, move to %s ignored", self.name, item_id, target)
                return MoveResult(BUSY, item.id, current, target, reason="save in flight")

            snapshot = {k: (it.status, self._revisions.get(k, 0))
                        for k, it in self._items.items()}
            previous = item.status
            item.status = target
            self._revisions[key] = self._revisions.get(key, 0) + 1
            self._in_flight.add(key)
            generation = self._generation
            moved = item.copy()

        ctx = (key, generation, snapshot, previous, target)
        if self._executor is None:
            try:
                outcome = self._persist(moved, target)
            except Exception as e:
                log.warning("%s: persist raised for item %s: %s", self.name, item_id, e)
                outcome = PersistOutcome(False, str(e))
            return self._settle(ctx, outcome)

        try:
            future = self._executor.submit(self._persist, moved, target)
        except Exception as e:
            log.warning("%s: could not schedule save for item %s: %s", self.name, item_id, e)
            return self._settle(ctx, PersistOutcome(False, str(e)))
        future.add_done_callback(lambda f: self._settle_future(ctx, f))
        return MoveResult(PENDING, moved.id, previous, target, future=future)

    # ── Settlement ───────────────────────────────────────────────────────────

    def _noop(self, item_id, reason, status=None) -> MoveResult:
        log.debug("%s: move of %s is a no-op (%s)", self.name, item_id, reason)
        return MoveResult(NOOP, item_id, status, status, reason=reason)

    def _settle_future(self, ctx, future):
        if future.cancelled():
            outcome = PersistOutcome(False, "save cancelled")
        elif future.exception() is not None:
            exc = future.exception()
            log.warning("%s: persist raised for item %s: %s", self.name, ctx[0], exc)
            outcome = PersistOutcome(False, str(exc))
        else:
            outcome = future.result()
        return self._settle(ctx, outcome)

    def _settle(self, ctx, outcome) -> MoveResult:
        key, generation, snapshot, previous, target = ctx
        ok, error = _interpret(outcome)
        with self._lock:
            if generation != self._generation:
                log.info("%s: dropping stale result for item %s (generation %d, now %d)",
                         self.name, key, generation, self._generation)
                return MoveResult(STALE, key, previous, target, error=error)
            self._in_flight.discard(key)
            item = self._items.get(key)
            item_id = item.id if item else key
            if ok:
                log.info("%s: item %s moved %s → %s", self.name, item_id, previous, target)
                return MoveResult(SAVED, item_id, previous, target)

            # Restore every item nobody has moved since the snapshot
            moved_rev = snapshot.get(key, (None, 0))[1] + 1
            for k, (status, rev) in snapshot.items():
                current = self._items.get(k)
                if current is None:
                    continue
                expected = moved_rev if k == key else rev
                if self._revisions.get(k, 0) == expected:
                    current.status = status
            log.warning("%s: save of item %s to %s failed, reverted to %s: %s",
                        self.name, item_id, target, previous, error)
            return MoveResult(REVERTED, item_id, previous, target, error=error)


# ─── Registry ────────────────────────────────────────────────────────────────

class BoardRegistry:
    """Boards scoped per (session, page). Held on the Flask app, not globally."""

    def __init__(self, max_boards: int = 256):
        self._boards = OrderedDict()
        self._lock = threading.Lock()
        self.max_boards = max_boards

    def get(self, session_key: str, page: str, factory):
        """Return the board for this session and page, creating it with ``factory()``."""
        key = (session_key, page)
        with self._lock:
            board = self._boards.get(key)
            if board is None:
                board = factory()
                self._boards[key] = board
                while len(self._boards) > self.max_boards:
                    evicted, _ = self._boards.popitem(last=False)
                    log.debug("Board registry full, evicted %s", evicted)
            else:
                self._boards.move_to_end(key)
            return board

    def peek(self, session_key: str, page: str):
        with self._lock:
            return self._boards.get((session_key, page))

    def discard(self, session_key: str, pages=None):
        """Drop this session's boards (only ``pages`` when given); next use reloads."""
        with self._lock:
            for key in [k for k in self._boards if k[0] == session_key]:
                if pages is None or key[1] in pages:
                    del self._boards[key]

    def __len__(self):
        with self._lock:
            return len(self._boards)
