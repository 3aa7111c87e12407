"""Debounced, coalescing queue of remote write intents.

Local writes enqueue an intent per key.  Repeated intents for the same key
collapse into the latest one, and the whole batch is pushed to the remote
once no new intent has arrived for :data:`DEBOUNCE_SECONDS`.

Debounce is a two-state machine driven by a :class:`Scheduler`::

    Idle --enqueue--> Pending(deadline) --enqueue--> Pending(new deadline)
    Pending --timer fires / flush()--> Idle

A flush drains the map before its first ``await``, so a second flush
started while one is in flight only sees intents enqueued after the
drain.  Failures are logged and counted; nothing is retried.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any, Literal

from tabsync.core.config import DEBOUNCE_SECONDS
from tabsync.storage.backend import StorageBackend
from tabsync.sync.scheduler import AsyncioScheduler, Scheduler, TimerHandle

logger = logging.getLogger(__name__)

Operation = Literal["set", "remove"]


@dataclass(frozen=True)
class Intent:
    operation: Operation
    key: str
    value: Any = None


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Pending:
    deadline: float


DebounceState = Idle | Pending

IDLE = Idle()


@dataclass(frozen=True)
class FlushResult:
    applied: int = 0
    failed: int = 0


def _map_key(operation: Operation, key: str) -> str:
    return f"{operation}_{key}"


class SyncQueue:
    """Batches remote writes behind a quiet-period timer."""

    def __init__(
        self,
        remote: StorageBackend,
        *,
        scheduler: Scheduler | None = None,
        delay: float = DEBOUNCE_SECONDS,
    ) -> None:
        self.remote = remote
        self.scheduler = scheduler or AsyncioScheduler()
        self.delay = delay
        self._intents: dict[str, Intent] = {}
        self._state: DebounceState = IDLE
        self._timer: TimerHandle | None = None
        self._flushes: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> DebounceState:
        return self._state

    @property
    def pending(self) -> list[Intent]:
        """Snapshot of the queued intents in flush order."""
        return list(self._intents.values())

    def __len__(self) -> int:
        return len(self._intents)

    # ------------------------------------------------------------------
    # Enqueue
    # ------------------------------------------------------------------

    def enqueue_set(self, key: str, value: Any) -> None:
        self._enqueue(Intent("set", key, copy.deepcopy(value)))

    def enqueue_remove(self, key: str) -> None:
        self._enqueue(Intent("remove", key))

    def _enqueue(self, intent: Intent) -> None:
        # A set and a remove of the same key cannot both survive: only the
        # later one reflects the caller's last intent for that key.
        opposite: Operation = "remove" if intent.operation == "set" else "set"
        self._intents.pop(_map_key(opposite, intent.key), None)
        # Assigning an existing dict key keeps its original position.
        self._intents[_map_key(intent.operation, intent.key)] = intent
        logger.debug("Queued %s of %r (%d pending)", intent.operation, intent.key, len(self._intents))
        self._restart_timer()

    # ------------------------------------------------------------------
    # Debounce state machine
    # ------------------------------------------------------------------

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._state = IDLE

    def _restart_timer(self) -> None:
        self._cancel_timer()
        self._timer = self.scheduler.call_later(self.delay, self._on_timer)
        self._state = Pending(self.scheduler.now() + self.delay)

    def _on_timer(self) -> None:
        self._timer = None
        self._state = IDLE
        task = asyncio.ensure_future(self.flush())
        self._flushes.add(task)
        task.add_done_callback(self._flushes.discard)

    # ------------------------------------------------------------------
    # Flush
    # ------------------------------------------------------------------

    def _drain(self) -> list[Intent]:
        intents = list(self._intents.values())
        self._intents.clear()
        self._cancel_timer()
        return intents

    async def _apply(self, intent: Intent) -> bool:
        if intent.operation == "set":
            result = await self.remote.set(intent.key, intent.value)
        else:
            result = await self.remote.remove(intent.key)
        return bool(result)

    async def flush(self) -> FlushResult:
        """Push every queued intent to the remote now, in insertion order."""
        intents = self._drain()
        if not intents:
            return FlushResult()

        applied = failed = 0
        for intent in intents:
            try:
                ok = await self._apply(intent)
            except Exception as exc:
                logger.warning("Remote %s of %r raised: %s", intent.operation, intent.key, exc)
                ok = False
            else:
                if not ok:
                    logger.warning("Remote %s of %r failed", intent.operation, intent.key)
            if ok:
                applied += 1
                logger.debug("Pushed %s of %r", intent.operation, intent.key)
            else:
                failed += 1

        logger.info("Flushed %d intent(s): %d applied, %d failed", len(intents), applied, failed)
        return FlushResult(applied=applied, failed=failed)

    def discard(self) -> int:
        """Drop every queued intent and stop the timer.  Returns the count dropped."""
        dropped = len(self._drain())
        if dropped:
            logger.debug("Discarded %d queued intent(s)", dropped)
        return dropped

    async def wait_idle(self) -> None:
        """Wait for flushes started by the debounce timer to finish."""
        while self._flushes:
            await asyncio.gather(*list(self._flushes), return_exceptions=True)
