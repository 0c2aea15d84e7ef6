# painmap/drafts/autosave.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from painmap.drafts.codec import DraftSnapshot, encode_draft
from painmap.drafts.store import DraftStore
from painmap.wizard.schema import utcnow

logger = logging.getLogger(__name__)


SavedCallback = Callable[[int, datetime], None]
SavingCallback = Callable[[bool], None]


class DeferredTask:
    """
    At most one pending call. Scheduling again cancels the pending one.

    Once the delay has elapsed the call is detached from the slot, so a
    later `schedule` or `cancel` never interrupts work already under way.
    """

    def __init__(self):
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, func: Callable[[], Awaitable[None]]) -> bool:
        """
        Returns False, with nothing scheduled, when no event loop is running.
        """
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False
        self._task = loop.create_task(self._run_later(delay, func))
        return True

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run_later(self, delay: float, func: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        self._task = None
        await func()


class AutosaveScheduler:
    """
    Debounced persistence of the draft.

      - on_dirty(snapshot): persist `snapshot` once things go quiet for
        `delay` seconds. Each new signal restarts the wait.
      - flush(): persist right away, dropping the pending wait.
      - save_draft_now(snapshot): persist now; overlapping calls share one
        in-flight write.

    Storage failures are logged and swallowed: the in-memory draft stays
    authoritative and the next dirty signal simply tries again.
    """

    def __init__(
        self,
        store: DraftStore,
        key: str,
        delay: float = 0.75,
        indicator_floor: float = 0.3,
        on_saved: Optional[SavedCallback] = None,
        on_saving_changed: Optional[SavingCallback] = None,
    ):
        self.store = store
        self.key = key
        self.delay = delay
        self.indicator_floor = indicator_floor
        self.on_saved = on_saved
        self.on_saving_changed = on_saving_changed

        self.is_saving = False
        self._timer = DeferredTask()
        self._pending_snapshot: Optional[DraftSnapshot] = None
        self._in_flight: Optional[asyncio.Future] = None
        self._in_flight_revision: Optional[int] = None
        self._indicator_reset: Optional[asyncio.TimerHandle] = None
        # Bumped by cancel(); a write that finishes under an older
        # generation was overtaken by a clear and must not survive it.
        self._generation = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def pending(self) -> bool:
        return self._timer.pending

    def on_dirty(self, snapshot: DraftSnapshot) -> None:
        self._pending_snapshot = snapshot
        if not self._timer.schedule(self.delay, self._fire):
            logger.debug("No running event loop; draft save waits for flush()")

    async def flush(self, snapshot: Optional[DraftSnapshot] = None) -> Optional[datetime]:
        self._timer.cancel()
        target = snapshot or self._pending_snapshot
        self._pending_snapshot = None
        if target is None:
            return None
        return await self.save_draft_now(target)

    async def save_draft_now(self, snapshot: DraftSnapshot) -> Optional[datetime]:
        """
        Persist `snapshot`. Returns the save timestamp, or None on failure.

        A call for the revision already being written joins that write. A
        newer revision waits for it to finish and is then written in turn.
        """
        generation = self._generation
        while self._in_flight is not None and not self._in_flight.done():
            if self._in_flight_revision == snapshot.revision:
                return await asyncio.shield(self._in_flight)
            await asyncio.shield(self._in_flight)
            if generation != self._generation:
                return None

        self._in_flight_revision = snapshot.revision
        self._in_flight = asyncio.ensure_future(self._persist(snapshot))
        return await asyncio.shield(self._in_flight)

    def cancel(self) -> None:
        """
        Drop any pending save. Used when the draft is cleared or the
        session goes away.
        """
        self._timer.cancel()
        self._pending_snapshot = None
        self._generation += 1

    async def aclose(self) -> None:
        # Unlike cancel(), a write already under way is allowed to land.
        self._timer.cancel()
        self._pending_snapshot = None
        if self._in_flight is not None and not self._in_flight.done():
            await asyncio.shield(self._in_flight)
        if self._indicator_reset is not None:
            self._indicator_reset.cancel()
            self._indicator_reset = None
        self._set_saving(False)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fire(self) -> None:
        snapshot = self._pending_snapshot
        self._pending_snapshot = None
        if snapshot is not None:
            await self.save_draft_now(snapshot)

    async def _persist(self, snapshot: DraftSnapshot) -> Optional[datetime]:
        loop = asyncio.get_running_loop()
        generation = self._generation
        if self._indicator_reset is not None:
            self._indicator_reset.cancel()
            self._indicator_reset = None
        self._set_saving(True)

        saved_at: Optional[datetime] = None
        try:
            stamp = utcnow()
            blob = encode_draft(snapshot, stamp)
            await asyncio.to_thread(self.store.set, self.key, blob)
            if generation != self._generation:
                logger.info("Draft was cleared while saving; removing stale copy")
                await asyncio.to_thread(self.store.remove, self.key)
            else:
                saved_at = stamp
        except Exception:
            logger.exception("Failed to save draft under key %s", self.key)
        finally:
            # Keep the indicator up a little longer so very fast storage
            # does not make it flicker.
            self._indicator_reset = loop.call_later(
                self.indicator_floor, self._set_saving, False
            )

        if saved_at is not None and self.on_saved is not None:
            self.on_saved(snapshot.revision, saved_at)
        return saved_at

    def _set_saving(self, value: bool) -> None:
        if value == self.is_saving:
            return
        self.is_saving = value
        if self.on_saving_changed is not None:
            self.on_saving_changed(value)
