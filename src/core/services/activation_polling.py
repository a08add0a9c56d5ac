"""Poll-and-escalate controller for scheduled activations.

Once a draft subscription is ready to be activated at a future timestamp, the
server flips it on its own. The controller:
- waits (one-shot) until the activation timestamp, never before it;
- then polls the root entity at a fixed interval;
- on the first `updated_at` that differs from the value captured at arm time,
  stops polling and asks the session to reload.

A failed tick is reported through `on_tick_failure` and polling goes on.

Only one poll per session can be armed or running at a time.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

from core.domain.models import Subscription
from core.services.admission import as_utc

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ActivationPoller:
    def __init__(
        self,
        *,
        fetch_entity: Callable[[], Awaitable[Subscription]],
        on_divergence: Callable[[], None],
        interval_seconds: float,
        on_tick_failure: Callable[[Exception], None] | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._fetch_entity = fetch_entity
        self._on_divergence = on_divergence
        self._on_tick_failure = on_tick_failure
        self._interval = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._polling = False
        self.activation_at: datetime | None = None
        self.baseline_updated_at: datetime | None = None
        self.ticks = 0

    @property
    def is_armed(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_polling(self) -> bool:
        return self._polling

    def arm(self, entity: Subscription) -> bool:
        """Schedule the poll for `entity.activation_date`. No-op if already armed."""

        if self.is_armed or entity.activation_date is None:
            return False

        self.activation_at = as_utc(entity.activation_date)
        self.baseline_updated_at = entity.updated_at
        self.ticks = 0
        self._task = asyncio.get_running_loop().create_task(
            self._run(self.activation_at, entity.updated_at),
            name=f"activation-poll:{entity.uuid}",
        )
        logger.info("Activation poll armed for %s at %s", entity.uuid, self.activation_at.isoformat())
        return True

    def cancel(self) -> asyncio.Task[None] | None:
        """Stop the poll; returns the cancelled task so callers can await it."""

        task, self._task = self._task, None
        self._polling = False
        if task is None or task.done():
            return None
        task.cancel()
        return task

    async def _wait_until(self, when: datetime) -> None:
        # The event loop may wake slightly early; sleep again until `when` is reached.
        while True:
            remaining = (when - self._clock()).total_seconds()
            if remaining <= 0:
                return
            await asyncio.sleep(remaining)

    async def _run(self, activation_at: datetime, baseline: datetime | None) -> None:
        await self._wait_until(activation_at)
        self._polling = True
        try:
            while True:
                self.ticks += 1
                try:
                    latest = await self._fetch_entity()
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    logger.warning("Activation poll tick %d failed: %s", self.ticks, exc)
                    if self._on_tick_failure is not None:
                        self._on_tick_failure(exc)
                else:
                    if latest.updated_at != baseline:
                        logger.info(
                            "Subscription %s changed server-side (%s -> %s); reloading",
                            latest.uuid,
                            baseline,
                            latest.updated_at,
                        )
                        self._polling = False
                        self._task = None
                        self._on_divergence()
                        return
                await asyncio.sleep(self._interval)
        finally:
            self._polling = False
