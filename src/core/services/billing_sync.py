"""Shared billing-record slots and their single-writer synchronizer.

The host application shows the current and the upcoming billing record outside
the manage view. Those two slots live in a `BillingRecordStore` injected into
the session; only the writer bound to the session's active token may change
them.
"""

from __future__ import annotations

import logging
from typing import Callable

from core.domain.models import BillingRecord, Page, PaginationState
from core.services.cancellation import CancellationToken

logger = logging.getLogger(__name__)

StoreListener = Callable[["BillingRecordStore"], None]


class BillingRecordStore:
    """Cross-view cache with two slots: `current` and `upcoming`.

    `revision` only moves when a slot actually changes, so republishing the same
    pair is not a new write.
    """

    def __init__(self) -> None:
        self.current: BillingRecord | None = None
        self.upcoming: BillingRecord | None = None
        self.revision = 0
        self._owner: BillingRecordWriter | None = None
        self._listeners: list[StoreListener] = []

    def writer(self, token: CancellationToken) -> BillingRecordWriter:
        """Hand out the write capability; any previous writer loses it."""

        writer = BillingRecordWriter(self, token)
        self._owner = writer
        return writer

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _write(
        self,
        writer: BillingRecordWriter,
        current: BillingRecord | None,
        upcoming: BillingRecord | None,
    ) -> bool:
        if writer is not self._owner or not writer.token.active:
            logger.debug("Ignoring billing-record write from a stale session (%r)", writer.token)
            return False
        if current == self.current and upcoming == self.upcoming:
            return False

        self.current = current
        self.upcoming = upcoming
        self.revision += 1
        for listener in list(self._listeners):
            listener(self)
        return True


class BillingRecordWriter:
    __slots__ = ("_store", "token")

    def __init__(self, store: BillingRecordStore, token: CancellationToken) -> None:
        self._store = store
        self.token = token

    def publish(self, current: BillingRecord | None, upcoming: BillingRecord | None) -> bool:
        return self._store._write(self, current, upcoming)

    def clear(self) -> bool:
        return self._store._write(self, None, None)


def find_current_and_upcoming(
    records: list[BillingRecord],
) -> tuple[BillingRecord | None, BillingRecord | None]:
    current = next((record for record in records if record.is_current), None)
    upcoming = next((record for record in records if record.is_upcoming), None)
    return current, upcoming


class BillingRecordSynchronizer:
    """Keeps the shared slots consistent with the payments section outcome.

    - Payments success on page 1: publish the pair found on the page (a missing
      record publishes `None` for its slot).
    - Payments failure while on page 1, or root-load failure: clear both slots.
    - Any other page leaves the slots alone.
    """

    def __init__(self, writer: BillingRecordWriter) -> None:
        self._writer = writer

    def on_payments_success(self, page: Page[BillingRecord]) -> None:
        if page.current_page != 1:
            return
        current, upcoming = find_current_and_upcoming(page.data)
        self._writer.publish(current, upcoming)

    def on_payments_failure(self, requested: PaginationState) -> None:
        if requested.current_page == 1:
            self._writer.clear()

    def on_root_failure(self) -> None:
        self._writer.clear()
