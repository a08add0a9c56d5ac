"""Section state and section fetchers.

A section is one named sub-resource of a subscription. Paginated sections keep
`{items, pagination, is_loading}`; detail sections keep `{value, is_loading}`.

Fetcher rules:
- One network call per run, issued with the pagination snapshot taken at issue
  time.
- On success `items` and `pagination` are replaced together.
- On failure prior data is kept and a non-fatal notification names the section.
- The loading flag is released on every exit path.
- Only the latest-issued request of a section may write; stale responses are
  dropped.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Iterator, TypeVar

from core.domain.constants import Section
from core.domain.errors import ApiError
from core.domain.models import Page, PaginationState
from core.services.cancellation import CancellationToken
from core.services.pagination import PaginationController

logger = logging.getLogger(__name__)

T = TypeVar("T")

Notify = Callable[[str], None]


def failure_message(section: Section) -> str:
    return f"Failed to load {section.label} data"


class _SectionBase:
    def __init__(self, section: Section) -> None:
        self.section = section
        self._inflight = 0
        self._issued = 0

    @property
    def is_loading(self) -> bool:
        return self._inflight > 0

    @contextmanager
    def loading(self) -> Iterator[None]:
        """Hold the loading flag for the duration of one fetch."""

        self._inflight += 1
        try:
            yield
        finally:
            self._inflight -= 1

    def next_request(self) -> int:
        self._issued += 1
        return self._issued

    def is_latest(self, request_id: int) -> bool:
        return request_id == self._issued


class PagedSection(_SectionBase, Generic[T]):
    def __init__(self, section: Section, pagination: PaginationState) -> None:
        super().__init__(section)
        self.items: list[T] = []
        self.controller = PaginationController(pagination)

    @property
    def pagination(self) -> PaginationState:
        return self.controller.state

    def apply(self, items: list[T], pagination: PaginationState) -> None:
        self.items = list(items)
        self.controller.replace(pagination)

    def __repr__(self) -> str:
        return (
            f"PagedSection({self.section.value}, items={len(self.items)}, "
            f"page={self.pagination.current_page}, loading={self.is_loading})"
        )


class DetailSection(_SectionBase, Generic[T]):
    def __init__(self, section: Section) -> None:
        super().__init__(section)
        self.value: T | None = None

    def __repr__(self) -> str:
        return f"DetailSection({self.section.value}, loaded={self.value is not None}, loading={self.is_loading})"


def _admitted_always() -> bool:
    return True


@dataclass
class PagedFetcher(Generic[T]):
    """Fetcher for one paginated section.

    `post_process` runs between the primary call and publication (enrichment);
    `on_success` / `on_failure` run after the section has been updated (shared
    state synchronization).
    """

    state: PagedSection[T]
    fetch: Callable[[PaginationState], Awaitable[Page[T]]]
    post_process: Callable[[list[T]], Awaitable[list[T]]] | None = None
    on_success: Callable[[Page[T]], None] | None = None
    on_failure: Callable[[PaginationState], None] | None = None
    is_admitted: Callable[[], bool] = _admitted_always

    async def run(
        self,
        *,
        token: CancellationToken,
        notify: Notify,
        pagination: PaginationState | None = None,
    ) -> bool:
        """Fetch one page; `pagination` defaults to the section's current state."""

        if not self.is_admitted():
            return False

        section = self.state.section
        snapshot = pagination or self.state.pagination
        request_id = self.state.next_request()

        with self.state.loading():
            try:
                page = await self.fetch(snapshot)
                items = list(page.data)
                if self.post_process is not None:
                    items = await self.post_process(items)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not token.active or not self.state.is_latest(request_id):
                    return False
                _log_failure(section, exc)
                notify(failure_message(section))
                if self.on_failure is not None:
                    self.on_failure(snapshot)
                return False

            if not token.active or not self.state.is_latest(request_id):
                logger.debug("Dropping stale %s response (page %s)", section.value, snapshot.current_page)
                return False

            self.state.apply(items, page.pagination())
            if self.on_success is not None:
                self.on_success(page)
            return True


@dataclass
class DetailFetcher(Generic[T]):
    """Fetcher for one single-value section.

    With `missing_is_empty`, a 404 is a legitimate empty state: the value is
    cleared and nothing is notified.
    """

    state: DetailSection[T]
    fetch: Callable[[], Awaitable[T]]
    missing_is_empty: bool = False
    is_admitted: Callable[[], bool] = _admitted_always

    async def run(self, *, token: CancellationToken, notify: Notify) -> bool:
        if not self.is_admitted():
            return False

        section = self.state.section
        request_id = self.state.next_request()

        with self.state.loading():
            try:
                value = await self.fetch()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                if not token.active or not self.state.is_latest(request_id):
                    return False
                if self.missing_is_empty and isinstance(exc, ApiError) and exc.is_not_found:
                    logger.debug("No %s for this subscription", section.label)
                    self.state.value = None
                    return True
                _log_failure(section, exc)
                notify(failure_message(section))
                return False

            if not token.active or not self.state.is_latest(request_id):
                return False
            self.state.value = value
            return True


def _log_failure(section: Section, exc: Exception) -> None:
    if isinstance(exc, ApiError):
        logger.warning("Loading %s failed: %s (status=%s)", section.value, exc, exc.status)
    else:
        logger.warning("Loading %s failed unexpectedly", section.value, exc_info=exc)
