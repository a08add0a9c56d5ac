"""Subscription manage-view session orchestration.

A session loads everything the manage view of one subscription needs. It owns
the lifecycle (open, reload, identifier change, close), evaluates the admission
policy from each freshly loaded subscription, sequences the section fetchers,
and keeps side-effects (notifications, status changes) behind hooks so the same
orchestration serves the CLI, tests and any future entry-point.

Load sequence after the subscription itself has loaded:
1. usage (best-effort);
2. domains + users, concurrently, for enterprise subscriptions;
3. managers, payments, payment method (plus pricing terms and customer info in
   the unified view), concurrently.

Each group fully settles before the next one starts, and a failing member never
cancels its siblings.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Awaitable, Callable, Coroutine, Union

from core.config import AppSettings
from core.domain.constants import PAGINATED_SECTIONS, Section, SessionVariant, ViewStatus
from core.domain.errors import ApiError
from core.domain.models import (
    BillingRecord,
    CustomerInfo,
    Domain,
    Page,
    PaginationState,
    PaymentMethodDetails,
    PricingTerms,
    Subscription,
    SubscriptionUser,
    UsageSummary,
)
from core.interfaces.subscription_api import DirectoryApi, SubscriptionApi
from core.services.activation_polling import ActivationPoller, Clock, utc_now
from core.services.admission import admitted_sections, should_arm_activation_poll
from core.services.billing_sync import BillingRecordStore, BillingRecordSynchronizer
from core.services.cancellation import CancellationToken
from core.services.enrichment import enrich_subscription_users
from core.services.sections import DetailFetcher, DetailSection, PagedFetcher, PagedSection

logger = logging.getLogger(__name__)

NOT_FOUND_STATUSES: frozenset[int] = frozenset({403, 404})

POLL_FAILURE_MESSAGE = "Failed to refresh subscription status"

Fetcher = Union[PagedFetcher[Any], DetailFetcher[Any]]


@dataclass
class SessionHooks:
    """Optional callbacks for UI layers (notifications, status changes)."""

    warning: Callable[[str], None] | None = None
    status_changed: Callable[[ViewStatus], None] | None = None


@dataclass
class SessionState:
    """Everything the manage view renders for one subscription."""

    uuid: str
    variant: SessionVariant
    payments: PagedSection[BillingRecord]
    managers: PagedSection[SubscriptionUser]
    domains: PagedSection[Domain]
    users: PagedSection[SubscriptionUser]
    usage: DetailSection[UsageSummary] = field(default_factory=lambda: DetailSection(Section.USAGE))
    payment_method: DetailSection[PaymentMethodDetails] = field(
        default_factory=lambda: DetailSection(Section.PAYMENT_METHOD)
    )
    pricing_terms: DetailSection[PricingTerms] = field(
        default_factory=lambda: DetailSection(Section.PRICING_TERMS)
    )
    customer_info: DetailSection[CustomerInfo] = field(
        default_factory=lambda: DetailSection(Section.CUSTOMER_INFO)
    )
    status: ViewStatus = ViewStatus.LOADING
    entity: Subscription | None = None
    error: Exception | None = None
    reload_count: int = 0
    admitted: frozenset[Section] = frozenset()
    notifications: list[str] = field(default_factory=list)

    @classmethod
    def create(cls, uuid: str, variant: SessionVariant, settings: AppSettings) -> SessionState:
        default = PaginationState(current_page=1, page_size=settings.default_page_size)
        return cls(
            uuid=uuid,
            variant=variant,
            payments=PagedSection(Section.PAYMENTS, default),
            managers=PagedSection(Section.MANAGERS, default),
            domains=PagedSection(Section.DOMAINS, default),
            users=PagedSection(
                Section.USERS,
                PaginationState(current_page=1, page_size=settings.users_page_size),
            ),
        )

    def paged(self, section: Section) -> PagedSection[Any]:
        paged = {
            Section.PAYMENTS: self.payments,
            Section.MANAGERS: self.managers,
            Section.DOMAINS: self.domains,
            Section.USERS: self.users,
        }
        try:
            return paged[section]
        except KeyError:
            raise ValueError(f"{section.value} is not a paginated section") from None

    def detail(self, section: Section) -> DetailSection[Any]:
        details = {
            Section.USAGE: self.usage,
            Section.PAYMENT_METHOD: self.payment_method,
            Section.PRICING_TERMS: self.pricing_terms,
            Section.CUSTOMER_INFO: self.customer_info,
        }
        try:
            return details[section]
        except KeyError:
            raise ValueError(f"{section.value} is not a detail section") from None

    def is_section_loading(self, section: Section) -> bool:
        if section.is_paginated:
            return self.paged(section).is_loading
        return self.detail(section).is_loading

    def is_section_busy(self, section: Section) -> bool:
        """Root-aware loading flag: the session is loading or the section is."""

        return self.status is ViewStatus.LOADING or self.is_section_loading(section)


def classify_root_failure(exc: BaseException) -> ViewStatus:
    """403/404 mean "not found" for the viewer; anything else is a server error."""

    if isinstance(exc, ApiError) and exc.status in NOT_FOUND_STATUSES:
        return ViewStatus.NOT_FOUND
    return ViewStatus.SERVER_ERROR


class SubscriptionSession:
    """Data orchestrator for one subscription manage view.

    Usage:
        async with SubscriptionSession(uuid, api=client, directory=directory) as session:
            await session.wait_idle()
            session.state.payments.items
    """

    def __init__(
        self,
        uuid: str,
        *,
        api: SubscriptionApi,
        variant: SessionVariant = SessionVariant.UNIFIED,
        directory: DirectoryApi | None = None,
        billing_store: BillingRecordStore | None = None,
        settings: AppSettings | None = None,
        hooks: SessionHooks | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._api = api
        self._variant = variant
        self._directory = directory
        self._settings = settings or AppSettings()
        self._hooks = hooks or SessionHooks()
        self._clock = clock
        self.billing_store = billing_store or BillingRecordStore()

        self._token = CancellationToken()
        self._token.cancel()
        self._sync: BillingRecordSynchronizer | None = None
        self._load_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._last_refetch: asyncio.Task[bool] | None = None
        self._poller = ActivationPoller(
            fetch_entity=lambda: self._api.get_subscription(self.state.uuid),
            on_divergence=self._escalate,
            interval_seconds=self._settings.poll_interval_seconds,
            on_tick_failure=self._poll_tick_failed,
            clock=clock,
        )

        self.state = self._new_state(uuid)
        self._fetchers = self._build_fetchers()

    # -- lifecycle ---------------------------------------------------------

    async def __aenter__(self) -> SubscriptionSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def variant(self) -> SessionVariant:
        return self._variant

    @property
    def is_polling(self) -> bool:
        return self._poller.is_polling

    @property
    def poller(self) -> ActivationPoller:
        return self._poller

    async def open(self) -> SessionState:
        """Start the first load and wait for the root entity and all groups."""

        # A reload started meanwhile cancels this load; that is not an error here.
        await asyncio.wait({self._start_load()})
        return self.state

    def reload(self) -> asyncio.Task[None]:
        """Explicit reload: bump the reload counter and start a fresh load."""

        self.state.reload_count += 1
        logger.info("Reloading subscription %s (reload #%d)", self.state.uuid, self.state.reload_count)
        return self._start_load()

    def change_identifier(self, uuid: str) -> asyncio.Task[None] | None:
        """Tear the current session down and start one for `uuid`."""

        if uuid == self.state.uuid:
            return None
        self._teardown()
        self.state = self._new_state(uuid)
        self._fetchers = self._build_fetchers()
        return self._start_load()

    async def close(self) -> None:
        pending = self._teardown()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait until the load and every pagination refetch have settled."""

        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # -- pagination ----------------------------------------------------------

    def update_pagination(
        self,
        section: Section,
        *,
        current_page: int | None = None,
        page_size: int | None = None,
    ) -> asyncio.Task[bool] | None:
        """Change a section's page or page size; returns the refetch task, if any."""

        self._last_refetch = None
        self.state.paged(section).controller.update(current_page=current_page, page_size=page_size)
        return self._last_refetch

    def _on_pagination_change(self, section: Section, pagination: PaginationState) -> None:
        # Sections only refetch once the entity of the current load is accepted.
        if self.state.status is not ViewStatus.READY or section not in self.state.admitted:
            logger.debug("Pagination of %s changed before the session is ready; not fetching", section.value)
            return
        logger.debug(
            "Refetching %s (page %d, size %d)",
            section.value,
            pagination.current_page,
            pagination.page_size,
        )
        self._last_refetch = self._spawn(self._refetch_page(section, self._token, pagination))

    # -- internals -----------------------------------------------------------

    def _new_state(self, uuid: str) -> SessionState:
        state = SessionState.create(uuid, self._variant, self._settings)
        for section in PAGINATED_SECTIONS:
            state.paged(section).controller.subscribe(partial(self._on_pagination_change, section))
        return state

    def _build_fetchers(self) -> dict[Section, Fetcher]:
        state = self.state
        api = self._api
        uuid = state.uuid

        def admitted(section: Section) -> Callable[[], bool]:
            return lambda: section in self.state.admitted

        fetchers: dict[Section, Fetcher] = {
            Section.USAGE: DetailFetcher(
                state.usage,
                fetch=partial(api.get_usage, uuid),
                is_admitted=admitted(Section.USAGE),
            ),
            Section.PAYMENTS: PagedFetcher(
                state.payments,
                fetch=partial(api.get_billing_records, uuid),
                on_success=self._payments_succeeded,
                on_failure=self._payments_failed,
                is_admitted=admitted(Section.PAYMENTS),
            ),
            Section.MANAGERS: PagedFetcher(
                state.managers,
                fetch=partial(api.get_managers, uuid),
                post_process=self._enrichment_for(state.managers),
                is_admitted=admitted(Section.MANAGERS),
            ),
            Section.DOMAINS: PagedFetcher(
                state.domains,
                fetch=partial(api.get_domains, uuid),
                is_admitted=admitted(Section.DOMAINS),
            ),
            Section.USERS: PagedFetcher(
                state.users,
                fetch=partial(api.get_users, uuid),
                post_process=self._enrichment_for(state.users),
                is_admitted=admitted(Section.USERS),
            ),
            Section.PAYMENT_METHOD: DetailFetcher(
                state.payment_method,
                fetch=partial(api.get_payment_method, uuid),
                is_admitted=admitted(Section.PAYMENT_METHOD),
            ),
        }

        if self._variant is SessionVariant.UNIFIED:
            fetchers[Section.PRICING_TERMS] = DetailFetcher(
                state.pricing_terms,
                fetch=partial(api.get_pricing_terms, uuid),  # type: ignore[attr-defined]
                missing_is_empty=True,
                is_admitted=admitted(Section.PRICING_TERMS),
            )
            fetchers[Section.CUSTOMER_INFO] = DetailFetcher(
                state.customer_info,
                fetch=partial(api.get_customer_info, uuid),  # type: ignore[attr-defined]
                is_admitted=admitted(Section.CUSTOMER_INFO),
            )
        return fetchers

    def _enrichment_for(
        self,
        section: PagedSection[SubscriptionUser],
    ) -> Callable[[list[SubscriptionUser]], Awaitable[list[SubscriptionUser]]] | None:
        directory = self._directory
        if not self._variant.enriches_users or directory is None:
            return None

        async def enrich(records: list[SubscriptionUser]) -> list[SubscriptionUser]:
            return await enrich_subscription_users(
                records,
                directory=directory,
                fields=self._settings.directory_fields,
                page_size=section.pagination.page_size,
            )

        return enrich

    def _payments_succeeded(self, page: Page[BillingRecord]) -> None:
        if self._sync is not None:
            self._sync.on_payments_success(page)

    def _payments_failed(self, requested: PaginationState) -> None:
        if self._sync is not None:
            self._sync.on_payments_failure(requested)

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _teardown(self) -> list[asyncio.Task[Any]]:
        """Invalidate everything tied to the current load."""

        self._token.cancel()
        pending: list[asyncio.Task[Any]] = []
        current = asyncio.current_task()
        poll = self._poller.cancel()
        if poll is not None and poll is not current:
            pending.append(poll)
        for task in list(self._tasks):
            if task is current or task.done():
                continue
            task.cancel()
            pending.append(task)
        self._load_task = None
        return pending

    def _start_load(self) -> asyncio.Task[None]:
        self._teardown()
        token = self._token = CancellationToken()
        self.state.notifications.clear()
        if self._variant.publishes_billing_records:
            self._sync = BillingRecordSynchronizer(self.billing_store.writer(token))
        else:
            self._sync = None
        self._set_status(ViewStatus.LOADING)
        self._load_task = self._spawn(self._load(token))
        return self._load_task

    def _set_status(self, status: ViewStatus) -> None:
        if self.state.status is status:
            return
        self.state.status = status
        if self._hooks.status_changed:
            self._hooks.status_changed(status)

    def _notify(self, message: str) -> None:
        self.state.notifications.append(message)
        if self._hooks.warning:
            self._hooks.warning(message)

    async def _fetch(self, section: Section, token: CancellationToken) -> bool:
        fetcher = self._fetchers.get(section)
        if fetcher is None:
            return False
        return await fetcher.run(token=token, notify=self._notify)

    async def _refetch_page(self, section: Section, token: CancellationToken, pagination: PaginationState) -> bool:
        fetcher = self._fetchers[section]
        if not isinstance(fetcher, PagedFetcher):
            raise ValueError(f"{section.value} is not a paginated section")
        return await fetcher.run(token=token, notify=self._notify, pagination=pagination)

    async def _load(self, token: CancellationToken) -> None:
        uuid = self.state.uuid
        logger.info("Loading subscription %s (%s view)", uuid, self._variant.value)

        try:
            entity = await self._api.get_subscription(uuid)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if token.active:
                self._root_failed(exc)
            return

        if not token.active:
            return

        state = self.state
        state.entity = entity
        state.error = None
        state.admitted = admitted_sections(entity, self._variant)
        self._set_status(ViewStatus.READY)
        logger.debug(
            "Subscription %s admitted sections: %s",
            uuid,
            ", ".join(sorted(section.value for section in state.admitted)),
        )

        if self._variant.polls_activation and should_arm_activation_poll(entity, self._clock()):
            self._poller.arm(entity)

        await self._fetch(Section.USAGE, token)

        if Section.DOMAINS in state.admitted or Section.USERS in state.admitted:
            await asyncio.gather(
                self._fetch(Section.DOMAINS, token),
                self._fetch(Section.USERS, token),
            )

        final_group = [Section.MANAGERS, Section.PAYMENTS, Section.PAYMENT_METHOD]
        if self._variant is SessionVariant.UNIFIED:
            final_group += [Section.PRICING_TERMS, Section.CUSTOMER_INFO]
        await asyncio.gather(*(self._fetch(section, token) for section in final_group))

        if token.active:
            logger.info("Subscription %s loaded", uuid)

    def _root_failed(self, exc: Exception) -> None:
        status = classify_root_failure(exc)
        if isinstance(exc, ApiError):
            logger.warning("Loading subscription %s failed: %s (status=%s)", self.state.uuid, exc, exc.status)
        else:
            logger.error("Loading subscription %s failed unexpectedly", self.state.uuid, exc_info=exc)

        self.state.entity = None
        self.state.admitted = frozenset()
        self.state.error = exc
        if self._sync is not None:
            self._sync.on_root_failure()
        self._set_status(status)

    def _poll_tick_failed(self, exc: Exception) -> None:
        if self._token.active:
            self._notify(POLL_FAILURE_MESSAGE)

    def _escalate(self) -> None:
        if not self._token.active:
            return
        self.reload()
