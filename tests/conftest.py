"""Shared pytest fixtures and in-memory collaborators.

`FakeSubscriptionApi` implements both subscription API protocols in memory:
- paginated endpoints slice the configured record lists;
- `fail(name, exc)` makes every call of a method raise;
- `hold(name)` makes the next call of a method wait on an event, so tests can
  interleave concurrent requests deterministically.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence

import pytest

from core.config import AppSettings
from core.domain.models import (
    BillingRecord,
    CustomerInfo,
    DirectoryUser,
    Domain,
    Page,
    PaginationState,
    PaymentMethodDetails,
    PricingTerms,
    Subscription,
    SubscriptionUser,
    UsageSummary,
)

UPDATED_AT = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_subscription(**overrides: Any) -> Subscription:
    data: dict[str, Any] = {
        "uuid": "sub-1",
        "type": "enterprise",
        "status": "active",
        "billing_type": "card",
        "updated_at": UPDATED_AT,
    }
    data.update(overrides)
    return Subscription.model_validate(data)


def draft_ready_to_activate(activation_date: datetime, **overrides: Any) -> Subscription:
    return make_subscription(
        status="draft",
        activation_date=activation_date,
        actions=[{"action": "activate", "allowed": True, "errors": None}],
        **overrides,
    )


def in_seconds(seconds: float) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


def billing_records(count: int, *, current: int | None = None, upcoming: int | None = None) -> list[BillingRecord]:
    return [
        BillingRecord(uuid=f"br-{i}", is_current=i == current, is_upcoming=i == upcoming)
        for i in range(1, count + 1)
    ]


def users(*uuids: str) -> list[SubscriptionUser]:
    return [SubscriptionUser(user_uuid=uuid, role="member") for uuid in uuids]


class FakeSubscriptionApi:
    def __init__(self, subscription: Subscription | None = None) -> None:
        self.subscription = subscription or make_subscription()
        self.subscription_responses: deque[Subscription] = deque()
        self.records: dict[str, list[Any]] = {
            "get_billing_records": billing_records(3, current=1, upcoming=2),
            "get_managers": users("m-1", "m-2"),
            "get_domains": [Domain(domain="example.com", verified=True)],
            "get_users": users("u-1", "u-2", "u-3"),
        }
        self.usage = UsageSummary(renewal_index=1.2, active_users=8, licensed_users=10)
        self.payment_method = PaymentMethodDetails(type="card", brand="visa", last4="4242")
        self.pricing_terms = PricingTerms(price_per_seat=12.5, currency="EUR")
        self.customer_info = CustomerInfo(name="ACME", email="billing@acme.test")
        self.calls: list[tuple[str, Any]] = []
        self.completed: list[str] = []
        self._errors: dict[str, BaseException] = {}
        self._holds: dict[str, deque[asyncio.Event]] = defaultdict(deque)

    # -- test controls ---------------------------------------------------------

    def fail(self, name: str, exc: BaseException) -> None:
        self._errors[name] = exc

    def recover(self, name: str) -> None:
        self._errors.pop(name, None)

    def hold(self, name: str) -> asyncio.Event:
        event = asyncio.Event()
        self._holds[name].append(event)
        return event

    def called(self, name: str) -> list[Any]:
        return [arg for call, arg in self.calls if call == name]

    async def _call(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        if self._holds[name]:
            await self._holds[name].popleft().wait()
        await asyncio.sleep(0)
        error = self._errors.get(name)
        if error is not None:
            raise error

    async def _page(self, name: str, pagination: PaginationState) -> Page[Any]:
        await self._call(name, pagination)
        items = self.records[name]
        start = (pagination.current_page - 1) * pagination.page_size
        total_pages = max(1, -(-len(items) // pagination.page_size))
        self.completed.append(name)
        return Page[Any](
            data=items[start : start + pagination.page_size],
            current_page=pagination.current_page,
            page_size=pagination.page_size,
            total_count=len(items),
            total_pages=total_pages,
        )

    # -- SubscriptionApi / UnifiedSubscriptionApi --------------------------------

    async def get_subscription(self, uuid: str) -> Subscription:
        await self._call("get_subscription", uuid)
        if self.subscription_responses:
            return self.subscription_responses.popleft()
        return self.subscription

    async def get_usage(self, uuid: str) -> UsageSummary:
        await self._call("get_usage", uuid)
        self.completed.append("get_usage")
        return self.usage

    async def get_billing_records(self, uuid: str, pagination: PaginationState) -> Page[BillingRecord]:
        return await self._page("get_billing_records", pagination)

    async def get_managers(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]:
        return await self._page("get_managers", pagination)

    async def get_domains(self, uuid: str, pagination: PaginationState) -> Page[Domain]:
        return await self._page("get_domains", pagination)

    async def get_users(self, uuid: str, pagination: PaginationState) -> Page[SubscriptionUser]:
        return await self._page("get_users", pagination)

    async def get_payment_method(self, uuid: str) -> PaymentMethodDetails:
        await self._call("get_payment_method", uuid)
        self.completed.append("get_payment_method")
        return self.payment_method

    async def get_pricing_terms(self, uuid: str) -> PricingTerms:
        await self._call("get_pricing_terms", uuid)
        self.completed.append("get_pricing_terms")
        return self.pricing_terms

    async def get_customer_info(self, uuid: str) -> CustomerInfo:
        await self._call("get_customer_info", uuid)
        self.completed.append("get_customer_info")
        return self.customer_info


class FakeDirectory:
    def __init__(self, known: Sequence[DirectoryUser] = ()) -> None:
        self.known = {user.uuid: user for user in known}
        self.searches: list[dict[str, Any]] = []
        self.error: BaseException | None = None

    async def search_users(
        self,
        uuids: Sequence[str],
        *,
        fields: Sequence[str],
        page_size: int,
    ) -> list[DirectoryUser]:
        self.searches.append({"uuids": list(uuids), "fields": list(fields), "page_size": page_size})
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return [self.known[uuid] for uuid in uuids if uuid in self.known]


@pytest.fixture
def settings() -> AppSettings:
    """Settings isolated from any `.env` on the machine running the tests."""

    return AppSettings(
        _env_file=None,
        default_page_size=10,
        users_page_size=15,
        poll_interval_seconds=0.01,
    )


@pytest.fixture
def api() -> FakeSubscriptionApi:
    return FakeSubscriptionApi()


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(
        [
            DirectoryUser(uuid="m-2", email="m2@acme.test", job_info={"title": "CFO"}),
            DirectoryUser(uuid="u-1", email="u1@acme.test"),
        ]
    )
