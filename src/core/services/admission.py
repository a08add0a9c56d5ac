"""Admission policy: which sections apply to a loaded subscription.

Pure functions of the freshly loaded entity. Nothing here reads section state,
so the same entity always yields the same admitted set.
"""

from __future__ import annotations

from datetime import datetime, timezone

from core.domain.constants import (
    ActivationErrorCode,
    BillingType,
    Section,
    SessionVariant,
    SubscriptionAction,
    SubscriptionType,
)
from core.domain.models import ActionError, Subscription


def is_enterprise(entity: Subscription) -> bool:
    return entity.type is SubscriptionType.ENTERPRISE


def shows_billing(entity: Subscription) -> bool:
    return entity.billing_type is not BillingType.NONE


def shows_payment_method(entity: Subscription) -> bool:
    return entity.billing_type is BillingType.CARD


def shows_pricing_terms(entity: Subscription) -> bool:
    return entity.has_custom_pricing


def shows_billing_address(entity: Subscription) -> bool:
    return entity.billing_type is BillingType.INVOICE


def admitted_sections(entity: Subscription, variant: SessionVariant) -> frozenset[Section]:
    """Explicit set of sections to fetch and show for `entity`."""

    admitted = {Section.PAYMENTS, Section.MANAGERS}

    if is_enterprise(entity):
        admitted.update({Section.USAGE, Section.DOMAINS, Section.USERS})

    if variant is SessionVariant.PROFILE:
        if shows_billing(entity):
            admitted.add(Section.PAYMENT_METHOD)
        return frozenset(admitted)

    if shows_payment_method(entity):
        admitted.add(Section.PAYMENT_METHOD)
    if shows_pricing_terms(entity):
        admitted.add(Section.PRICING_TERMS)
    if shows_billing_address(entity):
        admitted.add(Section.CUSTOMER_INFO)
    return frozenset(admitted)


def activation_errors(entity: Subscription) -> list[ActionError]:
    state = entity.action_state(SubscriptionAction.ACTIVATE)
    if state is None or not state.errors:
        return []
    return list(state.errors)


def activation_blockers(entity: Subscription) -> list[ActionError]:
    """Activation errors other than the tolerated missing initial billing record."""

    return [
        error
        for error in activation_errors(entity)
        if error.code != ActivationErrorCode.NO_BILLING_RECORD.value
    ]


def is_ready_to_activate(entity: Subscription) -> bool:
    state = entity.action_state(SubscriptionAction.ACTIVATE)
    return state is not None and state.allowed and not activation_blockers(entity)


def should_arm_activation_poll(entity: Subscription, now: datetime) -> bool:
    """Whether the activation poll should be scheduled for `entity`.

    Requires activation to be allowed with no blocking errors, and a scheduled
    activation timestamp strictly in the future.
    """

    if entity.activation_date is None or not is_ready_to_activate(entity):
        return False
    return as_utc(entity.activation_date) > as_utc(now)


def as_utc(value: datetime) -> datetime:
    """Naive timestamps from the APIs are UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
