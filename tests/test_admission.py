"""Tests for the admission policy."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_subscription
from core.domain.constants import Section, SessionVariant, SubscriptionType
from core.services.admission import (
    activation_blockers,
    admitted_sections,
    is_ready_to_activate,
    should_arm_activation_poll,
    shows_billing,
    shows_billing_address,
    shows_payment_method,
    shows_pricing_terms,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestSectionGates:
    """Each attribute gate is independent."""

    @pytest.mark.parametrize(
        ("billing_type", "billing", "payment_method", "billing_address"),
        [
            ("card", True, True, False),
            ("invoice", True, False, True),
            ("none", False, False, False),
        ],
    )
    def test_billing_type_gates(self, billing_type, billing, payment_method, billing_address):
        entity = make_subscription(billing_type=billing_type)

        assert shows_billing(entity) is billing
        assert shows_payment_method(entity) is payment_method
        assert shows_billing_address(entity) is billing_address

    def test_pricing_terms_gate_follows_custom_pricing_flag(self):
        assert shows_pricing_terms(make_subscription(has_custom_pricing=True))
        assert not shows_pricing_terms(make_subscription(has_custom_pricing=False))


class TestAdmittedSections:
    def test_standard_subscription_never_admits_enterprise_sections(self):
        entity = make_subscription(type="standard")

        for variant in SessionVariant:
            admitted = admitted_sections(entity, variant)
            assert Section.DOMAINS not in admitted
            assert Section.USERS not in admitted
            assert Section.USAGE not in admitted

    def test_enterprise_admits_domains_users_and_usage(self):
        admitted = admitted_sections(make_subscription(type="enterprise"), SessionVariant.UNIFIED)

        assert {Section.DOMAINS, Section.USERS, Section.USAGE} <= admitted

    def test_category_round_trip_is_deterministic(self):
        enterprise = make_subscription(type="enterprise")
        standard = enterprise.model_copy(update={"type": SubscriptionType.STANDARD})
        back = standard.model_copy(update={"type": SubscriptionType.ENTERPRISE})

        assert admitted_sections(back, SessionVariant.UNIFIED) == admitted_sections(
            enterprise, SessionVariant.UNIFIED
        )
        assert admitted_sections(standard, SessionVariant.UNIFIED) == frozenset(
            {Section.PAYMENTS, Section.MANAGERS, Section.PAYMENT_METHOD}
        )

    def test_profile_gates_payment_method_on_billing(self):
        invoice = make_subscription(type="standard", billing_type="invoice")

        assert Section.PAYMENT_METHOD in admitted_sections(invoice, SessionVariant.PROFILE)
        assert Section.PAYMENT_METHOD not in admitted_sections(invoice, SessionVariant.UNIFIED)

    def test_profile_never_admits_unified_only_sections(self):
        entity = make_subscription(billing_type="invoice", has_custom_pricing=True)

        admitted = admitted_sections(entity, SessionVariant.PROFILE)

        assert Section.PRICING_TERMS not in admitted
        assert Section.CUSTOMER_INFO not in admitted

    def test_unified_admits_pricing_terms_and_billing_address(self):
        entity = make_subscription(billing_type="invoice", has_custom_pricing=True)

        admitted = admitted_sections(entity, SessionVariant.UNIFIED)

        assert Section.PRICING_TERMS in admitted
        assert Section.CUSTOMER_INFO in admitted


class TestActivationGate:
    @staticmethod
    def _draft(*, allowed=True, errors=None, activation_date=NOW + timedelta(hours=1)):
        return make_subscription(
            status="draft",
            activation_date=activation_date,
            actions=[{"action": "activate", "allowed": allowed, "errors": errors}],
        )

    def test_arms_for_future_activation(self):
        assert should_arm_activation_poll(self._draft(), NOW)

    def test_missing_billing_record_is_tolerated(self):
        entity = self._draft(errors=[{"code": "NO_BILLING_RECORD"}])

        assert activation_blockers(entity) == []
        assert is_ready_to_activate(entity)
        assert should_arm_activation_poll(entity, NOW)

    def test_other_errors_block(self):
        entity = self._draft(errors=[{"code": "NO_BILLING_RECORD"}, {"code": "NO_MANAGER"}])

        assert [error.code for error in activation_blockers(entity)] == ["NO_MANAGER"]
        assert not should_arm_activation_poll(entity, NOW)

    def test_not_allowed_does_not_arm(self):
        assert not should_arm_activation_poll(self._draft(allowed=False), NOW)

    def test_past_or_missing_activation_does_not_arm(self):
        assert not should_arm_activation_poll(self._draft(activation_date=NOW - timedelta(seconds=1)), NOW)
        assert not should_arm_activation_poll(self._draft(activation_date=None), NOW)

    def test_naive_activation_date_is_treated_as_utc(self):
        entity = self._draft(activation_date=datetime(2026, 3, 1, 13, 0))

        assert should_arm_activation_poll(entity, NOW)

    def test_no_activate_action_does_not_arm(self):
        entity = make_subscription(status="draft", activation_date=NOW + timedelta(hours=1))

        assert not should_arm_activation_poll(entity, NOW)
