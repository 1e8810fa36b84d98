"""
Unit Tests for Billing

Plans, discounts, Stripe status mapping, the subscription service and
webhook reconciliation.
"""

import time
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from voiceverse.billing import (
    BillingError,
    PromoCodeError,
    StripeClient,
    StripeConfig,
    SubscriptionService,
    WebhookReconciler,
    WebhookSignatureError,
    apply_discount,
    billing_period_from_price,
    build_plans,
    map_invoice_status,
    map_subscription_status,
    plan_for_price,
    plan_type_from_price,
)
from voiceverse.billing.plans import stripe_field
from voiceverse.billing.reconciliation import subscription_fields
from voiceverse.database.models import (
    BillingPeriod,
    InvoiceStatus,
    PlanType,
    SubscriptionStatus,
)
from voiceverse.database.repositories import (
    InvoiceRepository,
    PromoCodeRepository,
    SubscriptionRepository,
    UserRepository,
)
from voiceverse.notifications.email import EmailConfig, EmailService


def stripe_subscription(status="active", customer="cus_123", **overrides):
    now = int(time.time())
    data = {
        "id": "sub_123",
        "customer": customer,
        "status": status,
        "current_period_start": now,
        "current_period_end": now + 30 * 86400,
        "cancel_at_period_end": False,
        "items": {
            "data": [
                {"price": {"id": "price_pm", "metadata": {"planType": "PRO"}, "recurring": {"interval": "month"}}}
            ]
        },
    }
    data.update(overrides)
    return data


@pytest.fixture
def email():
    return EmailService(EmailConfig())


# =============================================================================
# Plans & Pricing
# =============================================================================


class TestPlans:

    def test_four_plans(self):
        plans = {plan.plan_id: plan for plan in build_plans()}
        assert set(plans) == {"pro_monthly", "pro_yearly", "premium_monthly", "premium_yearly"}
        assert plans["pro_monthly"].price == 29.99
        assert plans["pro_yearly"].price == 290
        assert plans["premium_monthly"].price == 49.99
        assert plans["premium_yearly"].price == 490

    def test_price_ids_from_config(self):
        plans = build_plans({"premium_yearly": "price_py"})
        assert plan_for_price(plans, "price_py").plan_id == "premium_yearly"
        assert plan_for_price(plans, "price_unknown") is None

    def test_plan_to_dict(self):
        plan = build_plans({"pro_monthly": "price_pm"})[0]
        data = plan.to_dict()
        assert data["id"] == "pro_monthly"
        assert data["stripePriceId"] == "price_pm"
        assert data["features"]

    def test_billing_period(self):
        plans = {plan.plan_id: plan for plan in build_plans()}
        assert plans["pro_yearly"].billing_period == BillingPeriod.YEARLY
        assert plans["pro_monthly"].billing_period == BillingPeriod.MONTHLY

    def test_plan_type_from_price(self):
        assert plan_type_from_price({"metadata": {"planType": "premium"}}) == PlanType.PREMIUM
        assert plan_type_from_price({"metadata": {"planType": "gold"}}) == PlanType.PRO
        assert plan_type_from_price(None) == PlanType.PRO

    def test_billing_period_from_price(self):
        assert billing_period_from_price({"recurring": {"interval": "year"}}) == BillingPeriod.YEARLY
        assert billing_period_from_price({"recurring": {"interval": "month"}}) == BillingPeriod.MONTHLY


class TestApplyDiscount:

    def test_no_coupon(self):
        assert apply_discount(2999, None) == 2999

    def test_percent_off(self):
        assert apply_discount(2999, {"percent_off": 20}) == 2399

    def test_amount_off(self):
        assert apply_discount(2999, {"amount_off": 1000}) == 1999

    def test_never_negative(self):
        assert apply_discount(500, {"amount_off": 1000}) == 0


class TestStripeField:

    def test_dict_and_object(self):
        obj = MagicMock(spec=["id"])
        obj.id = "x"
        assert stripe_field({"id": "x"}, "id") == "x"
        assert stripe_field(obj, "id") == "x"
        assert stripe_field(obj, "missing") is None
        assert stripe_field(None, "id") is None


class TestStatusMaps:

    def test_subscription_statuses(self):
        assert map_subscription_status("trialing") == SubscriptionStatus.TRIALING
        assert map_subscription_status("past_due") == SubscriptionStatus.PAST_DUE
        assert map_subscription_status("incomplete") == SubscriptionStatus.ACTIVE
        assert map_subscription_status(None) == SubscriptionStatus.ACTIVE

    def test_invoice_statuses(self):
        assert map_invoice_status("paid") == InvoiceStatus.PAID
        assert map_invoice_status("draft") == InvoiceStatus.OPEN

    def test_subscription_fields(self):
        fields = subscription_fields(stripe_subscription(status="trialing"))
        assert fields["stripe_subscription_id"] == "sub_123"
        assert fields["stripe_price_id"] == "price_pm"
        assert fields["status"] == SubscriptionStatus.TRIALING.value
        assert fields["plan_type"] == PlanType.PRO.value
        assert fields["billing_period"] == BillingPeriod.MONTHLY.value

    def test_subscription_fields_default_period(self):
        fields = subscription_fields({"id": "sub_1", "customer": "cus_1", "status": "active"})
        assert fields["current_period_end"] > datetime.utcnow() + timedelta(days=29)


class TestStripeClient:

    def test_not_configured(self):
        client = StripeClient(StripeConfig())
        assert not client.is_configured
        with pytest.raises(BillingError):
            client._get_stripe()

    def test_webhook_requires_secret(self):
        client = StripeClient(StripeConfig(api_key="sk_test_123"))
        with pytest.raises(WebhookSignatureError):
            client.construct_event(b"{}", "sig")


# =============================================================================
# Subscription Service
# =============================================================================


class TestSubscriptionService:

    @pytest.fixture
    def stripe(self):
        stripe = AsyncMock(spec=StripeClient)
        stripe.create_customer.return_value = "cus_123"
        stripe.create_subscription.return_value = stripe_subscription(
            latest_invoice={"id": "in_1", "status": "paid", "amount_paid": 2999, "currency": "usd"},
        )
        stripe.get_or_create_coupon.return_value = {"id": "WELCOME20", "percent_off": 20}
        stripe.retrieve_price.return_value = {"id": "price_pm", "unit_amount": 2999, "currency": "usd"}
        stripe.create_payment_intent.return_value = {"client_secret": "pi_secret"}
        return stripe

    @pytest.fixture
    def service(self, stripe, email):
        return SubscriptionService(stripe, email, build_plans())

    @pytest.mark.asyncio
    async def test_create_subscription(self, db_session, test_user, service, stripe):
        user = await UserRepository(db_session).get_by_id(test_user.id)
        subscription, _ = await service.create_subscription(db_session, user, "price_pm", "pm_1")

        assert subscription.stripe_subscription_id == "sub_123"
        assert subscription.status == SubscriptionStatus.ACTIVE.value
        assert user.is_pro is True
        assert user.stripe_customer_id == "cus_123"
        stripe.attach_payment_method.assert_awaited_once_with("cus_123", "pm_1", make_default=True)

        invoice = await InvoiceRepository(db_session).get_by_stripe_id("in_1")
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.amount == pytest.approx(29.99)

    @pytest.mark.asyncio
    async def test_promo_usage_recorded(self, db_session, test_user, service, stripe):
        promos = PromoCodeRepository(db_session)
        promo = await promos.create(code="WELCOME20", discount_percent=20, is_active=True)
        user = await UserRepository(db_session).get_by_id(test_user.id)

        await service.create_subscription(db_session, user, "price_pm", "pm_1", promo_code="WELCOME20")

        assert promo.times_redeemed == 1
        assert await promos.has_used(promo.id, user.id)
        assert stripe.create_subscription.await_args.kwargs["coupon_id"] == "WELCOME20"

    @pytest.mark.asyncio
    async def test_payment_intent_discount(self, db_session, test_user, service):
        await PromoCodeRepository(db_session).create(code="WELCOME20", discount_percent=20, is_active=True)
        user = await UserRepository(db_session).get_by_id(test_user.id)

        intent = await service.create_payment_intent(db_session, user, "price_pm", "WELCOME20")
        assert intent == {"clientSecret": "pi_secret", "amount": 2399, "currency": "usd"}

    @pytest.mark.asyncio
    async def test_validate_promo_code(self, db_session, test_user, service):
        promos = PromoCodeRepository(db_session)
        await promos.create(code="OLD", discount_percent=10, valid_until=datetime.utcnow() - timedelta(days=1))
        await promos.create(code="FULL", discount_percent=10, max_redemptions=1, times_redeemed=1)

        with pytest.raises(PromoCodeError) as exc:
            await service.validate_promo_code(db_session, "NOPE")
        assert exc.value.code == "promo_not_found"

        with pytest.raises(PromoCodeError, match="expired"):
            await service.validate_promo_code(db_session, "OLD")

        with pytest.raises(PromoCodeError, match="maximum redemptions"):
            await service.validate_promo_code(db_session, "FULL")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "fields, message",
        [
            ({"valid_until": datetime.utcnow() - timedelta(days=1)}, "expired"),
            ({"max_redemptions": 5, "times_redeemed": 5}, "maximum redemptions"),
        ],
    )
    async def test_checkout_rejects_unusable_code(self, db_session, test_user, service, stripe, fields, message):
        await PromoCodeRepository(db_session).create(code="OLD50", discount_percent=50, **fields)
        user = await UserRepository(db_session).get_by_id(test_user.id)

        with pytest.raises(PromoCodeError, match=message):
            await service.create_payment_intent(db_session, user, "price_pm", "OLD50")
        with pytest.raises(PromoCodeError, match=message):
            await service.create_subscription(db_session, user, "price_pm", "pm_1", promo_code="OLD50")

        stripe.create_customer.assert_not_awaited()
        stripe.get_or_create_coupon.assert_not_awaited()
        stripe.create_payment_intent.assert_not_awaited()
        stripe.create_subscription.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_checkout_rejects_reused_code(self, db_session, test_user, service, stripe):
        promos = PromoCodeRepository(db_session)
        promo = await promos.create(code="WELCOME20", discount_percent=20, is_active=True)
        user = await UserRepository(db_session).get_by_id(test_user.id)
        await service.create_subscription(db_session, user, "price_pm", "pm_1", promo_code="WELCOME20")
        stripe.create_subscription.reset_mock()

        with pytest.raises(PromoCodeError, match="already used"):
            await service.create_subscription(db_session, user, "price_pm", "pm_1", promo_code="WELCOME20")

        stripe.create_subscription.assert_not_awaited()
        assert promo.times_redeemed == 1

    @pytest.mark.asyncio
    async def test_cancel_and_reactivate(self, db_session, test_user, service, stripe):
        user = await UserRepository(db_session).get_by_id(test_user.id)
        assert await service.cancel(db_session, user) is None

        await service.create_subscription(db_session, user, "price_pm", "pm_1")
        canceled = await service.cancel(db_session, user)
        assert canceled.cancel_at_period_end is True
        stripe.set_cancel_at_period_end.assert_awaited_with("sub_123", True)

        reactivated = await service.reactivate(db_session, user)
        assert reactivated.cancel_at_period_end is False
        assert await service.reactivate(db_session, user) is None

    @pytest.mark.asyncio
    async def test_payment_method_requires_customer(self, db_session, test_user, service):
        user = await UserRepository(db_session).get_by_id(test_user.id)
        with pytest.raises(BillingError) as exc:
            await service.add_payment_method(db_session, user, "pm_1")
        assert exc.value.code == "customer_not_found"


# =============================================================================
# Webhook Reconciliation
# =============================================================================


class TestWebhookReconciler:

    @pytest.fixture
    def reconciler(self, email):
        return WebhookReconciler(email)

    async def _customer(self, db_session, test_user):
        user = await UserRepository(db_session).get_by_id(test_user.id)
        user.stripe_customer_id = "cus_123"
        await db_session.flush()
        return user

    @pytest.mark.asyncio
    async def test_subscription_created(self, db_session, test_user, reconciler):
        user = await self._customer(db_session, test_user)
        event = {"type": "customer.subscription.created", "data": {"object": stripe_subscription()}}

        assert await reconciler.handle_event(db_session, event) is True
        subscription = await SubscriptionRepository(db_session).get_by_user(user.id)
        assert subscription.stripe_subscription_id == "sub_123"
        assert user.is_pro is True

    @pytest.mark.asyncio
    async def test_subscription_past_due_clears_pro(self, db_session, test_user, reconciler):
        user = await self._customer(db_session, test_user)
        await reconciler.handle_event(
            db_session, {"type": "customer.subscription.updated", "data": {"object": stripe_subscription()}}
        )
        await reconciler.handle_event(
            db_session,
            {"type": "customer.subscription.updated", "data": {"object": stripe_subscription(status="past_due")}},
        )
        subscription = await SubscriptionRepository(db_session).get_by_user(user.id)
        assert subscription.status == SubscriptionStatus.PAST_DUE.value
        assert user.is_pro is False

    @pytest.mark.asyncio
    async def test_subscription_deleted(self, db_session, test_user, reconciler):
        user = await self._customer(db_session, test_user)
        await reconciler.handle_event(
            db_session, {"type": "customer.subscription.created", "data": {"object": stripe_subscription()}}
        )
        await reconciler.handle_event(
            db_session, {"type": "customer.subscription.deleted", "data": {"object": stripe_subscription()}}
        )
        subscription = await SubscriptionRepository(db_session).get_by_user(user.id)
        assert subscription.status == SubscriptionStatus.CANCELED.value
        assert user.is_pro is False

    @pytest.mark.asyncio
    async def test_invoice_events(self, db_session, test_user, reconciler):
        await self._customer(db_session, test_user)
        await reconciler.handle_event(
            db_session, {"type": "customer.subscription.created", "data": {"object": stripe_subscription()}}
        )

        paid = {"id": "in_paid", "subscription": "sub_123", "amount_paid": 2999, "currency": "usd"}
        await reconciler.handle_event(db_session, {"type": "invoice.payment_succeeded", "data": {"object": paid}})
        invoice = await InvoiceRepository(db_session).get_by_stripe_id("in_paid")
        assert invoice.status == InvoiceStatus.PAID.value

        failed = {"id": "in_failed", "subscription": "sub_123", "amount_due": 2999, "status": "open"}
        await reconciler.handle_event(db_session, {"type": "invoice.payment_failed", "data": {"object": failed}})
        invoice = await InvoiceRepository(db_session).get_by_stripe_id("in_failed")
        assert invoice.status == InvoiceStatus.OPEN.value
        assert invoice.amount == pytest.approx(29.99)
        subscription = await SubscriptionRepository(db_session).get_by_stripe_id("sub_123")
        assert subscription.status == SubscriptionStatus.PAST_DUE.value

    @pytest.mark.asyncio
    async def test_unhandled_event(self, db_session, reconciler):
        assert await reconciler.handle_event(db_session, {"type": "charge.refunded", "data": {"object": {}}}) is False
