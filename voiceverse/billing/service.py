"""
Subscription Service

Subscription lifecycle on top of Stripe: customers, checkout, promo
codes, cancellation, payment methods and billing details. Every method
works inside the caller's database session.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from ..database.models import (
    BillingInfo,
    PaymentMethod,
    PromoCode,
    Subscription,
    SubscriptionStatus,
    User,
)
from ..database.repositories import (
    BillingInfoRepository,
    InvoiceRepository,
    PaymentMethodRepository,
    PromoCodeRepository,
    SubscriptionRepository,
)
from ..notifications.email import EmailService
from .plans import SubscriptionPlan, build_plans, stripe_field
from .reconciliation import PRO_STATUSES, invoice_fields, map_invoice_status, subscription_fields
from .stripe_client import BillingError, StripeClient, apply_discount


logger = logging.getLogger(__name__)


class PromoCodeError(BillingError):
    """Promo code cannot be redeemed."""

    def __init__(self, message: str, code: str = "promo_invalid"):
        super().__init__(message, code)


class SubscriptionService:
    """
    Subscription lifecycle management.

    Creates Stripe customers on demand, runs checkout and keeps the local
    subscription, invoice and payment method rows in step.
    """

    def __init__(
        self,
        stripe: StripeClient,
        email: Optional[EmailService] = None,
        plans: Optional[List[SubscriptionPlan]] = None,
    ):
        self.stripe = stripe
        self.email = email or EmailService()
        self.plans = plans if plans is not None else build_plans()

    async def get_or_create_customer(self, session: AsyncSession, user: User) -> str:
        if user.stripe_customer_id:
            return user.stripe_customer_id
        user.stripe_customer_id = await self.stripe.create_customer(
            email=user.email,
            name=user.display_name or user.username,
            user_id=user.id,
        )
        await session.flush()
        return user.stripe_customer_id

    # -------------------------------------------------------------------------
    # Promo codes
    # -------------------------------------------------------------------------

    async def validate_promo_code(
        self,
        session: AsyncSession,
        code: str,
        user: Optional[User] = None,
    ) -> PromoCode:
        """
        Check that a promo code can be redeemed.

        Raises:
            PromoCodeError: ``promo_not_found`` for unknown or inactive
                codes, ``promo_invalid`` when the code cannot be used.
        """
        promos = PromoCodeRepository(session)
        promo = await promos.get_by_code(code)
        if promo is None:
            raise PromoCodeError("Invalid promo code", "promo_not_found")
        if promo.valid_until and datetime.utcnow() > promo.valid_until:
            raise PromoCodeError("Promo code has expired")
        if promo.max_redemptions and promo.times_redeemed >= promo.max_redemptions:
            raise PromoCodeError("Promo code has reached maximum redemptions")
        if user is not None and await promos.has_used(promo.id, user.id):
            raise PromoCodeError("You have already used this promo code")
        return promo

    async def resolve_coupon(self, session: AsyncSession, promo: Optional[PromoCode]) -> Any:
        """Find the Stripe coupon of a validated promo code, creating it if needed."""
        if promo is None:
            return None

        coupon = await self.stripe.get_or_create_coupon(
            promo.code,
            percent_off=promo.discount_percent,
            amount_off=promo.discount_amount,
            currency=promo.currency,
        )
        coupon_id = stripe_field(coupon, "id")
        if coupon_id and promo.stripe_coupon_id != coupon_id:
            promo.stripe_coupon_id = coupon_id
            await session.flush()
        return coupon

    # -------------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------------

    async def create_payment_intent(
        self,
        session: AsyncSession,
        user: User,
        price_id: str,
        promo_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        promo = await self.validate_promo_code(session, promo_code, user) if promo_code else None
        customer_id = await self.get_or_create_customer(session, user)
        price = await self.stripe.retrieve_price(price_id)
        coupon = await self.resolve_coupon(session, promo)

        amount = apply_discount(int(stripe_field(price, "unit_amount") or 0), coupon)
        currency = stripe_field(price, "currency") or "usd"
        intent = await self.stripe.create_payment_intent(
            amount,
            currency,
            customer_id,
            metadata={"userId": user.id, "priceId": price_id, "promoCode": promo_code or ""},
        )
        return {
            "clientSecret": stripe_field(intent, "client_secret"),
            "amount": amount,
            "currency": currency,
        }

    async def create_subscription(
        self,
        session: AsyncSession,
        user: User,
        price_id: str,
        payment_method_id: str,
        promo_code: Optional[str] = None,
    ) -> Tuple[Subscription, Any]:
        """
        Subscribe a user to a price.

        Returns the stored subscription row and the Stripe subscription.

        Raises:
            PromoCodeError: The promo code cannot be redeemed by this
                user. Nothing is sent to Stripe in that case.
        """
        promo = await self.validate_promo_code(session, promo_code, user) if promo_code else None
        customer_id = await self.get_or_create_customer(session, user)
        await self.stripe.attach_payment_method(customer_id, payment_method_id, make_default=True)

        coupon = await self.resolve_coupon(session, promo)
        stripe_subscription = await self.stripe.create_subscription(
            customer_id,
            price_id,
            user.id,
            coupon_id=stripe_field(coupon, "id"),
        )

        subscription = await self.record_subscription(session, user, stripe_subscription)

        latest_invoice = stripe_field(stripe_subscription, "latest_invoice")
        if latest_invoice is not None and not isinstance(latest_invoice, str):
            await InvoiceRepository(session).upsert(
                stripe_field(latest_invoice, "id"),
                status=map_invoice_status(stripe_field(latest_invoice, "status")).value,
                **invoice_fields(latest_invoice, subscription, "amount_paid"),
            )

        status = stripe_field(stripe_subscription, "status")
        if promo is not None and status != "incomplete":
            await PromoCodeRepository(session).record_usage(promo, user.id, subscription.stripe_subscription_id)

        logger.info(f"User {user.id} subscribed to {price_id} ({status})")
        await self.email.send_subscription_confirmation(user.email, subscription)
        return subscription, stripe_subscription

    async def record_subscription(self, session: AsyncSession, user: User, stripe_subscription: Any) -> Subscription:
        fields = subscription_fields(stripe_subscription)
        subscription = await SubscriptionRepository(session).upsert_for_user(user.id, **fields)
        user.is_pro = stripe_field(stripe_subscription, "status") in PRO_STATUSES
        await session.flush()
        return subscription

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def get_active(self, session: AsyncSession, user: User) -> Optional[Subscription]:
        subscription = await SubscriptionRepository(session).get_by_user(user.id)
        if subscription is None:
            return None
        if subscription.status not in (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value):
            return None
        return subscription

    async def cancel(self, session: AsyncSession, user: User) -> Optional[Subscription]:
        """Schedule cancellation at period end. Returns None when there is nothing to cancel."""
        subscription = await self.get_active(session, user)
        if subscription is None:
            return None
        await self.stripe.set_cancel_at_period_end(subscription.stripe_subscription_id, True)
        subscription.cancel_at_period_end = True
        await session.flush()
        logger.info(f"Subscription {subscription.stripe_subscription_id} will cancel at period end")
        await self.email.send_subscription_canceled(user.email, subscription)
        return subscription

    async def reactivate(self, session: AsyncSession, user: User) -> Optional[Subscription]:
        subscription = await SubscriptionRepository(session).get_by_user(user.id)
        if subscription is None or not subscription.cancel_at_period_end:
            return None
        await self.stripe.set_cancel_at_period_end(subscription.stripe_subscription_id, False)
        subscription.cancel_at_period_end = False
        await session.flush()
        logger.info(f"Subscription {subscription.stripe_subscription_id} reactivated")
        return subscription

    # -------------------------------------------------------------------------
    # Payment methods & billing details
    # -------------------------------------------------------------------------

    async def add_payment_method(self, session: AsyncSession, user: User, payment_method_id: str) -> PaymentMethod:
        """Attach a payment method to the user's customer and make it the default."""
        if not user.stripe_customer_id:
            raise BillingError("Customer not found", "customer_not_found")

        await self.stripe.attach_payment_method(user.stripe_customer_id, payment_method_id, make_default=True)
        stripe_method = await self.stripe.retrieve_payment_method(payment_method_id)
        card = stripe_field(stripe_method, "card")

        methods = PaymentMethodRepository(session)
        method = await methods.create(
            user_id=user.id,
            stripe_payment_method_id=payment_method_id,
            type=str(stripe_field(stripe_method, "type") or "card").upper(),
            last4=stripe_field(card, "last4"),
            exp_month=stripe_field(card, "exp_month"),
            exp_year=stripe_field(card, "exp_year"),
            brand=stripe_field(card, "brand"),
            is_default=True,
        )
        await methods.clear_default(user.id, keep_id=method.id)
        return method

    async def update_billing_info(self, session: AsyncSession, user: User, **fields: Any) -> BillingInfo:
        info = await BillingInfoRepository(session).upsert(user.id, **fields)

        if user.stripe_customer_id:
            await self.stripe.update_customer(
                user.stripe_customer_id,
                name=info.name,
                address={
                    "line1": info.address_line1,
                    "line2": info.address_line2,
                    "city": info.city,
                    "state": info.state,
                    "postal_code": info.postal_code,
                    "country": info.country,
                },
            )
        return info


__all__ = [
    "PromoCodeError",
    "SubscriptionService",
]
