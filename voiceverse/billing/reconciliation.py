"""
Webhook Reconciliation

Applies Stripe webhook events to the local subscription and invoice
rows, keeps the user's Pro flag in step with the subscription status,
and sends the matching emails.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..database.models import InvoiceStatus, Subscription, SubscriptionStatus
from ..database.repositories import (
    InvoiceRepository,
    SubscriptionRepository,
    UserRepository,
)
from ..notifications.email import EmailService
from .plans import billing_period_from_price, plan_type_from_price, stripe_field


logger = logging.getLogger(__name__)


SUBSCRIPTION_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "unpaid": SubscriptionStatus.UNPAID,
    "trialing": SubscriptionStatus.TRIALING,
}

INVOICE_STATUS_MAP = {
    "paid": InvoiceStatus.PAID,
    "open": InvoiceStatus.OPEN,
    "void": InvoiceStatus.VOID,
    "uncollectible": InvoiceStatus.UNCOLLECTIBLE,
}

PRO_STATUSES = ("active", "trialing")


def map_subscription_status(stripe_status: Optional[str]) -> SubscriptionStatus:
    return SUBSCRIPTION_STATUS_MAP.get(stripe_status or "", SubscriptionStatus.ACTIVE)


def map_invoice_status(stripe_status: Optional[str]) -> InvoiceStatus:
    return INVOICE_STATUS_MAP.get(stripe_status or "", InvoiceStatus.OPEN)


def from_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return datetime.utcfromtimestamp(int(value))


def first_price(stripe_subscription: Any) -> Any:
    """Price of the first subscription item, if any."""
    items = stripe_field(stripe_field(stripe_subscription, "items"), "data") or []
    if not items:
        return None
    return stripe_field(items[0], "price")


def subscription_fields(stripe_subscription: Any) -> Dict[str, Any]:
    """Column values for a Subscription row taken from a Stripe subscription."""
    price = first_price(stripe_subscription)
    period_start = from_timestamp(stripe_field(stripe_subscription, "current_period_start"))
    period_end = from_timestamp(stripe_field(stripe_subscription, "current_period_end"))
    now = datetime.utcnow()

    return {
        "stripe_subscription_id": stripe_field(stripe_subscription, "id"),
        "stripe_customer_id": stripe_field(stripe_subscription, "customer"),
        "stripe_price_id": stripe_field(price, "id"),
        "status": map_subscription_status(stripe_field(stripe_subscription, "status")).value,
        "plan_type": plan_type_from_price(price).value,
        "billing_period": billing_period_from_price(price).value,
        "current_period_start": period_start or now,
        "current_period_end": period_end or now + timedelta(days=30),
        "cancel_at_period_end": bool(stripe_field(stripe_subscription, "cancel_at_period_end")),
    }


def invoice_fields(stripe_invoice: Any, subscription: Subscription, amount_key: str) -> Dict[str, Any]:
    return {
        "user_id": subscription.user_id,
        "subscription_id": subscription.id,
        "amount": (stripe_field(stripe_invoice, amount_key) or 0) / 100,
        "currency": stripe_field(stripe_invoice, "currency") or "usd",
        "invoice_url": stripe_field(stripe_invoice, "hosted_invoice_url"),
        "invoice_pdf": stripe_field(stripe_invoice, "invoice_pdf"),
        "period_start": from_timestamp(stripe_field(stripe_invoice, "period_start")),
        "period_end": from_timestamp(stripe_field(stripe_invoice, "period_end")),
    }


class WebhookReconciler:
    """
    Dispatches Stripe webhook events to their handlers.

    Handled events:
        customer.subscription.created / updated: upsert the subscription
        customer.subscription.deleted: mark it canceled
        invoice.payment_succeeded: record a paid invoice, email a receipt
        invoice.payment_failed: mark the subscription past due, email
    """

    def __init__(self, email: Optional[EmailService] = None):
        self.email = email or EmailService()
        self._handlers: Dict[str, Callable[[AsyncSession, Any], Awaitable[None]]] = {
            "customer.subscription.created": self.handle_subscription_update,
            "customer.subscription.updated": self.handle_subscription_update,
            "customer.subscription.deleted": self.handle_subscription_deleted,
            "invoice.payment_succeeded": self.handle_invoice_paid,
            "invoice.payment_failed": self.handle_invoice_failed,
        }

    async def handle_event(self, session: AsyncSession, event: Any) -> bool:
        """Apply an event. Returns False for event types that are ignored."""
        event_type = stripe_field(event, "type")
        data_object = stripe_field(stripe_field(event, "data"), "object")

        handler = self._handlers.get(event_type)
        if handler is None:
            logger.info(f"Unhandled Stripe event type: {event_type}")
            return False

        logger.info(f"Processing Stripe event {event_type}")
        await handler(session, data_object)
        return True

    async def handle_subscription_update(self, session: AsyncSession, stripe_subscription: Any) -> None:
        customer_id = stripe_field(stripe_subscription, "customer")
        users = UserRepository(session)
        user = await users.get_by_stripe_customer(customer_id)
        if user is None:
            logger.error(f"No user found for customer ID: {customer_id}")
            return

        fields = subscription_fields(stripe_subscription)
        await SubscriptionRepository(session).upsert_for_user(user.id, **fields)

        user.is_pro = stripe_field(stripe_subscription, "status") in PRO_STATUSES
        await session.flush()
        logger.info(f"Subscription {fields['stripe_subscription_id']} for user {user.id} is {fields['status']}")

    async def handle_subscription_deleted(self, session: AsyncSession, stripe_subscription: Any) -> None:
        stripe_id = stripe_field(stripe_subscription, "id")
        subscription = await SubscriptionRepository(session).get_by_stripe_id(stripe_id)
        if subscription is None:
            logger.error(f"No subscription found with ID: {stripe_id}")
            return

        subscription.status = SubscriptionStatus.CANCELED.value
        subscription.cancel_at_period_end = True
        subscription.canceled_at = datetime.utcnow()

        user = await UserRepository(session).get_by_id(subscription.user_id)
        if user is not None and not stripe_field(stripe_subscription, "cancel_at_period_end"):
            user.is_pro = False
        await session.flush()

        if user is not None:
            await self.email.send_subscription_canceled(user.email, subscription)

    async def handle_invoice_paid(self, session: AsyncSession, stripe_invoice: Any) -> None:
        subscription = await self._invoice_subscription(session, stripe_invoice)
        if subscription is None:
            return

        invoice = await InvoiceRepository(session).upsert(
            stripe_field(stripe_invoice, "id"),
            status=InvoiceStatus.PAID.value,
            **invoice_fields(stripe_invoice, subscription, "amount_paid"),
        )

        user = await UserRepository(session).get_by_id(subscription.user_id)
        if user is not None:
            await self.email.send_payment_receipt(user.email, invoice, subscription)

    async def handle_invoice_failed(self, session: AsyncSession, stripe_invoice: Any) -> None:
        subscription = await self._invoice_subscription(session, stripe_invoice)
        if subscription is None:
            return

        subscription.status = SubscriptionStatus.PAST_DUE.value
        invoice = await InvoiceRepository(session).upsert(
            stripe_field(stripe_invoice, "id"),
            status=map_invoice_status(stripe_field(stripe_invoice, "status")).value,
            **invoice_fields(stripe_invoice, subscription, "amount_due"),
        )

        user = await UserRepository(session).get_by_id(subscription.user_id)
        if user is not None:
            await self.email.send_payment_failed(user.email, invoice, subscription)

    async def _invoice_subscription(self, session: AsyncSession, stripe_invoice: Any) -> Optional[Subscription]:
        stripe_id = stripe_field(stripe_invoice, "subscription")
        if not stripe_id:
            return None
        subscription = await SubscriptionRepository(session).get_by_stripe_id(stripe_id)
        if subscription is None:
            logger.error(f"No subscription found with ID: {stripe_id}")
        return subscription


__all__ = [
    "SUBSCRIPTION_STATUS_MAP",
    "INVOICE_STATUS_MAP",
    "map_subscription_status",
    "map_invoice_status",
    "from_timestamp",
    "subscription_fields",
    "invoice_fields",
    "WebhookReconciler",
]
