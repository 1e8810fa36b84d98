"""
Stripe Client

Wraps the Stripe SDK calls VoiceVerse makes: customers, payment
methods, subscriptions, payment intents, coupons and webhook events.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .plans import stripe_field


logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Base billing error."""

    def __init__(self, message: str, code: str = "billing_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class WebhookSignatureError(BillingError):
    """Webhook payload failed signature verification."""

    def __init__(self, message: str):
        super().__init__(message, "invalid_signature")


@dataclass
class StripeConfig:
    """Stripe configuration."""

    api_key: Optional[str] = None
    webhook_secret: Optional[str] = None
    api_version: Optional[str] = None

    @classmethod
    def from_env(cls) -> "StripeConfig":
        return cls(
            api_key=os.getenv("STRIPE_SECRET_KEY"),
            webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
        )


class StripeClient:
    """
    Stripe API wrapper.

    The SDK is synchronous; calls are made directly from the async
    methods, the same way request handlers use it.
    """

    def __init__(self, config: Optional[StripeConfig] = None):
        self._config = config or StripeConfig.from_env()
        self._stripe = None

    @property
    def is_configured(self) -> bool:
        return bool(self._config.api_key)

    def _get_stripe(self):
        """Get Stripe client (lazy load)."""
        if self._stripe is None:
            if not self._config.api_key:
                raise BillingError("Stripe is not configured", "not_configured")
            import stripe
            stripe.api_key = self._config.api_key
            if self._config.api_version:
                stripe.api_version = self._config.api_version
            self._stripe = stripe
        return self._stripe

    # -------------------------------------------------------------------------
    # Customers & payment methods
    # -------------------------------------------------------------------------

    async def create_customer(self, email: str, name: Optional[str], user_id: str) -> str:
        stripe = self._get_stripe()
        try:
            customer = stripe.Customer.create(
                email=email,
                name=name,
                metadata={"userId": user_id},
            )
            logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
            return customer.id
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to create customer: {str(e)}")

    async def attach_payment_method(
        self,
        customer_id: str,
        payment_method_id: str,
        make_default: bool = True,
    ) -> Any:
        """Attach a payment method and optionally make it the invoice default."""
        stripe = self._get_stripe()
        try:
            payment_method = stripe.PaymentMethod.attach(payment_method_id, customer=customer_id)
            if make_default:
                stripe.Customer.modify(
                    customer_id,
                    invoice_settings={"default_payment_method": payment_method_id},
                )
            return payment_method
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to attach payment method: {str(e)}")

    async def retrieve_payment_method(self, payment_method_id: str) -> Any:
        stripe = self._get_stripe()
        try:
            return stripe.PaymentMethod.retrieve(payment_method_id)
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to retrieve payment method: {str(e)}")

    async def update_customer(self, customer_id: str, **fields: Any) -> None:
        stripe = self._get_stripe()
        try:
            stripe.Customer.modify(customer_id, **fields)
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to update customer: {str(e)}")

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        user_id: str,
        coupon_id: Optional[str] = None,
    ) -> Any:
        stripe = self._get_stripe()
        params: Dict[str, Any] = {
            "customer": customer_id,
            "items": [{"price": price_id}],
            "expand": ["latest_invoice.payment_intent"],
            "metadata": {"userId": user_id},
        }
        if coupon_id:
            params["coupon"] = coupon_id
        try:
            return stripe.Subscription.create(**params)
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to create subscription: {str(e)}")

    async def set_cancel_at_period_end(self, subscription_id: str, cancel: bool) -> Any:
        """Schedule or undo cancellation at the end of the billing period."""
        stripe = self._get_stripe()
        try:
            return stripe.Subscription.modify(subscription_id, cancel_at_period_end=cancel)
        except stripe.error.StripeError as e:
            action = "cancel" if cancel else "reactivate"
            raise BillingError(f"Failed to {action} subscription: {str(e)}")

    # -------------------------------------------------------------------------
    # Prices, payment intents & coupons
    # -------------------------------------------------------------------------

    async def retrieve_price(self, price_id: str) -> Any:
        stripe = self._get_stripe()
        try:
            return stripe.Price.retrieve(price_id)
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to retrieve price: {str(e)}")

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        customer_id: str,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Any:
        stripe = self._get_stripe()
        try:
            return stripe.PaymentIntent.create(
                amount=amount,
                currency=currency,
                customer=customer_id,
                metadata=metadata or {},
            )
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to create payment intent: {str(e)}")

    async def get_or_create_coupon(
        self,
        code: str,
        percent_off: Optional[float] = None,
        amount_off: Optional[float] = None,
        currency: Optional[str] = None,
    ) -> Any:
        """
        Get the coupon named ``code``, creating it when Stripe has none.

        ``amount_off`` is in currency units and converted to cents.
        """
        stripe = self._get_stripe()
        try:
            return stripe.Coupon.retrieve(code)
        except stripe.error.InvalidRequestError:
            logger.info(f"Creating Stripe coupon {code}")

        params: Dict[str, Any] = {"id": code, "duration": "once"}
        if percent_off:
            params["percent_off"] = percent_off
        elif amount_off:
            params["amount_off"] = int(round(amount_off * 100))
            params["currency"] = (currency or "usd").lower()
        try:
            return stripe.Coupon.create(**params)
        except stripe.error.StripeError as e:
            raise BillingError(f"Failed to create coupon: {str(e)}")

    # -------------------------------------------------------------------------
    # Webhooks
    # -------------------------------------------------------------------------

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Any:
        """Verify a webhook payload and return the event."""
        stripe = self._get_stripe()
        if not self._config.webhook_secret:
            raise WebhookSignatureError("Webhook secret not configured")
        try:
            return stripe.Webhook.construct_event(payload, signature, self._config.webhook_secret)
        except ValueError as e:
            raise WebhookSignatureError(f"Invalid payload: {str(e)}")
        except stripe.error.SignatureVerificationError as e:
            raise WebhookSignatureError(f"Invalid signature: {str(e)}")


def apply_discount(amount: int, coupon: Any) -> int:
    """Apply a coupon's percent or amount off to an amount in cents."""
    if coupon is None:
        return amount
    percent_off = stripe_field(coupon, "percent_off")
    amount_off = stripe_field(coupon, "amount_off")
    if percent_off:
        amount = amount - int(round(amount * (percent_off / 100)))
    elif amount_off:
        amount = amount - int(amount_off)
    return max(amount, 0)


__all__ = [
    "BillingError",
    "WebhookSignatureError",
    "StripeConfig",
    "StripeClient",
    "apply_discount",
]
