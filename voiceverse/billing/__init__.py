"""
Billing Module

Subscription plans, the Stripe client, the subscription service and
webhook reconciliation.
"""

from .plans import (
    SubscriptionPlan,
    build_plans,
    plan_for_price,
    plan_type_from_price,
    billing_period_from_price,
)
from .stripe_client import (
    BillingError,
    WebhookSignatureError,
    StripeConfig,
    StripeClient,
    apply_discount,
)
from .reconciliation import (
    WebhookReconciler,
    map_subscription_status,
    map_invoice_status,
)
from .service import (
    PromoCodeError,
    SubscriptionService,
)


__all__ = [
    # Plans
    "SubscriptionPlan",
    "build_plans",
    "plan_for_price",
    "plan_type_from_price",
    "billing_period_from_price",
    # Stripe
    "BillingError",
    "WebhookSignatureError",
    "StripeConfig",
    "StripeClient",
    "apply_discount",
    # Reconciliation
    "WebhookReconciler",
    "map_subscription_status",
    "map_invoice_status",
    # Service
    "PromoCodeError",
    "SubscriptionService",
]
