"""
Subscription Plans

The four VoiceVerse plans and the helpers used to turn a Stripe price
into a plan type and billing period.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..database.models import BillingPeriod, PlanType


PRO_FEATURES = [
    "Access to all voice models",
    "Priority processing",
    "Unlimited transformations",
    "Commercial usage rights",
]

PREMIUM_FEATURES = [
    "All Pro features",
    "Team sharing (up to 5 members)",
    "Advanced voice customization",
    "Priority support",
]


@dataclass
class SubscriptionPlan:
    """Subscription plan definition."""

    plan_id: str
    name: str
    description: str
    price: float
    interval: str
    plan_type: PlanType
    features: List[str] = field(default_factory=list)
    stripe_price_id: Optional[str] = None

    @property
    def billing_period(self) -> BillingPeriod:
        return BillingPeriod.YEARLY if self.interval == "yearly" else BillingPeriod.MONTHLY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.plan_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "interval": self.interval,
            "features": list(self.features),
            "stripePriceId": self.stripe_price_id,
        }


def build_plans(price_ids: Optional[Dict[str, str]] = None) -> List[SubscriptionPlan]:
    """
    Build the plan list.

    Price ids come from ``price_ids`` keyed by plan id, falling back to
    the ``STRIPE_<PLAN>_PRICE_ID`` environment variables.
    """
    price_ids = price_ids or {}

    def price_id(plan_id: str) -> Optional[str]:
        return price_ids.get(plan_id) or os.getenv(f"STRIPE_{plan_id.upper()}_PRICE_ID")

    return [
        SubscriptionPlan(
            plan_id="pro_monthly",
            name="Pro",
            description="Perfect for individual creators",
            price=29.99,
            interval="monthly",
            plan_type=PlanType.PRO,
            features=PRO_FEATURES,
            stripe_price_id=price_id("pro_monthly"),
        ),
        SubscriptionPlan(
            plan_id="pro_yearly",
            name="Pro",
            description="Perfect for individual creators",
            price=290,
            interval="yearly",
            plan_type=PlanType.PRO,
            features=PRO_FEATURES,
            stripe_price_id=price_id("pro_yearly"),
        ),
        SubscriptionPlan(
            plan_id="premium_monthly",
            name="Premium",
            description="Ideal for professional creators",
            price=49.99,
            interval="monthly",
            plan_type=PlanType.PREMIUM,
            features=PREMIUM_FEATURES,
            stripe_price_id=price_id("premium_monthly"),
        ),
        SubscriptionPlan(
            plan_id="premium_yearly",
            name="Premium",
            description="Ideal for professional creators",
            price=490,
            interval="yearly",
            plan_type=PlanType.PREMIUM,
            features=PREMIUM_FEATURES,
            stripe_price_id=price_id("premium_yearly"),
        ),
    ]


def plan_for_price(plans: List[SubscriptionPlan], price_id: str) -> Optional[SubscriptionPlan]:
    for plan in plans:
        if plan.stripe_price_id and plan.stripe_price_id == price_id:
            return plan
    return None


def plan_type_from_price(price: Any) -> PlanType:
    """Read the plan type from a Stripe price's metadata, PRO by default."""
    metadata = stripe_field(price, "metadata") or {}
    value = str(stripe_field(metadata, "planType") or "PRO").upper()
    try:
        return PlanType(value)
    except ValueError:
        return PlanType.PRO


def billing_period_from_price(price: Any) -> BillingPeriod:
    recurring = stripe_field(price, "recurring") or {}
    return BillingPeriod.YEARLY if stripe_field(recurring, "interval") == "year" else BillingPeriod.MONTHLY


def stripe_field(obj: Any, key: str) -> Any:
    # Stripe objects are dict subclasses; test doubles may be plain dicts
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


__all__ = [
    "PRO_FEATURES",
    "PREMIUM_FEATURES",
    "SubscriptionPlan",
    "build_plans",
    "plan_for_price",
    "plan_type_from_price",
    "billing_period_from_price",
    "stripe_field",
]
