"""
Subscription API Routes

Plans, Stripe checkout, subscription lifecycle, payment methods, billing
details, promo codes, invoices and the Stripe webhook.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Path, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import NotFoundError, PaymentError, ValidationError, success_response
from ..dependencies import (
    get_current_user,
    get_db_session,
    get_stripe,
    get_subscription_service,
    get_webhook_reconciler,
)
from ..serializers import iso
from ...billing import (
    BillingError,
    PromoCodeError,
    StripeClient,
    SubscriptionService,
    WebhookReconciler,
    WebhookSignatureError,
)
from ...database.models import BillingInfo, Invoice, PaymentMethod, Subscription, User
from ...database.repositories import (
    BillingInfoRepository,
    InvoiceRepository,
    PaymentMethodRepository,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscription", tags=["Subscription"])


# =============================================================================
# Request Models
# =============================================================================

class PaymentIntentRequest(BaseModel):
    priceId: str
    promoCode: Optional[str] = None


class CreateSubscriptionRequest(BaseModel):
    priceId: str
    paymentMethodId: str
    promoCode: Optional[str] = None


class PaymentMethodRequest(BaseModel):
    paymentMethodId: str


class BillingInfoRequest(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    addressLine1: Optional[str] = None
    addressLine2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postalCode: Optional[str] = None
    country: Optional[str] = Field(None, max_length=2)
    taxId: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================

def billing_failure(e: BillingError) -> PaymentError:
    logger.error(f"Billing error ({e.code}): {e.message}")
    return PaymentError(e.message, details={"code": e.code})


def promo_failure(e: PromoCodeError) -> ValidationError:
    logger.info(f"Promo code rejected at checkout ({e.code}): {e.message}")
    return ValidationError(e.message, field="promoCode", details={"code": e.code})


def subscription_to_response(subscription: Subscription) -> Dict[str, Any]:
    return {
        "id": subscription.id,
        "stripeSubscriptionId": subscription.stripe_subscription_id,
        "status": subscription.status,
        "planType": subscription.plan_type,
        "billingPeriod": subscription.billing_period,
        "stripePriceId": subscription.stripe_price_id,
        "currentPeriodStart": iso(subscription.current_period_start),
        "currentPeriodEnd": iso(subscription.current_period_end),
        "cancelAtPeriodEnd": subscription.cancel_at_period_end,
        "canceledAt": iso(subscription.canceled_at),
    }


def payment_method_to_response(method: PaymentMethod) -> Dict[str, Any]:
    return {
        "id": method.id,
        "stripePaymentMethodId": method.stripe_payment_method_id,
        "type": method.type,
        "brand": method.brand,
        "last4": method.last4,
        "expMonth": method.exp_month,
        "expYear": method.exp_year,
        "isDefault": method.is_default,
    }


def billing_info_to_response(info: Optional[BillingInfo]) -> Optional[Dict[str, Any]]:
    if info is None:
        return None
    return {
        "name": info.name,
        "addressLine1": info.address_line1,
        "addressLine2": info.address_line2,
        "city": info.city,
        "state": info.state,
        "postalCode": info.postal_code,
        "country": info.country,
        "taxId": info.tax_id,
    }


def invoice_to_response(invoice: Invoice) -> Dict[str, Any]:
    return {
        "id": invoice.id,
        "stripeInvoiceId": invoice.stripe_invoice_id,
        "amount": invoice.amount,
        "currency": invoice.currency,
        "status": invoice.status,
        "invoiceUrl": invoice.invoice_url,
        "invoicePdf": invoice.invoice_pdf,
        "periodStart": iso(invoice.period_start),
        "periodEnd": iso(invoice.period_end),
        "createdAt": iso(invoice.created_at),
    }


# =============================================================================
# Plans & Checkout
# =============================================================================

@router.get("/plans", summary="List subscription plans")
async def list_plans(service: SubscriptionService = Depends(get_subscription_service)):
    return success_response([plan.to_dict() for plan in service.plans])


@router.post("/create-payment-intent", summary="Create a payment intent")
async def create_payment_intent(
    request: PaymentIntentRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        intent = await service.create_payment_intent(db, user, request.priceId, request.promoCode)
    except PromoCodeError as e:
        raise promo_failure(e)
    except BillingError as e:
        raise billing_failure(e)
    await db.commit()
    return success_response(intent)


@router.post("/create", summary="Subscribe to a plan")
async def create_subscription(
    request: CreateSubscriptionRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        subscription, _ = await service.create_subscription(
            db,
            user,
            request.priceId,
            request.paymentMethodId,
            promo_code=request.promoCode,
        )
    except PromoCodeError as e:
        raise promo_failure(e)
    except BillingError as e:
        raise billing_failure(e)
    await db.commit()

    return success_response(
        {
            "subscriptionId": subscription.stripe_subscription_id,
            "status": subscription.status,
            "currentPeriodEnd": iso(subscription.current_period_end),
        },
        message="Subscription created successfully",
    )


# =============================================================================
# Lifecycle
# =============================================================================

@router.get("/current", summary="Current subscription")
async def current_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = await service.get_active(db, user)
    if subscription is None:
        raise NotFoundError("Subscription", message="No active subscription found")
    return success_response(subscription_to_response(subscription))


@router.post("/cancel", summary="Cancel at period end")
async def cancel_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        subscription = await service.cancel(db, user)
    except BillingError as e:
        raise billing_failure(e)
    if subscription is None:
        raise NotFoundError("Subscription", message="No active subscription found")
    await db.commit()

    return success_response(
        subscription_to_response(subscription),
        message="Subscription will be canceled at the end of the billing period",
    )


@router.post("/reactivate", summary="Undo a scheduled cancellation")
async def reactivate_subscription(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        subscription = await service.reactivate(db, user)
    except BillingError as e:
        raise billing_failure(e)
    if subscription is None:
        raise NotFoundError(
            "Subscription",
            message="Subscription not found or not eligible for reactivation",
        )
    await db.commit()

    return success_response(subscription_to_response(subscription), message="Subscription reactivated")


# =============================================================================
# Payment Methods & Billing Details
# =============================================================================

@router.post("/payment-method", summary="Add a default payment method")
async def add_payment_method(
    request: PaymentMethodRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        method = await service.add_payment_method(db, user, request.paymentMethodId)
    except BillingError as e:
        if e.code == "customer_not_found":
            raise NotFoundError("Customer", message=e.message)
        raise billing_failure(e)
    await db.commit()

    return success_response(payment_method_to_response(method), message="Payment method added")


@router.get("/payment-methods", summary="List payment methods")
async def list_payment_methods(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    methods = await PaymentMethodRepository(db).list_by_user(user.id)
    return success_response([payment_method_to_response(m) for m in methods])


@router.get("/billing-info", summary="Get billing details")
async def get_billing_info(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    info = await BillingInfoRepository(db).get_by_user(user.id)
    return success_response(billing_info_to_response(info))


@router.post("/billing-info", summary="Update billing details")
async def update_billing_info(
    request: BillingInfoRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    if not request.name:
        raise ValidationError("Name is required", field="name")

    try:
        info = await service.update_billing_info(
            db,
            user,
            name=request.name,
            address_line1=request.addressLine1,
            address_line2=request.addressLine2,
            city=request.city,
            state=request.state,
            postal_code=request.postalCode,
            country=request.country,
            tax_id=request.taxId,
        )
    except BillingError as e:
        raise billing_failure(e)
    await db.commit()

    return success_response(billing_info_to_response(info), message="Billing information updated")


# =============================================================================
# Promo Codes & Invoices
# =============================================================================

@router.get("/promo-code/{code}", summary="Validate a promo code")
async def validate_promo_code(
    code: str = Path(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
    service: SubscriptionService = Depends(get_subscription_service),
):
    try:
        promo = await service.validate_promo_code(db, code, user)
    except PromoCodeError as e:
        if e.code == "promo_not_found":
            raise NotFoundError("PromoCode", code, message=e.message)
        raise ValidationError(e.message, field="code")

    return success_response({
        "code": promo.code,
        "description": promo.description,
        "discountPercent": promo.discount_percent,
        "discountAmount": promo.discount_amount,
        "currency": promo.currency,
        "validUntil": iso(promo.valid_until),
    })


@router.get("/invoices", summary="List invoices")
async def list_invoices(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    invoices = await InvoiceRepository(db).list_by_user(user.id)
    return success_response([invoice_to_response(i) for i in invoices])


# =============================================================================
# Webhook
# =============================================================================

@router.post("/webhook", summary="Stripe webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db_session),
    stripe: StripeClient = Depends(get_stripe),
    reconciler: WebhookReconciler = Depends(get_webhook_reconciler),
):
    """Verify the signature against the raw body, then reconcile the event."""
    payload = await request.body()
    try:
        event = stripe.construct_event(payload, stripe_signature)
    except WebhookSignatureError as e:
        logger.warning(f"Rejected Stripe webhook: {e.message}")
        raise ValidationError(f"Webhook Error: {e.message}")
    except BillingError as e:
        raise ValidationError(f"Webhook Error: {e.message}")

    await reconciler.handle_event(db, event)
    await db.commit()
    return {"received": True}
