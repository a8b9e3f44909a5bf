from datetime import timedelta
from typing import Optional
import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from adblockpro.billing import BILLING_PERIOD_DAYS, DEFAULT_CURRENCY, list_price, price_id_for
from adblockpro.config import CLIENT_URL, STRIPE_SECRET_KEY
from adblockpro.errors import NoActiveSubscription, PaymentProviderError, ValidationFailed
from adblockpro.logging_config import get_logger
from adblockpro.models import (
    User, Plan, Interval, Subscription, SubscriptionStatus, Invoice, InvoiceStatus,
)
from adblockpro.repository import (
    get_active_subscription, get_subscription_by_stripe_id, get_user_subscriptions,
)
from adblockpro.utils import utcnow

stripe.api_key = STRIPE_SECRET_KEY

logger = get_logger("adblockpro.subscriptions")


def upsert_from_checkout(
    db: Session,
    *,
    user: User,
    plan: Plan,
    interval: Interval,
    stripe_subscription_id: Optional[str],
    stripe_customer_id: Optional[str],
    price: Optional[float] = None,
    currency: Optional[str] = None,
):
    """Create the active subscription for a completed checkout.

    Keyed by the Stripe subscription id: replaying the same checkout returns
    the existing row untouched. Returns (subscription, created).
    """
    existing = get_subscription_by_stripe_id(db, stripe_subscription_id)
    if existing:
        if stripe_customer_id and not existing.stripe_customer_id:
            existing.stripe_customer_id = stripe_customer_id
            db.commit()
        return existing, False

    now = utcnow()
    subscription = Subscription(
        user_id=user.id,
        plan=plan,
        interval=interval,
        status=SubscriptionStatus.active,
        price=price if price is not None else list_price(plan, interval),
        currency=(currency or DEFAULT_CURRENCY).lower(),
        stripe_subscription_id=stripe_subscription_id,
        stripe_customer_id=stripe_customer_id,
        current_period_start=now,
        current_period_end=now + timedelta(days=BILLING_PERIOD_DAYS),
    )
    db.add(subscription)
    user.plan = plan
    try:
        db.commit()
    except IntegrityError:
        # a concurrent delivery of the same checkout inserted it first
        db.rollback()
        return get_subscription_by_stripe_id(db, stripe_subscription_id), False
    db.refresh(subscription)
    logger.info("Subscription created", extra={"user_id": user.id})
    return subscription, True


def record_invoice(
    db: Session,
    subscription: Subscription,
    *,
    stripe_invoice_id: Optional[str],
    amount: float,
    currency: Optional[str],
    status: InvoiceStatus,
    pdf_url: Optional[str] = None,
) -> Invoice:
    """Append an invoice, or move an existing pending one to its final status.

    Paid and failed invoices are never rewritten, so redelivered payment
    events leave the history as it is.
    """
    invoice = None
    if stripe_invoice_id:
        invoice = next((i for i in subscription.invoices if i.stripe_invoice_id == stripe_invoice_id), None)
    now = utcnow()
    if invoice is None:
        invoice = Invoice(
            stripe_invoice_id=stripe_invoice_id,
            amount=amount,
            currency=(currency or subscription.currency).lower(),
            status=status,
            paid_at=now if status == InvoiceStatus.paid else None,
            pdf_url=pdf_url,
        )
        subscription.invoices.append(invoice)
    elif invoice.status == InvoiceStatus.pending and status != InvoiceStatus.pending:
        invoice.status = status
        if status == InvoiceStatus.paid:
            invoice.paid_at = now
        if pdf_url:
            invoice.pdf_url = pdf_url
    return invoice


def apply_payment(db: Session, subscription: Subscription, **invoice_fields) -> Invoice:
    invoice = record_invoice(db, subscription, status=InvoiceStatus.paid, **invoice_fields)
    if subscription.status == SubscriptionStatus.past_due:
        subscription.status = SubscriptionStatus.active
    db.commit()
    return invoice


def apply_payment_failure(db: Session, subscription: Subscription, **invoice_fields) -> Invoice:
    invoice = record_invoice(db, subscription, status=InvoiceStatus.failed, **invoice_fields)
    # a late failure must not reopen a subscription that already ended
    if subscription.status in (SubscriptionStatus.active, SubscriptionStatus.pending):
        subscription.status = SubscriptionStatus.past_due
    db.commit()
    return invoice


def cancel_from_processor(db: Session, subscription: Subscription) -> Subscription:
    """Processor-side deletion: cancel and drop the owner back to the free plan."""
    if subscription.status != SubscriptionStatus.cancelled:
        subscription.status = SubscriptionStatus.cancelled
        subscription.canceled_at = utcnow()
    if subscription.user is not None:
        subscription.user.plan = Plan.free
    db.commit()
    logger.info("Subscription cancelled by processor", extra={"user_id": subscription.user_id})
    return subscription


def cancel_at_period_end(db: Session, user_id: int) -> Subscription:
    """User-initiated cancellation; the status changes when the period ends."""
    subscription = get_active_subscription(db, user_id)
    if not subscription:
        raise NoActiveSubscription()
    subscription.cancel_at_period_end = True
    db.commit()
    db.refresh(subscription)
    logger.info("Subscription set to cancel at period end", extra={"user_id": user_id})
    return subscription


def list_invoices(db: Session, user_id: int) -> list:
    invoices = [i for s in get_user_subscriptions(db, user_id) for i in s.invoices]
    return sorted(invoices, key=lambda i: (i.created_at, i.id), reverse=True)


def create_checkout_session(user: User, plan: Plan, interval: Interval) -> dict:
    if plan == Plan.free:
        raise ValidationFailed("The free plan does not require checkout")
    price_id = price_id_for(plan, interval)
    if not price_id:
        raise ValidationFailed(f"No price configured for {plan.value} ({interval.value})")
    try:
        session = stripe.checkout.Session.create(
            mode="subscription",
            line_items=[{"price": price_id, "quantity": 1}],
            client_reference_id=str(user.id),
            customer_email=user.email,
            metadata={"plan": plan.value, "interval": interval.value},
            success_url=f"{CLIENT_URL}/dashboard?checkout=success",
            cancel_url=f"{CLIENT_URL}/pricing?checkout=cancelled",
        )
    except stripe.StripeError:
        logger.exception("Stripe checkout session creation failed", extra={"user_id": user.id})
        raise PaymentProviderError()
    return {"sessionId": session.id, "url": session.url}
