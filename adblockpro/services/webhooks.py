"""Stripe webhook processing.

Signature verification happens before anything in the payload is read.
Events are applied through ``EVENT_HANDLERS`` and recorded in
``webhook_events`` once applied, so a redelivered event id is acknowledged
without being applied twice.
"""
import json
from typing import Optional
import stripe
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from adblockpro import config
from adblockpro.errors import SignatureVerificationFailed
from adblockpro.logging_config import get_logger
from adblockpro.metrics import increment_webhook_event
from adblockpro.models import Plan, Interval, WebhookEvent
from adblockpro.repository import get_user, get_subscription_by_stripe_id
from adblockpro.services import subscriptions as ledger

logger = get_logger("adblockpro.webhooks")

PROCESSED = "processed"
IGNORED = "ignored"
UNHANDLED = "unhandled"
DUPLICATE = "duplicate_ignored"


def verify_event(payload: bytes, sig_header: Optional[str]) -> dict:
    """Check the Stripe signature over the raw body and return the parsed event."""
    if not config.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured")
        raise SignatureVerificationFailed()
    if not sig_header:
        raise SignatureVerificationFailed("Missing stripe-signature header")
    try:
        stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError:
        raise SignatureVerificationFailed()
    except ValueError:
        raise SignatureVerificationFailed("Invalid payload")
    return json.loads(payload)


def _amount(value) -> float:
    return (value or 0) / 100


def _invoice_subscription_id(invoice: dict) -> Optional[str]:
    if invoice.get("subscription"):
        return invoice["subscription"]
    # newer API versions nest it under the invoice parent
    details = (invoice.get("parent") or {}).get("subscription_details") or {}
    return details.get("subscription")


def handle_checkout_completed(db: Session, session: dict) -> str:
    try:
        user_id = int(session.get("client_reference_id"))
    except (TypeError, ValueError):
        logger.warning("Checkout session without a user reference")
        return IGNORED
    user = get_user(db, user_id)
    if not user:
        logger.warning("Checkout session for unknown user", extra={"user_id": user_id})
        return IGNORED
    metadata = session.get("metadata") or {}
    try:
        plan = Plan(metadata.get("plan"))
        interval = Interval(metadata.get("interval") or Interval.monthly.value)
    except ValueError:
        logger.warning("Checkout session with unknown plan metadata", extra={"user_id": user_id})
        return IGNORED
    amount_total = session.get("amount_total")
    ledger.upsert_from_checkout(
        db,
        user=user,
        plan=plan,
        interval=interval,
        stripe_subscription_id=session.get("subscription"),
        stripe_customer_id=session.get("customer"),
        price=_amount(amount_total) if amount_total is not None else None,
        currency=session.get("currency"),
    )
    return PROCESSED


def handle_invoice_paid(db: Session, invoice: dict) -> str:
    subscription = get_subscription_by_stripe_id(db, _invoice_subscription_id(invoice))
    if not subscription:
        return IGNORED
    ledger.apply_payment(
        db,
        subscription,
        stripe_invoice_id=invoice.get("id"),
        amount=_amount(invoice.get("amount_paid")),
        currency=invoice.get("currency"),
        pdf_url=invoice.get("invoice_pdf"),
    )
    return PROCESSED


def handle_invoice_payment_failed(db: Session, invoice: dict) -> str:
    subscription = get_subscription_by_stripe_id(db, _invoice_subscription_id(invoice))
    if not subscription:
        return IGNORED
    ledger.apply_payment_failure(
        db,
        subscription,
        stripe_invoice_id=invoice.get("id"),
        amount=_amount(invoice.get("amount_due")),
        currency=invoice.get("currency"),
    )
    return PROCESSED


def handle_subscription_deleted(db: Session, stripe_subscription: dict) -> str:
    subscription = get_subscription_by_stripe_id(db, stripe_subscription.get("id"))
    if not subscription:
        return IGNORED
    ledger.cancel_from_processor(db, subscription)
    return PROCESSED


EVENT_HANDLERS = {
    "checkout.session.completed": handle_checkout_completed,
    "invoice.payment_succeeded": handle_invoice_paid,
    "invoice.paid": handle_invoice_paid,
    "invoice.payment_failed": handle_invoice_payment_failed,
    "customer.subscription.deleted": handle_subscription_deleted,
}


def process_event(db: Session, event: dict) -> str:
    event_id = event.get("id")
    event_type = event.get("type", "unknown")
    log_extra = {"stripe_event_id": event_id, "event_type": event_type}

    if event_id and db.query(WebhookEvent).filter_by(stripe_event_id=event_id).first():
        increment_webhook_event(event_type, DUPLICATE)
        logger.info("Duplicate webhook event ignored", extra=log_extra)
        return DUPLICATE

    handler = EVENT_HANDLERS.get(event_type)
    if handler is None:
        increment_webhook_event(event_type, UNHANDLED)
        logger.info(f"Unhandled event type: {event_type}", extra=log_extra)
        return UNHANDLED

    data_object = (event.get("data") or {}).get("object") or {}
    try:
        outcome = handler(db, data_object)
    except Exception:
        db.rollback()
        increment_webhook_event(event_type, "error")
        raise

    if event_id:
        db.add(WebhookEvent(stripe_event_id=event_id, type=event_type, payload=json.dumps(event)))
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
    increment_webhook_event(event_type, outcome)
    logger.info("Webhook event handled", extra={**log_extra, "outcome": outcome})
    return outcome
