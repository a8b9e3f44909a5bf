"""JSON shapes returned by the API (camelCase keys, secrets never included)."""
from adblockpro.models import User, Subscription, Invoice, default_settings
from adblockpro.utils import isoformat


def user_stats(user: User) -> dict:
    return {
        "adsBlocked": user.ads_blocked,
        "trackersBlocked": user.trackers_blocked,
        "dataSaved": user.data_saved,
        "timeSaved": user.time_saved,
        "lastUpdated": isoformat(user.stats_updated_at),
    }


def user_settings(user: User) -> dict:
    settings = default_settings()
    stored = user.settings or {}
    for section in settings:
        settings[section].update(stored.get(section) or {})
    return settings


def user_summary(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "role": user.role.value,
        "plan": user.plan.value,
        "isVerified": user.is_verified,
    }


def user_public(user: User, include_settings: bool = False) -> dict:
    data = user_summary(user)
    data.update({
        "status": user.status.value,
        "lastLogin": isoformat(user.last_login),
        "createdAt": isoformat(user.created_at),
        "updatedAt": isoformat(user.updated_at),
        "stats": user_stats(user),
    })
    if include_settings:
        data["settings"] = user_settings(user)
    return data


def invoice_public(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "subscriptionId": invoice.subscription_id,
        "stripeInvoiceId": invoice.stripe_invoice_id,
        "amount": invoice.amount,
        "currency": invoice.currency,
        "status": invoice.status.value,
        "paidAt": isoformat(invoice.paid_at),
        "pdfUrl": invoice.pdf_url,
        "createdAt": isoformat(invoice.created_at),
    }


def subscription_public(subscription: Subscription, include_user: bool = False) -> dict:
    data = {
        "id": subscription.id,
        "userId": subscription.user_id,
        "plan": subscription.plan.value,
        "interval": subscription.interval.value,
        "status": subscription.status.value,
        "price": subscription.price,
        "currency": subscription.currency,
        "stripeSubscriptionId": subscription.stripe_subscription_id,
        "stripeCustomerId": subscription.stripe_customer_id,
        "currentPeriodStart": isoformat(subscription.current_period_start),
        "currentPeriodEnd": isoformat(subscription.current_period_end),
        "cancelAtPeriodEnd": subscription.cancel_at_period_end,
        "canceledAt": isoformat(subscription.canceled_at),
        "createdAt": isoformat(subscription.created_at),
        "invoices": [invoice_public(i) for i in subscription.invoices],
    }
    if include_user:
        owner = subscription.user
        data["user"] = {"id": owner.id, "name": owner.name, "email": owner.email} if owner else None
    return data


def ok(data=None, message=None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body
