from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from adblockpro.billing import plan_catalogue
from adblockpro.db import get_db
from adblockpro.dependencies import require_active_user
from adblockpro.models import User
from adblockpro.repository import get_current_subscription, get_user_subscriptions
from adblockpro.schemas import CheckoutRequest
from adblockpro.serializers import ok, subscription_public, invoice_public
from adblockpro.services import subscriptions as ledger

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.get("/plans")
def plans():
    return ok(plan_catalogue())


@router.get("/me")
def my_subscription(user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    subscription = get_current_subscription(db, user.id)
    return {"success": True, "data": subscription_public(subscription) if subscription else None}


@router.get("/history")
def history(user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    return ok([subscription_public(s) for s in get_user_subscriptions(db, user.id)])


@router.get("/invoices")
def invoices(user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    return ok([invoice_public(i) for i in ledger.list_invoices(db, user.id)])


@router.post("/cancel")
def cancel(user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    subscription = ledger.cancel_at_period_end(db, user.id)
    return ok(
        subscription_public(subscription),
        message="Subscription will be cancelled at the end of the billing period",
    )


@router.post("/checkout")
def checkout(data: CheckoutRequest, user: User = Depends(require_active_user)):
    return ok(ledger.create_checkout_session(user, data.plan, data.interval))
