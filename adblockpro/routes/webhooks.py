from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from adblockpro.db import get_db
from adblockpro.ratelimit import limiter
from adblockpro.services.webhooks import verify_event, process_event

router = APIRouter(tags=["webhooks"])


@router.post("/webhooks/stripe")
@limiter.exempt
async def stripe_webhook(request: Request, db: Session = Depends(get_db)):
    payload = await request.body()
    event = verify_event(payload, request.headers.get("stripe-signature"))
    outcome = process_event(db, event)
    return {"received": True, "status": outcome}
