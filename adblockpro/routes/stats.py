from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from adblockpro.db import get_db
from adblockpro.dependencies import require_active_user
from adblockpro.models import User
from adblockpro.schemas import StatsUpdate
from adblockpro.serializers import ok, user_stats
from adblockpro.services import users as user_service

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("/me")
def my_stats(user: User = Depends(require_active_user)):
    return ok(user_stats(user))


@router.post("/update")
def update_stats(data: StatsUpdate, user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    user = user_service.record_stats(db, user, data)
    return ok(user_stats(user))


@router.get("/global")
def global_stats(db: Session = Depends(get_db)):
    return ok(user_service.global_stats(db))
