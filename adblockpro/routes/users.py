from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from adblockpro.db import get_db
from adblockpro.dependencies import require_active_user
from adblockpro.models import User
from adblockpro.schemas import ProfileUpdate, SettingsUpdate, StatsUpdate
from adblockpro.serializers import ok, user_public, user_stats
from adblockpro.services import users as user_service

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/profile")
def get_profile(user: User = Depends(require_active_user)):
    return ok(user_public(user, include_settings=True))


@router.put("/profile")
def update_profile(data: ProfileUpdate, user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    user = user_service.update_profile(db, user, data)
    return ok(user_public(user, include_settings=True), message="Profile updated")


@router.put("/settings")
def update_settings(data: SettingsUpdate, user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    return ok(user_service.update_settings(db, user, data), message="Settings updated")


@router.put("/stats")
def update_stats(data: StatsUpdate, user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    user = user_service.record_stats(db, user, data)
    return ok(user_stats(user))


@router.delete("/account")
def delete_account(user: User = Depends(require_active_user), db: Session = Depends(get_db)):
    user_service.delete_account(db, user)
    return ok(message="Account deleted successfully")
