from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from adblockpro.db import get_db
from adblockpro.models import User, Plan, Role, AccountStatus, SubscriptionStatus
from adblockpro.policies import require_capability, ADMIN_ACCESS
from adblockpro.repository import search_users, search_subscriptions, get_user_subscriptions, paginate
from adblockpro.schemas import AdminUserUpdate
from adblockpro.serializers import ok, user_public, subscription_public
from adblockpro.services import users as user_service

router = APIRouter(prefix="/api/admin", tags=["admin"])

require_admin = require_capability(ADMIN_ACCESS)


@router.get("/stats")
def stats(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return ok(user_service.admin_stats(db))


@router.get("/users")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=200),
    plan: Optional[Plan] = None,
    status: Optional[AccountStatus] = None,
    role: Optional[Role] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    query = search_users(db, search=search, plan=plan, status=status, role=role)
    users, pagination = paginate(query, page, limit)
    return ok({"users": [user_public(u) for u in users], "pagination": pagination})


@router.get("/users/{user_id}")
def user_detail(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    user = user_service.get_or_error(db, user_id)
    data = user_public(user, include_settings=True)
    data["subscriptions"] = [subscription_public(s) for s in get_user_subscriptions(db, user.id)]
    return ok(data)


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    data: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = user_service.admin_update_user(db, admin, user_id, data)
    return ok(user_public(user), message="User updated")


@router.delete("/users/{user_id}")
def delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    user_service.admin_delete_user(db, admin, user_id)
    return ok(message="User deleted successfully")


@router.get("/subscriptions")
def list_subscriptions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[SubscriptionStatus] = None,
    plan: Optional[Plan] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    query = search_subscriptions(db, status=status, plan=plan)
    subscriptions, pagination = paginate(query, page, limit)
    return ok({
        "subscriptions": [subscription_public(s, include_user=True) for s in subscriptions],
        "pagination": pagination,
    })
