from datetime import datetime, timedelta
from typing import Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from adblockpro.errors import DuplicateEmail, Forbidden, UserNotFound
from adblockpro.logging_config import get_logger
from adblockpro.models import User, Subscription, SubscriptionStatus
from adblockpro.policies import can, can_manage, MANAGE_ROLES
from adblockpro.repository import email_taken, get_user
from adblockpro.schemas import ProfileUpdate, SettingsUpdate, StatsUpdate, AdminUserUpdate
from adblockpro.serializers import user_settings
from adblockpro.utils import utcnow

logger = get_logger("adblockpro.users")

ACTIVE_USER_WINDOW_DAYS = 30


def get_or_error(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    if not user:
        raise UserNotFound()
    return user


def update_profile(db: Session, user: User, data: ProfileUpdate) -> User:
    if data.email is not None and data.email != user.email:
        if email_taken(db, data.email, exclude_user_id=user.id):
            raise DuplicateEmail("Email already in use")
        user.email = data.email
    if data.name is not None:
        user.name = data.name
    if data.avatar is not None:
        user.avatar = data.avatar
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateEmail("Email already in use")
    db.refresh(user)
    return user


def update_settings(db: Session, user: User, data: SettingsUpdate) -> dict:
    """Merge the supplied keys over the stored settings; omitted keys keep their value."""
    settings = user_settings(user)
    changes = data.model_dump(by_alias=True, exclude_none=True)
    for section, values in changes.items():
        settings[section].update(values)
    # reassign so the JSON column is flagged dirty
    user.settings = settings
    db.commit()
    db.refresh(user)
    return user_settings(user)


def record_stats(db: Session, user: User, data: StatsUpdate) -> User:
    """Add blocked counts as deltas; data/time saved are last-write-wins."""
    if data.ads_blocked:
        user.ads_blocked = (user.ads_blocked or 0) + data.ads_blocked
    if data.trackers_blocked:
        user.trackers_blocked = (user.trackers_blocked or 0) + data.trackers_blocked
    if data.data_saved is not None:
        user.data_saved = data.data_saved
    if data.time_saved is not None:
        user.time_saved = data.time_saved
    user.stats_updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def _detach_subscriptions(db: Session, user: User):
    # billing history outlives the account
    db.query(Subscription).filter(Subscription.user_id == user.id).update(
        {Subscription.user_id: None}, synchronize_session=False
    )
    db.expire(user, ["subscriptions"])


def delete_account(db: Session, user: User):
    user_id = user.id
    _detach_subscriptions(db, user)
    db.delete(user)
    db.commit()
    logger.info("Account deleted", extra={"user_id": user_id})


def admin_update_user(db: Session, actor: User, user_id: int, data: AdminUserUpdate) -> User:
    target = get_or_error(db, user_id)
    if not can_manage(actor, target):
        raise Forbidden("Not authorized to modify this user")
    if data.role is not None and data.role != target.role:
        if not can(actor, MANAGE_ROLES):
            raise Forbidden("Not authorized to change user roles")
        target.role = data.role
    if data.plan is not None:
        target.plan = data.plan
    if data.status is not None:
        target.status = data.status
    db.commit()
    db.refresh(target)
    logger.info("User updated by admin", extra={"user_id": target.id})
    return target


def admin_delete_user(db: Session, actor: User, user_id: int):
    target = get_or_error(db, user_id)
    if not can_manage(actor, target):
        raise Forbidden("Not authorized to delete this user")
    _detach_subscriptions(db, target)
    db.delete(target)
    db.commit()
    logger.info("User deleted by admin", extra={"user_id": user_id})


def admin_stats(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or utcnow()
    active_since = now - timedelta(days=ACTIVE_USER_WINDOW_DAYS)
    total_users = db.query(func.count(User.id)).scalar()
    active_users = db.query(func.count(User.id)).filter(User.last_login >= active_since).scalar()
    new_users_today = db.query(func.count(User.id)).filter(User.created_at >= now - timedelta(hours=24)).scalar()
    active_subs = db.query(Subscription).filter(Subscription.status == SubscriptionStatus.active)
    total_subscriptions = active_subs.count()
    monthly_revenue = (
        db.query(func.coalesce(func.sum(Subscription.price), 0))
        .filter(Subscription.status == SubscriptionStatus.active)
        .scalar()
    )
    return {
        "totalUsers": total_users,
        "activeUsers": active_users,
        "newUsersToday": new_users_today,
        "totalSubscriptions": total_subscriptions,
        "monthlyRevenue": float(monthly_revenue or 0),
    }


def global_stats(db: Session) -> dict:
    totals = db.query(
        func.coalesce(func.sum(User.ads_blocked), 0),
        func.coalesce(func.sum(User.trackers_blocked), 0),
        func.count(User.id),
    ).one()
    return {
        "totalAdsBlocked": int(totals[0]),
        "totalTrackersBlocked": int(totals[1]),
        "totalUsers": int(totals[2]),
    }
