from typing import Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from adblockpro.models import User, Role, Plan, Subscription, SubscriptionStatus, CURRENT_SUBSCRIPTION_STATUSES
from adblockpro.utils import normalize_email
from adblockpro.errors import DuplicateEmail

def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    email = normalize_email(email)
    return db.query(User).filter(User.email == email).first()

def email_taken(db: Session, email: str, exclude_user_id: Optional[int] = None) -> bool:
    q = db.query(User.id).filter(User.email == normalize_email(email))
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    return q.first() is not None

def create_user(db: Session, *, name: str, email: str, password_hash: str, role=Role.user, plan=Plan.free, verification_token=None, is_verified=False):
    user = User(
        name=name.strip(),
        email=normalize_email(email),
        password_hash=password_hash,
        role=role,
        plan=plan,
        verification_token=verification_token,
        is_verified=is_verified,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same email
        db.rollback()
        raise DuplicateEmail()
    db.refresh(user)
    return user

def search_users(db: Session, *, search=None, plan=None, status=None, role=None):
    q = db.query(User)
    if search:
        # match % and _ literally
        term = search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{term}%"
        q = q.filter(or_(User.name.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\")))
    if plan:
        q = q.filter(User.plan == plan)
    if status:
        q = q.filter(User.status == status)
    if role:
        q = q.filter(User.role == role)
    return q.order_by(User.created_at.desc(), User.id.desc())

def get_current_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.status.in_(CURRENT_SUBSCRIPTION_STATUSES))
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )

def get_active_subscription(db: Session, user_id: int) -> Optional[Subscription]:
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.status == SubscriptionStatus.active)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .first()
    )

def get_user_subscriptions(db: Session, user_id: int):
    return (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc(), Subscription.id.desc())
        .all()
    )

def get_subscription_by_stripe_id(db: Session, stripe_subscription_id: Optional[str]) -> Optional[Subscription]:
    if not stripe_subscription_id:
        return None
    return db.query(Subscription).filter(Subscription.stripe_subscription_id == stripe_subscription_id).first()

def search_subscriptions(db: Session, *, status=None, plan=None):
    q = db.query(Subscription)
    if status:
        q = q.filter(Subscription.status == status)
    if plan:
        q = q.filter(Subscription.plan == plan)
    return q.order_by(Subscription.created_at.desc(), Subscription.id.desc())

def paginate(query, page: int, limit: int):
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit
    return items, {"total": total, "page": page, "pages": pages, "limit": limit}
