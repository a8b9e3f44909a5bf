from sqlalchemy import Column, Integer, BigInteger, String, Boolean, DateTime, Enum as SqlEnum, Text, Float, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship
from enum import Enum as PyEnum
from adblockpro.utils import utcnow

Base = declarative_base()

class Role(PyEnum):
    user = "user"
    admin = "admin"
    superadmin = "superadmin"

class Plan(PyEnum):
    free = "free"
    pro = "pro"
    teams = "teams"

class AccountStatus(PyEnum):
    active = "active"
    suspended = "suspended"

class Interval(PyEnum):
    monthly = "monthly"
    yearly = "yearly"

class SubscriptionStatus(PyEnum):
    pending = "pending"
    active = "active"
    past_due = "past_due"
    cancelled = "cancelled"
    expired = "expired"

class InvoiceStatus(PyEnum):
    paid = "paid"
    pending = "pending"
    failed = "failed"

CURRENT_SUBSCRIPTION_STATUSES = (SubscriptionStatus.active, SubscriptionStatus.pending)

def default_settings() -> dict:
    return {
        "notifications": {"email": True, "browser": True, "weeklyReport": True},
        "privacy": {
            "blockTrackers": True,
            "hideReferrers": True,
            "blockWebRTC": False,
            "fingerprintDefense": True,
        },
    }

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String(320), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    name = Column(String(200), nullable=False)
    avatar = Column(String, nullable=True)
    role = Column(SqlEnum(Role), default=Role.user, nullable=False, index=True)
    plan = Column(SqlEnum(Plan), default=Plan.free, nullable=False, index=True)
    status = Column(SqlEnum(AccountStatus), default=AccountStatus.active, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_token = Column(String(64), nullable=True, index=True)
    reset_password_token = Column(String(64), nullable=True, index=True)
    reset_password_expire = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)
    # usage stats reported by the extension
    ads_blocked = Column(BigInteger, default=0, nullable=False)
    trackers_blocked = Column(BigInteger, default=0, nullable=False)
    data_saved = Column(String(50), default="0 MB", nullable=False)
    time_saved = Column(String(50), default="0 hours", nullable=False)
    stats_updated_at = Column(DateTime, nullable=True)
    settings = Column(JSON, default=default_settings, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    subscriptions = relationship("Subscription", back_populates="user")

class Subscription(Base):
    __tablename__ = "subscriptions"
    id = Column(Integer, primary_key=True)
    # NULL once the owning account has been deleted; rows are kept for billing history
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    plan = Column(SqlEnum(Plan), nullable=False)
    interval = Column(SqlEnum(Interval), nullable=False)
    status = Column(SqlEnum(SubscriptionStatus), default=SubscriptionStatus.pending, nullable=False, index=True)
    price = Column(Float, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="usd")
    stripe_subscription_id = Column(String, unique=True, nullable=True)
    stripe_customer_id = Column(String, nullable=True)
    current_period_start = Column(DateTime, nullable=True)
    current_period_end = Column(DateTime, nullable=True, index=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    canceled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    user = relationship("User", back_populates="subscriptions")
    invoices = relationship(
        "Invoice",
        back_populates="subscription",
        order_by="Invoice.id",
        cascade="all, delete-orphan",
    )

class Invoice(Base):
    __tablename__ = "invoices"
    id = Column(Integer, primary_key=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id"), nullable=False, index=True)
    stripe_invoice_id = Column(String, nullable=True)
    amount = Column(Float, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="usd")
    status = Column(SqlEnum(InvoiceStatus), nullable=False)
    paid_at = Column(DateTime, nullable=True)
    pdf_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    subscription = relationship("Subscription", back_populates="invoices")
    __table_args__ = (
        UniqueConstraint("subscription_id", "stripe_invoice_id", name="uq_subscription_invoice"),
    )

class WebhookEvent(Base):
    __tablename__ = "webhook_events"
    id = Column(Integer, primary_key=True)
    stripe_event_id = Column(String, unique=True, nullable=False)
    type = Column(String, nullable=False)
    payload = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
