from datetime import timedelta
from typing import Optional
from fastapi import BackgroundTasks
from sqlalchemy.orm import Session
from adblockpro.background import send_verification_email, send_password_reset_email
from adblockpro.config import RESET_TOKEN_EXPIRE_MINUTES
from adblockpro.errors import (
    DuplicateEmail, InvalidCredentials, InvalidRefreshToken, InvalidToken,
    InvalidOrExpiredToken, UserNotFound, AccountSuspended,
)
from adblockpro.logging_config import get_logger
from adblockpro.metrics import increment_auth_event
from adblockpro.models import User, AccountStatus
from adblockpro.repository import create_user, email_taken, get_user, get_user_by_email
from adblockpro.security import (
    hash_password, verify_password, generate_token, create_token_pair, verify_token, REFRESH,
)
from adblockpro.utils import utcnow

logger = get_logger("adblockpro.auth")

# Compared against when the email is unknown so both failure paths cost one bcrypt check
_DUMMY_HASH = hash_password("not-a-real-password-1A")


def register(db: Session, background_tasks: Optional[BackgroundTasks], *, name: str, email: str, password: str):
    if email_taken(db, email):
        increment_auth_event("register", "duplicate")
        raise DuplicateEmail()
    verification_token = generate_token()
    user = create_user(
        db,
        name=name,
        email=email,
        password_hash=hash_password(password),
        verification_token=verification_token,
    )
    if background_tasks is not None:
        background_tasks.add_task(send_verification_email, user.email, verification_token)
    increment_auth_event("register", "success")
    logger.info("User registered", extra={"user_id": user.id})
    return user, create_token_pair(user.id)


def login(db: Session, *, email: str, password: str):
    user = get_user_by_email(db, email)
    if not verify_password(password, user.password_hash if user else _DUMMY_HASH) or not user:
        increment_auth_event("login", "invalid_credentials")
        raise InvalidCredentials()
    if user.status != AccountStatus.active:
        increment_auth_event("login", "suspended")
        raise AccountSuspended()
    user.last_login = utcnow()
    db.commit()
    db.refresh(user)
    increment_auth_event("login", "success")
    logger.info("User logged in", extra={"user_id": user.id})
    return user, create_token_pair(user.id)


def refresh(db: Session, refresh_token: Optional[str]) -> dict:
    if not refresh_token:
        raise InvalidRefreshToken("Refresh token required")
    try:
        user_id = verify_token(refresh_token, REFRESH)
    except InvalidToken:
        increment_auth_event("refresh", "invalid")
        raise InvalidRefreshToken()
    user = get_user(db, user_id)
    if not user:
        increment_auth_event("refresh", "unknown_user")
        raise InvalidRefreshToken()
    increment_auth_event("refresh", "success")
    return create_token_pair(user.id)


def forgot_password(db: Session, background_tasks: Optional[BackgroundTasks], *, email: str) -> User:
    user = get_user_by_email(db, email)
    if not user:
        raise UserNotFound()
    token = generate_token()
    user.reset_password_token = token
    user.reset_password_expire = utcnow() + timedelta(minutes=RESET_TOKEN_EXPIRE_MINUTES)
    db.commit()
    if background_tasks is not None:
        background_tasks.add_task(send_password_reset_email, user.email, token, RESET_TOKEN_EXPIRE_MINUTES)
    logger.info("Password reset requested", extra={"user_id": user.id})
    return user


def reset_password(db: Session, *, token: str, new_password: str) -> User:
    user = db.query(User).filter(User.reset_password_token == token).first() if token else None
    if not user:
        raise InvalidOrExpiredToken()
    if not user.reset_password_expire or user.reset_password_expire <= utcnow():
        user.reset_password_token = None
        user.reset_password_expire = None
        db.commit()
        raise InvalidOrExpiredToken()
    user.password_hash = hash_password(new_password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.commit()
    logger.info("Password reset completed", extra={"user_id": user.id})
    return user


def verify_email(db: Session, token: Optional[str]) -> User:
    user = db.query(User).filter(User.verification_token == token).first() if token else None
    if not user:
        raise InvalidToken("Invalid verification token", status_code=400)
    user.is_verified = True
    user.verification_token = None
    db.commit()
    logger.info("Email verified", extra={"user_id": user.id})
    return user
