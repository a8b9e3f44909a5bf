from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session
from adblockpro.db import get_db
from adblockpro.dependencies import get_current_user, require_active_user
from adblockpro.models import User
from adblockpro.schemas import (
    RegisterRequest, LoginRequest, RefreshRequest, ForgotPasswordRequest, ResetPasswordRequest,
)
from adblockpro.serializers import ok, user_public
from adblockpro.services import auth as auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    user, tokens = auth_service.register(
        db, background_tasks, name=data.name, email=data.email, password=data.password
    )
    return ok({"user": user_public(user, include_settings=True), **tokens})


@router.post("/login")
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user, tokens = auth_service.login(db, email=data.email, password=data.password)
    return ok({"user": user_public(user, include_settings=True), **tokens})


@router.post("/refresh")
def refresh(data: Optional[RefreshRequest] = None, db: Session = Depends(get_db)):
    tokens = auth_service.refresh(db, data.refresh_token if data else None)
    return ok(tokens)


@router.post("/forgot-password")
def forgot_password(data: ForgotPasswordRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    auth_service.forgot_password(db, background_tasks, email=data.email)
    return ok(message="Password reset email sent")


@router.post("/reset-password")
def reset_password(data: ResetPasswordRequest, db: Session = Depends(get_db)):
    auth_service.reset_password(db, token=data.token, new_password=data.password)
    return ok(message="Password reset successful")


@router.get("/verify-email")
def verify_email(token: Optional[str] = Query(None), db: Session = Depends(get_db)):
    auth_service.verify_email(db, token)
    return ok(message="Email verified successfully")


@router.get("/me")
def me(user: User = Depends(require_active_user)):
    return ok(user_public(user, include_settings=True))


@router.post("/logout")
def logout(user: User = Depends(get_current_user)):
    # tokens are stateless; the client discards its pair
    return ok(message="Logged out successfully")
