from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from adblockpro.db import get_db
from adblockpro.errors import NotAuthorized, InvalidToken, AccountSuspended
from adblockpro.models import User, AccountStatus
from adblockpro.repository import get_user
from adblockpro.security import verify_token, ACCESS

bearer = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer access token to a user, or raise 401."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise NotAuthorized("Not authorized, no token")
    try:
        user_id = verify_token(credentials.credentials, ACCESS)
    except InvalidToken:
        raise NotAuthorized("Not authorized, token failed")
    user = get_user(db, user_id)
    if not user:
        raise NotAuthorized("Not authorized, user not found")
    request.state.user_id = user.id
    return user


def require_active_user(current_user: User = Depends(get_current_user)) -> User:
    """Require an authenticated user whose account is not suspended."""
    if current_user.status != AccountStatus.active:
        raise AccountSuspended()
    return current_user
