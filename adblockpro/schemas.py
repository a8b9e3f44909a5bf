import re
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from adblockpro.models import Plan, Role, AccountStatus, Interval
from adblockpro.security import password_strong_enough
from adblockpro.utils import normalize_email

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72
# per request; keeps running totals far inside a 64-bit column
MAX_STATS_DELTA = 10**9


def _valid_email(value: str) -> str:
    value = normalize_email(value)
    if not EMAIL_RE.match(value):
        raise ValueError("Valid email is required")
    return value


def _valid_new_password(value: str) -> str:
    if not password_strong_enough(value):
        raise ValueError("Password must be at least 8 characters and contain uppercase, lowercase, and number")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError("Password is too long")
    return value


Email = Annotated[str, AfterValidator(_valid_email)]
NewPassword = Annotated[str, AfterValidator(_valid_new_password)]


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class RegisterRequest(CamelModel):
    name: str
    email: Email
    password: NewPassword

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class LoginRequest(CamelModel):
    email: Email
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = Field(None, alias="refreshToken")


class ForgotPasswordRequest(CamelModel):
    email: Email


class ResetPasswordRequest(CamelModel):
    token: str = Field(min_length=1)
    password: NewPassword


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v

    @field_validator("email")
    @classmethod
    def email_valid(cls, v):
        return _valid_email(v) if v is not None else v


class NotificationSettings(CamelModel):
    email: Optional[bool] = None
    browser: Optional[bool] = None
    weekly_report: Optional[bool] = Field(None, alias="weeklyReport")


class PrivacySettings(CamelModel):
    block_trackers: Optional[bool] = Field(None, alias="blockTrackers")
    hide_referrers: Optional[bool] = Field(None, alias="hideReferrers")
    block_web_rtc: Optional[bool] = Field(None, alias="blockWebRTC")
    fingerprint_defense: Optional[bool] = Field(None, alias="fingerprintDefense")


class SettingsUpdate(CamelModel):
    notifications: Optional[NotificationSettings] = None
    privacy: Optional[PrivacySettings] = None


class StatsUpdate(CamelModel):
    ads_blocked: Optional[int] = Field(None, ge=0, le=MAX_STATS_DELTA, alias="adsBlocked")
    trackers_blocked: Optional[int] = Field(None, ge=0, le=MAX_STATS_DELTA, alias="trackersBlocked")
    data_saved: Optional[str] = Field(None, max_length=50, alias="dataSaved")
    time_saved: Optional[str] = Field(None, max_length=50, alias="timeSaved")


class AdminUserUpdate(CamelModel):
    plan: Optional[Plan] = None
    role: Optional[Role] = None
    status: Optional[AccountStatus] = None


class CheckoutRequest(CamelModel):
    plan: Plan
    interval: Interval = Interval.monthly
