from adblockpro.logging_config import get_logger
from adblockpro.config import CLIENT_URL
from adblockpro.metrics import increment_email_sent

logger = get_logger("adblockpro.background")

def deliver_email(to, subject, html, text=None, template="generic"):
    """Send one email, best effort.

    Runs as a FastAPI background task after the response is sent, so a failing
    SMTP server never undoes the account change that queued the email.
    """
    from adblockpro.utils import send_email
    try:
        send_email(to, subject, html, text)
    except Exception:
        logger.exception("Email delivery failed", extra={"outcome": "failed"})
        increment_email_sent(template, "failed")
        return False
    increment_email_sent(template, "sent")
    return True

def send_verification_email(email, token):
    link = f"{CLIENT_URL}/verify-email?token={token}"
    html = f"""
    <h1>Welcome to AdBlock Pro!</h1>
    <p>Please click the link below to verify your email:</p>
    <a href="{link}">Verify Email</a>
    """
    return deliver_email(email, "Verify your AdBlock Pro account", html, template="verify_email")

def send_password_reset_email(email, token, expire_minutes):
    link = f"{CLIENT_URL}/reset-password?token={token}"
    html = f"""
    <h1>Password Reset</h1>
    <p>You requested a password reset. Click the link below to reset your password:</p>
    <a href="{link}">Reset Password</a>
    <p>This link expires in {expire_minutes} minutes.</p>
    """
    return deliver_email(email, "Password Reset Request", html, template="reset_password")
