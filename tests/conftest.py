import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_PRICE_PRO_MONTHLY"] = "price_pro_monthly"
os.environ["STRIPE_PRICE_TEAMS_YEARLY"] = "price_teams_yearly"
os.environ.pop("STRIPE_PRICE_PRO_YEARLY", None)

import hashlib
import hmac
import json
import time
from unittest.mock import patch
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from adblockpro.db import get_db
from adblockpro.main import app
from adblockpro.models import Base, Role
from adblockpro.repository import create_user
from adblockpro.security import create_access_token, hash_password

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
PASSWORD = "Passw0rd123"


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    yield db
    db.close()
    engine.dispose()


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def sent_emails():
    """Capture outgoing mail instead of talking to an SMTP server."""
    sent = []

    def fake_send_email(to_email, subject, html, text=None):
        sent.append({"to": to_email, "subject": subject, "html": html})

    with patch("adblockpro.utils.send_email", fake_send_email):
        yield sent


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(email=None, name="Test User", role=Role.user, password=PASSWORD, **fields):
        counter["n"] += 1
        user = create_user(
            db,
            name=name,
            email=email or f"user{counter['n']}@example.com",
            password_hash=hash_password(password),
            role=role,
        )
        for key, value in fields.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user

    return _make


def register(client, name="Alice", email="alice@example.com", password=PASSWORD):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    signature = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def post_event(client, event: dict, secret: str = WEBHOOK_SECRET):
    payload = json.dumps(event)
    return client.post(
        "/webhooks/stripe",
        content=payload,
        headers={"stripe-signature": stripe_signature(payload, secret), "Content-Type": "application/json"},
    )


def stripe_event(event_id, event_type, data_object):
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": data_object}}
