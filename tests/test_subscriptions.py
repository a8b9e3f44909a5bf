from types import SimpleNamespace
import stripe
from adblockpro.models import Subscription, SubscriptionStatus, Plan, Interval
from adblockpro.utils import utcnow
from conftest import PASSWORD, register, auth_headers


def add_subscription(db, user, status=SubscriptionStatus.active, plan=Plan.pro, stripe_id="sub_1", price=3):
    sub = Subscription(
        user_id=user.id,
        plan=plan,
        interval=Interval.monthly,
        status=status,
        price=price,
        stripe_subscription_id=stripe_id,
        current_period_start=utcnow(),
    )
    db.add(sub)
    db.commit()
    db.refresh(sub)
    return sub


def test_cancel_without_subscription_after_verified_login(client, db, sent_emails):
    assert register(client, email="alice@example.com").status_code == 201
    token = sent_emails[0]["html"].split("verify-email?token=")[1].split('"')[0]
    assert client.get("/api/auth/verify-email", params={"token": token}).status_code == 200

    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
    access = login.json()["data"]["token"]

    resp = client.post("/api/subscriptions/cancel", headers={"Authorization": f"Bearer {access}"})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "No active subscription found"}


def test_cancel_sets_cancel_at_period_end(client, db, make_user):
    user = make_user()
    sub = add_subscription(db, user)
    resp = client.post("/api/subscriptions/cancel", headers=auth_headers(user.id))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["cancelAtPeriodEnd"] is True
    assert data["status"] == "active"
    db.refresh(sub)
    assert sub.cancel_at_period_end is True


def test_cancel_ignores_past_due_subscription(client, db, make_user):
    user = make_user()
    add_subscription(db, user, status=SubscriptionStatus.past_due)
    resp = client.post("/api/subscriptions/cancel", headers=auth_headers(user.id))
    assert resp.status_code == 404


def test_me_history_and_invoices(client, db, make_user):
    user = make_user()
    headers = auth_headers(user.id)
    assert client.get("/api/subscriptions/me", headers=headers).json() == {"success": True, "data": None}

    add_subscription(db, user, status=SubscriptionStatus.cancelled, stripe_id="sub_old")
    current = add_subscription(db, user, stripe_id="sub_new")

    me = client.get("/api/subscriptions/me", headers=headers).json()["data"]
    assert me["id"] == current.id
    history = client.get("/api/subscriptions/history", headers=headers).json()["data"]
    assert [s["stripeSubscriptionId"] for s in history] == ["sub_new", "sub_old"]
    assert client.get("/api/subscriptions/invoices", headers=headers).json()["data"] == []


def test_plans_are_public(client):
    resp = client.get("/api/subscriptions/plans")
    assert resp.status_code == 200
    plans = {p["id"]: p for p in resp.json()["data"]}
    assert plans["pro"]["monthlyPrice"] == 3
    assert plans["teams"]["yearlyPrice"] == 78
    assert plans["free"]["purchasable"] is False


def test_checkout_session_carries_user_reference(client, make_user, monkeypatch):
    user = make_user()
    calls = []

    def fake_create(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")

    monkeypatch.setattr("stripe.checkout.Session.create", fake_create)
    resp = client.post("/api/subscriptions/checkout", json={"plan": "pro"}, headers=auth_headers(user.id))
    assert resp.status_code == 200
    assert resp.json()["data"] == {"sessionId": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1"}
    assert calls[0]["client_reference_id"] == str(user.id)
    assert calls[0]["metadata"] == {"plan": "pro", "interval": "monthly"}
    assert calls[0]["line_items"] == [{"price": "price_pro_monthly", "quantity": 1}]


def test_checkout_rejects_free_and_unconfigured_prices(client, make_user, monkeypatch):
    user = make_user()
    headers = auth_headers(user.id)
    monkeypatch.setattr("stripe.checkout.Session.create", lambda **kwargs: None)
    assert client.post("/api/subscriptions/checkout", json={"plan": "free"}, headers=headers).status_code == 400
    assert client.post("/api/subscriptions/checkout", json={"plan": "pro", "interval": "yearly"}, headers=headers).status_code == 400
    assert client.post("/api/subscriptions/checkout", json={"plan": "gold"}, headers=headers).status_code == 400


def test_checkout_provider_failure(client, make_user, monkeypatch):
    user = make_user()

    def fail(**kwargs):
        raise stripe.StripeError("card network down")

    monkeypatch.setattr("stripe.checkout.Session.create", fail)
    resp = client.post("/api/subscriptions/checkout", json={"plan": "teams", "interval": "yearly"}, headers=auth_headers(user.id))
    assert resp.status_code == 502
    assert resp.json()["success"] is False
