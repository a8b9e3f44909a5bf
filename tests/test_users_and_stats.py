from adblockpro.models import User, Subscription, SubscriptionStatus, Plan, Interval, AccountStatus
from conftest import auth_headers


def test_stats_deltas_are_additive(client, make_user):
    user = make_user()
    headers = auth_headers(user.id)
    client.put("/api/users/stats", json={"adsBlocked": 5}, headers=headers)
    resp = client.post("/api/stats/update", json={"adsBlocked": 5, "trackersBlocked": 2, "dataSaved": "12 MB"}, headers=headers)
    assert resp.status_code == 200
    stats = resp.json()["data"]
    assert stats["adsBlocked"] == 10
    assert stats["trackersBlocked"] == 2
    assert stats["dataSaved"] == "12 MB"
    assert stats["timeSaved"] == "0 hours"
    assert stats["lastUpdated"] is not None

    again = client.get("/api/stats/me", headers=headers).json()["data"]
    assert again["adsBlocked"] == 10


def test_negative_stats_delta_rejected(client, make_user):
    user = make_user()
    resp = client.put("/api/users/stats", json={"adsBlocked": -3}, headers=auth_headers(user.id))
    assert resp.status_code == 400


def test_oversized_stats_delta_rejected(client, db, make_user):
    user = make_user()
    headers = auth_headers(user.id)
    resp = client.put("/api/users/stats", json={"adsBlocked": 10**20}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["success"] is False
    resp = client.post("/api/stats/update", json={"trackersBlocked": 10**9 + 1}, headers=headers)
    assert resp.status_code == 400
    db.refresh(user)
    assert user.ads_blocked == 0
    assert user.trackers_blocked == 0

    # the ceiling itself is accepted and totals may grow past 32 bits
    for _ in range(3):
        assert client.put("/api/users/stats", json={"adsBlocked": 10**9}, headers=headers).status_code == 200
    assert client.get("/api/stats/me", headers=headers).json()["data"]["adsBlocked"] == 3 * 10**9


def test_global_stats_are_public(client, make_user):
    make_user(ads_blocked=7, trackers_blocked=1)
    make_user(ads_blocked=3)
    resp = client.get("/api/stats/global")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"totalAdsBlocked": 10, "totalTrackersBlocked": 1, "totalUsers": 2}


def test_settings_partial_merge(client, make_user):
    user = make_user()
    headers = auth_headers(user.id)
    resp = client.put("/api/users/settings", json={"notifications": {"weeklyReport": False}}, headers=headers)
    assert resp.status_code == 200
    settings = resp.json()["data"]
    assert settings["notifications"] == {"email": True, "browser": True, "weeklyReport": False}

    resp = client.put("/api/users/settings", json={"privacy": {"blockWebRTC": True}}, headers=headers)
    settings = resp.json()["data"]
    assert settings["notifications"]["weeklyReport"] is False
    assert settings["privacy"]["blockWebRTC"] is True
    assert settings["privacy"]["blockTrackers"] is True

    profile = client.get("/api/users/profile", headers=headers).json()["data"]
    assert profile["settings"] == settings


def test_profile_update_and_email_uniqueness(client, make_user):
    make_user(email="taken@example.com")
    user = make_user(email="me@example.com")
    headers = auth_headers(user.id)

    resp = client.put("/api/users/profile", json={"name": "New Name", "avatar": "https://cdn.example.com/a.png"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == "New Name"

    resp = client.put("/api/users/profile", json={"email": "TAKEN@example.com"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email already in use"

    resp = client.put("/api/users/profile", json={"email": "Fresh@Example.com"}, headers=headers)
    assert resp.json()["data"]["email"] == "fresh@example.com"


def test_suspended_user_blocked_from_protected_routes(client, make_user):
    user = make_user(status=AccountStatus.suspended)
    resp = client.get("/api/users/profile", headers=auth_headers(user.id))
    assert resp.status_code == 403


def test_delete_account_keeps_billing_history(client, db, make_user):
    user = make_user()
    db.add(Subscription(user_id=user.id, plan=Plan.pro, interval=Interval.monthly,
                        status=SubscriptionStatus.active, price=3, stripe_subscription_id="sub_keep"))
    db.commit()
    user_id = user.id

    resp = client.delete("/api/users/account", headers=auth_headers(user_id))
    assert resp.status_code == 200
    assert db.get(User, user_id) is None
    sub = db.query(Subscription).filter_by(stripe_subscription_id="sub_keep").one()
    assert sub.user_id is None

    # the token now points at nobody
    assert client.get("/api/users/profile", headers=auth_headers(user_id)).status_code == 401


def test_concurrent_email_claim_reports_duplicate(client, db, make_user, monkeypatch):
    make_user(email="taken@example.com")
    user = make_user(email="me@example.com")
    # another request claimed the address between the check and the commit
    monkeypatch.setattr("adblockpro.services.users.email_taken", lambda *args, **kwargs: False)

    resp = client.put("/api/users/profile", json={"email": "taken@example.com"}, headers=auth_headers(user.id))
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Email already in use"}
    db.refresh(user)
    assert user.email == "me@example.com"
