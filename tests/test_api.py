"""HTTP-level tests for the analytics API."""

from datetime import datetime, timedelta, timezone

import pyotp
import pytest

from journal_analytics.services.auth import create_access_token

T0 = datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# 1. Transport behavior
# ---------------------------------------------------------------------------

class TestTransport:
    def test_health(self, client):
        resp = client.get("/api/system/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_plain_options_is_empty_success(self, client):
        resp = client.options("/api/trades/auto-group")
        assert resp.status_code == 204
        assert resp.content == b""

    def test_cors_preflight(self, client):
        resp = client.options(
            "/api/patterns/mine",
            headers={
                "Origin": "https://journal.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code == 200
        assert "access-control-allow-origin" in resp.headers


# ---------------------------------------------------------------------------
# 2. Auth
# ---------------------------------------------------------------------------

class TestAuth:
    def test_login(self, client, user):
        code = pyotp.TOTP(user.totp_secret).now()
        resp = client.post(
            "/api/auth/login",
            json={"username": "trader", "password": "pw", "totp_code": code},
        )
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json() == {"id": user.id, "username": "trader"}

    def test_login_bad_password(self, client, user):
        resp = client.post(
            "/api/auth/login",
            json={"username": "trader", "password": "wrong", "totp_code": "000000"},
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid credentials"}

    def test_missing_token(self, client):
        resp = client.post("/api/trades/recover-orphans")
        assert resp.status_code == 401
        assert resp.json() == {"error": "No authorization header"}

    def test_invalid_token(self, client):
        resp = client.post("/api/patterns/mine", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid or expired token"}

    def test_token_for_unknown_user(self, client):
        headers = {"Authorization": f"Bearer {create_access_token(9999)}"}
        resp = client.get("/api/trades", headers=headers)
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# 3. Trades: auto-group, recovery, reads
# ---------------------------------------------------------------------------

class TestAutoGroupEndpoint:
    def test_missing_user_id(self, client):
        resp = client.post("/api/trades/auto-group", json={})
        assert resp.status_code == 400
        assert resp.json() == {"status": "error", "message": "user_id is required"}

    def test_groups_backlog(self, client, user, make_trade):
        for s in (0, 30, 55):
            make_trade(entry_time=T0 + timedelta(seconds=s))

        resp = client.post("/api/trades/auto-group", json={"user_id": user.id})

        assert resp.status_code == 200
        assert resp.json() == {"status": "success", "groups_created": 1, "trades_grouped": 3}

    def test_custom_window(self, client, user, make_trade):
        for s in (0, 30):
            make_trade(entry_time=T0 + timedelta(seconds=s))

        resp = client.post("/api/trades/auto-group", json={"user_id": user.id, "window_seconds": 10})

        assert resp.json()["groups_created"] == 0

    def test_unknown_trade(self, client, user):
        resp = client.post("/api/trades/auto-group", json={"user_id": user.id, "trade_id": 9999})
        assert resp.status_code == 404
        assert resp.json() == {"status": "error", "message": "Trade not found"}


class TestRecoverOrphansEndpoint:
    def test_recovers(self, client, auth_headers, make_event):
        make_event(ticket="T1", symbol="EURUSD.a")

        resp = client.post("/api/trades/recover-orphans", headers=auth_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["recovered"] == 1
        assert body["trades"] == ["EURUSD.a #T1"]
        assert body["message"] == "Recovered 1 missed trade(s)"

        again = client.post("/api/trades/recover-orphans", headers=auth_headers).json()
        assert again["recovered"] == 0

    def test_no_accounts(self, client, auth_headers):
        resp = client.post("/api/trades/recover-orphans", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["message"] == "No accounts found"


class TestTradeReads:
    def test_list_scoped_to_user(self, client, auth_headers, other_user, make_trade):
        mine = make_trade()
        make_trade(user_id=other_user.id)

        resp = client.get("/api/trades", headers=auth_headers)

        assert resp.status_code == 200
        assert [t["id"] for t in resp.json()] == [mine.id]

    def test_get_other_users_trade(self, client, auth_headers, other_user, make_trade):
        theirs = make_trade(user_id=other_user.id)
        resp = client.get(f"/api/trades/{theirs.id}", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Trade not found"}


# ---------------------------------------------------------------------------
# 4. Patterns and features
# ---------------------------------------------------------------------------

class TestPatternsEndpoint:
    def test_not_enough_trades(self, client, auth_headers):
        resp = client.post("/api/patterns/mine", headers=auth_headers)
        assert resp.status_code == 200
        summary = resp.json()["summary"]
        assert summary["message"] == "Need at least 3 trades to analyze patterns"
        assert summary["totalTradesAnalyzed"] == 0

    def test_mines_closed_trades(self, client, auth_headers, make_trade):
        for i in range(3):
            make_trade(
                symbol="GBPUSD",
                entry_time=T0 + timedelta(minutes=i),
                is_open=False,
                net_pnl=50.0,
                r_multiple_actual=0.5,
                session="london",
            )

        resp = client.post(
            "/api/patterns/mine",
            headers=auth_headers,
            json={"account_id": "all", "min_trades": 3},
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"]["totalTradesAnalyzed"] == 3
        # Equal impacts keep dimension order
        assert body["summary"]["bestConditions"] == ["Monday", "London", "London Longs"]
        symbol = next(p for p in body["patterns"] if p["type"] == "symbol")
        assert symbol["stats"]["winRate"] == pytest.approx(100)


class TestFeaturesEndpoint:
    def test_compute(self, client, auth_headers, make_trade):
        trade = make_trade(sl_initial=1.0950, tp_initial=1.1100, exit_price=1.1080, session="new_york_am")

        resp = client.post("/api/features/compute", headers=auth_headers, json={"trade_id": trade.id})

        assert resp.status_code == 200
        features = resp.json()["features"]
        assert features["trade_id"] == trade.id
        assert features["day_of_week"] == 1
        assert features["stop_location_quality"] == pytest.approx(75)

    def test_other_users_trade(self, client, auth_headers, other_user, make_trade):
        theirs = make_trade(user_id=other_user.id)
        resp = client.post("/api/features/compute", headers=auth_headers, json={"trade_id": theirs.id})
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# 5. Event ingestion
# ---------------------------------------------------------------------------

class TestIngestEndpoint:
    EVENT = {
        "idempotency_key": "evt-1",
        "event_type": "entry",
        "position_id": 777,
        "symbol": "EURUSD",
        "direction": "buy",
        "lot_size": 1.0,
        "price": 1.1,
        "sl": 1.095,
        "timestamp": "2024-07-15T12:00:00Z",
    }

    def test_missing_api_key(self, client):
        resp = client.post("/api/events/ingest", json=self.EVENT)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Missing API key"}

    def test_invalid_api_key(self, client, account):
        resp = client.post("/api/events/ingest", json=self.EVENT, headers={"X-API-Key": "wrong"})
        assert resp.status_code == 401

    def test_accepted_then_duplicate(self, client, account):
        headers = {"X-API-Key": account.api_key}

        first = client.post("/api/events/ingest", json=self.EVENT, headers=headers)
        second = client.post("/api/events/ingest", json=self.EVENT, headers=headers)

        assert first.status_code == 200
        assert first.json()["status"] == "accepted"
        assert first.json()["account_id"] == account.id
        assert first.json()["trade_id"] is not None
        assert second.json()["status"] == "duplicate"
