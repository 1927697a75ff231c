"""Tests for terminal event ingestion."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError
from sqlmodel import select

from journal_analytics.models.event import Event
from journal_analytics.models.trade import Trade
from journal_analytics.schemas.events import EventPayload
from journal_analytics.services.event_ingest import find_account_by_api_key, ingest_event
from journal_analytics.services.risk_metrics import METHOD_RISK

T0 = datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)


def payload(key: str, **overrides) -> EventPayload:
    values = dict(
        idempotency_key=key,
        terminal_id="term-1",
        event_type="entry",
        position_id=555,
        symbol="EURUSD",
        direction="buy",
        lot_size=1.0,
        price=1.1000,
        sl=1.0950,
        tp=1.1100,
        timestamp=T0,
    )
    values.update(overrides)
    return EventPayload(**values)


def exit_payload(key: str, **overrides) -> EventPayload:
    values = dict(
        event_type="exit",
        price=1.1050,
        profit=50.0,
        commission=0.0,
        swap=0.0,
        timestamp=T0 + timedelta(hours=1),
    )
    values.update(overrides)
    return payload(key, **values)


def _trade(session) -> Trade:
    session.expire_all()
    return session.exec(select(Trade)).one()


# ---------------------------------------------------------------------------
# 1. Payload validation
# ---------------------------------------------------------------------------

class TestEventPayload:
    def test_zero_stop_and_target_mean_unset(self):
        p = payload("k", sl=0, tp=0.0)
        assert p.sl is None
        assert p.tp is None

    def test_symbol_trimmed(self):
        assert payload("k", symbol="  EURUSD.a ").symbol == "EURUSD.a"

    def test_blank_symbol_rejected(self):
        with pytest.raises(ValidationError):
            payload("k", symbol="   ")

    def test_position_required(self):
        with pytest.raises(ValidationError):
            payload("k", position_id=None)

    def test_ticket_is_position_alias(self):
        assert payload("k", position_id=None, ticket=42).position_key == "42"

    def test_history_sync_resolves_replayed_type(self):
        p = payload("k", event_type="history_sync", original_event_type="exit")
        assert p.effective_event_type == "exit"
        assert payload("k", event_type="history_sync").effective_event_type == "entry"


# ---------------------------------------------------------------------------
# 2. Applying events
# ---------------------------------------------------------------------------

class TestIngestEvent:
    def test_open_creates_trade(self, session, account):
        result = ingest_event(session, account, payload("e1", equity_at_entry=9500))

        assert result.status == "accepted"
        trade = _trade(session)
        assert result.trade_id == trade.id
        assert trade.ticket == "555"
        assert trade.is_open is True
        assert trade.total_lots == 1.0
        assert trade.session == "new_york_am"
        assert trade.equity_at_entry == 9500
        assert trade.balance_at_entry == 10000

        event = session.get(Event, result.event_id)
        assert event.event_type == "open"
        assert event.processed is True

    def test_full_close(self, session, account):
        ingest_event(session, account, payload("e1"))
        ingest_event(session, account, exit_payload("e2"))

        trade = _trade(session)
        assert trade.is_open is False
        assert trade.total_lots == 0
        assert trade.exit_price == pytest.approx(1.1050)
        assert trade.net_pnl == pytest.approx(50)
        assert trade.r_multiple_actual == pytest.approx(0.10)
        assert trade.r_multiple_method == METHOD_RISK
        assert trade.duration_seconds == 3600
        assert account.equity_current == pytest.approx(10050)

    def test_partial_then_final_close(self, session, account):
        ingest_event(session, account, payload("e1"))
        partial = ingest_event(session, account, exit_payload("e2", lot_size=0.4, profit=20.0))

        trade = _trade(session)
        assert trade.is_open is True
        assert trade.total_lots == pytest.approx(0.6)
        assert len(trade.partial_closes) == 1
        assert trade.partial_closes[0]["pnl"] == 20.0
        assert session.get(Event, partial.event_id).event_type == "partial_close"

        ingest_event(session, account, exit_payload("e3", lot_size=0.6, profit=30.0))

        trade = _trade(session)
        assert trade.is_open is False
        assert trade.gross_pnl == pytest.approx(50)
        assert trade.net_pnl == pytest.approx(50)
        assert trade.r_multiple_actual == pytest.approx(0.10)

    def test_duplicate_is_not_reapplied(self, session, account):
        first = ingest_event(session, account, payload("e1"))
        second = ingest_event(session, account, payload("e1"))

        assert second.status == "duplicate"
        assert second.event_id == first.event_id
        assert len(session.exec(select(Event)).all()) == 1
        assert len(session.exec(select(Trade)).all()) == 1

    def test_close_without_open_takes_orphan_path(self, session, account):
        result = ingest_event(
            session,
            account,
            exit_payload("e1", entry_price=1.1000, entry_time=T0, profit=45.0, commission=2.0, swap=-1.0),
        )

        trade = _trade(session)
        assert result.trade_id == trade.id
        assert trade.is_open is False
        assert trade.entry_price == pytest.approx(1.1000)
        assert trade.net_pnl == pytest.approx(42)
        assert trade.duration_seconds == 3600

    def test_entry_details_in_raw_payload_are_kept(self, session, account):
        result = ingest_event(
            session,
            account,
            exit_payload("e1", raw_payload={"entry_price": 1.1000, "entry_time": "2024-07-15T12:00:00Z"}),
        )

        event = session.get(Event, result.event_id)
        assert event.raw_payload["entry_price"] == 1.1000
        assert event.raw_payload["entry_time"] == "2024-07-15T12:00:00Z"
        assert event.raw_payload["position_id"] == 555
        trade = _trade(session)
        assert trade.entry_price == pytest.approx(1.1000)
        assert trade.duration_seconds == 3600
        assert trade.r_multiple_actual == pytest.approx(0.10)

    def test_top_level_entry_details_override_raw_payload(self, session, account):
        result = ingest_event(
            session,
            account,
            exit_payload("e1", entry_price=1.1000, raw_payload={"entry_price": 1.0900}),
        )

        assert session.get(Event, result.event_id).raw_payload["entry_price"] == 1.1000

    def test_close_after_close_ignored(self, session, account):
        ingest_event(session, account, payload("e1"))
        ingest_event(session, account, exit_payload("e2"))
        ingest_event(session, account, exit_payload("e3", profit=999.0))

        assert _trade(session).net_pnl == pytest.approx(50)

    def test_modify_moves_final_levels(self, session, account):
        ingest_event(session, account, payload("e1"))
        ingest_event(session, account, payload("e2", event_type="modify", sl=1.0980, tp=1.1150))

        trade = _trade(session)
        assert trade.sl_initial == pytest.approx(1.0950)
        assert trade.sl_final == pytest.approx(1.0980)
        assert trade.tp_final == pytest.approx(1.1150)

    def test_account_info_updates_equity(self, session, account):
        ingest_event(session, account, payload("e1", account_info={"equity": 12345.0}))
        assert account.equity_current == 12345.0

    def test_find_account_by_api_key(self, session, account):
        assert find_account_by_api_key(session, "test-api-key").id == account.id
        assert find_account_by_api_key(session, "nope") is None
