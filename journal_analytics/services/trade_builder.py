"""Derive closed-trade fields from a close event.

Shared by orphan exit recovery and live event ingestion, which both
materialize a Trade from a close event that has no open Trade to update.
"""

from datetime import datetime

from journal_analytics.models.event import Event
from journal_analytics.models.trade import Trade
from journal_analytics.services.risk_metrics import RiskMetricsCalculator
from journal_analytics.services.sessions import classify_session
from journal_analytics.utils.time import parse_timestamp, to_utc


def net_pnl(profit: float | None, commission: float | None, swap: float | None) -> float:
    """Net P&L; swap is always treated as a cost regardless of its sign."""
    return (profit or 0.0) - (commission or 0.0) - abs(swap or 0.0)


def duration_seconds(entry_time: datetime, exit_time: datetime) -> int | None:
    seconds = int((to_utc(exit_time) - to_utc(entry_time)).total_seconds())
    return seconds if seconds > 0 else None


def closed_trade_from_event(
    event: Event,
    user_id: int,
    current_equity: float,
    calculator: RiskMetricsCalculator,
) -> Trade:
    """Build a fully closed Trade from a close event alone.

    Entry price/time and equity come from the event's raw payload when the
    terminal sent them; otherwise the close price, close time and current
    account equity stand in for them.
    """
    raw = event.raw_payload or {}
    entry_price = raw.get("entry_price") or event.price
    entry_time = parse_timestamp(raw.get("entry_time")) or to_utc(event.event_timestamp)
    exit_time = to_utc(event.event_timestamp)
    equity_at_entry = raw.get("equity_at_entry") or current_equity

    gross = event.profit or 0.0
    net = net_pnl(gross, event.commission, event.swap)
    r = calculator.r_multiple(
        event.symbol,
        event.lot_size,
        entry_price,
        event.sl,
        net,
        equity_at_entry,
    )

    return Trade(
        user_id=user_id,
        account_id=event.account_id,
        terminal_id=event.terminal_id,
        ticket=event.ticket,
        symbol=event.symbol,
        direction=event.direction,
        total_lots=0.0,
        original_lots=event.lot_size,
        entry_price=entry_price,
        entry_time=entry_time,
        exit_price=event.price,
        exit_time=exit_time,
        sl_initial=event.sl,
        tp_initial=event.tp,
        sl_final=event.sl,
        tp_final=event.tp,
        gross_pnl=gross,
        commission=event.commission or 0.0,
        swap=event.swap or 0.0,
        net_pnl=net,
        r_multiple_actual=r.value if r else None,
        r_multiple_method=r.method if r else None,
        duration_seconds=duration_seconds(entry_time, exit_time),
        session=classify_session(entry_time),
        is_open=False,
        balance_at_entry=current_equity,
        equity_at_entry=equity_at_entry,
    )
