"""Orphan exit recovery — reconcile the event log against the trade table.

Every processed close event should have a Trade for its ticket. A close
whose open was never recorded (terminal offline, history sync starting
mid-position, failed insert) leaves an "orphan exit". This pass rebuilds
those trades from the close event alone.

Re-running is a no-op for tickets that already have a trade, so callers
can retry the whole operation after any failure.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from journal_analytics.engine.locks import user_batch_lock
from journal_analytics.models.account import Account
from journal_analytics.models.event import Event
from journal_analytics.models.trade import Trade
from journal_analytics.services.risk_metrics import RiskMetricsCalculator, get_calculator
from journal_analytics.services.trade_builder import closed_trade_from_event

logger = logging.getLogger(__name__)


@dataclass
class RecoveryResult:
    recovered: int = 0
    trades: list[str] = field(default_factory=list)
    skipped: int = 0
    failed: list[str] = field(default_factory=list)
    message: str = ""


def trade_exists(session: Session, user_id: int, ticket: str) -> bool:
    return session.exec(
        select(Trade.id).where(Trade.user_id == user_id).where(Trade.ticket == ticket)
    ).first() is not None


def recover_orphan_exits(
    session: Session,
    user_id: int,
    calculator: RiskMetricsCalculator | None = None,
) -> RecoveryResult:
    """Create closed trades for processed close events that have none."""
    with user_batch_lock("recover_orphans", user_id):
        return _recover_locked(session, user_id, calculator or get_calculator())


def _recover_locked(
    session: Session,
    user_id: int,
    calculator: RiskMetricsCalculator,
) -> RecoveryResult:
    logger.info(f"Reprocessing orphan exits for user {user_id}")

    accounts = session.exec(select(Account).where(Account.user_id == user_id)).all()
    if not accounts:
        return RecoveryResult(message="No accounts found")

    equity_by_account = {a.id: a.current_equity for a in accounts}

    close_events = session.exec(
        select(Event)
        .where(Event.account_id.in_(list(equity_by_account)))  # type: ignore[attr-defined]
        .where(Event.event_type == "close")
        .where(Event.processed == True)  # noqa: E712
        .order_by(Event.event_timestamp, Event.id)
    ).all()
    logger.info(f"Found {len(close_events)} processed close event(s) to check")

    result = RecoveryResult()
    for event in close_events:
        ticket = event.ticket
        label = f"{event.symbol} #{ticket}"

        if trade_exists(session, user_id, ticket):
            result.skipped += 1
            continue

        logger.info(f"Found orphan exit event for ticket {ticket}")
        try:
            trade = closed_trade_from_event(
                event,
                user_id=user_id,
                current_equity=equity_by_account.get(event.account_id, 0.0),
                calculator=calculator,
            )
        except (ValueError, TypeError) as e:
            logger.error(f"Unusable close event for ticket {ticket}: {e}")
            result.failed.append(label)
            continue

        try:
            session.add(trade)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to create trade for ticket {ticket}: {e}")
            result.failed.append(label)
            continue

        result.recovered += 1
        result.trades.append(label)
        logger.info(f"Recovered trade {ticket} {event.symbol} PnL={trade.net_pnl}")

    result.message = (
        f"Recovered {result.recovered} missed trade(s)"
        if result.recovered
        else "No missed trades found"
    )
    logger.info(f"Recovery complete: {result.recovered} trade(s) recovered")
    return result
