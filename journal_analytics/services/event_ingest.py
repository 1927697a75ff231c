"""Event ingestion — record a terminal event and apply it to the trade table.

Flow for one payload:
1. Deduplicate on idempotency_key.
2. Append the Event (entry details merged into raw_payload for later recovery).
3. Apply it: open creates a Trade; close completes it (or records a partial
   close); a close with no Trade takes the orphan path; modify moves SL/TP.
4. Mark the event processed.
"""

import logging
from dataclasses import dataclass

from sqlmodel import Session, select

from journal_analytics.models.account import Account
from journal_analytics.models.event import Event
from journal_analytics.models.trade import Trade
from journal_analytics.schemas.events import EventPayload
from journal_analytics.services.risk_metrics import RiskMetricsCalculator, get_calculator
from journal_analytics.services.sessions import classify_session
from journal_analytics.services.trade_builder import (
    closed_trade_from_event,
    duration_seconds,
    net_pnl,
)
from journal_analytics.utils.time import isoformat, to_utc

logger = logging.getLogger(__name__)

PARTIAL_CLOSE_TOLERANCE = 0.001  # lots

_DB_EVENT_TYPES = {
    "entry": "open",
    "exit": "close",
}


@dataclass
class IngestResult:
    status: str  # "accepted" or "duplicate"
    event_id: int | None
    trade_id: int | None = None
    message: str = ""


def find_account_by_api_key(session: Session, api_key: str) -> Account | None:
    return session.exec(
        select(Account).where(Account.api_key == api_key).where(Account.is_active == True)  # noqa: E712
    ).first()


def _build_event(account: Account, payload: EventPayload) -> Event:
    effective = payload.effective_event_type
    top_level = {
        "position_id": payload.position_id,
        "deal_id": payload.deal_id,
        "order_id": payload.order_id,
        "server_time": payload.server_time,
        "timezone_offset_seconds": payload.timezone_offset_seconds,
        "equity_at_entry": payload.equity_at_entry,
        "entry_price": payload.entry_price,
        "entry_time": isoformat(payload.entry_time),
    }
    # Top-level fields win only when set; raw_payload may carry them alone
    raw_payload = {
        **payload.raw_payload,
        **{k: v for k, v in top_level.items() if v is not None},
    }
    return Event(
        idempotency_key=payload.idempotency_key,
        account_id=account.id,
        terminal_id=payload.terminal_id,
        ticket=payload.position_key,
        event_type=_DB_EVENT_TYPES.get(effective, effective),
        symbol=payload.symbol,
        direction=payload.direction,
        lot_size=payload.lot_size,
        price=payload.price,
        sl=payload.sl,
        tp=payload.tp,
        profit=payload.profit,
        commission=payload.commission or 0.0,
        swap=payload.swap or 0.0,
        event_timestamp=to_utc(payload.timestamp),
        raw_payload=raw_payload,
    )


def ingest_event(
    session: Session,
    account: Account,
    payload: EventPayload,
    calculator: RiskMetricsCalculator | None = None,
) -> IngestResult:
    calculator = calculator or get_calculator()
    logger.info(
        f"Received event {payload.idempotency_key} {payload.event_type} "
        f"position={payload.position_key} deal={payload.deal_id}"
    )

    existing = session.exec(
        select(Event.id).where(Event.idempotency_key == payload.idempotency_key)
    ).first()
    if existing is not None:
        logger.info(f"Duplicate event {payload.idempotency_key}")
        return IngestResult("duplicate", existing, message="Event already processed")

    if payload.terminal_id and not account.terminal_id:
        account.terminal_id = payload.terminal_id
    if payload.account_info and payload.account_info.equity:
        account.equity_current = payload.account_info.equity
    session.add(account)

    event = _build_event(account, payload)
    session.add(event)
    session.flush()

    trade = _apply_event(session, account, event, payload, calculator)

    event.processed = True
    session.add(event)
    session.commit()

    trade_id = trade.id if trade is not None else None
    logger.info(f"Event {event.id} processed (trade={trade_id})")
    return IngestResult("accepted", event.id, trade_id, "Event processed successfully")


def _apply_event(
    session: Session,
    account: Account,
    event: Event,
    payload: EventPayload,
    calculator: RiskMetricsCalculator,
) -> Trade | None:
    trade = session.exec(
        select(Trade)
        .where(Trade.user_id == account.user_id)
        .where(Trade.ticket == event.ticket)
    ).first()

    if event.event_type == "open":
        if trade is not None:
            logger.info(f"Trade already exists for position {event.ticket}")
            return trade
        return _open_trade(session, account, event, payload)

    if event.event_type in ("close", "partial_close"):
        if trade is None:
            logger.info(f"Orphan exit event, creating closed trade for position {event.ticket}")
            trade = closed_trade_from_event(event, account.user_id, account.current_equity, calculator)
            session.add(trade)
            session.flush()
            return trade
        if not trade.is_open:
            logger.warning(f"Close event for already closed position {event.ticket}, ignoring")
            return trade
        return _close_trade(session, account, trade, event, payload, calculator)

    if event.event_type == "modify" and trade is not None:
        trade.sl_final = event.sl
        trade.tp_final = event.tp
        session.add(trade)
        logger.info(f"Processed modify for position {event.ticket}")
    return trade


def _open_trade(session: Session, account: Account, event: Event, payload: EventPayload) -> Trade:
    current_equity = account.current_equity
    entry_time = to_utc(event.event_timestamp)
    trade = Trade(
        user_id=account.user_id,
        account_id=account.id,
        terminal_id=event.terminal_id,
        ticket=event.ticket,
        symbol=event.symbol,
        direction=event.direction,
        total_lots=event.lot_size,
        original_lots=event.lot_size,
        entry_price=event.price,
        entry_time=entry_time,
        sl_initial=event.sl,
        tp_initial=event.tp,
        sl_final=event.sl,
        tp_final=event.tp,
        session=classify_session(entry_time),
        is_open=True,
        balance_at_entry=current_equity,
        equity_at_entry=payload.equity_at_entry or current_equity,
    )
    session.add(trade)
    session.flush()
    logger.info(f"Created trade for position {event.ticket} equity_at_entry={trade.equity_at_entry}")
    return trade


def _close_trade(
    session: Session,
    account: Account,
    trade: Trade,
    event: Event,
    payload: EventPayload,
    calculator: RiskMetricsCalculator,
) -> Trade:
    remaining_lots = trade.total_lots - event.lot_size

    if remaining_lots > PARTIAL_CLOSE_TOLERANCE:
        trade.partial_closes = [
            *(trade.partial_closes or []),
            {
                "time": isoformat(event.event_timestamp),
                "lots": event.lot_size,
                "price": event.price,
                "pnl": event.profit or 0.0,
                "deal_id": payload.deal_id,
            },
        ]
        trade.total_lots = remaining_lots
        trade.sl_final = event.sl if event.sl is not None else trade.sl_final
        trade.tp_final = event.tp if event.tp is not None else trade.tp_final
        session.add(trade)
        event.event_type = "partial_close"
        logger.info(f"Partial close for position {event.ticket}, remaining lots {remaining_lots}")
        return trade

    gross = (event.profit or 0.0) + sum(p.get("pnl") or 0.0 for p in trade.partial_closes or [])
    commission = (event.commission or 0.0) + (trade.commission or 0.0)
    swap = (event.swap or 0.0) + (trade.swap or 0.0)
    net = net_pnl(gross, commission, swap)

    sl = trade.sl_initial if trade.sl_initial is not None else trade.sl_final
    lots = trade.original_lots or trade.total_lots
    equity_at_entry = trade.equity_at_entry or trade.balance_at_entry
    r = calculator.r_multiple(trade.symbol, lots, trade.entry_price, sl, net, equity_at_entry)

    trade.exit_price = event.price
    trade.exit_time = to_utc(event.event_timestamp)
    trade.gross_pnl = gross
    trade.commission = commission
    trade.swap = swap
    trade.net_pnl = net
    trade.r_multiple_actual = r.value if r else None
    trade.r_multiple_method = r.method if r else None
    trade.duration_seconds = duration_seconds(trade.entry_time, event.event_timestamp)
    trade.is_open = False
    trade.total_lots = 0.0
    trade.sl_final = event.sl if event.sl is not None else trade.sl_final
    trade.tp_final = event.tp if event.tp is not None else trade.tp_final
    session.add(trade)

    account.equity_current = (equity_at_entry or account.current_equity) + net
    session.add(account)

    logger.info(
        f"Full close for position {event.ticket}: PnL={net:.2f} "
        f"R={trade.r_multiple_actual} equity={account.equity_current:.2f}"
    )
    return trade
