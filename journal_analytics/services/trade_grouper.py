"""Trade grouping — cluster per-order trades into multi-fill positions.

A broker that fills one logical position as several orders produces several
Trade rows. Trades on the same instrument and side entered within
``window_seconds`` of each other are assigned a shared ``trade_group_id``.

Matching is pairwise against the anchor trade only, not transitive across
the cluster: with a 60s window, fills at t, t+50s and t+100s anchored at t
group only the first two, and a cluster's total span can exceed twice the
window when later anchors join an existing group. This is kept deliberately
for compatibility with groups already stored.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from journal_analytics.engine.locks import user_batch_lock
from journal_analytics.models.trade import Trade
from journal_analytics.models.trade_group import TradeGroup
from journal_analytics.services.symbols import normalize_symbol
from journal_analytics.utils.time import to_utc

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60


class TradeNotFoundError(LookupError):
    pass


@dataclass
class GroupingResult:
    groups_created: int = 0
    trades_grouped: int = 0


def should_group(a: Trade, b: Trade, window_seconds: int = DEFAULT_WINDOW_SECONDS) -> bool:
    """Same normalized symbol, same direction, entries within the window."""
    if normalize_symbol(a.symbol) != normalize_symbol(b.symbol):
        return False
    if a.direction != b.direction:
        return False
    diff = abs((to_utc(a.entry_time) - to_utc(b.entry_time)).total_seconds())
    return diff <= window_seconds


def _find_matches(session: Session, anchor: Trade, window_seconds: int) -> list[Trade]:
    entry = to_utc(anchor.entry_time)
    window = timedelta(seconds=window_seconds)
    candidates = session.exec(
        select(Trade)
        .where(Trade.user_id == anchor.user_id)
        .where(Trade.direction == anchor.direction)
        .where(Trade.is_archived == False)  # noqa: E712
        .where(Trade.id != anchor.id)
        .where(Trade.entry_time >= entry - window)
        .where(Trade.entry_time <= entry + window)
        .order_by(Trade.entry_time)
    ).all()
    return [t for t in candidates if should_group(anchor, t, window_seconds)]


def _resolve_group_id(session: Session, anchor: Trade, matches: list[Trade]) -> tuple[int, bool]:
    """Pick the group for anchor + matches. Returns (group_id, created)."""
    existing = next((t.trade_group_id for t in matches if t.trade_group_id), None)
    if existing:
        logger.info(f"Adding trade {anchor.id} to existing group {existing}")
        return existing, False
    if anchor.trade_group_id:
        logger.info(f"Adding matches to trade {anchor.id}'s existing group {anchor.trade_group_id}")
        return anchor.trade_group_id, False

    first_entry_time = min(to_utc(t.entry_time) for t in [anchor, *matches])
    group = TradeGroup(
        user_id=anchor.user_id,
        symbol=normalize_symbol(anchor.symbol),
        direction=anchor.direction,
        first_entry_time=first_entry_time,
        playbook_id=anchor.playbook_id,
    )
    session.add(group)
    session.flush()
    logger.info(f"Created group {group.id} for {group.symbol} {group.direction}")
    return group.id, True


def group_trades(
    session: Session,
    user_id: int,
    trade_id: int | None = None,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
) -> GroupingResult:
    """Assign trade groups for one trade or for the user's whole ungrouped backlog.

    A failure while grouping one anchor is logged and rolled back; the
    remaining anchors are still processed.
    """
    with user_batch_lock("auto_group", user_id):
        return _group_trades_locked(session, user_id, trade_id, window_seconds)


def _group_trades_locked(
    session: Session,
    user_id: int,
    trade_id: int | None,
    window_seconds: int,
) -> GroupingResult:
    if trade_id is not None:
        trade = session.exec(
            select(Trade).where(Trade.id == trade_id).where(Trade.user_id == user_id)
        ).first()
        if trade is None:
            raise TradeNotFoundError(f"Trade {trade_id} not found")
        anchors = [trade]
    else:
        anchors = session.exec(
            select(Trade)
            .where(Trade.user_id == user_id)
            .where(Trade.trade_group_id == None)  # noqa: E711
            .where(Trade.is_archived == False)  # noqa: E712
            .order_by(Trade.entry_time)
        ).all()

    logger.info(
        f"Auto-grouping {len(anchors)} trade(s) for user {user_id} "
        f"(trade_id={trade_id or 'all'}, window={window_seconds}s)"
    )

    result = GroupingResult()
    processed: set[int] = set()

    for anchor in anchors:
        if anchor.id in processed:
            continue
        anchor_id = anchor.id

        try:
            matches = _find_matches(session, anchor, window_seconds)
            if not matches:
                processed.add(anchor_id)
                continue

            group_id, created = _resolve_group_id(session, anchor, matches)
            members = [anchor, *matches]
            for t in members:
                t.trade_group_id = group_id
                session.add(t)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to group trade {anchor_id}: {e}")
            continue

        if created:
            result.groups_created += 1
        result.trades_grouped += len(members)
        processed.update(t.id for t in members)
        logger.info(f"Grouped {len(members)} trade(s) in group {group_id}")

    logger.info(
        f"Auto-grouping complete: {result.groups_created} group(s) created, "
        f"{result.trades_grouped} trade(s) grouped"
    )
    return result
