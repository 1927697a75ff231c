"""Pattern mining over closed trades.

Buckets a user's closed trades along independent dimensions (weekday,
session, session and side, symbol, time of day), scores every bucket that
meets the sample-size floor, and ranks the results by the size of their
average R, largest impact first regardless of sign.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Hashable, Iterable

from sqlmodel import Session, select

from journal_analytics.models.trade import Trade
from journal_analytics.schemas.patterns import (
    DataRange,
    Pattern,
    PatternStats,
    PatternSummary,
    PatternsResponse,
)
from journal_analytics.services.risk_metrics import METHOD_EQUITY_PCT
from journal_analytics.services.symbols import symbol_root
from journal_analytics.utils.time import isoformat, to_utc

logger = logging.getLogger(__name__)

DEFAULT_MIN_TRADES = 3
POSITIVE_THRESHOLD = 0.3
NEGATIVE_THRESHOLD = -0.3
SUMMARY_SIZE = 3

# Index 0 is Sunday
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

SESSION_NAMES = {
    "tokyo": "Tokyo",
    "london": "London",
    "new_york": "New York",
    "new_york_am": "NY AM",
    "new_york_pm": "NY PM",
    "overlap_london_ny": "London/NY Overlap",
    "off_hours": "Off Hours",
}

MORNING = "Morning (4-11 UTC)"
AFTERNOON = "Afternoon (11-18 UTC)"
EVENING = "Evening (18-4 UTC)"


@dataclass
class BucketStats:
    trades: int = 0
    wins: int = 0
    total_pnl: float = 0.0
    total_r: float = 0.0
    equity_based_r: int = 0

    def add(self, trade: Trade):
        pnl = trade.net_pnl or 0.0
        self.trades += 1
        if pnl > 0:
            self.wins += 1
        self.total_pnl += pnl
        self.total_r += trade.r_multiple_actual or 0.0
        if trade.r_multiple_method == METHOD_EQUITY_PCT:
            self.equity_based_r += 1


def utc_weekday(trade: Trade) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return (to_utc(trade.entry_time).weekday() + 1) % 7


def session_name(session: str) -> str:
    return SESSION_NAMES.get(session, session)


def time_of_day(trade: Trade) -> str:
    hour = to_utc(trade.entry_time).hour
    if 4 <= hour < 11:
        return MORNING
    if 11 <= hour < 18:
        return AFTERNOON
    return EVENING


def calculate_stats(trades: Iterable[Trade]) -> BucketStats:
    stats = BucketStats()
    for t in trades:
        stats.add(t)
    return stats


def _format_pnl(total_pnl: float) -> str:
    if total_pnl >= 0:
        return f"+${total_pnl:.0f}"
    return f"-${abs(total_pnl):.0f}"


def _format_r(avg_r: float) -> str:
    return f"+{avg_r:.2f}R" if avg_r >= 0 else f"{avg_r:.2f}R"


def severity_for(avg_r: float) -> str:
    if avg_r > POSITIVE_THRESHOLD:
        return "positive"
    if avg_r < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


def _recommendation(severity: str, category: str) -> str:
    if severity == "positive":
        return f"Your edge is strong with {category}. Consider increasing focus here."
    if severity == "negative":
        return f"Consider avoiding or reducing size for {category} trades."
    return f"{category} shows neutral performance. Monitor for pattern changes."


def stats_to_pattern(
    type_: str,
    category: str,
    stats: BucketStats,
    min_trades: int = DEFAULT_MIN_TRADES,
) -> Pattern | None:
    """Score one bucket; None when it has fewer than ``min_trades`` trades.

    Empty buckets are rejected too, for direct calls with ``min_trades=0``.
    """
    if stats.trades < min_trades or stats.trades == 0:
        return None

    win_rate = stats.wins / stats.trades * 100
    avg_r = stats.total_r / stats.trades
    severity = severity_for(avg_r)
    insight = (
        f"{category}: {win_rate:.1f}% WR, {_format_r(avg_r)} avg, "
        f"{_format_pnl(stats.total_pnl)}"
    )
    return Pattern(
        type=type_,
        category=category,
        insight=insight,
        severity=severity,
        recommendation=_recommendation(severity, category),
        stats=PatternStats(
            trades=stats.trades,
            winRate=win_rate,
            avgR=avg_r,
            totalPnl=stats.total_pnl,
            equityBasedR=stats.equity_based_r,
        ),
    )


def _bucket(
    trades: Iterable[Trade],
    key: Callable[[Trade], Hashable | None],
) -> dict[Hashable, list[Trade]]:
    buckets: dict[Hashable, list[Trade]] = defaultdict(list)
    for t in trades:
        k = key(t)
        if k is not None:
            buckets[k].append(t)
    return buckets


def _session_direction_key(trade: Trade) -> tuple[str, str] | None:
    if not trade.session:
        return None
    return trade.session, trade.direction


def _session_direction_name(key: tuple[str, str]) -> str:
    session, direction = key
    side = "Longs" if direction == "buy" else "Shorts"
    return f"{session_name(session)} {side}"


# (pattern type, bucket key, display name for a key)
DIMENSIONS: list[tuple[str, Callable[[Trade], Hashable | None], Callable[[Hashable], str]]] = [
    ("day_of_week", utc_weekday, lambda day: DAY_NAMES[day]),
    ("session", lambda t: t.session or None, session_name),
    ("session_direction", _session_direction_key, _session_direction_name),
    ("symbol", lambda t: symbol_root(t.symbol), str),
    ("time_of_day", time_of_day, str),
]


def mine_patterns(trades: list[Trade], min_trades: int = DEFAULT_MIN_TRADES) -> PatternsResponse:
    """Mine and rank patterns from already-loaded closed trades."""
    if len(trades) < min_trades:
        return PatternsResponse(
            patterns=[],
            summary=PatternSummary(
                bestConditions=[],
                worstConditions=[],
                totalTradesAnalyzed=len(trades),
                dataRange=DataRange(start=None, end=None),
                message=f"Need at least {min_trades} trades to analyze patterns",
            ),
        )

    logger.info(f"Analyzing {len(trades)} trades (min_trades={min_trades})")

    patterns: list[Pattern] = []
    for type_, key, name in DIMENSIONS:
        for bucket_key, bucket_trades in _bucket(trades, key).items():
            pattern = stats_to_pattern(type_, name(bucket_key), calculate_stats(bucket_trades), min_trades)
            if pattern:
                patterns.append(pattern)

    # Stable sort keeps dimension order among equal impacts
    patterns.sort(key=lambda p: abs(p.stats.avgR), reverse=True)

    positive = [p for p in patterns if p.severity == "positive"]
    negative = [p for p in patterns if p.severity == "negative"]

    entry_times = sorted(to_utc(t.entry_time) for t in trades)
    summary = PatternSummary(
        bestConditions=[p.category for p in positive[:SUMMARY_SIZE]],
        worstConditions=[p.category for p in negative[:SUMMARY_SIZE]],
        totalTradesAnalyzed=len(trades),
        dataRange=DataRange(start=isoformat(entry_times[0]), end=isoformat(entry_times[-1])),
    )

    logger.info(
        f"Found {len(patterns)} patterns: {len(positive)} positive, {len(negative)} negative"
    )
    return PatternsResponse(patterns=patterns, summary=summary)


def load_closed_trades(session: Session, user_id: int, account_id: int | None = None) -> list[Trade]:
    stmt = (
        select(Trade)
        .where(Trade.user_id == user_id)
        .where(Trade.is_open == False)  # noqa: E712
        .where(Trade.net_pnl != None)  # noqa: E711
    )
    if account_id is not None:
        stmt = stmt.where(Trade.account_id == account_id)
    return list(session.exec(stmt).all())


def mine_user_patterns(
    session: Session,
    user_id: int,
    account_id: int | None = None,
    min_trades: int = DEFAULT_MIN_TRADES,
) -> PatternsResponse:
    logger.info(f"Mining patterns for user {user_id} (account={account_id or 'all'})")
    trades = load_closed_trades(session, user_id, account_id)
    return mine_patterns(trades, min_trades)
