"""Database models."""

from journal_analytics.models.user import User
from journal_analytics.models.account import Account
from journal_analytics.models.event import Event
from journal_analytics.models.trade_group import TradeGroup
from journal_analytics.models.trade import Trade
from journal_analytics.models.trade_features import TradeFeatures

__all__ = [
    "User",
    "Account",
    "Event",
    "TradeGroup",
    "Trade",
    "TradeFeatures",
]
