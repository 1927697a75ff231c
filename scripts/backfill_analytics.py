#!/usr/bin/env python3
"""One-off backfill: group trades and (re)compute features for every user.

Safe to re-run: grouping skips trades already grouped, and features are
upserted on trade_id.

Usage:
    python scripts/backfill_analytics.py [--window-seconds 60] [--user <username>]
"""

import argparse
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from journal_analytics.config import settings
from journal_analytics.database import engine, create_db_and_tables
from journal_analytics.models.trade import Trade
from journal_analytics.models.user import User
from journal_analytics.services.trade_features import upsert_trade_features
from journal_analytics.services.trade_grouper import group_trades
from journal_analytics.utils.logging import setup_logging

logger = logging.getLogger("backfill_analytics")


def backfill(window_seconds: int, username: str | None = None):
    create_db_and_tables()

    with Session(engine) as session:
        stmt = select(User).where(User.is_active == True)  # noqa: E712
        if username:
            stmt = stmt.where(User.username == username)
        users = session.exec(stmt).all()

        for user in users:
            grouping = group_trades(session, user_id=user.id, window_seconds=window_seconds)
            print(
                f"  {user.username}: {grouping.groups_created} groups created, "
                f"{grouping.trades_grouped} trades grouped"
            )

            trades = session.exec(
                select(Trade)
                .where(Trade.user_id == user.id)
                .where(Trade.is_archived == False)  # noqa: E712
            ).all()
            computed = 0
            for trade in trades:
                try:
                    upsert_trade_features(session, trade)
                    computed += 1
                except SQLAlchemyError as e:
                    session.rollback()
                    logger.error(f"Feature computation failed for trade {trade.id}: {e}")
            print(f"  {user.username}: features computed for {computed}/{len(trades)} trades")

    print("\nBackfill complete!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--window-seconds", type=int, default=settings.default_group_window_seconds)
    parser.add_argument("--user", default=None)
    args = parser.parse_args()

    setup_logging()
    backfill(args.window_seconds, args.user)
