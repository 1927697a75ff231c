"""TradeFeatures model — derived per-trade features, upserted on trade_id."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class TradeFeatures(SQLModel, table=True):
    __tablename__ = "trade_features"

    id: int | None = Field(default=None, primary_key=True)
    trade_id: int = Field(foreign_key="trade.id", unique=True, index=True)
    day_of_week: int  # 0 = Sunday, UTC
    time_since_session_open_mins: int | None = None
    range_size_pips: float | None = None
    entry_percentile: float | None = None
    entry_efficiency: float | None = None
    exit_efficiency: float | None = None
    stop_location_quality: float | None = None
    computed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
