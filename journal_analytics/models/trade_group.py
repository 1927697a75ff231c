"""TradeGroup model — a cluster of trades treated as fills of one logical position."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class TradeGroup(SQLModel, table=True):
    __tablename__ = "trade_group"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    symbol: str  # normalized
    direction: str
    # Set once at creation; not moved when earlier fills join later
    first_entry_time: datetime = Field(sa_type=DateTime(timezone=True))
    playbook_id: int | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
