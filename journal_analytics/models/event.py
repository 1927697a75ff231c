"""Event model — append-only log of raw broker execution events."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlmodel import SQLModel, Field, Column


class Event(SQLModel, table=True):
    __tablename__ = "event"

    id: int | None = Field(default=None, primary_key=True)
    idempotency_key: str | None = Field(default=None, unique=True, index=True)
    account_id: int = Field(foreign_key="account.id", index=True)
    terminal_id: str | None = None
    ticket: str = Field(index=True)  # broker position id
    event_type: str  # "open", "close", "partial_close", "modify"
    symbol: str
    direction: str  # "buy" or "sell"
    lot_size: float = 0.0
    price: float
    sl: float | None = None
    tp: float | None = None
    profit: float | None = None
    commission: float = 0.0
    swap: float = 0.0
    event_timestamp: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    raw_payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    processed: bool = Field(default=False, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
