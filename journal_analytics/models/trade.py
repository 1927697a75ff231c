"""Trade model — one row per open or closed broker position."""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, UniqueConstraint
from sqlmodel import SQLModel, Field, Column


class Trade(SQLModel, table=True):
    __tablename__ = "trade"
    __table_args__ = (UniqueConstraint("user_id", "ticket", name="uq_trade_user_ticket"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    account_id: int | None = Field(default=None, foreign_key="account.id", index=True)
    terminal_id: str | None = None
    ticket: str = Field(index=True)
    symbol: str
    direction: str  # "buy" or "sell"
    total_lots: float = 0.0  # lots still open
    original_lots: float = 0.0
    entry_price: float
    entry_time: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    exit_price: float | None = None
    exit_time: datetime | None = Field(default=None, sa_type=DateTime(timezone=True))
    sl_initial: float | None = None
    tp_initial: float | None = None
    sl_final: float | None = None
    tp_final: float | None = None
    gross_pnl: float | None = None
    commission: float = 0.0
    swap: float = 0.0
    net_pnl: float | None = None
    r_multiple_actual: float | None = None
    r_multiple_method: str | None = None  # "risk" or "equity_pct"
    duration_seconds: int | None = None
    session: str | None = None
    is_open: bool = Field(default=True, index=True)
    trade_group_id: int | None = Field(default=None, foreign_key="trade_group.id", index=True)
    playbook_id: int | None = None
    partial_closes: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    balance_at_entry: float = 0.0
    equity_at_entry: float = 0.0
    is_archived: bool = Field(default=False, index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
