"""Account model — a broker trading account owned by a user."""

from datetime import datetime, timezone

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field


class Account(SQLModel, table=True):
    __tablename__ = "account"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    name: str
    broker: str | None = None
    account_number: str | None = None
    terminal_id: str | None = None
    api_key: str = Field(unique=True, index=True)  # sent by the terminal bridge as X-API-Key
    balance_start: float = 0.0
    equity_current: float | None = None
    is_active: bool = True
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )

    @property
    def current_equity(self) -> float:
        """Latest known equity, falling back to the starting balance."""
        return self.equity_current or self.balance_start or 0.0
