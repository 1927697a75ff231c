"""Pydantic schemas for the event ingestion API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class AccountInfo(BaseModel):
    login: int | None = None
    broker: str | None = None
    server: str | None = None
    balance: float | None = None
    equity: float | None = None


class EventPayload(BaseModel):
    idempotency_key: str = Field(min_length=1, max_length=200)
    terminal_id: str | None = None
    event_type: Literal["entry", "exit", "history_sync", "open", "modify", "partial_close", "close"]
    # Actual event type of a history_sync replay
    original_event_type: Literal["entry", "exit"] | None = None
    position_id: int | str | None = None
    deal_id: int | str | None = None
    order_id: int | str | None = None
    ticket: int | str | None = None  # legacy alias of position_id
    symbol: str = Field(min_length=1, max_length=64)
    direction: Literal["buy", "sell"]
    lot_size: float = Field(default=0.0, ge=0)
    price: float
    sl: float | None = None
    tp: float | None = None
    commission: float | None = None
    swap: float | None = None
    profit: float | None = None
    timestamp: datetime
    server_time: str | None = None
    timezone_offset_seconds: int | None = None
    equity_at_entry: float | None = None
    entry_price: float | None = None
    entry_time: datetime | None = None
    account_info: AccountInfo | None = None
    raw_payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("symbol")
    @classmethod
    def _trim_symbol(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @field_validator("sl", "tp")
    @classmethod
    def _zero_means_unset(cls, value: float | None) -> float | None:
        # MT5 reports "no stop" / "no target" as 0.0
        if value == 0:
            return None
        return value

    @model_validator(mode="after")
    def _require_position(self):
        if self.position_id in (None, "", 0) and self.ticket in (None, "", 0):
            raise ValueError("position_id or ticket is required")
        return self

    @property
    def position_key(self) -> str:
        return str(self.position_id or self.ticket)

    @property
    def effective_event_type(self) -> str:
        """Event type with history_sync replays resolved to what they replay."""
        if self.event_type == "history_sync":
            return self.original_event_type or "entry"
        return self.event_type


class IngestResponse(BaseModel):
    status: Literal["accepted", "duplicate"]
    event_id: int | None = None
    account_id: int | None = None
    trade_id: int | None = None
    message: str
