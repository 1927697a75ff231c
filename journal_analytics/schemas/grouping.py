"""Pydantic schemas for the trade grouping API."""

from pydantic import BaseModel, Field


class AutoGroupRequest(BaseModel):
    user_id: int | None = None
    trade_id: int | None = None
    window_seconds: int | None = Field(default=None, ge=0)


class AutoGroupResponse(BaseModel):
    status: str = "success"
    groups_created: int
    trades_grouped: int
