"""Pydantic schemas for the orphan exit recovery API."""

from pydantic import BaseModel


class RecoveryResponse(BaseModel):
    recovered: int
    trades: list[str]
    skipped: int = 0
    failed: list[str] = []
    message: str
