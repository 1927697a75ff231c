"""Pydantic schemas for the pattern mining API."""

from typing import Literal

from pydantic import BaseModel, Field


class PatternMineRequest(BaseModel):
    account_id: int | Literal["all"] | None = None
    min_trades: int | None = Field(default=None, ge=0)  # 0 or missing = default


class PatternStats(BaseModel):
    trades: int
    winRate: float
    avgR: float
    totalPnl: float
    # Trades whose R is an equity-percentage stand-in, not a true risk multiple
    equityBasedR: int = 0


class Pattern(BaseModel):
    type: str
    category: str
    insight: str
    severity: Literal["positive", "negative", "neutral"]
    recommendation: str
    stats: PatternStats


class DataRange(BaseModel):
    start: str | None = None
    end: str | None = None


class PatternSummary(BaseModel):
    bestConditions: list[str]
    worstConditions: list[str]
    totalTradesAnalyzed: int
    dataRange: DataRange
    message: str | None = None


class PatternsResponse(BaseModel):
    patterns: list[Pattern]
    summary: PatternSummary
