"""Pydantic schemas for the trade feature API."""

from datetime import datetime

from pydantic import BaseModel


class ComputeFeaturesRequest(BaseModel):
    trade_id: int


class TradeFeaturesRead(BaseModel):
    trade_id: int
    day_of_week: int
    time_since_session_open_mins: int | None
    range_size_pips: float | None
    entry_percentile: float | None
    entry_efficiency: float | None
    exit_efficiency: float | None
    stop_location_quality: float | None
    computed_at: datetime

    model_config = {"from_attributes": True}


class ComputeFeaturesResponse(BaseModel):
    features: TradeFeaturesRead
