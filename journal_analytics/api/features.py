"""Trade feature API — compute and store per-trade risk/efficiency features."""

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from journal_analytics.database import get_session
from journal_analytics.models.trade import Trade
from journal_analytics.models.user import User
from journal_analytics.api.deps import get_current_user
from journal_analytics.schemas.features import (
    ComputeFeaturesRequest,
    ComputeFeaturesResponse,
    TradeFeaturesRead,
)
from journal_analytics.services.trade_features import upsert_trade_features

router = APIRouter(prefix="/api/features", tags=["features"])


@router.post("/compute", response_model=ComputeFeaturesResponse)
def compute_trade_features(
    body: ComputeFeaturesRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    trade = session.get(Trade, body.trade_id)
    if not trade or trade.user_id != user.id:
        raise HTTPException(status_code=404, detail="Trade not found")

    features = upsert_trade_features(session, trade)
    return ComputeFeaturesResponse(features=TradeFeaturesRead.model_validate(features))
