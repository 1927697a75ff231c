"""Trade API — history reads, auto-grouping and orphan exit recovery."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlmodel import Session, select

from journal_analytics.config import settings
from journal_analytics.database import get_session
from journal_analytics.engine.locks import BatchInProgressError
from journal_analytics.models.trade import Trade
from journal_analytics.models.user import User
from journal_analytics.api.deps import get_current_user
from journal_analytics.schemas.grouping import AutoGroupRequest, AutoGroupResponse
from journal_analytics.schemas.recovery import RecoveryResponse
from journal_analytics.services.orphan_recovery import recover_orphan_exits
from journal_analytics.services.trade_grouper import TradeNotFoundError, group_trades

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trades", tags=["trades"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "error", "message": message})


@router.get("")
def list_trades(
    account_id: int | None = None,
    is_open: bool | None = None,
    include_archived: bool = False,
    limit: int = 50,
    offset: int = 0,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    stmt = select(Trade).where(Trade.user_id == user.id).order_by(Trade.entry_time.desc())
    if account_id is not None:
        stmt = stmt.where(Trade.account_id == account_id)
    if is_open is not None:
        stmt = stmt.where(Trade.is_open == is_open)
    if not include_archived:
        stmt = stmt.where(Trade.is_archived == False)  # noqa: E712
    stmt = stmt.offset(offset).limit(limit)
    return session.exec(stmt).all()


@router.post("/auto-group", response_model=AutoGroupResponse)
def auto_group_trades(body: AutoGroupRequest, session: Session = Depends(get_session)):
    """Assign trade groups for one trade or the user's ungrouped backlog.

    Called service-to-service after ingestion, so the owner comes from the
    body rather than a bearer token.
    """
    if body.user_id is None:
        return _error(status.HTTP_400_BAD_REQUEST, "user_id is required")

    window = body.window_seconds
    if window is None:
        window = settings.default_group_window_seconds

    try:
        result = group_trades(
            session,
            user_id=body.user_id,
            trade_id=body.trade_id,
            window_seconds=window,
        )
    except TradeNotFoundError:
        return _error(status.HTTP_404_NOT_FOUND, "Trade not found")
    except BatchInProgressError as e:
        return _error(status.HTTP_409_CONFLICT, str(e))

    return AutoGroupResponse(
        status="success",
        groups_created=result.groups_created,
        trades_grouped=result.trades_grouped,
    )


@router.post("/recover-orphans", response_model=RecoveryResponse)
def recover_orphans(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Backfill closed trades for processed close events that have no trade."""
    try:
        result = recover_orphan_exits(session, user.id)
    except BatchInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return RecoveryResponse(
        recovered=result.recovered,
        trades=result.trades,
        skipped=result.skipped,
        failed=result.failed,
        message=result.message,
    )


@router.get("/{trade_id}")
def get_trade(
    trade_id: int,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    trade = session.get(Trade, trade_id)
    if not trade or trade.user_id != user.id:
        raise HTTPException(status_code=404, detail="Trade not found")
    return trade
