"""Pattern mining API."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from journal_analytics.config import settings
from journal_analytics.database import get_session
from journal_analytics.models.user import User
from journal_analytics.api.deps import get_current_user
from journal_analytics.schemas.patterns import PatternMineRequest, PatternsResponse
from journal_analytics.services.pattern_miner import mine_user_patterns

router = APIRouter(prefix="/api/patterns", tags=["patterns"])


@router.post("/mine", response_model=PatternsResponse)
def mine_patterns(
    body: PatternMineRequest | None = None,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Rank the conditions (day, session, symbol, time) the user trades best and worst in."""
    body = body or PatternMineRequest()
    account_id = None if body.account_id == "all" else body.account_id
    return mine_user_patterns(
        session,
        user_id=user.id,
        account_id=account_id,
        min_trades=body.min_trades or settings.default_min_trades,
    )
