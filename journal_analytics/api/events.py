"""Event ingestion API — terminal bridges post broker executions here."""

from fastapi import APIRouter, Depends
from sqlmodel import Session

from journal_analytics.database import get_session
from journal_analytics.models.account import Account
from journal_analytics.api.deps import get_api_key_account
from journal_analytics.schemas.events import EventPayload, IngestResponse
from journal_analytics.services.event_ingest import ingest_event

router = APIRouter(prefix="/api/events", tags=["events"])


@router.post("/ingest", response_model=IngestResponse)
def ingest(
    payload: EventPayload,
    account: Account = Depends(get_api_key_account),
    session: Session = Depends(get_session),
):
    result = ingest_event(session, account, payload)
    return IngestResponse(
        status=result.status,
        event_id=result.event_id,
        account_id=account.id,
        trade_id=result.trade_id,
        message=result.message,
    )
