"""System API — health check."""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlmodel import Session

from journal_analytics.database import get_session

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check(session: Session = Depends(get_session)):
    session.execute(text("SELECT 1"))
    return {"status": "ok"}
