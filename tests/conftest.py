"""Shared fixtures: in-memory SQLite database, API client, users and trades."""

import os

# Must be set before journal_analytics.config is imported anywhere
os.environ.setdefault("TA_DATABASE_URL", "sqlite://")
os.environ.setdefault("TA_JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import journal_analytics.models  # noqa: F401
from journal_analytics.database import get_session
from journal_analytics.main import app
from journal_analytics.models.account import Account
from journal_analytics.models.event import Event
from journal_analytics.models.trade import Trade
from journal_analytics.models.user import User
from journal_analytics.services.auth import create_access_token, hash_password

T0 = datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)  # Monday, 08:00 New York (EDT)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(session):
    app.dependency_overrides[get_session] = lambda: session
    client = TestClient(app)
    try:
        yield client
    finally:
        client.close()
        app.dependency_overrides.clear()


def _make_user(session: Session, username: str) -> User:
    user = User(
        username=username,
        hashed_password=hash_password("pw"),
        totp_secret="JBSWY3DPEHPK3PXP",
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def user(session) -> User:
    return _make_user(session, "trader")


@pytest.fixture
def other_user(session) -> User:
    return _make_user(session, "someone-else")


@pytest.fixture
def account(session, user) -> Account:
    account = Account(
        user_id=user.id,
        name="Demo - 1001",
        api_key="test-api-key",
        balance_start=10000.0,
        equity_current=10000.0,
    )
    session.add(account)
    session.commit()
    session.refresh(account)
    return account


@pytest.fixture
def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def make_trade(session, user):
    """Factory that persists a trade; every field can be overridden."""
    counter = {"n": 0}

    def _make(**overrides) -> Trade:
        counter["n"] += 1
        values = dict(
            user_id=user.id,
            ticket=f"T{counter['n']}",
            symbol="EURUSD",
            direction="buy",
            total_lots=1.0,
            original_lots=1.0,
            entry_price=1.1000,
            entry_time=T0,
        )
        values.update(overrides)
        trade = Trade(**values)
        session.add(trade)
        session.commit()
        session.refresh(trade)
        return trade

    return _make


@pytest.fixture
def make_event(session, account):
    """Factory that persists a processed close event; every field can be overridden."""
    counter = {"n": 0}

    def _make(**overrides) -> Event:
        counter["n"] += 1
        values = dict(
            idempotency_key=f"evt-{counter['n']}",
            account_id=account.id,
            terminal_id="term-1",
            ticket=f"T{counter['n']}",
            event_type="close",
            symbol="EURUSD",
            direction="buy",
            lot_size=1.0,
            price=1.1050,
            sl=1.0950,
            tp=1.1100,
            profit=45.0,
            commission=2.0,
            swap=-1.0,
            event_timestamp=T0 + timedelta(hours=1),
            raw_payload={},
            processed=True,
        )
        values.update(overrides)
        event = Event(**values)
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    return _make
