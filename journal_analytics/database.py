"""SQLModel database engine and session management."""

import logging

from sqlalchemy import inspect
from sqlmodel import SQLModel, create_engine, Session

from journal_analytics.config import settings

logger = logging.getLogger(__name__)

# SQLite needs check_same_thread=False; PostgreSQL does not
connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False

engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
)


def _run_migrations():
    """Run lightweight schema migrations for tables created before the unique indexes."""
    from sqlalchemy import text

    inspector = inspect(engine)

    # Ensure (user_id, ticket) is unique on trades created by older schemas
    if "trade" in inspector.get_table_names():
        existing_indexes = inspector.get_indexes("trade")
        existing_uniques = inspector.get_unique_constraints("trade")
        has_unique = any(
            idx["name"] == "ix_trade_user_ticket_unique" for idx in existing_indexes
        ) or any(
            uc["name"] == "uq_trade_user_ticket" for uc in existing_uniques
        )
        if not has_unique:
            logger.info("Migrating: adding unique index on trade (user_id, ticket)")
            with engine.connect() as conn:
                conn.execute(text(
                    "CREATE UNIQUE INDEX ix_trade_user_ticket_unique "
                    "ON trade (user_id, ticket)"
                ))
                conn.commit()


def create_db_and_tables():
    """Create all tables. Called on startup."""
    import journal_analytics.models  # noqa: F401  (populate metadata)

    SQLModel.metadata.create_all(engine)
    _run_migrations()


def get_session() -> Session:
    """Dependency that yields a database session."""
    with Session(engine) as session:
        yield session
