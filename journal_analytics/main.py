"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from journal_analytics.config import settings
from journal_analytics.database import create_db_and_tables
from journal_analytics.utils.logging import setup_logging
from journal_analytics.api import auth, trades, patterns, features, events, system

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    create_db_and_tables()
    logger.info("Trade analytics service started")
    yield


app = FastAPI(
    title="Trade Journal Analytics",
    description="Trade analytics pipeline: grouping, orphan recovery, features and pattern mining",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Plain OPTIONS (no CORS preflight headers) still gets an empty success
@app.options("/{path:path}", include_in_schema=False)
def options_ok(path: str):
    return Response(status_code=204)


# Mount routers
app.include_router(auth.router)
app.include_router(trades.router)
app.include_router(patterns.router)
app.include_router(features.router)
app.include_router(events.router)
app.include_router(system.router)
