"""Book App API — FastAPI entry point.

Registers logging, the checkout identity middleware and database lifecycle
hooks. Pages and route handlers live outside this package; they take a
context through the dependency factories in verticals.bookstore.context.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from api.middleware import CheckoutCookieMiddleware
from core.database import close_db, init_db_async
from core.observability.logging_setup import setup_logging

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:3000,http://localhost:3001"
).split(",")
CREATE_SCHEMA = os.getenv("CREATE_SCHEMA", "true").lower() == "true"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown hooks."""
    setup_logging()
    if CREATE_SCHEMA:
        await init_db_async()
    logger.info("app.started")
    yield
    await close_db()
    logger.info("app.stopped")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Book App",
    description="Online bookstore order data layer",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CheckoutCookieMiddleware)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "0.1.0"}
