"""FastAPI entrypoint for the Shop Boost backend.

This file stays intentionally small so feature modules can be added cleanly:
- `routes/` for intake, snapshot and suggestion endpoints
- `services/` for the intake pipeline and object storage
- `intelligence/` for CSV parsing, job classification and health scoring
- `db/` for SQLAlchemy models and session management

Run:
    uvicorn main:app --reload --port 8000

Settings (DATABASE_URL, SHOP_IMPORT_ROOT, SHOP_IMPORT_BUCKET, LOG_LEVEL) are
read from the environment or a local .env file.
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from shop_boost import __version__
from shop_boost.core.config import LOG_LEVEL
from shop_boost.core.domain_exceptions import DomainException
from shop_boost.core.exceptions import (
    domain_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from shop_boost.core.middleware import RequestContextMiddleware
from shop_boost.db.init_db import init_db
from shop_boost.routes import intakes, snapshots

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Initialize app resources before serving traffic."""
    init_db()
    logger.info("Database tables initialized.")
    yield


app = FastAPI(
    title="Shop Boost API",
    version=__version__,
    description="Shop-health scoring from uploaded shop history exports.",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)
app.add_exception_handler(DomainException, domain_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(intakes.router)
app.include_router(snapshots.router)


@app.get("/", tags=["health"])
def root() -> dict[str, str]:
    """Simple status endpoint for uptime checks."""
    return {"status": "Shop Boost Running"}
