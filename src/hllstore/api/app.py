"""
FastAPI Application Factory

Serves a HyperLogLogCounter over HTTP. The counter is closed (final flush,
store released) when the application shuts down.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from hllstore import __version__
from hllstore.api.routes import health, sketches
from hllstore.config import CounterConfig
from hllstore.counter import HyperLogLogCounter
from hllstore.exceptions import CounterClosedError, StoreError
from hllstore.storage import SQLiteRegisterStore

logger = logging.getLogger(__name__)


def create_app(counter: Optional[HyperLogLogCounter] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        counter: Counter to serve; when None, one is built from
            CounterConfig() over a SQLiteRegisterStore

    Returns:
        Configured FastAPI app
    """
    if counter is None:
        config = CounterConfig()
        counter = HyperLogLogCounter.from_config(SQLiteRegisterStore(config.sqlite_path), config)
        logger.info(f"Serving counter backed by {config.sqlite_path}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down, flushing pending adds")
        await counter.close()

    app = FastAPI(
        title="hllstore API",
        description="Store-backed HyperLogLog distinct counting",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.counter = counter

    app.include_router(health.router, tags=["Health"])
    app.include_router(sketches.router, prefix="/api", tags=["Sketches"])

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        """Store reads failed; the caller may retry."""
        logger.error(f"Store error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=503,
            content={"error": "Store unavailable", "detail": str(exc)},
        )

    @app.exception_handler(CounterClosedError)
    async def closed_error_handler(request: Request, exc: CounterClosedError):
        return JSONResponse(
            status_code=503,
            content={"error": "Counter closed", "detail": str(exc)},
        )

    return app
