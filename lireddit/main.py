import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lireddit.api.schema import graphql_router
from lireddit.config import settings
from lireddit.kv import kv
from lireddit.middleware import RequestMetricsMiddleware


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    configure_logging()
    await kv.connect()
    yield
    # Shutdown
    await kv.disconnect()


app = FastAPI(
    title="lireddit",
    description="GraphQL API for a link aggregator: users, posts and votes",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestMetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CORS_ORIGIN],
    # Session cookies must cross origins, hence a single explicit origin.
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# Routers
app.include_router(graphql_router, prefix="/graphql")


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}


def run() -> None:
    """Console entry point: serve the app on ``settings.PORT``."""
    uvicorn.run("lireddit.main:app", host="0.0.0.0", port=settings.PORT)
