"""FastAPI application for the Saga DEX status service."""

import os

import uvicorn
from fastapi import FastAPI

from sagadex import __version__
from sagadex.api.endpoints import router
from sagadex.config import Settings

# Reload on source changes; only meant for local development
DEBUG = os.environ.get("SAGADEX_DEBUG", "false").lower() in ("true", "1", "yes")

app = FastAPI(
    title="Saga DEX client",
    description="Read-only view of Saga DEX pools, quotes and balances",
    version=__version__,
)

app.include_router(router)


def run(host: str | None = None, port: int | None = None) -> None:
    """Run the API server.

    The bind address defaults to SAGADEX_API_HOST / SAGADEX_API_PORT
    (127.0.0.1:8000). SAGADEX_DEBUG enables reload mode.
    """
    settings = Settings.from_env()
    uvicorn.run(
        "sagadex.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=DEBUG,
    )


if __name__ == "__main__":
    run()
