import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from tokengraph import __version__
from tokengraph.api.deps import get_rules, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules on startup (fail-fast)
    try:
        get_rules()
        logger.info("Rules loaded from %s", settings.rules_path)
    except (OSError, ValueError) as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    yield


app = FastAPI(
    title="Token Graph API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from tokengraph.api.routes import tokens  # noqa: E402

app.include_router(tokens.router, prefix="/api/tokens", tags=["Tokens"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    return {"status": "ok", "version": __version__}
