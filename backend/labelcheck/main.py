"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router
from .config import get_settings
from . import __version__

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - handles startup and shutdown."""
    logger.info("Starting Label Verification API...")
    settings = get_settings()

    if settings.debug:
        logging.getLogger("labelcheck").setLevel(logging.DEBUG)

    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is not set - extraction requests will fail")

    logger.info(f"API ready - Version {__version__}")

    yield

    logger.info("Shutting down Label Verification API...")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="""
## AI-Assisted Alcohol Label Verification API

Compares the text on a label image against the data submitted in a label
application and flags differences for a human reviewer. Results are
advisory, not a compliance determination.

### Features
- **Extraction**: Read label fields from an image with a vision model
- **Field Verification**: Fuzzy and unit-aware comparison per field
- **Government Warning**: Wording and formatting checks
- **Batch Processing**: Verify many labels with bounded concurrency and live progress

### Quick Start
1. Use `/health` to check API status
2. Use `/extract` to see what is read from an image
3. Use `/verify` to verify a label against application data
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api/v1")

    @app.get("/", include_in_schema=False)
    async def root():
        return {
            "message": "Label Verification API",
            "version": __version__,
            "docs": "/docs"
        }

    return app


# Create app instance
app = create_app()
