"""Price Crawler -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pricecrawler.api.error_handlers import register_exception_handlers
from pricecrawler.api.v1.router import api_v1_router
from pricecrawler.config import settings
from pricecrawler.scrapers.aggregator import PriceAggregator
from pricecrawler.scrapers.register_adapters import register_all_adapters
from pricecrawler.services.cache_service import create_result_cache
from pricecrawler.services.price_service import PriceCheckService

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.DEBUG else logging.WARNING,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    # Startup
    logger.info("Starting Price Crawler API server...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    # Register adapters and build the ones enabled by config
    factory = register_all_adapters()
    adapters = factory.create_enabled_adapters()
    logger.info(f"Enabled sources: {[a.shop_slug for a in adapters]}")

    aggregator = PriceAggregator(adapters, deadline=settings.QUERY_DEADLINE_SECONDS)
    result_cache = create_result_cache()
    try:
        if await result_cache.health_check():
            logger.info(f"Result cache ready ({settings.CACHE_BACKEND})")
        else:
            logger.warning("Result cache backend unreachable (lookups will not be cached)")
    except Exception as e:
        logger.warning(f"Result cache initialization failed: {e}")

    app.state.aggregator = aggregator
    app.state.price_service = PriceCheckService(
        aggregator,
        cache=result_cache,
        inter_query_delay=settings.INTER_QUERY_DELAY_SECONDS,
    )

    yield

    # Shutdown
    logger.info("Shutting down Price Crawler API server...")

    for adapter in adapters:
        try:
            await adapter.cleanup()
        except Exception as e:
            logger.warning(f"Error cleaning up adapter {adapter.shop_slug}: {e}")

    # Stop browser manager (closes Playwright) if a browser source started it
    if factory.browser_manager is not None or any(a.adapter_type == "scraper" for a in adapters):
        try:
            from pricecrawler.scrapers.utils.browser_manager import get_browser_manager

            browser_mgr = factory.browser_manager or get_browser_manager()
            await browser_mgr.stop()
            logger.info("Browser manager stopped")
        except Exception as e:
            logger.warning(f"Error stopping browser manager: {e}")

    # Close cache connection
    try:
        await result_cache.close()
        logger.info("Result cache closed")
    except Exception as e:
        logger.warning(f"Error closing cache: {e}")


app = FastAPI(
    title="Price Crawler API",
    description="Multi-source product price aggregation API",
    version="0.1.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.FRONTEND_URL,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Register API v1 router
app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Price Crawler API",
        "version": "0.1.0",
        "description": "Multi-source product price aggregation",
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
