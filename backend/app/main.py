import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.cache import get_cache, reset_cache
from core.config import get_settings
from core.database import close_database, ping_database
from core.exceptions import register_exception_handlers
from app.startup import run_startup_checks

# ========== Authentication ==========
from modules.auth.routes.auth_routes import router as auth_router

# ========== Analytics ==========
from modules.analytics.routers.analytics_router import router as analytics_router

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

_started_at = time.monotonic()

app = FastAPI(
    title="Vendor Dashboard API",
    description="""
    Sales analytics for marketplace vendors.

    ## Features

    * **Monthly Sales** - Revenue, line items and units per calendar month
    * **Product Sales** - Best selling products by revenue
    * **Vendor Stats** - Catalog size, totals and top product
    * **Detailed Analytics** - Live single-pass figures and distinct order counts
    * **Date Range Analytics** - Daily breakdown inside an inclusive date range
    * **Data Validation** - Reconciliation of live and cached figures

    ## Authentication

    Analytics endpoints require a JWT bearer token. Use `/api/auth/login`
    or `/api/auth/login-by-name` to obtain one. Vendors read their own
    analytics; admins may read any vendor's and clear caches.
    """,
    version="1.0.0",
    debug=settings.debug,
)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(analytics_router)


@app.on_event("startup")
async def startup_event():
    """Validate configuration and prepare the document store"""
    logger.info(f"Starting Vendor Dashboard API ({settings.environment})")
    run_startup_checks()


@app.on_event("shutdown")
async def shutdown_event():
    """Release the store and cache connections"""
    close_database()
    reset_cache()
    logger.info("Vendor Dashboard API stopped")


@app.get("/healthz")
def health_check():
    cache = get_cache()
    cache_ok = cache.ping() if hasattr(cache, "ping") else False
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
        "database": "connected" if ping_database() else "disconnected",
        "cache": "connected" if cache_ok else "unavailable",
    }


@app.get("/")
def read_root():
    return {"message": "Vendor Dashboard backend is running"}
