import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from fbr_engine.api.routes.health import router as health_router
from fbr_engine.api.routes.invoice import router as invoice_router
from fbr_engine.api.routes.scenarios import router as scenarios_router
from fbr_engine.core.logging import setup_logging
from fbr_engine.services.catalog import get_catalog
from fbr_engine.services.sro.fbr_client import FbrSroClient
from fbr_engine.state import global_state

# Configure logging before the app is created
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting FBR invoice engine...")

    catalog = get_catalog()
    logger.info("📦 Scenario catalog ready (%d scenarios)", len(catalog))

    global_state.sro_client = FbrSroClient(catalog=catalog)
    if not global_state.sro_client.enabled:
        logger.warning("FBR_TOKEN not configured; schedule reference lookups are disabled")

    logger.info("✅ System ready!")
    yield
    logger.info("🛑 Shutting down service...")
    await global_state.sro_client.aclose()
    global_state.sro_client = None


app = FastAPI(title="FBR Invoice Engine", lifespan=lifespan)

app.include_router(health_router, prefix="/api")
app.include_router(invoice_router, prefix="/api")
app.include_router(scenarios_router, prefix="/api")
