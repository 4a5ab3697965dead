import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dealdesk.config import settings
from dealdesk.middleware.exceptions import register_exception_handlers
from dealdesk.routers import deals, health, wizard
from dealdesk.services.gateway import DealApiGateway, build_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("dealdesk")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the deal API client on startup, close it on shutdown."""
    client = build_client(settings.deal_api_base_url, settings.deal_api_timeout_seconds)
    app.state.gateway = DealApiGateway(client)
    app.state.wizard = None
    logger.info("Deal API at %s", settings.deal_api_base_url)
    try:
        yield
    finally:
        await client.aclose()


app = FastAPI(
    title="dealdesk",
    description="Deal browsing and investor onboarding",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(deals.router, prefix="/api/deals", tags=["deals"])
app.include_router(deals.investors_router, prefix="/api/investors", tags=["investors"])
app.include_router(wizard.router, prefix="/api/wizard", tags=["wizard"])
