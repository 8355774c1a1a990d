import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stochval.config import settings
from stochval.api.routes import health, valuation

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: configure logging once for the process
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "Valuation engine ready, default n=%d, max n=%d, workers=%d",
        settings.DEFAULT_N_SCENARIOS, settings.MAX_SCENARIOS, settings.WORKERS,
    )
    yield


app = FastAPI(title="Stochastic Valuation Engine", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api")
app.include_router(valuation.router, prefix="/api")
