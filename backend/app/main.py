from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.api.routes import router
from app.config.settings import settings
from app.db.session import engine, init_models
from app.logging_config import setup_logging
from app.rate_limit import limiter, rate_limit_exceeded_handler

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # A missing API key stops startup instead of failing every request.
    settings.require_api_key()
    await init_models()
    logger.info("app_started")
    yield
    await engine.dispose()


app = FastAPI(
    title="Asset Tracker",
    description="Watchlist quotes with moving averages, RSI and buy/sell signals",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Added last so CORS headers also reach rate-limited responses.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Content-Type"],
)

app.include_router(router)
