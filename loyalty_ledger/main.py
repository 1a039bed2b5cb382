"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from fastapi import FastAPI, HTTPException, status

from . import config
from .awards import AwardEngine
from .banner import BannerCoordinator
from .config import ConfigError
from .engine import LoyaltyEngine
from .ledger import LedgerStore
from .logging_utils import configure_logging
from .routes import router as loyalty_router
from .storage import JsonFileStorage

app = FastAPI(title="Loyalty Ledger", version="1.0.0")


def build_engine(settings: config.Settings) -> LoyaltyEngine:
    store = LedgerStore(JsonFileStorage(settings.data_dir))
    awards = AwardEngine(store, policy=settings.award_policy(), enabled=settings.loyalty_enabled)
    return LoyaltyEngine(store, awards, BannerCoordinator(store), tz=settings.tz)


@app.on_event("startup")
async def startup_event() -> None:
    try:
        settings = config.get_settings()
    except ConfigError as exc:
        app.state.startup_error = str(exc)
        app.state.engine = None
        logging.getLogger(__name__).error("startup configuration error", extra={"error": str(exc)})
        return

    configure_logging(settings)
    engine = build_engine(settings)
    engine.initialize()

    app.state.settings = settings
    app.state.engine = engine
    app.state.startup_error = None


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    valid, reason = config.is_environment_valid()
    if not valid:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=reason or "invalid configuration")
    return {"status": "ok"}


app.include_router(loyalty_router)
