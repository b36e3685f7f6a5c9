"""ISD-Map FastAPI application package."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .api import api_router
from .core.config import Settings, settings
from .core.logging_config import setup_logging
from .services.ingest import ingest_from_settings
from .services.store import StationStore


def create_app(store: Optional[StationStore] = None, config: Optional[Settings] = None) -> FastAPI:
    """Build the API around a published station store.

    Without a store, the configured input files are ingested during startup,
    before the first request is accepted.
    """

    config = config or settings
    setup_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.store is None:
            report = await asyncio.to_thread(ingest_from_settings, config)
            app.state.store = StationStore.from_report(report)
        logger.info("Serving %d stations", len(app.state.store))
        yield

    app = FastAPI(title=config.app_name, version=config.app_version, lifespan=lifespan)
    app.state.store = store
    app.state.config = config
    app.include_router(api_router, prefix=config.api_prefix)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Provide a friendly landing response for the bare hostname."""

        return {
            "message": (
                f"{config.app_name} is online. Tiles are served from "
                f"{config.api_prefix}/map/{{zoom}}/{{x}}/{{y}}/tile.png"
            )
        }

    return app


app = create_app()
