import logging

from fastapi import FastAPI

from origination.core.settings import settings
from origination.db.init_db import init_db
from origination.db.session import Database

logger = logging.getLogger(__name__)


def register_event_handlers(app: FastAPI) -> None:
    @app.on_event("startup")
    async def on_startup() -> None:
        logger.info("Application startup")
        database = Database(settings.database_url)
        database.connect()
        app.state.database = database
        await init_db(database)

    @app.on_event("shutdown")
    async def on_shutdown() -> None:
        logger.info("Application shutdown")
        database = getattr(app.state, "database", None)
        if database is not None:
            await database.dispose()
