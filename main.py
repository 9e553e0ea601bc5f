import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.sessions import SessionMiddleware

import db_sqlalchemy
from auth import UserStore
from config import Settings
from errors import HashingFailed, PersistenceFailed
from handlers import (
    index_handler, create_paste_handler, view_paste_handler, unlock_paste_handler,
    raw_paste_handler, delete_paste_handler, register_page, register_handler,
    login_page, login_handler, logout_handler, dashboard_handler,
    public_pastes_handler, health_handler
)
from models import PasteStore
from sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def internal_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed: {exc!r}")
    return PlainTextResponse("Internal Server Error", status_code=500)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # startup
        await db_sqlalchemy.init_db(settings.database_url)
        await app.state.database.connect()
        app.state.sweeper.start()
        logger.info("Service is ready to accept requests")
        yield
        # shutdown
        app.state.sweeper.stop()
        await app.state.database.disconnect()
        logger.info("Shut down")

    app = FastAPI(title="inkpaste", lifespan=lifespan)

    database = db_sqlalchemy.create_database(settings.database_url, settings.pool_size)
    app.state.settings = settings
    app.state.database = database
    app.state.pastes = PasteStore(database)
    app.state.users = UserStore(database)
    app.state.sweeper = ExpirySweeper(app.state.pastes, interval=settings.sweep_interval)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie=settings.session_cookie,
        max_age=settings.session_max_age,
        https_only=settings.https_only,
    )
    app.add_exception_handler(PersistenceFailed, internal_error_handler)
    app.add_exception_handler(HashingFailed, internal_error_handler)

    # fixed paths first, /{paste_id} would swallow them otherwise
    app.get("/")(index_handler)
    app.post("/")(create_paste_handler)
    app.get("/health")(health_handler)
    app.get("/register")(register_page)
    app.post("/register")(register_handler)
    app.get("/login")(login_page)
    app.post("/login")(login_handler)
    app.get("/logout")(logout_handler)
    app.get("/dashboard")(dashboard_handler)
    app.get("/public")(public_pastes_handler)
    app.get("/{paste_id}")(view_paste_handler)
    app.post("/{paste_id}")(unlock_paste_handler)
    app.get("/{paste_id}/raw")(raw_paste_handler)
    app.get("/{paste_id}/delete")(delete_paste_handler)

    return app


def run():
    """Console entry point: ``inkpaste``."""
    logger.info("Starting inkpaste...")
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),  # nosec B104
        port=int(os.getenv("PORT", "3000")),
    )


# module-level app for ``uvicorn main:app``
settings = Settings.from_env()
configure_logging(settings.log_level)
app = create_app(settings)

if __name__ == "__main__":
    run()
