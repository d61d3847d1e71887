"""FastAPI application factory wiring routes, services, and shared state."""
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api import routes_health, routes_users
from app.api.errors import register_exception_handlers
from app.core.config import Settings, get_settings
from app.core.db import Base, create_db_engine, create_session_factory
from app.models import user  # noqa: F401 - ensure models are registered
from app.repositories.user_repository import UserRepository
from app.services.upload_store import UploadStore
from app.services.user_service import UserService


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = app.state.engine
    Base.metadata.create_all(bind=engine)
    logging.info("Connected to database at %s", engine.url.render_as_string(hide_password=True))
    try:
        yield
    finally:
        engine.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    app = FastAPI(title="Users API", version="0.1.0", lifespan=lifespan)

    # Initialize persistence and services
    engine = create_db_engine(settings)
    upload_store = UploadStore(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    upload_store.ensure_directory()

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.upload_store = upload_store
    app.state.user_service = UserService(
        UserRepository(),
        upload_store,
        public_base_url=settings.PUBLIC_BASE_URL,
        delete_image_on_user_delete=settings.DELETE_IMAGE_ON_USER_DELETE,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(routes_health.router)
    app.include_router(routes_users.router)
    app.mount(upload_store.url_prefix, StaticFiles(directory=upload_store.directory), name="uploads")

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        logging.info("📥 %s %s START", request.method, request.url.path)
        response = await call_next(request)
        elapsed = (time.perf_counter() - start) * 1000
        logging.info("🚀 %s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, elapsed)
        return response

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    logging.info("The server is running at %s", _settings.PUBLIC_BASE_URL)
    uvicorn.run(app, host=_settings.API_HOST, port=_settings.API_PORT)
