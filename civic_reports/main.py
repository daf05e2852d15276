import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from civic_reports.api.admin import router as admin_router
from civic_reports.api.auth import router as auth_router
from civic_reports.api.reports import router as reports_router
from civic_reports.api.staff import router as staff_router
from civic_reports.core.config import Settings, get_settings
from civic_reports.core.errors import install_error_handlers
from civic_reports.core.logging import configure_logging
from civic_reports.db.mongo import Mongo
from civic_reports.services.storage import PhotoStorage

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, mongo: Optional[Mongo] = None) -> FastAPI:
    settings = settings or get_settings()
    mongo = mongo or Mongo(settings.mongo_uri, settings.mongo_db)
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await mongo.connect()
        if settings.ensure_indexes:
            await mongo.ensure_indexes()
        if settings.env != "dev" and settings.jwt_secret == "dev-secret-change-me":
            logger.warning("JWT_SECRET is not set, tokens are signed with the development secret")
        logger.info("%s started (env=%s)", settings.app_name, settings.env)
        try:
            yield
        finally:
            mongo.close()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.mongo = mongo

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(reports_router)
    app.include_router(staff_router)
    app.include_router(admin_router)

    # static uploads (normalized report photos)
    PhotoStorage(settings).ensure_dirs()
    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir)), name="uploads")

    @app.get("/")
    def root():
        return {"ok": True, "docs": "/docs"}

    @app.get("/health")
    async def health(request: Request):
        db_ok = await request.app.state.mongo.ping()
        return {"success": True, "status": "ok", "database": "up" if db_ok else "down"}

    return app


app = create_app()
