from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rental_backoffice.api.router import api_router
from rental_backoffice.core.config import settings
from rental_backoffice.db.init_db import ensure_seeded
from rental_backoffice.db.session import Base, engine

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title=settings.app_name)

    origins = settings.cors_origins or ["http://localhost:5173"]
    logger.info("CORS allow_origins=%s", origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.on_event("startup")
    def _startup() -> None:
        """
        Local-dev helper: allow running without Postgres by using SQLite.
        - Creates tables when DATABASE_URL points at sqlite.
        - Seeds a few clients and rentals so the completion flow has something to settle.
        """
        db_url = settings.database_url or ""
        logger.info("environment=%s database=%s", settings.environment, db_url.split("@")[-1])
        if settings.environment == "development" and db_url.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
            from rental_backoffice.db.session import SessionLocal

            db = SessionLocal()
            try:
                ensure_seeded(db)
            finally:
                db.close()

    app.include_router(api_router)
    return app


app = create_app()
