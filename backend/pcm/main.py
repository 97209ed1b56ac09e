from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pcm.core.config import settings
from pcm.core.logging import configure_logging, logger
from pcm.api.errors import register_exception_handlers
from pcm.api.router import api_router
from pcm.db.session import engine
from pcm.db.base import Base
import pcm.db.models  # noqa: F401
from pcm.services.seed import seed_demo

def create_app() -> FastAPI:
    configure_logging(settings.ENV, settings.LOG_LEVEL)
    app = FastAPI(title="PCM WBS", version="0.1.0")

    origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Change-Log"],
    )

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.on_event("startup")
    def _startup():
        # Ensure tables exist for dev-only convenience; in prod rely on alembic
        if settings.ENV == "dev":
            Base.metadata.create_all(bind=engine)
        if settings.SEED_DEMO and settings.ENV == "dev":
            seed_demo()

    register_exception_handlers(app)
    app.include_router(api_router)
    logger.info("app_started", env=settings.ENV)
    return app

app = create_app()
