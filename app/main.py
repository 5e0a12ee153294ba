import os

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy import text

from .auth.router import router as auth_router
from .config import settings
from .db import Base, engine
from .errors import register_exception_handlers
from .logging import RequestIdMiddleware, setup_logging
from .routes.appointments import router as appointments_router
from .routes.assets import router as assets_router
from .routes.callout_reports import router as callout_reports_router
from .routes.callouts import router as callouts_router
from .routes.categories import router as categories_router
from .routes.certificates import router as certificates_router
from .routes.chat import router as chat_router
from .routes.checklists import router as checklists_router
from .routes.completed_checklists import router as completed_checklists_router
from .routes.dashboard import router as dashboard_router
from .routes.integrations import router as integrations_router
from .routes.maintenance import router as maintenance_router
from .routes.maintenance_templates import router as maintenance_templates_router
from .routes.notifications import router as notifications_router
from .routes.quotes import router as quotes_router
from .routes.reports import router as reports_router
from .routes.training import router as training_router
from .routes.uploads import router as uploads_router
from .routes.work_order_templates import router as work_order_templates_router
from .routes.work_orders import router as work_orders_router


log = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    register_exception_handlers(app)

    # Routers
    app.include_router(auth_router)
    app.include_router(assets_router)
    app.include_router(work_orders_router)
    app.include_router(maintenance_router)
    app.include_router(quotes_router)
    app.include_router(categories_router)
    app.include_router(maintenance_templates_router)
    app.include_router(work_order_templates_router)
    app.include_router(checklists_router)
    app.include_router(completed_checklists_router)
    app.include_router(appointments_router)
    app.include_router(callouts_router)
    app.include_router(callout_reports_router)
    app.include_router(certificates_router)
    app.include_router(training_router)
    app.include_router(notifications_router)
    app.include_router(chat_router)
    app.include_router(integrations_router)
    app.include_router(reports_router)
    app.include_router(dashboard_router)
    app.include_router(uploads_router)

    @app.get("/api/health", tags=["health"])
    def health():
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "OK", "database": "ok", "environment": settings.environment}

    # Uploaded files are served back from the same directory they are written to
    os.makedirs(settings.upload_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    def _startup():
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
        log.info("startup_complete", environment=settings.environment, auto_create_db=settings.auto_create_db)

    return app


app = create_app()
