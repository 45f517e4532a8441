import logging
import sys
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Internal imports
from gstlogview.config import Settings, load_settings
from gstlogview.errors import install_handlers
from gstlogview.services import log_ingestor
from gstlogview.store import sessions
from gstlogview.routers import (
    logs as logs_router,
    upload as upload_router,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="GStreamer Log Viewer API", version="0.1.0")
    app.state.settings = settings

    # ------------------------------------------------------------------
    # 🌐 CORS setup
    # ------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=86400,
    )

    install_handlers(app)

    # ------------------------------------------------------------------
    # 🗄️ Session store + parse pool
    # ------------------------------------------------------------------
    @app.on_event("startup")
    def on_startup():
        sessions.init(max_sessions=settings.max_sessions, ttl=settings.session_ttl)
        log_ingestor.init(workers=settings.parse_workers)

    @app.on_event("shutdown")
    def on_shutdown():
        log_ingestor.shutdown(wait=False)

    # ------------------------------------------------------------------
    # 🧠 Health & Root
    # ------------------------------------------------------------------
    @app.get("/healthz")
    def health():
        return {
            "ok": True,
            "sessions": len(sessions.get_store()),
            "parsing": log_ingestor.pending(),
        }

    @app.get("/")
    def root():
        return {"message": "GStreamer log viewer API. See /docs"}

    # ------------------------------------------------------------------
    # 🧩 Routers
    # ------------------------------------------------------------------
    app.include_router(upload_router.router)
    app.include_router(logs_router.router)

    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


app = create_app()

if __name__ == "__main__":
    run()
