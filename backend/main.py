from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adsdash.config import Settings, load_settings
from adsdash.errors import AuthFailure, ConfigurationError, TransportError, UpstreamError

from backend.api.accounts import router as accounts_router
from backend.api.connections import router as connections_router
from backend.api.kpis import router as kpis_router

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

logger = logging.getLogger("backend")


def configure_logging() -> None:
    logging.basicConfig(
        level=os.environ.get("ADSDASH_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _error(status_code: int, message: str, **extra: object) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": {"message": message, **extra}})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthFailure)
    async def _auth_failure(request: Request, exc: AuthFailure):
        return _error(401, exc.message, platform=exc.platform, reauthenticate=True)

    @app.exception_handler(ConfigurationError)
    async def _config_error(request: Request, exc: ConfigurationError):
        logger.error("Configuration error: %s", exc)
        return _error(500, str(exc))

    @app.exception_handler(UpstreamError)
    async def _upstream_error(request: Request, exc: UpstreamError):
        return _error(502, exc.message, platform=exc.platform)

    @app.exception_handler(TransportError)
    async def _transport_error(request: Request, exc: TransportError):
        return _error(502, exc.message, platform=exc.platform)


def create_app(settings: Settings | None = None, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.settings is None:
            app.state.settings = load_settings()
        if not app.state.settings.google_developer_token:
            logger.warning("GOOGLE_DEVELOPER_TOKEN is not set; Google Ads endpoints will fail")
        yield

    app = FastAPI(title="adsdash", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings.validate() if settings is not None else None
    app.state.transport = transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(connections_router, prefix="/api/connections", tags=["connections"])
    app.include_router(accounts_router, prefix="/api", tags=["accounts"])
    app.include_router(kpis_router, prefix="/api", tags=["kpis"])
    register_error_handlers(app)

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


configure_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.main:app", host="0.0.0.0", port=8000, reload=True)
