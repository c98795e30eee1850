import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from hms_console.api.deps import Console, build_console
from hms_console.api.routes import appointments, auth, records, screens
from hms_console.core.config import _ENV_FILE, settings
from hms_console.core.exceptions import AccessDenied

if os.getenv("ENV") != "production":
    logging.basicConfig(level=logging.DEBUG)
else:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}',
    )
logger = logging.getLogger(__name__)


def create_app(console: Console | None = None) -> FastAPI:
    """Build the console. Pass a prepared Console to substitute storage or the remote API."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.console is None:
            app.state.console = build_console()
        logger.info("Loading .env from: %s (exists: %s)", _ENV_FILE, _ENV_FILE.exists())
        logger.info("Remote API: %s", settings.api_base_url)
        # Protected screens answer 503 until this settles.
        await app.state.console.session.initialize()
        yield
        await app.state.console.api.aclose()

    app = FastAPI(
        title="HMS Console",
        description="Role-gated administrative console for the hospital-management API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.console = console

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(auth.router)
    app.include_router(screens.router)
    app.include_router(appointments.router)
    app.include_router(records.router)

    @app.exception_handler(AccessDenied)
    async def access_denied_handler(request: Request, exc: AccessDenied) -> RedirectResponse:
        return RedirectResponse(url=exc.redirect_to, status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Return the actual error in JSON."""
        if isinstance(exc, HTTPException):
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
        logger.exception("Unhandled exception: %s", exc)
        return JSONResponse(
            status_code=500,
            content={"detail": f"{type(exc).__name__}: {str(exc)}"},
        )

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/")
    async def index() -> RedirectResponse:
        return RedirectResponse(url="/dashboard", status_code=status.HTTP_303_SEE_OTHER)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "hms_console.main:app",
        host=settings.console_host,
        port=settings.console_port,
        reload=settings.env == "development",
        log_level="info",
    )


if __name__ == "__main__":
    run()
