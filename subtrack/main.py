"""
FastAPI application factory
"""
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware
from starlette.responses import Response

from subtrack.config import get_settings
from subtrack.infrastructure.db.session import check_db_connection
from subtrack.api.v1 import auth, subscriptions, profile, reminders
from subtrack.application.accounts import AuthValidationError
from subtrack.application.profile import ProfileValidationError
from subtrack.application.subscriptions import SubscriptionValidationError
from subtrack.infrastructure.storage.avatars import AvatarStorageError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Last line of defence: log the traceback, answer 500"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            tb_str = traceback.format_exc()
            logger.error(f"\n{'='*60}\nERROR on {request.method} {request.url.path}\n{tb_str}{'='*60}")
            return Response(content=f"Internal Server Error: {exc}", status_code=500)


def create_app() -> FastAPI:
    """
    Application factory

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()

    app = FastAPI(
        title="SubTrack",
        debug=settings.DEBUG,
    )

    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    # Validation errors raised by use cases -> 400 with the user-facing message
    @app.exception_handler(SubscriptionValidationError)
    @app.exception_handler(ProfileValidationError)
    @app.exception_handler(AuthValidationError)
    async def validation_error_handler(request: Request, exc: ValueError):
        return JSONResponse({"detail": str(exc)}, status_code=400)

    @app.exception_handler(AvatarStorageError)
    async def storage_error_handler(request: Request, exc: AvatarStorageError):
        logger.error("Avatar storage failure on %s: %s", request.url.path, exc)
        return JSONResponse({"detail": "上傳頭像失敗"}, status_code=502)

    # Uploaded avatars
    app.mount(
        settings.MEDIA_URL,
        StaticFiles(directory=settings.MEDIA_DIR, check_dir=False),
        name="media",
    )

    app.include_router(auth.router)
    app.include_router(subscriptions.router)
    app.include_router(profile.router)
    app.include_router(reminders.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database reachable)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "subtrack.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
