import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import dispose_engine, get_session_maker
from .errors import MailsiftError
from .routers import uploads, results
from .services.dispatch import build_dispatcher

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(message)s",
)
logger = logging.getLogger("mailsift.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "dispatcher", None) is None:
        app.state.dispatcher = build_dispatcher(settings, get_session_maker())
    logger.info("Starting %s (dispatch=%s verifier=%s)",
                settings.APP_NAME, settings.DISPATCH_MODE, settings.VERIFIER_BACKEND)
    try:
        yield
    finally:
        # no cancellation: running validations finish before shutdown
        await app.state.dispatcher.aclose()
        await dispose_engine()
        logger.info("Shutdown complete")


async def mailsift_error_handler(request: Request, exc: MailsiftError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "message": exc.message, "status_code": exc.status_code},
    )


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    # ---------------------------------------------------
    # CORS (safe for local dev, restrict for production)
    # ---------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(MailsiftError, mailsift_error_handler)

    # ---------------------------------------------------
    # Health check
    # ---------------------------------------------------
    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    # ---------------------------------------------------
    # Routers
    # ---------------------------------------------------
    app.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
    app.include_router(results.router, prefix="/results", tags=["results"])

    return app


app = create_app()

# ---------------------------------------------------
# Note:
# Don't run uvicorn.run() inside the container; start it from the
# Dockerfile / compose CMD: uvicorn mailsift.main:app
# ---------------------------------------------------
