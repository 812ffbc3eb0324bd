from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from starlette import status
from slowapi import _rate_limit_exceeded_handler
import logging

from lightbox.config import settings
from lightbox.database import Base, engine
from lightbox.dependencies import get_storage, get_variant_generator
from lightbox.exceptions import LightboxError
from lightbox.limits import limiter, RateLimitExceeded, SlowAPIMiddleware
from lightbox import models  # noqa: F401 - register all models with Base.metadata
from lightbox.routers import auth, images, galleries

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="lightbox", description="Image uploads, thumbnails and ordered galleries")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(LightboxError)
async def lightbox_error_handler(request: Request, exc: LightboxError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _database_error(exc: SQLAlchemyError) -> tuple[int, str, str]:
    """(status, error code, detail) for a database failure."""
    if isinstance(exc, OperationalError):
        message = str(exc).lower()
        # SQLite reports writer contention as "database is locked"
        if "timeout" in message or "locked" in message:
            return (
                status.HTTP_504_GATEWAY_TIMEOUT,
                "database_timeout",
                "Database busy or timed out. Please try again.",
            )
        if "connect" in message:
            return (
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "database_connection_error",
                "Database connection error. Please try again.",
            )
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "database_error", "Database error occurred"


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"{request.method} {request.url.path} database error: {exc}", exc_info=True)
    status_code, code, detail = _database_error(exc)
    return JSONResponse(status_code=status_code, content={"error": code, "detail": detail})


# Alembic owns the schema elsewhere; SQLite dev databases are created in place
if settings.DATABASE_URL.startswith("sqlite"):
    Base.metadata.create_all(bind=engine)

get_storage().ensure_layout(get_variant_generator().edges)


@app.get("/healthy", status_code=status.HTTP_200_OK)
def health_check():
    return {"status": "Healthy"}


app.include_router(auth.router)
app.include_router(images.router)
app.include_router(galleries.router)

# Originals and thumbnails are served straight from the upload root
app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)
