import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coursevault.routes import auth, authoring, learning
from coursevault.db.base import Base
from coursevault.db.sessions import engine
from coursevault.core.config import settings
from coursevault.core.exceptions import (
    CourseVaultError,
    IntegrityViolation,
    NotAuthorizedError,
    NotFoundError,
    ValidationError,
)

# Import all models to ensure they're registered with Base
import coursevault.models  # noqa: F401

logger = logging.getLogger(__name__)

if settings.CREATE_TABLES_ON_STARTUP:
    Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Versioned course content store and adaptive delivery engine"
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (IntegrityViolation, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NotAuthorizedError, status.HTTP_403_FORBIDDEN),
)


@app.exception_handler(CourseVaultError)
async def course_vault_error_handler(request: Request, exc: CourseVaultError):
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_type, error_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            code = error_status
            break
    logger.info("%s %s -> %s: %s", request.method, request.url.path, code, exc.detail)
    return JSONResponse(status_code=code, content={"detail": exc.detail})


# Register routers
app.include_router(auth.router)
app.include_router(authoring.router)
app.include_router(learning.router)


@app.on_event("startup")
async def startup_event():
    logger.info("%s v%s starting", settings.APP_NAME, settings.APP_VERSION)


@app.get("/health")
def health():
    return {"status": "ok"}
