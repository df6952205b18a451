import logging
import subprocess
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

import wallnest.models  # noqa: F401
from wallnest.admin.router import router as admin_router
from wallnest.auth.router import router as auth_router
from wallnest.comments.router import router as comments_router
from wallnest.config import settings
from wallnest.posts.router import router as posts_router
from wallnest.reports.router import router as reports_router
from wallnest.tags.router import router as tags_router
from wallnest.users.router import router as users_router
from wallnest.utils.logging import setup_logging
from wallnest.wallpapers.router import router as wallpapers_router

# Load environment variables from .env file
load_dotenv()

# Configure logging from logging.ini file
logging_config_path = Path(__file__).parent.parent / "logging.ini"
if setup_logging(logging_config_path, settings.LOG_LEVEL):
    print(f"[Startup] Logging configured from {logging_config_path}")
else:
    print(f"[Startup] Logging config file not found at {logging_config_path}, using basic configuration")

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.DESCRIPTION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    swagger_ui_parameters={"docExpansion": "none"}
)

# Add CORS middleware
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Wrap HTTP errors in the {success: false, message} envelope"""
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


# Include routers
app.include_router(auth_router, prefix=settings.API_V1_STR)
app.include_router(users_router, prefix=settings.API_V1_STR)
app.include_router(wallpapers_router, prefix=settings.API_V1_STR)
app.include_router(tags_router, prefix=settings.API_V1_STR)
app.include_router(posts_router, prefix=settings.API_V1_STR)
app.include_router(comments_router, prefix=settings.API_V1_STR)
app.include_router(reports_router, prefix=settings.API_V1_STR)
app.include_router(admin_router, prefix=settings.API_V1_STR)

# Locally stored uploads (ignored when files go to S3)
upload_dir = Path(settings.UPLOAD_DIR)
upload_dir.mkdir(parents=True, exist_ok=True)
app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=upload_dir), name="uploads")


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}!",
        "version": settings.VERSION,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.on_event("startup")
async def startup_event():
    logger.info("Application starting up...")

    # Optional: auto run alembic migrations on startup
    if settings.AUTO_MIGRATE_ON_STARTUP:
        try:
            subprocess.run(["alembic", "upgrade", "head"], check=True)
            logger.info("[Startup] Alembic migrations applied")
        except (OSError, subprocess.CalledProcessError):
            logger.exception("[Startup] Alembic migration failed")
            raise


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
