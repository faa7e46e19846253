# backend/app/main.py
import math

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from .database import engine
from . import models
from .api import projects_router, images_router, feedback_router, comments_router
from .errors import DesignSightError
from .utils.logging import api_logger
from .config import settings

# Create all tables on startup
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="DesignSight API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Type", "Content-Length", "Content-Disposition"],
)

app.mount("/uploads", StaticFiles(directory=str(settings.UPLOADS_PATH)), name="uploads")

# Include routers
app.include_router(projects_router)
app.include_router(images_router)
app.include_router(feedback_router)
app.include_router(comments_router)


@app.exception_handler(DesignSightError)
async def designsight_error_handler(request: Request, exc: DesignSightError):
    log = api_logger.error if exc.status_code >= 500 else api_logger.warning
    log(f"{exc.kind}: {exc.message}", extra={
        "path": request.url.path,
        "method": request.method,
        "status_code": exc.status_code
    })
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail), "kind": "http_error"},
        headers=getattr(exc, "headers", None)
    )


def _finite_or_text(value: float):
    # Rejected inputs may be NaN or Infinity, which strict JSON cannot carry
    return value if math.isfinite(value) else str(value)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    api_logger.warning("Request validation failed", extra={
        "path": request.url.path,
        "method": request.method
    })
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Request validation failed",
            "kind": "validation_error",
            "details": jsonable_encoder(exc.errors(), custom_encoder={float: _finite_or_text})
        }
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    api_logger.critical(f"Unhandled error: {str(exc)}", extra={
        "path": request.url.path,
        "method": request.method,
        "error_type": type(exc).__name__
    }, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "kind": "internal_error"}
    )


@app.get("/")
async def root():
    return {"message": "DesignSight API is running"}


@app.get("/api/health")
async def health():
    return {
        "success": True,
        "status": "ok",
        "service": "designsight",
        "ai_configured": bool(settings.GEMINI_API_KEY)
    }
