"""
Festival Inquiry Service API
===========================

FastAPI application wiring: CORS, structured errors and routers.

Endpoints:
- GET  /health                       - Health check
- /committee/inquiries/...           - Committee-side inquiry workflow
- /project/{project_id}/inquiries/.. - Project-side inquiry workflow
- /files/{file_id}/token|content     - File access tokens

Callers are identified by the ``X-User-Id`` header set by the gateway.

Run with:
    uvicorn festival_backend.api:app --host 0.0.0.0 --port 8000
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .config import get_settings
from .db.session import init_db
from .errors import AppError
from .routes import committee_inquiry_router, files_router, project_inquiry_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="Festival Inquiry Service",
    description="Inquiry workflow and file access control for the campus festival",
    version=settings.service_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

logger.info(f"CORS allow origins: {settings.cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(committee_inquiry_router)
app.include_router(project_inquiry_router)
app.include_router(files_router)


@app.on_event("startup")
async def startup():
    for warning in settings.validate_config():
        logger.warning(f"Config: {warning}")
    init_db()


@app.get("/health")
async def health():
    return {"status": "ok", "version": settings.service_version}


# =============================================================================
# Error handling
# =============================================================================

def _error_code_for_status(status_code: int) -> str:
    return {
        400: "INVALID_REQUEST",
        401: "UNAUTHORIZED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        409: "ALREADY_EXISTS",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
    }.get(status_code, "ERROR")


def _build_error_payload(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("Application error on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_error_payload(exc.code, exc.message, exc.details),
    )


@app.exception_handler(HTTPException)
async def api_http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=_build_error_payload(_error_code_for_status(exc.status_code), message),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def api_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return structured validation errors without echoing inputs."""
    sanitized_errors = [
        {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=_build_error_payload(
            "VALIDATION_ERROR",
            "Request validation failed",
            {"errors": sanitized_errors},
        ),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler - always return valid JSON"""
    logger.exception("Unhandled exception on %s: %s", request.url.path, exc.__class__.__name__)
    return JSONResponse(
        status_code=500,
        content=_build_error_payload("INTERNAL_ERROR", "Internal server error"),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
