"""
School Records Service - FastAPI application entry point.

This module:
1. Sets up structured JSON logging
2. Initializes the FastAPI app with CORS middleware
3. Implements request ID middleware (X-Request-ID header)
4. Renders every error in the {"success": false, ...} envelope
5. Registers the API routers and the health check

Layout:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: ingestion and report logic
- errors.py: error taxonomy
- logging_config.py: structured logging configuration
- database.py: database connection management
"""

import time
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from school_admin.config import is_development
from school_admin.errors import SchoolAdminError, StoreUnavailable
from school_admin.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from school_admin.routes import students, attendance, marks, reports
from school_admin.database import DATABASE_URL, create_tables

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

app = FastAPI(
    title="School Records Service",
    description=(
        "Records students, attendance and marks for a school, and produces "
        "class attendance, subject marks and combined per-student reports."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


# ──────────────────────────────────────────────────────────────
# Request ID Middleware
#
# Generates a UUID per incoming request, stores it in a context
# variable for every log entry, returns it in X-Request-ID and logs
# request start/end with latency.
# ──────────────────────────────────────────────────────────────
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    req_id = generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# Error envelopes
# ──────────────────────────────────────────────────────────────
@app.exception_handler(SchoolAdminError)
async def school_admin_error_handler(request: Request, exc: SchoolAdminError):
    level = "ERROR" if exc.status_code >= 500 else "WARNING"
    log_with_context(logger, level, f"{exc.code}: {exc.message}",
                     extra_data={"path": request.url.path, "status_code": exc.status_code})
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Store failure on %s", request.url.path, exc_info=exc)
    details = {"reason": str(exc)} if is_development() else None
    error = StoreUnavailable("The record store is unavailable", details)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=422, content={
        "success": False,
        "error": "ValidationError",
        "message": "Request body or parameters have the wrong type",
        "details": {"errors": jsonable_encoder(exc.errors())}
    })


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    body = {"success": False, "error": "INTERNAL_ERROR", "message": "Internal server error"}
    if is_development():
        body["details"] = {"reason": str(exc)}
    return JSONResponse(status_code=500, content=body)


# ──────────────────────────────────────────────────────────────
# Register API routes
# ──────────────────────────────────────────────────────────────
app.include_router(students.router, tags=["Students"])
app.include_router(attendance.router, tags=["Attendance"])
app.include_router(marks.router, tags=["Marks"])
app.include_router(reports.router, tags=["Reports"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for container probes and monitoring."""
    return {"status": "healthy", "service": "school-records-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "School Records Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "students": "POST|GET /api/students",
            "attendance": "POST /api/attendance, POST /api/attendance/bulk",
            "marks": "POST /api/marks, POST /api/marks/bulk",
            "attendance_report": "GET /api/reports/attendance",
            "marks_report": "GET /api/reports/marks",
            "combined_report": "GET /api/reports/combined",
            "my_record": "GET /api/me/record"
        }
    }
