"""
pointsbank/app.py

FastAPI application entrypoint for the points service.

This module wires together:
- Logging configuration (file-based under LOG_DIR)
- CORS and request logging middleware
- Error handlers rendering {"success": false, "message": ...}
- Domain routers under pointsbank/api/ (users, points, notifications)
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.requests import Request

from pointsbank import __version__, config
from pointsbank.api.notifications import router as notifications_router
from pointsbank.api.points import router as points_router
from pointsbank.api.users import router as users_router
from pointsbank.db.session import DATABASE_URL, engine, init_db
from pointsbank.logging_config import get_logger, setup_logging

# Configure logging before creating the app
setup_logging()
logger = get_logger("pointsbank")

app = FastAPI(title="Points Ledger API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=config.CORS_ORIGINS != ["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Lightweight request logger. Bodies are never logged: several routes
    carry passwords or signing keys.
    """
    logger.info(
        "HTTP %s %s from %s",
        request.method,
        request.url.path,
        request.client.host if request.client else "?",
    )
    return await call_next(request)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"success": False, "message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Something went wrong. Please try again later"},
    )


@app.get("/api/health")
async def health():
    """
    Simple health check endpoint.
    """
    return {"status": "healthy"}


# Include domain routers
app.include_router(users_router, prefix="/api")
app.include_router(points_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")


@app.on_event("startup")
async def on_startup():
    logger.info("Points service starting up (database=%s)", DATABASE_URL.split("@")[-1])
    await init_db()


@app.on_event("shutdown")
async def on_shutdown():
    try:
        await engine.dispose()
    except Exception:
        logger.exception("Error disposing engine on shutdown")
    logger.info("Points service shutting down")
