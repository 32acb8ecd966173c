"""
Main FastAPI application
"""
import asyncio
import os
import time

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shopease.api import admin, auth, banners, categories, orders, payments, products, wishlist
from shopease.config import settings, validate_settings
from shopease.services.payments_service import run_expiry_sweeper
from shopease.utils.database import get_db, create_tables, utcnow
from shopease.utils.exceptions import ShopError
from shopease.utils.logger import setup_logging

setup_logging()

START_TIME = time.time()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="ShopEase commerce API: catalog, orders, reviews, wishlists and Bakong KHQR payments",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(auth.router, tags=["auth"])
app.include_router(products.router, tags=["products"])
app.include_router(categories.router, tags=["categories"])
app.include_router(banners.router, tags=["banners"])
app.include_router(orders.router, tags=["orders"])
app.include_router(payments.router, tags=["payments"])
app.include_router(wishlist.router, tags=["wishlist"])
app.include_router(admin.router, tags=["admin"])

if os.path.isdir(settings.UPLOAD_DIR):
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"detail": message})


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return JSONResponse(status_code=400, content={"detail": "Duplicate entry or invalid reference"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
async def startup_event():
    """Validate config, create tables and start the order expiry sweeper"""
    validate_settings()
    create_tables()
    app.state.sweeper_stop = asyncio.Event()
    app.state.sweeper_task = None
    if settings.ORDER_SWEEP_ENABLED:
        app.state.sweeper_task = asyncio.create_task(run_expiry_sweeper(app.state.sweeper_stop))
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} started ({settings.ENVIRONMENT})")


@app.on_event("shutdown")
async def shutdown_event():
    app.state.sweeper_stop.set()
    if app.state.sweeper_task is not None:
        await app.state.sweeper_task


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Liveness probe"""
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "uptime": round(time.time() - START_TIME, 2),
        "environment": settings.ENVIRONMENT,
    }


@app.get("/ready")
def readiness_check(db: Session = Depends(get_db)):
    """Readiness probe, fails when the database is unreachable"""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "disconnected"})
    return {"status": "ready", "database": "connected"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
