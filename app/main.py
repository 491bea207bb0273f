# app/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app import models  # noqa: F401  registers all tables on Base.metadata
from app.core.config import get_settings
from app.core.exceptions import BaseServiceError
from app.core.logging_config import configure_logging
from app.database import dispose_engine, init_engine
from app.routes import drafts, ebay, health, listings, stores
from app.routes.webhooks import router as webhook_router

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    init_engine()
    logger.info(f"Starting up ({settings.ENVIRONMENT}, eBay {'sandbox' if settings.ebay_sandbox else 'production'})")
    try:
        yield
    finally:
        await dispose_engine()


app = FastAPI(
    title="Droplist",
    lifespan=lifespan
)


@app.middleware("http")
async def proxy_headers_middleware(request: Request, call_next):
    # The proxy sets X-Forwarded-Proto; the webhook challenge hashes the public https URL
    forwarded_proto = request.headers.get("x-forwarded-proto")
    if forwarded_proto == "https":
        request.scope["scheme"] = "https"
    response = await call_next(request)
    return response


@app.exception_handler(BaseServiceError)
async def service_error_handler(request: Request, exc: BaseServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include routers
app.include_router(health.router)
app.include_router(stores.router)
app.include_router(drafts.router)
app.include_router(listings.router)
app.include_router(ebay.router)
app.include_router(webhook_router)
