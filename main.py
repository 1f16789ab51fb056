"""
main.py — Propius API
======================
Marketplace API for tokenized Guatemalan real estate.

Startup order:
    1. logging (terminal + LOG_FILE)
    2. database tables, then the reference catalog when SEED_CATALOG is on
    3. blockchain backend (simulation or ethereum)
    4. routers under /api, status endpoints at / and /health-check

Every failure is rendered as {"success": false, "error": "..."}.

    uvicorn main:app --reload --port 3001
    python main.py
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from db.session import init_db, get_db, AsyncSessionLocal
from db.seed import seed_catalog
from core.blockchain import blockchain
from core.storage import storage
from api.routes_catalog import router as catalog_router
from api.routes_tokenize import router as tokenize_router


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    handlers=[logging.StreamHandler(), logging.FileHandler(settings.LOG_FILE)],
)
logger = logging.getLogger("propius.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.APP_NAME} {settings.APP_VERSION} starting ({settings.ENVIRONMENT}, {settings.COUNTRY})")

    await init_db()
    if settings.SEED_CATALOG:
        async with AsyncSessionLocal() as session:
            inserted = await seed_catalog(session)
        logger.info(f"Catalog seeding: {inserted} listings inserted")

    await blockchain.connect()
    logger.info(f"Chain backend: {settings.BLOCKCHAIN_BACKEND}, storage backend: {settings.STORAGE_BACKEND}")
    logger.info(f"Serving on port {settings.PORT}")

    yield

    await blockchain.disconnect()
    logger.info(f"{settings.APP_NAME} stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Guatemala property tokenization marketplace",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
if settings.ENVIRONMENT == "production":
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=["propius.gt", "*.propius.gt"])


# ── Error envelope ────────────────────────────────────────────────────────────
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Rejected {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request parameters"},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


app.include_router(catalog_router, prefix="/api", tags=["Property Catalog"])
app.include_router(tokenize_router, prefix="/api", tags=["Tokenization"])


# ── Status ────────────────────────────────────────────────────────────────────
@app.get("/", tags=["Status"])
async def root():
    return {
        "system": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "operational",
        "country": settings.COUNTRY,
        "blockchain": settings.BLOCKCHAIN_BACKEND,
        "storage": settings.STORAGE_BACKEND,
        "docs": "/docs",
    }


@app.get("/health-check", tags=["Status"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Confirms the database, chain and storage backends answer."""
    await db.execute(text("SELECT 1"))
    return {
        "api": "ok",
        "database": "ok",
        "blockchain": await blockchain.ping(),
        "storage": await storage.ping(),
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
