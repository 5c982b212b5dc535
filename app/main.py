"""
Quiz Results API.

Run with `python main.py` or `uvicorn app.main:app`.
"""
from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.results_routes import router as results_router
from app.config import settings
from app.db.database import init_db
from app.services.rest_store import validate_rest_settings

# .env next to this package, without overriding real environment variables
load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env", override=False)

logging.basicConfig(
    level=settings.log_level.upper(),
    format='[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Quiz Results API",
    description="Quiz results analytics, manual grading and educator insights",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(results_router, prefix="/api", tags=["results"])


@app.on_event("startup")
async def on_startup():
    if settings.store_backend == "sql":
        init_db()
    elif settings.store_backend == "rest":
        validate_rest_settings()
    logger.info(f"Quiz Results API started with the {settings.store_backend} store backend")


@app.on_event("shutdown")
async def on_shutdown():
    logger.info("Quiz Results API stopped")


@app.get("/")
async def index():
    return {
        "service": app.title,
        "version": app.version,
        "docs": "/docs",
        "results": "/api/results",
    }


@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "store_backend": settings.store_backend,
        "insights": bool(settings.insights_enabled and settings.openai_api_key),
    }
