import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from memory_bank.api.v2.api import api_router
from memory_bank.core.config import settings
from memory_bank.db import session as db_session

# --- Logging ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.ENVIRONMENT != "production":
        logger.info("Creating review tables if they are missing...")
        await db_session.create_all_tables()
        logger.info("Review tables ready.")
    yield
    await db_session.async_engine.dispose()


app = FastAPI(
    title="Memory Bank API V2",
    openapi_url="/api/v2/openapi.json",
    lifespan=lifespan,
)


def _sanitize_origin(origin: str | None) -> str | None:
    if not origin:
        return None
    value = origin.strip()
    if not value:
        return None
    if not value.startswith("http"):
        value = f"https://{value}"
    return value.rstrip("/")


def _build_cors_origins() -> list[str]:
    origins = {_sanitize_origin(o) for o in settings.BACKEND_CORS_ORIGINS}

    additional = os.getenv("ADDITIONAL_CORS_ORIGINS")
    if additional:
        for origin in additional.split(","):
            origins.add(_sanitize_origin(origin))

    allow_origins = sorted({origin for origin in origins if origin})
    logger.info("CORS origins: %s", allow_origins)
    return allow_origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=_build_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router, prefix="/api/v2")


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/")
def read_root():
    return {"message": "Welcome to Memory Bank API V2!"}
