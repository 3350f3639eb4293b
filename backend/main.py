"""
FastAPI backend for the local visibility score engine.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.routes.analyze import router as analyze_router
from backend.routes.competitive import router as competitive_router
from backend.routes.health import router as health_router
from backend.routes.reverse import router as reverse_router
from backend.services.engine_service import build_engine
from visibility.settings import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.engine = build_engine(settings)
    yield
    await app.state.engine.aclose()


app = FastAPI(
    title="Local Visibility Score API",
    description="Place resolution and adaptive visibility scoring for local service businesses",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(analyze_router)
app.include_router(competitive_router)
app.include_router(health_router)
app.include_router(reverse_router)
