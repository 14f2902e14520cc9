import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from castaway_league.core.config import get_settings
from castaway_league.core.database import engine, Base
from castaway_league.core.errors import install_error_handlers
from castaway_league.api import (
    auth, seasons, contestants, episodes, leagues, draft, predictions, title_picks,
    season_predictions, standings,
)

# Import all models so Base.metadata is populated for create_all
import castaway_league.models.models  # noqa: F401

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables on startup (use Alembic for schema changes once deployed)
    logger.info("Starting up, creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Fantasy leagues for elimination reality TV: drafts, weekly predictions and standings.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS: open for now, lock down in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

install_error_handlers(app)

# API routers
app.include_router(auth.router)
app.include_router(seasons.router)
app.include_router(contestants.router)
app.include_router(episodes.router)
app.include_router(leagues.router)
app.include_router(draft.router)
app.include_router(predictions.router)
app.include_router(title_picks.router)
app.include_router(season_predictions.router)
app.include_router(standings.router)


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "auth": "/api/auth",
            "seasons": "/api/seasons",
            "contestants": "/api/seasons/{id}/contestants",
            "episodes": "/api/seasons/{id}/episodes",
            "leagues": "/api/leagues",
            "draft": "/api/leagues/{id}/draft",
            "predictions": "/api/leagues/{id}/episodes/{id}/predictions",
            "title_pick": "/api/leagues/{id}/episodes/{id}/title-pick",
            "standings": "/api/leagues/{id}/standings",
        },
    }


@app.get("/health")
async def health():
    return {"status": "healthy"}
