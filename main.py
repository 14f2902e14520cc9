import uvicorn

from castaway_league.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run("castaway_league.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
