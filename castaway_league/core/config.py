from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Castaway League"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/castaway_league"

    # JWT
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # Platform admin registration key
    admin_key: str = "changeme"

    # League defaults
    prediction_points_budget: int = 10
    season_prediction_points: int = 5  # Default award for a correct season-long answer
    default_auction_budget: int = 100
    invite_code_length: int = 6
    invite_code_attempts: int = 10

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache()
def get_settings() -> Settings:
    return Settings()
