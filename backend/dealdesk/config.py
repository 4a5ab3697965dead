from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = True
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"
    log_level: str = "INFO"

    # Deal management API
    deal_api_base_url: str = "http://localhost:3000/api"
    deal_api_timeout_seconds: float = 30.0

    # Investor list view shows this deal when none is picked
    default_deal_id: str = ""

    # Onboarding wizard
    redirect_on_access_link: bool = False
    profile_link_encoding: Literal["json", "form"] = "json"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings
