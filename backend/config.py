from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    The instance is frozen: it is built once at process start and handed to
    every component that needs it.
    """

    # Application
    app_name: str = "Honoris Legal Analyzer"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000

    # LLM (Gemini REST API); key must come from GEMINI_API_KEY or .env
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_response_schema: bool = False

    # Prompt template
    prompt_variant: Literal["honor", "penal", "integrated"] = "penal"
    system_prompt_file: str = ""

    # Secondary legal search service (LawCrawler)
    lawcrawler_api_url: str = Field(
        default="https://lawcrawler-api-production.up.railway.app",
        validation_alias=AliasChoices("lawcrawler_api_url", "python_api_url"),
    )
    evidence_enabled: bool = True
    evidence_max_items: int = 3

    # Persistence: a credentials file wins over the inline DATABASE_URL
    database_url: str = ""
    database_credentials_file: str = "honoris-db.json"
    persistence_mode: Literal["background", "await"] = "background"
    persistence_queue_size: int = 100

    # Timeouts (seconds)
    llm_call_timeout_seconds: float = 60
    evidence_timeout_seconds: float = 10
    request_timeout_seconds: float = 90

    # Rate Limiting
    analyze_requests_per_minute: int = 30

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Static front end; empty means the bundled backend/public directory
    static_dir: str = ""

    model_config = {
        "env_file": ("../.env", ".env"),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
