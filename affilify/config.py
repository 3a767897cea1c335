from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Project-root .env; env_file below only resolves against the working directory.
_project_root = Path(__file__).resolve().parents[1]
load_dotenv(_project_root / ".env", override=False)

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"

    DATABASE_URL: str = "sqlite:///./affilify.db"
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    BACKEND_CORS_ORIGINS: Annotated[list[str], NoDecode] = []

    JWT_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    AUTH_COOKIE_NAMES: Annotated[list[str], NoDecode] = ["auth-token", "token"]

    # Internally-served pages live under this base when a site is not deployed.
    PUBLIC_APP_BASE_URL: str = "https://affilify.eu"

    UNSPLASH_ACCESS_KEY: str | None = None
    UNSPLASH_API_BASE_URL: str = "https://api.unsplash.com"
    IMAGE_REQUEST_TIMEOUT_SECONDS: float = 15.0

    GEMINI_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None
    LLM_DEFAULT_MODEL: str = "gemini-2.5-flash"
    LLM_REQUEST_TIMEOUT_SECONDS: int = 120
    LLM_MAX_OUTPUT_TOKENS: int | None = None
    LLM_TEMPERATURE: float = 0.7

    NETLIFY_ACCESS_TOKEN: str | None = None
    NETLIFY_API_BASE_URL: str = "https://api.netlify.com/api/v1"
    DEPLOY_REQUEST_TIMEOUT_SECONDS: float = 60.0

    PAGE_FETCH_TIMEOUT_SECONDS: float = 15.0
    PAGE_FETCH_USER_AGENT: str = _DEFAULT_USER_AGENT

    @field_validator("BACKEND_CORS_ORIGINS", "AUTH_COOKIE_NAMES", mode="before")
    @classmethod
    def split_csv(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def public_base_url(self) -> str:
        return self.PUBLIC_APP_BASE_URL.rstrip("/")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
