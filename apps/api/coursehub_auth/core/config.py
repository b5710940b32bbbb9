"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables.

    Read once by ``create_app``; every process-wide collaborator (signing key,
    password hasher, identity verifier, database engine) is built from the same
    instance and never re-reads the environment.
    """

    identity_provider: Literal["mock", "google"] = "google"
    google_client_id: str | None = None
    google_jwks_url: str = GOOGLE_JWKS_URL
    google_issuers: tuple[str, ...] = GOOGLE_ISSUERS
    identity_verifier_timeout_seconds: float = Field(default=5.0, gt=0)

    jwt_secret: str = Field(min_length=1)
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = "HS256"
    jwt_key_id: str | None = None
    access_token_ttl_seconds: int = Field(default=86400, gt=0)
    refresh_token_ttl_seconds: int = Field(default=604800, gt=0)

    database_url: str = "sqlite:///./coursehub_auth.db"

    password_hash_time_cost: int = Field(default=3, ge=1)
    password_hash_memory_cost: int = Field(default=65536, ge=8)
    password_hash_parallelism: int = Field(default=4, ge=1)

    model_config = SettingsConfigDict(env_prefix="COURSEHUB_", extra="ignore", frozen=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
