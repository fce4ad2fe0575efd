"""
Configuration for the registry sync service.

Environment variables (prefix ``BENCHWATCH_``):
    BENCHWATCH_REGISTRY_BASE_URL      Registry REST API root
    BENCHWATCH_REGISTRY_API_TOKEN     API token sent in the Authorization header
    BENCHWATCH_REGISTRY_AUTH_SCHEME   Authorization scheme ("Bearer" or "Token")
    BENCHWATCH_HOME_JURISDICTION      Default jurisdiction for discovery and field fallback
    BENCHWATCH_BATCH_SIZE             Items per batch
    BENCHWATCH_CONCURRENCY            Worker threads per batch (1 = sequential)
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BENCHWATCH_", extra="ignore")

    # Registry client
    registry_base_url: str = "https://www.courtlistener.com/api/rest/v4"
    registry_api_token: str = ""
    registry_auth_scheme: str = "Bearer"
    user_agent: str = "benchwatch-sync/0.1 (judicial registry reconciliation)"
    request_timeout_s: float = 30.0
    page_delay_s: float = 0.8
    page_size: int = 100

    # Field derivation
    home_jurisdiction: str = "CA"

    # Batch execution
    batch_size: int = 10
    concurrency: int = 1
    retries: int = 3
    backoff_base_s: float = 1.0
    backoff_cap_s: float = 30.0
    inter_batch_delay_ms: int = 2000
    skip_window_hours: float = 0.0

    # Worklist selection
    staleness_days: int = 7
    stale_limit: int = 100
    discover_limit: int = 500
    known_id_page_size: int = 1000


settings = Settings()
