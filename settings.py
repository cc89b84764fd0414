from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # `.env.prod` takes priority over `.env`
        env_file=(".env", ".env.prod"),
        extra="ignore",
    )

    # When disabled, every request runs as a local development recruiter
    auth_enabled: bool = False

    # Cognito Settings (Optional for local dev)
    cognito_user_pool_id: Optional[str] = None
    cognito_app_client_id: Optional[str] = None
    cognito_domain: Optional[str] = None
    aws_region: Optional[str] = None

    # Job description analyzer (OpenRouter, OpenAI-compatible API)
    openrouter_api_key: Optional[str] = None
    analyzer_model: str = "openai/gpt-4.1-mini"

    # Matching workload caps
    prefilter_limit: int = 200
    recommendation_limit: int = 50
    search_limit: int = 50

    # Lightweight fit score band used by live search.
    # Product has not confirmed these values; keep them configurable.
    fit_score_floor: int = 60
    fit_score_ceiling: int = 98
    fit_score_span: int = 38
    fit_score_default: int = 70

    # Deep match score
    priority_must_have_coverage: float = 0.8
    baseline_score: int = 50

    # Disclosure of locked candidates
    anonymization_secret: str = "change-me"
    anonymized_label_prefix: str = "Candidate"
    anonymized_label_length: int = 6
    hidden_employer_label: str = "Hidden"

    # One-time grant for the local development recruiter
    local_dev_credits: int = 25

    # Application base URL (sent as the OpenRouter referer)
    app_base_url: str = "http://localhost:8000"  # Default for local dev


@lru_cache()
def get_settings() -> Settings:
    return Settings()
