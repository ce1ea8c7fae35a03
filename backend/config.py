import os
from pydantic_settings import BaseSettings


def _parse_cors_origins() -> list[str] | None:
    """Parse CORS_ORIGINS env var as comma-separated string or JSON list."""
    raw = os.environ.get("CORS_ORIGINS")
    if not raw:
        return None
    if raw.startswith("["):
        import json
        return json.loads(raw)
    return [o.strip() for o in raw.split(",") if o.strip()]


class Settings(BaseSettings):
    # Primary provider: OpenAI-compatible chat completions endpoint
    cometapi_api_key: str = ""
    cometapi_model: str = "claude-haiku-4-5-20251001"
    cometapi_base_url: str = "https://api.cometapi.com/v1"

    # Secondary provider
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"

    # Final-evaluation call ladder (seconds)
    llm_primary_timeout_s: float = 45.0
    llm_retry_timeout_s: float = 60.0
    llm_retry_backoff_s: float = 1.0
    # Per-answer content scoring is a single bounded attempt
    llm_answer_timeout_s: float = 30.0

    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


_cors_override = _parse_cors_origins()
settings = Settings(**{"cors_origins": _cors_override} if _cors_override else {})
