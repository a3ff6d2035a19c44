# taxassist/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = "Tax Voice Assistant API"
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Session cookie (the credential itself and its TTL live in core/security.py)
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "accessToken")
    cookie_secure: bool = _env_flag("COOKIE_SECURE", "true")

    # One-time login tokens are replayable within their validity window unless this is on
    one_time_token_single_use: bool = _env_flag("ONE_TIME_TOKEN_SINGLE_USE", "false")

    # Where unauthenticated page requests go: "internal" -> /login, "external" -> dashboard_url
    auth_redirect_mode: str = os.getenv("AUTH_REDIRECT_MODE", "internal")
    # External marketing/dashboard origin, also the quota upgrade call-to-action
    dashboard_url: str = os.getenv("DASHBOARD_URL", "https://dashboard.taxai.ae/")

    # OpenAI Chat Completions (conversation summaries)
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    summary_api_url: str = os.getenv("SUMMARY_API_URL", "https://api.openai.com/v1/chat/completions")
    summary_model: str = os.getenv("SUMMARY_MODEL", "gpt-3.5-turbo")
    summary_timeout_seconds: float = float(os.getenv("SUMMARY_TIMEOUT_SECONDS", "15"))

    # Timeout used by the voice client when calling this API
    http_timeout_seconds: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "15"))

    # Voice agent (ElevenLabs conversational agent id, handed to the client)
    elevenlabs_agent_id: str | None = os.getenv("ELEVENLABS_AGENT_ID")

    # Quota (thresholds live in core/quota.py)
    # Seconds granted to a new account at registration; unset means no subscription is created
    default_call_seconds: int | None = (
        int(os.getenv("DEFAULT_CALL_SECONDS")) if os.getenv("DEFAULT_CALL_SECONDS") else None
    )


settings = Settings()  # Instantiate configuration
