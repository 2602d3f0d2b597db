"""Application settings using Pydantic BaseSettings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Build list of env files (later files override earlier ones)
_env_files = [".env"]
_user_env = Path.home() / ".castdigest" / ".env"
if _user_env.exists():
    _env_files.append(str(_user_env))


class Settings(BaseSettings):
    """Application configuration with environment variable loading."""

    model_config = SettingsConfigDict(
        env_file=tuple(_env_files),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP client settings
    user_agent: str = "castdigest/0.1.0 (Podcast Summary Service)"
    default_language: str = "en"

    # Episode matching (public search index)
    itunes_search_url: str = "https://itunes.apple.com/search"
    match_search_limit: int = 5
    match_term_max_chars: int = 200
    match_threshold: float = 0.30
    metadata_timeout: float = 10.0

    # External timed-markup transcripts
    apple_bearer_token: str = ""
    apple_transcripts_url: str = (
        "https://amp-api.podcasts.apple.com/v1/catalog/us/podcast-episodes/{episode_id}/transcripts"
    )
    ttml_fetch_timeout: float = 30.0
    min_transcript_chars: int = 100
    long_utterance_chars: int = 500

    # Pre-supplied transcript URLs
    transcript_url_timeout: float = 15.0

    # Paid audio transcription (Deepgram)
    deepgram_api_key: str = ""
    deepgram_url: str = "https://api.deepgram.com/v1/listen"
    deepgram_model: str = "whisper-large"
    deepgram_timeout: float = 600.0
    deepgram_max_attempts: int = 4
    deepgram_retry_wait: float = 1.0  # Base backoff in seconds, doubled per attempt
    deepgram_max_retry_wait: float = 30.0
    redirect_timeout: float = 3.0

    # Summarizer (Anthropic)
    anthropic_api_key: str = ""
    summary_model: str = "claude-haiku-4-5"
    quick_max_tokens: int = 1500
    deep_max_tokens: int = 4000
    summary_max_transcript_chars: int = 100_000
    summary_timeout: float = 120.0

    # Coordination
    transcript_poll_interval_seconds: float = 2.0
    transcript_wait_timeout_seconds: int = 2700
    stuck_threshold_minutes: int = 30  # Records processing longer than this are considered stuck
    reaper_interval_minutes: int = 15

    # Notifications (ntfy)
    ntfy_enabled: bool = False
    ntfy_url: str = "https://ntfy.sh"
    ntfy_topic: str = ""  # Required if enabled


# Cached settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get settings instance, applying database overrides if available."""
    global _settings
    if _settings is None:
        _settings = Settings()
        _apply_db_overrides()
    return _settings


def _apply_db_overrides() -> None:
    """Apply settings overrides from database (if available)."""
    global _settings
    if _settings is None:
        return

    # Credentials only come from the environment
    secret_keys = {
        "apple_bearer_token",
        "deepgram_api_key",
        "anthropic_api_key",
    }

    try:
        # Only import here to avoid circular imports
        from castdigest.db.connection import get_db
        from castdigest.db.repository import SettingsRepository

        with get_db() as conn:
            overrides = SettingsRepository(conn).get_all()
    except Exception:
        # Database might not be initialized yet
        return

    for key, value in overrides.items():
        if key in secret_keys or not hasattr(_settings, key):
            continue
        current_value = getattr(_settings, key)
        try:
            setattr(_settings, key, coerce_setting(current_value, value))
        except (ValueError, TypeError):
            pass  # Skip invalid values


def coerce_setting(current_value, value: str):
    """Convert a stored string override to the type of the current value."""
    if isinstance(current_value, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current_value, int):
        return int(value)
    if isinstance(current_value, float):
        return float(value)
    if isinstance(current_value, Path):
        return Path(value)
    return value


def reload_settings() -> Settings:
    """Force reload of settings (clears cache and reapplies db overrides)."""
    global _settings
    _settings = Settings()
    _apply_db_overrides()
    return _settings
