"""
Centralized configuration with environment variable overrides.

All business-specific values, thresholds, and integration endpoints are
configurable here. Nothing is hardcoded in flow or matching logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class BusinessConfig:
    """Business-specific settings loaded from environment or defaults."""

    name: str = os.getenv("BUSINESS_NAME", "BentaCars")
    timezone: str = os.getenv("BUSINESS_TIMEZONE", "Asia/Manila")


@dataclass(frozen=True)
class ModelConfig:
    """Text generation settings for hooks, nudges and conversational copy."""

    llm_model: str = os.getenv("LLM_MODEL", "gpt-4.1-mini")
    hook_temperature: float = _safe_float("HOOK_TEMPERATURE", "0.4")
    nudge_temperature: float = _safe_float("NUDGE_TEMPERATURE", "0.8")
    tone_temperature: float = _safe_float("TONE_TEMPERATURE", "0.7")
    hook_max_chars: int = _safe_int("HOOK_MAX_CHARS", "140")


@dataclass(frozen=True)
class ConversationConfig:
    """Qualification, matching and post-selection thresholds."""

    session_ttl_days: int = _safe_int("SESSION_TTL_DAYS", "7")
    debounce_seconds: float = _safe_float("DEBOUNCE_SECONDS", "1.5")
    budget_headroom: int = _safe_int("BUDGET_HEADROOM", "200000")
    budget_fit_window: int = _safe_int("BUDGET_FIT_WINDOW", "50000")
    all_in_round_step: int = _safe_int("ALL_IN_ROUND_STEP", "5000")
    all_in_spread: int = _safe_int("ALL_IN_SPREAD", "20000")
    max_candidates: int = _safe_int("MAX_CANDIDATES", "4")
    shown_count: int = _safe_int("SHOWN_COUNT", "2")
    same_day_cutoff_hour: int = _safe_int("SAME_DAY_CUTOFF_HOUR", "15")
    same_day_start_hour: int = _safe_int("SAME_DAY_START_HOUR", "6")


@dataclass(frozen=True)
class NudgeConfig:
    """Idle re-engagement cadence and quiet hours."""

    interval_minutes: int = _safe_int("NUDGE_INTERVAL_MINUTES", "15")
    max_attempts: int = _safe_int("NUDGE_MAX_ATTEMPTS", "8")
    quiet_start_hour: int = _safe_int("NUDGE_QUIET_START_HOUR", "21")
    quiet_end_hour: int = _safe_int("NUDGE_QUIET_END_HOUR", "9")
    docs_interval_minutes: int = _safe_int("DOCS_NUDGE_INTERVAL_MINUTES", "120")
    docs_max_hours: int = _safe_int("DOCS_NUDGE_MAX_HOURS", "72")


@dataclass(frozen=True)
class IntegrationConfig:
    """Endpoints and credentials for the external collaborators."""

    inventory_api_url: str = os.getenv("INVENTORY_API_URL", "")
    inventory_cache_seconds: int = _safe_int("INVENTORY_CACHE_SECONDS", "60")
    http_timeout_sec: float = _safe_float("HTTP_TIMEOUT_SEC", "10.0")
    graph_api_url: str = os.getenv(
        "GRAPH_API_URL", "https://graph.facebook.com/v18.0/me/messages"
    )
    page_access_token: str = os.getenv("PAGE_ACCESS_TOKEN", "")
    redis_url: str = os.getenv("REDIS_URL", "")
    session_lock_timeout_sec: float = _safe_float("SESSION_LOCK_TIMEOUT_SEC", "30.0")
    session_lock_wait_sec: float = _safe_float("SESSION_LOCK_WAIT_SEC", "10.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    business: BusinessConfig = field(default_factory=BusinessConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    nudges: NudgeConfig = field(default_factory=NudgeConfig)
    integrations: IntegrationConfig = field(default_factory=IntegrationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "messenger-sales-agent")


def _validate_hour(name: str, value: int) -> None:
    if not 0 <= value <= 23:
        raise ValueError(f"{name} must be between 0 and 23, got {value}")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    for temp_name, temp_value in [
        ("HOOK_TEMPERATURE", config.model.hook_temperature),
        ("NUDGE_TEMPERATURE", config.model.nudge_temperature),
        ("TONE_TEMPERATURE", config.model.tone_temperature),
    ]:
        if not 0.0 <= temp_value <= 2.0:
            raise ValueError(f"{temp_name} must be between 0.0 and 2.0, got {temp_value}")

    conv = config.conversation
    if conv.session_ttl_days < 1:
        raise ValueError(f"SESSION_TTL_DAYS must be >= 1, got {conv.session_ttl_days}")
    if conv.debounce_seconds < 0:
        raise ValueError(f"DEBOUNCE_SECONDS must be >= 0, got {conv.debounce_seconds}")
    if conv.budget_headroom < 0:
        raise ValueError(f"BUDGET_HEADROOM must be >= 0, got {conv.budget_headroom}")
    if conv.budget_fit_window < 0:
        raise ValueError(f"BUDGET_FIT_WINDOW must be >= 0, got {conv.budget_fit_window}")
    if conv.all_in_round_step < 1:
        raise ValueError(f"ALL_IN_ROUND_STEP must be >= 1, got {conv.all_in_round_step}")
    if conv.max_candidates < 1:
        raise ValueError(f"MAX_CANDIDATES must be >= 1, got {conv.max_candidates}")
    if not 1 <= conv.shown_count <= conv.max_candidates:
        raise ValueError(
            f"SHOWN_COUNT must be between 1 and MAX_CANDIDATES, got {conv.shown_count}"
        )
    _validate_hour("SAME_DAY_CUTOFF_HOUR", conv.same_day_cutoff_hour)
    _validate_hour("SAME_DAY_START_HOUR", conv.same_day_start_hour)

    nudges = config.nudges
    if nudges.interval_minutes < 1:
        raise ValueError(
            f"NUDGE_INTERVAL_MINUTES must be >= 1, got {nudges.interval_minutes}"
        )
    if nudges.max_attempts < 0:
        raise ValueError(f"NUDGE_MAX_ATTEMPTS must be >= 0, got {nudges.max_attempts}")
    _validate_hour("NUDGE_QUIET_START_HOUR", nudges.quiet_start_hour)
    _validate_hour("NUDGE_QUIET_END_HOUR", nudges.quiet_end_hour)
    if nudges.docs_interval_minutes < 1:
        raise ValueError(
            f"DOCS_NUDGE_INTERVAL_MINUTES must be >= 1, got {nudges.docs_interval_minutes}"
        )

    if config.integrations.inventory_cache_seconds < 0:
        raise ValueError(
            "INVENTORY_CACHE_SECONDS must be >= 0, "
            f"got {config.integrations.inventory_cache_seconds}"
        )
    if config.integrations.http_timeout_sec <= 0:
        raise ValueError(
            f"HTTP_TIMEOUT_SEC must be > 0, got {config.integrations.http_timeout_sec}"
        )
    for lock_name, lock_value in [
        ("SESSION_LOCK_TIMEOUT_SEC", config.integrations.session_lock_timeout_sec),
        ("SESSION_LOCK_WAIT_SEC", config.integrations.session_lock_wait_sec),
    ]:
        if lock_value <= 0:
            raise ValueError(f"{lock_name} must be > 0, got {lock_value}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.business.name)
    return config


# Singleton instance
settings = load_config()
