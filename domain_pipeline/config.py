"""Configuration for the domain pipeline service."""

import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def get_int(env_var: str, default: int) -> int:
    """Get integer from environment or return default."""
    try:
        return int(os.getenv(env_var, default))
    except ValueError:
        logger.warning(f"Invalid {env_var}, using default {default}")
        return default


def get_bool(env_var: str, default: bool) -> bool:
    """Get boolean flag from environment ("1", "true", "yes", "on")."""
    raw = os.getenv(env_var)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# ============================================================================
# Logging
# ============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s %(levelname)s %(name)s: %(message)s")


def configure_logging(level: str | None = None) -> None:
    """Apply LOG_LEVEL (re-read from the environment) to the root logger."""
    level = (level or os.getenv("LOG_LEVEL", LOG_LEVEL)).upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=LOG_FORMAT)
    logging.getLogger().setLevel(getattr(logging, level, logging.INFO))


# ============================================================================
# Pipeline
# ============================================================================

# Upper bound on forecast days accepted by the validation stage
FORECAST_MAX_DAYS = get_int("FORECAST_MAX_DAYS", 14)

# Wrap the forecast pipeline in a TimingStage
PIPELINE_LOG_TIMINGS = get_bool("PIPELINE_LOG_TIMINGS", False)

# ============================================================================
# API
# ============================================================================

API_PORT = get_int("API_PORT", 8300)
