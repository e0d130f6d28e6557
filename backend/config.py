import os
import logging
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ikm_survey.db")
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY", "change-me")
ORIGINS = [o.strip() for o in os.getenv("ORIGINS", "http://localhost:5173").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_INDEX_VARIANTS = ("rounded", "linear")
_COUNT_STRATEGIES = ("max-per-question", "answering-respondents")


def _choice(name: str, default: str, allowed: tuple[str, ...]) -> str:
    """Read an enum-like setting, falling back to `default` on unknown values."""
    raw = (os.getenv(name) or default).strip().lower()
    if raw not in allowed:
        log.warning("Unknown %s=%r, using %r", name, raw, default)
        return default
    return raw


IKM_INDEX_VARIANT = _choice("IKM_INDEX_VARIANT", "rounded", _INDEX_VARIANTS)
RESPONDENT_COUNT_STRATEGY = _choice("RESPONDENT_COUNT_STRATEGY", "max-per-question", _COUNT_STRATEGIES)
