# tod_ai/config.py
"""
Configuration for the Tod AI backend.

Values come from the environment (optionally a .env file next to the package
or at the repository root). Logging is configured once, here.
"""
import os
import logging
import sys
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, Field

env_paths = [
    os.path.join(os.path.dirname(__file__), '.env'),
    os.path.join(os.path.dirname(__file__), '..', '.env'),
]

for env_path in env_paths:
    if os.path.exists(env_path):
        load_dotenv(env_path)
        break


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# ===== GEMINI =====
GEMINI_API_KEY = os.getenv('GEMINI_API_KEY')
GEMINI_API_BASE_URL = os.getenv('GEMINI_API_BASE_URL', 'https://generativelanguage.googleapis.com')
GEMINI_API_VERSIONS = _env_list('GEMINI_API_VERSIONS', 'v1beta,v1')

# Placeholder shipped in sample .env files
PLACEHOLDER_API_KEY = "YOUR_API_KEY_HERE"

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_OUTPUT_TOKENS = 1024

# ===== RETRY CONFIGURATION (For 503 Errors) =====
OVERLOAD_RETRY_DELAY_SECONDS = float(os.getenv('TOD_OVERLOAD_RETRY_DELAY', '2.0'))
REQUEST_TIMEOUT_SECONDS = int(os.getenv('TOD_REQUEST_TIMEOUT', '60'))

# When the Generative Language API is disabled for the key's project no model
# can answer, so the fallback loop stops at the first NOT_ENABLED error.
ABORT_ON_NOT_ENABLED = _env_flag('TOD_ABORT_ON_NOT_ENABLED', True)

# ===== SEMANTIC SCHOLAR =====
SEMANTIC_SCHOLAR_API_KEY = os.getenv('SEMANTIC_SCHOLAR_API_KEY')
SEMANTIC_SCHOLAR_BASE_URL = os.getenv('SEMANTIC_SCHOLAR_BASE_URL', 'https://api.semanticscholar.org/graph/v1')
PAPER_SEARCH_LIMIT = int(os.getenv('TOD_PAPER_SEARCH_LIMIT', '5'))
PAPER_SEARCH_TIMEOUT_SECONDS = 15

# ===== LOGGING =====
LOG_LEVEL = os.environ.get("TOD_LOG_LEVEL", "WARNING").upper()

_formatter = logging.Formatter("%(levelname)s: %(message)s")
_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(_formatter)

root_logger = logging.getLogger()
if not root_logger.handlers:
    root_logger.addHandler(_handler)
root_logger.setLevel(getattr(logging, LOG_LEVEL, logging.WARNING))

logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("google").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

def get_logger(name: str):
    return logging.getLogger(name)


class GenerationSettings(BaseModel):
    """Knobs the model router reads on every call."""

    api_versions: List[str] = Field(default_factory=lambda: list(GEMINI_API_VERSIONS))
    base_url: str = GEMINI_API_BASE_URL
    temperature: float = DEFAULT_TEMPERATURE
    max_output_tokens: int = Field(default=DEFAULT_MAX_OUTPUT_TOKENS, gt=0)
    overload_retry_delay: float = Field(default=OVERLOAD_RETRY_DELAY_SECONDS, ge=0)
    request_timeout: int = Field(default=REQUEST_TIMEOUT_SECONDS, gt=0)
    abort_on_not_enabled: bool = ABORT_ON_NOT_ENABLED


def load_settings() -> GenerationSettings:
    return GenerationSettings()
