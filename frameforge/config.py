from __future__ import annotations

import logging
import os
from typing import List, Optional

log = logging.getLogger(__name__)

SERVICE_NAME = "FrameForge API"

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini"
OPENAI_BASE_URL = (os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").strip() or "https://api.openai.com/v1").rstrip("/")
OPENAI_ENDPOINT = f"{OPENAI_BASE_URL}/chat/completions"

# Knob named in truncation errors; keep in sync with the env var read below
MAX_TOKENS_ENV = "OPENAI_MAX_OUTPUT_TOKENS"
DEFAULT_OUTPUT_TOKENS = 4096
MIN_OUTPUT_TOKENS = 1024


def clamp_max_tokens(raw: Optional[str]) -> int:
    """Parse the output token budget; missing means default, junk or tiny values clamp to the floor."""
    if raw is None or not str(raw).strip():
        return DEFAULT_OUTPUT_TOKENS
    try:
        value = int(str(raw).strip())
    except ValueError:
        log.warning("%s=%r is not an integer; using %d", MAX_TOKENS_ENV, raw, MIN_OUTPUT_TOKENS)
        return MIN_OUTPUT_TOKENS
    if value < MIN_OUTPUT_TOKENS:
        log.warning("%s=%d is below the floor; using %d", MAX_TOKENS_ENV, value, MIN_OUTPUT_TOKENS)
        return MIN_OUTPUT_TOKENS
    return value


MAX_OUTPUT_TOKENS = clamp_max_tokens(os.getenv(MAX_TOKENS_ENV))

try:
    LLM_TIMEOUT_SECS = int(os.getenv("LLM_TIMEOUT_SECS", "60"))
except Exception:
    LLM_TIMEOUT_SECS = 60

# Sampling temperatures per call type
IMAGE_TEMPERATURE = 0.2
EDIT_TEMPERATURE = 0.4
RETRY_TEMPERATURE = 0.1
CHAT_TEMPERATURE = 0.5

try:
    HISTORY_TURNS = max(0, int(os.getenv("HISTORY_TURNS", "10")))
except Exception:
    HISTORY_TURNS = 10


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()]


CLIENT_ORIGINS = _split_origins(os.getenv("CLIENT_ORIGIN", "http://localhost:5173"))

APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
# Error bodies carry parser detail everywhere except production
SHOW_ERROR_DETAIL = APP_ENV != "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

try:
    PORT = int(os.getenv("PORT", "4000"))
except Exception:
    PORT = 4000
