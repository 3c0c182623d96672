"""
Unified OpenAI client.

All modules that need OpenAI should import from here:
    from app.ai.openai_client import get_client, key_present, key_fingerprint

The key is read once, the client is created lazily and reused, and every
call shares the same timeout (AI_TIMEOUT_SECONDS).
"""
import logging

import openai

from app.core.config import OPENAI_API_KEY, AI_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

# Lazily-created singleton
_client = None


def key_present() -> bool:
    return bool(OPENAI_API_KEY)


def key_fingerprint() -> str:
    """Return masked key for safe logging: sk-xxxx...1234"""
    if not OPENAI_API_KEY:
        return "(not set)"
    if len(OPENAI_API_KEY) <= 10:
        return OPENAI_API_KEY[:2] + "***"
    return OPENAI_API_KEY[:6] + "..." + OPENAI_API_KEY[-4:]


def get_client():
    """Return the shared OpenAI client, or None if the key is missing."""
    global _client
    if not OPENAI_API_KEY:
        return None
    if _client is None:
        _client = openai.OpenAI(api_key=OPENAI_API_KEY, timeout=AI_TIMEOUT_SECONDS, max_retries=0)
    return _client


def log_startup():
    """Print one-time startup diagnostics."""
    print(f"[AI] OPENAI_API_KEY present: {key_present()}", flush=True)
    print(f"[AI] key fingerprint: {key_fingerprint()}", flush=True)
    print(f"[AI] timeout: {AI_TIMEOUT_SECONDS}s", flush=True)
