"""
Configuration constants for the application.

Everything here is read once from the environment (optionally via a .env
file at the project root). XP rewards and the level table live here so
they can be tuned without code changes.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}")


ENVIRONMENT = os.getenv("ENVIRONMENT", "development").strip().lower()
IS_PRODUCTION = ENVIRONMENT == "production"

# OpenAI API Key for quiz/challenge generation.
# Set OPENAI_API_KEY in your environment (or hosting provider env vars).
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
AI_TIMEOUT_SECONDS = _int_env("AI_TIMEOUT_SECONDS", 55)

RANKING_CACHE_TTL_SECONDS = _int_env("RANKING_CACHE_TTL_SECONDS", 30)


# ======================
# XP REWARDS
# ======================

XP_COMUNIDADE_PERGUNTA = _int_env("XP_COMUNIDADE_PERGUNTA", 5)
XP_COMUNIDADE_RESPOSTA = _int_env("XP_COMUNIDADE_RESPOSTA", 1)
# Total an accepted answer is worth (base answer reward included).
XP_COMUNIDADE_RESPOSTA_CERTA = _int_env("XP_COMUNIDADE_RESPOSTA_CERTA", 30)
XP_QUIZ_MAXIMO = _int_env("XP_QUIZ_MAXIMO", 20)
XP_DESAFIO_COMPLETO = _int_env("XP_DESAFIO_COMPLETO", 40)
XP_DESAFIO_PENALIDADE = _int_env("XP_DESAFIO_PENALIDADE", 20)
XP_FORMULARIO_PREENCHIDO = _int_env("XP_FORMULARIO_PREENCHIDO", 1)

if XP_COMUNIDADE_RESPOSTA_CERTA < XP_COMUNIDADE_RESPOSTA:
    raise RuntimeError("XP_COMUNIDADE_RESPOSTA_CERTA must be >= XP_COMUNIDADE_RESPOSTA")


# ======================
# LEVEL TABLE
# ======================

DEFAULT_LEVEL_THRESHOLDS = (0, 10, 20, 40, 80, 160, 320, 640, 1280)


def parse_level_thresholds(raw: str) -> tuple[int, ...]:
    """
    Parse "0,10,20,..." into a validated tuple.
    Must start at 0 and be strictly increasing.
    """
    try:
        values = tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise RuntimeError(f"LEVEL_THRESHOLDS must be comma separated integers, got {raw!r}")
    if not values or values[0] != 0:
        raise RuntimeError("LEVEL_THRESHOLDS must start at 0")
    for prev, cur in zip(values, values[1:]):
        if cur <= prev:
            raise RuntimeError("LEVEL_THRESHOLDS must be strictly increasing")
    return values


_raw_thresholds = os.getenv("LEVEL_THRESHOLDS", "").strip()
LEVEL_THRESHOLDS = parse_level_thresholds(_raw_thresholds) if _raw_thresholds else DEFAULT_LEVEL_THRESHOLDS

# Ceiling for one lesson award a student reports for themselves.
XP_AULA_MAXIMO = _int_env("XP_AULA_MAXIMO", 50)

# Likes on own questions needed for the community "top member" badge.
TOP_MEMBER_MIN_CURTIDAS = _int_env("TOP_MEMBER_MIN_CURTIDAS", 50)
