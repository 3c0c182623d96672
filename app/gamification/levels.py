"""
Level function.

Levels are derived purely from cumulative XP using the exponential table in
app.core.config.LEVEL_THRESHOLDS (floor XP of level 1..N):

    level 1: 0   level 2: 10   level 3: 20   level 4: 40   level 5: 80
    level 6: 160 level 7: 320  level 8: 640  level 9: 1280
"""
from bisect import bisect_right
from typing import Sequence

from app.core.config import LEVEL_THRESHOLDS


def max_level(thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    return len(thresholds)


def level_for_xp(total_xp: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """Highest 1-based level whose floor is <= total_xp. Never below 1."""
    return max(1, bisect_right(thresholds, total_xp))


def xp_for_level(level: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """XP floor of a level (clamped into the table)."""
    level = min(max(level, 1), len(thresholds))
    return thresholds[level - 1]


def xp_to_next_level(total_xp: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    level = level_for_xp(total_xp, thresholds)
    if level >= len(thresholds):
        return 0
    return thresholds[level] - max(total_xp, 0)


def level_progress(total_xp: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """Percent (0-100) of the way from the current level floor to the next one."""
    level = level_for_xp(total_xp, thresholds)
    if level >= len(thresholds):
        return 100
    floor = thresholds[level - 1]
    ceiling = thresholds[level]
    done = max(total_xp, 0) - floor
    return min(100, max(0, int(done * 100 / (ceiling - floor))))


def level_info(total_xp: int) -> dict:
    level = level_for_xp(total_xp)
    return {
        "level": level,
        "xp": total_xp,
        "xp_nivel_atual": xp_for_level(level),
        "xp_proximo_nivel": xp_for_level(level + 1) if level < max_level() else None,
        "xp_restante": xp_to_next_level(total_xp),
        "progresso": level_progress(total_xp),
        "nivel_maximo": level >= max_level(),
    }
