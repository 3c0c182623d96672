import pytest

from app.core.config import parse_level_thresholds, DEFAULT_LEVEL_THRESHOLDS
from app.gamification.levels import (
    level_for_xp,
    level_info,
    level_progress,
    max_level,
    xp_for_level,
    xp_to_next_level,
)


def test_level_boundaries():
    assert level_for_xp(0) == 1
    assert level_for_xp(9) == 1
    assert level_for_xp(10) == 2
    assert level_for_xp(20) == 3
    assert level_for_xp(1279) == 8
    assert level_for_xp(1280) == 9
    assert level_for_xp(1_000_000) == 9


def test_negative_xp_is_level_one():
    assert level_for_xp(-50) == 1


def test_level_is_monotonic_and_bounded():
    previous = 1
    for xp in range(0, 3000, 7):
        level = level_for_xp(xp)
        assert 1 <= level <= 9
        assert level >= previous
        previous = level


def test_xp_for_level_clamps():
    assert xp_for_level(1) == 0
    assert xp_for_level(5) == 80
    assert xp_for_level(0) == 0
    assert xp_for_level(42) == 1280


def test_next_level_and_progress():
    assert xp_to_next_level(0) == 10
    assert xp_to_next_level(15) == 5
    assert xp_to_next_level(5000) == 0
    assert level_progress(15) == 50
    assert level_progress(5000) == 100


def test_level_info_at_max_level():
    info = level_info(2000)
    assert info["level"] == max_level() == 9
    assert info["nivel_maximo"] is True
    assert info["xp_proximo_nivel"] is None
    assert info["progresso"] == 100


def test_custom_table_is_parsed():
    assert parse_level_thresholds("0, 5, 15") == (0, 5, 15)
    assert level_for_xp(7, (0, 5, 15)) == 2


@pytest.mark.parametrize("raw", ["5,10,20", "0,10,10", "0,20,10", "0,abc"])
def test_invalid_tables_are_rejected(raw):
    with pytest.raises(RuntimeError):
        parse_level_thresholds(raw)


def test_default_table():
    assert DEFAULT_LEVEL_THRESHOLDS == (0, 10, 20, 40, 80, 160, 320, 640, 1280)
