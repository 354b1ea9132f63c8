import pytest

from core.config import PracticeConfig
from services.difficulty import clamp, get_difficulty_range, query_window


@pytest.mark.parametrize("skill", [-1.0, 0.0, 0.1, 0.2, 0.5, 0.75, 0.9, 0.95, 1.0, 2.0])
def test_range_bounds(skill):
    r = get_difficulty_range(skill)
    assert 0.2 <= r.target <= 0.9
    assert 0.0 <= r.min <= r.target <= r.max <= 1.0


def test_target_is_skill_inside_floor_and_ceiling():
    r = get_difficulty_range(0.5)
    assert r.target == 0.5
    assert r.min == pytest.approx(0.4)
    assert r.max == pytest.approx(0.6)


def test_low_skill_is_floored():
    r = get_difficulty_range(0.05)
    assert r.target == 0.2
    assert r.min == pytest.approx(0.1)


def test_high_skill_is_capped():
    r = get_difficulty_range(0.99)
    assert r.target == 0.9
    assert r.max == pytest.approx(1.0)


def test_custom_config():
    config = PracticeConfig(target_floor=0.0, target_ceiling=1.0, difficulty_jitter=0.05)
    r = get_difficulty_range(0.02, config)
    assert r.target == pytest.approx(0.02)
    assert r.min == 0.0
    assert r.max == pytest.approx(0.07)


def test_query_window_is_clamped():
    assert query_window(0.5, 0.15) == pytest.approx((0.35, 0.65))
    assert query_window(0.9, 0.3) == pytest.approx((0.6, 1.0))
    assert query_window(0.1, 0.3) == pytest.approx((0.0, 0.4))


def test_clamp():
    assert clamp(1.5, 0, 1) == 1
    assert clamp(-0.5, 0, 1) == 0
    assert clamp(0.3, 0, 1) == 0.3
