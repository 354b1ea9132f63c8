from typing import NamedTuple
from core.config import PracticeConfig, DEFAULT_PRACTICE_CONFIG


class DifficultyRange(NamedTuple):
    min: float
    max: float
    target: float


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def get_difficulty_range(skill: float, config: PracticeConfig = DEFAULT_PRACTICE_CONFIG) -> DifficultyRange:
    """
    Map a skill estimate to a target difficulty.
    The target is kept inside [target_floor, target_ceiling] so a session is
    never trivial or impossible, whatever the raw skill.
    """
    target = clamp(skill, config.target_floor, config.target_ceiling)
    return DifficultyRange(
        min=max(0.0, target - config.difficulty_jitter),
        max=min(1.0, target + config.difficulty_jitter),
        target=target,
    )


def query_window(target: float, radius: float) -> tuple[float, float]:
    """Candidate fetch bounds around the target, clamped to [0, 1]."""
    return max(0.0, target - radius), min(1.0, target + radius)
