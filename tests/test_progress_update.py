import pytest

from core.config import PracticeConfig
from models.enums import Mode, ScopeType
from models.progress import make_scope_key
from services.progress_service import ProgressState, compute_progress_update, scope_for


def fresh_state(**overrides):
    values = dict(current_level=1, skill=0.5, total_answered=0, total_correct=0, streak=0, recent_question_ids=[])
    values.update(overrides)
    return ProgressState(**values)


def test_perfect_session_levels_up():
    new = compute_progress_update(fresh_state(), correct_count=30, answered=30, question_ids=list(range(30)))
    assert new.skill == pytest.approx(0.54)
    assert new.current_level == 2
    assert new.streak == 1
    assert new.total_answered == 30
    assert new.total_correct == 30


def test_zero_score_resets_streak_and_keeps_level():
    state = fresh_state(current_level=4, streak=3)
    new = compute_progress_update(state, correct_count=0, answered=30, question_ids=[1])
    assert new.skill == pytest.approx(0.44)
    assert new.current_level == 4
    assert new.streak == 0


def test_threshold_boundary_counts_as_pass():
    new = compute_progress_update(fresh_state(streak=2), correct_count=18, answered=30, question_ids=[])
    assert new.skill == pytest.approx(0.5)
    assert new.current_level == 2
    assert new.streak == 3


def test_just_below_threshold_fails():
    new = compute_progress_update(fresh_state(streak=2), correct_count=17, answered=30, question_ids=[])
    assert new.skill < 0.5
    assert new.current_level == 1
    assert new.streak == 0


@pytest.mark.parametrize("correct", range(0, 31))
def test_skill_moves_with_accuracy(correct):
    new = compute_progress_update(fresh_state(), correct_count=correct, answered=30, question_ids=[])
    accuracy = correct / 30
    if accuracy > 0.6:
        assert new.skill > 0.5
    elif accuracy < 0.6:
        assert new.skill < 0.5
    assert 0.0 <= new.skill <= 1.0


def test_skill_is_clamped():
    high = compute_progress_update(fresh_state(skill=0.99), correct_count=30, answered=30, question_ids=[])
    low = compute_progress_update(fresh_state(skill=0.01), correct_count=0, answered=30, question_ids=[])
    assert high.skill == 1.0
    assert low.skill == 0.0


def test_recent_ids_are_prepended_and_capped():
    previous = list(range(1000, 1290))
    new = compute_progress_update(
        fresh_state(recent_question_ids=previous), correct_count=5, answered=30, question_ids=list(range(30))
    )
    assert len(new.recent_question_ids) == 300
    assert new.recent_question_ids[:30] == list(range(30))
    assert new.recent_question_ids[30:] == previous[:270]


def test_custom_cap():
    config = PracticeConfig(recent_questions_cap=5)
    new = compute_progress_update(fresh_state(recent_question_ids=[9, 8]), 1, 4, [1, 2, 3, 4], config=config)
    assert new.recent_question_ids == [1, 2, 3, 4, 9]


def test_scope_for_modes():
    assert scope_for(Mode.ALL, 3, 7) == (ScopeType.BRANCH, None)
    assert scope_for(Mode.SUBJECT, 3, 7) == (ScopeType.SUBJECT, 3)
    assert scope_for(Mode.TOPIC, 3, 7) == (ScopeType.TOPIC, 7)


def test_scope_key():
    assert make_scope_key(ScopeType.BRANCH, 1, None) == "branch:1"
    assert make_scope_key(ScopeType.SUBJECT, 1, 3) == "subject:3"
    assert make_scope_key("topic", 1, 7) == "topic:7"
