"""
Coverage balancing for a difficulty-sorted candidate pool.

The pool arrives ordered by closeness to the target difficulty, which tends
to cluster around a few topics. Balancing spreads the selection across
topics (subject sessions) or subjects (branch-wide sessions) so none is
starved when the pool comfortably exceeds demand.
"""
from typing import Callable, Dict, Hashable, Iterable, List, Sequence, TypeVar

from models.enums import Mode

T = TypeVar("T")


def _topic_keys(question) -> Iterable[Hashable]:
    # A multi-topic question is eligible in every one of its topic groups
    return question.topic_ids


def _subject_keys(question) -> Iterable[Hashable]:
    return (question.subject_id,)


def balance_by_groups(
    questions: Sequence[T],
    needed: int,
    group_keys: Callable[[T], Iterable[Hashable]],
) -> List[T]:
    """
    Two-pass round of group quotas.

    Pass one takes up to `max(1, needed // group_count)` unused questions from
    each group, groups visited in first-seen order. Pass two tops up from the
    leftover pool in its original order. No question is taken twice.
    """
    groups: Dict[Hashable, List[T]] = {}
    for q in questions:
        for key in group_keys(q):
            groups.setdefault(key, []).append(q)

    if not groups:
        return list(questions[:needed])

    per_group = max(1, needed // len(groups))
    balanced: List[T] = []
    used = set()

    for members in groups.values():
        taken = 0
        for q in members:
            if taken >= per_group:
                break
            if q.id in used:
                continue
            balanced.append(q)
            used.add(q.id)
            taken += 1

    remaining = needed - len(balanced)
    if remaining > 0:
        for q in questions:
            if remaining <= 0:
                break
            if q.id in used:
                continue
            balanced.append(q)
            used.add(q.id)
            remaining -= 1

    # More groups than slots: pass one can overshoot
    return balanced[:needed]


def balance_coverage(mode: Mode, questions: Sequence[T], needed: int) -> List[T]:
    """Select min(needed, len(questions)) questions according to the session mode."""
    mode = Mode(mode)
    if mode == Mode.TOPIC or len(questions) <= needed:
        return list(questions[:needed])

    if mode == Mode.SUBJECT:
        return balance_by_groups(questions, needed, _topic_keys)

    return balance_by_groups(questions, needed, _subject_keys)
