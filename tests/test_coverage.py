from types import SimpleNamespace

from models.enums import Mode
from services.coverage import balance_by_groups, balance_coverage


def make_pool(specs):
    """specs: list of (subject_id, [topic_ids]) in fetched order."""
    return [
        SimpleNamespace(id=i, subject_id=subject_id, topic_ids=list(topics))
        for i, (subject_id, topics) in enumerate(specs, start=1)
    ]


def ids(questions):
    return [q.id for q in questions]


def test_small_pool_returned_unchanged():
    pool = make_pool([(1, [10])] * 5)
    for mode in Mode:
        assert ids(balance_coverage(mode, pool, 30)) == ids(pool)


def test_topic_mode_takes_first_n():
    pool = make_pool([(1, [10])] * 40)
    selected = balance_coverage(Mode.TOPIC, pool, 30)
    assert ids(selected) == list(range(1, 31))


def test_subject_mode_spreads_over_topics():
    # Topic 10 dominates the closest-to-target part of the pool
    pool = make_pool([(1, [10])] * 50 + [(1, [20])] * 5 + [(1, [30])] * 5)
    selected = balance_coverage(Mode.SUBJECT, pool, 30)

    assert len(selected) == 30
    assert len(set(ids(selected))) == 30
    topics = [q.topic_ids[0] for q in selected]
    assert topics.count(20) == 5
    assert topics.count(30) == 5
    assert topics.count(10) == 20


def test_all_mode_groups_by_subject():
    pool = make_pool([(1, [10])] * 40 + [(2, [20])] * 40 + [(3, [30])] * 40)
    selected = balance_coverage(Mode.ALL, pool, 30)

    subjects = [q.subject_id for q in selected]
    assert len(selected) == 30
    assert subjects.count(1) == 10
    assert subjects.count(2) == 10
    assert subjects.count(3) == 10


def test_multi_topic_question_not_duplicated():
    pool = make_pool([(1, [10, 20])] * 10 + [(1, [20])] * 10 + [(1, [10])] * 10)
    selected = balance_coverage(Mode.SUBJECT, pool, 12)

    assert len(selected) == 12
    assert len(set(ids(selected))) == 12


def test_more_groups_than_slots():
    pool = make_pool([(s, [s * 10]) for s in range(1, 11)] * 2)
    selected = balance_coverage(Mode.ALL, pool, 4)
    assert len(selected) == 4
    assert len(set(ids(selected))) == 4


def test_second_pass_fills_in_pool_order():
    pool = make_pool([(1, [10])] * 3 + [(2, [20])] * 30)
    selected = balance_by_groups(pool, 10, lambda q: (q.subject_id,))
    # Pass one: 3 from subject 1 (all it has), 5 from subject 2; pass two tops up from subject 2
    assert len(selected) == 10
    assert [q.subject_id for q in selected].count(1) == 3
    assert ids(selected) == [1, 2, 3, 4, 5, 6, 7, 8, 9, 10]
