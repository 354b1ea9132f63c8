import pytest

from core.exceptions import NoQuestionsAvailable
from models.enums import QuestionStatus
from services.question_repository import QuestionOrder, QuestionQuery, QuestionRepository
from services.selection_service import QuestionSelectionService


@pytest.fixture
def selection(db_session):
    return QuestionSelectionService(QuestionRepository(db_session))


async def test_candidates_ordered_by_closeness(selection, question_factory):
    far = await question_factory(difficulty=0.62)
    near = await question_factory(difficulty=0.52)
    exact = await question_factory(difficulty=0.5)

    pool = await selection.fetch_candidates(1, target=0.5, radius=0.15)
    assert [q.id for q in pool] == [exact[0].id, near[0].id, far[0].id]


async def test_ties_prefer_least_attempted(selection, question_factory, db_session):
    used, fresh = await question_factory(count=2, difficulty=0.5)
    used.attempt_count = 5
    await db_session.commit()

    pool = await selection.fetch_candidates(1, target=0.5, radius=0.15)
    assert [q.id for q in pool] == [fresh.id, used.id]


async def test_candidates_filtered(selection, question_factory):
    keep = await question_factory(count=2)
    excluded = await question_factory()
    await question_factory(status=QuestionStatus.PENDING)
    await question_factory(branch_id=2)
    await question_factory(difficulty=0.9)

    pool = await selection.fetch_candidates(1, target=0.5, radius=0.15, exclude_ids=[excluded[0].id])
    assert sorted(q.id for q in pool) == sorted(q.id for q in keep)


async def test_subject_and_topic_filters(selection, question_factory):
    await question_factory(count=2, subject_id=10, topic_ids=(100,))
    in_topic = await question_factory(count=2, subject_id=10, topic_ids=(101, 100))
    await question_factory(count=2, subject_id=20, topic_ids=(101,))

    by_subject = await selection.fetch_candidates(1, 0.5, 0.15, subject_id=10)
    by_topic = await selection.fetch_candidates(1, 0.5, 0.15, subject_id=10, topic_id=101)

    assert len(by_subject) == 4
    assert sorted(q.id for q in by_topic) == sorted(q.id for q in in_topic)


async def test_empty_pool_raises(selection, question_factory):
    await question_factory(difficulty=0.95)
    with pytest.raises(NoQuestionsAvailable):
        await selection.fetch_candidates(1, target=0.5, radius=0.15)


async def test_backfill_tiers(selection, question_factory):
    primary = await question_factory(count=2, difficulty=0.5)
    easier = await question_factory(count=2, difficulty=0.3)
    harder = await question_factory(count=2, difficulty=0.75)
    stale = await question_factory(count=2, difficulty=0.95, age_days=60)
    await question_factory(difficulty=0.05)

    selected = await selection.select_questions(1, target=0.5, count=10)
    got = [q.id for q in selected]

    assert len(got) == 8
    assert set(got[:2]) == {q.id for q in primary}
    assert set(got[2:4]) == {q.id for q in easier}
    assert set(got[4:6]) == {q.id for q in harder}
    assert set(got[6:8]) == {q.id for q in stale}


async def test_backfill_stops_when_covered(selection, question_factory):
    await question_factory(count=3, difficulty=0.5)
    easier = await question_factory(count=5, difficulty=0.25)
    await question_factory(count=5, difficulty=0.75)

    selected = await selection.select_questions(1, target=0.5, count=5)
    assert len(selected) == 5
    assert {q.id for q in selected[3:]} <= {q.id for q in easier}


async def test_backfill_respects_exclusions(selection, question_factory):
    primary = await question_factory(count=1, difficulty=0.5)
    recent = await question_factory(count=3, difficulty=0.3)
    old_recent = await question_factory(count=1, difficulty=0.5, age_days=90)

    exclude = [q.id for q in recent + old_recent]
    selected = await selection.select_questions(1, target=0.5, count=5, exclude_ids=exclude)
    assert [q.id for q in selected] == [primary[0].id]


async def test_repository_orders(db_session, question_factory):
    old = await question_factory(age_days=40)
    new = await question_factory()
    repo = QuestionRepository(db_session)

    newest = await repo.find(QuestionQuery(branch_id=1, order=QuestionOrder.NEWEST))
    stale = await repo.find(QuestionQuery(branch_id=1, order=QuestionOrder.NEWEST, limit=0))

    assert [q.id for q in newest] == [new[0].id, old[0].id]
    assert stale == []
