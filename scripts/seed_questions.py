import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete
from db.session import AsyncSessionLocal, engine
from models.base import Base
from models.taxonomy import Branch, Subject, Topic
from models.question import Question, QuestionTopic
from models.progress import StudentProgress
from models.session import PracticeSession
from models.user import User
from models.enums import QuestionSource, QuestionStatus
from core.logger import setup_logging, logger

# Fixed ids so sample questions can reference the tree: subject = branch * 10 + order,
# topic = subject * 10 + order
JEE, NEET = 1, 2
JEE_PHYSICS, JEE_CHEMISTRY, JEE_MATH = 11, 12, 13
NEET_BIOLOGY = 23
KINEMATICS, ORGANIC_CHEMISTRY, ALGEBRA, BOTANY = 112, 122, 131, 231

# key, name, subjects; each subject is key, name, topics; each topic is key, name, syllabus path
TAXONOMY = [
    ("JEE", "Joint Entrance Examination", [
        ("physics", "Physics", [
            ("mechanics", "Mechanics", ["Mechanics"]),
            ("kinematics", "Kinematics", ["Mechanics", "Kinematics"]),
            ("dynamics", "Dynamics", ["Mechanics", "Dynamics"]),
            ("thermodynamics", "Thermodynamics", ["Thermodynamics"]),
            ("electromagnetism", "Electromagnetism", ["Electromagnetism"]),
        ]),
        ("chemistry", "Chemistry", [
            ("physical-chemistry", "Physical Chemistry", ["Physical Chemistry"]),
            ("organic-chemistry", "Organic Chemistry", ["Organic Chemistry"]),
            ("inorganic-chemistry", "Inorganic Chemistry", ["Inorganic Chemistry"]),
        ]),
        ("mathematics", "Mathematics", [
            ("algebra", "Algebra", ["Algebra"]),
            ("calculus", "Calculus", ["Calculus"]),
            ("geometry", "Geometry", ["Geometry"]),
        ]),
    ]),
    ("NEET", "National Eligibility cum Entrance Test", [
        ("physics", "Physics", [
            ("mechanics", "Mechanics", ["Mechanics"]),
            ("optics", "Optics", ["Optics"]),
        ]),
        ("chemistry", "Chemistry", [
            ("organic-chemistry", "Organic Chemistry", ["Organic Chemistry"]),
            ("biochemistry", "Biochemistry", ["Biochemistry"]),
        ]),
        ("biology", "Biology", [
            ("botany", "Botany", ["Botany"]),
            ("zoology", "Zoology", ["Zoology"]),
        ]),
    ]),
]

SAMPLE_QUESTIONS = [
    {
        "branch_id": JEE, "subject_id": JEE_PHYSICS, "topic_ids": [KINEMATICS],
        "stem": "A car accelerates from rest at 2 m/s² for 10 seconds. What is its final velocity?",
        "options": ["5 m/s", "10 m/s", "20 m/s", "25 m/s"],
        "correct_index": 2,
        "solution": "Using v = u + at with u = 0, a = 2 m/s², t = 10 s gives v = 20 m/s",
        "difficulty": 0.4,
        "tags": ["kinematics", "acceleration", "velocity"],
    },
    {
        "branch_id": JEE, "subject_id": JEE_PHYSICS, "topic_ids": [KINEMATICS],
        "stem": "A ball is thrown vertically upward with a velocity of 20 m/s. How high does it rise? (g = 10 m/s²)",
        "options": ["10 m", "20 m", "30 m", "40 m"],
        "correct_index": 1,
        "solution": "Using v² = u² + 2as with v = 0, u = 20 m/s, a = -10 m/s² gives s = 20 m",
        "difficulty": 0.6,
        "tags": ["kinematics", "projectile", "height"],
    },
    {
        "branch_id": JEE, "subject_id": JEE_CHEMISTRY, "topic_ids": [ORGANIC_CHEMISTRY],
        "stem": "Which of the following is a functional group in organic chemistry?",
        "options": ["-OH", "-NH₂", "-COOH", "All of the above"],
        "correct_index": 3,
        "solution": "-OH (hydroxyl), -NH₂ (amino) and -COOH (carboxyl) are all functional groups",
        "difficulty": 0.3,
        "tags": ["organic-chemistry", "functional-groups"],
    },
    {
        "branch_id": JEE, "subject_id": JEE_MATH, "topic_ids": [ALGEBRA],
        "stem": "Solve the quadratic equation: x² - 5x + 6 = 0",
        "options": ["x = 2, 3", "x = -2, -3", "x = 1, 6", "x = -1, -6"],
        "correct_index": 0,
        "solution": "x² - 5x + 6 = (x - 2)(x - 3) = 0, so x = 2 or x = 3",
        "difficulty": 0.5,
        "tags": ["algebra", "quadratic", "factoring"],
    },
    {
        "branch_id": NEET, "subject_id": NEET_BIOLOGY, "topic_ids": [BOTANY],
        "stem": "Which process is responsible for the movement of water from roots to leaves in plants?",
        "options": ["Osmosis", "Transpiration", "Photosynthesis", "Respiration"],
        "correct_index": 1,
        "solution": "Transpiration creates the negative pressure that pulls water up through the xylem",
        "difficulty": 0.4,
        "tags": ["botany", "transpiration", "water-transport"],
    },
]


def build_taxonomy() -> list:
    rows = []
    for branch_order, (branch_key, branch_name, subjects) in enumerate(TAXONOMY, start=1):
        rows.append(Branch(id=branch_order, key=branch_key, name=branch_name, order=branch_order))
        for subject_order, (subject_key, subject_name, topics) in enumerate(subjects, start=1):
            subject_id = branch_order * 10 + subject_order
            rows.append(Subject(
                id=subject_id, branch_id=branch_order, key=subject_key, name=subject_name, order=subject_order
            ))
            for topic_order, (topic_key, topic_name, path) in enumerate(topics, start=1):
                rows.append(Topic(
                    id=subject_id * 10 + topic_order, branch_id=branch_order, subject_id=subject_id,
                    key=topic_key, name=topic_name, syllabus_path=path, order=topic_order,
                ))
    return rows


def build_question(data: dict) -> Question:
    data = dict(data)
    topic_ids = data.pop("topic_ids")
    question = Question(
        source=QuestionSource.DB.value,
        status=QuestionStatus.APPROVED.value,
        attempt_count=0,
        correct_count=0,
        avg_time_sec=0.0,
        **data,
    )
    question.topics = [QuestionTopic(topic_id=t, position=i) for i, t in enumerate(topic_ids)]
    question.validate_answer_key()
    return question


async def seed_database(clear: bool = True):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        try:
            if clear:
                print("Clearing existing data...")
                for model in (PracticeSession, StudentProgress, QuestionTopic, Question, User, Topic, Subject, Branch):
                    await session.execute(delete(model))

            print("Creating branches, subjects and topics...")
            taxonomy = build_taxonomy()
            session.add_all(taxonomy)
            await session.flush()

            print("Creating sample questions...")
            questions = [build_question(q) for q in SAMPLE_QUESTIONS]
            session.add_all(questions)

            print("Creating sample admin user...")
            session.add(User(external_id="admin-sample", role="admin", name="Admin User", email="admin@example.com"))

            await session.commit()
            print(f"✅ Database seeded with {len(taxonomy)} taxonomy entries and {len(questions)} sample questions.")
            logger.info("Database seeded", taxonomy=len(taxonomy), questions=len(questions))

        except Exception as e:
            await session.rollback()
            print(f"❌ Error seeding database: {e}")
            logger.error("Error seeding database", error=str(e))
            raise

    await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    if os.name == 'nt':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(seed_database(clear="--keep" not in sys.argv))
