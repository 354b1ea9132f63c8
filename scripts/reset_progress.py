import asyncio
import sys
import os

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete, update
from db.session import AsyncSessionLocal
from models.progress import StudentProgress
from models.question import Question
from models.session import PracticeSession
from core.logger import logger


async def reset_progress(reset_question_stats: bool = False):
    print("⚠️  WARNING: This will DELETE ALL PRACTICE SESSIONS and STUDENT PROGRESS.")
    print("Students keep their accounts, but skill and level start over.")
    if reset_question_stats:
        print("Question usage statistics will be zeroed as well.")
    confirm = input("Type 'CONFIRM' to proceed: ")

    if confirm != "CONFIRM":
        print("Operation cancelled.")
        return

    async with AsyncSessionLocal() as session:
        try:
            print("Cleaning practice_sessions table...")
            await session.execute(delete(PracticeSession))

            print("Cleaning student_progress table...")
            await session.execute(delete(StudentProgress))

            if reset_question_stats:
                print("Zeroing question statistics...")
                await session.execute(
                    update(Question).values(attempt_count=0, correct_count=0, avg_time_sec=0.0)
                )

            await session.commit()
            print("✅ Practice progress has been reset successfully.")
            logger.info("Practice progress reset", question_stats=reset_question_stats)

        except Exception as e:
            await session.rollback()
            print(f"❌ Error resetting progress: {e}")
            logger.error("Error resetting progress", error=str(e))


if __name__ == "__main__":
    if os.name == 'nt':
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
    asyncio.run(reset_progress(reset_question_stats="--stats" in sys.argv))
