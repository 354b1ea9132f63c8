"""initial practice schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1b2c3d4e5f6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('external_id', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        *timestamps(),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_external_id', 'users', ['external_id'], unique=True)
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(10), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('stem', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_index', sa.Integer(), nullable=False),
        sa.Column('solution', sa.Text(), nullable=True),
        sa.Column('difficulty', sa.Float(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('attempt_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('correct_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('avg_time_sec', sa.Float(), nullable=False, server_default='0'),
        *timestamps(),
    )
    for column in ('id', 'branch_id', 'subject_id', 'source', 'status', 'difficulty', 'created_at'):
        op.create_index(f'ix_questions_{column}', 'questions', [column])
    op.create_index(
        'idx_questions_scope_difficulty', 'questions', ['branch_id', 'subject_id', 'difficulty', 'status']
    )

    op.create_table(
        'question_topics',
        sa.Column('question_id', sa.Integer(), sa.ForeignKey('questions.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('topic_id', sa.Integer(), primary_key=True),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('idx_question_topics_topic', 'question_topics', ['topic_id', 'question_id'])

    op.create_table(
        'student_progress',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('scope_type', sa.String(10), nullable=False),
        sa.Column('scope_id', sa.Integer(), nullable=True),
        sa.Column('scope_key', sa.String(64), nullable=False),
        sa.Column('current_level', sa.Integer(), nullable=False),
        sa.Column('skill', sa.Float(), nullable=False),
        sa.Column('total_answered', sa.Integer(), nullable=False),
        sa.Column('total_correct', sa.Integer(), nullable=False),
        sa.Column('streak', sa.Integer(), nullable=False),
        sa.Column('last_session_at', sa.DateTime(), nullable=True),
        sa.Column('recent_question_ids', sa.JSON(), nullable=False),
        *timestamps(),
        sa.UniqueConstraint('user_id', 'branch_id', 'scope_key', name='uq_progress_user_scope'),
    )
    for column in ('id', 'user_id', 'branch_id', 'scope_type', 'scope_id', 'created_at'):
        op.create_index(f'ix_student_progress_{column}', 'student_progress', [column])

    op.create_table(
        'practice_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('mode', sa.String(10), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('subject_id', sa.Integer(), nullable=True),
        sa.Column('topic_id', sa.Integer(), nullable=True),
        sa.Column('level_number', sa.Integer(), nullable=False),
        sa.Column('target_difficulty', sa.Float(), nullable=False),
        sa.Column('question_items', sa.JSON(), nullable=False),
        sa.Column('responses', sa.JSON(), nullable=False),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *timestamps(),
    )
    for column in ('id', 'user_id', 'mode', 'branch_id', 'level_number', 'completed', 'created_at'):
        op.create_index(f'ix_practice_sessions_{column}', 'practice_sessions', [column])
    op.create_index(
        'idx_sessions_user_completed', 'practice_sessions', ['user_id', 'completed', 'created_at']
    )
    op.create_index(
        'idx_sessions_scope_level', 'practice_sessions', ['branch_id', 'subject_id', 'level_number']
    )


def downgrade() -> None:
    op.drop_table('practice_sessions')
    op.drop_table('student_progress')
    op.drop_table('question_topics')
    op.drop_table('questions')
    op.drop_table('users')
