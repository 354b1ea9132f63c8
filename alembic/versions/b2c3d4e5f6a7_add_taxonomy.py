"""add branch, subject and topic taxonomy

Revision ID: b2c3d4e5f6a7
Revises: a1b2c3d4e5f6
Create Date: 2026-10-18 14:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'b2c3d4e5f6a7'
down_revision: Union[str, None] = 'a1b2c3d4e5f6'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('key', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
    )
    op.create_index('ix_branches_id', 'branches', ['id'])
    op.create_index('ix_branches_key', 'branches', ['key'], unique=True)
    op.create_index('ix_branches_created_at', 'branches', ['created_at'])

    op.create_table(
        'subjects',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('key', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
        sa.UniqueConstraint('branch_id', 'key', name='uq_subjects_branch_key'),
    )
    for column in ('id', 'branch_id', 'created_at'):
        op.create_index(f'ix_subjects_{column}', 'subjects', [column])

    op.create_table(
        'topics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('branch_id', sa.Integer(), sa.ForeignKey('branches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.Integer(), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('key', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('syllabus_path', sa.JSON(), nullable=False),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
        sa.UniqueConstraint('branch_id', 'subject_id', 'key', name='uq_topics_branch_subject_key'),
    )
    for column in ('id', 'branch_id', 'subject_id', 'created_at'):
        op.create_index(f'ix_topics_{column}', 'topics', [column])

    # Batch mode rebuilds the tables on SQLite, which cannot add constraints in place
    with op.batch_alter_table('questions') as batch:
        batch.create_foreign_key('fk_questions_branch_id', 'branches', ['branch_id'], ['id'])
        batch.create_foreign_key('fk_questions_subject_id', 'subjects', ['subject_id'], ['id'])
    with op.batch_alter_table('question_topics') as batch:
        batch.create_foreign_key(
            'fk_question_topics_topic_id', 'topics', ['topic_id'], ['id'], ondelete='CASCADE'
        )


def downgrade() -> None:
    with op.batch_alter_table('question_topics') as batch:
        batch.drop_constraint('fk_question_topics_topic_id', type_='foreignkey')
    with op.batch_alter_table('questions') as batch:
        batch.drop_constraint('fk_questions_subject_id', type_='foreignkey')
        batch.drop_constraint('fk_questions_branch_id', type_='foreignkey')

    op.drop_table('topics')
    op.drop_table('subjects')
    op.drop_table('branches')
