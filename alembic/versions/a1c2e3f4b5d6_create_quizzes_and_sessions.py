"""create quizzes and quiz_sessions

Revision ID: a1c2e3f4b5d6
Revises:
Create Date: 2026-10-17 10:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c2e3f4b5d6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table(
        'quizzes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('organization_id', sa.BigInteger(), nullable=False),
        sa.Column('created_by', sa.BigInteger(), nullable=False),
        sa.Column('created_by_name', sa.String(255), nullable=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('grade_level', sa.String(50), nullable=True),
        sa.Column('subjects', sa.JSON(), nullable=True),
        sa.Column('language', sa.String(20), server_default='English', nullable=False),
        sa.Column('questions_json', sa.JSON(), nullable=False),
        sa.Column('is_approved', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_quizzes_id', 'quizzes', ['id'])
    op.create_index('ix_quizzes_organization_id', 'quizzes', ['organization_id'])
    op.create_index('ix_quizzes_created_by', 'quizzes', ['created_by'])

    op.create_table(
        'quiz_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quiz_id', sa.Integer(), sa.ForeignKey('quizzes.id'), nullable=False),
        sa.Column('quiz_title', sa.String(255), nullable=True),
        sa.Column('teacher_id', sa.BigInteger(), nullable=False),
        sa.Column('organization_id', sa.BigInteger(), nullable=False),
        sa.Column('session_code', sa.String(16), nullable=False),
        sa.Column('status', sa.String(20), server_default='scheduled', nullable=False),
        sa.Column('scheduled_start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('actual_start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('duration', sa.Integer(), server_default='30', nullable=False),
        sa.Column('max_participants', sa.Integer(), server_default='100', nullable=False),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('participants', sa.JSON(), nullable=False),
        sa.Column('leaderboard', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_quiz_sessions_id', 'quiz_sessions', ['id'])
    op.create_index('ix_quiz_sessions_quiz_id', 'quiz_sessions', ['quiz_id'])
    op.create_index('ix_quiz_sessions_teacher_id', 'quiz_sessions', ['teacher_id'])
    op.create_index('ix_quiz_sessions_organization_id', 'quiz_sessions', ['organization_id'])
    op.create_index('ix_quiz_sessions_status', 'quiz_sessions', ['status'])
    # Join codes must be unique across all tenants
    op.create_index('ix_quiz_sessions_session_code', 'quiz_sessions', ['session_code'], unique=True)

def downgrade() -> None:
    op.drop_table('quiz_sessions')
    op.drop_table('quizzes')
