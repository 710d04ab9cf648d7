"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2025-01-15 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum('alumno', 'supervisor', name='user_role')
review_status = sa.Enum('pending', 'approved', 'rejected', name='review_status')
question_source = sa.Enum('catalog', 'student', name='question_source')
test_mode = sa.Enum('learning', 'exam', 'errors', name='test_mode')
claim_status = sa.Enum('PENDING', 'APPROVED', 'REJECTED', name='claim_status')


def upgrade() -> None:
    conn = op.get_bind()
    existing_tables = sa.inspect(conn).get_table_names()
    if 'users' in existing_tables:
        # Tables were created by the application fallback
        return

    op.create_table('users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('diagrams',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=False),
        sa.Column('path', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('title')
    )

    op.create_table('questions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('prompt', sa.Text(), nullable=False),
        sa.Column('hint', sa.Text(), nullable=False),
        sa.Column('correct_option_index', sa.Integer(), nullable=False),
        sa.Column('status', review_status, nullable=False),
        sa.Column('source', question_source, nullable=False),
        sa.Column('diagram_id', sa.String(length=36), nullable=False),
        sa.Column('creator_id', sa.String(length=36), nullable=True),
        sa.Column('reviewed_by_id', sa.String(length=36), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('review_comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['diagram_id'], ['diagrams.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['creator_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_questions_status', 'questions', ['status'], unique=False)
    op.create_index('ix_questions_diagram_id', 'questions', ['diagram_id'], unique=False)
    op.create_index('ix_questions_creator_id', 'questions', ['creator_id'], unique=False)

    op.create_table('options',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_options_question_id', 'options', ['question_id'], unique=False)

    op.create_table('test_sessions',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('diagram_id', sa.String(length=36), nullable=False),
        sa.Column('mode', test_mode, nullable=False),
        sa.Column('total_questions', sa.Integer(), nullable=False),
        sa.Column('correct_count', sa.Integer(), nullable=False),
        sa.Column('incorrect_count', sa.Integer(), nullable=False),
        sa.Column('duration_seconds', sa.Integer(), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['diagram_id'], ['diagrams.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_test_sessions_user_id', 'test_sessions', ['user_id'], unique=False)
    op.create_index('ix_test_sessions_diagram_id', 'test_sessions', ['diagram_id'], unique=False)
    op.create_index('ix_test_sessions_created_at', 'test_sessions', ['created_at'], unique=False)

    op.create_table('test_results',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=True),
        sa.Column('order_index', sa.Integer(), nullable=False),
        sa.Column('prompt_snapshot', sa.Text(), nullable=False),
        sa.Column('options_snapshot', sa.JSON(), nullable=False),
        sa.Column('correct_index_at_test', sa.Integer(), nullable=False),
        sa.Column('selected_index', sa.Integer(), nullable=True),
        sa.Column('used_hint', sa.Boolean(), nullable=False),
        sa.Column('revealed_answer', sa.Boolean(), nullable=False),
        sa.Column('attempts_count', sa.Integer(), nullable=False),
        sa.Column('time_spent_seconds', sa.Integer(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['session_id'], ['test_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_test_results_session_id', 'test_results', ['session_id'], unique=False)
    op.create_index('ix_test_results_question_id', 'test_results', ['question_id'], unique=False)

    op.create_table('test_events',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('result_id', sa.String(length=36), nullable=True),
        sa.Column('type', sa.String(length=80), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['test_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['result_id'], ['test_results.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_test_events_session_id', 'test_events', ['session_id'], unique=False)

    op.create_table('claims',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('status', claim_status, nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=True),
        sa.Column('test_result_id', sa.String(length=36), nullable=True),
        sa.Column('diagram_id', sa.String(length=36), nullable=True),
        sa.Column('student_id', sa.String(length=36), nullable=False),
        sa.Column('prompt_snapshot', sa.Text(), nullable=False),
        sa.Column('options_snapshot', sa.JSON(), nullable=False),
        sa.Column('chosen_index', sa.Integer(), nullable=False),
        sa.Column('correct_index_at_submission', sa.Integer(), nullable=False),
        sa.Column('explanation', sa.Text(), nullable=False),
        sa.Column('reviewer_id', sa.String(length=36), nullable=True),
        sa.Column('reviewer_comment', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['test_result_id'], ['test_results.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['diagram_id'], ['diagrams.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['student_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewer_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_claims_status', 'claims', ['status'], unique=False)
    op.create_index('ix_claims_question_id', 'claims', ['question_id'], unique=False)
    op.create_index('ix_claims_test_result_id', 'claims', ['test_result_id'], unique=False)
    op.create_index('ix_claims_student_id', 'claims', ['student_id'], unique=False)

    op.create_table('refresh_tokens',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('token', sa.String(length=500), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked', sa.Boolean(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token')
    )
    op.create_index('ix_refresh_tokens_user_id', 'refresh_tokens', ['user_id'], unique=False)

    op.create_table('weekly_goals',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('week_end', sa.Date(), nullable=False),
        sa.Column('target_tests', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('week_start', 'week_end', name='uq_weekly_goals_week')
    )
    op.create_index('ix_weekly_goals_week_start', 'weekly_goals', ['week_start'], unique=False)

    op.create_table('ratings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('question_id', sa.String(length=36), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_ratings_user_id', 'ratings', ['user_id'], unique=False)
    op.create_index('ix_ratings_question_id', 'ratings', ['question_id'], unique=False)


def downgrade() -> None:
    for table in (
        'ratings', 'weekly_goals', 'refresh_tokens', 'claims', 'test_events',
        'test_results', 'test_sessions', 'options', 'questions', 'diagrams', 'users',
    ):
        op.drop_table(table)
