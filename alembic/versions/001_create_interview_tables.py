"""Create interview tables

Revision ID: 001_create_interview_tables
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_create_interview_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create interviewer, role, question, interview, candidate, link and answer tables."""
    op.create_table(
        'interviewers',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_interviewers_email', 'interviewers', ['email'], unique=True)

    op.create_table(
        'roles',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('interviewer_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=150), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['interviewer_id'], ['interviewers.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_roles_interviewer_created', 'roles', ['interviewer_id', 'created_at'])

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('question_order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
    )
    op.create_index('idx_questions_role_order', 'questions', ['role_id', 'question_order'])

    op.create_table(
        'interviews',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('role_id'),
    )

    op.create_table(
        'candidates',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('role_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('submitted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['role_id'], ['roles.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('role_id', 'email', name='uq_candidates_role_email'),
    )

    op.create_table(
        'interview_links',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('candidate_email', sa.String(length=255), nullable=False),
        sa.Column('interview_id', sa.Integer(), nullable=False),
        sa.Column('unique_token', sa.String(length=128), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('stitched_video_url', sa.Text(), nullable=True),
        sa.Column('stitched_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processing_status', sa.String(length=20), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['interview_id'], ['interviews.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('unique_token'),
    )
    op.create_index('idx_interview_links_interview', 'interview_links', ['interview_id', 'created_at'])

    op.create_table(
        'video_answers',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('interview_link_token', sa.String(length=128), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=False),
        sa.Column('candidate_email', sa.String(length=255), nullable=False),
        sa.Column('video_url', sa.Text(), nullable=False),
        sa.Column('recording_duration', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['interview_link_token'], ['interview_links.unique_token'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['question_id'], ['questions.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('interview_link_token', 'question_id', name='uq_video_answers_token_question'),
    )
    op.create_index('idx_video_answers_token', 'video_answers', ['interview_link_token'])


def downgrade() -> None:
    """Drop interview tables."""
    op.drop_index('idx_video_answers_token', table_name='video_answers')
    op.drop_table('video_answers')
    op.drop_index('idx_interview_links_interview', table_name='interview_links')
    op.drop_table('interview_links')
    op.drop_table('candidates')
    op.drop_table('interviews')
    op.drop_index('idx_questions_role_order', table_name='questions')
    op.drop_table('questions')
    op.drop_index('idx_roles_interviewer_created', table_name='roles')
    op.drop_table('roles')
    op.drop_index('ix_interviewers_email', table_name='interviewers')
    op.drop_table('interviewers')
