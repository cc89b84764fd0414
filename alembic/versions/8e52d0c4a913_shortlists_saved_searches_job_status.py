"""shortlists, saved searches and job status

Revision ID: 8e52d0c4a913
Revises: 3c1f9a7d2b40
Create Date: 2025-06-16 09:41:27.530114

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8e52d0c4a913'
down_revision: Union[str, Sequence[str], None] = '3c1f9a7d2b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


job_status = sa.Enum('ACTIVE', 'ARCHIVED', name='job_status')


def upgrade() -> None:
    """Upgrade schema."""
    # SQLite cannot ADD COLUMN with a CURRENT_TIMESTAMP default, so rebuild the table there
    recreate = 'always' if op.get_bind().dialect.name == 'sqlite' else 'auto'
    job_status.create(op.get_bind(), checkfirst=True)

    with op.batch_alter_table('job_postings') as batch_op:
        batch_op.add_column(
            sa.Column(
                'status',
                job_status,
                server_default='ACTIVE',
                nullable=False,
            )
        )
        batch_op.create_index(batch_op.f('ix_job_postings_status'), ['status'], unique=False)

    with op.batch_alter_table('candidate_profiles', recreate=recreate) as batch_op:
        batch_op.add_column(sa.Column('graduation_year', sa.Integer(), nullable=True))
        batch_op.add_column(
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True)
        )
        batch_op.create_index(batch_op.f('ix_candidate_profiles_graduation_year'), ['graduation_year'], unique=False)

    op.create_table(
        'shortlists',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recruiter_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['recruiter_id'], ['recruiters.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_shortlists_id'), 'shortlists', ['id'], unique=False)
    op.create_index(op.f('ix_shortlists_recruiter_id'), 'shortlists', ['recruiter_id'], unique=False)

    op.create_table(
        'shortlist_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shortlist_id', sa.Integer(), nullable=False),
        sa.Column('candidate_id', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['shortlist_id'], ['shortlists.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidate_profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('shortlist_id', 'candidate_id'),
    )
    op.create_index(op.f('ix_shortlist_entries_id'), 'shortlist_entries', ['id'], unique=False)
    op.create_index(op.f('ix_shortlist_entries_shortlist_id'), 'shortlist_entries', ['shortlist_id'], unique=False)
    op.create_index(op.f('ix_shortlist_entries_candidate_id'), 'shortlist_entries', ['candidate_id'], unique=False)

    op.create_table(
        'saved_searches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recruiter_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('filters', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['recruiter_id'], ['recruiters.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_saved_searches_id'), 'saved_searches', ['id'], unique=False)
    op.create_index(op.f('ix_saved_searches_recruiter_id'), 'saved_searches', ['recruiter_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('saved_searches')
    op.drop_table('shortlist_entries')
    op.drop_table('shortlists')

    with op.batch_alter_table('candidate_profiles') as batch_op:
        batch_op.drop_index(batch_op.f('ix_candidate_profiles_graduation_year'))
        batch_op.drop_column('created_at')
        batch_op.drop_column('graduation_year')

    with op.batch_alter_table('job_postings') as batch_op:
        batch_op.drop_index(batch_op.f('ix_job_postings_status'))
        batch_op.drop_column('status')
    job_status.drop(op.get_bind(), checkfirst=True)
