"""initial matching schema

Revision ID: 3c1f9a7d2b40
Revises:
Create Date: 2025-06-02 10:14:08.412377

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3c1f9a7d2b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

degree_level = sa.Enum('DIPLOMA', 'BACHELOR', 'MASTER', 'PHD', name='degree_level')


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'recruiters',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('cognito_sub', sa.String(), nullable=False),
        sa.Column('role', sa.Enum('RECRUITER', 'SUPER_ADMIN', name='recruiter_role'), nullable=False),
        sa.Column('has_enterprise_plan', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_recruiters_id'), 'recruiters', ['id'], unique=False)
    op.create_index(op.f('ix_recruiters_email'), 'recruiters', ['email'], unique=True)
    op.create_index(op.f('ix_recruiters_cognito_sub'), 'recruiters', ['cognito_sub'], unique=True)

    op.create_table(
        'candidate_profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('current_title', sa.String(), nullable=True),
        sa.Column('current_company', sa.String(), nullable=True),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('desired_roles', sa.JSON(), nullable=False),
        sa.Column('availability_status', sa.String(), nullable=True),
        sa.Column('years_experience', sa.Float(), nullable=True),
        sa.Column('highest_degree_level', degree_level, nullable=True),
        sa.Column('primary_field_of_study', sa.String(), nullable=True),
        sa.Column('normalized_field_of_study', sa.String(), nullable=True),
        sa.Column('desired_salary_min', sa.Integer(), nullable=True),
        sa.Column('desired_salary_max', sa.Integer(), nullable=True),
        sa.Column('is_visible', sa.Boolean(), nullable=False),
        sa.Column('hide_current_employer', sa.Boolean(), nullable=False),
        sa.Column('hide_salary_history', sa.Boolean(), nullable=False),
        sa.Column('contact_email', sa.String(), nullable=True),
        sa.Column('contact_phone', sa.String(), nullable=True),
        sa.Column('linkedin_url', sa.String(), nullable=True),
        sa.Column('website_url', sa.String(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_candidate_profiles_id'), 'candidate_profiles', ['id'], unique=False)
    op.create_index(op.f('ix_candidate_profiles_location'), 'candidate_profiles', ['location'], unique=False)
    op.create_index(op.f('ix_candidate_profiles_years_experience'), 'candidate_profiles', ['years_experience'], unique=False)
    op.create_index(op.f('ix_candidate_profiles_highest_degree_level'), 'candidate_profiles', ['highest_degree_level'], unique=False)
    op.create_index(op.f('ix_candidate_profiles_normalized_field_of_study'), 'candidate_profiles', ['normalized_field_of_study'], unique=False)
    op.create_index(op.f('ix_candidate_profiles_is_visible'), 'candidate_profiles', ['is_visible'], unique=False)

    op.create_table(
        'candidate_skills',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('candidate_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('name_lower', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidate_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('candidate_id', 'name_lower'),
    )
    op.create_index(op.f('ix_candidate_skills_candidate_id'), 'candidate_skills', ['candidate_id'], unique=False)
    op.create_index(op.f('ix_candidate_skills_name_lower'), 'candidate_skills', ['name_lower'], unique=False)

    op.create_table(
        'candidate_preferred_locations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('candidate_id', sa.Integer(), nullable=False),
        sa.Column('location', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidate_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('candidate_id', 'location'),
    )
    op.create_index(op.f('ix_candidate_preferred_locations_candidate_id'), 'candidate_preferred_locations', ['candidate_id'], unique=False)
    op.create_index(op.f('ix_candidate_preferred_locations_location'), 'candidate_preferred_locations', ['location'], unique=False)

    op.create_table(
        'candidate_preferred_industries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('candidate_id', sa.Integer(), nullable=False),
        sa.Column('industry', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidate_profiles.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('candidate_id', 'industry'),
    )
    op.create_index(op.f('ix_candidate_preferred_industries_candidate_id'), 'candidate_preferred_industries', ['candidate_id'], unique=False)
    op.create_index(op.f('ix_candidate_preferred_industries_industry'), 'candidate_preferred_industries', ['industry'], unique=False)

    op.create_table(
        'job_postings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recruiter_id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('remote_allowed', sa.Boolean(), nullable=False),
        sa.Column('active_analysis_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['recruiter_id'], ['recruiters.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_job_postings_id'), 'job_postings', ['id'], unique=False)
    op.create_index(op.f('ix_job_postings_recruiter_id'), 'job_postings', ['recruiter_id'], unique=False)

    op.create_table(
        'job_analyses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('must_have_skills', sa.JSON(), nullable=False),
        sa.Column('nice_to_have_skills', sa.JSON(), nullable=False),
        sa.Column('role_keywords', sa.JSON(), nullable=False),
        sa.Column('languages', sa.JSON(), nullable=False),
        sa.Column('responsibilities', sa.JSON(), nullable=False),
        sa.Column('red_flags', sa.JSON(), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('years_exp_min', sa.Float(), nullable=True),
        sa.Column('years_exp_max', sa.Float(), nullable=True),
        sa.Column('required_degree_level', degree_level, nullable=True),
        sa.Column('preferred_degree_levels', sa.JSON(), nullable=False),
        sa.Column('required_fields_of_study', sa.JSON(), nullable=False),
        sa.Column('preferred_fields_of_study', sa.JSON(), nullable=False),
        sa.Column('weights', sa.JSON(), nullable=False),
        sa.Column('model_info', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['job_id'], ['job_postings.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_job_analyses_id'), 'job_analyses', ['id'], unique=False)
    op.create_index(op.f('ix_job_analyses_job_id'), 'job_analyses', ['job_id'], unique=False)

    op.create_table(
        'recommendations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('job_id', sa.Integer(), nullable=False),
        sa.Column('analysis_id', sa.Integer(), nullable=False),
        sa.Column('candidate_id', sa.Integer(), nullable=False),
        sa.Column('rank', sa.Integer(), nullable=False),
        sa.Column('match_score', sa.Integer(), nullable=False),
        sa.Column('reasons', sa.JSON(), nullable=False),
        sa.Column('gaps', sa.JSON(), nullable=False),
        sa.Column('is_priority', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['job_id'], ['job_postings.id']),
        sa.ForeignKeyConstraint(['analysis_id'], ['job_analyses.id']),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidate_profiles.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('analysis_id', 'rank'),
        sa.UniqueConstraint('analysis_id', 'candidate_id'),
    )
    op.create_index(op.f('ix_recommendations_id'), 'recommendations', ['id'], unique=False)
    op.create_index(op.f('ix_recommendations_job_id'), 'recommendations', ['job_id'], unique=False)
    op.create_index(op.f('ix_recommendations_analysis_id'), 'recommendations', ['analysis_id'], unique=False)
    op.create_index(op.f('ix_recommendations_candidate_id'), 'recommendations', ['candidate_id'], unique=False)

    op.create_table(
        'cv_unlocks',
        sa.Column('recruiter_id', sa.Integer(), nullable=False),
        sa.Column('candidate_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['recruiter_id'], ['recruiters.id']),
        sa.ForeignKeyConstraint(['candidate_id'], ['candidate_profiles.id']),
        sa.PrimaryKeyConstraint('recruiter_id', 'candidate_id'),
    )

    op.create_table(
        'credit_ledger',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recruiter_id', sa.Integer(), nullable=False),
        sa.Column('entry_type', sa.Enum('GRANT', 'PURCHASE', 'SPEND_UNLOCK', name='ledger_entry_type'), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['recruiter_id'], ['recruiters.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_credit_ledger_id'), 'credit_ledger', ['id'], unique=False)
    op.create_index(op.f('ix_credit_ledger_recruiter_id'), 'credit_ledger', ['recruiter_id'], unique=False)
    op.create_index(op.f('ix_credit_ledger_reference'), 'credit_ledger', ['reference'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('recruiter_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity', sa.String(), nullable=False),
        sa.Column('entity_id', sa.String(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.ForeignKeyConstraint(['recruiter_id'], ['recruiters.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_id'), 'audit_logs', ['id'], unique=False)
    op.create_index(op.f('ix_audit_logs_recruiter_id'), 'audit_logs', ['recruiter_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_logs')
    op.drop_table('credit_ledger')
    op.drop_table('cv_unlocks')
    op.drop_table('recommendations')
    op.drop_table('job_analyses')
    op.drop_table('job_postings')
    op.drop_table('candidate_preferred_industries')
    op.drop_table('candidate_preferred_locations')
    op.drop_table('candidate_skills')
    op.drop_table('candidate_profiles')
    op.drop_table('recruiters')
