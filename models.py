import enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship, validates

from database import Base
from education import DegreeLevel, normalize_field_of_study


class RecruiterRole(str, enum.Enum):
    RECRUITER = "RECRUITER"
    SUPER_ADMIN = "SUPER_ADMIN"


class JobStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"


class LedgerEntryType(str, enum.Enum):
    GRANT = "GRANT"
    PURCHASE = "PURCHASE"
    SPEND_UNLOCK = "SPEND_UNLOCK"


degree_level_type = Enum(DegreeLevel, name="degree_level")


class Recruiter(Base):
    __tablename__ = "recruiters"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String, unique=True, index=True, nullable=False)
    cognito_sub = Column(String, unique=True, index=True, nullable=False)
    role = Column(Enum(RecruiterRole, name="recruiter_role"), nullable=False, default=RecruiterRole.RECRUITER)
    has_enterprise_plan = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    jobs = relationship("JobPosting", back_populates="owner")
    shortlists = relationship("Shortlist", back_populates="owner")


class JobPosting(Base):
    __tablename__ = "job_postings"

    id = Column(Integer, primary_key=True, index=True)
    recruiter_id = Column(Integer, ForeignKey("recruiters.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String, nullable=True)
    remote_allowed = Column(Boolean, nullable=False, default=False)
    status = Column(Enum(JobStatus, name="job_status"), nullable=False, default=JobStatus.ACTIVE, index=True)
    # Latest analysis; recommendations of any other analysis are never served
    active_analysis_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("Recruiter", back_populates="jobs")
    analyses = relationship("JobAnalysis", back_populates="job", order_by="JobAnalysis.id")


class JobAnalysis(Base):
    __tablename__ = "job_analyses"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("job_postings.id"), nullable=False, index=True)
    must_have_skills = Column(JSON, nullable=False, default=list)
    nice_to_have_skills = Column(JSON, nullable=False, default=list)
    role_keywords = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    responsibilities = Column(JSON, nullable=False, default=list)
    red_flags = Column(JSON, nullable=False, default=list)
    summary = Column(Text, nullable=True)
    years_exp_min = Column(Float, nullable=True)
    years_exp_max = Column(Float, nullable=True)
    required_degree_level = Column(degree_level_type, nullable=True)
    preferred_degree_levels = Column(JSON, nullable=False, default=list)
    required_fields_of_study = Column(JSON, nullable=False, default=list)
    preferred_fields_of_study = Column(JSON, nullable=False, default=list)
    weights = Column(JSON, nullable=False, default=dict)
    model_info = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    job = relationship("JobPosting", back_populates="analyses")
    recommendations = relationship("Recommendation", back_populates="analysis", order_by="Recommendation.rank")


class CandidateSkill(Base):
    __tablename__ = "candidate_skills"
    __table_args__ = (UniqueConstraint("candidate_id", "name_lower"),)

    id = Column(Integer, primary_key=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    name_lower = Column(String, nullable=False, index=True)

    def __init__(self, name: str, **kwargs):
        super().__init__(name=name, name_lower=name.strip().lower(), **kwargs)


class CandidatePreferredLocation(Base):
    __tablename__ = "candidate_preferred_locations"
    __table_args__ = (UniqueConstraint("candidate_id", "location"),)

    id = Column(Integer, primary_key=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    location = Column(String, nullable=False, index=True)


class CandidatePreferredIndustry(Base):
    __tablename__ = "candidate_preferred_industries"
    __table_args__ = (UniqueConstraint("candidate_id", "industry"),)

    id = Column(Integer, primary_key=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    industry = Column(String, nullable=False, index=True)


class CandidateProfile(Base):
    """Talent pool entry. Written by the profile service, read-only here."""

    __tablename__ = "candidate_profiles"

    id = Column(Integer, primary_key=True, index=True)
    display_name = Column(String, nullable=False)
    current_title = Column(String, nullable=True)
    current_company = Column(String, nullable=True)
    location = Column(String, nullable=True, index=True)
    summary = Column(Text, nullable=True)
    desired_roles = Column(JSON, nullable=False, default=list)
    availability_status = Column(String, nullable=True)
    years_experience = Column(Float, nullable=True, index=True)
    highest_degree_level = Column(degree_level_type, nullable=True, index=True)
    primary_field_of_study = Column(String, nullable=True)
    normalized_field_of_study = Column(String, nullable=True, index=True)
    graduation_year = Column(Integer, nullable=True, index=True)
    desired_salary_min = Column(Integer, nullable=True)
    desired_salary_max = Column(Integer, nullable=True)
    is_visible = Column(Boolean, nullable=False, default=True, index=True)
    hide_current_employer = Column(Boolean, nullable=False, default=False)
    hide_salary_history = Column(Boolean, nullable=False, default=False)
    contact_email = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    linkedin_url = Column(String, nullable=True)
    website_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    skill_rows = relationship(
        "CandidateSkill", cascade="all, delete-orphan", order_by="CandidateSkill.id", lazy="selectin"
    )
    preferred_location_rows = relationship(
        "CandidatePreferredLocation", cascade="all, delete-orphan", order_by="CandidatePreferredLocation.id", lazy="selectin"
    )
    preferred_industry_rows = relationship(
        "CandidatePreferredIndustry", cascade="all, delete-orphan", order_by="CandidatePreferredIndustry.id", lazy="selectin"
    )

    skills = association_proxy("skill_rows", "name", creator=lambda name: CandidateSkill(name=name))
    preferred_locations = association_proxy(
        "preferred_location_rows", "location", creator=lambda location: CandidatePreferredLocation(location=location)
    )
    preferred_industries = association_proxy(
        "preferred_industry_rows", "industry", creator=lambda industry: CandidatePreferredIndustry(industry=industry)
    )

    @validates("primary_field_of_study")
    def _sync_normalized_field(self, key, value):
        self.normalized_field_of_study = normalize_field_of_study(value)
        return value


class Recommendation(Base):
    __tablename__ = "recommendations"
    __table_args__ = (
        UniqueConstraint("analysis_id", "rank"),
        UniqueConstraint("analysis_id", "candidate_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(Integer, ForeignKey("job_postings.id"), nullable=False, index=True)
    analysis_id = Column(Integer, ForeignKey("job_analyses.id"), nullable=False, index=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id"), nullable=False, index=True)
    rank = Column(Integer, nullable=False)
    match_score = Column(Integer, nullable=False)
    reasons = Column(JSON, nullable=False, default=list)
    gaps = Column(JSON, nullable=False, default=list)
    is_priority = Column(Boolean, nullable=False, default=False)

    analysis = relationship("JobAnalysis", back_populates="recommendations")
    candidate = relationship("CandidateProfile")


class CvUnlock(Base):
    """Existence of a row is the only authority for full disclosure."""

    __tablename__ = "cv_unlocks"

    recruiter_id = Column(Integer, ForeignKey("recruiters.id"), primary_key=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id"), primary_key=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CreditLedgerEntry(Base):
    """Append-only. A recruiter's balance is the sum of ``amount``."""

    __tablename__ = "credit_ledger"

    id = Column(Integer, primary_key=True, index=True)
    recruiter_id = Column(Integer, ForeignKey("recruiters.id"), nullable=False, index=True)
    entry_type = Column(Enum(LedgerEntryType, name="ledger_entry_type"), nullable=False)
    amount = Column(Integer, nullable=False)
    reference = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    recruiter_id = Column(Integer, ForeignKey("recruiters.id"), nullable=True, index=True)
    action = Column(String, nullable=False)
    entity = Column(String, nullable=False)
    entity_id = Column(String, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Shortlist(Base):
    """A recruiter's named list of candidates."""

    __tablename__ = "shortlists"

    id = Column(Integer, primary_key=True, index=True)
    recruiter_id = Column(Integer, ForeignKey("recruiters.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("Recruiter", back_populates="shortlists")
    entries = relationship(
        "ShortlistEntry",
        back_populates="shortlist",
        cascade="all, delete-orphan",
        order_by="ShortlistEntry.id.desc()",
    )


class ShortlistEntry(Base):
    __tablename__ = "shortlist_entries"
    __table_args__ = (UniqueConstraint("shortlist_id", "candidate_id"),)

    id = Column(Integer, primary_key=True, index=True)
    shortlist_id = Column(Integer, ForeignKey("shortlists.id", ondelete="CASCADE"), nullable=False, index=True)
    candidate_id = Column(Integer, ForeignKey("candidate_profiles.id"), nullable=False, index=True)
    note = Column(String, nullable=True)
    added_at = Column(DateTime(timezone=True), server_default=func.now())

    shortlist = relationship("Shortlist", back_populates="entries")
    candidate = relationship("CandidateProfile")


class SavedSearch(Base):
    """Advanced search parameters stored under a name for re-running."""

    __tablename__ = "saved_searches"

    id = Column(Integer, primary_key=True, index=True)
    recruiter_id = Column(Integer, ForeignKey("recruiters.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    filters = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
