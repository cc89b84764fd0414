from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from education import DegreeLevel, ExperienceBand
from filters import SearchFilter
from models import JobStatus, LedgerEntryType, RecruiterRole

# Scalars the analyzer may send in any shape; normalize_analysis decides what is usable
LooseScalar = Union[float, str, None]


# --- Text analysis collaborator contract ---
class AnalyzerWeights(BaseModel):
    skillWeight: LooseScalar = None
    experienceWeight: LooseScalar = None
    keywordWeight: LooseScalar = None
    educationWeight: LooseScalar = None
    locationWeight: LooseScalar = None


class ExtractedJobRequirements(BaseModel):
    """Structured output requested from the job description analyzer.

    Only the shape is checked here. Bounds, degree levels and weights stay
    loose so one malformed dimension reaches the normalizer, which drops that
    dimension and keeps the rest of the analysis.
    """

    mustHaveSkills: list[LooseScalar] = []
    niceToHaveSkills: list[LooseScalar] = []
    roleKeywords: list[LooseScalar] = []
    yearsExpMin: LooseScalar = None
    yearsExpMax: LooseScalar = None
    languages: list[LooseScalar] = []
    responsibilities: list[LooseScalar] = []
    redFlags: list[LooseScalar] = []
    summary: LooseScalar = None
    requiredDegreeLevel: LooseScalar = None
    preferredDegreeLevels: list[LooseScalar] = []
    requiredFieldsOfStudy: list[LooseScalar] = []
    preferredFieldsOfStudy: list[LooseScalar] = []
    weights: Union[AnalyzerWeights, LooseScalar] = None


# --- Normalized requirements ---
class AnalysisRequirements(BaseModel):
    model_config = ConfigDict(frozen=True)

    must_have_skills: tuple[str, ...] = ()
    nice_to_have_skills: tuple[str, ...] = ()
    role_keywords: tuple[str, ...] = ()
    languages: tuple[str, ...] = ()
    responsibilities: tuple[str, ...] = ()
    red_flags: tuple[str, ...] = ()
    summary: Optional[str] = None
    years_exp_min: Optional[float] = None
    years_exp_max: Optional[float] = None
    required_degree_level: Optional[DegreeLevel] = None
    preferred_degree_levels: tuple[DegreeLevel, ...] = ()
    required_fields_of_study: tuple[str, ...] = ()
    preferred_fields_of_study: tuple[str, ...] = ()
    weights: dict[str, float] = {}
    model_info: dict[str, Any] = {}
    # Dimensions the analyzer supplied but that could not be parsed
    invalid_dimensions: tuple[str, ...] = ()


# --- Recruiters & jobs ---
class Recruiter(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: RecruiterRole
    has_enterprise_plan: bool


class JobCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    location: Optional[str] = None
    remote_allowed: bool = False


class Job(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    location: Optional[str] = None
    remote_allowed: bool
    status: JobStatus = JobStatus.ACTIVE
    active_analysis_id: Optional[int] = None
    created_at: Optional[datetime] = None


class AnalyzeResponse(BaseModel):
    analysis_id: int
    recommendations: int


# --- Candidate views ---
class SalaryRange(BaseModel):
    min: Optional[int] = None
    max: Optional[int] = None


class ContactDetails(BaseModel):
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None


class CandidateCard(BaseModel):
    id: int
    display_name: str
    current_title: Optional[str] = None
    current_company: Optional[str] = None
    location: Optional[str] = None
    years_experience: Optional[float] = None
    skills: list[str] = []
    summary: Optional[str] = None
    availability_status: Optional[str] = None
    highest_degree_level: Optional[DegreeLevel] = None
    primary_field_of_study: Optional[str] = None
    graduation_year: Optional[int] = None
    experience_band: Optional[ExperienceBand] = None
    desired_salary: SalaryRange = SalaryRange()
    is_unlocked: bool = False


class CandidateDetail(CandidateCard):
    normalized_field_of_study: Optional[str] = None
    preferred_locations: list[str] = []
    preferred_industries: list[str] = []
    desired_roles: list[str] = []
    contact: Optional[ContactDetails] = None


class CandidateSearchResult(CandidateCard):
    match_score: int


class CandidateSearchResponse(BaseModel):
    results: list[CandidateSearchResult]


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CandidateSearchPage(BaseModel):
    results: list[CandidateSearchResult]
    pagination: Pagination


class CandidateDetailResponse(BaseModel):
    unlocked: bool
    candidate: CandidateDetail


class RecommendationOut(BaseModel):
    id: int
    rank: int
    match_score: int
    reasons: list[str]
    gaps: list[str]
    is_priority: bool
    unlocked: bool
    candidate: CandidateCard


class RecommendationsResponse(BaseModel):
    analysis_id: Optional[int] = None
    recommendations: list[RecommendationOut]


# --- Unlock & credits ---
class UnlockResponse(BaseModel):
    unlocked: bool = True
    already_unlocked: bool
    balance: int
    candidate: CandidateDetail


class LedgerEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    entry_type: LedgerEntryType
    amount: int
    reference: Optional[str] = None
    created_at: Optional[datetime] = None


class CreditsResponse(BaseModel):
    balance: int
    ledger: list[LedgerEntry]


# --- Shortlists ---
class ShortlistCreate(BaseModel):
    name: str = Field(min_length=2, max_length=80)
    description: Optional[str] = Field(default=None, max_length=240)


class ShortlistEntryCreate(BaseModel):
    candidate_id: int
    note: Optional[str] = Field(default=None, max_length=240)


class ShortlistEntryOut(BaseModel):
    candidate_id: int
    note: Optional[str] = None
    added_at: Optional[datetime] = None
    unlocked: bool
    candidate: CandidateCard


class ShortlistOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    entries: list[ShortlistEntryOut] = []


class ShortlistsResponse(BaseModel):
    shortlists: list[ShortlistOut]


class ShortlistRemoval(BaseModel):
    removed: bool


# --- Saved searches ---
class SavedSearchCreate(BaseModel):
    name: str = Field(min_length=2, max_length=80)
    filters: SearchFilter = SearchFilter()


class SavedSearchOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    filters: dict[str, Any]
    created_at: Optional[datetime] = None
