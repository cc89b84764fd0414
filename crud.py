import uuid
from collections.abc import Iterable
from typing import Optional

import structlog
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

import errors
import models
import schemas
from education import EXPERIENCE_BAND_YEARS, ExperienceBand
from filters import CandidateFilter, SearchFilter, SortBy
from scoring import ScoredCandidate, rank_scored_candidates

logger = structlog.get_logger(__name__)


# --- Recruiter CRUD ---
def get_recruiter_by_id(db: Session, recruiter_id: int):
    """Get a recruiter by their primary key ID."""
    return db.query(models.Recruiter).filter(models.Recruiter.id == recruiter_id).first()


def get_recruiter_by_email(db: Session, email: str):
    return db.query(models.Recruiter).filter(models.Recruiter.email == email).first()


def create_recruiter(
    db: Session,
    email: str,
    cognito_sub: Optional[str] = None,
    role: models.RecruiterRole = models.RecruiterRole.RECRUITER,
    has_enterprise_plan: bool = False,
):
    db_recruiter = models.Recruiter(
        email=email,
        cognito_sub=cognito_sub or f"local-{uuid.uuid4()}",
        role=role,
        has_enterprise_plan=has_enterprise_plan,
    )
    db.add(db_recruiter)
    db.flush()  # Assign ID without committing
    db.refresh(db_recruiter)
    return db_recruiter


# --- Job posting CRUD ---
def create_job(db: Session, job: schemas.JobCreate, recruiter_id: int):
    db_job = models.JobPosting(
        recruiter_id=recruiter_id,
        title=job.title,
        description=job.description,
        location=job.location,
        remote_allowed=job.remote_allowed,
    )
    db.add(db_job)
    db.flush()
    return db_job


def get_jobs_for_recruiter(db: Session, recruiter_id: int, status: Optional[models.JobStatus] = None):
    """Retrieves the job postings owned by a recruiter, newest first."""
    query = db.query(models.JobPosting).filter(models.JobPosting.recruiter_id == recruiter_id)
    if status is not None:
        query = query.filter(models.JobPosting.status == status)
    return (
        query
        .order_by(models.JobPosting.created_at.desc(), models.JobPosting.id.desc())
        .all()
    )


def get_job(db: Session, job_id: int, recruiter_id: int):
    """A job posting only if ``recruiter_id`` owns it."""
    return (
        db.query(models.JobPosting)
        .filter(models.JobPosting.id == job_id, models.JobPosting.recruiter_id == recruiter_id)
        .first()
    )


def archive_job(db: Session, job: models.JobPosting, actor_id: int):
    """Mark a posting archived. Its analyses and recommendations are kept."""
    if job.status == models.JobStatus.ARCHIVED:
        return job
    job.status = models.JobStatus.ARCHIVED
    db.add(
        models.AuditLog(
            recruiter_id=actor_id,
            action="recruiter_job_archived",
            entity="JobPosting",
            entity_id=str(job.id),
        )
    )
    db.flush()
    return job


# --- Candidate queries ---
def get_visible_candidate(db: Session, candidate_id: int):
    return (
        db.query(models.CandidateProfile)
        .filter(models.CandidateProfile.id == candidate_id, models.CandidateProfile.is_visible.is_(True))
        .first()
    )


def _location_clause(location: str):
    wanted = location.strip().lower()
    return or_(
        func.lower(models.CandidateProfile.location) == wanted,
        models.CandidateProfile.preferred_location_rows.any(
            func.lower(models.CandidatePreferredLocation.location) == wanted
        ),
    )


def prefilter_candidates(db: Session, candidate_filter: CandidateFilter, limit: int = 200):
    """Coarse AND-of-filters pass bounding the scoring workload.

    Results are a superset guess only; education requirements are enforced
    again by ``scoring.passes_education_requirements``.
    """
    query = db.query(models.CandidateProfile).filter(models.CandidateProfile.is_visible.is_(True))

    if candidate_filter.location:
        query = query.filter(_location_clause(candidate_filter.location))
    if candidate_filter.min_years is not None:
        query = query.filter(models.CandidateProfile.years_experience >= candidate_filter.min_years)
    if candidate_filter.max_years is not None:
        query = query.filter(models.CandidateProfile.years_experience <= candidate_filter.max_years)
    if candidate_filter.allowed_degree_levels is not None:
        query = query.filter(
            models.CandidateProfile.highest_degree_level.in_(list(candidate_filter.allowed_degree_levels))
        )
    if candidate_filter.fields_of_study:
        query = query.filter(
            or_(
                *[
                    models.CandidateProfile.normalized_field_of_study.contains(field, autoescape=True)
                    for field in candidate_filter.fields_of_study
                ]
            )
        )

    return query.order_by(models.CandidateProfile.id).limit(limit).all()


def _lower_in(column, values):
    return func.lower(column).in_([value.lower() for value in values])


def _experience_band_clause(band: ExperienceBand):
    lower, upper = EXPERIENCE_BAND_YEARS[band]
    years = models.CandidateProfile.years_experience
    conditions = [years.is_not(None)]
    if lower is not None:
        conditions.append(years > lower)
    if upper is not None:
        conditions.append(years <= upper)
    return and_(*conditions)


def _search_query(db: Session, search: SearchFilter, query_tokens: list[str]):
    """Visible candidates matching every supplied dimension. Never matches on the real display name."""
    query = db.query(models.CandidateProfile).filter(models.CandidateProfile.is_visible.is_(True))

    if search.locations:
        query = query.filter(
            or_(
                _lower_in(models.CandidateProfile.location, search.locations),
                models.CandidateProfile.preferred_location_rows.any(
                    _lower_in(models.CandidatePreferredLocation.location, search.locations)
                ),
            )
        )
    if search.availability:
        query = query.filter(models.CandidateProfile.availability_status.in_(search.availability))
    if search.min_exp is not None:
        query = query.filter(models.CandidateProfile.years_experience >= search.min_exp)
    if search.max_exp is not None:
        query = query.filter(models.CandidateProfile.years_experience <= search.max_exp)
    if search.min_salary is not None:
        query = query.filter(models.CandidateProfile.desired_salary_min >= search.min_salary)
    if search.max_salary is not None:
        query = query.filter(models.CandidateProfile.desired_salary_max <= search.max_salary)
    if search.industries:
        query = query.filter(
            models.CandidateProfile.preferred_industry_rows.any(
                _lower_in(models.CandidatePreferredIndustry.industry, search.industries)
            )
        )
    if search.skills:
        query = query.filter(
            models.CandidateProfile.skill_rows.any(
                models.CandidateSkill.name_lower.in_([skill.lower() for skill in search.skills])
            )
        )
    if search.degree_levels:
        query = query.filter(models.CandidateProfile.highest_degree_level.in_(list(search.degree_levels)))
    if search.fields_of_study:
        query = query.filter(
            or_(
                *[
                    models.CandidateProfile.normalized_field_of_study.contains(field, autoescape=True)
                    for field in search.fields_of_study
                ]
            )
        )
    if search.graduation_year_min is not None:
        query = query.filter(models.CandidateProfile.graduation_year >= search.graduation_year_min)
    if search.graduation_year_max is not None:
        query = query.filter(models.CandidateProfile.graduation_year <= search.graduation_year_max)
    if search.experience_bands:
        query = query.filter(or_(*[_experience_band_clause(band) for band in search.experience_bands]))
    if query_tokens:
        text = search.query.lower()
        query = query.filter(
            or_(
                func.lower(models.CandidateProfile.current_title).contains(text, autoescape=True),
                func.lower(models.CandidateProfile.summary).contains(text, autoescape=True),
                models.CandidateProfile.skill_rows.any(models.CandidateSkill.name_lower.in_(query_tokens)),
            )
        )
    return query


_SEARCH_ORDER = {
    SortBy.RELEVANCE: (models.CandidateProfile.updated_at.desc(), models.CandidateProfile.id.desc()),
    SortBy.EXPERIENCE: (
        models.CandidateProfile.years_experience.desc().nulls_last(),
        models.CandidateProfile.id.desc(),
    ),
    SortBy.RECENT: (models.CandidateProfile.created_at.desc(), models.CandidateProfile.id.desc()),
}


def search_candidates(db: Session, search: SearchFilter, query_tokens: list[str]):
    """One page of the live search, ordered by ``search.sort_by``."""
    return (
        _search_query(db, search, query_tokens)
        .order_by(*_SEARCH_ORDER[search.sort_by])
        .offset(search.offset)
        .limit(search.limit)
        .all()
    )


def count_candidates(db: Session, search: SearchFilter, query_tokens: list[str]) -> int:
    return _search_query(db, search, query_tokens).count()


# --- Recommendations ---
def persist_analysis(
    db: Session,
    job_id: int,
    requirements: schemas.AnalysisRequirements,
    scored: Iterable[ScoredCandidate],
    limit: int = 50,
    actor_id: Optional[int] = None,
):
    """Store a new analysis and replace the job's recommendation set.

    One transaction: create the analysis, delete every recommendation tied to
    the job, insert the ranked set, move the job's active analysis pointer.
    On any failure the transaction is rolled back and the previous set stays.
    Returns ``(analysis, recommendation_count)``.
    """
    ranked = rank_scored_candidates(scored, limit)

    try:
        # Serialises concurrent analyses of the same job where the backend supports row locks
        job = (
            db.query(models.JobPosting)
            .filter(models.JobPosting.id == job_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if job is None:
            raise errors.NotFound("Job not found")

        analysis = models.JobAnalysis(
            job_id=job.id,
            must_have_skills=list(requirements.must_have_skills),
            nice_to_have_skills=list(requirements.nice_to_have_skills),
            role_keywords=list(requirements.role_keywords),
            languages=list(requirements.languages),
            responsibilities=list(requirements.responsibilities),
            red_flags=list(requirements.red_flags),
            summary=requirements.summary,
            years_exp_min=requirements.years_exp_min,
            years_exp_max=requirements.years_exp_max,
            required_degree_level=requirements.required_degree_level,
            preferred_degree_levels=[level.value for level in requirements.preferred_degree_levels],
            required_fields_of_study=list(requirements.required_fields_of_study),
            preferred_fields_of_study=list(requirements.preferred_fields_of_study),
            weights=dict(requirements.weights),
            model_info=dict(requirements.model_info),
        )
        db.add(analysis)
        db.flush()

        deleted = (
            db.query(models.Recommendation)
            .filter(models.Recommendation.job_id == job.id)
            .delete(synchronize_session="fetch")
        )

        db.add_all(
            [
                models.Recommendation(
                    job_id=job.id,
                    analysis_id=analysis.id,
                    candidate_id=entry.candidate_id,
                    rank=position,
                    match_score=entry.result.score,
                    reasons=list(entry.result.reasons),
                    gaps=list(entry.result.gaps),
                    is_priority=entry.result.is_priority,
                )
                for position, entry in enumerate(ranked, start=1)
            ]
        )
        job.active_analysis_id = analysis.id

        db.add(
            models.AuditLog(
                recruiter_id=actor_id,
                action="recruiter_job_analysis",
                entity="JobPosting",
                entity_id=str(job.id),
                details={"analysis_id": analysis.id, "recommendations": len(ranked)},
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.error("Failed to persist job analysis; previous recommendations kept", job_id=job_id, exc_info=True)
        raise

    db.refresh(analysis)
    logger.info(
        "Persisted job analysis",
        job_id=job_id,
        analysis_id=analysis.id,
        recommendations=len(ranked),
        replaced=deleted,
    )
    return analysis, len(ranked)


def list_recommendations(db: Session, job: models.JobPosting):
    """Recommendations of the job's active analysis, visible candidates only, by rank."""
    if job.active_analysis_id is None:
        return []
    return (
        db.query(models.Recommendation)
        .join(models.CandidateProfile, models.Recommendation.candidate_id == models.CandidateProfile.id)
        .filter(
            models.Recommendation.job_id == job.id,
            models.Recommendation.analysis_id == job.active_analysis_id,
            models.CandidateProfile.is_visible.is_(True),
        )
        .order_by(models.Recommendation.rank)
        .all()
    )


# --- Unlock lookups ---
def get_unlock(db: Session, recruiter_id: int, candidate_id: int):
    return db.get(models.CvUnlock, (recruiter_id, candidate_id))


def unlocked_candidate_ids(db: Session, recruiter_id: int, candidate_ids: Iterable[int]) -> set[int]:
    ids = list(candidate_ids)
    if not ids:
        return set()
    rows = (
        db.query(models.CvUnlock.candidate_id)
        .filter(models.CvUnlock.recruiter_id == recruiter_id, models.CvUnlock.candidate_id.in_(ids))
        .all()
    )
    return {row[0] for row in rows}


# --- Shortlists ---
def create_shortlist(db: Session, recruiter_id: int, shortlist: schemas.ShortlistCreate):
    db_shortlist = models.Shortlist(
        recruiter_id=recruiter_id,
        name=shortlist.name.strip(),
        description=shortlist.description,
    )
    db.add(db_shortlist)
    db.flush()
    return db_shortlist


def get_shortlists_for_recruiter(db: Session, recruiter_id: int):
    """Most recently changed first."""
    return (
        db.query(models.Shortlist)
        .filter(models.Shortlist.recruiter_id == recruiter_id)
        .order_by(models.Shortlist.updated_at.desc(), models.Shortlist.id.desc())
        .all()
    )


def get_shortlist(db: Session, shortlist_id: int, recruiter_id: int):
    """A shortlist only if ``recruiter_id`` owns it."""
    return (
        db.query(models.Shortlist)
        .filter(models.Shortlist.id == shortlist_id, models.Shortlist.recruiter_id == recruiter_id)
        .first()
    )


def get_shortlist_entry(db: Session, shortlist_id: int, candidate_id: int):
    return (
        db.query(models.ShortlistEntry)
        .filter(
            models.ShortlistEntry.shortlist_id == shortlist_id,
            models.ShortlistEntry.candidate_id == candidate_id,
        )
        .first()
    )


def add_shortlist_entry(db: Session, shortlist: models.Shortlist, candidate_id: int, note: Optional[str] = None):
    """Add a candidate once; adding again only replaces the note when one is given."""
    entry = get_shortlist_entry(db, shortlist.id, candidate_id)
    if entry is None:
        entry = models.ShortlistEntry(shortlist_id=shortlist.id, candidate_id=candidate_id, note=note)
        db.add(entry)
    elif note is not None:
        entry.note = note
    shortlist.updated_at = func.now()
    db.flush()
    return entry


def remove_shortlist_entry(db: Session, shortlist: models.Shortlist, candidate_id: int) -> bool:
    removed = (
        db.query(models.ShortlistEntry)
        .filter(
            models.ShortlistEntry.shortlist_id == shortlist.id,
            models.ShortlistEntry.candidate_id == candidate_id,
        )
        .delete(synchronize_session="fetch")
    )
    if removed:
        shortlist.updated_at = func.now()
    db.flush()
    return removed > 0


def visible_shortlist_entries(db: Session, shortlist_ids: Iterable[int]):
    """Entries of the given shortlists whose candidate is still visible, newest first."""
    ids = list(shortlist_ids)
    if not ids:
        return []
    return (
        db.query(models.ShortlistEntry)
        .join(models.CandidateProfile, models.ShortlistEntry.candidate_id == models.CandidateProfile.id)
        .filter(
            models.ShortlistEntry.shortlist_id.in_(ids),
            models.CandidateProfile.is_visible.is_(True),
        )
        .order_by(models.ShortlistEntry.id.desc())
        .all()
    )


# --- Saved searches ---
def create_saved_search(db: Session, recruiter_id: int, name: str, search: SearchFilter):
    saved = models.SavedSearch(
        recruiter_id=recruiter_id,
        name=name.strip(),
        filters=search.model_dump(mode="json", exclude_defaults=True),
    )
    db.add(saved)
    db.flush()
    return saved


def get_saved_searches_for_recruiter(db: Session, recruiter_id: int):
    return (
        db.query(models.SavedSearch)
        .filter(models.SavedSearch.recruiter_id == recruiter_id)
        .order_by(models.SavedSearch.updated_at.desc(), models.SavedSearch.id.desc())
        .all()
    )


def get_saved_search(db: Session, saved_search_id: int, recruiter_id: int):
    return (
        db.query(models.SavedSearch)
        .filter(models.SavedSearch.id == saved_search_id, models.SavedSearch.recruiter_id == recruiter_id)
        .first()
    )
