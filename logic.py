import math
import re
from typing import Any

import openai
import structlog
from aws_embedded_metrics import metric_scope
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

import crud
import errors
import models
import schemas
from credits import SqlCreditLedger, unlock_candidate
from disclosure import DisclosurePolicy, present_candidate_card, present_candidate_detail
from education import DEGREE_PATTERNS, normalize_field_of_study
from filters import SearchFilter, to_matching_error
from llm_interaction import AnalyzerUnavailable, call_llm_for_job_analysis
from normalizer import DEFAULT_WEIGHTS, build_candidate_filter, normalize_analysis, unique_list
from scoring import (
    FitScoreBand,
    JobContext,
    ScoredCandidate,
    ScoringConfig,
    compute_fit_score,
    normalize_tokens,
    passes_education_requirements,
    score_candidate,
    tokenize_query,
)
from settings import Settings

# Set up logging
logger = structlog.get_logger(__name__)

METRICS_NAMESPACE = "TalentMatch"

FIELD_PHRASES = [
    "computer science",
    "software engineering",
    "information systems",
    "information technology",
    "business administration",
    "business",
    "economics",
    "engineering",
    "data science",
    "artificial intelligence",
    "machine learning",
    "cyber security",
    "cybersecurity",
]
REQUIRED_SIGNAL = re.compile(r"\b(required|must have|mandatory|minimum)\b", re.IGNORECASE)
PREFERRED_SIGNAL = re.compile(r"\b(preferred|nice to have|plus|desired)\b", re.IGNORECASE)


def scoring_config(settings: Settings) -> ScoringConfig:
    return ScoringConfig(
        priority_must_have_coverage=settings.priority_must_have_coverage,
        baseline_score=settings.baseline_score,
    )


def fit_score_band(settings: Settings) -> FitScoreBand:
    return FitScoreBand(
        floor=settings.fit_score_floor,
        ceiling=settings.fit_score_ceiling,
        span=settings.fit_score_span,
        default=settings.fit_score_default,
    )


# ---------------------------------------------------------------------------
# Job description analysis


def extract_education_signals(text: str) -> dict[str, Any]:
    """Keyword-level degree and field hints, used only by the heuristic analyzer."""
    levels = []
    for level, patterns in DEGREE_PATTERNS:
        if any(re.search(pattern, text, re.IGNORECASE) for pattern in patterns):
            levels.append(level)
    highest = levels[0].value if levels else None

    lower = text.lower()
    fields = list(
        dict.fromkeys(
            normalize_field_of_study(phrase)
            for phrase in FIELD_PHRASES
            if re.search(rf"\b{re.escape(phrase)}\b", lower)
        )
    )

    if REQUIRED_SIGNAL.search(text):
        return {
            "requiredDegreeLevel": highest,
            "preferredDegreeLevels": [],
            "requiredFieldsOfStudy": fields,
            "preferredFieldsOfStudy": [],
        }
    if PREFERRED_SIGNAL.search(text):
        return {
            "requiredDegreeLevel": None,
            "preferredDegreeLevels": [level.value for level in levels],
            "requiredFieldsOfStudy": [],
            "preferredFieldsOfStudy": fields,
        }
    return {
        "requiredDegreeLevel": None,
        "preferredDegreeLevels": [],
        "requiredFieldsOfStudy": [],
        "preferredFieldsOfStudy": fields,
    }


def heuristic_job_requirements(jd_text: str) -> dict[str, Any]:
    """Fallback analysis when the analyzer is unavailable: top keyword tokens."""
    keywords = list(unique_list(normalize_tokens(jd_text)))[:12]
    return {
        "mustHaveSkills": keywords[:6],
        "niceToHaveSkills": keywords[6:10],
        "roleKeywords": keywords[:8],
        "yearsExpMin": None,
        "yearsExpMax": None,
        "languages": [],
        "responsibilities": [],
        "redFlags": [],
        "summary": jd_text[:300],
        **extract_education_signals(jd_text),
        "weights": dict(DEFAULT_WEIGHTS),
        "modelInfo": {"provider": "heuristic"},
    }


async def extract_job_requirements(job: models.JobPosting, settings: Settings) -> dict[str, Any]:
    """Raw requirements from the analyzer, or the heuristic when it cannot answer."""
    try:
        extracted = await call_llm_for_job_analysis(
            jd_text=job.description,
            title=job.title,
            location=job.location,
            remote_allowed=job.remote_allowed,
        )
        if extracted is None:
            raise ValueError("Analyzer returned no parsed content")
        payload = extracted.model_dump()
        payload["modelInfo"] = {"provider": "openrouter", "model": settings.analyzer_model}
        return payload
    except AnalyzerUnavailable:
        logger.info("Analyzer not configured; using heuristic analysis", job_id=job.id)
    except (openai.OpenAIError, ValueError) as exc:
        logger.warning("Job analysis failed, falling back to heuristic", job_id=job.id, error=str(exc))
    return heuristic_job_requirements(job.description)


@metric_scope
async def analyze_job(
    db: Session,
    job: models.JobPosting,
    actor_id: int,
    settings: Settings,
    metrics=None,
):
    """Analyze a job posting and replace its recommendation set.

    Returns ``(analysis, recommendation_count)``.
    """
    metrics.set_namespace(METRICS_NAMESPACE)
    metrics.put_metric("job_analyses_requested", 1, "Count")
    metrics.set_property("job_id", job.id)
    job_id = job.id
    if job.status == models.JobStatus.ARCHIVED:
        raise errors.JobArchived(job_id=job_id)

    raw = await extract_job_requirements(job, settings)
    requirements = normalize_analysis(raw)
    candidate_filter = build_candidate_filter(requirements, job.location, job.remote_allowed)

    pool = crud.prefilter_candidates(db, candidate_filter, limit=settings.prefilter_limit)
    eligible = [candidate for candidate in pool if passes_education_requirements(candidate, requirements)]

    job_context = JobContext(location=job.location, remote_allowed=job.remote_allowed)
    config = scoring_config(settings)
    scored = [
        ScoredCandidate(
            candidate_id=candidate.id,
            result=score_candidate(candidate, requirements, job_context, config),
        )
        for candidate in eligible
    ]
    logger.info(
        "Scored candidates for job",
        job_id=job_id,
        prefiltered=len(pool),
        eligible=len(eligible),
        provider=requirements.model_info.get("provider"),
    )

    analysis, count = crud.persist_analysis(
        db,
        job_id=job_id,
        requirements=requirements,
        scored=scored,
        limit=settings.recommendation_limit,
        actor_id=actor_id,
    )
    metrics.put_metric("recommendations_persisted", count, "Count")
    return analysis, count


def archive_job(db: Session, job: models.JobPosting, actor_id: int) -> models.JobPosting:
    crud.archive_job(db, job, actor_id=actor_id)
    db.commit()
    db.refresh(job)
    logger.info("Job posting archived", job_id=job.id, recruiter_id=actor_id)
    return job


# ---------------------------------------------------------------------------
# Candidate views


def job_recommendations(
    db: Session, job: models.JobPosting, recruiter_id: int, settings: Settings
) -> schemas.RecommendationsResponse:
    recommendations = crud.list_recommendations(db, job)
    unlocked = crud.unlocked_candidate_ids(db, recruiter_id, [rec.candidate_id for rec in recommendations])
    policy = DisclosurePolicy.from_settings(settings)

    return schemas.RecommendationsResponse(
        analysis_id=job.active_analysis_id,
        recommendations=[
            schemas.RecommendationOut(
                id=rec.id,
                rank=rec.rank,
                match_score=rec.match_score,
                reasons=rec.reasons,
                gaps=rec.gaps,
                is_priority=rec.is_priority,
                unlocked=rec.candidate_id in unlocked,
                candidate=present_candidate_card(rec.candidate, rec.candidate_id in unlocked, policy),
            )
            for rec in recommendations
        ],
    )


def _search_results(db: Session, recruiter_id: int, query_tokens, candidates, settings: Settings):
    unlocked = crud.unlocked_candidate_ids(db, recruiter_id, [candidate.id for candidate in candidates])
    policy = DisclosurePolicy.from_settings(settings)
    band = fit_score_band(settings)

    return [
        schemas.CandidateSearchResult(
            **present_candidate_card(candidate, candidate.id in unlocked, policy).model_dump(),
            match_score=compute_fit_score(candidate.skills, query_tokens, band),
        )
        for candidate in candidates
    ]


def search_candidates(
    db: Session, recruiter_id: int, search: SearchFilter, settings: Settings
) -> list[schemas.CandidateSearchResult]:
    """Live search scored with the lightweight fit score."""
    query_tokens = tokenize_query(search.query)
    candidates = crud.search_candidates(db, search, query_tokens)
    return _search_results(db, recruiter_id, query_tokens, candidates, settings)


def search_candidates_page(
    db: Session, recruiter_id: int, search: SearchFilter, settings: Settings
) -> schemas.CandidateSearchPage:
    """Advanced search: one page of results plus the total match count."""
    query_tokens = tokenize_query(search.query)
    total = crud.count_candidates(db, search, query_tokens)
    candidates = crud.search_candidates(db, search, query_tokens) if total else []
    logger.info(
        "Candidate search",
        recruiter_id=recruiter_id,
        total=total,
        page=search.page,
        sort_by=search.sort_by.value,
    )
    return schemas.CandidateSearchPage(
        results=_search_results(db, recruiter_id, query_tokens, candidates, settings),
        pagination=schemas.Pagination(
            page=search.page,
            limit=search.limit,
            total=total,
            total_pages=math.ceil(total / search.limit),
        ),
    )


def candidate_detail(
    db: Session, recruiter_id: int, candidate_id: int, settings: Settings
) -> schemas.CandidateDetailResponse:
    candidate = crud.get_visible_candidate(db, candidate_id)
    if candidate is None:
        raise errors.NotFound("Candidate not found")

    unlocked = crud.get_unlock(db, recruiter_id, candidate.id) is not None
    return schemas.CandidateDetailResponse(
        unlocked=unlocked,
        candidate=present_candidate_detail(candidate, unlocked, DisclosurePolicy.from_settings(settings)),
    )


@metric_scope
async def unlock(
    db: Session,
    recruiter_id: int,
    candidate_id: int,
    settings: Settings,
    metrics=None,
) -> schemas.UnlockResponse:
    metrics.set_namespace(METRICS_NAMESPACE)
    metrics.set_property("recruiter_id", recruiter_id)

    candidate = crud.get_visible_candidate(db, candidate_id)
    if candidate is None:
        raise errors.NotFound("Candidate not found")

    result = unlock_candidate(db, SqlCreditLedger(db), recruiter_id, candidate.id)
    metrics.put_metric("cv_unlocks", 0 if result.already_unlocked else 1, "Count")

    # Instance loaded before the commit; the profile may have been hidden since
    return schemas.UnlockResponse(
        already_unlocked=result.already_unlocked,
        balance=result.balance,
        candidate=present_candidate_detail(candidate, True, DisclosurePolicy.from_settings(settings)),
    )


# ---------------------------------------------------------------------------
# Shortlists


def _present_shortlists(
    db: Session, recruiter_id: int, shortlists: list[models.Shortlist], settings: Settings
) -> list[schemas.ShortlistOut]:
    entries = crud.visible_shortlist_entries(db, [shortlist.id for shortlist in shortlists])
    unlocked = crud.unlocked_candidate_ids(db, recruiter_id, {entry.candidate_id for entry in entries})
    policy = DisclosurePolicy.from_settings(settings)

    by_shortlist: dict[int, list[schemas.ShortlistEntryOut]] = {shortlist.id: [] for shortlist in shortlists}
    for entry in entries:
        is_unlocked = entry.candidate_id in unlocked
        by_shortlist[entry.shortlist_id].append(
            schemas.ShortlistEntryOut(
                candidate_id=entry.candidate_id,
                note=entry.note,
                added_at=entry.added_at,
                unlocked=is_unlocked,
                candidate=present_candidate_card(entry.candidate, is_unlocked, policy),
            )
        )

    return [
        schemas.ShortlistOut(
            id=shortlist.id,
            name=shortlist.name,
            description=shortlist.description,
            created_at=shortlist.created_at,
            entries=by_shortlist[shortlist.id],
        )
        for shortlist in shortlists
    ]


def list_shortlists(db: Session, recruiter_id: int, settings: Settings) -> schemas.ShortlistsResponse:
    shortlists = crud.get_shortlists_for_recruiter(db, recruiter_id)
    return schemas.ShortlistsResponse(shortlists=_present_shortlists(db, recruiter_id, shortlists, settings))


def create_shortlist(
    db: Session, recruiter_id: int, shortlist: schemas.ShortlistCreate, settings: Settings
) -> schemas.ShortlistOut:
    db_shortlist = crud.create_shortlist(db, recruiter_id, shortlist)
    db.commit()
    db.refresh(db_shortlist)
    logger.info("Shortlist created", shortlist_id=db_shortlist.id, recruiter_id=recruiter_id)
    return _present_shortlists(db, recruiter_id, [db_shortlist], settings)[0]


def _owned_shortlist(db: Session, shortlist_id: int, recruiter_id: int) -> models.Shortlist:
    shortlist = crud.get_shortlist(db, shortlist_id, recruiter_id)
    if shortlist is None:
        raise errors.NotFound("Shortlist not found")
    return shortlist


def add_to_shortlist(
    db: Session, recruiter_id: int, shortlist_id: int, entry: schemas.ShortlistEntryCreate, settings: Settings
) -> schemas.ShortlistOut:
    shortlist = _owned_shortlist(db, shortlist_id, recruiter_id)
    if crud.get_visible_candidate(db, entry.candidate_id) is None:
        raise errors.NotFound("Candidate not found")

    crud.add_shortlist_entry(db, shortlist, entry.candidate_id, entry.note)
    db.commit()
    db.refresh(shortlist)
    logger.info(
        "Candidate shortlisted",
        shortlist_id=shortlist.id,
        candidate_id=entry.candidate_id,
        recruiter_id=recruiter_id,
    )
    return _present_shortlists(db, recruiter_id, [shortlist], settings)[0]


def remove_from_shortlist(
    db: Session, recruiter_id: int, shortlist_id: int, candidate_id: int
) -> schemas.ShortlistRemoval:
    shortlist = _owned_shortlist(db, shortlist_id, recruiter_id)
    removed = crud.remove_shortlist_entry(db, shortlist, candidate_id)
    db.commit()
    return schemas.ShortlistRemoval(removed=removed)


# ---------------------------------------------------------------------------
# Saved searches


def create_saved_search(db: Session, recruiter_id: int, saved: schemas.SavedSearchCreate) -> models.SavedSearch:
    db_saved = crud.create_saved_search(db, recruiter_id, saved.name, saved.filters)
    db.commit()
    db.refresh(db_saved)
    logger.info("Saved search created", saved_search_id=db_saved.id, recruiter_id=recruiter_id)
    return db_saved


def run_saved_search(
    db: Session, recruiter_id: int, saved_search_id: int, settings: Settings, page: int = 1
) -> schemas.CandidateSearchPage:
    saved = crud.get_saved_search(db, saved_search_id, recruiter_id)
    if saved is None:
        raise errors.NotFound("Saved search not found")
    try:
        search = SearchFilter.model_validate({**saved.filters, "page": page})
    except PydanticValidationError as exc:
        raise to_matching_error(exc) from exc
    return search_candidates_page(db, recruiter_id, search, settings)
