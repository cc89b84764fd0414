from typing import List, Optional

import structlog
from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import crud
import errors
import logic
import models
import schemas
from auth import get_current_recruiter, require_matching_recruiter
from credits import SqlCreditLedger
from database import create_db_and_tables, get_db
from filters import MAX_PAGE_SIZE, SearchFilter, build_search_filter
from observability import init_observability
from request_id_middleware import RequestIdMiddleware
from settings import Settings, get_settings

# Create DB tables on startup
create_db_and_tables()

app = FastAPI(
    title="Talent Match",
    description="Recruiter candidate matching API",
    version="0.1.0",
)

# Logging and optional tracing, before any request is served
init_observability(app)
logger = structlog.get_logger(__name__)

# --- CORS Middleware ---
origins = [
    "http://localhost",
    "http://localhost:8000",
    "http://127.0.0.1",
    "http://127.0.0.1:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestIdMiddleware)


# --- Error handlers ---
@app.exception_handler(errors.MatchingError)
async def matching_error_handler(request: Request, exc: errors.MatchingError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.kind, detail=exc.message)
    else:
        logger.info("Request rejected", path=request.url.path, error=exc.kind, detail=exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    body = errors.ValidationError().to_dict()
    body["errors"] = jsonable_encoder(exc.errors())
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


# --- Dependencies ---
def get_credit_ledger(db: Session = Depends(get_db)) -> SqlCreditLedger:
    return SqlCreditLedger(db)


def _owned_job_or_404(db: Session, job_id: int, recruiter: models.Recruiter) -> models.JobPosting:
    job = crud.get_job(db, job_id=job_id, recruiter_id=recruiter.id)
    if job is None:
        raise errors.NotFound("Job not found")
    return job


# --- Recruiter ---
@app.get("/recruiters/me", response_model=schemas.Recruiter, tags=["Auth"])
def get_me(current_recruiter: models.Recruiter = Depends(get_current_recruiter)):
    return current_recruiter


# --- Jobs ---
@app.post("/jobs", response_model=schemas.Job, status_code=status.HTTP_201_CREATED, tags=["Jobs"])
def create_job(
    job: schemas.JobCreate,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
):
    db_job = crud.create_job(db, job=job, recruiter_id=current_recruiter.id)
    db.commit()
    db.refresh(db_job)
    logger.info("Job posting created", job_id=db_job.id, recruiter_id=current_recruiter.id)
    return db_job


@app.get("/jobs", response_model=List[schemas.Job], tags=["Jobs"])
def list_jobs(
    status: Optional[models.JobStatus] = None,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
):
    return crud.get_jobs_for_recruiter(db, recruiter_id=current_recruiter.id, status=status)


@app.get("/jobs/{job_id}", response_model=schemas.Job, tags=["Jobs"])
def read_job(
    job_id: int,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
):
    return _owned_job_or_404(db, job_id, current_recruiter)


@app.post("/jobs/{job_id}/archive", response_model=schemas.Job, tags=["Jobs"])
def archive_job(
    job_id: int,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
):
    job = _owned_job_or_404(db, job_id, current_recruiter)
    return logic.archive_job(db, job, actor_id=current_recruiter.id)


@app.post("/jobs/{job_id}/analyze", response_model=schemas.AnalyzeResponse, tags=["Matching"])
async def analyze_job(
    job_id: int,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    job = _owned_job_or_404(db, job_id, current_recruiter)
    analysis, count = await logic.analyze_job(db, job, actor_id=current_recruiter.id, settings=settings)
    return schemas.AnalyzeResponse(analysis_id=analysis.id, recommendations=count)


@app.get("/jobs/{job_id}/recommendations", response_model=schemas.RecommendationsResponse, tags=["Matching"])
def read_recommendations(
    job_id: int,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    job = _owned_job_or_404(db, job_id, current_recruiter)
    return logic.job_recommendations(db, job, recruiter_id=current_recruiter.id, settings=settings)


# --- Candidates ---
@app.get("/candidates", response_model=schemas.CandidateSearchResponse, tags=["Candidates"])
def search_candidates(
    query: Optional[str] = None,
    skills: Optional[str] = None,
    location: Optional[str] = None,
    industry: Optional[str] = None,
    availability: Optional[str] = None,
    min_exp: Optional[str] = None,
    max_exp: Optional[str] = None,
    min_salary: Optional[str] = None,
    max_salary: Optional[str] = None,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    # Numeric filters arrive as strings so malformed values map to validation_error
    search = build_search_filter(
        query=query,
        skills=skills,
        location=location,
        industry=industry,
        availability=availability,
        min_exp=min_exp,
        max_exp=max_exp,
        min_salary=min_salary,
        max_salary=max_salary,
        limit=min(settings.search_limit, MAX_PAGE_SIZE),
    )
    results = logic.search_candidates(db, recruiter_id=current_recruiter.id, search=search, settings=settings)
    return schemas.CandidateSearchResponse(results=results)


@app.post("/candidates/search", response_model=schemas.CandidateSearchPage, tags=["Candidates"])
def advanced_search(
    search: SearchFilter,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return logic.search_candidates_page(db, recruiter_id=current_recruiter.id, search=search, settings=settings)


@app.get("/candidates/{candidate_id}", response_model=schemas.CandidateDetailResponse, tags=["Candidates"])
def read_candidate(
    candidate_id: int,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return logic.candidate_detail(db, recruiter_id=current_recruiter.id, candidate_id=candidate_id, settings=settings)


@app.post("/candidates/{candidate_id}/unlock", response_model=schemas.UnlockResponse, tags=["Candidates"])
async def unlock_candidate(
    candidate_id: int,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return await logic.unlock(db, recruiter_id=current_recruiter.id, candidate_id=candidate_id, settings=settings)


# --- Credits ---
@app.get("/credits", response_model=schemas.CreditsResponse, tags=["Credits"])
def read_credits(
    current_recruiter: models.Recruiter = Depends(get_current_recruiter),
    ledger: SqlCreditLedger = Depends(get_credit_ledger),
):
    return schemas.CreditsResponse(
        balance=ledger.balance(current_recruiter.id),
        ledger=[schemas.LedgerEntry.model_validate(entry) for entry in ledger.recent_entries(current_recruiter.id)],
    )


# --- Shortlists ---
@app.get("/shortlists", response_model=schemas.ShortlistsResponse, tags=["Shortlists"])
def list_shortlists(
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return logic.list_shortlists(db, recruiter_id=current_recruiter.id, settings=settings)


@app.post(
    "/shortlists",
    response_model=schemas.ShortlistOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Shortlists"],
)
def create_shortlist(
    shortlist: schemas.ShortlistCreate,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return logic.create_shortlist(db, recruiter_id=current_recruiter.id, shortlist=shortlist, settings=settings)


@app.post(
    "/shortlists/{shortlist_id}/candidates",
    response_model=schemas.ShortlistOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Shortlists"],
)
def add_shortlist_candidate(
    shortlist_id: int,
    entry: schemas.ShortlistEntryCreate,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return logic.add_to_shortlist(
        db, recruiter_id=current_recruiter.id, shortlist_id=shortlist_id, entry=entry, settings=settings
    )


@app.delete(
    "/shortlists/{shortlist_id}/candidates/{candidate_id}",
    response_model=schemas.ShortlistRemoval,
    tags=["Shortlists"],
)
def remove_shortlist_candidate(
    shortlist_id: int,
    candidate_id: int,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
):
    return logic.remove_from_shortlist(
        db, recruiter_id=current_recruiter.id, shortlist_id=shortlist_id, candidate_id=candidate_id
    )


# --- Saved searches ---
@app.get("/saved-searches", response_model=List[schemas.SavedSearchOut], tags=["Candidates"])
def list_saved_searches(
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
):
    return crud.get_saved_searches_for_recruiter(db, recruiter_id=current_recruiter.id)


@app.post(
    "/saved-searches",
    response_model=schemas.SavedSearchOut,
    status_code=status.HTTP_201_CREATED,
    tags=["Candidates"],
)
def create_saved_search(
    saved: schemas.SavedSearchCreate,
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
):
    return logic.create_saved_search(db, recruiter_id=current_recruiter.id, saved=saved)


@app.post(
    "/saved-searches/{saved_search_id}/run",
    response_model=schemas.CandidateSearchPage,
    tags=["Candidates"],
)
def run_saved_search(
    saved_search_id: int,
    page: int = Query(default=1, ge=1),
    current_recruiter: models.Recruiter = Depends(require_matching_recruiter),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return logic.run_saved_search(
        db, recruiter_id=current_recruiter.id, saved_search_id=saved_search_id, settings=settings, page=page
    )
