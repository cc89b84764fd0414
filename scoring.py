"""Candidate scoring.

Two unrelated scores live here:

* ``score_candidate`` - the deep match score persisted as a recommendation
  after a job analysis.
* ``compute_fit_score`` - a lightweight keyword heuristic for live search.
  It is never persisted.

Both are pure functions of their arguments.
"""
import math
import re
from collections.abc import Iterable, Sequence
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from education import (
    fields_match,
    format_degree_level,
    meets_degree,
    normalize_field_of_study,
    parse_degree_level,
)
from normalizer import DEFAULT_WEIGHTS
from schemas import AnalysisRequirements

STOP_WORDS = {
    "and", "or", "with", "for", "to", "of", "in", "on", "at", "by", "from", "the", "a", "an",
    "we", "our", "you", "your", "role", "job", "work", "team", "experience",
}

_TOKEN_STRIP = re.compile(r"[^a-z0-9\s+#.-]")


class ScoringConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    priority_must_have_coverage: float = 0.8
    baseline_score: int = 50
    nice_to_have_share: float = 0.2


class FitScoreBand(BaseModel):
    model_config = ConfigDict(frozen=True)

    floor: int = 60
    ceiling: int = 98
    span: int = 38
    default: int = 70


class JobContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: Optional[str] = None
    remote_allowed: bool = False


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int
    reasons: tuple[str, ...] = ()
    gaps: tuple[str, ...] = ()
    is_priority: bool = False


class ScoredCandidate(BaseModel):
    model_config = ConfigDict(frozen=True)

    candidate_id: int
    result: MatchResult

    @property
    def score(self) -> int:
        return self.result.score


DEFAULT_SCORING_CONFIG = ScoringConfig()
DEFAULT_FIT_BAND = FitScoreBand()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _format_years(value: float) -> str:
    return f"{value:g}"


def normalize_tokens(text: str) -> list[str]:
    cleaned = _TOKEN_STRIP.sub(" ", text.lower())
    tokens = (token.strip(".-") for token in cleaned.split())
    return [token for token in tokens if len(token) > 1 and token not in STOP_WORDS]


def tokenize_query(query: Optional[str]) -> list[str]:
    return (query or "").lower().split()


def _skill_set(skills: Optional[Iterable[Any]]) -> set[str]:
    return {skill.strip().lower() for skill in (skills or []) if isinstance(skill, str) and skill.strip()}


def _candidate_field(candidate) -> Optional[str]:
    return candidate.normalized_field_of_study or normalize_field_of_study(candidate.primary_field_of_study)


def passes_education_requirements(candidate, requirements: AnalysisRequirements) -> bool:
    """Authoritative degree and field gate, run on prefilter results before scoring."""
    required = requirements.required_degree_level
    if required is not None:
        if not meets_degree(parse_degree_level(candidate.highest_degree_level), required):
            return False

    if requirements.required_fields_of_study:
        candidate_field = _candidate_field(candidate)
        if not candidate_field:
            return False
        if not any(fields_match(candidate_field, field) for field in requirements.required_fields_of_study):
            return False

    return True


def _experience_band_text(years_min: Optional[float], years_max: Optional[float]) -> str:
    if years_min is not None and years_max is not None:
        return f"{_format_years(years_min)}-{_format_years(years_max)} years"
    if years_min is not None:
        return f"{_format_years(years_min)}+ years"
    return f"up to {_format_years(years_max)} years"


def _experience_fit(years: Optional[float], years_min: Optional[float], years_max: Optional[float]):
    """Returns (value, within_band, reason, gap); value is None when there are no bounds."""
    if years_min is None and years_max is None:
        return None, True, None, None
    if years is None:
        return 0.5, False, None, "Years of experience not stated"

    band = _experience_band_text(years_min, years_max)
    if years_min is not None and years < years_min:
        value = max(0.0, 1.0 - (years_min - years) / max(years_min, 1.0))
        return value, False, None, f"Experience below minimum ({_format_years(years)} of {band})"
    if years_max is not None and years > years_max:
        value = max(0.5, 1.0 - 0.1 * (years - years_max))
        return value, False, None, f"Experience above maximum ({_format_years(years)} vs {band})"
    return 1.0, True, f"Within requested experience range ({band})", None


def _keyword_matches(candidate, keywords: Sequence[str]) -> list[str]:
    text = " ".join(
        [candidate.current_title or "", candidate.summary or "", " ".join(candidate.desired_roles or [])]
    )
    role_tokens = set(normalize_tokens(text))
    matched = []
    for keyword in keywords:
        keyword_tokens = normalize_tokens(keyword)
        if keyword_tokens and all(token in role_tokens for token in keyword_tokens):
            matched.append(keyword.lower())
    return matched


def score_candidate(
    candidate,
    requirements: AnalysisRequirements,
    job: JobContext,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> MatchResult:
    """Deep match score for one candidate against an analyzed job.

    ``candidate`` is anything exposing the ``CandidateProfile`` attributes.
    Each dimension yields a value in [0, 1]; dimensions without a matching
    requirement are left out of the weighted mean.
    """
    weights = {**DEFAULT_WEIGHTS, **requirements.weights}
    dimensions: list[tuple[str, float]] = []
    reasons: list[str] = []
    gaps: list[str] = []

    # Skills
    candidate_skills = _skill_set(candidate.skills)
    must = list(requirements.must_have_skills)
    nice = list(requirements.nice_to_have_skills)
    matched_must = [skill for skill in must if skill.lower() in candidate_skills]
    matched_nice = [skill for skill in nice if skill.lower() in candidate_skills]
    must_coverage = len(matched_must) / len(must) if must else 1.0
    if must or nice:
        if must and nice:
            share = config.nice_to_have_share
            skill_value = (1 - share) * must_coverage + share * (len(matched_nice) / len(nice))
        elif must:
            skill_value = must_coverage
        else:
            skill_value = len(matched_nice) / len(nice)
        dimensions.append(("skillWeight", skill_value))
    if must and matched_must:
        reasons.append(f"Matches {len(matched_must)}/{len(must)} must-have skills")
    if matched_nice:
        reasons.append(f"Nice-to-have skills: {', '.join(matched_nice[:3])}")
    gaps.extend(f"Missing must-have skill: {skill}" for skill in must if skill not in matched_must)

    # Experience
    experience_value, within_band, experience_reason, experience_gap = _experience_fit(
        candidate.years_experience, requirements.years_exp_min, requirements.years_exp_max
    )
    if experience_value is not None:
        dimensions.append(("experienceWeight", experience_value))
    if experience_reason:
        reasons.append(experience_reason)
    if experience_gap:
        gaps.append(experience_gap)

    # Education
    checks: list[float] = []
    candidate_level = parse_degree_level(candidate.highest_degree_level)
    candidate_field = _candidate_field(candidate)
    required = requirements.required_degree_level
    if required is not None:
        label = format_degree_level(required)
        if meets_degree(candidate_level, required):
            checks.append(1.0)
            reasons.append(f"Meets {label} degree requirement")
        else:
            checks.append(0.0)
            gaps.append(f"{label} degree required")
    if requirements.required_fields_of_study:
        if any(fields_match(candidate_field, field) for field in requirements.required_fields_of_study):
            checks.append(1.0)
            reasons.append("Matches required field of study")
        else:
            checks.append(0.0)
            gaps.append("Different field of study")
    if requirements.preferred_degree_levels:
        if any(meets_degree(candidate_level, level) for level in requirements.preferred_degree_levels):
            checks.append(1.0)
            reasons.append("Matches preferred degree level")
        else:
            checks.append(0.0)
    if requirements.preferred_fields_of_study:
        if any(fields_match(candidate_field, field) for field in requirements.preferred_fields_of_study):
            checks.append(1.0)
            reasons.append(f"Relevant {candidate.primary_field_of_study or 'field'} background")
        else:
            checks.append(0.0)
    if checks:
        dimensions.append(("educationWeight", sum(checks) / len(checks)))

    # Location
    job_location = (job.location or "").strip()
    if job.remote_allowed:
        dimensions.append(("locationWeight", 1.0))
        reasons.append("Remote-friendly role")
    elif job_location:
        wanted = job_location.casefold()
        preferred = {loc.casefold() for loc in (candidate.preferred_locations or []) if isinstance(loc, str)}
        if (candidate.location or "").strip().casefold() == wanted:
            dimensions.append(("locationWeight", 1.0))
            reasons.append(f"Based in {job_location}")
        elif wanted in preferred:
            dimensions.append(("locationWeight", 1.0))
            reasons.append(f"Open to working in {job_location}")
        else:
            dimensions.append(("locationWeight", 0.0))
            gaps.append(f"Not based in {job_location}")

    # Role keywords
    if requirements.role_keywords:
        matched_keywords = _keyword_matches(candidate, requirements.role_keywords)
        dimensions.append(("keywordWeight", len(matched_keywords) / len(requirements.role_keywords)))
        if matched_keywords:
            reasons.append(f"Role keywords: {', '.join(matched_keywords[:3])}")

    total_weight = sum(weights[key] for key, _ in dimensions)
    if total_weight <= 0:
        score = config.baseline_score
    else:
        weighted = sum(weights[key] * value for key, value in dimensions) / total_weight
        score = _round_half_up(100 * weighted)
    score = max(0, min(100, score))

    # Without must-have skills there is nothing to clear, so no priority
    is_priority = bool(must) and must_coverage >= config.priority_must_have_coverage and within_band

    return MatchResult(score=score, reasons=tuple(reasons), gaps=tuple(gaps), is_priority=is_priority)


def rank_scored_candidates(scored: Iterable[ScoredCandidate], limit: int) -> list[ScoredCandidate]:
    """Highest score first; equal scores ordered by candidate id ascending."""
    ordered = sorted(scored, key=lambda entry: (-entry.score, entry.candidate_id))
    return ordered[:limit]


def compute_fit_score(
    skills: Optional[Iterable[Any]],
    query_tokens: Sequence[str],
    band: FitScoreBand = DEFAULT_FIT_BAND,
) -> int:
    """Share of query tokens found inside any skill, mapped into the fit band."""
    if not query_tokens:
        return band.default
    lower_skills = [skill.lower() for skill in (skills or []) if isinstance(skill, str)]
    hits = sum(1 for token in query_tokens if any(token in skill for skill in lower_skills))
    ratio = hits / len(query_tokens)
    return max(band.floor, min(band.ceiling, _round_half_up(band.floor + ratio * band.span)))
