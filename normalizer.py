"""Requirement normalization: analyzer output -> canonical, query-ready requirements.

Anything the analyzer returns that cannot be parsed is treated as if the
requirement were absent, so a bad dimension widens the search instead of
failing the analysis. Such dimensions are listed in
``AnalysisRequirements.invalid_dimensions`` and logged.
"""
import math
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel

from education import (
    DegreeLevel,
    allowed_degree_levels,
    normalize_field_of_study,
    parse_degree_level,
)
from filters import CandidateFilter
from schemas import AnalysisRequirements

logger = structlog.get_logger(__name__)

DEFAULT_WEIGHTS = {
    "skillWeight": 3.0,
    "experienceWeight": 2.0,
    "keywordWeight": 1.0,
    "educationWeight": 1.0,
    "locationWeight": 1.0,
}
SUMMARY_MAX_CHARS = 600

_MISSING = object()


def _get(raw: Mapping, camel: str, snake: str, default: Any = None) -> Any:
    value = raw.get(camel, _MISSING)
    if value is _MISSING:
        value = raw.get(snake, default)
    return value


def _is_supplied(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) > 0
    return True


def _as_iterable(value: Any) -> Iterable:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple, set)):
        return value
    return ()


def unique_list(values: Any) -> tuple[str, ...]:
    """Trimmed strings, first occurrence wins (case-insensitive), non-strings dropped."""
    seen = set()
    result = []
    for value in _as_iterable(values):
        if not isinstance(value, str):
            continue
        cleaned = value.strip()
        if not cleaned or cleaned.lower() in seen:
            continue
        seen.add(cleaned.lower())
        result.append(cleaned)
    return tuple(result)


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def _parse_experience_bounds(raw: Mapping, invalid: list[str]) -> tuple[Optional[float], Optional[float]]:
    raw_min = _get(raw, "yearsExpMin", "years_exp_min")
    raw_max = _get(raw, "yearsExpMax", "years_exp_max")

    years_min = _parse_number(raw_min)
    if years_min is None and _is_supplied(raw_min):
        invalid.append("years_exp_min")
    years_max = _parse_number(raw_max)
    if years_max is None and _is_supplied(raw_max):
        invalid.append("years_exp_max")

    if years_min is not None and years_max is not None and years_min > years_max:
        invalid.extend(["years_exp_min", "years_exp_max"])
        return None, None
    # A zero minimum bounds nothing
    if years_min == 0:
        years_min = None
    return years_min, years_max


def _parse_degree_levels(values: Any, invalid: list[str]) -> tuple[DegreeLevel, ...]:
    levels = []
    for value in _as_iterable(values):
        level = parse_degree_level(value)
        if level is None:
            invalid.append("preferred_degree_levels")
            continue
        if level not in levels:
            levels.append(level)
    return tuple(levels)


def _parse_fields(values: Any) -> tuple[str, ...]:
    fields = []
    for value in _as_iterable(values):
        normalized = normalize_field_of_study(value) if isinstance(value, str) else None
        if normalized and normalized not in fields:
            fields.append(normalized)
    return tuple(fields)


def _parse_weights(value: Any, invalid: list[str]) -> dict[str, float]:
    if isinstance(value, BaseModel):
        value = value.model_dump()
    if not isinstance(value, Mapping):
        if _is_supplied(value):
            invalid.append("weights")
        return dict(DEFAULT_WEIGHTS)

    weights = {}
    rejected = False
    for key, default in DEFAULT_WEIGHTS.items():
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in key)
        supplied = _get(value, key, snake)
        parsed = _parse_number(supplied)
        if parsed is None:
            rejected = rejected or _is_supplied(supplied)
            weights[key] = default
        else:
            weights[key] = parsed
    if rejected:
        invalid.append("weights")
    return weights


def normalize_analysis(raw: Union[Mapping, BaseModel, None]) -> AnalysisRequirements:
    """Build canonical requirements from the analyzer's raw JSON (camelCase or snake_case)."""
    if isinstance(raw, BaseModel):
        raw = raw.model_dump()
    if not isinstance(raw, Mapping):
        logger.warning("Analyzer returned a non-object payload; using empty requirements")
        raw = {}

    invalid: list[str] = []
    years_min, years_max = _parse_experience_bounds(raw, invalid)

    raw_required_degree = _get(raw, "requiredDegreeLevel", "required_degree_level")
    required_degree = parse_degree_level(raw_required_degree)
    if required_degree is None and _is_supplied(raw_required_degree):
        invalid.append("required_degree_level")

    summary = raw.get("summary")
    if isinstance(summary, str):
        summary = summary.strip()[:SUMMARY_MAX_CHARS] or None
    else:
        summary = None

    model_info = _get(raw, "modelInfo", "model_info")

    requirements = AnalysisRequirements(
        must_have_skills=unique_list(_get(raw, "mustHaveSkills", "must_have_skills")),
        nice_to_have_skills=unique_list(_get(raw, "niceToHaveSkills", "nice_to_have_skills")),
        role_keywords=unique_list(_get(raw, "roleKeywords", "role_keywords")),
        languages=unique_list(_get(raw, "languages", "languages")),
        responsibilities=unique_list(_get(raw, "responsibilities", "responsibilities")),
        red_flags=unique_list(_get(raw, "redFlags", "red_flags")),
        summary=summary,
        years_exp_min=years_min,
        years_exp_max=years_max,
        required_degree_level=required_degree,
        preferred_degree_levels=_parse_degree_levels(
            _get(raw, "preferredDegreeLevels", "preferred_degree_levels"), invalid
        ),
        required_fields_of_study=_parse_fields(_get(raw, "requiredFieldsOfStudy", "required_fields_of_study")),
        preferred_fields_of_study=_parse_fields(_get(raw, "preferredFieldsOfStudy", "preferred_fields_of_study")),
        weights=_parse_weights(_get(raw, "weights", "weights"), invalid),
        model_info=dict(model_info) if isinstance(model_info, Mapping) else {},
        invalid_dimensions=tuple(dict.fromkeys(invalid)),
    )

    if requirements.invalid_dimensions:
        logger.warning(
            "Ignoring invalid analysis dimensions",
            dimensions=list(requirements.invalid_dimensions),
        )
    return requirements


def build_candidate_filter(
    requirements: AnalysisRequirements,
    location: Optional[str],
    remote_allowed: bool,
) -> CandidateFilter:
    """Coarse store-level filter for the prefilter pass."""
    job_location = location.strip() if location and location.strip() else None
    required = requirements.required_degree_level

    return CandidateFilter(
        location=None if remote_allowed else job_location,
        min_years=requirements.years_exp_min,
        max_years=requirements.years_exp_max,
        allowed_degree_levels=tuple(allowed_degree_levels(required)) if required else None,
        fields_of_study=requirements.required_fields_of_study,
    )
