"""Typed candidate filters.

Every dimension is optional and ``None`` (or an empty tuple) means "no filter
on this dimension". The query layer in ``crud`` turns these into SQL.
"""
import enum
import math
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

import errors
from education import DegreeLevel, ExperienceBand, normalize_field_of_study

# Anything above these cannot be a real profile value and would overflow the store's integers
MAX_YEARS = 80
MAX_SALARY = 100_000_000
MIN_GRADUATION_YEAR = 1900
MAX_GRADUATION_YEAR = 2100
MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20


class SortBy(str, enum.Enum):
    RELEVANCE = "relevance"
    EXPERIENCE = "experience"
    RECENT = "recent"


class CandidateFilter(BaseModel):
    """Coarse prefilter derived from a job analysis."""

    model_config = ConfigDict(frozen=True)

    location: Optional[str] = None
    min_years: Optional[float] = None
    max_years: Optional[float] = None
    allowed_degree_levels: Optional[tuple[DegreeLevel, ...]] = None
    fields_of_study: tuple[str, ...] = ()


def _clean_strings(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    cleaned = []
    for item in value:
        if isinstance(item, str) and item.strip() and item.strip() not in cleaned:
            cleaned.append(item.strip())
    return tuple(cleaned)


class SearchFilter(BaseModel):
    """Live candidate search parameters, also the body of the advanced search."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: str = ""
    skills: tuple[str, ...] = ()
    locations: tuple[str, ...] = ()
    industries: tuple[str, ...] = ()
    availability: tuple[str, ...] = ()
    min_exp: Optional[float] = Field(default=None, ge=0, le=MAX_YEARS)
    max_exp: Optional[float] = Field(default=None, ge=0, le=MAX_YEARS)
    min_salary: Optional[int] = Field(default=None, ge=0, le=MAX_SALARY)
    max_salary: Optional[int] = Field(default=None, ge=0, le=MAX_SALARY)
    degree_levels: tuple[DegreeLevel, ...] = ()
    fields_of_study: tuple[str, ...] = ()
    graduation_year_min: Optional[int] = Field(default=None, ge=MIN_GRADUATION_YEAR, le=MAX_GRADUATION_YEAR)
    graduation_year_max: Optional[int] = Field(default=None, ge=MIN_GRADUATION_YEAR, le=MAX_GRADUATION_YEAR)
    experience_bands: tuple[ExperienceBand, ...] = ()
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    sort_by: SortBy = SortBy.RELEVANCE

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, value):
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value

    @field_validator("skills", "locations", "industries", "availability", mode="before")
    @classmethod
    def _strip_lists(cls, value):
        return _clean_strings(value)

    @field_validator("fields_of_study", mode="before")
    @classmethod
    def _normalize_fields(cls, value):
        fields = [normalize_field_of_study(item) for item in _clean_strings(value)]
        return tuple(dict.fromkeys(field for field in fields if field))

    @model_validator(mode="after")
    def _check_ranges(self):
        for low, high in (
            ("min_exp", "max_exp"),
            ("min_salary", "max_salary"),
            ("graduation_year_min", "graduation_year_max"),
        ):
            low_value, high_value = getattr(self, low), getattr(self, high)
            if low_value is not None and high_value is not None and low_value > high_value:
                raise ValueError(f"{low} must not exceed {high}")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_list(value: Optional[str]) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _parse_number(name: str, value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    try:
        number = float(value)
    except ValueError:
        raise errors.ValidationError(f"{name} must be a number", field=name)
    if not math.isfinite(number):
        raise errors.ValidationError(f"{name} must be a finite number", field=name)
    return number


def _parse_whole_number(name: str, value: Optional[str]) -> Optional[int]:
    number = _parse_number(name, value)
    return math.floor(number) if number is not None else None


def to_matching_error(exc: PydanticValidationError) -> errors.ValidationError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    message = first["msg"].removeprefix("Value error, ")
    if field:
        return errors.ValidationError(f"{field}: {message}", field=field)
    return errors.ValidationError(message)


def build_search_filter(
    query: Optional[str] = None,
    skills: Optional[str] = None,
    location: Optional[str] = None,
    industry: Optional[str] = None,
    availability: Optional[str] = None,
    min_exp: Optional[str] = None,
    max_exp: Optional[str] = None,
    min_salary: Optional[str] = None,
    max_salary: Optional[str] = None,
    limit: int = MAX_PAGE_SIZE,
) -> SearchFilter:
    """Validate raw query-string values. Malformed or out-of-range numbers raise ``ValidationError``."""
    try:
        return SearchFilter(
            query=query or "",
            skills=parse_list(skills),
            locations=location,
            industries=industry,
            availability=availability,
            min_exp=_parse_number("min_exp", min_exp),
            max_exp=_parse_number("max_exp", max_exp),
            min_salary=_parse_whole_number("min_salary", min_salary),
            max_salary=_parse_whole_number("max_salary", max_salary),
            limit=limit,
        )
    except PydanticValidationError as exc:
        raise to_matching_error(exc) from exc
