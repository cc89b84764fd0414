"""Degree levels and field-of-study normalization.

The same ``normalize_field_of_study`` runs when candidate profiles are written
and when job requirements are normalized; substring matching between the two
only works because both sides go through it.
"""
import enum
import re
from typing import Optional, Union


class DegreeLevel(str, enum.Enum):
    DIPLOMA = "DIPLOMA"
    BACHELOR = "BACHELOR"
    MASTER = "MASTER"
    PHD = "PHD"

    @property
    def rank(self) -> int:
        return DEGREE_ORDER.index(self) + 1


DEGREE_ORDER = [
    DegreeLevel.DIPLOMA,
    DegreeLevel.BACHELOR,
    DegreeLevel.MASTER,
    DegreeLevel.PHD,
]

DEGREE_LABELS = {
    DegreeLevel.DIPLOMA: "Diploma",
    DegreeLevel.BACHELOR: "Bachelor",
    DegreeLevel.MASTER: "Master",
    DegreeLevel.PHD: "PhD",
}

# Checked highest level first so "Master of Philosophy (PhD track)" stays PHD
DEGREE_PATTERNS = [
    (DegreeLevel.PHD, [r"ph\.?d", r"doctorate", r"\bdoctoral\b"]),
    (DegreeLevel.MASTER, [r"master", r"\bm\.sc\b", r"\bmsc\b", r"\bmba\b"]),
    (DegreeLevel.BACHELOR, [r"bachelor", r"\bb\.sc\b", r"\bbsc\b", r"\bbs\b", r"\bba\b"]),
    (DegreeLevel.DIPLOMA, [r"diploma", r"associate", r"foundation"]),
]

FIELD_SYNONYMS = {
    "cs": "computer_science",
    "comp sci": "computer_science",
    "computer science": "computer_science",
    "software engineering": "software_engineering",
    "software engineer": "software_engineering",
    "information systems": "information_systems",
    "information system": "information_systems",
    "information technology": "information_technology",
    "it": "information_technology",
    "business administration": "business_administration",
    "business admin": "business_administration",
    "business": "business",
    "economics": "economics",
    "engineering": "engineering",
    "electrical engineering": "electrical_engineering",
    "mechanical engineering": "mechanical_engineering",
    "civil engineering": "civil_engineering",
    "industrial engineering": "industrial_engineering",
    "computer engineering": "computer_engineering",
    "data science": "data_science",
    "artificial intelligence": "artificial_intelligence",
    "ai": "artificial_intelligence",
    "machine learning": "machine_learning",
    "information security": "information_security",
    "cyber security": "cyber_security",
    "cybersecurity": "cyber_security",
    "accounting": "accounting",
    "finance": "finance",
    "marketing": "marketing",
    "human resources": "human_resources",
}

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def allowed_degree_levels(required: DegreeLevel) -> list[DegreeLevel]:
    """The required level and everything above it."""
    return DEGREE_ORDER[DEGREE_ORDER.index(required):]


def meets_degree(candidate_level: Optional[DegreeLevel], required: DegreeLevel) -> bool:
    return candidate_level is not None and candidate_level.rank >= required.rank


def parse_degree_level(value: Union[DegreeLevel, str, None]) -> Optional[DegreeLevel]:
    """Parse an enum member, enum name or free-text degree. ``None`` if unrecognised."""
    if isinstance(value, DegreeLevel):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    upper = value.strip().upper()
    if upper in DegreeLevel.__members__:
        return DegreeLevel[upper]
    for level, patterns in DEGREE_PATTERNS:
        if any(re.search(pattern, value, re.IGNORECASE) for pattern in patterns):
            return level
    return None


def format_degree_level(level: DegreeLevel) -> str:
    return DEGREE_LABELS.get(level, level.value)


def _clean(value: str) -> str:
    return _WHITESPACE.sub(" ", _NON_ALNUM.sub(" ", value.lower())).strip()


def normalize_field_of_study(value: Optional[str]) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    cleaned = _clean(value)
    if not cleaned:
        return None
    return FIELD_SYNONYMS.get(cleaned) or cleaned.replace(" ", "_")


def fields_match(candidate_field: Optional[str], target_field: Optional[str]) -> bool:
    if not candidate_field or not target_field:
        return False
    if candidate_field == target_field:
        return True
    return target_field in candidate_field or candidate_field in target_field


class ExperienceBand(str, enum.Enum):
    STUDENT_FRESH = "STUDENT_FRESH"
    JUNIOR = "JUNIOR"
    MID = "MID"
    SENIOR = "SENIOR"


# (exclusive lower, inclusive upper) years of experience
EXPERIENCE_BAND_YEARS = {
    ExperienceBand.STUDENT_FRESH: (None, 1),
    ExperienceBand.JUNIOR: (1, 3),
    ExperienceBand.MID: (3, 6),
    ExperienceBand.SENIOR: (6, None),
}


def experience_band(years: Optional[float]) -> Optional[ExperienceBand]:
    if years is None:
        return None
    for band, (lower, upper) in EXPERIENCE_BAND_YEARS.items():
        if (lower is None or years > lower) and (upper is None or years <= upper):
            return band
    return None
