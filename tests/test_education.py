import pytest

from education import (
    DEGREE_ORDER,
    DegreeLevel,
    ExperienceBand,
    allowed_degree_levels,
    experience_band,
    fields_match,
    format_degree_level,
    meets_degree,
    normalize_field_of_study,
    parse_degree_level,
)


def test_allowed_degree_levels_include_required_and_above():
    assert allowed_degree_levels(DegreeLevel.BACHELOR) == [
        DegreeLevel.BACHELOR,
        DegreeLevel.MASTER,
        DegreeLevel.PHD,
    ]
    assert allowed_degree_levels(DegreeLevel.PHD) == [DegreeLevel.PHD]
    assert allowed_degree_levels(DegreeLevel.DIPLOMA) == DEGREE_ORDER


@pytest.mark.parametrize("required", DEGREE_ORDER)
def test_degree_gate_is_monotonic(required):
    """A candidate passes exactly when their level ranks at or above the requirement."""
    allowed = allowed_degree_levels(required)
    for level in DEGREE_ORDER:
        assert meets_degree(level, required) == (level in allowed)
        assert meets_degree(level, required) == (level.rank >= required.rank)


def test_missing_candidate_degree_never_meets_requirement():
    assert meets_degree(None, DegreeLevel.DIPLOMA) is False


@pytest.mark.parametrize(
    "raw, expected",
    [
        (DegreeLevel.MASTER, DegreeLevel.MASTER),
        ("BACHELOR", DegreeLevel.BACHELOR),
        ("bachelor", DegreeLevel.BACHELOR),
        ("Bachelor of Science", DegreeLevel.BACHELOR),
        ("BSc in Computer Science", DegreeLevel.BACHELOR),
        ("MSc", DegreeLevel.MASTER),
        ("MBA", DegreeLevel.MASTER),
        ("PhD in Physics", DegreeLevel.PHD),
        ("Master of Philosophy (PhD track)", DegreeLevel.PHD),
        ("Associate degree", DegreeLevel.DIPLOMA),
        ("a strong portfolio", None),
        ("", None),
        (None, None),
        (42, None),
    ],
)
def test_parse_degree_level(raw, expected):
    assert parse_degree_level(raw) == expected


def test_format_degree_level():
    assert format_degree_level(DegreeLevel.PHD) == "PhD"
    assert format_degree_level(DegreeLevel.BACHELOR) == "Bachelor"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Computer Science", "computer_science"),
        ("  comp. sci ", "computer_science"),
        ("CS", "computer_science"),
        ("Cyber-Security", "cyber_security"),
        ("Applied Mathematics!", "applied_mathematics"),
        ("   ", None),
        (None, None),
    ],
)
def test_normalize_field_of_study(raw, expected):
    assert normalize_field_of_study(raw) == expected


def test_fields_match_on_equality_or_substring():
    assert fields_match("computer_science", "computer_science")
    assert fields_match("software_engineering", "engineering")
    assert fields_match("engineering", "electrical_engineering")
    assert not fields_match("economics", "computer_science")
    assert not fields_match(None, "computer_science")
    assert not fields_match("computer_science", "")


@pytest.mark.parametrize(
    "years, expected",
    [
        (None, None),
        (0, ExperienceBand.STUDENT_FRESH),
        (1, ExperienceBand.STUDENT_FRESH),
        (1.5, ExperienceBand.JUNIOR),
        (3, ExperienceBand.JUNIOR),
        (6, ExperienceBand.MID),
        (6.5, ExperienceBand.SENIOR),
    ],
)
def test_experience_band(years, expected):
    assert experience_band(years) == expected
