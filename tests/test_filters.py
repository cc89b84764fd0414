import pytest
from pydantic import ValidationError as PydanticValidationError

import errors
from education import DegreeLevel, ExperienceBand
from filters import MAX_SALARY, SearchFilter, SortBy, build_search_filter


def test_query_string_values_are_parsed():
    search = build_search_filter(
        query="  python  ",
        skills="Python, Django ,,",
        location="Berlin",
        industry="Fintech",
        min_exp="2.5",
        max_salary="90000.9",
    )

    assert search.query == "python"
    assert search.skills == ("Python", "Django")
    assert search.locations == ("Berlin",)
    assert search.industries == ("Fintech",)
    assert search.min_exp == 2.5
    assert search.max_salary == 90000
    assert search.page == 1
    assert search.limit == 50


@pytest.mark.parametrize(
    "params, field",
    [
        ({"min_exp": "abc"}, "min_exp"),
        ({"max_salary": "inf"}, "max_salary"),
        ({"min_exp": "-1"}, "min_exp"),
        ({"max_exp": "1000"}, "max_exp"),
        ({"max_salary": "1e30"}, "max_salary"),
        ({"min_salary": "99999999999999999999999"}, "min_salary"),
    ],
)
def test_malformed_or_out_of_range_numbers_are_rejected(params, field):
    with pytest.raises(errors.ValidationError) as exc_info:
        build_search_filter(**params)

    assert exc_info.value.details == {"field": field}


def test_inverted_range_is_rejected():
    with pytest.raises(errors.ValidationError) as exc_info:
        build_search_filter(min_exp="8", max_exp="2")

    assert "min_exp must not exceed max_exp" in exc_info.value.message


def test_largest_salary_is_accepted():
    assert build_search_filter(max_salary=str(MAX_SALARY)).max_salary == MAX_SALARY


def test_advanced_filter_normalizes_its_inputs():
    search = SearchFilter(
        fields_of_study=["Computer Science", "CS", "  "],
        degree_levels=["MASTER"],
        experience_bands=["JUNIOR", "MID"],
        sort_by="experience",
        page=3,
        limit=10,
    )

    assert search.fields_of_study == ("computer_science",)
    assert search.degree_levels == (DegreeLevel.MASTER,)
    assert search.experience_bands == (ExperienceBand.JUNIOR, ExperienceBand.MID)
    assert search.sort_by == SortBy.EXPERIENCE
    assert search.offset == 20


@pytest.mark.parametrize(
    "values",
    [
        {"graduation_year_min": 2020, "graduation_year_max": 2010},
        {"graduation_year_min": 1200},
        {"limit": 51},
        {"page": 0},
        {"degree_levels": ["HIGH_SCHOOL"]},
        {"unknown": 1},
    ],
)
def test_advanced_filter_rejects_bad_values(values):
    with pytest.raises(PydanticValidationError):
        SearchFilter(**values)
