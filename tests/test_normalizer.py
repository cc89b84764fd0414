from education import DegreeLevel
from normalizer import (
    DEFAULT_WEIGHTS,
    SUMMARY_MAX_CHARS,
    build_candidate_filter,
    normalize_analysis,
    unique_list,
)
from schemas import AnalyzerWeights, ExtractedJobRequirements


def test_unique_list_trims_and_dedupes_case_insensitively():
    assert unique_list(["React", " react ", "Node", "", None, 3, "NODE"]) == ("React", "Node")
    assert unique_list("Python") == ("Python",)
    assert unique_list(None) == ()


def test_normalize_camel_case_payload():
    requirements = normalize_analysis(
        {
            "mustHaveSkills": ["React", "react", "Node"],
            "niceToHaveSkills": ["GraphQL"],
            "roleKeywords": ["frontend"],
            "yearsExpMin": 3,
            "yearsExpMax": "6",
            "summary": "  Build the web app.  ",
            "requiredDegreeLevel": "Bachelor's degree",
            "preferredDegreeLevels": ["master", "MASTER"],
            "requiredFieldsOfStudy": ["Computer Science"],
            "preferredFieldsOfStudy": ["Software Engineering"],
            "weights": {"skillWeight": 5},
            "modelInfo": {"provider": "openrouter"},
        }
    )

    assert requirements.must_have_skills == ("React", "Node")
    assert requirements.nice_to_have_skills == ("GraphQL",)
    assert requirements.years_exp_min == 3
    assert requirements.years_exp_max == 6
    assert requirements.summary == "Build the web app."
    assert requirements.required_degree_level == DegreeLevel.BACHELOR
    assert requirements.preferred_degree_levels == (DegreeLevel.MASTER,)
    assert requirements.required_fields_of_study == ("computer_science",)
    assert requirements.preferred_fields_of_study == ("software_engineering",)
    assert requirements.weights == {**DEFAULT_WEIGHTS, "skillWeight": 5.0}
    assert requirements.model_info == {"provider": "openrouter"}
    assert requirements.invalid_dimensions == ()


def test_normalize_accepts_snake_case_and_models():
    snake = normalize_analysis({"must_have_skills": ["Go"], "years_exp_min": 2})
    assert snake.must_have_skills == ("Go",)
    assert snake.years_exp_min == 2

    model = normalize_analysis(
        ExtractedJobRequirements(mustHaveSkills=["Go"], weights=AnalyzerWeights(locationWeight=0))
    )
    assert model.must_have_skills == ("Go",)
    assert model.weights["locationWeight"] == 0.0
    assert model.weights["skillWeight"] == DEFAULT_WEIGHTS["skillWeight"]


def test_invalid_experience_bound_is_treated_as_absent():
    requirements = normalize_analysis({"yearsExpMin": "lots", "yearsExpMax": 8})

    assert requirements.years_exp_min is None
    assert requirements.years_exp_max == 8
    assert "years_exp_min" in requirements.invalid_dimensions


def test_inverted_experience_range_drops_both_bounds():
    requirements = normalize_analysis({"yearsExpMin": 9, "yearsExpMax": 2})

    assert requirements.years_exp_min is None
    assert requirements.years_exp_max is None
    assert set(requirements.invalid_dimensions) >= {"years_exp_min", "years_exp_max"}


def test_zero_minimum_experience_is_no_bound():
    requirements = normalize_analysis({"yearsExpMin": 0})
    assert requirements.years_exp_min is None
    assert requirements.invalid_dimensions == ()


def test_negative_and_non_finite_bounds_are_invalid():
    requirements = normalize_analysis({"yearsExpMin": -1, "yearsExpMax": float("inf")})
    assert requirements.years_exp_min is None
    assert requirements.years_exp_max is None
    assert set(requirements.invalid_dimensions) == {"years_exp_min", "years_exp_max"}


def test_unknown_degree_level_is_ignored_not_fatal():
    requirements = normalize_analysis(
        {"requiredDegreeLevel": "a good attitude", "preferredDegreeLevels": ["PhD", "wizardry"]}
    )

    assert requirements.required_degree_level is None
    assert requirements.preferred_degree_levels == (DegreeLevel.PHD,)
    assert "required_degree_level" in requirements.invalid_dimensions
    assert "preferred_degree_levels" in requirements.invalid_dimensions


def test_invalid_weights_fall_back_per_key():
    requirements = normalize_analysis({"weights": {"skillWeight": "heavy", "locationWeight": 4}})

    assert requirements.weights["skillWeight"] == DEFAULT_WEIGHTS["skillWeight"]
    assert requirements.weights["locationWeight"] == 4.0
    assert "weights" in requirements.invalid_dimensions

    not_a_mapping = normalize_analysis({"weights": "balanced"})
    assert not_a_mapping.weights == DEFAULT_WEIGHTS
    assert "weights" in not_a_mapping.invalid_dimensions


def test_empty_or_garbage_payload_yields_empty_requirements():
    for raw in (None, {}, ["not", "an", "object"]):
        requirements = normalize_analysis(raw)
        assert requirements.must_have_skills == ()
        assert requirements.required_degree_level is None
        assert requirements.weights == DEFAULT_WEIGHTS


def test_summary_is_truncated():
    requirements = normalize_analysis({"summary": "x" * (SUMMARY_MAX_CHARS + 50)})
    assert len(requirements.summary) == SUMMARY_MAX_CHARS


def test_build_candidate_filter():
    requirements = normalize_analysis(
        {
            "requiredDegreeLevel": "BACHELOR",
            "requiredFieldsOfStudy": ["Computer Science"],
            "yearsExpMin": 3,
            "yearsExpMax": 6,
        }
    )

    onsite = build_candidate_filter(requirements, " Berlin ", remote_allowed=False)
    assert onsite.location == "Berlin"
    assert onsite.min_years == 3
    assert onsite.max_years == 6
    assert onsite.allowed_degree_levels == (DegreeLevel.BACHELOR, DegreeLevel.MASTER, DegreeLevel.PHD)
    assert DegreeLevel.DIPLOMA not in onsite.allowed_degree_levels
    assert onsite.fields_of_study == ("computer_science",)

    remote = build_candidate_filter(requirements, "Berlin", remote_allowed=True)
    assert remote.location is None


def test_build_candidate_filter_without_requirements_filters_nothing():
    candidate_filter = build_candidate_filter(normalize_analysis({}), None, remote_allowed=False)

    assert candidate_filter.location is None
    assert candidate_filter.min_years is None
    assert candidate_filter.max_years is None
    assert candidate_filter.allowed_degree_levels is None
    assert candidate_filter.fields_of_study == ()


def test_analyzer_contract_lets_malformed_dimensions_through():
    extracted = ExtractedJobRequirements.model_validate(
        {
            "mustHaveSkills": ["React", "Node"],
            "yearsExpMin": "3-5",
            "requiredDegreeLevel": "BACHELOR",
            "preferredDegreeLevels": ["MASTER", 7],
            "weights": {"skillWeight": "high", "locationWeight": 2},
        }
    )

    requirements = normalize_analysis(extracted)

    assert requirements.must_have_skills == ("React", "Node")
    assert requirements.years_exp_min is None
    assert requirements.required_degree_level == DegreeLevel.BACHELOR
    assert requirements.preferred_degree_levels == (DegreeLevel.MASTER,)
    assert requirements.weights["skillWeight"] == DEFAULT_WEIGHTS["skillWeight"]
    assert requirements.weights["locationWeight"] == 2.0
    assert {"years_exp_min", "weights", "preferred_degree_levels"} <= set(requirements.invalid_dimensions)


def test_analyzer_contract_accepts_non_object_weights():
    extracted = ExtractedJobRequirements.model_validate({"mustHaveSkills": ["Go"], "weights": "balanced"})

    requirements = normalize_analysis(extracted)
    assert requirements.must_have_skills == ("Go",)
    assert requirements.weights == DEFAULT_WEIGHTS
    assert "weights" in requirements.invalid_dimensions
