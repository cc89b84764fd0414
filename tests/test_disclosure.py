from types import SimpleNamespace

from disclosure import DisclosurePolicy, anonymized_label, present_candidate_card, present_candidate_detail

POLICY = DisclosurePolicy(secret="test-secret")


def make_candidate(**overrides):
    values = {
        "id": 7,
        "display_name": "Jane Doe",
        "current_title": "Backend Engineer",
        "current_company": "Acme Corp",
        "location": "Berlin",
        "years_experience": 5.0,
        "skills": ["Python", "PostgreSQL"],
        "summary": "Builds APIs.",
        "availability_status": "open",
        "highest_degree_level": "MASTER",
        "primary_field_of_study": "Computer Science",
        "normalized_field_of_study": "computer_science",
        "graduation_year": 2018,
        "desired_salary_min": 70000,
        "desired_salary_max": 90000,
        "hide_current_employer": False,
        "hide_salary_history": False,
        "contact_email": "jane@example.com",
        "contact_phone": "+49 30 1234567",
        "linkedin_url": "https://www.linkedin.com/in/jane",
        "website_url": None,
        "preferred_locations": ["Hamburg"],
        "preferred_industries": ["Fintech"],
        "desired_roles": ["Staff Engineer"],
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_anonymized_label_is_stable_and_never_the_real_name():
    label = anonymized_label("Jane Doe", 7, POLICY)

    assert label == anonymized_label("Jane Doe", 7, POLICY)
    assert label != "Jane Doe"
    assert label.startswith("Candidate ")
    assert len(label) == len("Candidate ") + 6
    assert label != anonymized_label("Jane Doe", 8, POLICY)
    assert label != anonymized_label("Jane Doe", 7, DisclosurePolicy(secret="another-secret"))


def test_label_format_is_configurable():
    policy = DisclosurePolicy(secret="s", label_prefix="Talent", label_length=8)
    label = anonymized_label("Jane Doe", 7, policy)
    assert label.startswith("Talent ")
    assert len(label.split(" ")[1]) == 8


def test_locked_card_hides_identity_employer_and_salary():
    card = present_candidate_card(make_candidate(), unlocked=False, policy=POLICY)

    assert card.display_name != "Jane Doe"
    assert card.display_name == anonymized_label("Jane Doe", 7, POLICY)
    assert card.current_company == "Hidden"
    assert card.desired_salary.min is None
    assert card.desired_salary.max is None
    assert card.is_unlocked is False
    # Professional signal stays visible
    assert card.skills == ["Python", "PostgreSQL"]
    assert card.current_title == "Backend Engineer"


def test_locked_detail_has_no_contact():
    detail = present_candidate_detail(make_candidate(), unlocked=False, policy=POLICY)

    assert detail.contact is None
    assert detail.display_name != "Jane Doe"
    assert detail.preferred_locations == ["Hamburg"]


def test_unlocked_detail_discloses_identity_and_contact():
    detail = present_candidate_detail(make_candidate(), unlocked=True, policy=POLICY)

    assert detail.display_name == "Jane Doe"
    assert detail.is_unlocked is True
    assert detail.current_company == "Acme Corp"
    assert detail.desired_salary.min == 70000
    assert detail.desired_salary.max == 90000
    assert detail.contact.full_name == "Jane Doe"
    assert detail.contact.email == "jane@example.com"
    assert detail.contact.linkedin == "https://www.linkedin.com/in/jane"


def test_candidate_privacy_flags_apply_after_unlock():
    candidate = make_candidate(hide_current_employer=True, hide_salary_history=True)
    detail = present_candidate_detail(candidate, unlocked=True, policy=POLICY)

    assert detail.display_name == "Jane Doe"
    assert detail.current_company == "Hidden"
    assert detail.desired_salary.min is None
    assert detail.contact is not None


def test_missing_employer_is_not_invented():
    card = present_candidate_card(make_candidate(current_company=None), unlocked=False, policy=POLICY)
    assert card.current_company is None
