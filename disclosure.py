"""What a recruiter may see of a candidate.

Locked (no ``CvUnlock`` row): the display name is replaced by a stable
pseudonym, contact details are withheld, employer and salary are hidden.
Unlocked: identity and contact are shown. In both states the candidate's own
hide-employer and hide-salary flags still apply.
"""
import hashlib
import hmac
from typing import Optional

from pydantic import BaseModel, ConfigDict

from education import experience_band
from schemas import CandidateCard, CandidateDetail, ContactDetails, SalaryRange
from settings import Settings


class DisclosurePolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    secret: str = "change-me"
    label_prefix: str = "Candidate"
    label_length: int = 6
    hidden_employer_label: str = "Hidden"

    @classmethod
    def from_settings(cls, settings: Settings) -> "DisclosurePolicy":
        return cls(
            secret=settings.anonymization_secret,
            label_prefix=settings.anonymized_label_prefix,
            label_length=settings.anonymized_label_length,
            hidden_employer_label=settings.hidden_employer_label,
        )


def anonymized_label(name: Optional[str], candidate_id: int, policy: DisclosurePolicy) -> str:
    """Keyed hash of name and id: stable per candidate, not reversible to the name."""
    message = f"{(name or '').strip()}:{candidate_id}".encode("utf-8")
    digest = hmac.new(policy.secret.encode("utf-8"), message, hashlib.sha256).hexdigest()
    return f"{policy.label_prefix} {digest[: policy.label_length].upper()}"


def _employer(candidate, unlocked: bool, policy: DisclosurePolicy) -> Optional[str]:
    if not unlocked or candidate.hide_current_employer:
        return policy.hidden_employer_label if candidate.current_company else None
    return candidate.current_company


def _salary(candidate, unlocked: bool) -> SalaryRange:
    if not unlocked or candidate.hide_salary_history:
        return SalaryRange()
    return SalaryRange(min=candidate.desired_salary_min, max=candidate.desired_salary_max)


def _card_fields(candidate, unlocked: bool, policy: DisclosurePolicy) -> dict:
    return {
        "id": candidate.id,
        "display_name": (
            candidate.display_name if unlocked else anonymized_label(candidate.display_name, candidate.id, policy)
        ),
        "current_title": candidate.current_title,
        "current_company": _employer(candidate, unlocked, policy),
        "location": candidate.location,
        "years_experience": candidate.years_experience,
        "skills": list(candidate.skills),
        "summary": candidate.summary,
        "availability_status": candidate.availability_status,
        "highest_degree_level": candidate.highest_degree_level,
        "primary_field_of_study": candidate.primary_field_of_study,
        "graduation_year": candidate.graduation_year,
        "experience_band": experience_band(candidate.years_experience),
        "desired_salary": _salary(candidate, unlocked),
        "is_unlocked": unlocked,
    }


def present_candidate_card(candidate, unlocked: bool, policy: DisclosurePolicy) -> CandidateCard:
    """Listing view for search results and recommendations."""
    return CandidateCard(**_card_fields(candidate, unlocked, policy))


def present_candidate_detail(candidate, unlocked: bool, policy: DisclosurePolicy) -> CandidateDetail:
    contact = None
    if unlocked:
        contact = ContactDetails(
            full_name=candidate.display_name,
            email=candidate.contact_email,
            phone=candidate.contact_phone,
            linkedin=candidate.linkedin_url,
            website=candidate.website_url,
        )
    return CandidateDetail(
        **_card_fields(candidate, unlocked, policy),
        normalized_field_of_study=candidate.normalized_field_of_study,
        preferred_locations=list(candidate.preferred_locations),
        preferred_industries=list(candidate.preferred_industries),
        desired_roles=list(candidate.desired_roles or []),
        contact=contact,
    )
