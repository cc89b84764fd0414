import pytest
from sqlalchemy.orm import Session
from unittest.mock import patch

import errors
import logic
import models
from conftest import TestSessionLocal, create_test_candidate, create_test_recruiter
from credits import SqlCreditLedger, unlock_candidate, unlock_reference
from settings import Settings


def unlock_rows(db: Session, recruiter_id: int):
    return db.query(models.CvUnlock).filter(models.CvUnlock.recruiter_id == recruiter_id).all()


def spend_entries(db: Session, recruiter_id: int):
    return (
        db.query(models.CreditLedgerEntry)
        .filter(
            models.CreditLedgerEntry.recruiter_id == recruiter_id,
            models.CreditLedgerEntry.entry_type == models.LedgerEntryType.SPEND_UNLOCK,
        )
        .all()
    )


def test_first_unlock_debits_one_credit(db_session: Session):
    recruiter = create_test_recruiter(db_session, credits=5)
    candidate = create_test_candidate(db_session)
    ledger = SqlCreditLedger(db_session)

    result = unlock_candidate(db_session, ledger, recruiter.id, candidate.id)

    assert result.already_unlocked is False
    assert result.balance == 4
    assert ledger.balance(recruiter.id) == 4

    [entry] = spend_entries(db_session, recruiter.id)
    assert entry.amount == -1
    assert entry.reference == unlock_reference(recruiter.id, candidate.id)

    audit = db_session.query(models.AuditLog).filter(models.AuditLog.action == "cv_unlocked").one()
    assert audit.recruiter_id == recruiter.id
    assert audit.entity_id == str(candidate.id)


def test_unlock_is_idempotent(db_session: Session):
    recruiter = create_test_recruiter(db_session, credits=5)
    candidate = create_test_candidate(db_session)
    ledger = SqlCreditLedger(db_session)

    first = unlock_candidate(db_session, ledger, recruiter.id, candidate.id)
    second = unlock_candidate(db_session, ledger, recruiter.id, candidate.id)

    assert first.already_unlocked is False
    assert second.already_unlocked is True
    assert second.balance == 4
    assert len(unlock_rows(db_session, recruiter.id)) == 1
    assert len(spend_entries(db_session, recruiter.id)) == 1


def test_unlock_without_credits_leaves_no_trace(db_session: Session):
    recruiter = create_test_recruiter(db_session, credits=0)
    candidate = create_test_candidate(db_session)
    ledger = SqlCreditLedger(db_session)

    with pytest.raises(errors.InsufficientCredits) as exc_info:
        unlock_candidate(db_session, ledger, recruiter.id, candidate.id)

    assert exc_info.value.details == {"balance": 0, "required": 1}
    assert unlock_rows(db_session, recruiter.id) == []
    assert spend_entries(db_session, recruiter.id) == []
    assert db_session.query(models.AuditLog).count() == 0


def test_unlocks_are_per_recruiter(db_session: Session):
    first = create_test_recruiter(db_session, email="first@example.com", credits=2)
    second = create_test_recruiter(db_session, email="second@example.com", credits=2)
    candidate = create_test_candidate(db_session)
    ledger = SqlCreditLedger(db_session)

    unlock_candidate(db_session, ledger, first.id, candidate.id)
    result = unlock_candidate(db_session, ledger, second.id, candidate.id)

    assert result.already_unlocked is False
    assert ledger.balance(first.id) == 1
    assert ledger.balance(second.id) == 1


def test_concurrent_unlock_loser_is_not_charged(db_session: Session):
    recruiter = create_test_recruiter(db_session, credits=3)
    candidate = create_test_candidate(db_session)

    # Another request commits the unlock after our existence check ran
    other = TestSessionLocal()
    try:
        other.add(models.CvUnlock(recruiter_id=recruiter.id, candidate_id=candidate.id))
        other.commit()
    finally:
        other.close()

    ledger = SqlCreditLedger(db_session)
    with patch("credits.crud.get_unlock", side_effect=[None, object()]):
        result = unlock_candidate(db_session, ledger, recruiter.id, candidate.id)

    assert result.already_unlocked is True
    assert result.balance == 3
    assert spend_entries(db_session, recruiter.id) == []


def test_grants_are_idempotent_per_reference(db_session: Session):
    recruiter = create_test_recruiter(db_session, credits=0)
    ledger = SqlCreditLedger(db_session)

    assert ledger.grant_credits(recruiter.id, 10, reference="welcome") is True
    assert ledger.grant_credits(recruiter.id, 10, reference="welcome") is False
    assert ledger.purchase_credits(recruiter.id, 5, reference="order-1") is True
    db_session.commit()

    assert ledger.balance(recruiter.id) == 15
    entries = ledger.recent_entries(recruiter.id)
    assert [entry.entry_type for entry in entries] == [
        models.LedgerEntryType.PURCHASE,
        models.LedgerEntryType.GRANT,
    ]


def test_debit_for_unknown_recruiter(db_session: Session):
    with pytest.raises(errors.NotFound):
        SqlCreditLedger(db_session).debit(12345, 1, "unlock:12345:1")


@pytest.mark.asyncio
async def test_unlock_discloses_profile_hidden_mid_request(db_session: Session):
    recruiter = create_test_recruiter(db_session, credits=2)
    candidate = create_test_candidate(db_session, display_name="Jane Doe")

    def hide_then_unlock(db, ledger, recruiter_id, candidate_id):
        other = TestSessionLocal()
        try:
            other.query(models.CandidateProfile).filter(models.CandidateProfile.id == candidate_id).update(
                {"is_visible": False}
            )
            other.commit()
        finally:
            other.close()
        return unlock_candidate(db, ledger, recruiter_id, candidate_id)

    with patch("logic.unlock_candidate", side_effect=hide_then_unlock):
        response = await logic.unlock(db_session, recruiter.id, candidate.id, Settings())

    assert response.already_unlocked is False
    assert response.balance == 1
    assert response.candidate.display_name == "Jane Doe"
    assert response.candidate.contact.email == "jane.doe@example.com"
