"""Recruiter credit ledger and the CV unlock operation.

The ledger is append-only; a recruiter's balance is the sum of the amounts
of their entries. ``unlock_candidate`` debits exactly one credit the first time a
recruiter unlocks a candidate and nothing afterwards.
"""
from __future__ import annotations

from typing import Optional, Protocol

import structlog
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import crud
import errors
import models

logger = structlog.get_logger(__name__)

UNLOCK_COST = 1


class UnlockResult(BaseModel):
    already_unlocked: bool
    balance: int


class CreditLedger(Protocol):
    def balance(self, recruiter_id: int) -> int: ...

    def debit(self, recruiter_id: int, amount: int, reference: str) -> int: ...


class SqlCreditLedger:
    """Ledger stored in ``credit_ledger``. Writes join the caller's transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def balance(self, recruiter_id: int) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(models.CreditLedgerEntry.amount), 0))
            .filter(models.CreditLedgerEntry.recruiter_id == recruiter_id)
            .scalar()
        )
        return int(total or 0)

    def debit(self, recruiter_id: int, amount: int, reference: str) -> int:
        """Append a spend entry and return the new balance. Does not commit."""
        # Lock the recruiter row so concurrent debits see each other's entries
        recruiter = (
            self.db.query(models.Recruiter)
            .filter(models.Recruiter.id == recruiter_id)
            .with_for_update()
            .one_or_none()
        )
        if recruiter is None:
            raise errors.NotFound("Recruiter not found")

        balance = self.balance(recruiter_id)
        if balance < amount:
            raise errors.InsufficientCredits(balance=balance, required=amount)

        self.db.add(
            models.CreditLedgerEntry(
                recruiter_id=recruiter_id,
                entry_type=models.LedgerEntryType.SPEND_UNLOCK,
                amount=-amount,
                reference=reference,
            )
        )
        self.db.flush()
        return balance - amount

    def _credit(self, recruiter_id: int, entry_type: models.LedgerEntryType, amount: int, reference: Optional[str]) -> bool:
        if reference:
            existing = (
                self.db.query(models.CreditLedgerEntry.id)
                .filter(
                    models.CreditLedgerEntry.recruiter_id == recruiter_id,
                    models.CreditLedgerEntry.entry_type == entry_type,
                    models.CreditLedgerEntry.reference == reference,
                )
                .first()
            )
            if existing:
                return False
        self.db.add(
            models.CreditLedgerEntry(
                recruiter_id=recruiter_id,
                entry_type=entry_type,
                amount=amount,
                reference=reference,
            )
        )
        self.db.flush()
        return True

    def grant_credits(self, recruiter_id: int, amount: int, reference: Optional[str] = None) -> bool:
        """Add a grant; a repeated ``reference`` is a no-op. Returns whether an entry was written."""
        return self._credit(recruiter_id, models.LedgerEntryType.GRANT, amount, reference)

    def purchase_credits(self, recruiter_id: int, amount: int, reference: Optional[str] = None) -> bool:
        return self._credit(recruiter_id, models.LedgerEntryType.PURCHASE, amount, reference)

    def recent_entries(self, recruiter_id: int, limit: int = 50):
        return (
            self.db.query(models.CreditLedgerEntry)
            .filter(models.CreditLedgerEntry.recruiter_id == recruiter_id)
            .order_by(models.CreditLedgerEntry.created_at.desc(), models.CreditLedgerEntry.id.desc())
            .limit(limit)
            .all()
        )


def unlock_reference(recruiter_id: int, candidate_id: int) -> str:
    return f"unlock:{recruiter_id}:{candidate_id}"


def unlock_candidate(db: Session, ledger: CreditLedger, recruiter_id: int, candidate_id: int) -> UnlockResult:
    """Grant permanent disclosure of one candidate to one recruiter.

    Idempotent: an existing unlock returns ``already_unlocked=True`` and is not
    charged. Otherwise the unlock row, the debit and the audit entry commit
    together or not at all. The composite primary key on ``cv_unlocks`` settles
    races between concurrent first unlocks; the loser rolls back its debit.
    """
    if crud.get_unlock(db, recruiter_id, candidate_id) is not None:
        return UnlockResult(already_unlocked=True, balance=ledger.balance(recruiter_id))

    try:
        db.add(models.CvUnlock(recruiter_id=recruiter_id, candidate_id=candidate_id))
        db.flush()
        balance = ledger.debit(recruiter_id, UNLOCK_COST, unlock_reference(recruiter_id, candidate_id))
        db.add(
            models.AuditLog(
                recruiter_id=recruiter_id,
                action="cv_unlocked",
                entity="CandidateProfile",
                entity_id=str(candidate_id),
                details={"reference": unlock_reference(recruiter_id, candidate_id)},
            )
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        if crud.get_unlock(db, recruiter_id, candidate_id) is None:
            raise
        logger.info("Concurrent unlock already recorded", recruiter_id=recruiter_id, candidate_id=candidate_id)
        return UnlockResult(already_unlocked=True, balance=ledger.balance(recruiter_id))
    except errors.InsufficientCredits:
        db.rollback()
        logger.warning("Unlock refused: insufficient credits", recruiter_id=recruiter_id, candidate_id=candidate_id)
        raise
    except Exception:
        db.rollback()
        logger.error("Unlock failed", recruiter_id=recruiter_id, candidate_id=candidate_id, exc_info=True)
        raise

    logger.info("Candidate unlocked", recruiter_id=recruiter_id, candidate_id=candidate_id, balance=balance)
    return UnlockResult(already_unlocked=False, balance=balance)
