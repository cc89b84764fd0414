"""Authentication and capability checks for recruiter endpoints.

``get_current_recruiter``:
1. Extracts the ``Authorization: Bearer <id_token>`` header.
2. Downloads / caches the JSON Web Key Set (JWKS) for the Cognito User Pool.
3. Verifies signature, expiration, audience and issuer.
4. Creates or fetches a ``models.Recruiter`` row on-the-fly.

With ``AUTH_ENABLED`` off every request runs as a local development recruiter
that is created on first use with a one-time credit grant.

``require_matching_recruiter`` is the dependency the matching endpoints use;
it asks the configured ``CapabilityChecker`` whether the caller may use them.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Optional, Protocol

import httpx
import structlog
from fastapi import Depends, Request
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.orm import Session

import crud
import errors
import models
from credits import SqlCreditLedger
from database import get_db
from settings import Settings, get_settings

logger = structlog.get_logger(__name__)

LOCAL_DEV_EMAIL = "local@example.com"
LOCAL_DEV_SUB = "local-dev"
LOCAL_DEV_GRANT_REFERENCE = "local-dev-grant"


class TokenPayload(BaseModel):
    sub: str
    email: Optional[str] = None
    exp: int
    aud: str


class AuthSettings(BaseModel):
    region: str
    user_pool_id: str
    client_id: str

    @property
    def issuer(self) -> str:  # cognito issuer URL
        return f"https://cognito-idp.{self.region}.amazonaws.com/{self.user_pool_id}"

    @property
    def jwks_url(self) -> str:
        return f"{self.issuer}/.well-known/jwks.json"


@lru_cache
def _load_auth_settings() -> AuthSettings:
    settings = get_settings()
    if not settings.cognito_user_pool_id or not settings.cognito_app_client_id:
        raise RuntimeError("Cognito auth enabled but COGNITO_USER_POOL_ID / COGNITO_APP_CLIENT_ID are not set")
    return AuthSettings(
        region=settings.aws_region or "us-east-1",
        user_pool_id=settings.cognito_user_pool_id,
        client_id=settings.cognito_app_client_id,
    )


@lru_cache
def _get_jwks():
    auth_settings = _load_auth_settings()
    logger.info("Fetching JWKS", jwks_url=auth_settings.jwks_url)
    resp = httpx.get(auth_settings.jwks_url, timeout=10)
    resp.raise_for_status()
    return resp.json()


def verify_token(token: str) -> TokenPayload:
    """Verify a Cognito JWT and return its payload.

    Raises ``errors.Unauthorized`` on failure.
    """
    auth_settings = _load_auth_settings()
    jwks = _get_jwks()

    try:
        payload = jwt.decode(
            token,
            jwks,
            algorithms=["RS256"],
            audience=auth_settings.client_id,
            issuer=auth_settings.issuer,
            options={"verify_at_hash": False},
        )
        return TokenPayload.model_validate(payload)
    except JWTError as exc:
        logger.warning("JWT verification failed", exc=str(exc))
        raise errors.Unauthorized("Invalid token")


# Helper to extract Authorization header (works with FastAPI DI)
def _get_authorization_header(request: Request) -> Optional[str]:
    return request.headers.get("Authorization")


def _local_dev_recruiter(db: Session, settings: Settings) -> models.Recruiter:
    recruiter = crud.get_recruiter_by_email(db, LOCAL_DEV_EMAIL)
    if recruiter is None:
        recruiter = crud.create_recruiter(
            db,
            email=LOCAL_DEV_EMAIL,
            cognito_sub=LOCAL_DEV_SUB,
            has_enterprise_plan=True,
        )
        SqlCreditLedger(db).grant_credits(recruiter.id, settings.local_dev_credits, reference=LOCAL_DEV_GRANT_REFERENCE)
        db.commit()
        logger.info("Created local development recruiter", recruiter_id=recruiter.id)
    return recruiter


# --- FastAPI dependencies ---
async def get_current_recruiter(
    authorization: Annotated[Optional[str], Depends(_get_authorization_header)],
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> models.Recruiter:
    if not settings.auth_enabled:
        return _local_dev_recruiter(db, settings)

    if not authorization or not authorization.lower().startswith("bearer "):
        raise errors.Unauthorized("Missing bearer token")

    token = authorization.split(" ", 1)[1]
    payload = verify_token(token)

    # Upsert recruiter in DB
    email = payload.email or payload.sub
    recruiter = crud.get_recruiter_by_email(db, email)
    if not recruiter:
        recruiter = crud.create_recruiter(db, email=email, cognito_sub=payload.sub)
        db.commit()
    return recruiter


class CapabilityChecker(Protocol):
    def can_use_matching(self, recruiter: models.Recruiter) -> bool: ...


class RoleCapabilityChecker:
    """Super admins, and recruiters on an enterprise plan, may use matching."""

    def can_use_matching(self, recruiter: models.Recruiter) -> bool:
        if recruiter.role == models.RecruiterRole.SUPER_ADMIN:
            return True
        return recruiter.role == models.RecruiterRole.RECRUITER and bool(recruiter.has_enterprise_plan)


def get_capability_checker() -> CapabilityChecker:
    return RoleCapabilityChecker()


async def require_matching_recruiter(
    recruiter: models.Recruiter = Depends(get_current_recruiter),
    checker: CapabilityChecker = Depends(get_capability_checker),
) -> models.Recruiter:
    if not checker.can_use_matching(recruiter):
        logger.warning("Matching access denied", recruiter_id=recruiter.id, role=recruiter.role)
        raise errors.Forbidden()
    return recruiter
