import os

# Metrics go to stdout instead of probing for a CloudWatch agent
os.environ.setdefault("AWS_EMF_ENVIRONMENT", "Local")

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

# --- Alembic Imports ---
from alembic.config import Config
from alembic import command
# --- End Alembic Imports ---

# Import app and DB dependency function first
from main import app, get_db

import crud
import models
from auth import get_current_recruiter
from credits import SqlCreditLedger
from database import Base, set_sqlite_pragma
from education import DegreeLevel

TEST_DATABASE_URL = "sqlite:///./talent-match-test.db"

connect_args = (
    {"check_same_thread": False} if TEST_DATABASE_URL.startswith("sqlite") else {}
)
test_engine = create_engine(TEST_DATABASE_URL, connect_args=connect_args)
event.listen(test_engine, "connect", set_sqlite_pragma)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def _remove_db_files(db_path: str) -> None:
    for path in (db_path, f"{db_path}-wal", f"{db_path}-shm"):
        if os.path.exists(path):
            os.unlink(path)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create the test database from models and stamp with Alembic head."""
    db_path = TEST_DATABASE_URL.split("///")[-1]
    _remove_db_files(db_path)

    # --- Create schema directly from models --- #
    Base.metadata.create_all(bind=test_engine)

    # --- Stamp the database with the latest Alembic revision --- #
    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", TEST_DATABASE_URL)
    command.stamp(alembic_cfg, "head")

    yield  # Tests run here

    test_engine.dispose()
    _remove_db_files(db_path)


@pytest.fixture(autouse=True)
def clean_tables(setup_test_database):
    """Empty every table after each test so tests do not see each other's rows."""
    yield
    with test_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def db_session(setup_test_database):
    """Yields a SQLAlchemy session directly from the test factory."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


# Override the get_db dependency for tests
@pytest.fixture(scope="function")
def override_get_db():
    """Each API call gets its own session against the test database."""

    def _override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    original = app.dependency_overrides.get(get_db)
    app.dependency_overrides[get_db] = _override_get_db

    yield

    if original:
        app.dependency_overrides[get_db] = original
    else:
        del app.dependency_overrides[get_db]


@pytest.fixture(scope="function")
def test_client(override_get_db):
    """Provides a test client configured with our test database session."""
    return TestClient(app)


# --- Data helpers ---
def create_test_recruiter(
    db: Session,
    email: str = "recruiter@example.com",
    credits: int = 5,
    role: models.RecruiterRole = models.RecruiterRole.RECRUITER,
    has_enterprise_plan: bool = True,
) -> models.Recruiter:
    """Helper to create a recruiter (and an opening grant) directly in the test database."""
    recruiter = crud.create_recruiter(
        db,
        email=email,
        cognito_sub=f"sub-for-{email.replace('@', '-')}",
        role=role,
        has_enterprise_plan=has_enterprise_plan,
    )
    if credits:
        SqlCreditLedger(db).grant_credits(recruiter.id, credits, reference="test-grant")
    db.commit()
    db.refresh(recruiter)
    return recruiter


def create_test_candidate(
    db: Session,
    display_name: str = "Jane Doe",
    skills=("Python",),
    preferred_locations=(),
    preferred_industries=(),
    **fields,
) -> models.CandidateProfile:
    """Helper to create a visible candidate profile with sensible defaults."""
    values = {
        "current_title": "Software Engineer",
        "current_company": "Acme Corp",
        "location": "Berlin",
        "years_experience": 4,
        "highest_degree_level": DegreeLevel.BACHELOR,
        "primary_field_of_study": "Computer Science",
        "desired_salary_min": 60000,
        "desired_salary_max": 80000,
        "contact_email": f"{display_name.lower().replace(' ', '.')}@example.com",
        "contact_phone": "+49 30 1234567",
        "linkedin_url": "https://www.linkedin.com/in/example",
    }
    values.update(fields)
    candidate = models.CandidateProfile(display_name=display_name, **values)
    candidate.skills.extend(skills)
    candidate.preferred_locations.extend(preferred_locations)
    candidate.preferred_industries.extend(preferred_industries)
    db.add(candidate)
    db.commit()
    db.refresh(candidate)
    return candidate


@pytest.fixture(scope="function")
def as_recruiter():
    """Run API calls as the given recruiter, loaded in the request's own session."""

    def _login(recruiter_id: int) -> None:
        def _override_current_recruiter(db: Session = Depends(get_db)):
            return crud.get_recruiter_by_id(db, recruiter_id)

        app.dependency_overrides[get_current_recruiter] = _override_current_recruiter

    yield _login

    app.dependency_overrides.pop(get_current_recruiter, None)
