from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect


def test_migrations_build_the_schema_from_scratch(tmp_path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DB_HOST", raising=False)
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", url)

    command.upgrade(alembic_cfg, "head")

    engine = create_engine(url)
    inspector = inspect(engine)
    assert {"shortlists", "shortlist_entries", "saved_searches", "candidate_profiles"} <= set(inspector.get_table_names())
    assert "status" in {column["name"] for column in inspector.get_columns("job_postings")}
    assert {"graduation_year", "created_at"} <= {column["name"] for column in inspector.get_columns("candidate_profiles")}

    command.downgrade(alembic_cfg, "3c1f9a7d2b40")

    inspector = inspect(engine)
    assert "shortlists" not in inspector.get_table_names()
    assert "status" not in {column["name"] for column in inspector.get_columns("job_postings")}
    engine.dispose()
