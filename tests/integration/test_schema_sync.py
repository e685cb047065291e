"""Verify that Alembic migrations produce a schema matching ORM metadata.

Requires a running PostgreSQL instance with migrations applied.
"""

import pytest
from sqlalchemy import create_engine, inspect, text

from ocw_pipeline.config import get_settings
from ocw_pipeline.storage.orm import Base

pytestmark = pytest.mark.requires_db


@pytest.fixture()
def db_engine():
    """Create a sync engine for schema inspection."""
    engine = create_engine(get_settings().database_url)
    yield engine
    engine.dispose()


class TestSchemaSync:
    """Ensure ORM metadata and actual DB schema are in sync."""

    def test_all_orm_tables_exist_in_db(self, db_engine) -> None:  # type: ignore[no-untyped-def]
        inspector = inspect(db_engine)
        missing = set(Base.metadata.tables.keys()) - set(inspector.get_table_names())
        assert not missing, f"ORM tables missing from DB (migration needed?): {missing}"

    def test_all_orm_columns_exist_in_db(self, db_engine) -> None:  # type: ignore[no-untyped-def]
        inspector = inspect(db_engine)
        for table_name, table in Base.metadata.tables.items():
            db_columns = {col["name"] for col in inspector.get_columns(table_name)}
            missing = {col.name for col in table.columns} - db_columns
            assert not missing, (
                f"Table '{table_name}': columns missing from DB: {missing}"
            )

    def test_alembic_head_matches_current(self, db_engine) -> None:  # type: ignore[no-untyped-def]
        """Alembic current revision must be at head (no unapplied migrations)."""
        with db_engine.connect() as conn:
            result = conn.execute(text("SELECT version_num FROM alembic_version"))
            current = result.scalar_one_or_none()

        assert current is not None, "No alembic_version found, migrations not applied"

        from alembic.config import Config
        from alembic.script import ScriptDirectory

        head = ScriptDirectory.from_config(Config("alembic.ini")).get_current_head()
        assert current == head, (
            f"DB at revision {current}, but head is {head}. Run: alembic upgrade head"
        )
