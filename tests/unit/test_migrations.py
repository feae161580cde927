"""
Unit tests for the Alembic migrations.

Runs the migration chain against a SQLite file and compares the result with
the ORM models.
"""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from database.models import Base

ROOT = Path(__file__).resolve().parents[2]


def alembic_config(db_path: Path) -> Config:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "database" / "migrations"))
    config.set_main_option("sqlalchemy.url", f"sqlite+aiosqlite:///{db_path}")
    return config


class TestMigrations:
    def test_upgrade_matches_models(self, tmp_path):
        db_path = tmp_path / "migrated.db"

        command.upgrade(alembic_config(db_path), "head")

        engine = create_engine(f"sqlite:///{db_path}")
        try:
            inspector = inspect(engine)
            for table in Base.metadata.sorted_tables:
                columns = {column["name"] for column in inspector.get_columns(table.name)}
                assert columns == set(table.columns.keys()), table.name

                indexes = {index["name"] for index in inspector.get_indexes(table.name)}
                assert {index.name for index in table.indexes} <= indexes, table.name
        finally:
            engine.dispose()

    def test_downgrade_removes_tables(self, tmp_path):
        db_path = tmp_path / "migrated.db"
        config = alembic_config(db_path)

        command.upgrade(config, "head")
        command.downgrade(config, "base")

        engine = create_engine(f"sqlite:///{db_path}")
        try:
            assert set(inspect(engine).get_table_names()) == {"alembic_version"}
        finally:
            engine.dispose()
