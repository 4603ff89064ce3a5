"""
Tests that the Alembic migrations build the same schema as the models.
"""
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from storedesk.models import Base

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'migrations.db'}")
    yield engine
    engine.dispose()


def _run(engine, action, revision):
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    with engine.begin() as connection:
        cfg.attributes["connection"] = connection
        action(cfg, revision)


def test_upgrade_creates_every_model_table(engine):
    _run(engine, command.upgrade, "head")

    inspector = inspect(engine)
    tables = set(inspector.get_table_names()) - {"alembic_version"}
    assert tables == set(Base.metadata.tables)

    for name, table in Base.metadata.tables.items():
        migrated = {c["name"] for c in inspector.get_columns(name)}
        assert migrated == {c.name for c in table.columns}, name


def test_upgrade_skips_tables_created_by_init_db(engine):
    Base.metadata.create_all(bind=engine)
    _run(engine, command.upgrade, "head")
    assert "alembic_version" in inspect(engine).get_table_names()


def test_downgrade_to_base(engine):
    _run(engine, command.upgrade, "head")
    _run(engine, command.downgrade, "base")
    assert set(inspect(engine).get_table_names()) == {"alembic_version"}
