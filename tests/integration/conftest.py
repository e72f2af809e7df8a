from __future__ import annotations

import os
from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config


REPO_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture(scope="session")
def postgres_url() -> str:
    from testcontainers.postgres import PostgresContainer

    try:
        pg = PostgresContainer("postgres:16").start()
    except Exception as e:  # no docker daemon on this machine
        pytest.skip(f"postgres container unavailable: {e}")
    try:
        yield pg.get_connection_url()
    finally:
        pg.stop()


@pytest.fixture()
def migrated_db(postgres_url: str, monkeypatch) -> str:
    """Fresh example schema per test; identity state is part of what the tests assert on."""
    from pgseed.settings import normalize_database_url

    sync_url = normalize_database_url(postgres_url)
    monkeypatch.setenv("DATABASE_URL", sync_url)

    cfg = Config(str(REPO_ROOT / "migrations" / "alembic.ini"))
    command.downgrade(cfg, "base")
    command.upgrade(cfg, "head")
    return sync_url


@pytest.fixture()
def engine(migrated_db: str):
    eng = sa.create_engine(migrated_db, future=True)
    yield eng
    eng.dispose()
