import os
import uuid
from collections.abc import Generator
from typing import Any

import psycopg
import pytest
from psycopg import sql

from statement_worker.config.settings import Settings
from statement_worker.database.connection import close_pool, get_connection, init_pool
from statement_worker.database.repositories.submission_repository import SubmissionRepository

TEST_TABLE = "submission_records_test"


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "statements_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings)
        with get_connection() as conn:
            conn.execute("SELECT 1")
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run these tests")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture(scope="session")
def submission_repo(integration_pool: None) -> SubmissionRepository:
    repo = SubmissionRepository(TEST_TABLE)
    repo.ensure_schema()
    return repo


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def submission_id(submission_repo: SubmissionRepository) -> Generator[str, None, None]:
    """A fresh submission id whose rows are deleted after the test."""
    value = f"sub-{uuid.uuid4()}"
    yield value
    with get_connection() as conn:
        conn.execute(
            sql.SQL("DELETE FROM {table} WHERE pk LIKE %s").format(
                table=sql.Identifier(TEST_TABLE)
            ),
            (f"%#SUB#{value}",),
        )
        conn.commit()
