import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from lawpipe.config.settings import Settings
from lawpipe.database.connection import apply_schema, close_pool, get_connection, init_pool

# Records created by integration tests use this year so they can be cleaned up.
TEST_YEAR = 1999


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "lawpipe_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        psycopg.connect(
            host=test_settings.db_host,
            port=test_settings.db_port,
            dbname=test_settings.db_database,
            user=test_settings.db_username,
            password=test_settings.db_password,
            connect_timeout=3,
        ).close()
    except psycopg.Error as e:
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to point at one")
    init_pool(test_settings)
    try:
        apply_schema()
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture(autouse=True)
def integration_cleanup(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    yield
    if "integration_pool" not in request.fixturenames:
        return
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("DELETE FROM law_documents WHERE year = %s", (TEST_YEAR,))
            cur.execute("DELETE FROM ocr_corrections WHERE error_found LIKE 'zzlp%'")
        conn.commit()
