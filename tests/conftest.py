import sqlite3

import pytest

from safequery.database.models import ConnectionConfig
from safequery.encryption import SecretResolver

TEST_KEY = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def encryption_key(monkeypatch):
    """Export a 32-character ENCRYPTION_KEY for the duration of a test."""
    monkeypatch.setenv("ENCRYPTION_KEY", TEST_KEY)
    return TEST_KEY


@pytest.fixture
def secrets(encryption_key):
    return SecretResolver(encryption_key)


@pytest.fixture
def sqlite_db(tmp_path):
    """On-disk SQLite database with users and orders."""
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(str(path))
    try:
        conn.executescript(
            """
            CREATE TABLE users (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                status TEXT DEFAULT 'active'
            );
            CREATE TABLE orders (
                id INTEGER PRIMARY KEY,
                user_id INTEGER NOT NULL REFERENCES users(id),
                total REAL
            );
            INSERT INTO users (id, name) VALUES (1, 'Ada'), (2, 'Grace');
            INSERT INTO orders (id, user_id, total) VALUES (10, 1, 9.5), (11, 1, 20.0), (12, 2, 3.25);
            """
        )
        conn.commit()
    finally:
        conn.close()
    return str(path)


@pytest.fixture
def sqlite_config(sqlite_db):
    return ConnectionConfig(id="shop", type="sqlite", database=sqlite_db)
