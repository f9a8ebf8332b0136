"""
Fixtures for SQLite-backed mapper tests.
"""
import sqlite3

import bulkmapper
import pytest

SCHEMA = [
    """
    CREATE TABLE item (
        id INTEGER PRIMARY KEY,
        name TEXT,
        active BOOLEAN
    )
    """,
    """
    CREATE TABLE owner (
        owner_id INTEGER PRIMARY KEY,
        name TEXT
    )
    """,
    """
    CREATE TABLE widget (
        widget_id INTEGER PRIMARY KEY,
        label_text TEXT,
        color TEXT,
        tags TEXT,
        made DATE,
        owner_id INTEGER
    )
    """,
    """
    CREATE TABLE Note (
        body TEXT,
        score INTEGER,
        labels TEXT
    )
    """,
]


@pytest.fixture
def sqlite_path(tmp_path):
    """File-based SQLite database with the test schema."""
    path = tmp_path / 'mapper.db'
    conn = sqlite3.connect(path)
    try:
        for ddl in SCHEMA:
            conn.execute(ddl)
        conn.commit()
    finally:
        conn.close()
    return str(path)


@pytest.fixture
def sqlite_mapper(sqlite_path):
    """Mapper configured against a fresh SQLite database."""
    provider = bulkmapper.configure({
        'drivername': 'sqlite',
        'database': sqlite_path,
        'batch_size': 500,
    })
    return provider


@pytest.fixture
def raw_sqlite(sqlite_path):
    """Direct connection for verifying what the mapper wrote."""
    conn = sqlite3.connect(sqlite_path)
    yield conn
    conn.close()
