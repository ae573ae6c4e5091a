"""Pytest fixtures and configuration.

Project databases are real SQLite files created per test in tmp_path, so the
whole resolve -> guard -> inspect/execute path runs without a server.
"""
import sqlite3
import sys
from pathlib import Path
from typing import Generator

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


SHOP_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    email TEXT UNIQUE,
    status TEXT DEFAULT 'active',
    balance NUMERIC
);
CREATE TABLE orders (
    id INTEGER PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(id),
    amount REAL,
    note TEXT
);
CREATE INDEX orders_user_id_index ON orders (user_id);
CREATE TABLE empty_things (
    id INTEGER PRIMARY KEY
);
"""

BILLING_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    status TEXT
);
CREATE TABLE invoices (
    id INTEGER PRIMARY KEY,
    number TEXT NOT NULL
);
"""


def _create_shop(path: Path) -> None:
    conn = sqlite3.connect(path)
    conn.executescript(SHOP_SCHEMA)
    users = []
    for i in range(1, 31):
        # 25 active users, 5 inactive
        status = "active" if i <= 25 else "inactive"
        users.append((i, f"shop-user-{i:02d}", f"user{i}@shop.test", status, i * 10))
    conn.executemany(
        "INSERT INTO users (id, name, email, status, balance) VALUES (?, ?, ?, ?, ?)", users
    )
    conn.executemany(
        "INSERT INTO orders (id, user_id, amount, note) VALUES (?, ?, ?, ?)",
        [(1, 1, 9.5, None), (2, 1, 20.0, "gift"), (3, 2, 5.25, None)],
    )
    conn.commit()
    conn.close()


def _create_billing(path: Path) -> None:
    conn = sqlite3.connect(path)
    conn.executescript(BILLING_SCHEMA)
    conn.executemany(
        "INSERT INTO users (id, name, status) VALUES (?, ?, ?)",
        [(i, f"billing-user-{i:02d}", "active") for i in range(1, 8)],
    )
    conn.execute("INSERT INTO invoices (id, number) VALUES (1, 'INV-001')")
    conn.commit()
    conn.close()


@pytest.fixture
def project_configs(tmp_path: Path) -> dict:
    """Two SQLite projects with different data behind the same table name."""
    from project_db_gateway.config import ProjectConfig

    shop_path = tmp_path / "shop.db"
    billing_path = tmp_path / "billing.db"
    _create_shop(shop_path)
    _create_billing(billing_path)
    return {
        "shop": ProjectConfig(driver="sqlite", database=str(shop_path)),
        "billing": ProjectConfig(driver="sqlite", database=str(billing_path)),
    }


@pytest.fixture
def resolver(project_configs: dict) -> Generator:
    from project_db_gateway.resolver import ConnectionResolver

    resolver = ConnectionResolver(project_configs)
    yield resolver
    resolver.dispose()


@pytest.fixture
def router(resolver) -> Generator:
    from project_db_gateway.config import Settings
    from project_db_gateway.router import ToolRouter

    yield ToolRouter(resolver=resolver, settings=Settings())
