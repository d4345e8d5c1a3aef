import os
import sys

import pytest

# Ensure project root is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Use a dedicated SQLite database for tests
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from config import Config

Config.DATABASE_URL = os.environ["DATABASE_URL"]
Config.SQLALCHEMY_DATABASE_URI = Config.DATABASE_URL

from db import Session, User, UserCard


@pytest.fixture(autouse=True)
def clear_db():
    """Ensure a clean database for each test."""
    with Session() as session:
        session.query(UserCard).delete()
        session.query(User).delete()
        session.commit()
    yield


@pytest.fixture
def db():
    with Session() as session:
        yield session


@pytest.fixture
def ini_path(tmp_path):
    return str(tmp_path / "config" / "config.ini")


@pytest.fixture
def write_ini(ini_path):
    """Return a helper writing an [Authentication] section with the given keys."""

    def _write(**auth):
        os.makedirs(os.path.dirname(ini_path), exist_ok=True)
        lines = ["[Catalog]", "driver = Demo", "", "[Authentication]"]
        lines += [f"{key} = {value}" for key, value in auth.items()]
        with open(ini_path, "w", encoding="utf-8") as fh:
            fh.write("\n".join(lines) + "\n")
        return ini_path

    return _write
