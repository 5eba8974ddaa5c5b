"""Pytest configuration for test isolation.

The store persists to whatever ``DATABASE_URL`` points at (a ``fintrack.db``
file in the working directory by default), and ``db.client`` keeps one shared
engine per process. Left alone, tests would share state on disk and the engine
would stay bound to the first URL it saw.

To keep tests hermetic, an autouse fixture gives every test its own SQLite
file and disposes the shared engine around it. The workspace package roots are
put on ``sys.path`` so the tests also run from a plain checkout.
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
# Workspace package roots precede the repo root so local packages resolve first.
for _p in (_ROOT, _ROOT / "libs" / "db" / "src", _ROOT / "packages"):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))

from db.client import dispose_engine  # noqa: E402

from tests.helpers.db import bootstrap_sqlite_db  # noqa: E402


@pytest.fixture(autouse=True)
def database_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """Point ``DATABASE_URL`` at a fresh per-test SQLite file."""

    dispose_engine()
    url = bootstrap_sqlite_db(tmp_path / "fintrack.db")
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.delenv("FINTRACK_OPENAI_MODEL", raising=False)
    yield url
    dispose_engine()
