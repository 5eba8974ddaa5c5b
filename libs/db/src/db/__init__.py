"""db: shared database library (SQLAlchemy/Alembic).

Public exports
--------------
- ``Base`` and ``metadata`` for Alembic autogenerate/targeting
- ORM models in ``db.models.kv`` (re-exported for convenience)
- Engine/session helpers in ``db.client``
- Whole-document key-value helpers in ``db.kv``
"""

from __future__ import annotations

from .models.kv import Base, KvEntry

# Re-export SQLAlchemy metadata for Alembic's env.py
metadata = Base.metadata

__all__ = [
    "Base",
    "metadata",
    "KvEntry",
]
