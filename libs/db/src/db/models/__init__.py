"""Shared SQLAlchemy models registry for the workspace database.

Currently holds the key-value document table used by ``fintrack``.
"""

from .kv import Base, KvEntry

__all__ = [
    "Base",
    "KvEntry",
]
