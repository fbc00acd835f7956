# app/db/base.py
"""
Media CMS — SQLAlchemy Base registry
====================================

Import all ORM models so their tables are registered on `Base.metadata`.
This is useful for Alembic autogeneration and ensures relationship
targets resolve at import time.

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base

# ───────────────────────────────────────────────────────────────
# Catalog: Programs and their Episodes
# ───────────────────────────────────────────────────────────────
from app.db.models.program import Program
from app.db.models.episode import Episode

__all__ = ["Base", "Program", "Episode"]
