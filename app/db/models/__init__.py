# app/db/models/__init__.py
"""
Media CMS — ORM models
=====================

Importing this package registers every table on `Base.metadata`.
"""

from app.db.base_class import Base

from .program import Program
from .episode import Episode

__all__ = ["Base", "Program", "Episode"]
