"""Database and API models for the Study Companion API."""

from .db_models import Base, StudyPlanRecord

__all__ = ["Base", "StudyPlanRecord"]
