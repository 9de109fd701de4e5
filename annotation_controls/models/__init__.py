"""
Database Models Package

Import all models for easy access and ensuring they're registered with SQLAlchemy.
"""

from annotation_controls.core.database import Base
from annotation_controls.models.annotation import Annotation

__all__ = [
    "Base",
    "Annotation",
]
