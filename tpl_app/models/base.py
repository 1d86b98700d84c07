# tpl_app/models/base.py
"""
Declarative base shared by every table in the TPL store.
"""

from sqlalchemy.orm import DeclarativeBase


class BaseModel(DeclarativeBase):
    """Base class for all TPL models."""

    def __repr__(self):
        return f"<{type(self).__name__}>"
