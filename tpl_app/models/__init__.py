# tpl_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel
from .league import League, Match, Result, Season, Team, User
from .machine import FeatureSet, Machine, MachineManufacturer

__all__ = [
    "BaseModel",
    # Catalog models
    "MachineManufacturer",
    "FeatureSet",
    "Machine",
    # League models
    "League",
    "Season",
    "User",
    "Team",
    "Match",
    "Result",
]
