"""
Family Tree Editor

Build family trees, edit persons, and exchange data as JSON or spreadsheets.
"""

__version__ = "0.1.0"

from family_tree.core.database import FamilyDatabase
from family_tree.core.models import (
    Family,
    Gender,
    Person,
    PersonCreate,
    PersonUpdate,
)
from family_tree.guide.sequencer import GuideSequencer

__all__ = [
    "FamilyDatabase",
    "Family",
    "Gender",
    "Person",
    "PersonCreate",
    "PersonUpdate",
    "GuideSequencer",
]
