"""Core data models, tree traversals, storage and the family database."""

from family_tree.core.database import (
    FamilyDatabase,
    FamilyNotFoundError,
    FamilyTreeError,
    InvalidImportError,
    PersonNotFoundError,
    TreeIntegrityError,
)
from family_tree.core.storage import FileStorage, MemoryStorage, Storage, StorageError

__all__ = [
    "FamilyDatabase",
    "FamilyTreeError",
    "FamilyNotFoundError",
    "PersonNotFoundError",
    "TreeIntegrityError",
    "InvalidImportError",
    "Storage",
    "MemoryStorage",
    "FileStorage",
    "StorageError",
]
