"""
Family/person store with local persistence and rotating backups.

``FamilyDatabase`` owns the ordered list of families and writes the whole
list to storage after every mutation. There is no partial-failure or
rollback handling: the only recovery path is dropping old backups when
the storage quota is hit, then retrying the write once.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Mapping

from pydantic import ValidationError

from family_tree.core import tree
from family_tree.core.models import (
    EXPORT_VERSION,
    BackupEntry,
    DatabaseExport,
    DatabaseStatistics,
    Family,
    FamilyStatistics,
    Gender,
    Person,
    PersonCreate,
    PersonUpdate,
    generate_id,
)
from family_tree.core.storage import (
    FileStorage,
    MemoryStorage,
    Storage,
    StorageError,
    StorageQuotaExceededError,
)

logger = logging.getLogger(__name__)


class FamilyTreeError(Exception):
    """Base error for family tree operations."""


class FamilyNotFoundError(FamilyTreeError):
    """No family with the given ID."""
    def __init__(self, family_id: int):
        self.family_id = family_id
        super().__init__(f"Family not found: {family_id}")


class PersonNotFoundError(FamilyTreeError):
    """No person with the given ID in the family."""
    def __init__(self, person_id: int, family_id: int):
        self.person_id = person_id
        self.family_id = family_id
        super().__init__(f"Person {person_id} not found in family {family_id}")


class TreeIntegrityError(FamilyTreeError):
    """A change would break the tree (cycle, duplicate ID)."""


class InvalidImportError(FamilyTreeError):
    """Imported data is not a valid family database export."""


class FamilyDatabase:
    """
    In-memory family forest persisted to a key-value storage.

    Families are kept in creation order. Person lookups are recursive
    descents of one family's forest; IDs are only unique within a family.
    """

    DB_KEY = "familyTreeDatabase"
    LEGACY_KEY = "familyTreeData"
    BACKUP_PREFIX = "familyTree_backup_"
    BACKUPS_KEEP_ON_CLEANUP = 2

    def __init__(self, storage: Storage | None = None, max_backups: int = 5):
        self.storage = storage if storage is not None else MemoryStorage()
        self.max_backups = max_backups
        self.families: list[Family] = []
        self._load()

    @classmethod
    def from_config(cls, config) -> FamilyDatabase:
        """Open the database described by an ``EditorConfig``."""
        storage = FileStorage(config.data_dir, quota_bytes=config.storage_quota_bytes)
        return cls(storage, max_backups=config.max_backups)

    # =========================================
    # Families
    # =========================================

    def add_family(self, name: str) -> Family:
        """Create an empty family at the end of the list."""
        name = name.strip()
        if not name:
            raise ValueError("Family name must not be blank")
        family = Family(id=generate_id(), name=name)
        self.families.append(family)
        logger.info("Created family %s (%s)", family.id, name)
        self._save()
        return family

    def get_families(self) -> list[Family]:
        return list(self.families)

    def get_family(self, family_id: int) -> Family | None:
        for family in self.families:
            if family.id == family_id:
                return family
        return None

    def require_family(self, family_id: int) -> Family:
        family = self.get_family(family_id)
        if family is None:
            raise FamilyNotFoundError(family_id)
        return family

    def update_family(
        self,
        family_id: int,
        name: str | None = None,
        cover_photo: str | None = None,
    ) -> bool:
        """Update family attributes. The family ID never changes."""
        family = self.get_family(family_id)
        if family is None:
            return False
        if name is not None:
            if not name.strip():
                raise ValueError("Family name must not be blank")
            family.name = name.strip()
        if cover_photo is not None:
            family.cover_photo = cover_photo or None
        family.touch()
        self._save()
        return True

    def rename_family(self, family_id: int, name: str) -> bool:
        return self.update_family(family_id, name=name)

    def delete_family(self, family_id: int) -> bool:
        family = self.get_family(family_id)
        if family is None:
            return False
        self.families.remove(family)
        logger.info("Deleted family %s", family_id)
        self._save()
        return True

    def duplicate_family(self, family_id: int) -> Family | None:
        """Deep-copy a family with fresh family and person IDs."""
        original = self.get_family(family_id)
        if original is None:
            return None
        duplicate = Family(
            id=generate_id(),
            name=f"{original.name} (copy)",
            members=tree.clone_forest(original.members, generate_id),
            cover_photo=original.cover_photo,
        )
        self.families.append(duplicate)
        logger.info("Duplicated family %s as %s", family_id, duplicate.id)
        self._save()
        return duplicate

    def create_sample_family(self) -> Family:
        """Add a small demo family: two founders, two children."""
        family = Family(id=generate_id(), name="Sample Family")
        now = datetime.now()
        father = Person(given_name="Jean", surname="Founder", gender=Gender.MALE,
                        created_at=now, updated_at=now)
        mother = Person(given_name="Marie", surname="Founder", gender=Gender.FEMALE,
                        created_at=now, updated_at=now)
        father.children = [
            Person(given_name="Alice", surname="Dupont", gender=Gender.FEMALE,
                   parent_id=father.id, created_at=now, updated_at=now),
            Person(given_name="Paul", surname="Dupont", gender=Gender.MALE,
                   parent_id=father.id, created_at=now, updated_at=now),
        ]
        family.members = [father, mother]
        self.families.append(family)
        self._save()
        return family

    # =========================================
    # Persons
    # =========================================

    def add_person(self, data: PersonCreate | Mapping[str, Any], family_id: int) -> Person:
        """
        Add a person to a family.

        With a ``parent_id`` the person is appended to that parent's
        children, otherwise it becomes a new root.
        """
        if not isinstance(data, PersonCreate):
            data = PersonCreate.model_validate(data)
        family = self.require_family(family_id)

        now = datetime.now()
        person = Person(**data.model_dump(), id=generate_id(), created_at=now, updated_at=now)

        if person.parent_id is not None:
            if not tree.insert_under(family.members, person, person.parent_id):
                raise PersonNotFoundError(person.parent_id, family_id)
        else:
            family.members.append(person)

        family.touch()
        self._save()
        return person

    def get_person(self, person_id: int, family_id: int) -> Person | None:
        family = self.get_family(family_id)
        if family is None:
            return None
        return tree.find_person(family.members, person_id)

    def update_person(
        self,
        person_id: int,
        patch: PersonUpdate | Mapping[str, Any],
        family_id: int,
    ) -> bool:
        """
        Merge ``patch`` into a person.

        The ID and children are preserved. A changed ``parent_id`` moves
        the person (and its subtree) under the new parent.
        """
        if not isinstance(patch, PersonUpdate):
            patch = PersonUpdate.model_validate(patch)
        family = self.get_family(family_id)
        if family is None:
            return False
        person = tree.find_person(family.members, person_id)
        if person is None:
            return False

        changes = patch.changes()
        if "parent_id" in changes:
            new_parent_id = changes.pop("parent_id")
            if new_parent_id != person.parent_id:
                self._move(family, person, new_parent_id)

        for name, value in changes.items():
            setattr(person, name, value)
        person.updated_at = datetime.now()
        family.touch()
        self._save()
        return True

    def move_person(self, person_id: int, new_parent_id: int | None, family_id: int) -> Person:
        """Re-parent a person and its subtree; None makes it a root."""
        family = self.require_family(family_id)
        person = tree.find_person(family.members, person_id)
        if person is None:
            raise PersonNotFoundError(person_id, family_id)
        self._move(family, person, new_parent_id)
        person.updated_at = datetime.now()
        family.touch()
        self._save()
        return person

    def _move(self, family: Family, person: Person, new_parent_id: int | None) -> None:
        if new_parent_id == person.parent_id:
            return
        if new_parent_id is not None:
            if new_parent_id == person.id or tree.is_descendant(family.members, person.id, new_parent_id):
                raise TreeIntegrityError(
                    f"Cannot move {person.id} under itself or one of its descendants"
                )
            if tree.find_person(family.members, new_parent_id) is None:
                raise PersonNotFoundError(new_parent_id, family.id)

        tree.remove_person(family.members, person.id)
        if new_parent_id is None:
            person.parent_id = None
            family.members.append(person)
        else:
            tree.insert_under(family.members, person, new_parent_id)

    def delete_person(self, person_id: int, family_id: int) -> bool:
        """Remove a person together with all of its descendants."""
        family = self.get_family(family_id)
        if family is None:
            return False
        removed = tree.remove_person(family.members, person_id)
        if removed is None:
            return False
        logger.info(
            "Deleted person %s and %d descendant(s) from family %s",
            person_id, tree.count_persons(removed.children), family_id,
        )
        family.touch()
        self._save()
        return True

    def search_person(self, term: str, family_id: int | None = None) -> list[Person]:
        """Case-insensitive substring search on surname and given name."""
        needle = (term or "").strip().lower()
        if not needle:
            return []

        families = self.families
        if family_id is not None:
            families = [f for f in self.families if f.id == family_id]

        results = []
        for family in families:
            for person in tree.flatten(family.members):
                if needle in (person.surname or "").lower() or needle in (person.given_name or "").lower():
                    results.append(person)
        return results

    def find_family_of(self, person_id: int) -> Family | None:
        """Return the first family containing ``person_id``."""
        for family in self.families:
            if tree.find_person(family.members, person_id) is not None:
                return family
        return None

    # =========================================
    # Queries
    # =========================================

    def max_depth(self, family_id: int) -> int:
        """Number of generations in a family."""
        return tree.max_depth(self.require_family(family_id).members)

    def generation_of(self, person_id: int, family_id: int) -> int | None:
        return tree.generation_of(self.require_family(family_id).members, person_id)

    def total_persons(self) -> int:
        return sum(tree.count_persons(f.members) for f in self.families)

    def total_generations(self) -> int:
        return sum(tree.max_depth(f.members) for f in self.families)

    def family_statistics(self, family_id: int) -> FamilyStatistics | None:
        family = self.get_family(family_id)
        if family is None:
            return None
        return compute_family_statistics(family)

    def get_statistics(self) -> DatabaseStatistics:
        backups = self.get_backups()
        return DatabaseStatistics(
            total_families=len(self.families),
            total_persons=self.total_persons(),
            storage_used=self._storage_used(),
            last_backup=backups[0].timestamp if backups else None,
        )

    def _storage_used(self) -> str:
        size = self.storage.size_of(self.DB_KEY)
        if size == 0:
            return "0 KB"
        return format_bytes(size)

    # =========================================
    # JSON import / export
    # =========================================

    def export_to_json(self, indent: int | None = 2) -> str:
        export = DatabaseExport(
            families=self.families,
            export_date=datetime.now(),
            version=EXPORT_VERSION,
            total_families=len(self.families),
            total_persons=self.total_persons(),
        )
        return json.dumps(export.to_json_dict(), indent=indent, ensure_ascii=False)

    def import_from_json(self, json_data: str) -> list[Family]:
        """
        Replace every family with the content of a JSON export.

        Raises InvalidImportError without touching the current data when
        the document is not a valid export.
        """
        try:
            data = json.loads(json_data)
        except json.JSONDecodeError as e:
            raise InvalidImportError(f"Invalid JSON: {e}") from e

        families = self._parse_families(data)
        self.families = families
        logger.info("Imported %d families", len(families))
        self._save()
        return families

    def _parse_families(self, data: Any) -> list[Family]:
        if isinstance(data, dict):
            data = data.get("families")
        if not isinstance(data, list):
            raise InvalidImportError("Invalid export format: 'families' must be a list")

        try:
            families = [Family.model_validate(item) for item in data]
        except ValidationError as e:
            raise InvalidImportError(f"Invalid family data: {e}") from e

        family_ids = [f.id for f in families]
        if len(family_ids) != len(set(family_ids)):
            raise InvalidImportError("Duplicate family IDs in import")
        for family in families:
            duplicates = tree.duplicate_ids(family.members)
            if duplicates:
                raise InvalidImportError(
                    f"Duplicate person IDs in family {family.name!r}: {sorted(duplicates)}"
                )
            tree.relink(family.members)
        return families

    def replace_families(self, families: list[Family]) -> None:
        """Swap in a new family list (e.g. pulled from the backend) and save it."""
        self.families = list(families)
        self._save()

    def save_family(self, family: Family) -> None:
        """Persist changes made directly on a family object."""
        family.touch()
        self._save()

    def import_family(self, family: Family) -> Family:
        """Append a single family (e.g. read back from a spreadsheet)."""
        if self.get_family(family.id) is not None:
            family.id = generate_id()
        duplicates = tree.duplicate_ids(family.members)
        if duplicates:
            raise InvalidImportError(f"Duplicate person IDs: {sorted(duplicates)}")
        tree.relink(family.members)
        self.families.append(family)
        self._save()
        return family

    # =========================================
    # Backups
    # =========================================

    def create_backup(self) -> BackupEntry:
        """Snapshot all families; only the newest ``max_backups`` are kept."""
        now = datetime.now()
        entry = BackupEntry(
            name=now.strftime("Backup_%Y-%m-%d_%H-%M-%S"),
            timestamp=now,
            key=f"{self.BACKUP_PREFIX}{generate_id()}",
        )
        self._set_with_cleanup(entry.key, self.export_to_json())

        backups = [entry] + self.get_backups()
        for stale in backups[self.max_backups:]:
            self.storage.remove_item(stale.key)
        self._write_backup_list(backups[: self.max_backups])
        logger.info("Created backup %s", entry.name)
        return entry

    def get_backups(self) -> list[BackupEntry]:
        """Backups, newest first."""
        raw = self.storage.get_item(f"{self.BACKUP_PREFIX}list")
        if not raw:
            return []
        try:
            return [BackupEntry.model_validate(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.error("Backup list is unreadable, ignoring it: %s", e)
            return []

    def restore_backup(self, backup: BackupEntry | int | str) -> list[Family]:
        """Restore a backup given as entry, list index or storage key."""
        entry = self._resolve_backup(backup)
        data = self.storage.get_item(entry.key)
        if data is None:
            raise InvalidImportError(f"Backup data missing for {entry.name}")
        return self.import_from_json(data)

    def delete_backup(self, backup: BackupEntry | int | str) -> bool:
        try:
            entry = self._resolve_backup(backup)
        except LookupError:
            return False
        self.storage.remove_item(entry.key)
        self._write_backup_list([b for b in self.get_backups() if b.key != entry.key])
        return True

    def _resolve_backup(self, backup: BackupEntry | int | str) -> BackupEntry:
        backups = self.get_backups()
        if isinstance(backup, BackupEntry):
            key = backup.key
        elif isinstance(backup, int):
            if not 0 <= backup < len(backups):
                raise LookupError(f"No backup at index {backup}")
            return backups[backup]
        else:
            key = backup
        for entry in backups:
            if entry.key == key:
                return entry
        raise LookupError(f"Unknown backup: {key}")

    def _write_backup_list(self, backups: list[BackupEntry]) -> None:
        payload = json.dumps([b.to_json_dict() for b in backups])
        self._set_with_cleanup(f"{self.BACKUP_PREFIX}list", payload)

    def _cleanup_storage(self) -> None:
        """Drop all but the newest backups to free space."""
        backups = self.get_backups()
        if len(backups) <= self.BACKUPS_KEEP_ON_CLEANUP:
            return
        for stale in backups[self.BACKUPS_KEEP_ON_CLEANUP:]:
            self.storage.remove_item(stale.key)
        kept = backups[: self.BACKUPS_KEEP_ON_CLEANUP]
        self.storage.set_item(
            f"{self.BACKUP_PREFIX}list",
            json.dumps([b.to_json_dict() for b in kept]),
        )
        logger.warning("Storage full: removed %d old backup(s)", len(backups) - len(kept))

    # =========================================
    # Persistence
    # =========================================

    def clear_all_data(self) -> None:
        """Forget every family. Backups are kept."""
        self.families = []
        self.storage.remove_item(self.DB_KEY)
        logger.info("Cleared all family data")

    def _save(self) -> None:
        payload = {
            "families": [f.to_json_dict() for f in self.families],
            "lastSaved": datetime.now().isoformat(),
            "version": EXPORT_VERSION,
        }
        self._set_with_cleanup(self.DB_KEY, json.dumps(payload, ensure_ascii=False))
        logger.debug("Saved %d families", len(self.families))

    def _set_with_cleanup(self, key: str, value: str) -> None:
        try:
            self.storage.set_item(key, value)
        except StorageQuotaExceededError:
            self._cleanup_storage()
            try:
                self.storage.set_item(key, value)
            except StorageQuotaExceededError as e:
                raise StorageError(f"Storage is full, could not save {key}: {e}") from e

    def _load(self) -> None:
        raw = self.storage.get_item(self.DB_KEY)
        legacy = raw is None
        if legacy:
            raw = self.storage.get_item(self.LEGACY_KEY)
            if raw is None:
                return
            logger.info("Loading families from legacy storage key %s", self.LEGACY_KEY)
        try:
            self.families = self._parse_families(json.loads(raw))
        except (json.JSONDecodeError, InvalidImportError) as e:
            logger.error("Could not load saved families, starting empty: %s", e)
            self.families = []
            return
        if legacy:
            self._save()


def compute_family_statistics(family: Family) -> FamilyStatistics:
    persons = tree.flatten(family.members)
    by_gender = tree.count_by_gender(family.members)
    return FamilyStatistics(
        family_id=family.id,
        name=family.name,
        total_members=len(persons),
        men=by_gender[Gender.MALE],
        women=by_gender[Gender.FEMALE],
        with_phone=sum(1 for p in persons if p.phone),
        with_email=sum(1 for p in persons if p.email),
        with_address=sum(1 for p in persons if p.address),
        max_depth=tree.max_depth(family.members),
        created_at=family.created_at,
        updated_at=family.updated_at,
    )


def format_bytes(size: int) -> str:
    """Human-readable size: 1536 -> "1.5 KB"."""
    if size == 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    value = float(size)
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, 2):g} {units[index]}"
