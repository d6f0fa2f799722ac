"""
Core data models for the family tree editor.

A family is a forest: ``Family.members`` holds the root persons and every
person owns its ``children``. Persons serialize with the browser editor's
keys (``nom``, ``prenom``, ``genre: "homme"`` ...) so exported files open
there; input also accepts the English snake_case and camelCase names and
the backend's ``firstName``/``lastName``. Other models use camelCase keys.
"""

from __future__ import annotations

import random
import re
import threading
import time
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


EXPORT_VERSION = "1.0.0"

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class IdGenerator:
    """
    Process-wide ID source.

    IDs are epoch milliseconds plus a random offset (0-999), forced to be
    strictly increasing so two persons created in the same millisecond
    never share an ID.
    """

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self) -> int:
        candidate = int(time.time() * 1000) + random.randint(0, 999)
        with self._lock:
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
        return candidate


_ids = IdGenerator()


def generate_id() -> int:
    """Return a new unique person/family ID."""
    return _ids.next_id()


class Gender(str, Enum):
    """Person gender as stored by the editor."""
    MALE = "male"
    FEMALE = "female"

    @classmethod
    def parse(cls, value: Any) -> Gender:
        """Accept editor, legacy (homme/femme) and backend (HOMME/FEMME) values."""
        if isinstance(value, Gender):
            return value
        text = str(value).strip().lower()
        if text in ("male", "homme", "m", "man"):
            return cls.MALE
        if text in ("female", "femme", "f", "woman"):
            return cls.FEMALE
        raise ValueError(f"Unknown gender: {value!r}")

    @property
    def label(self) -> str:
        return "Male" if self is Gender.MALE else "Female"

    @property
    def browser_value(self) -> str:
        """Spelling used by the browser editor's files."""
        return "homme" if self is Gender.MALE else "femme"


def _date_part(value: Any) -> Any:
    """Truncate ISO datetime strings ("1990-05-12T00:00:00.000Z") to their date."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if len(value) > 10 and value[4] == "-":
            return value[:10]
    if isinstance(value, datetime):
        return value.date()
    return value


class _Model(BaseModel):
    """Base for serialized models: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class _PersonFields(_Model):
    """Editable person attributes shared by Person and its input models."""

    surname: str = Field(
        default="",
        validation_alias=AliasChoices("surname", "nom", "lastName"),
        serialization_alias="nom",
    )
    given_name: str = Field(
        default="",
        validation_alias=AliasChoices("given_name", "givenName", "prenom", "firstName"),
        serialization_alias="prenom",
    )
    gender: Gender = Field(
        default=Gender.MALE,
        validation_alias=AliasChoices("gender", "genre"),
        serialization_alias="genre",
    )
    phone: str | None = Field(
        default=None,
        validation_alias=AliasChoices("phone", "telephone"),
        serialization_alias="telephone",
    )
    email: str | None = None
    address: str | None = Field(
        default=None,
        validation_alias=AliasChoices("address", "adresse"),
        serialization_alias="adresse",
    )
    photo: str | None = Field(
        default=None,
        validation_alias=AliasChoices("photo", "photoUrl"),
    )
    birth_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("birth_date", "birthDate", "dateNaissance"),
        serialization_alias="dateNaissance",
    )
    death_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("death_date", "deathDate", "dateDeces"),
        serialization_alias="dateDeces",
    )
    occupation: str | None = Field(
        default=None,
        validation_alias=AliasChoices("occupation", "profession", "job"),
        serialization_alias="profession",
    )
    notes: str | None = None
    parent_id: int | None = Field(
        default=None,
        validation_alias=AliasChoices("parent_id", "parentId"),
    )

    @field_validator("gender", mode="before")
    @classmethod
    def validate_gender(cls, v):
        """Map legacy and backend spellings onto Gender."""
        if v is None:
            return Gender.MALE
        return Gender.parse(v)

    @field_serializer("gender", when_used="json")
    def serialize_gender(self, gender: Gender) -> str:
        return gender.browser_value

    @field_validator("birth_date", "death_date", mode="before")
    @classmethod
    def validate_dates(cls, v):
        return _date_part(v)

    @field_validator("phone", "email", "address", "photo", "occupation", "notes", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Form fields left empty are stored as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("parent_id", mode="before")
    @classmethod
    def validate_parent_id(cls, v):
        """Treat 0 and empty values as "no parent", like the browser editor."""
        if v in (0, "", "0"):
            return None
        return v


class Person(_PersonFields):
    """
    A node of the family tree.

    ``children`` and each child's ``parent_id`` must agree; the
    database keeps them consistent on every mutation.
    """
    id: int = Field(default_factory=generate_id)
    children: list[Person] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("children", mode="before")
    @classmethod
    def validate_children(cls, v):
        """Missing or null children lists become empty lists."""
        return v or []

    @property
    def full_name(self) -> str:
        """Return "Given Surname"."""
        return f"{self.given_name} {self.surname}".strip()

    @property
    def initials(self) -> str:
        return f"{self.given_name[:1]}{self.surname[:1]}".upper()

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def age(self, on: date | None = None) -> int | None:
        """Age in whole years at ``on`` (default: death date, else today)."""
        if self.birth_date is None:
            return None
        end = on or self.death_date or date.today()
        years = end.year - self.birth_date.year
        if (end.month, end.day) < (self.birth_date.month, self.birth_date.day):
            years -= 1
        return years


class PersonCreate(_PersonFields):
    """Validated input for a new person (the person form)."""
    model_config = ConfigDict(validate_default=True)

    @field_validator("surname", "given_name")
    @classmethod
    def required_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        if v is not None and not _EMAIL_PATTERN.match(v.strip()):
            raise ValueError(f"Invalid email address: {v}")
        return v.strip() if v else v


class PersonUpdate(_PersonFields):
    """
    Merge-patch for an existing person.

    Only fields explicitly present in the payload are applied, so
    ``PersonUpdate(notes=None)`` clears notes while ``PersonUpdate()``
    changes nothing.
    """

    @field_validator("surname", "given_name")
    @classmethod
    def present_name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        if v is not None and not _EMAIL_PATTERN.match(v.strip()):
            raise ValueError(f"Invalid email address: {v}")
        return v

    def changes(self) -> dict[str, Any]:
        """Return the explicitly set fields."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class Family(_Model):
    """A named genealogy: a forest of root persons."""
    id: int = Field(default_factory=generate_id)
    name: str
    members: list[Person] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    cover_photo: str | None = None
    member_count: int | None = None

    @field_validator("members", mode="before")
    @classmethod
    def validate_members(cls, v):
        return v or []

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def validate_timestamps(cls, v):
        """Missing timestamps default to now, as the browser editor did."""
        if v is None or v == "":
            return datetime.now()
        return v

    def touch(self) -> None:
        """Mark the family as modified."""
        self.updated_at = datetime.now()


class BackupEntry(_Model):
    """Metadata for a stored snapshot of all families."""
    name: str
    timestamp: datetime
    key: str


class DatabaseExport(_Model):
    """Envelope written by JSON export."""
    families: list[Family] = Field(default_factory=list)
    export_date: datetime = Field(default_factory=datetime.now)
    version: str = EXPORT_VERSION
    total_families: int = 0
    total_persons: int = 0


class FamilyStatistics(_Model):
    """Per-family demographic counts."""
    family_id: int
    name: str
    total_members: int = 0
    men: int = 0
    women: int = 0
    with_phone: int = 0
    with_email: int = 0
    with_address: int = 0
    max_depth: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DatabaseStatistics(_Model):
    """Store-wide counters."""
    total_families: int = 0
    total_persons: int = 0
    storage_used: str = "0 KB"
    last_backup: datetime | None = None
