"""Optional backend integration."""

from family_tree.remote.client import (
    FamilyApiClient,
    FamilyApiError,
    FamilyDto,
    PersonDto,
    dto_to_person,
    normalize_base_url,
    person_to_dto,
)
from family_tree.remote.sync import BackendSync, PushResult, load_from_backend

__all__ = [
    "FamilyApiClient",
    "FamilyApiError",
    "FamilyDto",
    "PersonDto",
    "dto_to_person",
    "person_to_dto",
    "normalize_base_url",
    "BackendSync",
    "PushResult",
    "load_from_backend",
]
