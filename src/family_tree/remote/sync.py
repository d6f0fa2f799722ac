"""Synchronization between the local database and the backend."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from family_tree.config import EditorConfig
from family_tree.core import tree
from family_tree.core.database import FamilyDatabase, FamilyNotFoundError
from family_tree.core.models import Family
from family_tree.remote.client import FamilyApiClient, FamilyApiError, dto_to_person, person_to_dto

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    """Outcome of pushing one family."""
    remote_family_id: int
    id_map: dict[int, int] = field(default_factory=dict)

    @property
    def persons_created(self) -> int:
        return len(self.id_map)


class BackendSync:
    """Pulls families/persons from the backend and pushes local families to it."""

    def __init__(self, client: FamilyApiClient):
        self.client = client

    async def pull_families(self, db: FamilyDatabase) -> list[Family]:
        """
        Replace the local families with the backend list.

        Members are not fetched here; call ``pull_members`` per family.
        Member counts already known locally are kept.
        """
        known_counts = {f.id: f.member_count for f in db.families}
        families = []
        for dto in await self.client.list_families():
            families.append(Family(
                id=dto.id,
                name=dto.name,
                members=[],
                created_at=dto.created_at,
                updated_at=dto.created_at,
                member_count=known_counts.get(dto.id) or 0,
            ))
        db.replace_families(families)
        logger.info("Pulled %d families from %s", len(families), self.client.base_url)
        return families

    async def pull_members(self, db: FamilyDatabase, family_id: int) -> Family:
        """Fetch a family's flat person list and rebuild its tree."""
        family = db.get_family(family_id)
        if family is None:
            raise FamilyNotFoundError(family_id)

        persons = [dto_to_person(dto) for dto in await self.client.list_persons(family_id)]
        family.members = tree.build_tree_from_flat(persons)
        family.member_count = len(persons)
        db.save_family(family)
        logger.info("Pulled %d persons for family %s", len(persons), family_id)
        return family

    async def push_family(self, db: FamilyDatabase, family_id: int) -> PushResult:
        """
        Create a local family and its persons on the backend.

        Persons are sent parents-first so every parent link can be
        rewritten to the ID the backend assigned.
        """
        family = db.require_family(family_id)
        remote_family = await self.client.create_family(family.name)
        result = PushResult(remote_family_id=remote_family.id)

        for entry in tree.iter_persons(family.members):
            dto = person_to_dto(entry.person, remote_family.id, entry.parent)
            dto.id = None
            if dto.father_id is not None:
                dto.father_id = result.id_map[dto.father_id]
            if dto.mother_id is not None:
                dto.mother_id = result.id_map[dto.mother_id]
            created = await self.client.create_person(dto)
            result.id_map[entry.person.id] = created.id

        logger.info(
            "Pushed family %s as %s with %d persons",
            family_id, result.remote_family_id, result.persons_created,
        )
        return result


async def load_from_backend(
    db: FamilyDatabase,
    config: EditorConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """
    Replace local families with the backend's when ``config.use_backend`` is set.

    Returns True when the backend was loaded. An unavailable backend is
    logged and the local data stays in place.
    """
    if not config.use_backend:
        return False
    try:
        async with FamilyApiClient(config.api_url, timeout=config.api_timeout, transport=transport) as client:
            backend = BackendSync(client)
            for family in await backend.pull_families(db):
                await backend.pull_members(db, family.id)
    except (FamilyApiError, httpx.HTTPError) as e:
        logger.warning("Backend not available, using local data: %s", e)
        return False
    return True
