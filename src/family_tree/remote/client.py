"""
REST client for the family tree backend.

The backend stores persons flat, with ``fatherId``/``motherId`` links
instead of nested children, and uses the ``HOMME``/``FEMME`` genders.

Endpoints (relative to the ``/api`` base URL):
- GET/POST /families
- PATCH/DELETE /families/{id}
- GET /persons/by-family/{family_id}
- POST /persons
- PATCH/DELETE /persons/{id}
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from family_tree.config import DEFAULT_API_URL
from family_tree.core.models import Gender, Person

logger = logging.getLogger(__name__)


class FamilyApiError(Exception):
    """Error response from the family tree backend."""
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Backend API error {status_code}: {message}")


def normalize_base_url(url: str | None) -> str:
    """Make sure the base URL ends with ``/api``."""
    u = (url or "").strip()
    if not u:
        return DEFAULT_API_URL
    if not re.search(r"/api/?$", u):
        u = u + ("api" if u.endswith("/") else "/api")
        logger.info("API base URL adjusted to include /api: %s", u)
    # Collapse duplicate slashes, except after the scheme
    u = re.sub(r"(?<!:)/{2,}", "/", u)
    return u.rstrip("/")


class _Dto(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FamilyDto(_Dto):
    id: int | None = None
    name: str
    created_at: str | None = None


class PersonDto(_Dto):
    id: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    gender: Literal["HOMME", "FEMME"] | None = None
    birth_date: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    job: str | None = None
    notes: str | None = None
    photo_url: str | None = None
    family_id: int | None = None
    father_id: int | None = None
    mother_id: int | None = None
    spouse_ids: list[int] | None = None


def _backend_gender(gender: Gender) -> str:
    return "HOMME" if gender is Gender.MALE else "FEMME"


def person_to_dto(person: Person, family_id: int, parent: Person | None = None) -> PersonDto:
    """
    Map a tree person to the backend DTO.

    The parent link becomes ``fatherId`` or ``motherId`` according to the
    parent's gender. Without the parent node the person's own gender is
    used as a fallback.
    """
    dto = PersonDto(
        id=person.id,
        first_name=person.given_name,
        last_name=person.surname,
        gender=_backend_gender(person.gender),
        birth_date=person.birth_date.isoformat() if person.birth_date else None,
        email=person.email,
        phone=person.phone,
        address=person.address,
        job=person.occupation,
        notes=person.notes,
        photo_url=person.photo,
        family_id=family_id,
    )
    if parent is not None:
        if parent.gender is Gender.MALE:
            dto.father_id = parent.id
        else:
            dto.mother_id = parent.id
    elif person.parent_id is not None:
        if person.gender is Gender.MALE:
            dto.father_id = person.parent_id
        else:
            dto.mother_id = person.parent_id
    return dto


def dto_to_person(dto: PersonDto) -> Person:
    """Map a backend DTO to a childless person; the father link wins over the mother."""
    return Person(
        id=dto.id,
        given_name=dto.first_name or "",
        surname=dto.last_name or "",
        gender=Gender.parse(dto.gender) if dto.gender else Gender.MALE,
        birth_date=date.fromisoformat(dto.birth_date[:10]) if dto.birth_date else None,
        email=dto.email,
        phone=dto.phone,
        address=dto.address,
        occupation=dto.job,
        notes=dto.notes,
        photo=dto.photo_url,
        parent_id=dto.father_id or dto.mother_id,
    )


class FamilyApiClient:
    """
    Async client for the family tree backend.

    Use as an async context manager, or call ``connect``/``close``.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = normalize_base_url(base_url)
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> FamilyApiClient:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(self, method: str, endpoint: str, payload: dict | None = None) -> Any:
        if not self._client:
            raise RuntimeError("Client not connected")

        logger.debug("%s %s%s", method, self.base_url, endpoint)
        response = await self._client.request(method, endpoint, json=payload)

        if response.status_code >= 400:
            raise FamilyApiError(response.status_code, response.text)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def ping(self) -> bool:
        """True when the backend answers the family list."""
        try:
            await self._request("GET", "/families")
        except (FamilyApiError, httpx.HTTPError) as e:
            logger.warning("Backend not available at %s: %s", self.base_url, e)
            return False
        return True

    # =========================================
    # Families
    # =========================================

    async def list_families(self) -> list[FamilyDto]:
        data = await self._request("GET", "/families")
        return [FamilyDto.model_validate(item) for item in data or []]

    async def create_family(self, name: str) -> FamilyDto:
        data = await self._request("POST", "/families", {"name": name})
        return FamilyDto.model_validate(data)

    async def update_family(self, family_id: int, **patch: Any) -> FamilyDto:
        data = await self._request("PATCH", f"/families/{family_id}", patch)
        return FamilyDto.model_validate(data)

    async def delete_family(self, family_id: int) -> None:
        await self._request("DELETE", f"/families/{family_id}")

    # =========================================
    # Persons
    # =========================================

    async def list_persons(self, family_id: int) -> list[PersonDto]:
        data = await self._request("GET", f"/persons/by-family/{family_id}")
        return [PersonDto.model_validate(item) for item in data or []]

    async def create_person(self, dto: PersonDto) -> PersonDto:
        data = await self._request("POST", "/persons", dto.to_payload())
        return PersonDto.model_validate(data)

    async def update_person(self, person_id: int, dto: PersonDto) -> PersonDto:
        data = await self._request("PATCH", f"/persons/{person_id}", dto.to_payload())
        return PersonDto.model_validate(data)

    async def delete_person(self, person_id: int) -> None:
        await self._request("DELETE", f"/persons/{person_id}")
