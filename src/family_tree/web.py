"""
FastAPI web service for the Family Tree Editor.

Exposes families, persons, search, statistics, JSON/spreadsheet exchange,
backups and guide progress over REST. Responses use the same camelCase
JSON as the export files.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from family_tree import __version__
from family_tree.config import EditorConfig
from family_tree.core.database import (
    FamilyDatabase,
    FamilyNotFoundError,
    FamilyTreeError,
    InvalidImportError,
    PersonNotFoundError,
)
from family_tree.core.models import PersonCreate, PersonUpdate
from family_tree.core.storage import FileStorage, StorageError
from family_tree.guide.sequencer import GuideSequencer, UnknownStepError
from family_tree.remote.sync import load_from_backend
from family_tree.reports import spreadsheet

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# =============================================================================
# Dependencies
# =============================================================================

_database: FamilyDatabase | None = None
_guide: GuideSequencer | None = None


def get_database() -> FamilyDatabase:
    """Get or open the database from the environment config."""
    global _database
    if _database is None:
        config = EditorConfig.from_env()
        logger.info("Opening family database in %s", config.data_dir)
        _database = FamilyDatabase.from_config(config)
    return _database


def get_guide() -> GuideSequencer:
    """Get or create the guide sequencer."""
    global _guide
    if _guide is None:
        config = EditorConfig.from_env()
        _guide = GuideSequencer(FileStorage(config.data_dir, quota_bytes=config.storage_quota_bytes))
    return _guide


# =============================================================================
# Request/Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str


class FamilyCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Family name")


class FamilyUpdateRequest(BaseModel):
    name: str | None = Field(None, min_length=1)
    cover_photo: str | None = Field(None, alias="coverPhoto")

    model_config = {"populate_by_name": True}


class MoveRequest(BaseModel):
    parent_id: int | None = Field(None, alias="parentId", description="New parent; null makes a root")

    model_config = {"populate_by_name": True}


class StepResponse(BaseModel):
    id: str
    title: str
    description: str
    icon: str | None = None
    target: str | None = None
    position: str


class GuideStatusResponse(BaseModel):
    progress_percentage: float
    completed_steps: list[str]
    completed_sections: list[str]
    current_step: str | None
    next_step: StepResponse | None
    sections: dict[str, float]


def _xlsx_response(content: bytes, filename: str) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _slug(name: str) -> str:
    return "-".join(name.lower().split()) or "family"


# =============================================================================
# Families
# =============================================================================

families_router = APIRouter(prefix="/families", tags=["Families"])


@families_router.get("")
async def list_families(db: FamilyDatabase = Depends(get_database)) -> list[dict[str, Any]]:
    return [f.to_json_dict() for f in db.get_families()]


@families_router.post("", status_code=201)
async def create_family(
    request: FamilyCreateRequest,
    db: FamilyDatabase = Depends(get_database),
) -> dict[str, Any]:
    try:
        return db.add_family(request.name).to_json_dict()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@families_router.post("/sample", status_code=201)
async def create_sample_family(db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    return db.create_sample_family().to_json_dict()


@families_router.get("/{family_id}")
async def get_family(family_id: int, db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    return db.require_family(family_id).to_json_dict()


@families_router.patch("/{family_id}")
async def update_family(
    family_id: int,
    request: FamilyUpdateRequest,
    db: FamilyDatabase = Depends(get_database),
) -> dict[str, Any]:
    try:
        updated = db.update_family(family_id, name=request.name, cover_photo=request.cover_photo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not updated:
        raise FamilyNotFoundError(family_id)
    return db.require_family(family_id).to_json_dict()


@families_router.delete("/{family_id}", status_code=204)
async def delete_family(family_id: int, db: FamilyDatabase = Depends(get_database)) -> Response:
    if not db.delete_family(family_id):
        raise FamilyNotFoundError(family_id)
    return Response(status_code=204)


@families_router.post("/{family_id}/duplicate", status_code=201)
async def duplicate_family(family_id: int, db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    duplicate = db.duplicate_family(family_id)
    if duplicate is None:
        raise FamilyNotFoundError(family_id)
    return duplicate.to_json_dict()


@families_router.get("/{family_id}/statistics")
async def family_statistics(family_id: int, db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    stats = db.family_statistics(family_id)
    if stats is None:
        raise FamilyNotFoundError(family_id)
    return stats.to_json_dict()


@families_router.get("/{family_id}/export.xlsx")
async def export_family_xlsx(family_id: int, db: FamilyDatabase = Depends(get_database)) -> Response:
    family = db.require_family(family_id)
    return _xlsx_response(spreadsheet.export_family(family), f"family-tree-{_slug(family.name)}.xlsx")


# =============================================================================
# Persons
# =============================================================================

persons_router = APIRouter(prefix="/families/{family_id}/persons", tags=["Persons"])


@persons_router.post("", status_code=201)
async def add_person(
    family_id: int,
    person: PersonCreate,
    db: FamilyDatabase = Depends(get_database),
) -> dict[str, Any]:
    return db.add_person(person, family_id).to_json_dict()


@persons_router.get("/{person_id}")
async def get_person(family_id: int, person_id: int, db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    person = db.get_person(person_id, db.require_family(family_id).id)
    if person is None:
        raise PersonNotFoundError(person_id, family_id)
    return person.to_json_dict()


@persons_router.patch("/{person_id}")
async def update_person(
    family_id: int,
    person_id: int,
    patch: PersonUpdate,
    db: FamilyDatabase = Depends(get_database),
) -> dict[str, Any]:
    db.require_family(family_id)
    if not db.update_person(person_id, patch, family_id):
        raise PersonNotFoundError(person_id, family_id)
    return db.get_person(person_id, family_id).to_json_dict()


@persons_router.post("/{person_id}/move")
async def move_person(
    family_id: int,
    person_id: int,
    request: MoveRequest,
    db: FamilyDatabase = Depends(get_database),
) -> dict[str, Any]:
    return db.move_person(person_id, request.parent_id, family_id).to_json_dict()


@persons_router.delete("/{person_id}", status_code=204)
async def delete_person(family_id: int, person_id: int, db: FamilyDatabase = Depends(get_database)) -> Response:
    db.require_family(family_id)
    if not db.delete_person(person_id, family_id):
        raise PersonNotFoundError(person_id, family_id)
    return Response(status_code=204)


@persons_router.get("/{person_id}/export.xlsx")
async def export_person_xlsx(family_id: int, person_id: int, db: FamilyDatabase = Depends(get_database)) -> Response:
    family = db.require_family(family_id)
    person = db.get_person(person_id, family_id)
    if person is None:
        raise PersonNotFoundError(person_id, family_id)
    return _xlsx_response(
        spreadsheet.export_person(person, family),
        f"profile-{_slug(person.full_name)}.xlsx",
    )


# =============================================================================
# Data: search, statistics, import/export, backups
# =============================================================================

data_router = APIRouter(tags=["Data"])


@data_router.get("/search")
async def search_persons(
    q: str = Query(..., description="Part of a given name or surname"),
    family_id: int | None = Query(None, alias="familyId"),
    db: FamilyDatabase = Depends(get_database),
) -> list[dict[str, Any]]:
    return [p.to_json_dict() for p in db.search_person(q, family_id)]


@data_router.get("/statistics")
async def statistics(db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    return db.get_statistics().to_json_dict()


@data_router.get("/export/json")
async def export_json(db: FamilyDatabase = Depends(get_database)) -> Response:
    return Response(
        content=db.export_to_json(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="family-tree.json"'},
    )


@data_router.get("/export/xlsx")
async def export_all_xlsx(db: FamilyDatabase = Depends(get_database)) -> Response:
    return _xlsx_response(spreadsheet.export_families(db.families), "family-trees.xlsx")


@data_router.get("/export/statistics.xlsx")
async def export_statistics_xlsx(db: FamilyDatabase = Depends(get_database)) -> Response:
    return _xlsx_response(spreadsheet.export_statistics(db.families), "family-tree-statistics.xlsx")


@data_router.post("/import/json")
async def import_json(
    file: UploadFile = File(...),
    db: FamilyDatabase = Depends(get_database),
) -> dict[str, Any]:
    """Replace all families with an uploaded JSON export."""
    content = await file.read()
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidImportError(f"File is not UTF-8 text: {e}") from e
    families = db.import_from_json(text)
    return {"imported": len(families), "totalPersons": db.total_persons()}


@data_router.post("/import/xlsx", status_code=201)
async def import_xlsx(
    file: UploadFile = File(...),
    db: FamilyDatabase = Depends(get_database),
) -> dict[str, Any]:
    """Add one family from an uploaded spreadsheet."""
    if not (file.filename or "").lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="File must be a spreadsheet (.xlsx)")
    family = spreadsheet.import_family(await file.read())
    return db.import_family(family).to_json_dict()


@data_router.get("/backups")
async def list_backups(db: FamilyDatabase = Depends(get_database)) -> list[dict[str, Any]]:
    return [b.to_json_dict() for b in db.get_backups()]


@data_router.post("/backups", status_code=201)
async def create_backup(db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    return db.create_backup().to_json_dict()


@data_router.post("/backups/{index}/restore")
async def restore_backup(index: int, db: FamilyDatabase = Depends(get_database)) -> dict[str, Any]:
    try:
        families = db.restore_backup(index)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"restored": len(families)}


@data_router.delete("/backups/{index}", status_code=204)
async def delete_backup(index: int, db: FamilyDatabase = Depends(get_database)) -> Response:
    if not db.delete_backup(index):
        raise HTTPException(status_code=404, detail=f"No backup at index {index}")
    return Response(status_code=204)


@data_router.delete("/data", status_code=204)
async def clear_all_data(db: FamilyDatabase = Depends(get_database)) -> Response:
    db.clear_all_data()
    return Response(status_code=204)


# =============================================================================
# Guide
# =============================================================================

guide_router = APIRouter(prefix="/guide", tags=["Guide"])


def _guide_status(guide: GuideSequencer) -> GuideStatusResponse:
    progress = guide.progress
    next_step = guide.get_next_step()
    return GuideStatusResponse(
        progress_percentage=guide.progress_percentage(),
        completed_steps=progress.completed_steps,
        completed_sections=progress.completed_sections,
        current_step=guide.current_step,
        next_step=StepResponse(**vars(next_step)) if next_step else None,
        sections={s.id: guide.section_progress(s.id) for s in guide.sections},
    )


@guide_router.get("", response_model=GuideStatusResponse)
async def guide_status(guide: GuideSequencer = Depends(get_guide)):
    return _guide_status(guide)


@guide_router.post("/start", response_model=GuideStatusResponse)
async def start_guide(guide: GuideSequencer = Depends(get_guide)):
    guide.start_guide()
    return _guide_status(guide)


@guide_router.post("/steps/{step_id}/complete", response_model=GuideStatusResponse)
async def complete_step(step_id: str, guide: GuideSequencer = Depends(get_guide)):
    try:
        guide.complete_step(step_id)
    except UnknownStepError:
        raise HTTPException(status_code=404, detail=f"Unknown guide step: {step_id}")
    return _guide_status(guide)


@guide_router.post("/steps/{step_id}/skip", response_model=GuideStatusResponse)
async def skip_step(step_id: str, guide: GuideSequencer = Depends(get_guide)):
    try:
        guide.skip_step(step_id)
    except UnknownStepError:
        raise HTTPException(status_code=404, detail=f"Unknown guide step: {step_id}")
    return _guide_status(guide)


@guide_router.post("/reset", response_model=GuideStatusResponse)
async def reset_guide(guide: GuideSequencer = Depends(get_guide)):
    guide.reset_progress()
    return _guide_status(guide)


# =============================================================================
# FastAPI Application
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load families from the backend on startup when backend mode is on."""
    config = EditorConfig.from_env()
    if config.use_backend:
        await load_from_backend(get_database(), config)
    yield


app = FastAPI(
    title="Family Tree Editor API",
    description="Families, person trees, JSON/spreadsheet exchange and backups.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(families_router)
app.include_router(persons_router)
app.include_router(data_router)
app.include_router(guide_router)


@app.exception_handler(FamilyNotFoundError)
@app.exception_handler(PersonNotFoundError)
async def not_found_handler(request: Request, exc: FamilyTreeError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(FamilyTreeError)
async def tree_error_handler(request: Request, exc: FamilyTreeError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure: %s", exc)
    return JSONResponse(status_code=507, content={"detail": str(exc)})


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    return HealthResponse(status="healthy", timestamp=datetime.now(), version=__version__)
