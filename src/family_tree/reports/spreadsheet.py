"""
Spreadsheet (.xlsx) export and import with openpyxl.

A family sheet lists every person in tree order, one row each, with the
generation, the parent's name and the children count. The trailing ID
and PARENT ID columns let ``import_family`` rebuild the tree.
"""

from __future__ import annotations

import io
import re
import zipfile
from datetime import date, datetime
from pathlib import Path

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from family_tree.core import tree
from family_tree.core.database import InvalidImportError, compute_family_statistics
from family_tree.core.models import Family, Gender, Person, generate_id

FAMILY_COLUMNS = [
    ("FULL NAME", 25),
    ("GIVEN NAME", 15),
    ("SURNAME", 20),
    ("GENDER", 10),
    ("PHONE", 20),
    ("EMAIL", 30),
    ("ADDRESS", 40),
    ("GENERATION", 15),
    ("PARENT", 30),
    ("CHILDREN", 10),
    ("ID", 16),
    ("PARENT ID", 16),
]

STATISTICS_COLUMNS = [
    ("Family", 30),
    ("Total members", 15),
    ("Men", 10),
    ("Women", 10),
    ("With phone", 12),
    ("With email", 12),
    ("With address", 12),
    ("Max depth", 12),
    ("Created", 14),
    ("Last modified", 14),
]

FOUNDER = "Founder"
NOT_PROVIDED = "Not provided"

_INVALID_SHEET_CHARS = re.compile(r"[\[\]:*?/\\]")
_COLUMN_LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

_bold = Font(bold=True)


def _sheet_title(text: str) -> str:
    title = _INVALID_SHEET_CHARS.sub(" ", text).strip()[:31]
    return title or "Sheet"


def _format_date(value: date | datetime | None) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%d/%m/%Y")


def _set_widths(ws: Worksheet, columns: list[tuple[str, int]]) -> None:
    for index, (_, width) in enumerate(columns):
        ws.column_dimensions[_COLUMN_LETTERS[index]].width = width


def _append_header(ws: Worksheet, columns: list[tuple[str, int]]) -> None:
    ws.append([name for name, _ in columns])
    for cell in ws[ws.max_row]:
        cell.font = _bold


def _family_rows(family: Family) -> list[list]:
    rows = []
    for entry in tree.iter_persons(family.members):
        person = entry.person
        rows.append([
            person.full_name,
            person.given_name,
            person.surname,
            person.gender.label,
            person.phone or "",
            person.email or "",
            person.address or "",
            f"Level {entry.level + 1}",
            entry.parent.full_name if entry.parent else FOUNDER,
            len(person.children),
            person.id,
            entry.parent.id if entry.parent else None,
        ])
    return rows


def _save(wb: Workbook, path: str | Path | None) -> bytes | Path:
    """Save to ``path`` or return the workbook as bytes."""
    if path is not None:
        path = Path(path)
        wb.save(path)
        return path
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


# =========================================
# Export
# =========================================

def build_family_workbook(family: Family) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = _sheet_title(f"Family {family.name}")

    ws.append([f"Family Tree - {family.name}"])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append([f"Exported on {_format_date(datetime.now())}"])
    ws.append([])
    _append_header(ws, FAMILY_COLUMNS)
    for row in _family_rows(family):
        ws.append(row)
    _set_widths(ws, FAMILY_COLUMNS)
    return wb


def export_family(family: Family, path: str | Path | None = None) -> bytes | Path:
    """Export one family to a single-sheet workbook."""
    return _save(build_family_workbook(family), path)


def export_families(families: list[Family], path: str | Path | None = None) -> bytes | Path:
    """Export several families, one sheet each; empty families are skipped."""
    wb = Workbook()
    wb.remove(wb.active)
    for family in families:
        if not family.members:
            continue
        ws = wb.create_sheet(_sheet_title(family.name))
        ws.append([f"Family: {family.name}"])
        ws["A1"].font = Font(bold=True, size=14)
        ws.append([])
        _append_header(ws, FAMILY_COLUMNS)
        for row in _family_rows(family):
            ws.append(row)
        _set_widths(ws, FAMILY_COLUMNS)

    if not wb.worksheets:
        ws = wb.create_sheet("Families")
        ws.append(["No family with members to export"])
    return _save(wb, path)


def export_person(person: Person, family: Family, path: str | Path | None = None) -> bytes | Path:
    """Export a two-column profile sheet for one person."""
    parent_name = FOUNDER
    if person.parent_id is not None:
        parent = tree.find_person(family.members, person.parent_id)
        parent_name = parent.full_name if parent else f"Unknown (ID: {person.parent_id})"
    children = ", ".join(child.full_name for child in person.children) or "None"

    rows = [
        ["PERSON PROFILE"],
        [f"Family: {family.name}"],
        [f"Exported on {_format_date(datetime.now())}"],
        [],
        ["PERSONAL INFORMATION"],
        ["Full name", person.full_name],
        ["Given name", person.given_name],
        ["Surname", person.surname],
        ["Gender", person.gender.label],
        ["Birth date", _format_date(person.birth_date) or NOT_PROVIDED],
        ["Death date", _format_date(person.death_date) or NOT_PROVIDED],
        ["Occupation", person.occupation or NOT_PROVIDED],
        [],
        ["CONTACT"],
        ["Phone", person.phone or NOT_PROVIDED],
        ["Email", person.email or NOT_PROVIDED],
        ["Address", person.address or NOT_PROVIDED],
        [],
        ["FAMILY RELATIONS"],
        ["Parent", parent_name],
        ["Children", children],
        [],
        ["NOTES"],
        [person.notes or "No notes."],
    ]

    wb = Workbook()
    ws = wb.active
    ws.title = _sheet_title(person.full_name)
    for row in rows:
        ws.append(row)
        if len(row) == 1 and row[0].isupper():
            ws.cell(row=ws.max_row, column=1).font = _bold
    ws.column_dimensions["A"].width = 25
    ws.column_dimensions["B"].width = 50
    return _save(wb, path)


def export_statistics(families: list[Family], path: str | Path | None = None) -> bytes | Path:
    """One row of counts per family."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Statistics"
    _append_header(ws, STATISTICS_COLUMNS)
    for family in families:
        stats = compute_family_statistics(family)
        ws.append([
            stats.name,
            stats.total_members,
            stats.men,
            stats.women,
            stats.with_phone,
            stats.with_email,
            stats.with_address,
            stats.max_depth,
            _format_date(stats.created_at),
            _format_date(stats.updated_at),
        ])
    _set_widths(ws, STATISTICS_COLUMNS)
    return _save(wb, path)


# =========================================
# Import
# =========================================

def _open_workbook(source: Workbook | str | Path | bytes) -> Workbook:
    if isinstance(source, Workbook):
        return source
    try:
        if isinstance(source, bytes):
            return load_workbook(io.BytesIO(source), data_only=True)
        return load_workbook(Path(source), data_only=True)
    except (OSError, KeyError, ValueError, zipfile.BadZipFile, InvalidFileException) as e:
        raise InvalidImportError(f"Cannot read workbook: {e}") from e


def _family_name(ws: Worksheet, header_row: int) -> str:
    if header_row <= 1:
        return ws.title
    for row in ws.iter_rows(min_row=1, max_row=header_row - 1, max_col=1, values_only=True):
        title = row[0]
        if isinstance(title, str):
            for prefix in ("Family Tree - ", "Family: "):
                if title.startswith(prefix):
                    return title[len(prefix):].strip()
    return ws.title


def _as_int(value) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidImportError(f"Invalid ID value: {value!r}") from e


def _as_text(value) -> str | None:
    if value is None:
        return None
    return str(value)


def import_family(source: Workbook | str | Path | bytes, sheet: str | None = None) -> Family:
    """
    Read a family sheet written by ``export_family`` or ``export_families``.

    Rows without an ID get a fresh one; rows without a PARENT ID (or
    whose parent is not in the sheet) become roots.
    """
    wb = _open_workbook(source)
    ws = wb[sheet] if sheet else wb.worksheets[0]

    header_row = None
    header: list = []
    for index, row in enumerate(ws.iter_rows(values_only=True), start=1):
        if row and row[0] == FAMILY_COLUMNS[0][0]:
            header_row = index
            header = [str(cell).strip() if cell is not None else "" for cell in row]
            break
    if header_row is None:
        raise InvalidImportError(f"No '{FAMILY_COLUMNS[0][0]}' header row in sheet {ws.title!r}")

    column = {name: position for position, name in enumerate(header) if name}
    missing = {"GIVEN NAME", "SURNAME"} - set(column)
    if missing:
        raise InvalidImportError(f"Missing columns: {', '.join(sorted(missing))}")

    def cell(row, name):
        position = column.get(name)
        if position is None or position >= len(row):
            return None
        return row[position]

    persons = []
    now = datetime.now()
    for row in ws.iter_rows(min_row=header_row + 1, values_only=True):
        if not any(value not in (None, "") for value in row):
            continue
        try:
            gender = Gender.parse(cell(row, "GENDER") or Gender.MALE)
        except ValueError as e:
            raise InvalidImportError(str(e)) from e
        persons.append(Person(
            id=_as_int(cell(row, "ID")) or generate_id(),
            given_name=str(cell(row, "GIVEN NAME") or ""),
            surname=str(cell(row, "SURNAME") or ""),
            gender=gender,
            phone=_as_text(cell(row, "PHONE")),
            email=_as_text(cell(row, "EMAIL")),
            address=_as_text(cell(row, "ADDRESS")),
            parent_id=_as_int(cell(row, "PARENT ID")),
            created_at=now,
            updated_at=now,
        ))

    ids = [p.id for p in persons]
    if len(ids) != len(set(ids)):
        raise InvalidImportError("Duplicate person IDs in sheet")

    return Family(
        id=generate_id(),
        name=_family_name(ws, header_row),
        members=tree.build_tree_from_flat(persons),
    )
