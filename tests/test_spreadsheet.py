"""Tests for spreadsheet export and import."""

from __future__ import annotations

import io

import pytest
from openpyxl import Workbook, load_workbook

from family_tree.core import tree
from family_tree.core.database import InvalidImportError
from family_tree.core.models import Family, Gender
from family_tree.reports import spreadsheet


def _open(content: bytes):
    return load_workbook(io.BytesIO(content))


def _rows(ws):
    return [list(row) for row in ws.iter_rows(values_only=True)]


class TestExportFamily:

    def test_layout(self, sample_family: Family):
        ws = _open(spreadsheet.export_family(sample_family)).active
        rows = _rows(ws)

        assert ws.title == "Family Martin"
        assert rows[0][0] == "Family Tree - Martin"
        assert rows[1][0].startswith("Exported on ")
        assert rows[3] == [name for name, _ in spreadsheet.FAMILY_COLUMNS]
        assert len(rows) == 4 + 5

    def test_person_rows_in_tree_order(self, sample_family: Family):
        rows = _rows(_open(spreadsheet.export_family(sample_family)).active)[4:]

        assert [r[0] for r in rows] == [
            "Jean Martin", "Alice Martin", "Lucas Bernard", "Paul Martin", "Marie Durand",
        ]
        jean, alice, lucas = rows[0], rows[1], rows[2]
        assert jean[3] == "Male"
        assert jean[4] == "0102030405"
        assert jean[7] == "Level 1"
        assert jean[8] == "Founder"
        assert jean[9] == 2
        assert alice[3] == "Female"
        assert alice[8] == "Jean Martin"
        assert lucas[7] == "Level 3"
        assert lucas[10] == 4
        assert lucas[11] == 2

    def test_save_to_path(self, sample_family: Family, tmp_path):
        path = spreadsheet.export_family(sample_family, tmp_path / "martin.xlsx")

        assert path.exists()
        assert load_workbook(path).active["A1"].value == "Family Tree - Martin"


class TestOtherExports:

    def test_export_families_skips_empty(self, sample_family: Family):
        empty = Family(id=200, name="Empty")
        wb = _open(spreadsheet.export_families([sample_family, empty]))

        assert wb.sheetnames == ["Martin"]
        assert wb["Martin"]["A1"].value == "Family: Martin"

    def test_export_families_without_members(self):
        wb = _open(spreadsheet.export_families([Family(name="Empty")]))
        assert len(wb.sheetnames) == 1

    def test_sheet_names_are_sanitized(self, sample_family: Family):
        sample_family.name = "A/very:long*family?name that goes on and on"
        wb = _open(spreadsheet.export_families([sample_family]))

        title = wb.sheetnames[0]
        assert len(title) <= 31
        assert not any(c in title for c in "[]:*?/\\")

    def test_export_person(self, sample_family: Family):
        alice = tree.find_person(sample_family.members, 2)
        ws = _open(spreadsheet.export_person(alice, sample_family)).active
        values = {row[0]: row[1] for row in ws.iter_rows(values_only=True) if row[0] and len(row) > 1}

        assert ws["A1"].value == "PERSON PROFILE"
        assert values["Full name"] == "Alice Martin"
        assert values["Gender"] == "Female"
        assert values["Email"] == "alice@example.com"
        assert values["Phone"] == "Not provided"
        assert values["Parent"] == "Jean Martin"
        assert values["Children"] == "Lucas Bernard"

    def test_export_root_person(self, sample_family: Family):
        ws = _open(spreadsheet.export_person(sample_family.members[1], sample_family)).active
        values = {row[0]: row[1] for row in ws.iter_rows(values_only=True) if row[0] and len(row) > 1}

        assert values["Parent"] == "Founder"
        assert values["Children"] == "None"

    def test_export_statistics(self, sample_family: Family):
        ws = _open(spreadsheet.export_statistics([sample_family])).active
        rows = _rows(ws)

        assert ws.title == "Statistics"
        assert rows[0][0] == "Family"
        assert rows[1][:8] == ["Martin", 5, 3, 2, 1, 1, 1, 3]


class TestImportFamily:

    def test_reads_back_family_export(self, sample_family: Family):
        family = spreadsheet.import_family(spreadsheet.export_family(sample_family))

        assert family.name == "Martin"
        assert [p.id for p in tree.flatten(family.members)] == [1, 2, 4, 3, 5]
        assert tree.find_person(family.members, 4).parent_id == 2
        assert tree.find_person(family.members, 2).gender is Gender.FEMALE
        assert tree.find_person(family.members, 5).address == "Paris"

    def test_reads_back_multi_family_sheet(self, sample_family: Family):
        content = spreadsheet.export_families([sample_family])
        family = spreadsheet.import_family(content, sheet="Martin")

        assert family.name == "Martin"
        assert tree.count_persons(family.members) == 5

    def test_rows_without_ids_become_roots(self):
        wb = Workbook()
        ws = wb.active
        ws.title = "Manual"
        ws.append(["FULL NAME", "GIVEN NAME", "SURNAME", "GENDER", "PHONE"])
        ws.append(["Ann Lee", "Ann", "Lee", "Female", 612345678])
        ws.append(["Bo Lee", "Bo", "Lee", None, None])

        family = spreadsheet.import_family(wb)

        assert family.name == "Manual"
        assert [p.given_name for p in family.members] == ["Ann", "Bo"]
        assert family.members[0].phone == "612345678"
        assert family.members[1].gender is Gender.MALE
        assert family.members[0].id != family.members[1].id

    def test_missing_header(self):
        wb = Workbook()
        wb.active.append(["something else"])

        with pytest.raises(InvalidImportError):
            spreadsheet.import_family(wb)

    def test_unknown_gender(self):
        wb = Workbook()
        wb.active.append(["FULL NAME", "GIVEN NAME", "SURNAME", "GENDER"])
        wb.active.append(["X Y", "X", "Y", "unknown"])

        with pytest.raises(InvalidImportError):
            spreadsheet.import_family(wb)

    def test_not_a_workbook(self):
        with pytest.raises(InvalidImportError):
            spreadsheet.import_family(b"not a zip file")
