"""Tests for the command-line interface."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from family_tree.cli import cli
from family_tree.core.database import FamilyDatabase
from family_tree.core.models import Family
from family_tree.core.storage import FileStorage


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    return tmp_path / "data"


@pytest.fixture
def seeded(data_dir: Path, sample_family: Family) -> Path:
    """Data directory holding the sample family (ID 100)."""
    FamilyDatabase(FileStorage(data_dir)).import_family(sample_family)
    return data_dir


def invoke(runner: CliRunner, data_dir: Path, *args: str, **kwargs):
    return runner.invoke(cli, ["--data-dir", str(data_dir), *args], obj={}, **kwargs)


def reopen(data_dir: Path) -> FamilyDatabase:
    return FamilyDatabase(FileStorage(data_dir))


class TestFamilyCommands:

    def test_create_and_list(self, runner: CliRunner, data_dir: Path):
        result = invoke(runner, data_dir, "family", "create", "Smith")

        assert result.exit_code == 0
        assert "Created family 'Smith'" in result.output
        assert [f.name for f in reopen(data_dir).families] == ["Smith"]

        result = invoke(runner, data_dir, "family", "list")
        assert "Smith" in result.output

    def test_list_empty(self, runner: CliRunner, data_dir: Path):
        result = invoke(runner, data_dir, "family", "list")

        assert result.exit_code == 0
        assert "No families yet" in result.output

    def test_create_blank_name(self, runner: CliRunner, data_dir: Path):
        result = invoke(runner, data_dir, "family", "create", "  ")
        assert result.exit_code == 1

    def test_rename(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "family", "rename", "100", "Martins")

        assert result.exit_code == 0
        assert reopen(seeded).get_family(100).name == "Martins"

    def test_rename_unknown(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "family", "rename", "999", "X")

        assert result.exit_code == 1
        assert "Family not found" in result.output

    def test_delete_asks_for_confirmation(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "family", "delete", "100", input="n\n")

        assert result.exit_code == 1
        assert reopen(seeded).get_family(100) is not None

        result = invoke(runner, seeded, "family", "delete", "100", "--yes")
        assert result.exit_code == 0
        assert reopen(seeded).get_family(100) is None

    def test_duplicate_and_sample(self, runner: CliRunner, seeded: Path):
        assert invoke(runner, seeded, "family", "duplicate", "100").exit_code == 0
        assert invoke(runner, seeded, "family", "sample").exit_code == 0

        names = [f.name for f in reopen(seeded).families]
        assert names == ["Martin", "Martin (copy)", "Sample Family"]

    def test_show(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "family", "show", "100")

        assert result.exit_code == 0
        assert "Martin" in result.output


class TestPersonCommands:

    def test_add(self, runner: CliRunner, seeded: Path):
        result = invoke(
            runner, seeded, "person", "add", "100",
            "--given", "Emma", "--surname", "Martin", "--gender", "female",
            "--parent", "3", "--birth-date", "2010-04-01",
        )

        assert result.exit_code == 0, result.output
        db = reopen(seeded)
        emma = db.search_person("emma")[0]
        assert emma.parent_id == 3
        assert emma.birth_date.year == 2010

    def test_add_unknown_parent(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "add", "100", "-g", "A", "-s", "B", "-p", "999")
        assert result.exit_code == 1

    def test_add_bad_date(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "add", "100", "-g", "A", "-s", "B", "--birth-date", "01/02/2000")
        assert result.exit_code == 2

    def test_edit(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "edit", "100", "3", "--phone", "0600000000")

        assert result.exit_code == 0
        assert reopen(seeded).get_person(3, 100).phone == "0600000000"

    def test_edit_needs_a_change(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "edit", "100", "3")

        assert result.exit_code == 1
        assert "Nothing to change" in result.output

    def test_move(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "move", "100", "2", "--root")

        assert result.exit_code == 0
        assert [p.id for p in reopen(seeded).get_family(100).members] == [1, 5, 2]

    def test_move_requires_one_target(self, runner: CliRunner, seeded: Path):
        assert invoke(runner, seeded, "person", "move", "100", "2").exit_code == 1
        assert invoke(runner, seeded, "person", "move", "100", "2", "--root", "-p", "5").exit_code == 1

    def test_move_into_descendant(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "move", "100", "1", "--parent", "4")
        assert result.exit_code == 1

    def test_delete_with_descendants(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "delete", "100", "2", "--yes")

        assert result.exit_code == 0
        db = reopen(seeded)
        assert db.get_person(2, 100) is None
        assert db.get_person(4, 100) is None

    def test_show(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "person", "show", "100", "2")

        assert result.exit_code == 0
        assert "alice@example.com" in result.output


class TestBrowsing:

    def test_tree(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "tree", "100")

        assert result.exit_code == 0
        assert "Lucas Bernard" in result.output

    def test_search(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "search", "bern")

        assert result.exit_code == 0
        assert "Lucas" in result.output

    def test_search_no_match(self, runner: CliRunner, seeded: Path):
        assert "No matches found" in invoke(runner, seeded, "search", "zzz").output

    def test_stats(self, runner: CliRunner, seeded: Path):
        result = invoke(runner, seeded, "stats")

        assert result.exit_code == 0
        assert "Persons" in result.output


class TestImportExport:

    def test_json_export_then_import(self, runner: CliRunner, seeded: Path, tmp_path: Path):
        out = tmp_path / "export.json"
        assert invoke(runner, seeded, "export", "json", str(out)).exit_code == 0
        assert json.loads(out.read_text())["totalPersons"] == 5

        invoke(runner, seeded, "clear", "--yes")
        result = invoke(runner, seeded, "import", str(out))

        assert result.exit_code == 0
        assert reopen(seeded).total_persons() == 5

    def test_json_import_confirms_replacement(self, runner: CliRunner, seeded: Path, tmp_path: Path):
        out = tmp_path / "other.json"
        out.write_text(json.dumps({"families": []}))

        result = invoke(runner, seeded, "import", str(out), input="n\n")

        assert result.exit_code == 1
        assert reopen(seeded).get_family(100) is not None

    def test_invalid_json(self, runner: CliRunner, seeded: Path, tmp_path: Path):
        bad = tmp_path / "bad.json"
        bad.write_text("{nope")

        result = invoke(runner, seeded, "import", str(bad), "--yes")

        assert result.exit_code == 1
        assert reopen(seeded).get_family(100) is not None

    def test_non_utf8_json(self, runner: CliRunner, seeded: Path, tmp_path: Path):
        bad = tmp_path / "latin1.json"
        bad.write_bytes("{\"families\": [{\"name\": \"Fran\u00e7ois\"}]}".encode("latin-1"))

        result = invoke(runner, seeded, "import", str(bad), "--yes")

        assert result.exit_code == 1
        assert "UTF-8" in result.output
        assert reopen(seeded).get_family(100) is not None

    def test_xlsx_export_then_import(self, runner: CliRunner, seeded: Path, tmp_path: Path):
        out = tmp_path / "martin.xlsx"
        assert invoke(runner, seeded, "export", "xlsx", str(out), "--family", "100").exit_code == 0

        result = invoke(runner, seeded, "import", str(out))

        assert result.exit_code == 0
        assert "Imported 'Martin' with 5 persons" in result.output
        assert len(reopen(seeded).families) == 2

    def test_person_export_needs_family(self, runner: CliRunner, seeded: Path, tmp_path: Path):
        result = invoke(runner, seeded, "export", "xlsx", str(tmp_path / "p.xlsx"), "--person", "2")
        assert result.exit_code == 1

    def test_statistics_export(self, runner: CliRunner, seeded: Path, tmp_path: Path):
        out = tmp_path / "stats.xlsx"

        assert invoke(runner, seeded, "export", "stats", str(out)).exit_code == 0
        assert out.exists()


class TestBackupCommands:

    def test_create_list_restore(self, runner: CliRunner, seeded: Path):
        assert invoke(runner, seeded, "backup", "create").exit_code == 0
        assert "Backup_" in invoke(runner, seeded, "backup", "list").output

        invoke(runner, seeded, "clear", "--yes")
        result = invoke(runner, seeded, "backup", "restore", "0", "--yes")

        assert result.exit_code == 0
        assert reopen(seeded).get_family(100) is not None

    def test_restore_unknown(self, runner: CliRunner, seeded: Path):
        assert invoke(runner, seeded, "backup", "restore", "3", "--yes").exit_code == 1
        assert invoke(runner, seeded, "backup", "delete", "3").exit_code == 1


class TestGuideCommands:

    def test_complete_persists(self, runner: CliRunner, data_dir: Path):
        assert invoke(runner, data_dir, "guide", "complete", "create-first-family").exit_code == 0

        result = invoke(runner, data_dir, "guide", "status")

        assert result.exit_code == 0
        assert "add-first-person" in result.output

    def test_unknown_step(self, runner: CliRunner, data_dir: Path):
        assert invoke(runner, data_dir, "guide", "skip", "nope").exit_code == 1

    def test_reset(self, runner: CliRunner, data_dir: Path):
        invoke(runner, data_dir, "guide", "complete", "create-first-family")
        invoke(runner, data_dir, "guide", "reset")

        result = invoke(runner, data_dir, "guide", "next")
        assert "create-first-family" in result.output


def test_version(runner: CliRunner):
    result = runner.invoke(cli, ["--version"], obj={})

    assert result.exit_code == 0
    assert "0.1.0" in result.output
