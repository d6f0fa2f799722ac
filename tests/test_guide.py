"""Tests for the guided tour sequencer."""

from __future__ import annotations

import pytest

from family_tree.core.storage import MemoryStorage
from family_tree.guide.sequencer import (
    CURRENT_STEP_KEY,
    PROGRESS_KEY,
    GuideSequencer,
    UnknownStepError,
    load_sections,
)


class TestBundledGuide:

    def test_sections_and_steps(self, guide: GuideSequencer):
        assert [s.id for s in guide.sections] == [
            "getting-started",
            "family-management",
            "person-management",
            "views-navigation",
            "advanced-features",
        ]
        assert len(guide.all_steps()) == 15
        assert [s.id for s in guide.get_section("getting-started").steps] == [
            "welcome",
            "create-first-family",
            "add-first-person",
        ]

    def test_step_fields(self, guide: GuideSequencer):
        step = guide.get_step("quick-search")

        assert step.title
        assert step.description
        assert step.target == ".search-box"
        assert step.position == "bottom"

    def test_lookups(self, guide: GuideSequencer):
        assert guide.get_step("nope") is None
        assert guide.get_section("nope") is None


class TestFirstVisit:

    def test_welcome_is_completed(self, guide: GuideSequencer):
        assert guide.is_step_completed("welcome")
        assert guide.get_next_step().id == "create-first-family"
        assert guide.current_step == "create-first-family"

    def test_progress_after_first_visit(self, guide: GuideSequencer):
        assert guide.progress_percentage() == pytest.approx(100 / 15)
        assert guide.completed_section_count() == 0

    def test_progress_survives_new_instance(self):
        storage = MemoryStorage()
        first = GuideSequencer(storage)
        first.complete_step("create-first-family")

        second = GuideSequencer(storage)

        assert second.progress.completed_steps == ["welcome", "create-first-family"]
        assert second.current_step == "add-first-person"


class TestCompletion:

    def test_completing_a_section(self, guide: GuideSequencer):
        guide.complete_step("create-first-family")
        assert guide.section_progress("getting-started") == pytest.approx(200 / 3)
        assert not guide.is_section_completed("getting-started")

        guide.complete_step("add-first-person")

        assert guide.is_section_completed("getting-started")
        assert guide.section_progress("getting-started") == 100
        assert guide.completed_section_count() == 1
        assert guide.current_step == "switch-families"

    def test_completing_twice_is_noop(self, guide: GuideSequencer):
        guide.complete_step("statistics")
        guide.complete_step("statistics")

        assert guide.progress.completed_steps.count("statistics") == 1

    def test_out_of_order_completion(self, guide: GuideSequencer):
        guide.complete_step("json-manager")

        assert guide.is_step_completed("json-manager")
        assert guide.get_next_step().id == "create-first-family"

    def test_skip_marks_step_done(self, guide: GuideSequencer):
        guide.skip_step("create-first-family")
        assert guide.is_step_completed("create-first-family")

    def test_unknown_step(self, guide: GuideSequencer):
        with pytest.raises(UnknownStepError):
            guide.complete_step("does-not-exist")
        assert guide.progress.completed_steps == ["welcome"]

    def test_complete_everything(self, guide: GuideSequencer):
        for step in guide.all_steps():
            guide.complete_step(step.id)

        assert guide.get_next_step() is None
        assert guide.current_step is None
        assert guide.progress_percentage() == 100
        assert guide.completed_section_count() == 5

    def test_section_progress_unknown(self, guide: GuideSequencer):
        assert guide.section_progress("nope") == 0.0


class TestStartAndReset:

    def test_reset_keeps_welcome(self, guide: GuideSequencer):
        guide.complete_step("create-first-family")
        guide.complete_step("add-first-person")

        guide.reset_progress()

        assert guide.progress.completed_steps == ["welcome"]
        assert guide.progress.completed_sections == []
        assert guide.current_step is None

    def test_start_sets_next_step(self, guide: GuideSequencer):
        guide.reset_progress()

        assert guide.start_guide() == "create-first-family"
        assert guide.current_step == "create-first-family"

    def test_start_keeps_existing_step(self, guide: GuideSequencer):
        guide.storage.set_item(CURRENT_STEP_KEY, '"statistics"')
        assert guide.start_guide() == "statistics"

    def test_unreadable_progress_starts_over(self):
        storage = MemoryStorage()
        storage.set_item(PROGRESS_KEY, "{broken")

        guide = GuideSequencer(storage)

        assert guide.progress.completed_steps == ["welcome"]


class TestCustomGuide:

    def test_load_sections_from_file(self, tmp_path):
        path = tmp_path / "guide.yaml"
        path.write_text(
            "sections:\n"
            "  - id: only\n"
            "    title: Only\n"
            "    steps:\n"
            "      - id: first\n"
            "        title: First\n"
            "      - id: second\n"
            "        title: Second\n"
            "        position: left\n"
        )

        sections = load_sections(path)
        guide = GuideSequencer(MemoryStorage(), sections=sections)

        assert [s.id for s in guide.all_steps()] == ["first", "second"]
        assert guide.get_step("second").position == "left"
        assert guide.progress.completed_steps == []
        assert guide.get_next_step().id == "first"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_sections(tmp_path / "missing.yaml")
