"""
Guided tour progress.

Sections and steps come from the bundled ``guide.yaml``. Progress (the
completed steps and sections) and the current step are persisted in the
editor storage so the tour resumes across sessions.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from family_tree.core.storage import MemoryStorage, Storage

logger = logging.getLogger(__name__)

PROGRESS_KEY = "family-tree-guide-progress"
CURRENT_STEP_KEY = "family-tree-current-step"
WELCOME_STEP = "welcome"


class UnknownStepError(KeyError):
    """Step ID not present in the guide."""
    def __init__(self, step_id: str):
        self.step_id = step_id
        super().__init__(f"Unknown guide step: {step_id}")


@dataclass
class GuideStep:
    """One step of the tour."""

    id: str
    title: str
    description: str = ""
    icon: str | None = None
    target: str | None = None
    position: str = "bottom"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuideStep:
        return cls(
            id=data["id"],
            title=data.get("title", data["id"]),
            description=data.get("description", ""),
            icon=data.get("icon"),
            target=data.get("target"),
            position=data.get("position", "bottom"),
        )


@dataclass
class GuideSection:
    """An ordered group of steps."""

    id: str
    title: str
    description: str = ""
    icon: str | None = None
    steps: list[GuideStep] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuideSection:
        return cls(
            id=data["id"],
            title=data.get("title", data["id"]),
            description=data.get("description", ""),
            icon=data.get("icon"),
            steps=[GuideStep.from_dict(s) for s in data.get("steps", [])],
        )


@dataclass
class GuideProgress:
    """Persisted tour state."""

    completed_steps: list[str] = field(default_factory=list)
    completed_sections: list[str] = field(default_factory=list)
    last_visited: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GuideProgress:
        last_visited = data.get("lastVisited")
        return cls(
            completed_steps=list(data.get("completedSteps", [])),
            completed_sections=list(data.get("completedSections", [])),
            last_visited=datetime.fromisoformat(last_visited) if last_visited else datetime.now(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "completedSteps": self.completed_steps,
            "completedSections": self.completed_sections,
            "lastVisited": self.last_visited.isoformat(),
        }


def load_sections(guide_path: Path | str | None = None) -> list[GuideSection]:
    """Load sections from YAML, defaulting to the bundled guide."""
    if guide_path is None:
        guide_path = Path(__file__).parent.parent / "data" / "guide.yaml"
    guide_path = Path(guide_path)
    if not guide_path.exists():
        raise FileNotFoundError(f"Guide file not found: {guide_path}")

    with open(guide_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return [GuideSection.from_dict(s) for s in data.get("sections", [])]


class GuideSequencer:
    """Walks the user through the guide sections in fixed order."""

    def __init__(
        self,
        storage: Storage | None = None,
        sections: list[GuideSection] | None = None,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.sections = sections if sections is not None else load_sections()
        self._initialize_first_visit()

    def _initialize_first_visit(self) -> None:
        progress = self._load_progress()
        if not progress.completed_steps and self.get_step(WELCOME_STEP) is not None:
            self.complete_step(WELCOME_STEP)

    # =========================================
    # Persistence
    # =========================================

    def _load_progress(self) -> GuideProgress:
        raw = self.storage.get_item(PROGRESS_KEY)
        if not raw:
            return GuideProgress()
        try:
            return GuideProgress.from_dict(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.error("Guide progress is unreadable, starting over: %s", e)
            return GuideProgress()

    def _save_progress(self, progress: GuideProgress) -> None:
        progress.last_visited = datetime.now()
        self.storage.set_item(PROGRESS_KEY, json.dumps(progress.to_dict()))

    @property
    def progress(self) -> GuideProgress:
        return self._load_progress()

    @property
    def current_step(self) -> str | None:
        raw = self.storage.get_item(CURRENT_STEP_KEY)
        return json.loads(raw) if raw else None

    def _set_current_step(self, step_id: str | None) -> None:
        if step_id:
            self.storage.set_item(CURRENT_STEP_KEY, json.dumps(step_id))
        else:
            self.storage.remove_item(CURRENT_STEP_KEY)

    # =========================================
    # Navigation
    # =========================================

    def all_steps(self) -> list[GuideStep]:
        return [step for section in self.sections for step in section.steps]

    def get_step(self, step_id: str) -> GuideStep | None:
        for step in self.all_steps():
            if step.id == step_id:
                return step
        return None

    def get_section(self, section_id: str) -> GuideSection | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def get_next_step(self) -> GuideStep | None:
        """First step, in guide order, that is not completed yet."""
        completed = set(self._load_progress().completed_steps)
        for step in self.all_steps():
            if step.id not in completed:
                return step
        return None

    def start_guide(self) -> str | None:
        """Set the current step to the next incomplete one unless one is already set."""
        current = self.current_step
        if current is None:
            next_step = self.get_next_step()
            if next_step is not None:
                self._set_current_step(next_step.id)
                current = next_step.id
        return current

    def complete_step(self, step_id: str) -> None:
        """Mark a step done, close finished sections and advance the current step."""
        if self.get_step(step_id) is None:
            raise UnknownStepError(step_id)

        progress = self._load_progress()
        if step_id in progress.completed_steps:
            return
        progress.completed_steps.append(step_id)

        done = set(progress.completed_steps)
        for section in self.sections:
            if section.id in progress.completed_sections:
                continue
            if all(step.id in done for step in section.steps):
                progress.completed_sections.append(section.id)
                logger.debug("Guide section completed: %s", section.id)

        self._save_progress(progress)
        next_step = self.get_next_step()
        self._set_current_step(next_step.id if next_step else None)

    def skip_step(self, step_id: str) -> None:
        self.complete_step(step_id)

    def reset_progress(self) -> None:
        """Forget progress but keep the welcome step."""
        self._save_progress(GuideProgress(completed_steps=[WELCOME_STEP]))
        self._set_current_step(None)

    # =========================================
    # Progress
    # =========================================

    def progress_percentage(self) -> float:
        total = len(self.all_steps())
        if total == 0:
            return 0.0
        known = {step.id for step in self.all_steps()}
        completed = [s for s in self._load_progress().completed_steps if s in known]
        return len(completed) / total * 100

    def completed_section_count(self) -> int:
        return len(self._load_progress().completed_sections)

    def section_progress(self, section_id: str) -> float:
        section = self.get_section(section_id)
        if section is None or not section.steps:
            return 0.0
        done = set(self._load_progress().completed_steps)
        return sum(1 for step in section.steps if step.id in done) / len(section.steps) * 100

    def is_step_completed(self, step_id: str) -> bool:
        return step_id in self._load_progress().completed_steps

    def is_section_completed(self, section_id: str) -> bool:
        return section_id in self._load_progress().completed_sections
