"""Guided tour of the editor."""

from family_tree.guide.sequencer import (
    GuideProgress,
    GuideSection,
    GuideSequencer,
    GuideStep,
    UnknownStepError,
)

__all__ = [
    "GuideSequencer",
    "GuideSection",
    "GuideStep",
    "GuideProgress",
    "UnknownStepError",
]
