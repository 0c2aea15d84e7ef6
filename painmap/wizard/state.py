# painmap/wizard/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Set

from painmap.wizard.steps import WizardStep, FIRST_STEP
from painmap.wizard.schema import AssessmentData


@dataclass
class AssessmentDraft:
    """
    In-memory representation of an in-progress assessment.

    The orchestrator is the only writer. Autosave and submission work on
    copies taken with `copy_data()`.
    """

    data: AssessmentData = field(default_factory=AssessmentData)
    current_step: WizardStep = FIRST_STEP
    completed_steps: Set[WizardStep] = field(default_factory=set)

    # True when memory differs from the last persisted snapshot
    dirty: bool = False
    last_saved_at: Optional[datetime] = None

    # Bumped on every mutation; lets a finished save tell whether it
    # persisted the latest state or an older one.
    revision: int = 0

    def mark_dirty(self) -> None:
        self.dirty = True
        self.revision += 1

    def mark_saved(self, revision: int, saved_at: datetime) -> None:
        self.last_saved_at = saved_at
        if revision == self.revision:
            self.dirty = False

    def copy_data(self) -> AssessmentData:
        return self.data.model_copy(deep=True)
