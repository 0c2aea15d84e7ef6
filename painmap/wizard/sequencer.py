# painmap/wizard/sequencer.py
from __future__ import annotations

from typing import Callable, Optional

from painmap.wizard.state import AssessmentDraft
from painmap.wizard.steps import WizardStep, STEP_ORDER, FIRST_STEP, TERMINAL_STEP


StepGate = Callable[[AssessmentDraft], bool]


class StepSequencer:
    """
    StepSequencer moves an AssessmentDraft through the wizard steps.

    Order:
      welcome -> pain-mapping -> timing -> triggers -> symptoms
      -> red-flags -> goals -> review

    The sequencer keeps no state of its own; position and completed steps
    live on the draft it is handed. Any call that changes the current step
    marks the draft dirty.

    `gate` decides whether the draft may leave its current step. It is
    normally backed by the field validator.
    """

    def __init__(self, gate: Optional[StepGate] = None):
        self.gate = gate or (lambda draft: True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def current(self, draft: AssessmentDraft) -> WizardStep:
        return draft.current_step

    def advance(self, draft: AssessmentDraft) -> WizardStep:
        """
        Move to the next step if the gate allows it.

        Returns the (possibly unchanged) current step. A blocked gate and
        the terminal step are both no-ops.
        """
        if draft.current_step == TERMINAL_STEP:
            return draft.current_step

        if not self.gate(draft):
            return draft.current_step

        draft.completed_steps.add(draft.current_step)
        self._move_to(draft, self._next_step(draft.current_step))
        return draft.current_step

    def retreat(self, draft: AssessmentDraft) -> WizardStep:
        """
        Move back one step. No-op on the first step.
        """
        if draft.current_step == FIRST_STEP:
            return draft.current_step

        self._move_to(draft, self._previous_step(draft.current_step))
        return draft.current_step

    def jump(self, draft: AssessmentDraft, step: WizardStep) -> WizardStep:
        """
        Go straight to `step` without consulting the gate.
        """
        self._move_to(draft, WizardStep(step))
        return draft.current_step

    def reset(self, draft: AssessmentDraft) -> None:
        draft.completed_steps.clear()
        self._move_to(draft, FIRST_STEP)

    def completion_percent(self, draft: AssessmentDraft) -> int:
        """
        round(100 * completed / (N - 1)).

        The review step is the destination rather than a counted step, so
        it is left out of the denominator.
        """
        denominator = len(STEP_ORDER) - 1
        percent = round(100 * len(draft.completed_steps) / denominator)
        return max(0, min(100, percent))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _move_to(self, draft: AssessmentDraft, step: WizardStep) -> None:
        if step == draft.current_step:
            return
        draft.current_step = step
        draft.mark_dirty()

    def _next_step(self, current: WizardStep) -> WizardStep:
        index = STEP_ORDER.index(current)
        return STEP_ORDER[min(index + 1, len(STEP_ORDER) - 1)]

    def _previous_step(self, current: WizardStep) -> WizardStep:
        index = STEP_ORDER.index(current)
        return STEP_ORDER[max(index - 1, 0)]
