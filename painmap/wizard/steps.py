# painmap/wizard/steps.py
from __future__ import annotations

from enum import Enum
from typing import List, Optional


class WizardStep(str, Enum):
    WELCOME = "welcome"
    PAIN_MAPPING = "pain-mapping"
    TIMING = "timing"
    TRIGGERS = "triggers"
    SYMPTOMS = "symptoms"
    RED_FLAGS = "red-flags"
    GOALS = "goals"
    REVIEW = "review"


# Declaration order is the wizard order.
STEP_ORDER: List[WizardStep] = list(WizardStep)

FIRST_STEP = STEP_ORDER[0]
TERMINAL_STEP = STEP_ORDER[-1]


def parse_step(value: object) -> Optional[WizardStep]:
    """
    Return the WizardStep for a stored value, or None if it is not one.
    """
    if isinstance(value, WizardStep):
        return value
    if not isinstance(value, str):
        return None
    try:
        return WizardStep(value)
    except ValueError:
        return None
