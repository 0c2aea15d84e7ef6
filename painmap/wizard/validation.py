# painmap/wizard/validation.py
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List

from painmap.wizard.steps import WizardStep
from painmap.wizard.schema import AssessmentData

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class ValidationResult:
    errors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors


def _welcome_errors(data: AssessmentData) -> Dict[str, List[str]]:
    errors: Dict[str, List[str]] = {}
    if not (data.user.email or "").strip():
        errors["email"] = ["Email is required"]
    if not (data.user.name or "").strip():
        errors["name"] = ["Name is required"]
    return errors


def _pain_mapping_errors(data: AssessmentData) -> Dict[str, List[str]]:
    if not data.points:
        return {"points": ["Add at least one pain point"]}
    return {}


def _timing_errors(data: AssessmentData) -> Dict[str, List[str]]:
    if data.timing is None:
        return {"timing": ["Timing information is required"]}
    return {}


_STEP_RULES = {
    WizardStep.WELCOME: _welcome_errors,
    WizardStep.PAIN_MAPPING: _pain_mapping_errors,
    WizardStep.TIMING: _timing_errors,
    # red-flags only displays the computed classification; the remaining
    # steps hold optional, best-effort fields.
}


def validate_step(step: WizardStep, data: AssessmentData) -> ValidationResult:
    """
    Decide whether `data` is complete enough to leave `step`.

    Pure: reads the draft, never writes it.
    """
    rule = _STEP_RULES.get(step)
    if rule is None:
        return ValidationResult()
    return ValidationResult(errors=rule(data))


def validate_for_submission(data: AssessmentData) -> ValidationResult:
    """
    Final gate before submit: identity, a well-formed email and at least
    one pain point.
    """
    errors = _welcome_errors(data)
    email = (data.user.email or "").strip()
    if email and not EMAIL_PATTERN.match(email):
        errors["email"] = ["Enter a valid email address"]
    errors.update(_pain_mapping_errors(data))
    return ValidationResult(errors=errors)
