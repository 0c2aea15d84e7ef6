# painmap/wizard/__init__.py
from .steps import WizardStep, STEP_ORDER
from .schema import AssessmentData, PainPoint, RedFlagResult
from .state import AssessmentDraft
from .sequencer import StepSequencer
from .validation import ValidationResult, validate_step, validate_for_submission

__all__ = [
    "WizardStep",
    "STEP_ORDER",
    "AssessmentData",
    "PainPoint",
    "RedFlagResult",
    "AssessmentDraft",
    "StepSequencer",
    "ValidationResult",
    "validate_step",
    "validate_for_submission",
]
