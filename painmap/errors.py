# painmap/errors.py
from __future__ import annotations

from typing import Dict, List


class PainmapError(Exception):
    """
    Base class for errors raised by the assessment engine.
    """


class UnknownFieldError(PainmapError, KeyError):
    def __init__(self, key: str):
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"'{self.key}' is not an editable assessment field"


class AssessmentIncompleteError(PainmapError, ValueError):
    def __init__(self, errors: Dict[str, List[str]]):
        super().__init__("Assessment is missing required information")
        self.errors = errors


class SubmissionInProgressError(PainmapError, RuntimeError):
    def __init__(self):
        super().__init__("A submission is already in progress")
