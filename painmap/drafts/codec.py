# painmap/drafts/codec.py
"""
Encoding and decoding of stored drafts.

Three shapes exist in the wild:

  current  {"version": 2, "data": {...}, "currentStep": ..., "completedSteps": [...], "savedAt": ...}
  wrapped  {"assessmentData": {...}, "currentStep": ..., "completedSteps": [...], "savedAt": ...}
  legacy   the bare assessment data object, from before the wizard kept its position

`decode_draft` tags the raw object with its shape once and normalizes each
shape into the same DraftSnapshot.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping, Optional

from pydantic import TypeAdapter, ValidationError

from painmap.wizard.schema import AssessmentData
from painmap.wizard.steps import WizardStep, STEP_ORDER, FIRST_STEP, parse_step

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 2

_datetime_adapter = TypeAdapter(datetime)


class DraftShape(str, Enum):
    CURRENT = "current"
    WRAPPED = "wrapped"
    LEGACY = "legacy"


@dataclass(frozen=True)
class DraftSnapshot:
    data: AssessmentData
    current_step: WizardStep = FIRST_STEP
    completed_steps: FrozenSet[WizardStep] = field(default_factory=frozenset)
    saved_at: Optional[datetime] = None

    # Revision of the in-memory draft this was taken from. Not persisted.
    revision: int = 0


def encode_draft(snapshot: DraftSnapshot, saved_at: datetime) -> bytes:
    ordered_steps = [step.value for step in STEP_ORDER if step in snapshot.completed_steps]
    document = {
        "version": SNAPSHOT_VERSION,
        "data": snapshot.data.to_wire(),
        "currentStep": snapshot.current_step.value,
        "completedSteps": ordered_steps,
        "savedAt": saved_at.isoformat(),
    }
    return json.dumps(document, separators=(",", ":")).encode("utf-8")


def decode_draft(raw: Optional[bytes]) -> Optional[DraftSnapshot]:
    """
    Turn stored bytes back into a DraftSnapshot.

    Missing, unparseable or invalid drafts all come back as None.
    """
    if not raw:
        return None

    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, ValueError) as exc:
        logger.warning("Discarding unreadable stored draft: %s", exc)
        return None

    if not isinstance(document, dict):
        logger.warning("Discarding stored draft of type %s", type(document).__name__)
        return None

    shape = _shape_of(document)
    try:
        return _NORMALIZERS[shape](document)
    except ValidationError as exc:
        logger.warning("Discarding stored %s draft that failed validation: %s", shape.value, exc)
        return None


# ----------------------------------------------------------------------
# Internal helpers
# ----------------------------------------------------------------------


def _shape_of(document: Mapping[str, Any]) -> DraftShape:
    # Any version (or none) with a `data` object is the snapshot wrapper;
    # only a bare AssessmentData document is legacy.
    if isinstance(document.get("data"), dict):
        return DraftShape.CURRENT
    if isinstance(document.get("assessmentData"), dict):
        return DraftShape.WRAPPED
    return DraftShape.LEGACY


def _normalize_current(document: Mapping[str, Any]) -> DraftSnapshot:
    return _normalize_wrapper(document, document.get("data"))


def _normalize_wrapped(document: Mapping[str, Any]) -> DraftSnapshot:
    return _normalize_wrapper(document, document.get("assessmentData"))


def _normalize_legacy(document: Mapping[str, Any]) -> DraftSnapshot:
    data = AssessmentData.model_validate(document)
    return DraftSnapshot(
        data=data,
        current_step=FIRST_STEP,
        completed_steps=frozenset(),
        saved_at=_parse_timestamp(document.get("updatedAt")),
    )


def _normalize_wrapper(document: Mapping[str, Any], raw_data: Any) -> DraftSnapshot:
    data = AssessmentData.model_validate(raw_data or {})
    current_step = parse_step(document.get("currentStep")) or FIRST_STEP
    return DraftSnapshot(
        data=data,
        current_step=current_step,
        completed_steps=_parse_steps(document.get("completedSteps")),
        saved_at=_parse_timestamp(document.get("savedAt")),
    )


def _parse_steps(raw: Any) -> FrozenSet[WizardStep]:
    if not isinstance(raw, list):
        return frozenset()
    steps: Iterable[Optional[WizardStep]] = (parse_step(value) for value in raw)
    return frozenset(step for step in steps if step is not None)


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if not isinstance(raw, str):
        return None
    try:
        return _datetime_adapter.validate_python(raw)
    except ValidationError:
        return None


_NORMALIZERS: Dict[DraftShape, Callable[[Mapping[str, Any]], DraftSnapshot]] = {
    DraftShape.CURRENT: _normalize_current,
    DraftShape.WRAPPED: _normalize_wrapped,
    DraftShape.LEGACY: _normalize_legacy,
}
