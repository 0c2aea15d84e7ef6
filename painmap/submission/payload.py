# painmap/submission/payload.py
from __future__ import annotations

import secrets
import string
import time
from typing import List, Optional

from pydantic import BaseModel, Field

from painmap.wizard.schema import (
    Aggravators,
    AssessmentData,
    AssociatedSymptoms,
    Coordinates,
    FunctionalImpact,
    Goals,
    HistoryContext,
    Relievers,
    Timing,
    to_camel,
)

_SESSION_ALPHABET = string.ascii_lowercase + string.digits


class _PayloadModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }


class PainArea(_PayloadModel):
    region: str = "Unknown Region"
    intensity: int = Field(0, ge=0, le=10)
    coordinates: Optional[Coordinates] = None
    notes: str = ""
    qualities: List[str] = Field(default_factory=list)


class RedFlagAnswers(_PayloadModel):
    bowel_bladder_dysfunction: bool = False
    progressive_weakness: bool = False
    saddle_anesthesia: bool = False
    unexplained_weight_loss: bool = False
    fever_chills: bool = False
    night_pain: bool = False
    cancer_history: bool = False
    recent_trauma: bool = False
    notes: str = ""

    def positive(self) -> List[str]:
        return [
            name
            for name, value in self.model_dump(exclude={"notes"}).items()
            if value
        ]


class SubmissionPayload(_PayloadModel):
    """
    What the front-end POSTs to the summarization backend.

    The flat identity / painAreas / redFlags part is what the backend has
    always accepted; the detailed sections are optional and only enrich
    the summary prompt.
    """

    session_id: str
    email: str = ""
    full_name: str = ""
    phone: str = ""
    date_of_birth: str = ""
    pain_areas: List[PainArea] = Field(default_factory=list)
    red_flags: RedFlagAnswers = Field(default_factory=RedFlagAnswers)
    treatment_goals: str = ""
    pain_map_image_front: Optional[str] = None
    pain_map_image_back: Optional[str] = None

    timing: Optional[Timing] = None
    aggravators: Optional[Aggravators] = None
    relievers: Optional[Relievers] = None
    associated: Optional[AssociatedSymptoms] = None
    functional: Optional[FunctionalImpact] = None
    history: Optional[HistoryContext] = None
    goals: Optional[Goals] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def new_session_id() -> str:
    suffix = "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(7))
    return f"session-{int(time.time() * 1000)}-{suffix}"


def build_submission_payload(
    data: AssessmentData,
    session_id: Optional[str] = None,
) -> SubmissionPayload:
    """
    Flatten the wizard's draft into the backend submission format.
    """
    associated = data.associated
    history = data.history
    time_of_day = data.timing.time_of_day if data.timing else []

    pain_areas = [
        PainArea(
            region=point.region_name or "Unknown Region",
            intensity=point.intensity_current,
            coordinates=point.coords,
            notes=point.radiates_to or "",
            qualities=list(point.qualities),
        )
        for point in data.points
    ]

    red_flags = RedFlagAnswers(
        bowel_bladder_dysfunction=associated.bladder_change or associated.incontinence,
        progressive_weakness=associated.weakness,
        saddle_anesthesia=associated.saddle_numbness,
        # Not asked anywhere in the wizard
        unexplained_weight_loss=False,
        fever_chills=associated.fever_chills,
        night_pain="wakes_from_sleep" in time_of_day,
        cancer_history="cancer" in history.comorbidities,
        recent_trauma=history.recent_injury,
        notes="",
    )

    return SubmissionPayload(
        session_id=session_id or new_session_id(),
        email=(data.user.email or "").strip(),
        full_name=(data.user.name or "").strip(),
        phone=data.user.phone or "",
        date_of_birth=data.user.date_of_birth or "",
        pain_areas=pain_areas,
        red_flags=red_flags,
        treatment_goals=data.goals.goal_2to4_weeks or data.goals.notes or "",
        pain_map_image_front=data.pain_map_image_front,
        pain_map_image_back=data.pain_map_image_back,
        timing=data.timing,
        aggravators=data.aggravators,
        relievers=data.relievers,
        associated=data.associated,
        functional=data.functional,
        history=data.history,
        goals=data.goals,
    )
