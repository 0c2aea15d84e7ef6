# painmap/wizard/schema.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


DurationUnit = Literal["minutes", "hours", "days", "weeks", "months", "years"]

PainQuality = Literal[
    # Musculoskeletal
    "dull_aching",
    "sharp",
    "stabbing",
    "throbbing",
    "pressure",
    "tightness",
    "cramping",
    "sore",
    "stiff",
    # Neuropathic
    "burning",
    "shooting",
    "electric",
    "tingling",
    "numb",
    "hypersensitive",
    # Visceral / vascular
    "colicky",
    "gnawing",
    "squeezing",
    "deep_internal",
    "bloating",
    "pulsing",
    # Other
    "tearing",
    "itching",
    "cold",
    "hot",
    "other",
    "undescribed",
]

RedFlagKey = Literal[
    "new_weakness",
    "trouble_walking",
    "foot_drop",
    "bowel_bladder_change",
    "saddle_anesthesia",
    "chest_pain",
    "shortness_breath",
    "fever_with_severe_pain",
    "hot_swollen_joint",
    "rapid_spreading_redness",
    "unexplained_weight_loss",
    "cancer_history",
    "night_pain_persists",
    "major_trauma",
    "anticoagulant_bleed",
    "worst_headache",
    "neuro_deficit",
    "headache_fever_neck_stiffness",
]


class WireModel(BaseModel):
    """
    Base for every assessment sub-record.

    Python attributes are snake_case; the stored / transmitted form is
    camelCase, matching what the front-end has always written.
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
    }

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class UserInfo(WireModel):
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    date_of_birth: Optional[str] = None


class Coordinates(WireModel):
    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)


class PainPoint(WireModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    region_id: Optional[int] = None
    region_name: Optional[str] = None
    side: Optional[Literal["left", "right", "midline"]] = None
    view: Optional[Literal["front", "back"]] = None
    coords: Optional[Coordinates] = None
    intensity_current: int = Field(..., ge=0, le=10)
    intensity_average_24h: Optional[int] = Field(None, ge=0, le=10)
    intensity_worst_24h: Optional[int] = Field(None, ge=0, le=10)
    qualities: List[PainQuality] = Field(default_factory=list)
    radiates_to: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_complete(self) -> bool:
        # The pain-mapping step only needs a point to exist; a point is
        # "complete" once it also carries at least one quality.
        return len(self.qualities) > 0


class Timing(WireModel):
    onset: Optional[Literal["sudden", "gradual", "after_injury", "post_procedure"]] = None
    duration_value: Optional[int] = Field(None, gt=0)
    duration_unit: Optional[DurationUnit] = None
    pattern: Optional[Literal["constant", "intermittent", "waves", "with_movement"]] = None
    course: Optional[Literal["better", "worse", "unchanged"]] = None
    time_of_day: List[Literal["morning", "evening", "night", "wakes_from_sleep"]] = Field(
        default_factory=list
    )
    baseline_with_flares: bool = False
    flare_length_value: Optional[int] = Field(None, gt=0)
    flare_length_unit: Optional[DurationUnit] = None


class Aggravators(WireModel):
    sitting: bool = False
    standing: bool = False
    walking: bool = False
    bending: bool = False
    lifting: bool = False
    twisting: bool = False
    coughing: bool = False
    morning_worse: bool = False
    evening_worse: bool = False
    weather: bool = False
    stress: bool = False
    other: Optional[str] = None


class Relievers(WireModel):
    rest: bool = False
    ice: bool = False
    heat: bool = False
    stretching: bool = False
    movement: bool = False
    medication: bool = False
    position: Optional[str] = None
    other: Optional[str] = None


class AssociatedSymptoms(WireModel):
    # Neurological
    weakness: bool = False
    numbness: bool = False
    tingling: bool = False
    balance_issues: bool = False

    # Inflammatory
    morning_stiffness_30m: bool = False
    fever_chills: bool = False
    night_sweats: bool = False
    fatigue: bool = False

    # Musculoskeletal
    swelling: bool = False
    redness_warmth: bool = False
    bruising: bool = False
    locking_catching: bool = False
    instability: bool = False

    # Head / neck
    headache: bool = False
    light_sound_sensitive: bool = False
    vision_changes: bool = False
    jaw_pain: bool = False

    # Cardiorespiratory
    chest_pain: bool = False
    shortness_breath: bool = False

    # Gastrointestinal / genitourinary
    nausea_vomiting: bool = False
    abdominal_pain: bool = False
    bowel_change: bool = False
    bladder_change: bool = False
    menstrual_link: bool = False

    # Cauda equina
    saddle_numbness: bool = False
    incontinence: bool = False


class FunctionalImpact(WireModel):
    limits: List[
        Literal["work", "exercise", "house", "sleep", "mood", "concentration", "sexual"]
    ] = Field(default_factory=list)
    sit_minutes: Optional[int] = Field(None, ge=0, le=1440)
    stand_minutes: Optional[int] = Field(None, ge=0, le=1440)
    walk_minutes: Optional[int] = Field(None, ge=0, le=1440)
    missed_days_7: Optional[int] = Field(None, ge=0, le=7)
    missed_days_30: Optional[int] = Field(None, ge=0, le=30)


class TreatmentTried(WireModel):
    name: str
    helpful: Optional[bool] = None
    side_effects: Optional[str] = None


class CurrentMedication(WireModel):
    name: str
    dose: Optional[str] = None
    frequency: Optional[str] = None
    helpful: Optional[bool] = None
    side_effects: Optional[str] = None


class HistoryContext(WireModel):
    recent_injury: bool = False
    injury_date: Optional[str] = None
    mechanism: Optional[str] = None
    repetitive_strain: bool = False
    new_activity: bool = False
    pregnancy_postpartum: bool = False
    recurrent: bool = False
    prior_diagnosis: Optional[str] = None
    tried_treatments: List[TreatmentTried] = Field(default_factory=list)
    current_meds: List[CurrentMedication] = Field(default_factory=list)
    comorbidities: List[str] = Field(default_factory=list)
    sleep_quality: Optional[Literal["good", "fair", "poor"]] = None
    phq2: Optional[int] = Field(None, ge=0, le=6)
    gad2: Optional[int] = Field(None, ge=0, le=6)
    stress_high: bool = False


class Goals(WireModel):
    goal_2to4_weeks: Optional[str] = None
    preferred_treatments: List[Literal["meds", "non_meds", "avoid_meds"]] = Field(
        default_factory=list
    )
    exercise_ready: Optional[bool] = None
    notes: Optional[str] = None


class RedFlagResult(WireModel):
    any: bool = False
    reasons: List[RedFlagKey] = Field(default_factory=list)
    evaluated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _any_matches_reasons(self) -> "RedFlagResult":
        # `any` is derived; a stored value that disagrees with `reasons` loses.
        self.any = len(self.reasons) > 0
        return self


class AssessmentData(WireModel):
    """
    Everything the patient has entered so far.

    Every section is defaulted so that an empty draft, a half-finished
    draft and a stored legacy draft all load into the same shape.
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "extra": "ignore",
        "validate_assignment": True,
    }

    user: UserInfo = Field(default_factory=UserInfo)
    points: List[PainPoint] = Field(default_factory=list)
    timing: Optional[Timing] = None
    aggravators: Aggravators = Field(default_factory=Aggravators)
    relievers: Relievers = Field(default_factory=Relievers)
    associated: AssociatedSymptoms = Field(default_factory=AssociatedSymptoms)
    functional: FunctionalImpact = Field(default_factory=FunctionalImpact)
    history: HistoryContext = Field(default_factory=HistoryContext)
    goals: Goals = Field(default_factory=Goals)
    red_flags: RedFlagResult = Field(default_factory=RedFlagResult)

    pain_map_image_front: Optional[str] = None
    pain_map_image_back: Optional[str] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# Sections the user may write through the orchestrator.
EDITABLE_FIELDS = frozenset(
    {
        "user",
        "points",
        "timing",
        "aggravators",
        "relievers",
        "associated",
        "functional",
        "history",
        "goals",
        "pain_map_image_front",
        "pain_map_image_back",
    }
)

# Sections whose change triggers red-flag re-evaluation.
RED_FLAG_INPUTS = frozenset({"associated", "history"})
