# painmap/triage/red_flags.py
"""
Red-flag evaluation for the pain assessment.

Maps associated symptoms and history to the set of red flags they trigger
and to a three-tier urgency level. Everything here is pure and
deterministic; missing inputs count as "absent".
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from painmap.wizard.schema import (
    AssociatedSymptoms,
    HistoryContext,
    RedFlagResult,
    utcnow,
)


class UrgencyTier(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"

    @property
    def recommendation(self) -> str:
        """Wire form used by the summarization backend, e.g. HIGH_URGENCY."""
        return f"{self.value}_URGENCY"

    @classmethod
    def from_recommendation(cls, value: Optional[str]) -> Optional["UrgencyTier"]:
        if not value:
            return None
        return _RECOMMENDATIONS.get(value.strip().upper())


_RECOMMENDATIONS: Dict[str, UrgencyTier] = {
    tier.recommendation: tier for tier in UrgencyTier
}

# A single one of these is enough for HIGH, whatever else fired.
HIGH_URGENCY_FLAGS = frozenset(
    {
        "bowel_bladder_change",
        "saddle_anesthesia",
        "chest_pain",
        "shortness_breath",
        "worst_headache",
        "headache_fever_neck_stiffness",
    }
)

NEUROPATHIC_QUALITIES = frozenset(
    {"burning", "shooting", "electric", "tingling", "numb", "hypersensitive"}
)


def evaluate_red_flags(
    associated: Optional[AssociatedSymptoms] = None,
    history: Optional[HistoryContext] = None,
) -> RedFlagResult:
    """
    Apply the red-flag rule table.

    Each rule contributes at most one key, in table order, so `reasons`
    never holds duplicates.
    """
    a = associated or AssociatedSymptoms()
    h = history or HistoryContext()
    reasons: List[str] = []

    # Neurological
    if a.weakness:
        reasons.append("new_weakness")
    if a.balance_issues:
        reasons.append("trouble_walking")

    # Cauda equina
    if a.bladder_change or a.incontinence:
        reasons.append("bowel_bladder_change")
    if a.saddle_numbness:
        reasons.append("saddle_anesthesia")

    # Cardiorespiratory
    if a.chest_pain:
        reasons.append("chest_pain")
    if a.shortness_breath:
        reasons.append("shortness_breath")

    # Infection
    if a.fever_chills and a.swelling:
        reasons.append("fever_with_severe_pain")
    if a.redness_warmth and a.swelling:
        reasons.append("hot_swollen_joint")

    # Malignancy
    if "cancer" in h.comorbidities:
        reasons.append("cancer_history")

    # Trauma
    if h.recent_injury:
        reasons.append("major_trauma")

    # Central nervous system
    if a.headache and a.light_sound_sensitive:
        reasons.append("worst_headache")
    if a.vision_changes or a.weakness:
        reasons.append("neuro_deficit")
    if a.headache and a.fever_chills:
        reasons.append("headache_fever_neck_stiffness")

    return RedFlagResult(any=bool(reasons), reasons=reasons, evaluated_at=utcnow())


def get_urgency_level(result: RedFlagResult) -> UrgencyTier:
    if not result.any:
        return UrgencyTier.LOW
    if any(reason in HIGH_URGENCY_FLAGS for reason in result.reasons):
        return UrgencyTier.HIGH
    return UrgencyTier.MODERATE


@dataclass(frozen=True)
class UrgencyGuidance:
    title: str
    message: str
    action: str
    action_url: Optional[str] = None


URGENCY_GUIDANCE: Dict[UrgencyTier, UrgencyGuidance] = {
    UrgencyTier.HIGH: UrgencyGuidance(
        title="Urgent Medical Attention Needed",
        message=(
            "Your symptoms suggest a condition that requires immediate medical "
            "evaluation. Please seek emergency care now."
        ),
        action="Find Emergency Care",
        action_url="tel:911",
    ),
    UrgencyTier.MODERATE: UrgencyGuidance(
        title="Medical Evaluation Recommended",
        message=(
            "Your symptoms should be evaluated by a healthcare provider soon, "
            "ideally within 24-48 hours."
        ),
        action="Find Urgent Care",
    ),
    UrgencyTier.LOW: UrgencyGuidance(
        title="Continue Assessment",
        message="No immediate red flags detected. Continue with your assessment.",
        action="Continue",
    ),
}


def get_urgency_guidance(tier: UrgencyTier) -> UrgencyGuidance:
    return URGENCY_GUIDANCE[tier]


def has_neuropathic_pattern(qualities: Iterable[str]) -> bool:
    return any(q in NEUROPATHIC_QUALITIES for q in qualities)


def has_inflammatory_back_pattern(
    regions: Iterable[str],
    associated: Optional[AssociatedSymptoms] = None,
) -> bool:
    """
    Back or lumbar pain together with morning stiffness over 30 minutes.
    """
    has_back_region = any(
        "back" in region.lower() or "lumbar" in region.lower() for region in regions
    )
    return has_back_region and bool(associated and associated.morning_stiffness_30m)


# Question / guidance shown next to each flag on the red-flags step.
RED_FLAG_LABELS: Dict[str, Dict[str, str]] = {
    "new_weakness": {
        "question": "New weakness in arms or legs?",
        "guidance": "Sudden weakness may indicate nerve compression",
    },
    "trouble_walking": {
        "question": "Trouble walking or keeping balance?",
        "guidance": "Balance issues need urgent evaluation",
    },
    "foot_drop": {
        "question": "Foot drop (can't lift foot)?",
        "guidance": "Foot drop indicates nerve damage",
    },
    "bowel_bladder_change": {
        "question": "Loss of bowel or bladder control?",
        "guidance": "This requires immediate medical attention",
    },
    "saddle_anesthesia": {
        "question": "Numbness in groin/buttocks area?",
        "guidance": "Saddle anesthesia is a medical emergency",
    },
    "chest_pain": {
        "question": "Chest pain or pressure?",
        "guidance": "Chest pain requires immediate evaluation",
    },
    "shortness_breath": {
        "question": "Shortness of breath?",
        "guidance": "Breathing difficulty needs urgent care",
    },
    "fever_with_severe_pain": {
        "question": "Fever with severe pain?",
        "guidance": "May indicate infection requiring treatment",
    },
    "hot_swollen_joint": {
        "question": "Hot, swollen, red joint?",
        "guidance": "Could indicate septic arthritis",
    },
    "rapid_spreading_redness": {
        "question": "Rapidly spreading redness/warmth?",
        "guidance": "Possible cellulitis or infection",
    },
    "unexplained_weight_loss": {
        "question": "Unexplained weight loss (>10 lbs)?",
        "guidance": "Significant weight loss needs investigation",
    },
    "cancer_history": {
        "question": "History of cancer?",
        "guidance": "Prior cancer increases risk of metastases",
    },
    "night_pain_persists": {
        "question": "Severe pain that wakes you at night?",
        "guidance": "Persistent night pain may indicate serious pathology",
    },
    "major_trauma": {
        "question": "Recent major injury/fall?",
        "guidance": "Trauma may cause fracture or internal injury",
    },
    "anticoagulant_bleed": {
        "question": "Taking blood thinners with new pain?",
        "guidance": "Risk of bleeding with anticoagulants",
    },
    "worst_headache": {
        "question": "Worst headache of your life?",
        "guidance": "Sudden severe headache needs immediate evaluation",
    },
    "neuro_deficit": {
        "question": "Vision changes, speech difficulty, or confusion?",
        "guidance": "Neurological symptoms require urgent care",
    },
    "headache_fever_neck_stiffness": {
        "question": "Headache with fever and stiff neck?",
        "guidance": "May indicate meningitis - seek emergency care",
    },
}
