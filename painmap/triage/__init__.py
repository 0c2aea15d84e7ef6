# painmap/triage/__init__.py
from .red_flags import (
    UrgencyTier,
    UrgencyGuidance,
    evaluate_red_flags,
    get_urgency_level,
    get_urgency_guidance,
    has_neuropathic_pattern,
    has_inflammatory_back_pattern,
)

__all__ = [
    "UrgencyTier",
    "UrgencyGuidance",
    "evaluate_red_flags",
    "get_urgency_level",
    "get_urgency_guidance",
    "has_neuropathic_pattern",
    "has_inflammatory_back_pattern",
]
