# painmap/summary/__init__.py
from .prompt import build_summary_prompt, build_summary_messages
from .stream import SummaryStream, derive_recommendation
from .generate import UNAVAILABLE_SUMMARY, generate_summary, summarize_or_fallback

__all__ = [
    "build_summary_prompt",
    "build_summary_messages",
    "SummaryStream",
    "derive_recommendation",
    "UNAVAILABLE_SUMMARY",
    "generate_summary",
    "summarize_or_fallback",
]
