# painmap/summary/generate.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

from painmap.llm import LLMClient
from painmap.submission.payload import SubmissionPayload
from painmap.summary.prompt import build_summary_messages
from painmap.summary.stream import derive_recommendation

logger = logging.getLogger(__name__)

UNAVAILABLE_SUMMARY = "AI summary could not be generated at this time."


def generate_summary(payload: SubmissionPayload, llm_client: LLMClient) -> str:
    """
    Ask the LLM for the whole summary in one call.
    """
    summary = llm_client.chat(build_summary_messages(payload))
    logger.info("Generated summary for session %s (%d chars)", payload.session_id, len(summary))
    return summary


def summarize_or_fallback(payload: SubmissionPayload, llm_client: Optional[LLMClient]) -> Tuple[str, str]:
    """
    Returns (summary, recommendation) for a non-streamed submission.

    A missing LLM client gives an empty summary; a failing one gives the
    "could not be generated" text. Either way the tier is derived from
    whatever text came back, so the submission itself still goes through.
    """
    if llm_client is None:
        return "", derive_recommendation("")

    try:
        summary = generate_summary(payload, llm_client)
    except Exception:
        logger.exception("Summary generation failed for session %s", payload.session_id)
        summary = UNAVAILABLE_SUMMARY
    return summary, derive_recommendation(summary)
