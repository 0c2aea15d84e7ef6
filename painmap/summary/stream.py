# painmap/summary/stream.py
from __future__ import annotations

import logging
from typing import Callable, Iterator, List, Optional

from painmap.llm import LLMClient
from painmap.submission.events import (
    CompleteEvent,
    DeltaEvent,
    ErrorEvent,
    StatusEvent,
    encode_event,
)
from painmap.submission.payload import SubmissionPayload
from painmap.summary.prompt import build_summary_messages
from painmap.triage.red_flags import UrgencyTier

logger = logging.getLogger(__name__)

STATUS_MESSAGE = "Generating your summary..."
FAILURE_MESSAGE = "Failed to process assessment."

# (payload, ai_summary, system_recommendation) -> assessment id
PersistFn = Callable[[SubmissionPayload, str, str], str]


def derive_recommendation(summary: str) -> str:
    """
    The summarizer is asked to state its urgency as one of the
    *_URGENCY markers. HIGH wins over MODERATE; no marker means LOW.
    """
    for tier in (UrgencyTier.HIGH, UrgencyTier.MODERATE):
        if tier.recommendation in summary:
            return tier.recommendation
    return UrgencyTier.LOW.recommendation


class SummaryStream:
    """
    Produces the event stream for one submission:

      status -> delta* -> complete
                       \\-> error   (on any failure)

    After iteration the outcome is available on the instance, so work
    that has to wait for the stream (notifications) can pick it up.
    """

    def __init__(
        self,
        payload: SubmissionPayload,
        llm_client: LLMClient,
        persist: PersistFn,
    ):
        self.payload = payload
        self.llm_client = llm_client
        self.persist = persist

        self.summary = ""
        self.recommendation = UrgencyTier.LOW.recommendation
        self.assessment_id: Optional[str] = None
        self.succeeded = False

    def events(self) -> Iterator[str]:
        yield encode_event(StatusEvent(message=STATUS_MESSAGE))

        try:
            parts: List[str] = []
            for piece in self.llm_client.stream_chat(build_summary_messages(self.payload)):
                parts.append(piece)
                yield encode_event(DeltaEvent(text=piece))

            self.summary = "".join(parts)
            self.recommendation = derive_recommendation(self.summary)
            self.assessment_id = self.persist(self.payload, self.summary, self.recommendation)
        except Exception:
            logger.exception("Summary stream failed for session %s", self.payload.session_id)
            yield encode_event(ErrorEvent(message=FAILURE_MESSAGE))
            return

        logger.info(
            "Summary for session %s complete: %d chars, %s",
            self.payload.session_id,
            len(self.summary),
            self.recommendation,
        )
        self.succeeded = True
        yield encode_event(
            CompleteEvent(
                assessment_id=self.assessment_id,
                session_id=self.payload.session_id,
                ai_summary=self.summary,
                system_recommendation=self.recommendation,
            )
        )
