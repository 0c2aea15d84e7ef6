# painmap/submission/events.py
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from painmap.triage.red_flags import UrgencyTier


EVENT_MARKER = "data:"
EVENT_DELIMITER = "\n\n"


class _Event(BaseModel):
    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


class StatusEvent(_Event):
    event: Literal["status"] = "status"
    message: str = ""


class DeltaEvent(_Event):
    event: Literal["delta"] = "delta"
    text: str = ""


class CompleteEvent(_Event):
    event: Literal["complete"] = "complete"
    ai_summary: Optional[str] = Field(None, alias="aiSummary")
    system_recommendation: Optional[str] = Field(None, alias="systemRecommendation")
    assessment_id: Optional[str] = Field(None, alias="assessmentId")
    session_id: Optional[str] = Field(None, alias="sessionId")


class ErrorEvent(_Event):
    event: Literal["error"] = "error"
    message: Optional[str] = None


StreamEvent = Annotated[
    Union[StatusEvent, DeltaEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="event"),
]

stream_event_adapter: TypeAdapter = TypeAdapter(StreamEvent)


def encode_event(event: _Event) -> str:
    """
    Frame one event for the wire: `data: {...}` followed by a blank line.
    """
    body = event.model_dump(mode="json", by_alias=True, exclude_none=True)
    return f"{EVENT_MARKER} {json.dumps(body)}{EVENT_DELIMITER}"


class SubmissionPhase(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (SubmissionPhase.COMPLETE, SubmissionPhase.FAILED)


@dataclass(frozen=True)
class SubmissionState:
    phase: SubmissionPhase = SubmissionPhase.IDLE
    accumulated_text: str = ""
    status_message: str = ""
    urgency_tier: Optional[UrgencyTier] = None
    assessment_id: Optional[str] = None
    session_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.phase.terminal
