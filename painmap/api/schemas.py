# painmap/api/schemas.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from painmap.submission.payload import SubmissionPayload, new_session_id
from painmap.wizard.schema import to_camel


class SubmitAssessmentRequest(SubmissionPayload):
    # Older clients did not always send one
    session_id: str = Field(default_factory=new_session_id)


class AssessmentRecordResponse(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    id: str
    session_id: str
    email: str
    full_name: str
    payload: Dict[str, Any]
    ai_summary: str
    system_recommendation: str
    created_at: datetime


class _CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


class SubmitAssessmentResponse(_CamelModel):
    message: str
    assessment_id: str
    ai_summary: str
    system_recommendation: str


class GenerateSummaryResponse(_CamelModel):
    summary: str


class SendAssessmentEmailRequest(_CamelModel):
    form_data: Optional[SubmitAssessmentRequest] = None
    ai_summary: str = ""


class SendAssessmentEmailResponse(_CamelModel):
    message: str
    sent: List[str] = Field(default_factory=list)
