# painmap/api/routes.py
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError

from painmap.llm import LLMClient, OpenAILLMClient
from painmap.notifications import EmailNotifier
from painmap.services import get_assessment_record, save_assessment_record
from painmap.submission import SubmissionPayload
from painmap.summary import SummaryStream, generate_summary, summarize_or_fallback
from .schemas import (
    AssessmentRecordResponse,
    GenerateSummaryResponse,
    SendAssessmentEmailRequest,
    SendAssessmentEmailResponse,
    SubmitAssessmentRequest,
    SubmitAssessmentResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache(maxsize=1)
def _default_llm_client() -> LLMClient:
    return OpenAILLMClient()


def get_llm_client() -> LLMClient:
    try:
        return _default_llm_client()
    except RuntimeError as exc:
        logger.error("LLM client unavailable: %s", exc)
        raise HTTPException(status_code=500, detail="AI client not initialized") from exc


def get_optional_llm_client() -> Optional[LLMClient]:
    """
    Like get_llm_client, but a missing key means "no summary", not an error.
    """
    try:
        return _default_llm_client()
    except RuntimeError as exc:
        logger.warning("Submitting without an AI summary: %s", exc)
        return None


def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def _check_submission(payload: SubmissionPayload) -> None:
    if not payload.email.strip() or not payload.full_name.strip():
        raise HTTPException(status_code=400, detail="Email and full name are required.")
    if not payload.pain_areas:
        raise HTTPException(status_code=400, detail="At least one pain area is required.")


@router.post("/assessment/submit-stream")
def submit_assessment_stream(
    payload: SubmitAssessmentRequest,
    llm_client: LLMClient = Depends(get_llm_client),
    notifier: EmailNotifier = Depends(get_notifier),
) -> StreamingResponse:
    """
    Summarize a submitted assessment, streaming the text as it is written.

    Each event is a `data: {...}` line followed by a blank line:
      status -> delta* -> complete, or a single error event on failure.
    Emails go out only after the stream has finished.
    """
    _check_submission(payload)

    logger.info(
        "Streaming summary for session %s (%d pain areas)",
        payload.session_id,
        len(payload.pain_areas),
    )
    stream = SummaryStream(payload, llm_client, persist=save_assessment_record)

    background = BackgroundTasks()
    background.add_task(_send_emails_after_stream, stream, notifier)

    return StreamingResponse(
        stream.events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        background=background,
    )


@router.post(
    "/assessment/submit",
    response_model=SubmitAssessmentResponse,
    status_code=201,
)
def submit_assessment(
    payload: SubmitAssessmentRequest,
    background_tasks: BackgroundTasks,
    llm_client: Optional[LLMClient] = Depends(get_optional_llm_client),
    notifier: EmailNotifier = Depends(get_notifier),
) -> SubmitAssessmentResponse:
    """
    Non-streaming submission: summarize, store, then email in the background.

    Summary failures do not fail the request; the record is stored with
    whatever summary text could be produced.
    """
    _check_submission(payload)
    if "red_flags" not in payload.model_fields_set:
        raise HTTPException(status_code=400, detail="Red flags section is required.")

    summary, recommendation = summarize_or_fallback(payload, llm_client)
    try:
        assessment_id = save_assessment_record(payload, summary, recommendation)
    except SQLAlchemyError as exc:
        logger.exception("Could not store assessment for session %s", payload.session_id)
        raise HTTPException(status_code=500, detail="Failed to submit assessment.") from exc

    background_tasks.add_task(_send_emails, notifier, payload, summary, assessment_id)

    return SubmitAssessmentResponse(
        message="Assessment submitted successfully",
        assessment_id=assessment_id,
        ai_summary=summary,
        system_recommendation=recommendation,
    )


@router.post("/generate-summary", response_model=GenerateSummaryResponse)
def generate_assessment_summary(
    payload: SubmitAssessmentRequest,
    llm_client: LLMClient = Depends(get_llm_client),
) -> GenerateSummaryResponse:
    try:
        summary = generate_summary(payload, llm_client)
    except Exception as exc:
        logger.exception("Summary generation failed for session %s", payload.session_id)
        raise HTTPException(
            status_code=500,
            detail="Failed to generate AI summary via backend.",
        ) from exc
    return GenerateSummaryResponse(summary=summary or "No summary content found from AI.")


@router.post("/email/send-assessment", response_model=SendAssessmentEmailResponse)
def send_assessment_email(
    request: SendAssessmentEmailRequest,
    notifier: EmailNotifier = Depends(get_notifier),
) -> SendAssessmentEmailResponse:
    if not notifier.enabled:
        raise HTTPException(status_code=503, detail="Email service is not configured or unavailable.")
    if request.form_data is None or not request.ai_summary:
        raise HTTPException(
            status_code=400,
            detail="Missing required data for email (formData or aiSummary).",
        )
    if not notifier.settings.email_recipient_address:
        logger.error("EMAIL_RECIPIENT_ADDRESS is not set; cannot send assessment email")
        raise HTTPException(status_code=500, detail="Primary email recipient not configured on server.")

    result = notifier.send_submission_emails(request.form_data, request.ai_summary)
    if not result.success:
        raise HTTPException(status_code=500, detail="Failed to send assessment email.")
    return SendAssessmentEmailResponse(
        message="Assessment email(s) sent successfully.",
        sent=result.sent,
    )


@router.get(
    "/assessment/{assessment_id}",
    response_model=AssessmentRecordResponse,
)
def get_assessment(assessment_id: str) -> AssessmentRecordResponse:
    record = get_assessment_record(assessment_id)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail="Assessment not found.",
        )
    return AssessmentRecordResponse(**record)


def _send_emails_after_stream(stream: SummaryStream, notifier: EmailNotifier) -> None:
    if not stream.succeeded:
        return
    _send_emails(notifier, stream.payload, stream.summary, stream.assessment_id)


def _send_emails(
    notifier: EmailNotifier,
    payload: SubmissionPayload,
    summary: str,
    assessment_id: Optional[str],
) -> None:
    result = notifier.send_submission_emails(payload, summary)
    if not result.success:
        logger.warning(
            "Assessment %s stored but %d email(s) failed",
            assessment_id,
            len(result.errors),
        )
