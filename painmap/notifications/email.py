# painmap/notifications/email.py
from __future__ import annotations

import html
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import List, Optional

from painmap.config import Settings, get_settings
from painmap.submission.payload import SubmissionPayload

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


@dataclass
class NotificationResult:
    sent: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class EmailNotifier:
    """
    Sends the two post-submission emails:
      - a notification to the clinic (optionally BCC'd)
      - a confirmation to the patient

    Best effort: each send is independent, failures are logged and
    reported in the result, never raised.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def enabled(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.email_sender_address)

    def send_submission_emails(
        self,
        payload: SubmissionPayload,
        ai_summary: str,
    ) -> NotificationResult:
        result = NotificationResult()
        if not self.enabled:
            logger.info("SMTP not configured; skipping submission emails")
            return result

        clinic = self.settings.email_recipient_address
        if clinic:
            message = self._build_message(
                to=clinic,
                subject=f"New Pain Assessment - {payload.full_name or 'New Patient'}",
                body=_clinic_body(payload, ai_summary),
                sender_name="Pain Assessment System",
            )
            if self.settings.email_bcc_address:
                message["Bcc"] = self.settings.email_bcc_address
            self._send(message, result)

        patient = payload.email
        if not patient:
            logger.warning("Patient email not provided, skipping confirmation email")
        elif clinic and patient.lower() == clinic.lower():
            logger.info("Patient address is the clinic address; skipping confirmation")
        else:
            message = self._build_message(
                to=patient,
                subject=f"Your Pain Assessment Submission - {payload.full_name or 'Confirmation'}",
                body=_patient_body(payload, ai_summary),
                sender_name="Pain Assessment",
            )
            self._send(message, result)

        return result

    # ---- Internal helpers ----

    def _build_message(self, to: str, subject: str, body: str, sender_name: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f'"{sender_name}" <{self.settings.email_sender_address}>'
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(body, subtype="html")
        return message

    def _send(self, message: EmailMessage, result: NotificationResult) -> None:
        s = self.settings
        recipient = message["To"]
        try:
            with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
                smtp.starttls()
                if s.smtp_username and s.smtp_password:
                    smtp.login(s.smtp_username, s.smtp_password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", recipient, exc)
            result.errors.append(f"{recipient}: {exc}")
            return

        logger.info("Sent email to %s", recipient)
        result.sent.append(recipient)


def _pain_area_list(payload: SubmissionPayload) -> str:
    if not payload.pain_areas:
        return "Not specified"
    return ", ".join(
        f"{html.escape(area.region)} ({area.intensity}/10)" for area in payload.pain_areas
    )


def _patient_body(payload: SubmissionPayload, ai_summary: str) -> str:
    name = html.escape(payload.full_name or "Patient")
    summary = ai_summary or "<p>AI summary not available</p>"
    return f"""<!DOCTYPE html>
<html>
<body>
  <h1>Thank You for Your Submission</h1>
  <p>Dear {name},</p>
  <p>Thank you for completing your pain assessment. We have received your submission and our team will review it shortly.</p>
  <h2>Submission Summary</h2>
  <p><strong>Pain Areas:</strong> {_pain_area_list(payload)}</p>
  <h2>Your Clinical Summary</h2>
  {summary}
  <p><strong>Next Steps:</strong></p>
  <ul>
    <li>Our clinical team will review your assessment</li>
    <li>We will contact you within 1-2 business days</li>
    <li>If you have urgent concerns, please call us directly</li>
  </ul>
  <p>This is an automated confirmation email. Please do not reply to this message.</p>
</body>
</html>
"""


def _clinic_body(payload: SubmissionPayload, ai_summary: str) -> str:
    summary = ai_summary or "<p>AI summary not available</p>"
    red_flags = payload.red_flags.positive()
    flags = ", ".join(red_flags) if red_flags else "None reported"
    return f"""<!DOCTYPE html>
<html>
<body>
  <h1>New Pain Assessment</h1>
  <p><strong>Name:</strong> {html.escape(payload.full_name or 'Not provided')}</p>
  <p><strong>Email:</strong> {html.escape(payload.email or 'Not provided')}</p>
  <p><strong>Phone:</strong> {html.escape(payload.phone or 'Not provided')}</p>
  <p><strong>Session:</strong> {html.escape(payload.session_id)}</p>
  <p><strong>Pain Areas:</strong> {_pain_area_list(payload)}</p>
  <p><strong>Red Flags:</strong> {html.escape(flags)}</p>
  <h2>AI Clinical Summary</h2>
  {summary}
</body>
</html>
"""
