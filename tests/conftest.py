"""Shared fixtures. The database URL must be set before painmap.db is imported."""

import os
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="painmap-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ.pop("SMTP_HOST", None)
os.environ.pop("OPENAI_API_KEY", None)

import pytest  # noqa: E402

from painmap.config import Settings  # noqa: E402
from painmap.wizard.schema import (  # noqa: E402
    AssessmentData,
    PainPoint,
    Timing,
    UserInfo,
)


@pytest.fixture
def settings():
    return Settings(
        AUTOSAVE_DELAY_SECONDS=0.05,
        SAVING_INDICATOR_FLOOR_SECONDS=0.01,
        SUBMIT_URL="http://test/api/assessment/submit-stream",
        STREAM_TIMEOUT_SECONDS=5,
    )


@pytest.fixture
def email_settings():
    return Settings(
        SMTP_HOST="smtp.clinic.test",
        SMTP_PORT=2525,
        SMTP_USERNAME="mailer",
        SMTP_PASSWORD="secret",
        EMAIL_SENDER_ADDRESS="noreply@clinic.test",
        EMAIL_RECIPIENT_ADDRESS="intake@clinic.test",
        EMAIL_BCC_ADDRESS="audit@clinic.test",
    )


@pytest.fixture
def complete_data():
    return AssessmentData(
        user=UserInfo(email="jane@example.com", name="Jane Doe", phone="0400 000 000"),
        points=[
            PainPoint(
                region_name="Lower Back",
                intensity_current=6,
                qualities=["dull_aching", "burning"],
                radiates_to="left leg",
            )
        ],
        timing=Timing(onset="gradual", duration_value=3, duration_unit="months"),
    )
