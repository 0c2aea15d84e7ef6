# painmap/models.py
from datetime import datetime, timezone
import uuid

from sqlalchemy import String, DateTime, Text, JSON, CheckConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from painmap.db import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# JSONB on Postgres, plain JSON everywhere else (tests run on SQLite)
PayloadType = JSON().with_variant(JSONB(), "postgresql")


class AssessmentRecord(Base):
    """
    A submitted assessment together with the summary generated for it.
    """
    __tablename__ = "assessments"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=generate_uuid
    )
    session_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    payload: Mapped[dict] = mapped_column(PayloadType, nullable=False)
    ai_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    system_recommendation: Mapped[str] = mapped_column(
        String, nullable=False, default="LOW_URGENCY"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "system_recommendation IN ('LOW_URGENCY', 'MODERATE_URGENCY', 'HIGH_URGENCY')",
            name="ck_assessments_recommendation_valid",
        ),
    )
