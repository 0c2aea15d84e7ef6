# painmap/services/assessments.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Optional

from painmap.db import SessionLocal, engine, Base
from painmap.models import AssessmentRecord
from painmap.submission.payload import SubmissionPayload

logger = logging.getLogger(__name__)


@contextmanager
def db_session():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """
    Create all tables. Called once at startup.
    """
    Base.metadata.create_all(bind=engine)


def save_assessment_record(
    payload: SubmissionPayload,
    ai_summary: str,
    system_recommendation: str,
) -> str:
    """
    Persist a finished assessment and return its id.
    """
    with db_session() as session:
        record = AssessmentRecord(
            session_id=payload.session_id,
            email=payload.email,
            full_name=payload.full_name,
            payload=payload.to_wire(),
            ai_summary=ai_summary,
            system_recommendation=system_recommendation,
        )
        session.add(record)
        session.flush()  # to get record.id

        logger.info(
            "Stored assessment %s for session %s (%s)",
            record.id,
            record.session_id,
            system_recommendation,
        )
        return record.id


def get_assessment_record(assessment_id: str) -> Optional[dict]:
    """
    Load a stored assessment as a plain dict, or None if there is none.
    """
    with db_session() as session:
        record = session.get(AssessmentRecord, assessment_id)
        if record is None:
            return None

        return {
            "id": record.id,
            "session_id": record.session_id,
            "email": record.email,
            "full_name": record.full_name,
            "payload": record.payload,
            "ai_summary": record.ai_summary,
            "system_recommendation": record.system_recommendation,
            "created_at": record.created_at,
        }
