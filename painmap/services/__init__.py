# painmap/services/__init__.py
from .assessments import (
    db_session,
    init_db,
    save_assessment_record,
    get_assessment_record,
)
from .orchestrator import AssessmentOrchestrator, OrchestratorSnapshot

__all__ = [
    "db_session",
    "init_db",
    "save_assessment_record",
    "get_assessment_record",
    "AssessmentOrchestrator",
    "OrchestratorSnapshot",
]
