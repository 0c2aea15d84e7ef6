# painmap/submission/__init__.py
from .events import SubmissionPhase, SubmissionState, encode_event
from .parser import EventStreamParser, parse_event
from .consumer import SubmissionStreamConsumer
from .payload import SubmissionPayload, build_submission_payload, new_session_id

__all__ = [
    "SubmissionPhase",
    "SubmissionState",
    "encode_event",
    "EventStreamParser",
    "parse_event",
    "SubmissionStreamConsumer",
    "SubmissionPayload",
    "build_submission_payload",
    "new_session_id",
]
