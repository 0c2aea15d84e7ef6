"""Tests for the submission payload, stream framing and the stream consumer."""

import asyncio
import json
import re

import httpx
import pytest

from painmap.submission import (
    EventStreamParser,
    SubmissionPhase,
    SubmissionStreamConsumer,
    build_submission_payload,
    encode_event,
    new_session_id,
    parse_event,
)
from painmap.submission.consumer import NO_RESULT_MESSAGE, TIMEOUT_MESSAGE, TRANSPORT_MESSAGE
from painmap.submission.events import CompleteEvent, DeltaEvent, ErrorEvent, StatusEvent
from painmap.triage import UrgencyTier
from painmap.wizard.schema import AssociatedSymptoms, HistoryContext, Timing

from tests.fakes import ChunkStream, frame

URL = "http://test/api/assessment/submit-stream"


def _client(chunks=None, status_code=200, body=None, error=None, **stream_kwargs):
    requests = []

    def handler(request):
        requests.append(request)
        if error is not None:
            raise error
        if body is not None:
            return httpx.Response(status_code, content=body)
        return httpx.Response(
            status_code,
            headers={"Content-Type": "text/event-stream"},
            stream=ChunkStream(chunks or [], **stream_kwargs),
        )

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client.requests = requests
    return client


class TestPayload:
    def test_session_id_format(self):
        assert re.match(r"^session-\d{13}-[a-z0-9]{7}$", new_session_id())
        assert new_session_id() != new_session_id()

    def test_builds_flat_fields(self, complete_data):
        payload = build_submission_payload(complete_data, session_id="session-1-abcdefg")
        wire = payload.to_wire()
        assert wire["sessionId"] == "session-1-abcdefg"
        assert wire["email"] == "jane@example.com"
        assert wire["fullName"] == "Jane Doe"
        assert wire["painAreas"] == [
            {
                "region": "Lower Back",
                "intensity": 6,
                "notes": "left leg",
                "qualities": ["dull_aching", "burning"],
            }
        ]
        assert "painMapImageFront" not in wire
        assert wire["timing"]["durationValue"] == 3

    def test_red_flag_answers(self, complete_data):
        complete_data.associated = AssociatedSymptoms(incontinence=True, weakness=True)
        complete_data.history = HistoryContext(comorbidities=["cancer"], recent_injury=True)
        complete_data.timing = Timing(time_of_day=["wakes_from_sleep"])

        answers = build_submission_payload(complete_data).red_flags
        assert answers.positive() == [
            "bowel_bladder_dysfunction",
            "progressive_weakness",
            "night_pain",
            "cancer_history",
            "recent_trauma",
        ]
        assert answers.unexplained_weight_loss is False

    def test_unnamed_region_and_goals(self, complete_data):
        complete_data.points[0].region_name = None
        complete_data.goals.notes = "Walk the dog again"
        payload = build_submission_payload(complete_data)
        assert payload.pain_areas[0].region == "Unknown Region"
        assert payload.treatment_goals == "Walk the dog again"


class TestEventStreamParser:
    def test_events_split_across_chunks(self):
        parser = EventStreamParser()
        data = frame(event="delta", text="Hello ") + frame(event="delta", text="world")
        events = []
        for i in range(0, len(data), 7):
            events += parser.feed(data[i:i + 7])
        assert [e.text for e in events] == ["Hello ", "world"]
        assert parser.buffered == ""

    def test_multibyte_character_split(self):
        parser = EventStreamParser()
        data = frame(event="delta", text="café ✓")
        split = data.index("é".encode("utf-8")) + 1
        assert parser.feed(data[:split]) == []
        events = parser.feed(data[split:])
        assert events[0].text == "café ✓"

    def test_raw_utf8_in_json(self):
        parser = EventStreamParser()
        raw = 'data: {"event": "delta", "text": "⚠️ warn"}\n\n'.encode("utf-8")
        events = parser.feed(raw[:-5]) + parser.feed(raw[-5:])
        assert events[0].text == "⚠️ warn"

    def test_crlf_framing(self):
        parser = EventStreamParser()
        raw = b'data: {"event":"status","message":"hi"}\r\n\r'
        assert parser.feed(raw) == []
        events = parser.feed(b"\n")
        assert isinstance(events[0], StatusEvent)
        assert events[0].message == "hi"

    def test_bad_events_are_skipped(self):
        parser = EventStreamParser()
        raw = (
            b"data: {broken\n\n"
            b'data: {"event": "mystery"}\n\n'
            b": keep-alive comment\n\n"
            b'data: {"event": "status", "message": "ok"}\n\n'
        )
        events = parser.feed(raw)
        assert len(events) == 1
        assert events[0].message == "ok"

    def test_unterminated_tail_is_dropped(self):
        parser = EventStreamParser()
        assert parser.feed(b'data: {"event": "complete", "aiSummary": "x"}') == []
        parser.close()
        assert parser.buffered == ""

    def test_parse_event_types(self):
        assert isinstance(parse_event('{"event": "error", "message": "m"}'), ErrorEvent)
        complete = parse_event(
            '{"event": "complete", "aiSummary": "S", "systemRecommendation": "LOW_URGENCY",'
            ' "assessmentId": "a1", "sessionId": "s1"}'
        )
        assert isinstance(complete, CompleteEvent)
        assert complete.assessment_id == "a1"
        assert parse_event("[]") is None

    def test_encode_event(self):
        encoded = encode_event(CompleteEvent(ai_summary="S", assessment_id="a1"))
        assert encoded.startswith("data: ")
        assert encoded.endswith("\n\n")
        assert json.loads(encoded[len("data: "):]) == {
            "event": "complete",
            "aiSummary": "S",
            "assessmentId": "a1",
        }
        assert parse_event(encode_event(DeltaEvent(text="x"))[6:]).text == "x"


class TestSubmissionStreamConsumer:
    async def test_progressive_text_then_authoritative_summary(self):
        seen = []
        client = _client(
            [
                frame(event="status", message="Generating your summary..."),
                frame(event="delta", text="Hello "),
                frame(event="delta", text="world"),
                frame(
                    event="complete",
                    aiSummary="Final.",
                    systemRecommendation="MODERATE_URGENCY",
                    assessmentId="a-1",
                    sessionId="s-1",
                ),
            ]
        )
        consumer = SubmissionStreamConsumer(URL, client=client, on_update=seen.append)
        state = await consumer.submit({"sessionId": "s-1"})

        assert [s.phase for s in seen[:2]] == [SubmissionPhase.CONNECTING, SubmissionPhase.STREAMING]
        streaming_texts = [s.accumulated_text for s in seen if s.phase is SubmissionPhase.STREAMING]
        assert "Hello world" in streaming_texts
        assert state.phase is SubmissionPhase.COMPLETE
        assert state.accumulated_text == "Final."
        assert state.urgency_tier == UrgencyTier.MODERATE
        assert state.assessment_id == "a-1"
        assert state.session_id == "s-1"

        request = client.requests[0]
        assert request.headers["accept"] == "text/event-stream"
        assert json.loads(request.content) == {"sessionId": "s-1"}

    async def test_status_then_close_is_failure(self):
        client = _client([frame(event="status", message="Working")])
        state = await SubmissionStreamConsumer(URL, client=client).submit({})
        assert state.phase is SubmissionPhase.FAILED
        assert state.error_message == NO_RESULT_MESSAGE

    async def test_empty_summary_keeps_streamed_text(self):
        client = _client(
            [frame(event="delta", text="Streamed"), frame(event="complete", aiSummary="")]
        )
        state = await SubmissionStreamConsumer(URL, client=client).submit({})
        assert state.phase is SubmissionPhase.COMPLETE
        assert state.accumulated_text == "Streamed"
        assert state.urgency_tier is None

    async def test_duplicate_complete_fires_once(self):
        completions = []
        body = frame(event="complete", aiSummary="one") + frame(event="complete", aiSummary="two")
        client = _client([body])
        consumer = SubmissionStreamConsumer(URL, client=client, on_complete=completions.append)
        state = await consumer.submit({})
        assert len(completions) == 1
        assert state.accumulated_text == "one"

    async def test_error_event(self):
        client = _client(
            [frame(event="delta", text="par"), frame(event="error", message="Failed to process assessment.")]
        )
        state = await SubmissionStreamConsumer(URL, client=client).submit({})
        assert state.phase is SubmissionPhase.FAILED
        assert state.error_message == "Failed to process assessment."
        assert state.accumulated_text == "par"

    async def test_error_event_without_message(self):
        client = _client([frame(event="error")])
        state = await SubmissionStreamConsumer(URL, client=client).submit({})
        assert state.phase is SubmissionPhase.FAILED
        assert state.error_message

    async def test_http_error_with_detail(self):
        client = _client(status_code=400, body=b'{"detail": "Email and full name are required."}')
        state = await SubmissionStreamConsumer(URL, client=client).submit({})
        assert state.phase is SubmissionPhase.FAILED
        assert state.error_message == "Email and full name are required."

    async def test_http_error_without_json(self):
        client = _client(status_code=502, body=b"<html>bad gateway</html>")
        state = await SubmissionStreamConsumer(URL, client=client).submit({})
        assert state.error_message == "Failed to start streaming (HTTP 502)"

    async def test_transport_error(self):
        client = _client(error=httpx.ConnectError("refused"))
        state = await SubmissionStreamConsumer(URL, client=client).submit({})
        assert state.phase is SubmissionPhase.FAILED
        assert state.error_message == TRANSPORT_MESSAGE

    async def test_timeout(self):
        client = _client([frame(event="delta", text="x"), b""], hang_after=1)
        state = await SubmissionStreamConsumer(URL, client=client, timeout=0.1).submit({})
        assert state.phase is SubmissionPhase.FAILED
        assert state.error_message == TIMEOUT_MESSAGE

    async def test_single_use(self):
        client = _client([frame(event="complete", aiSummary="ok")])
        consumer = SubmissionStreamConsumer(URL, client=client)
        await consumer.submit({})
        with pytest.raises(RuntimeError):
            await consumer.submit({})

    async def test_release_freezes_state(self):
        first_delta = asyncio.Event()
        updates = []

        def on_update(state):
            updates.append(state)
            if state.accumulated_text:
                first_delta.set()

        client = _client(
            [frame(event="delta", text="partial"), frame(event="complete", aiSummary="late")],
            hang_after=1,
        )
        consumer = SubmissionStreamConsumer(URL, client=client, on_update=on_update)
        task = asyncio.ensure_future(consumer.submit({}))
        await asyncio.wait_for(first_delta.wait(), timeout=2)

        consumer.release()
        state = await task
        assert consumer.released is True
        assert state.phase is SubmissionPhase.STREAMING
        assert state.accumulated_text == "partial"
        assert updates[-1] is state
