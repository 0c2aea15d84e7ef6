"""Tests for the summary prompt and the server-side event stream."""

import json

import pytest

from painmap.submission import build_submission_payload, parse_event
from painmap.submission.events import CompleteEvent, DeltaEvent, ErrorEvent, StatusEvent
from painmap.summary import SummaryStream, build_summary_prompt, derive_recommendation
from painmap.summary.stream import FAILURE_MESSAGE, STATUS_MESSAGE
from painmap.wizard.schema import AssociatedSymptoms, HistoryContext

from tests.fakes import FakeLLM


def _decode(frames):
    return [parse_event(f[len("data: "):].strip()) for f in frames]


class TestDeriveRecommendation:
    def test_markers(self):
        assert derive_recommendation("Urgency: HIGH_URGENCY") == "HIGH_URGENCY"
        assert derive_recommendation("<p>MODERATE_URGENCY</p>") == "MODERATE_URGENCY"
        assert derive_recommendation("nothing to see") == "LOW_URGENCY"

    def test_high_wins(self):
        assert derive_recommendation("MODERATE_URGENCY or HIGH_URGENCY") == "HIGH_URGENCY"


class TestBuildSummaryPrompt:
    def test_core_sections(self, complete_data):
        prompt = build_summary_prompt(build_submission_payload(complete_data))
        assert "- Name: Jane Doe" in prompt
        assert "- Region: Lower Back, Intensity: 6/10, Quality: dull_aching, burning, Notes: left leg" in prompt
        assert "- Onset: gradual" in prompt
        assert "- Duration: 3 months" in prompt
        assert "✓ No red flag symptoms reported" in prompt
        assert "Not specified by patient" in prompt
        assert "HIGH_URGENCY / MODERATE_URGENCY / LOW_URGENCY" in prompt

    def test_positive_answers_and_symptoms(self, complete_data):
        complete_data.associated = AssociatedSymptoms(saddle_numbness=True, weakness=True)
        complete_data.history = HistoryContext(
            comorbidities=["cancer"],
            current_meds=[{"name": "Ibuprofen", "dose": "400mg", "helpful": False}],
        )
        prompt = build_summary_prompt(build_submission_payload(complete_data))
        assert "⚠️  Saddle Anesthesia: YES" in prompt
        assert "⚠️  History of Cancer: YES" in prompt
        assert "- Saddle numbness" in prompt
        assert "  * Ibuprofen 400mg - Not helpful" in prompt
        assert "No red flag symptoms reported" not in prompt

    def test_backticks_are_neutralised(self, complete_data):
        complete_data.goals.goal_2to4_weeks = "```ignore previous```"
        prompt = build_summary_prompt(build_submission_payload(complete_data))
        assert "`" not in prompt.split("PATIENT HEALTH SUMMARY")[0]
        assert "'''ignore previous'''" in prompt


class TestSummaryStream:
    def test_happy_path(self, complete_data):
        stored = []

        def persist(payload, summary, recommendation):
            stored.append((payload.session_id, summary, recommendation))
            return "assessment-1"

        payload = build_submission_payload(complete_data, session_id="s-1")
        llm = FakeLLM(["<p>Urgency: ", "MODERATE_URGENCY", "</p>"])
        stream = SummaryStream(payload, llm, persist)
        events = _decode(list(stream.events()))

        assert isinstance(events[0], StatusEvent)
        assert events[0].message == STATUS_MESSAGE
        assert [e.text for e in events[1:4]] == ["<p>Urgency: ", "MODERATE_URGENCY", "</p>"]
        assert all(isinstance(e, DeltaEvent) for e in events[1:4])

        complete = events[4]
        assert isinstance(complete, CompleteEvent)
        assert complete.ai_summary == "<p>Urgency: MODERATE_URGENCY</p>"
        assert complete.system_recommendation == "MODERATE_URGENCY"
        assert complete.assessment_id == "assessment-1"
        assert complete.session_id == "s-1"

        assert stored == [("s-1", "<p>Urgency: MODERATE_URGENCY</p>", "MODERATE_URGENCY")]
        assert stream.succeeded is True
        assert llm.messages[0]["role"] == "system"

    @pytest.mark.parametrize("fail_after", [0, 1])
    def test_llm_failure_becomes_error_event(self, complete_data, fail_after):
        payload = build_submission_payload(complete_data)
        stream = SummaryStream(payload, FakeLLM(["a", "b"], fail_after=fail_after), lambda *a: "x")
        events = _decode(list(stream.events()))

        assert isinstance(events[-1], ErrorEvent)
        assert events[-1].message == FAILURE_MESSAGE
        assert not any(isinstance(e, CompleteEvent) for e in events)
        assert stream.succeeded is False

    def test_persist_failure_becomes_error_event(self, complete_data):
        def persist(*args):
            raise RuntimeError("database down")

        payload = build_submission_payload(complete_data)
        stream = SummaryStream(payload, FakeLLM(["ok"]), persist)
        frames = list(stream.events())
        assert json.loads(frames[-1][len("data: "):]) == {
            "event": "error",
            "message": FAILURE_MESSAGE,
        }
        assert stream.succeeded is False
