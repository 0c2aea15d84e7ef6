"""Tests for draft storage, the snapshot codec and debounced autosave."""

import asyncio
import json
import time
from datetime import datetime, timezone

import pytest

from painmap.drafts import (
    AutosaveScheduler,
    DraftSnapshot,
    FileDraftStore,
    InMemoryDraftStore,
    decode_draft,
    encode_draft,
)
from painmap.drafts.codec import SNAPSHOT_VERSION
from painmap.wizard import WizardStep
from painmap.wizard.schema import AssessmentData, UserInfo

KEY = "assessment:draft:v1"
SAVED_AT = datetime(2025, 3, 1, 12, 30, tzinfo=timezone.utc)


def _snapshot(name="Jane", revision=0):
    return DraftSnapshot(
        data=AssessmentData(user=UserInfo(email="jane@example.com", name=name)),
        current_step=WizardStep.TIMING,
        completed_steps=frozenset({WizardStep.WELCOME, WizardStep.PAIN_MAPPING}),
        revision=revision,
    )


class FailingStore(InMemoryDraftStore):
    def set(self, key, value):
        raise OSError("disk full")


class SlowStore(InMemoryDraftStore):
    def __init__(self, delay):
        super().__init__()
        self.delay = delay
        self.writes = 0

    def set(self, key, value):
        time.sleep(self.delay)
        self.writes += 1
        super().set(key, value)


class TestStores:
    def test_in_memory(self):
        store = InMemoryDraftStore()
        assert store.get(KEY) is None
        store.set(KEY, b"abc")
        assert store.get(KEY) == b"abc"
        store.remove(KEY)
        store.remove(KEY)
        assert store.get(KEY) is None

    def test_file_store(self, tmp_path):
        store = FileDraftStore(tmp_path / "drafts")
        assert store.get(KEY) is None
        store.set(KEY, b"one")
        store.set(KEY, b"two")
        assert store.get(KEY) == b"two"
        assert not list((tmp_path / "drafts").glob("*.tmp"))
        store.remove(KEY)
        assert store.get(KEY) is None
        store.remove(KEY)


class TestCodec:
    def test_round_trip(self):
        snapshot = _snapshot()
        decoded = decode_draft(encode_draft(snapshot, SAVED_AT))
        assert decoded.data == snapshot.data
        assert decoded.current_step == WizardStep.TIMING
        assert decoded.completed_steps == snapshot.completed_steps
        assert decoded.saved_at == SAVED_AT

    def test_encoded_shape(self):
        document = json.loads(encode_draft(_snapshot(), SAVED_AT))
        assert document["version"] == SNAPSHOT_VERSION
        assert document["currentStep"] == "timing"
        assert document["completedSteps"] == ["welcome", "pain-mapping"]
        assert document["data"]["user"]["email"] == "jane@example.com"
        assert "redFlags" in document["data"]

    @pytest.mark.parametrize("version", [None, 1, 99])
    def test_snapshot_shape_with_any_version(self, version):
        document = {
            "data": {"user": {"email": "a@b.co", "name": "A"}},
            "currentStep": "timing",
            "completedSteps": ["welcome", "pain-mapping"],
            "savedAt": "2025-03-01T12:30:00+00:00",
        }
        if version is not None:
            document["version"] = version
        decoded = decode_draft(json.dumps(document).encode())
        assert decoded.data.user.email == "a@b.co"
        assert decoded.current_step == WizardStep.TIMING
        assert decoded.completed_steps == {WizardStep.WELCOME, WizardStep.PAIN_MAPPING}
        assert decoded.saved_at == SAVED_AT

    def test_wrapped_shape(self):
        raw = json.dumps(
            {
                "assessmentData": {"user": {"name": "Old"}},
                "currentStep": "symptoms",
                "completedSteps": ["welcome", "bogus", "timing"],
                "savedAt": "2024-11-02T08:00:00Z",
            }
        ).encode()
        decoded = decode_draft(raw)
        assert decoded.data.user.name == "Old"
        assert decoded.current_step == WizardStep.SYMPTOMS
        assert decoded.completed_steps == {WizardStep.WELCOME, WizardStep.TIMING}
        assert decoded.saved_at.year == 2024

    def test_legacy_shape(self):
        raw = json.dumps(
            {
                "user": {"email": "legacy@example.com"},
                "points": [],
                "updatedAt": "2024-05-05T10:00:00+00:00",
                "somethingRemoved": True,
            }
        ).encode()
        decoded = decode_draft(raw)
        assert decoded.data.user.email == "legacy@example.com"
        assert decoded.current_step == WizardStep.WELCOME
        assert decoded.completed_steps == frozenset()
        assert decoded.saved_at == datetime(2024, 5, 5, 10, tzinfo=timezone.utc)

    def test_unknown_current_step_falls_back_to_welcome(self):
        raw = json.dumps(
            {"version": 2, "data": {}, "currentStep": "gone", "completedSteps": "x"}
        ).encode()
        decoded = decode_draft(raw)
        assert decoded.current_step == WizardStep.WELCOME
        assert decoded.completed_steps == frozenset()

    @pytest.mark.parametrize(
        "raw",
        [None, b"", b"{not json", b"[1, 2]", b"\xff\xfe", b'{"points": [{"intensityCurrent": 42}]}'],
    )
    def test_malformed_is_none(self, raw):
        assert decode_draft(raw) is None


class TestAutosaveScheduler:
    async def test_debounce_persists_last_signal_once(self):
        store = SlowStore(delay=0)
        saved = []
        scheduler = AutosaveScheduler(
            store, KEY, delay=0.1, indicator_floor=0.01,
            on_saved=lambda revision, at: saved.append(revision),
        )
        for i in range(5):
            scheduler.on_dirty(_snapshot(name=f"v{i}", revision=i))
            await asyncio.sleep(0.01)
        assert scheduler.pending

        await asyncio.sleep(0.3)
        assert store.writes == 1
        assert saved == [4]
        assert decode_draft(store.get(KEY)).data.user.name == "v4"
        await scheduler.aclose()

    async def test_flush_persists_immediately(self):
        store = SlowStore(delay=0)
        scheduler = AutosaveScheduler(store, KEY, delay=10, indicator_floor=0.01)
        scheduler.on_dirty(_snapshot(name="pending"))
        saved_at = await scheduler.flush()
        assert saved_at is not None
        assert store.writes == 1
        assert not scheduler.pending
        await scheduler.aclose()

    async def test_flush_with_nothing_pending(self):
        scheduler = AutosaveScheduler(InMemoryDraftStore(), KEY)
        assert await scheduler.flush() is None

    def test_dirty_without_event_loop_waits_for_flush(self):
        store = InMemoryDraftStore()
        scheduler = AutosaveScheduler(store, KEY)
        scheduler.on_dirty(_snapshot())
        assert scheduler.pending is False
        assert store.get(KEY) is None

        assert asyncio.run(scheduler.flush()) is not None
        assert decode_draft(store.get(KEY)).data.user.name == "Jane"

    async def test_concurrent_saves_collapse(self):
        store = SlowStore(delay=0.05)
        scheduler = AutosaveScheduler(store, KEY, indicator_floor=0.01)
        results = await asyncio.gather(
            scheduler.save_draft_now(_snapshot(name="a")),
            scheduler.save_draft_now(_snapshot(name="b")),
        )
        assert store.writes == 1
        assert results[0] == results[1]
        await scheduler.aclose()

    async def test_newer_revision_is_written_after_in_flight_save(self):
        store = SlowStore(delay=0.05)
        saved = []
        scheduler = AutosaveScheduler(
            store, KEY, indicator_floor=0.01,
            on_saved=lambda revision, at: saved.append(revision),
        )
        await asyncio.gather(
            scheduler.save_draft_now(_snapshot(name="old", revision=1)),
            scheduler.save_draft_now(_snapshot(name="new", revision=2)),
        )
        assert store.writes == 2
        assert saved == [1, 2]
        stored = json.loads(store.get(KEY))
        assert stored["data"]["user"]["name"] == "new"
        await scheduler.aclose()

    async def test_saving_indicator_has_a_floor(self):
        changes = []
        scheduler = AutosaveScheduler(
            InMemoryDraftStore(), KEY, indicator_floor=0.05,
            on_saving_changed=changes.append,
        )
        await scheduler.save_draft_now(_snapshot())
        assert scheduler.is_saving is True
        await asyncio.sleep(0.1)
        assert scheduler.is_saving is False
        assert changes == [True, False]

    async def test_failure_is_swallowed(self):
        saved = []
        scheduler = AutosaveScheduler(
            FailingStore(), KEY, indicator_floor=0.01,
            on_saved=lambda revision, at: saved.append(revision),
        )
        assert await scheduler.save_draft_now(_snapshot()) is None
        assert saved == []
        await scheduler.aclose()
        assert scheduler.is_saving is False

    async def test_cancel_drops_pending_save(self):
        store = SlowStore(delay=0)
        scheduler = AutosaveScheduler(store, KEY, delay=0.03)
        scheduler.on_dirty(_snapshot())
        scheduler.cancel()
        await asyncio.sleep(0.08)
        assert store.writes == 0
        assert store.get(KEY) is None

    async def test_cancel_during_write_does_not_resurrect_draft(self):
        store = SlowStore(delay=0.05)
        scheduler = AutosaveScheduler(store, KEY, indicator_floor=0.01)
        task = asyncio.ensure_future(scheduler.save_draft_now(_snapshot()))
        await asyncio.sleep(0.01)
        scheduler.cancel()
        assert await task is None
        assert store.get(KEY) is None
        await scheduler.aclose()
