# painmap/services/orchestrator.py
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, List, Optional

import httpx

from painmap.config import Settings, get_settings
from painmap.drafts import (
    AutosaveScheduler,
    DraftSnapshot,
    DraftStore,
    FileDraftStore,
    decode_draft,
)
from painmap.errors import (
    AssessmentIncompleteError,
    SubmissionInProgressError,
    UnknownFieldError,
)
from painmap.submission import (
    SubmissionPhase,
    SubmissionState,
    SubmissionStreamConsumer,
    build_submission_payload,
)
from painmap.triage import UrgencyTier, evaluate_red_flags, get_urgency_level
from painmap.wizard import (
    AssessmentData,
    AssessmentDraft,
    RedFlagResult,
    StepSequencer,
    WizardStep,
    validate_for_submission,
    validate_step,
)
from painmap.wizard.schema import EDITABLE_FIELDS, RED_FLAG_INPUTS, to_camel, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestratorSnapshot:
    """
    What subscribers see. Detached from the live draft.
    """

    data: AssessmentData
    current_step: WizardStep
    completed_steps: FrozenSet[WizardStep]
    dirty: bool
    last_saved_at: Optional[datetime]
    can_proceed: bool
    errors: Dict[str, List[str]] = field(default_factory=dict)
    completion_percent: int = 0
    is_saving: bool = False
    submission: SubmissionState = field(default_factory=SubmissionState)
    red_flags: RedFlagResult = field(default_factory=RedFlagResult)
    urgency_tier: UrgencyTier = UrgencyTier.LOW


Listener = Callable[[OrchestratorSnapshot], None]
ConsumerFactory = Callable[..., SubmissionStreamConsumer]

# Python attribute name for every accepted spelling (snake_case or camelCase).
_FIELD_NAMES: Dict[str, str] = {}
for _name in EDITABLE_FIELDS:
    _FIELD_NAMES[_name] = _name
    _FIELD_NAMES[to_camel(_name)] = _name


class AssessmentOrchestrator:
    """
    Owns one in-progress assessment and coordinates:
      - field updates and per-step validation
      - step navigation through the StepSequencer
      - red-flag re-evaluation when symptoms or history change
      - debounced draft persistence
      - the streamed submission and what happens after it

    Every change ends with subscribers receiving a fresh
    OrchestratorSnapshot.

    Field updates and navigation are synchronous. Outside a running event
    loop the debounced save is not scheduled; the change stays dirty until
    `flush()` is awaited.
    """

    def __init__(
        self,
        store: Optional[DraftStore] = None,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
        consumer_factory: Optional[ConsumerFactory] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store if store is not None else FileDraftStore(self.settings.draft_dir)
        self.client = client
        self.consumer_factory = consumer_factory or self._default_consumer

        self._draft = AssessmentDraft()
        self._sequencer = StepSequencer(gate=self._step_is_valid)
        self._autosave = AutosaveScheduler(
            self.store,
            key=self.settings.draft_key,
            delay=self.settings.autosave_delay_seconds,
            indicator_floor=self.settings.saving_indicator_floor_seconds,
            on_saved=self._on_saved,
            on_saving_changed=self._on_saving_changed,
        )

        self._errors: Dict[str, List[str]] = {}
        self._submission = SubmissionState()
        self._consumer: Optional[SubmissionStreamConsumer] = None
        self._submitting = False
        self._listeners: List[Listener] = []
        self._revalidate()

    # ---- Public API ----

    @property
    def draft(self) -> AssessmentDraft:
        return self._draft

    def snapshot(self) -> OrchestratorSnapshot:
        draft = self._draft
        red_flags = draft.data.red_flags.model_copy(deep=True)
        return OrchestratorSnapshot(
            data=draft.copy_data(),
            current_step=draft.current_step,
            completed_steps=frozenset(draft.completed_steps),
            dirty=draft.dirty,
            last_saved_at=draft.last_saved_at,
            can_proceed=not self._errors,
            errors={key: list(messages) for key, messages in self._errors.items()},
            completion_percent=self._sequencer.completion_percent(draft),
            is_saving=self._autosave.is_saving,
            submission=self._submission,
            red_flags=red_flags,
            urgency_tier=get_urgency_level(red_flags),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load_draft(self) -> bool:
        """
        Restore the stored draft, if there is a usable one.

        Returns True when a draft was loaded. A missing or unreadable
        draft leaves the fresh in-memory state untouched.
        """
        try:
            raw = self.store.get(self.settings.draft_key)
        except Exception:
            logger.exception("Could not read stored draft")
            return False

        snapshot = decode_draft(raw)
        if snapshot is None:
            return False

        data = snapshot.data
        data.red_flags = evaluate_red_flags(data.associated, data.history)
        self._draft = AssessmentDraft(
            data=data,
            current_step=snapshot.current_step,
            completed_steps=set(snapshot.completed_steps),
            dirty=False,
            last_saved_at=snapshot.saved_at,
        )
        logger.info(
            "Loaded draft at step %s (%d completed)",
            snapshot.current_step.value,
            len(snapshot.completed_steps),
        )
        self._revalidate()
        self._notify()
        return True

    def update_field(self, key: str, value: Any) -> None:
        """
        Replace one top-level section of the assessment.

        `key` may be the snake_case attribute or its camelCase wire name.
        The value is validated against the section's model; a pydantic
        ValidationError leaves the draft unchanged.
        """
        name = _FIELD_NAMES.get(key)
        if name is None:
            raise UnknownFieldError(key)

        data = self._draft.data
        setattr(data, name, copy.deepcopy(value))
        data.updated_at = utcnow()
        self._draft.mark_dirty()

        if name in RED_FLAG_INPUTS:
            data.red_flags = evaluate_red_flags(data.associated, data.history)

        self._changed()

    def go_next(self) -> WizardStep:
        return self._navigate(self._sequencer.advance)

    def go_back(self) -> WizardStep:
        return self._navigate(self._sequencer.retreat)

    def go_to_step(self, step: WizardStep) -> WizardStep:
        return self._navigate(lambda draft: self._sequencer.jump(draft, step))

    async def submit(self) -> SubmissionState:
        """
        Send the assessment and stream back its summary.

        Raises:
          - SubmissionInProgressError if a submission is already running
          - AssessmentIncompleteError if identity or pain points are missing

        Transport and server failures come back as a FAILED state; the
        draft is kept so the user can retry. On success the stored draft
        is removed and the wizard starts over.

        If clear_draft() or close() interrupts the stream, the frozen
        consumer state is returned but the orchestrator goes back to an
        idle submission.
        """
        if self._submitting:
            raise SubmissionInProgressError()

        result = validate_for_submission(self._draft.data)
        if not result.valid:
            raise AssessmentIncompleteError(result.errors)

        self._submitting = True
        try:
            payload = build_submission_payload(self._draft.copy_data())
            consumer = self.consumer_factory(on_update=self._on_submission_update)
            self._consumer = consumer
            logger.info("Submitting assessment %s", payload.session_id)
            state = await consumer.submit(payload.to_wire())
        finally:
            self._submitting = False
            self._consumer = None

        if consumer.released:
            # The draft went away mid-stream; the fresh one has no submission.
            logger.info("Submission %s abandoned in phase %s", payload.session_id, state.phase.value)
            self._submission = SubmissionState()
            self._notify()
            return state

        self._submission = state
        if state.phase is SubmissionPhase.COMPLETE:
            logger.info("Assessment %s accepted as %s", payload.session_id, state.assessment_id)
            self._discard_draft()
        elif state.phase is SubmissionPhase.FAILED:
            logger.warning("Submission %s failed: %s", payload.session_id, state.error_message)

        self._notify()
        return state

    def clear_draft(self) -> None:
        """
        Throw away the in-progress assessment, in memory and in storage.
        """
        if self._consumer is not None:
            self._consumer.release()
        self._discard_draft()
        self._submission = SubmissionState()
        self._notify()

    async def flush(self) -> Optional[datetime]:
        """
        Persist unsaved changes now instead of waiting for the debounce.
        """
        snapshot = self._draft_snapshot() if self._draft.dirty else None
        return await self._autosave.flush(snapshot)

    async def close(self) -> None:
        if self._consumer is not None:
            self._consumer.release()
        await self._autosave.aclose()
        self._listeners.clear()

    # ---- Internal helpers ----

    def _default_consumer(self, on_update: Callable[[SubmissionState], None]) -> SubmissionStreamConsumer:
        return SubmissionStreamConsumer(
            self.settings.submit_url,
            client=self.client,
            timeout=self.settings.stream_timeout_seconds,
            on_update=on_update,
        )

    def _step_is_valid(self, draft: AssessmentDraft) -> bool:
        return validate_step(draft.current_step, draft.data).valid

    def _navigate(self, move: Callable[[AssessmentDraft], WizardStep]) -> WizardStep:
        revision = self._draft.revision
        step = move(self._draft)
        if self._draft.revision != revision:
            self._changed()
        else:
            # Blocked moves still refresh errors so the caller can show them.
            self._revalidate()
            self._notify()
        return step

    def _changed(self) -> None:
        # Subscribers hear about the change before the save is scheduled.
        self._revalidate()
        self._notify()
        self._autosave.on_dirty(self._draft_snapshot())

    def _revalidate(self) -> None:
        self._errors = validate_step(self._draft.current_step, self._draft.data).errors

    def _draft_snapshot(self) -> DraftSnapshot:
        draft = self._draft
        return DraftSnapshot(
            data=draft.copy_data(),
            current_step=draft.current_step,
            completed_steps=frozenset(draft.completed_steps),
            revision=draft.revision,
        )

    def _discard_draft(self) -> None:
        self._autosave.cancel()
        try:
            self.store.remove(self.settings.draft_key)
        except Exception:
            logger.exception("Could not remove stored draft")

        self._draft = AssessmentDraft()
        self._sequencer.reset(self._draft)
        self._draft.dirty = False
        self._revalidate()

    def _on_saved(self, revision: int, saved_at: datetime) -> None:
        self._draft.mark_saved(revision, saved_at)
        self._notify()

    def _on_saving_changed(self, is_saving: bool) -> None:
        self._notify()

    def _on_submission_update(self, state: SubmissionState) -> None:
        self._submission = state
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
