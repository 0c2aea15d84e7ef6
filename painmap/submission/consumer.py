# painmap/submission/consumer.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

import httpx

from painmap.submission.events import (
    CompleteEvent,
    DeltaEvent,
    ErrorEvent,
    StatusEvent,
    StreamEvent,
    SubmissionPhase,
    SubmissionState,
)
from painmap.submission.parser import EventStreamParser
from painmap.triage.red_flags import UrgencyTier

logger = logging.getLogger(__name__)

StateListener = Callable[[SubmissionState], None]

NO_RESULT_MESSAGE = "The assessment service closed the connection without returning a result."
TIMEOUT_MESSAGE = "The assessment service took too long to respond. Please try again."
TRANSPORT_MESSAGE = "Could not reach the assessment service. Please try again."
DEFAULT_ERROR_MESSAGE = "Streaming error"


class SubmissionStreamConsumer:
    """
    Runs one submission attempt against the summarization backend.

    Phases: idle -> connecting -> streaming -> complete | failed.

    The response body is read chunk by chunk; every complete event is
    applied in arrival order. `delta` text accumulates for progressive
    display, while the `complete` event carries the authoritative summary.
    A stream that ends without `complete` is a failure.

    `on_update` sees every state change; `on_complete` fires at most once,
    when the attempt succeeds.
    """

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 90.0,
        on_update: Optional[StateListener] = None,
        on_complete: Optional[StateListener] = None,
    ):
        self.url = url
        self.client = client
        self.timeout = timeout
        self.on_update = on_update
        self.on_complete = on_complete

        self._state = SubmissionState()
        self._completion_fired = False
        self._released = False
        self._task: Optional[asyncio.Task] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def released(self) -> bool:
        return self._released

    async def submit(self, payload: Dict[str, Any]) -> SubmissionState:
        """
        POST `payload` and fold the event stream into a final state.

        Terminal problems (error event, HTTP failure, timeout, silent end
        of stream) come back as a FAILED state rather than an exception.
        """
        if self._state.phase is not SubmissionPhase.IDLE:
            raise RuntimeError("A SubmissionStreamConsumer can only be used once")

        self._task = asyncio.current_task()
        self._update(phase=SubmissionPhase.CONNECTING, status_message="Connecting...")

        try:
            await asyncio.wait_for(self._run(payload), timeout=self.timeout)
        except asyncio.CancelledError:
            if self._released:
                return self._state
            raise
        except asyncio.TimeoutError:
            logger.warning("Submission stream exceeded %.0fs", self.timeout)
            self._fail(TIMEOUT_MESSAGE)
        except httpx.HTTPError as exc:
            logger.warning("Submission transport error: %s", exc)
            self._fail(TRANSPORT_MESSAGE)

        if not self._state.terminal:
            self._fail(NO_RESULT_MESSAGE)
        return self._state

    def release(self) -> None:
        """
        Stop reading and freeze the state exactly as it is now.
        """
        if self._released:
            return
        self._released = True
        if self._task is not None and self._task is not asyncio.current_task():
            self._task.cancel()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(self, payload: Dict[str, Any]) -> None:
        if self.client is not None:
            await self._read(self.client, payload)
            return

        timeout = httpx.Timeout(self.timeout, connect=10.0)
        async with httpx.AsyncClient(timeout=timeout) as client:
            await self._read(client, payload)

    async def _read(self, client: httpx.AsyncClient, payload: Dict[str, Any]) -> None:
        headers = {"Accept": "text/event-stream"}
        async with client.stream("POST", self.url, json=payload, headers=headers) as response:
            if not response.is_success:
                self._fail(await self._describe_failure(response))
                return

            parser = EventStreamParser()
            async for chunk in response.aiter_bytes():
                if self._released:
                    return
                if not chunk:
                    continue
                if self._state.phase is SubmissionPhase.CONNECTING:
                    self._update(phase=SubmissionPhase.STREAMING)

                for event in parser.feed(chunk):
                    self._dispatch(event)
                    if self._state.terminal or self._released:
                        return
            parser.close()

    def _dispatch(self, event: StreamEvent) -> None:
        if isinstance(event, StatusEvent):
            self._update(status_message=event.message)
        elif isinstance(event, DeltaEvent):
            self._update(
                accumulated_text=self._state.accumulated_text + event.text,
                status_message="",
            )
        elif isinstance(event, CompleteEvent):
            self._complete(event)
        elif isinstance(event, ErrorEvent):
            self._fail(event.message or DEFAULT_ERROR_MESSAGE)

    def _complete(self, event: CompleteEvent) -> None:
        if self._completion_fired:
            logger.warning("Ignoring duplicate complete event")
            return

        # The complete event is authoritative; the deltas were only a preview.
        # With no summary in it, keep what was already shown.
        summary = event.ai_summary or self._state.accumulated_text
        self._update(
            phase=SubmissionPhase.COMPLETE,
            accumulated_text=summary,
            status_message="",
            urgency_tier=UrgencyTier.from_recommendation(event.system_recommendation),
            assessment_id=event.assessment_id,
            session_id=event.session_id,
        )
        if self._state.phase is not SubmissionPhase.COMPLETE:
            return

        self._completion_fired = True
        if self.on_complete is not None:
            self.on_complete(self._state)

    def _fail(self, message: str) -> None:
        self._update(
            phase=SubmissionPhase.FAILED,
            status_message="",
            error_message=message or DEFAULT_ERROR_MESSAGE,
        )

    def _update(self, **changes: Any) -> None:
        # Nothing changes once released or once a terminal phase is reached.
        if self._released or self._state.terminal:
            return
        self._state = replace(self._state, **changes)
        if self.on_update is not None:
            self.on_update(self._state)

    async def _describe_failure(self, response: httpx.Response) -> str:
        await response.aread()
        detail = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("message") or body.get("error")
        if isinstance(detail, str) and detail:
            return detail
        return f"Failed to start streaming (HTTP {response.status_code})"
