"""Wire the analysis event stream to the message sink and the speech controller."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, AsyncIterator, Callable, Optional, Protocol

from pydantic import BaseModel, ValidationError

from .analysis_client import AnalysisStreamError
from .schemas.stream_events import (
    AnalysisProgress,
    CompletePayload,
    ErrorPayload,
    ProgressPayload,
    StartPayload,
    TextPayload,
)
from .streaming import StreamEvent

if TYPE_CHECKING:
    from .speech.controller import SpeechController

logger = logging.getLogger(__name__)

STOPPED_SUFFIX = " [Stopped]"
DEFAULT_ERROR_MESSAGE = "An error occurred"


class AnalysisSource(Protocol):
    def stream_analysis(
        self, conversation_id: str, context: Optional[str] = None
    ) -> AsyncIterator[StreamEvent]: ...


class MessageSink(Protocol):
    """Receives the visible state of one analysis turn."""

    def on_progress(
        self, step: str, image: Optional[int], total: Optional[int]
    ) -> None: ...

    def on_token(self, text: str) -> None: ...

    def on_complete(self, final_text: str, message_id: str) -> None: ...

    def on_error(self, message: str) -> None: ...

    def on_cancelled(self, partial_text: str) -> None: ...


class AnalysisPipeline:
    """Consume one analysis stream, driving the sink and the speech controller.

    The pipeline owns the task reading the network stream. ``cancel()``
    aborts that task before stopping speech, and only ever runs once.
    """

    def __init__(
        self,
        client: AnalysisSource,
        controller: "SpeechController",
        sink: MessageSink,
        *,
        speech_enabled: bool = True,
    ):
        self._client = client
        self._controller = controller
        self._sink = sink
        self._speech_enabled = speech_enabled
        self._task: Optional[asyncio.Task[None]] = None
        self._cancelled = False
        self._finished = False
        self._content = ""
        self.progress = AnalysisProgress()

        self._handlers: dict[str, Callable[[StreamEvent], None]] = {
            "start": self._on_start,
            "progress": self._on_progress,
            "text": self._on_text,
            "complete": self._on_complete,
            "error": self._on_error,
        }

    @property
    def speech_enabled(self) -> bool:
        return self._speech_enabled

    @speech_enabled.setter
    def speech_enabled(self, enabled: bool) -> None:
        if not enabled:
            self._controller.stop()
        self._speech_enabled = enabled

    @property
    def content(self) -> str:
        """Text streamed so far in the current turn."""
        return self._content

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(
        self, conversation_id: str, context: Optional[str] = None
    ) -> asyncio.Task[None]:
        if self._task is not None:
            raise RuntimeError("Pipeline already started")
        self._content = ""
        self._finished = False
        self._set_progress(AnalysisProgress())
        self._task = asyncio.create_task(
            self._consume(conversation_id, context),
            name=f"analysis-{conversation_id}",
        )
        return self._task

    async def run(self, conversation_id: str, context: Optional[str] = None) -> None:
        """Stream the analysis to completion, error, or cancellation."""

        task = self.start(conversation_id, context)
        try:
            await task
        except asyncio.CancelledError:
            if not self._cancelled:
                # The awaiting caller is being torn down
                self.cancel()
                raise

    def cancel(self) -> None:
        """Abort the network stream, then stop speech. Runs at most once."""

        if self._cancelled:
            return
        self._cancelled = True

        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._controller.stop()

        if self._content:
            self._sink.on_cancelled(self._content + STOPPED_SUFFIX)
        self._content = ""
        self._set_progress(AnalysisProgress())

    async def __aenter__(self) -> "AnalysisPipeline":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.cancel()

    def handle_event(self, event: StreamEvent) -> None:
        handler = self._handlers.get(event.kind)
        if handler is None:
            logger.debug("Ignoring %s event", event.kind)
            return
        handler(event)

    async def _consume(self, conversation_id: str, context: Optional[str]) -> None:
        try:
            async for event in self._client.stream_analysis(conversation_id, context):
                self.handle_event(event)
        except asyncio.CancelledError:
            logger.info("Analysis stream for %s cancelled", conversation_id)
            raise
        except AnalysisStreamError as exc:
            logger.error("Analysis stream failed (%s): %s", exc.status_code, exc.detail)
            self._fail(str(exc.detail) or DEFAULT_ERROR_MESSAGE)
            return

        if not self._finished:
            logger.warning(
                "Analysis stream for %s ended without a complete event", conversation_id
            )
            self._content = ""
            self._finished = True
            if self._speech_enabled:
                self._controller.flush()

    def _on_start(self, event: StreamEvent) -> None:
        payload = self._validate(StartPayload, event)
        if payload is None:
            return
        self._set_progress(
            AnalysisProgress(step="detection", total_images=payload.total_images)
        )

    def _on_progress(self, event: StreamEvent) -> None:
        payload = self._validate(ProgressPayload, event)
        if payload is None:
            return
        self._set_progress(
            AnalysisProgress(
                step=payload.step,
                image=payload.image,
                total_images=payload.total_images,
            )
        )

    def _on_text(self, event: StreamEvent) -> None:
        payload = self._validate(TextPayload, event)
        if payload is None:
            return
        token = payload.text
        self._content += token
        self._sink.on_token(token)
        if self._speech_enabled and token:
            self._controller.feed_token(token)

    def _on_complete(self, event: StreamEvent) -> None:
        payload = self._validate(CompletePayload, event)
        if payload is None:
            return
        final_text = payload.hypothesis if payload.hypothesis is not None else self._content
        message_id = payload.message_id or str(uuid.uuid4())
        self._content = ""
        self._finished = True
        self._sink.on_complete(final_text, message_id)
        self._set_progress(AnalysisProgress(step="complete"))
        if self._speech_enabled:
            self._controller.flush()

    def _on_error(self, event: StreamEvent) -> None:
        payload = self._validate(ErrorPayload, event)
        message = (payload.error if payload else None) or DEFAULT_ERROR_MESSAGE
        self._fail(message)

    def _fail(self, message: str) -> None:
        self._content = ""
        self._finished = True
        self._set_progress(AnalysisProgress(step="error", error=message))
        self._sink.on_error(message)
        self._controller.stop()

    def _set_progress(self, progress: AnalysisProgress) -> None:
        self.progress = progress
        if progress.step != "idle":
            self._sink.on_progress(progress.step, progress.image, progress.total_images)

    @staticmethod
    def _validate(model: type[BaseModel], event: StreamEvent):
        try:
            return model.model_validate(event.payload)
        except ValidationError as exc:
            logger.warning(
                "Dropping %s event with invalid payload: %s",
                event.kind,
                exc.errors(include_url=False),
            )
            return None


__all__ = ["AnalysisPipeline", "AnalysisSource", "MessageSink"]
