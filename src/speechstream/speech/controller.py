"""
Speech Playback Controller.

Turns incrementally arriving tokens into a sequence of utterances spoken one
at a time by the platform speech engine.

Architecture:
    feed_token() → pending buffer → extract_sentence() → clean_for_speech()
                 → SpeechEngine.speak() → on_end/on_error → next sentence

The controller is a small state machine over `PlaybackMode`:

- ``STREAMING``: tokens are still arriving. Only complete sentences are
  spoken, and after each utterance the controller keeps going only if the
  stream produced a token within ``pause_threshold`` seconds. Otherwise it
  goes silent and waits for more tokens.
- ``FLUSHING``: no more input is expected. Everything left in the buffer is
  spoken, including a trailing fragment without punctuation.
- ``IDLE``: nothing pending and the engine is silent.

All methods must be called from the event loop thread. Engine callbacks for
an utterance that has since been cancelled are ignored.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional, Sequence

from .engine import Prosody, SpeechEngine, SynthesisError, Utterance
from .segmenter import clean_for_speech, ends_with_terminal, extract_sentence
from .voices import DEFAULT_VOICE_MATCHERS, Voice, VoiceMatcher, pick_voice

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class PlaybackMode(enum.Enum):
    IDLE = "idle"
    STREAMING = "streaming"
    FLUSHING = "flushing"


@dataclass
class StreamLiveness:
    """Recency of the last token, used to decide whether to keep talking."""

    last_token_at: float = 0.0
    active: bool = False

    def touch(self, now: float) -> None:
        self.last_token_at = now
        self.active = True

    def reset(self) -> None:
        self.last_token_at = 0.0
        self.active = False

    def is_active(self, now: float, threshold: float) -> bool:
        return self.active and (now - self.last_token_at) < threshold


class SpeechController:
    """Owns the pending text buffer and is the sole issuer of engine commands."""

    def __init__(
        self,
        engine: SpeechEngine,
        *,
        pause_threshold: float = 0.25,
        continue_delay: float = 0.1,
        prosody: Optional[Prosody] = None,
        clock: Callable[[], float] = time.monotonic,
        matchers: Sequence[VoiceMatcher] = DEFAULT_VOICE_MATCHERS,
        on_speaking_changed: Optional[Callable[[bool], None]] = None,
    ):
        """
        Initialize the controller.

        Args:
            engine: Speech engine used for every utterance
            pause_threshold: Seconds without a token after which the stream
                             counts as paused when an utterance finishes
            continue_delay: Gap in seconds between consecutive utterances
            prosody: Rate, pitch and volume applied to every utterance
            clock: Monotonic time source in seconds
            matchers: Ranked voice preference predicates
            on_speaking_changed: Called with the new value whenever audible
                                 output starts or stops
        """
        self._engine = engine
        self._pause_threshold = pause_threshold
        self._continue_delay = continue_delay
        self._prosody = prosody or Prosody()
        self._clock = clock
        self._matchers = tuple(matchers)
        self._on_speaking_changed = on_speaking_changed

        self._buffer = ""
        self._mode = PlaybackMode.IDLE
        self._liveness = StreamLiveness()
        self._current: Optional[Utterance] = None
        self._continuation: Optional[asyncio.TimerHandle] = None
        # Set while _dispatch is on the stack; a nested _dispatch only asks
        # the outer loop to go on, so synchronous engines never recurse
        self._dispatching = False
        self._continue_now = False
        self._speaking = False
        self._idle = asyncio.Event()
        self._idle.set()

        self._voices: list[Voice] = []
        self._voice: Optional[Voice] = None
        self.refresh_voices()

    @classmethod
    def from_settings(
        cls, engine: SpeechEngine, settings: "Settings", **kwargs
    ) -> "SpeechController":
        return cls(
            engine,
            pause_threshold=settings.pause_threshold_seconds,
            continue_delay=settings.continue_delay_seconds,
            prosody=Prosody(
                rate=settings.speech_rate,
                pitch=settings.speech_pitch,
                volume=settings.speech_volume,
            ),
            **kwargs,
        )

    @property
    def mode(self) -> PlaybackMode:
        return self._mode

    @property
    def pending_text(self) -> str:
        return self._buffer

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def is_ready(self) -> bool:
        return bool(self._voices)

    @property
    def voice(self) -> Optional[Voice]:
        return self._voice

    @property
    def voices(self) -> list[Voice]:
        return list(self._voices)

    @property
    def liveness(self) -> StreamLiveness:
        return self._liveness

    def refresh_voices(self) -> Optional[Voice]:
        """Re-read the engine catalog and re-run voice selection."""

        self._voices = list(self._engine.list_voices())
        self._voice = pick_voice(self._voices, self._matchers)
        if self._voice is not None:
            logger.info("Using voice %s (%s)", self._voice.name, self._voice.language)
        return self._voice

    def feed_token(self, token: str) -> None:
        """Append a streamed token and speak once a sentence is complete."""

        self._buffer += token
        self._liveness.touch(self._clock())
        if self._mode is not PlaybackMode.FLUSHING:
            self._mode = PlaybackMode.STREAMING
        self._idle.clear()

        if self._current is None and ends_with_terminal(self._buffer):
            self._dispatch()

    def speak_now(self, text: str) -> None:
        """Interrupt whatever is playing and speak ``text`` in full."""

        self._cancel_continuation()
        self._current = None
        self._engine.cancel()

        self._mode = PlaybackMode.FLUSHING
        self._liveness.touch(self._clock())
        self._buffer = text if ends_with_terminal(text) else text + "."
        self._idle.clear()
        self._dispatch()

    def flush(self) -> None:
        """No more tokens are coming: speak everything that remains."""

        self._mode = PlaybackMode.FLUSHING
        self._liveness.touch(self._clock())
        if self._buffer.strip() and not ends_with_terminal(self._buffer):
            self._buffer += "."
        if self._current is None:
            self._dispatch()

    def stop(self) -> None:
        """Silence output immediately and forget all pending text."""

        self._cancel_continuation()
        self._current = None
        self._engine.cancel()
        self._buffer = ""
        self._liveness.reset()
        self._settle()

    def pause(self) -> None:
        self._engine.pause()

    def resume(self) -> None:
        self._engine.resume()

    async def wait_until_idle(self) -> None:
        """Wait until the buffer is exhausted and the engine is silent."""

        await self._idle.wait()

    def _dispatch(self) -> None:
        self._cancel_continuation()
        if self._dispatching:
            self._continue_now = True
            return
        self._dispatching = True
        try:
            self._dispatch_loop()
        finally:
            self._dispatching = False

    def _dispatch_loop(self) -> None:
        while self._current is None:
            if not self._buffer.strip():
                self._buffer = ""
                self._settle()
                return

            sentence, remainder = extract_sentence(self._buffer)
            if sentence is None:
                if self._mode is not PlaybackMode.FLUSHING:
                    # Wait for the rest of the sentence
                    self._set_speaking(False)
                    return
                sentence, remainder = self._buffer.strip(), ""

            self._buffer = remainder
            text = clean_for_speech(sentence)
            if not text:
                logger.debug("Skipping unspeakable fragment: %r", sentence)
                continue

            self._continue_now = False
            self._speak(text)
            if not self._continue_now:
                return

    def _speak(self, text: str) -> None:
        if not self._voices:
            self.refresh_voices()

        utterance = Utterance.build(text, self._voice, self._prosody)
        self._current = utterance
        self._set_speaking(True)
        logger.debug("Speaking (%d chars): %s", len(text), text[:50])

        try:
            self._engine.speak(
                utterance,
                lambda: self._on_utterance_end(utterance),
                lambda error: self._on_utterance_error(utterance, error),
            )
        except SynthesisError as exc:
            self._on_utterance_error(utterance, exc)

    def _on_utterance_end(self, utterance: Utterance) -> None:
        if utterance is not self._current:
            return
        self._current = None

        if not self._buffer.strip():
            self._buffer = ""
            self._settle()
        elif self._mode is PlaybackMode.FLUSHING or self._stream_active():
            self._schedule_continuation()
        else:
            logger.debug("Stream paused, holding %d chars", len(self._buffer))
            self._set_speaking(False)

    def _on_utterance_error(self, utterance: Utterance, error: SynthesisError) -> None:
        if utterance is not self._current:
            return
        logger.warning("Speech synthesis error: %s", error.reason)
        self._on_utterance_end(utterance)

    def _stream_active(self) -> bool:
        return self._liveness.is_active(self._clock(), self._pause_threshold)

    def _schedule_continuation(self) -> None:
        if self._continue_delay > 0:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                pass
            else:
                self._continuation = loop.call_later(self._continue_delay, self._dispatch)
                return
        self._dispatch()

    def _cancel_continuation(self) -> None:
        if self._continuation is not None:
            self._continuation.cancel()
            self._continuation = None

    def _set_speaking(self, speaking: bool) -> None:
        if speaking:
            self._idle.clear()
        if speaking == self._speaking:
            return
        self._speaking = speaking
        if self._on_speaking_changed is not None:
            self._on_speaking_changed(speaking)

    def _settle(self) -> None:
        self._mode = PlaybackMode.IDLE
        self._set_speaking(False)
        self._idle.set()


__all__ = ["PlaybackMode", "SpeechController", "StreamLiveness"]
