"""SpeechEngine backed by the offline pyttsx3 driver (SAPI5, NSSpeech, eSpeak)."""

from __future__ import annotations

import asyncio
import logging
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

import pyttsx3

from .engine import SynthesisError, Utterance
from .voices import Voice

logger = logging.getLogger(__name__)

# pyttsx3 speaks at roughly 200 words per minute by default
BASE_WORDS_PER_MINUTE = 200

_LEADING_NOISE = re.compile(r"^[^A-Za-z]+")


def _language_of(raw_voice: Any) -> str:
    """Best-effort language tag from a pyttsx3 voice ("en-US", "en", "")."""

    languages = getattr(raw_voice, "languages", None) or []
    for language in languages:
        if isinstance(language, bytes):
            # eSpeak prefixes the tag with a priority byte
            language = language.decode("utf-8", errors="ignore")
        tag = _LEADING_NOISE.sub("", str(language)).strip()
        if tag:
            return tag.replace("_", "-")
    return ""


class Pyttsx3Engine:
    """
    Adapter running blocking pyttsx3 calls on one dedicated worker thread.

    The driver is created on the worker thread and every driver call except
    ``stop()`` runs there, since SAPI5 and NSSpeech are bound to the thread
    that initialized them. Completion callbacks are scheduled back onto the
    event loop that issued the ``speak`` call. ``cancel()`` stops the driver
    and invalidates the callbacks of whatever utterance was in flight.
    """

    def __init__(
        self,
        *,
        driver_name: Optional[str] = None,
        base_words_per_minute: int = BASE_WORDS_PER_MINUTE,
    ):
        self._base_wpm = base_words_per_minute
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="speech")
        self._lock = threading.Lock()
        self._generation = 0
        self._engine = self._executor.submit(pyttsx3.init, driver_name).result()

    def list_voices(self) -> list[Voice]:
        return self._executor.submit(self._read_voices).result()

    def _read_voices(self) -> list[Voice]:
        raw_voices = self._engine.getProperty("voices") or []
        return [
            Voice(
                name=str(getattr(raw, "name", "") or raw.id),
                language=_language_of(raw),
                uri=str(raw.id),
            )
            for raw in raw_voices
        ]

    def speak(
        self,
        utterance: Utterance,
        on_end: Callable[[], None],
        on_error: Callable[[SynthesisError], None],
    ) -> None:
        loop = asyncio.get_running_loop()
        with self._lock:
            generation = self._generation

        future = self._executor.submit(self._say, utterance)

        def _done(fut: Future) -> None:
            with self._lock:
                if generation != self._generation:
                    return
            exc = fut.exception()
            if exc is None:
                loop.call_soon_threadsafe(on_end)
            else:
                error = exc if isinstance(exc, SynthesisError) else SynthesisError(str(exc))
                loop.call_soon_threadsafe(on_error, error)

        future.add_done_callback(_done)

    def cancel(self) -> None:
        with self._lock:
            self._generation += 1
        self._engine.stop()

    def pause(self) -> None:
        logger.warning("pyttsx3 does not support pausing speech")

    def resume(self) -> None:
        logger.warning("pyttsx3 does not support resuming speech")

    def shutdown(self) -> None:
        self.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _say(self, utterance: Utterance) -> None:
        engine = self._engine
        try:
            if utterance.voice is not None:
                engine.setProperty("voice", utterance.voice.uri)
            engine.setProperty("rate", round(self._base_wpm * utterance.rate))
            engine.setProperty("volume", utterance.volume)
            engine.say(utterance.text)
            engine.runAndWait()
        except RuntimeError as exc:
            raise SynthesisError(str(exc)) from exc


__all__ = ["BASE_WORDS_PER_MINUTE", "Pyttsx3Engine"]
