"""Capability interface for the platform speech-synthesis engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .voices import Voice


class SynthesisError(Exception):
    """The engine failed to speak one utterance."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Prosody:
    rate: float = 0.95
    pitch: float = 1.0
    volume: float = 1.0


@dataclass(frozen=True)
class Utterance:
    """One sentence-sized unit submitted to the engine as an atomic request."""

    text: str
    voice: Optional[Voice] = None
    rate: float = 0.95
    pitch: float = 1.0
    volume: float = 1.0

    @classmethod
    def build(cls, text: str, voice: Optional[Voice], prosody: Prosody) -> "Utterance":
        return cls(
            text=text,
            voice=voice,
            rate=prosody.rate,
            pitch=prosody.pitch,
            volume=prosody.volume,
        )


class SpeechEngine(Protocol):
    """Process-wide synthesis engine, driven by exactly one controller.

    ``speak`` returns immediately; the engine later calls exactly one of
    ``on_end`` or ``on_error`` on the caller's event loop thread.
    """

    def list_voices(self) -> list[Voice]: ...

    def speak(
        self,
        utterance: Utterance,
        on_end: Callable[[], None],
        on_error: Callable[[SynthesisError], None],
    ) -> None: ...

    def cancel(self) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...


__all__ = ["Prosody", "SpeechEngine", "SynthesisError", "Utterance"]
