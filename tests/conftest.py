import pathlib
import sys
from typing import Callable, Optional

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from speechstream.speech.engine import SynthesisError, Utterance  # noqa: E402
from speechstream.speech.voices import Voice  # noqa: E402


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeEngine:
    """Speech engine that records utterances and completes them on demand.

    With ``auto_complete`` every utterance finishes synchronously inside
    ``speak``; otherwise tests call ``finish()`` or ``fail()``.
    """

    def __init__(self, voices: Optional[list[Voice]] = None, auto_complete: bool = False):
        self.voices = list(voices or [])
        self.auto_complete = auto_complete
        self.spoken: list[Utterance] = []
        self.cancel_calls = 0
        self.pause_calls = 0
        self.resume_calls = 0
        self.fail_texts: set[str] = set()
        self._pending: list[tuple[Utterance, Callable[[], None], Callable[[SynthesisError], None]]] = []

    def list_voices(self) -> list[Voice]:
        return list(self.voices)

    def speak(self, utterance, on_end, on_error) -> None:
        self.spoken.append(utterance)
        if self.auto_complete:
            if utterance.text in self.fail_texts:
                on_error(SynthesisError("synthesis-failed"))
            else:
                on_end()
            return
        self._pending.append((utterance, on_end, on_error))

    def cancel(self) -> None:
        self.cancel_calls += 1
        # Browsers report an interrupted error for the cancelled utterance
        pending, self._pending = self._pending, []
        for _, _, on_error in pending:
            on_error(SynthesisError("interrupted"))

    def pause(self) -> None:
        self.pause_calls += 1

    def resume(self) -> None:
        self.resume_calls += 1

    @property
    def texts(self) -> list[str]:
        return [utterance.text for utterance in self.spoken]

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def finish(self) -> None:
        _, on_end, _ = self._pending.pop(0)
        on_end()

    def fail(self, reason: str = "synthesis-failed") -> None:
        _, _, on_error = self._pending.pop(0)
        on_error(SynthesisError(reason))


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine(voices=[Voice(name="Daniel", language="en-GB", uri="daniel")])
