"""
Streaming speech playback package.

- segmenter: Splits buffered text into speakable sentences and cleans markup
- voices: Ranked selection of a synthesis voice from the platform catalog
- engine: Capability interface the controller drives
- controller: State machine turning streamed tokens into utterances

The pyttsx3-backed engine lives in ``speech.pyttsx3_engine`` and is imported
explicitly, so the rest of the package works without an audio driver.
"""

from .controller import PlaybackMode, SpeechController, StreamLiveness
from .engine import Prosody, SpeechEngine, SynthesisError, Utterance
from .segmenter import clean_for_speech, ends_with_terminal, extract_sentence
from .voices import DEFAULT_VOICE_MATCHERS, Voice, VoiceMatcher, pick_voice

__all__ = [
    "DEFAULT_VOICE_MATCHERS",
    "PlaybackMode",
    "Prosody",
    "SpeechController",
    "SpeechEngine",
    "StreamLiveness",
    "SynthesisError",
    "Utterance",
    "Voice",
    "VoiceMatcher",
    "clean_for_speech",
    "ends_with_terminal",
    "extract_sentence",
    "pick_voice",
]
