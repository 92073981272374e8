"""Ranked selection of a synthesis voice from the platform catalog."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence


@dataclass(frozen=True)
class Voice:
    """One entry of the platform voice catalog."""

    name: str
    language: str
    uri: str

    @property
    def is_english(self) -> bool:
        return self.language.lower().startswith("en")


VoiceMatcher = Callable[[Voice], bool]

# Natural-sounding male voices, best first
PREFERRED_VOICE_NAMES: tuple[str, ...] = (
    # macOS
    "Daniel (Enhanced)",
    "Alex",
    "Daniel",
    "Tom",
    "Oliver",
    # Windows neural
    "Microsoft Guy Online (Natural)",
    "Microsoft David Online (Natural)",
    "Microsoft Mark Online (Natural)",
    "Microsoft Ryan Online (Natural)",
    "Microsoft Guy",
    "Microsoft David",
    "Microsoft Mark",
    # Chrome
    "Google UK English Male",
    "Google US English Male",
)

MALE_TOKENS: tuple[str, ...] = ("male", "guy", "david", "mark", "daniel", "james", "tom")
EXTRA_MALE_TOKENS: tuple[str, ...] = ("alex", "oliver")
QUALITY_TOKENS: tuple[str, ...] = ("natural", "neural", "premium", "enhanced")


def _token_pattern(tokens: Sequence[str]) -> re.Pattern[str]:
    # Tokens match anywhere in the name ("GuyNeural"), but "female" is not "male"
    alternatives = [
        r"(?<!fe)male" if token == "male" else re.escape(token) for token in tokens
    ]
    return re.compile("|".join(alternatives), re.IGNORECASE)


def named(preferred: str) -> VoiceMatcher:
    """Match a voice whose name or uri contains ``preferred``."""

    def matcher(voice: Voice) -> bool:
        return preferred in voice.name or preferred in voice.uri

    return matcher


def english_with(*token_groups: Sequence[str]) -> VoiceMatcher:
    """Match an English voice whose name hits at least one token of every group."""

    patterns = [_token_pattern(group) for group in token_groups]

    def matcher(voice: Voice) -> bool:
        return voice.is_english and all(p.search(voice.name) for p in patterns)

    return matcher


def any_english(voice: Voice) -> bool:
    return voice.is_english


DEFAULT_VOICE_MATCHERS: tuple[VoiceMatcher, ...] = (
    *(named(name) for name in PREFERRED_VOICE_NAMES),
    english_with(MALE_TOKENS, QUALITY_TOKENS),
    english_with(MALE_TOKENS + EXTRA_MALE_TOKENS),
    any_english,
)


def pick_voice(
    catalog: Sequence[Voice],
    matchers: Sequence[VoiceMatcher] = DEFAULT_VOICE_MATCHERS,
) -> Optional[Voice]:
    """Return the best voice in ``catalog``; ``None`` only when it is empty."""

    if not catalog:
        return None
    for matcher in matchers:
        for voice in catalog:
            if matcher(voice):
                return voice
    return catalog[0]


__all__ = [
    "DEFAULT_VOICE_MATCHERS",
    "PREFERRED_VOICE_NAMES",
    "Voice",
    "VoiceMatcher",
    "any_english",
    "english_with",
    "named",
    "pick_voice",
]
