"""Heuristic syllable counting and stress estimation for unknown words.

These rules only run when a word is missing from the pronunciation
dictionary, so they favour predictable output over linguistic accuracy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Tuple


__all__ = [
    "StressEstimate",
    "estimate_syllable_count",
    "estimate_stress_pattern",
    "estimate_stress_with_confidence",
]


_VOWELS = "aeiouy"
_VOWEL_GROUP_PATTERN = re.compile(r"[aeiouy]+")
_NON_LETTER_PATTERN = re.compile(r"[^a-z]")
_FINAL_STRESS_PATTERN = re.compile(r"(oo|ee|ine|ade|ete|ute|ique)$")

# suffix -> (syllables in the suffix, syllables between stress and suffix)
STRESS_SHIFTING_SUFFIXES: Dict[str, Tuple[int, int]] = {
    "tion": (1, 1),
    "sion": (1, 1),
    "cian": (1, 1),
    "tian": (1, 1),
    "ical": (2, 2),
    "ic": (1, 1),
    "ity": (2, 1),
    "ety": (2, 1),
    "ious": (2, 1),
    "eous": (2, 1),
    "ian": (1, 1),
    "ual": (2, 1),
    "ology": (3, 2),
    "ography": (3, 2),
    "ation": (2, 1),
}

UNSTRESSED_SUFFIXES: Dict[str, int] = {
    "ing": 1,
    "ed": 0,
    "es": 0,
    "s": 0,
    "ly": 1,
    "ful": 1,
    "less": 1,
    "ness": 1,
    "ment": 1,
    "able": 2,
    "ible": 2,
    "ous": 1,
    "ive": 1,
    "er": 1,
    "or": 1,
    "en": 1,
    "al": 1,
    "ary": 2,
    "ery": 2,
    "ory": 2,
}

UNSTRESSED_PREFIXES: Tuple[str, ...] = (
    "un", "re", "de", "dis", "mis", "pre", "pro", "in", "im", "il", "ir",
    "en", "em", "non", "sub", "super", "anti", "auto", "bi", "co", "ex",
    "inter", "multi", "out", "over", "post", "semi", "trans", "under",
)


@dataclass(frozen=True)
class StressEstimate:
    pattern: str
    method: str
    confidence: float


def _letters(word: str) -> str:
    return _NON_LETTER_PATTERN.sub("", word.lower())


def estimate_syllable_count(word: str) -> int:
    """Estimate the number of syllables in ``word``; never less than one."""

    normalized = _letters(word)
    if len(normalized) <= 1:
        return 1

    syllable_count = len(_VOWEL_GROUP_PATTERN.findall(normalized))

    if syllable_count > 1 and normalized.endswith("e") and normalized[-2] not in _VOWELS:
        consonant_le = (
            normalized.endswith("le")
            and len(normalized) > 2
            and normalized[-3] not in _VOWELS
        )
        if not consonant_le:
            syllable_count -= 1
    elif syllable_count > 1 and normalized.endswith("ed") and len(normalized) > 2:
        if normalized[-3] not in "td":
            syllable_count -= 1
    elif syllable_count > 1 and normalized.endswith("es") and len(normalized) > 2:
        sibilant = normalized[-3] in "szx" or normalized[-4:-2] in ("sh", "ch", "ge", "ce")
        if not sibilant:
            syllable_count -= 1

    return max(1, syllable_count)


def _place(count: int, position: int) -> str:
    return "".join("1" if index == position else "0" for index in range(count))


def estimate_stress_with_confidence(word: str) -> StressEstimate:
    """Guess the stress pattern of ``word`` and report how it was derived."""

    count = estimate_syllable_count(word)
    if count == 1:
        return StressEstimate("1", "single_syllable", 1.0)

    normalized = _letters(word)

    for suffix, (suffix_syllables, before) in STRESS_SHIFTING_SUFFIXES.items():
        if not normalized.endswith(suffix):
            continue
        position = count - suffix_syllables - before
        if 0 <= position < count:
            return StressEstimate(_place(count, position), "stress_shifting_suffix", 0.9)

    if count == 2:
        if _FINAL_STRESS_PATTERN.search(normalized):
            return StressEstimate("01", "final_stress_ending", 0.6)
        return StressEstimate("10", "default", 0.6)

    prefix_length = 0
    for prefix in UNSTRESSED_PREFIXES:
        if normalized.startswith(prefix) and len(normalized) > len(prefix) + 2:
            prefix_length = estimate_syllable_count(prefix)
            break

    for suffix, suffix_syllables in UNSTRESSED_SUFFIXES.items():
        if not normalized.endswith(suffix):
            continue
        if suffix_syllables > 0:
            position = count - suffix_syllables - 1
            if position >= prefix_length:
                return StressEstimate(_place(count, position), "unstressed_suffix", 0.8)
        break

    antepenult = count - 3
    if antepenult >= prefix_length:
        position = antepenult
    elif prefix_length < count - 1:
        position = prefix_length
    else:
        position = count - 2
    return StressEstimate(_place(count, position), "default", 0.6)


def estimate_stress_pattern(word: str) -> str:
    """Return a ``0``/``1`` stress string, one digit per estimated syllable."""

    return estimate_stress_with_confidence(word).pattern
