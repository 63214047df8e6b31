"""Turn words into syllables, from the dictionary or by estimation."""

from __future__ import annotations

from typing import List, Optional, Sequence

from ghost_note.utils.syllables import estimate_stress_pattern

from .dictionary import PronunciationDictionary, base_phoneme, is_vowel, stress_digit
from .models import Syllable, SyllabifiedWord


def build_syllables(phonemes: Sequence[str]) -> List[Syllable]:
    """Group an ARPABET sequence into syllables.

    Every vowel opens a new syllable. Consonants before the first vowel form
    its onset; consonants after a vowel stay in that syllable until the next
    vowel. A syllable is open when nothing follows its vowel.
    """

    syllables: List[Syllable] = []
    onset: List[str] = []
    current: Optional[List[str]] = None
    vowel = ""
    stress = 0

    def _close() -> None:
        if current is None:
            return
        syllables.append(
            Syllable(
                phonemes=list(current),
                stress=stress,
                vowel_phoneme=vowel,
                is_open=not current or is_vowel(current[-1]),
            )
        )

    for phoneme in phonemes:
        if is_vowel(phoneme):
            _close()
            current = onset + [phoneme]
            onset = []
            vowel = base_phoneme(phoneme)
            stress = stress_digit(phoneme) or 0
        elif current is None:
            onset.append(phoneme)
        else:
            current.append(phoneme)
    _close()
    return syllables


def estimate_syllables(word: str) -> List[Syllable]:
    """Placeholder syllables for a word the dictionary does not know."""

    pattern = estimate_stress_pattern(word)
    last = len(pattern) - 1
    return [
        Syllable(
            phonemes=[],
            stress=int(digit),
            vowel_phoneme="",
            is_open=index == last,
            estimated=True,
        )
        for index, digit in enumerate(pattern)
    ]


def resolve_word(word: str, dictionary: PronunciationDictionary) -> SyllabifiedWord:
    """Syllabify ``word``; dictionary misses fall back to estimation."""

    phonemes = dictionary.lookup(word)
    if phonemes:
        syllables = build_syllables(phonemes)
        if syllables:
            return SyllabifiedWord(text=word, syllables=syllables, in_dictionary=True)
    return SyllabifiedWord(text=word, syllables=estimate_syllables(word), in_dictionary=False)


def word_stress_pattern(word: str, dictionary: PronunciationDictionary) -> str:
    return resolve_word(word, dictionary).stress_pattern


def line_stress_pattern(words: Sequence[str], dictionary: PronunciationDictionary) -> str:
    return "".join(word_stress_pattern(word, dictionary) for word in words)


__all__ = [
    "build_syllables",
    "estimate_syllables",
    "line_stress_pattern",
    "resolve_word",
    "word_stress_pattern",
]
