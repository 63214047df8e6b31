"""Alliteration, assonance and consonance within single lines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from .dictionary import PronunciationDictionary, base_phoneme, is_consonant, is_vowel
from .models import (
    LineSoundPatterns,
    SoundPatternAnalysis,
    SoundPatternOccurrence,
    SoundPatternSummary,
)
from .rhyme import tokenize_line

COMMON_CONSONANTS = frozenset({"T", "N", "S", "R", "L", "D"})
_COMMON_CONSONANT_MIN_WORDS = 3
_COMMON_CONSONANT_WEIGHT = 0.7
_PATTERNS_PER_LINE_FOR_FULL_DENSITY = 5
_TOP_SOUNDS = 3

PHONEME_DESCRIPTIONS: Dict[str, str] = {
    "AA": "ah", "AE": "a", "AH": "uh", "AO": "aw", "AW": "ow", "AY": "i",
    "EH": "e", "ER": "er", "EY": "ay", "IH": "ih", "IY": "ee", "OW": "oh",
    "OY": "oy", "UH": "oo", "UW": "oo",
    "B": "b", "CH": "ch", "D": "d", "DH": "th (voiced)", "F": "f", "G": "g",
    "HH": "h", "JH": "j", "K": "k", "L": "l", "M": "m", "N": "n", "NG": "ng",
    "P": "p", "R": "r", "S": "s", "SH": "sh", "T": "t", "TH": "th", "V": "v",
    "W": "w", "Y": "y", "Z": "z", "ZH": "zh",
}


@dataclass(frozen=True)
class PhoneticWord:
    word: str
    position: int
    initial_consonants: List[str]
    vowels: List[str]
    consonants: List[str]


def _initial_consonants(phonemes: Sequence[str]) -> List[str]:
    initials: List[str] = []
    for phoneme in phonemes:
        if is_vowel(phoneme):
            break
        if is_consonant(phoneme):
            initials.append(phoneme)
    return initials


def _phonetic_words(line: str, dictionary: PronunciationDictionary) -> List[PhoneticWord]:
    words: List[PhoneticWord] = []
    for token in tokenize_line(line):
        phonemes = dictionary.lookup(token.word)
        if not phonemes:
            continue
        words.append(
            PhoneticWord(
                word=token.word,
                position=token.position,
                initial_consonants=_initial_consonants(phonemes),
                vowels=[base_phoneme(p) for p in phonemes if is_vowel(p)],
                consonants=[p for p in phonemes if is_consonant(p)],
            )
        )
    return words


def calculate_pattern_strength(positions: Sequence[int], line_length: int, word_count: int) -> float:
    """More words and a tighter spread make a stronger pattern."""

    if word_count < 2 or line_length == 0 or not positions:
        return 0.0
    count_score = min(1.0, 0.3 + (word_count - 2) * 0.2)
    spread = (max(positions) - min(positions)) / line_length
    return min(1.0, count_score * (1 - spread * 0.5))


def _group_by_sounds(
    words: Iterable[PhoneticWord],
    sounds_of: Callable[[PhoneticWord], Iterable[str]],
) -> Dict[str, List[PhoneticWord]]:
    groups: Dict[str, List[PhoneticWord]] = {}
    for word in words:
        # dict.fromkeys keeps first-seen order while dropping repeats
        for sound in dict.fromkeys(sounds_of(word)):
            groups.setdefault(sound, []).append(word)
    return groups


def _occurrence(
    pattern_type: str,
    sound: str,
    words: Sequence[PhoneticWord],
    line: str,
    line_number: int,
    weight: float = 1.0,
) -> SoundPatternOccurrence:
    positions = [word.position for word in words]
    return SoundPatternOccurrence(
        type=pattern_type,
        sound=sound,
        words=[word.word for word in words],
        positions=positions,
        line_number=line_number,
        strength=calculate_pattern_strength(positions, len(line), len(words)) * weight,
    )


def detect_alliteration(
    line: str, line_number: int, dictionary: PronunciationDictionary
) -> List[SoundPatternOccurrence]:
    """Words sharing their first onset consonant."""

    words = [w for w in _phonetic_words(line, dictionary) if w.initial_consonants]
    if len(words) < 2:
        return []
    groups = _group_by_sounds(words, lambda w: w.initial_consonants[:1])
    return [
        _occurrence("alliteration", sound, members, line, line_number)
        for sound, members in groups.items()
        if len(members) >= 2
    ]


def detect_assonance(
    line: str, line_number: int, dictionary: PronunciationDictionary
) -> List[SoundPatternOccurrence]:
    """Words sharing a vowel sound anywhere in the word."""

    words = [w for w in _phonetic_words(line, dictionary) if w.vowels]
    if len(words) < 2:
        return []
    groups = _group_by_sounds(words, lambda w: w.vowels)
    return [
        _occurrence("assonance", sound, members, line, line_number)
        for sound, members in groups.items()
        if len(members) >= 2
    ]


def detect_consonance(
    line: str, line_number: int, dictionary: PronunciationDictionary
) -> List[SoundPatternOccurrence]:
    """Words sharing a consonant sound.

    The most frequent English consonants need three words and are weighted
    down, otherwise nearly every line would report them.
    """

    words = [w for w in _phonetic_words(line, dictionary) if w.consonants]
    if len(words) < 2:
        return []
    occurrences: List[SoundPatternOccurrence] = []
    for sound, members in _group_by_sounds(words, lambda w: w.consonants).items():
        common = sound in COMMON_CONSONANTS
        if len(members) < (_COMMON_CONSONANT_MIN_WORDS if common else 2):
            continue
        weight = _COMMON_CONSONANT_WEIGHT if common else 1.0
        occurrences.append(_occurrence("consonance", sound, members, line, line_number, weight))
    return occurrences


def analyze_line_sound_patterns(
    line: str, line_number: int, dictionary: PronunciationDictionary
) -> LineSoundPatterns:
    return LineSoundPatterns(
        line_number=line_number,
        text=line,
        alliterations=detect_alliteration(line, line_number, dictionary),
        assonances=detect_assonance(line, line_number, dictionary),
        consonances=detect_consonance(line, line_number, dictionary),
    )


def _top_sounds(counts: Dict[str, int], limit: int = _TOP_SOUNDS) -> List[str]:
    ranked = sorted(counts.items(), key=lambda item: -item[1])
    return [sound for sound, _ in ranked[:limit]]


def analyze_sound_patterns(lines: Sequence[str], dictionary: PronunciationDictionary) -> SoundPatternAnalysis:
    if not lines:
        return SoundPatternAnalysis()

    analyzed: List[LineSoundPatterns] = []
    alliteration_sounds: Dict[str, int] = {}
    assonance_sounds: Dict[str, int] = {}
    for index, line in enumerate(lines):
        patterns = analyze_line_sound_patterns(line, index, dictionary)
        analyzed.append(patterns)
        for pattern in patterns.alliterations:
            alliteration_sounds[pattern.sound] = alliteration_sounds.get(pattern.sound, 0) + 1
        for pattern in patterns.assonances:
            assonance_sounds[pattern.sound] = assonance_sounds.get(pattern.sound, 0) + 1

    alliteration_count = sum(len(p.alliterations) for p in analyzed)
    assonance_count = sum(len(p.assonances) for p in analyzed)
    consonance_count = sum(len(p.consonances) for p in analyzed)
    total = alliteration_count + assonance_count + consonance_count

    return SoundPatternAnalysis(
        lines=analyzed,
        summary=SoundPatternSummary(
            alliteration_count=alliteration_count,
            assonance_count=assonance_count,
            consonance_count=consonance_count,
            density=min(1.0, total / (len(lines) * _PATTERNS_PER_LINE_FOR_FULL_DENSITY)),
            prominent_alliterations=_top_sounds(alliteration_sounds),
            prominent_assonances=_top_sounds(assonance_sounds),
        ),
    )


def calculate_singability_impact(patterns: LineSoundPatterns) -> float:
    """Score adjustment in [-0.2, 0.2] that a line's sound patterns earn."""

    impact = 0.0
    alliterations = len(patterns.alliterations)
    if alliterations in (1, 2):
        impact += 0.05 * alliterations
    elif alliterations > 3:
        impact -= 0.02 * (alliterations - 3)

    assonances = len(patterns.assonances)
    if 1 <= assonances <= 3:
        impact += 0.04 * assonances

    impact += 0.02 * sum(1 for p in patterns.alliterations if p.strength > 0.7)
    impact += 0.03 * sum(1 for p in patterns.assonances if p.strength > 0.7)

    if 1 <= len(patterns.consonances) <= 2:
        impact += 0.02

    return max(-0.2, min(0.2, impact))


def describe_sound_pattern(pattern: SoundPatternOccurrence) -> str:
    sound = PHONEME_DESCRIPTIONS.get(pattern.sound, pattern.sound)
    words = ", ".join(pattern.words[:3])
    if len(pattern.words) > 3:
        words += f" (+{len(pattern.words) - 3} more)"
    if pattern.type == "alliteration":
        return f'Alliteration on "{sound}" sound: {words}'
    if pattern.type == "assonance":
        return f'Assonance with "{sound}" vowel: {words}'
    if pattern.type == "consonance":
        return f'Consonance on "{sound}" sound: {words}'
    return f"Sound pattern: {words}"


def get_all_patterns(patterns: LineSoundPatterns) -> List[SoundPatternOccurrence]:
    return [*patterns.alliterations, *patterns.assonances, *patterns.consonances]


def has_sound_patterns(patterns: LineSoundPatterns) -> bool:
    return bool(get_all_patterns(patterns))


def filter_by_strength(
    patterns: Iterable[SoundPatternOccurrence], min_strength: float
) -> List[SoundPatternOccurrence]:
    return [pattern for pattern in patterns if pattern.strength >= min_strength]


def get_strongest_pattern(patterns: LineSoundPatterns) -> Optional[SoundPatternOccurrence]:
    candidates = get_all_patterns(patterns)
    if not candidates:
        return None
    best = candidates[0]
    for candidate in candidates[1:]:
        if candidate.strength > best.strength:
            best = candidate
    return best


__all__ = [
    "COMMON_CONSONANTS",
    "PHONEME_DESCRIPTIONS",
    "PhoneticWord",
    "analyze_line_sound_patterns",
    "analyze_sound_patterns",
    "calculate_pattern_strength",
    "calculate_singability_impact",
    "describe_sound_pattern",
    "detect_alliteration",
    "detect_assonance",
    "detect_consonance",
    "filter_by_strength",
    "get_all_patterns",
    "get_strongest_pattern",
    "has_sound_patterns",
]
