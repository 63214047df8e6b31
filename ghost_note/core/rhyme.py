"""Rhyme classification, rhyme schemes and internal rhymes."""

from __future__ import annotations

import re
import string
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .dictionary import PronunciationDictionary, base_phoneme, is_consonant, is_vowel, stress_digit
from .models import InternalRhyme, RhymeAnalysis, RhymeGroup

RHYME_HIERARCHY: Tuple[str, ...] = ("perfect", "slant", "assonance", "consonance", "none")

RHYME_QUALITY: Dict[str, float] = {
    "perfect": 1.0,
    "slant": 0.75,
    "assonance": 0.5,
    "consonance": 0.5,
    "none": 0.0,
}

_SCHEME_FORMS: Dict[str, str] = {
    "AA": "couplet",
    "AABB": "couplets",
    "AABBCC": "couplets",
    "AABBCCDD": "couplets",
    "ABAB": "alternate",
    "ABCABC": "alternate",
    "ABBA": "enclosed",
    "ABBAABBA": "enclosed (octave)",
    "ABABCDCD": "alternate",
    "ABABCDCDEFEFGG": "Shakespearean sonnet",
    "ABBAABBACDECDE": "Petrarchan sonnet",
    "ABBAABBACDCDCD": "Petrarchan sonnet",
    "AAB": "triplet with tail",
    "ABA": "interlocking",
    "ABAAB": "limerick",
}

_TRAILING_PUNCTUATION = re.compile(r"[.,!?;:'\"()\[\]{}—–-]+$")
_NON_WORD_CHARS = re.compile(r"[^a-zA-Z']")
_TOKEN_PATTERN = re.compile(r"[a-zA-Z']+")

_SCHEME_LETTERS = string.ascii_uppercase + string.ascii_lowercase


@dataclass(frozen=True)
class LineToken:
    word: str
    position: int


def scheme_label(index: int) -> str:
    """Letter for the ``index``-th distinct rhyme sound: A..Z, a..z, then beyond."""

    if index < len(_SCHEME_LETTERS):
        return _SCHEME_LETTERS[index]
    return chr(0x100 + index - len(_SCHEME_LETTERS))


def get_rhyming_part(phonemes: Sequence[str]) -> List[str]:
    """Phonemes from the last primary-stressed vowel to the end.

    Falls back to the last secondary-stressed vowel, then the last vowel.
    """

    if not phonemes:
        return []
    for wanted in (1, 2):
        for index in range(len(phonemes) - 1, -1, -1):
            if stress_digit(phonemes[index]) == wanted:
                return list(phonemes[index:])
    for index in range(len(phonemes) - 1, -1, -1):
        if is_vowel(phonemes[index]):
            return list(phonemes[index:])
    return []


def normalize_phonemes(phonemes: Sequence[str]) -> List[str]:
    return [base_phoneme(phoneme) for phoneme in phonemes]


def extract_vowel_bases(phonemes: Sequence[str]) -> List[str]:
    return [base_phoneme(phoneme) for phoneme in phonemes if is_vowel(phoneme)]


def extract_consonant_sequence(phonemes: Sequence[str]) -> List[str]:
    return [phoneme for phoneme in phonemes if is_consonant(phoneme)]


def calculate_phonetic_similarity(first: Sequence[str], second: Sequence[str]) -> float:
    """Position-wise similarity with partial credit for same-class phonemes."""

    if not first or not second:
        return 0.0
    left = normalize_phonemes(first)
    right = normalize_phonemes(second)
    longest = max(len(left), len(right))
    shortest = min(len(left), len(right))

    score = 0.0
    for a, b in zip(left, right):
        if a == b:
            score += 1.0
        elif (is_vowel(a) and is_vowel(b)) or (is_consonant(a) and is_consonant(b)):
            score += 0.3
    score = max(0.0, score - (longest - shortest) * 0.5)
    return score / longest


def _differs_in_one_position(left: Sequence[str], right: Sequence[str]) -> bool:
    if len(left) != len(right) or len(left) < 2:
        return False
    return sum(1 for a, b in zip(left, right) if a != b) == 1


def classify_tails(first: Sequence[str], second: Sequence[str]) -> str:
    """Compare two rhyming tails (see :func:`get_rhyming_part`)."""

    if not first or not second:
        return "none"

    left = normalize_phonemes(first)
    right = normalize_phonemes(second)
    if left == right:
        return "perfect"

    similarity = calculate_phonetic_similarity(first, second)
    if _differs_in_one_position(left, right) or similarity >= 0.6:
        return "slant"

    vowels_a, vowels_b = extract_vowel_bases(first), extract_vowel_bases(second)
    cons_a, cons_b = extract_consonant_sequence(first), extract_consonant_sequence(second)
    if vowels_a and vowels_a == vowels_b and cons_a != cons_b:
        return "assonance"
    if cons_a and cons_a == cons_b and vowels_a != vowels_b:
        return "consonance"

    if set(vowels_a) & set(vowels_b) and similarity >= 0.4:
        return "slant"
    return "none"


def classify_rhyme(word1: str, word2: str, dictionary: PronunciationDictionary) -> str:
    """Rhyme type of two words; ``none`` when either is not in the dictionary."""

    phonemes1 = dictionary.lookup(word1) if word1 else None
    phonemes2 = dictionary.lookup(word2) if word2 else None
    if not phonemes1 or not phonemes2:
        return "none"
    return classify_tails(get_rhyming_part(phonemes1), get_rhyming_part(phonemes2))


def is_perfect_rhyme(word1: str, word2: str, dictionary: PronunciationDictionary) -> bool:
    return classify_rhyme(word1, word2, dictionary) == "perfect"


def does_rhyme(word1: str, word2: str, dictionary: PronunciationDictionary) -> bool:
    return classify_rhyme(word1, word2, dictionary) != "none"


def rhyme_quality_score(word1: str, word2: str, dictionary: PronunciationDictionary) -> float:
    return RHYME_QUALITY[classify_rhyme(word1, word2, dictionary)]


def get_last_word(line: str) -> str:
    if not line or not line.strip():
        return ""
    words = _TRAILING_PUNCTUATION.sub("", line).split()
    if not words:
        return ""
    return _NON_WORD_CHARS.sub("", words[-1]).lower()


def tokenize_line(line: str) -> List[LineToken]:
    if not line:
        return []
    return [LineToken(match.group(0).lower(), match.start()) for match in _TOKEN_PATTERN.finditer(line)]


def find_rhyming_words(
    target: str,
    candidates: Sequence[str],
    dictionary: PronunciationDictionary,
    min_type: str = "slant",
) -> List[Tuple[str, str]]:
    """``(word, rhyme type)`` pairs at least as close as ``min_type``, best first."""

    limit = RHYME_HIERARCHY.index(min_type)
    results: List[Tuple[str, str]] = []
    for word in candidates:
        if word.lower() == target.lower():
            continue
        rhyme_type = classify_rhyme(target, word, dictionary)
        if rhyme_type != "none" and RHYME_HIERARCHY.index(rhyme_type) <= limit:
            results.append((word, rhyme_type))
    results.sort(key=lambda item: RHYME_HIERARCHY.index(item[1]))
    return results


def detect_rhyme_scheme(lines: Sequence[str], dictionary: PronunciationDictionary) -> str:
    """One letter per line, assigned in order of first appearance.

    A line joins the first earlier group containing any word it rhymes with;
    a line without an end word always gets a fresh letter.
    """

    groups: List[Tuple[str, List[str]]] = []
    labels: List[str] = []
    next_index = 0

    for line in lines:
        word = get_last_word(line)
        if word:
            for label, members in groups:
                if any(does_rhyme(word, member, dictionary) for member in members):
                    members.append(word)
                    labels.append(label)
                    break
            else:
                word_label = scheme_label(next_index)
                next_index += 1
                groups.append((word_label, [word]))
                labels.append(word_label)
            continue

        labels.append(scheme_label(next_index))
        next_index += 1

    return "".join(labels)


def _stressed_tail_vowel(word: str, dictionary: PronunciationDictionary) -> Optional[str]:
    phonemes = dictionary.lookup(word)
    if not phonemes or not any(stress_digit(p) in (1, 2) for p in phonemes):
        return None
    vowels = extract_vowel_bases(get_rhyming_part(phonemes))
    return vowels[0] if vowels else None


def find_internal_rhymes(
    line: str,
    dictionary: PronunciationDictionary,
    line_number: int = 0,
) -> List[InternalRhyme]:
    """Pairs of different stressed words in ``line`` whose rhyming vowels match."""

    tokens = tokenize_line(line)
    if len(tokens) < 2:
        return []

    vowels = [_stressed_tail_vowel(token.word, dictionary) for token in tokens]
    found: List[InternalRhyme] = []
    for i, first in enumerate(tokens):
        if vowels[i] is None:
            continue
        for j in range(i + 1, len(tokens)):
            second = tokens[j]
            if second.word == first.word or vowels[j] != vowels[i]:
                continue
            found.append(
                InternalRhyme(
                    line=line_number,
                    positions=[first.position, second.position],
                    words=[first.word, second.word],
                )
            )
    return found


def analyze_rhymes(lines: Sequence[str], dictionary: PronunciationDictionary) -> RhymeAnalysis:
    if not lines:
        return RhymeAnalysis()

    scheme = detect_rhyme_scheme(lines, dictionary)
    end_words = [get_last_word(line) for line in lines]

    members: Dict[str, List[int]] = {}
    for index, letter in enumerate(scheme):
        members.setdefault(letter, []).append(index)

    groups: Dict[str, RhymeGroup] = {}
    for letter, indices in members.items():
        words = [end_words[index] for index in indices]
        rhyme_type = "perfect"
        if len(indices) >= 2:
            rhyme_type = classify_rhyme(words[0], words[1], dictionary)
            if rhyme_type == "none":
                rhyme_type = "slant"
        groups[letter] = RhymeGroup(lines=indices, rhyme_type=rhyme_type, end_words=words)

    internal: List[InternalRhyme] = []
    for index, line in enumerate(lines):
        internal.extend(find_internal_rhymes(line, dictionary, index))

    return RhymeAnalysis(scheme=scheme, rhyme_groups=groups, internal_rhymes=internal)


def calculate_rhyme_density(line: str, dictionary: PronunciationDictionary) -> float:
    """Share of word pairs in ``line`` that rhyme in any way."""

    tokens = tokenize_line(line)
    if len(tokens) < 2:
        return 0.0
    pairs = rhyming = 0
    for i in range(len(tokens)):
        for j in range(i + 1, len(tokens)):
            pairs += 1
            if tokens[i].word != tokens[j].word and does_rhyme(tokens[i].word, tokens[j].word, dictionary):
                rhyming += 1
    return rhyming / pairs


def identify_rhyme_form(scheme: str) -> str:
    """Describe a rhyme scheme in words."""

    if not scheme:
        return "none"
    if scheme in _SCHEME_FORMS:
        return _SCHEME_FORMS[scheme]

    if len(scheme) % 2 == 0 and all(scheme[i] == scheme[i + 1] for i in range(0, len(scheme), 2)):
        return "couplets"
    if len(scheme) >= 4 and scheme[: len(scheme) // 2] == scheme[len(scheme) // 2 :]:
        return "repeating pattern"
    if len(scheme) >= 9 and len(scheme) % 3 == 0:
        if all(scheme[i - 2] == scheme[i] for i in range(3, len(scheme), 3)):
            return "terza rima"

    ratio = len(set(scheme)) / len(scheme)
    if ratio > 0.9:
        return "free verse (minimal rhyme)"
    if ratio > 0.7:
        return "loose rhyme"
    if ratio > 0.5:
        return "moderate rhyme"
    return "dense rhyme"


__all__ = [
    "RHYME_HIERARCHY",
    "RHYME_QUALITY",
    "LineToken",
    "analyze_rhymes",
    "calculate_phonetic_similarity",
    "calculate_rhyme_density",
    "classify_rhyme",
    "classify_tails",
    "detect_rhyme_scheme",
    "does_rhyme",
    "extract_consonant_sequence",
    "extract_vowel_bases",
    "find_internal_rhymes",
    "find_rhyming_words",
    "get_last_word",
    "get_rhyming_part",
    "identify_rhyme_form",
    "is_perfect_rhyme",
    "normalize_phonemes",
    "rhyme_quality_score",
    "scheme_label",
    "tokenize_line",
]
