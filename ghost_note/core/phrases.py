"""Phrase boundaries and breath points for melody phrasing.

A line is cut into phrases wherever a singer could plausibly pause: after
punctuation, before conjunctions, before prepositional phrases and relative
clauses, and inside runs that are too long to sing on one breath. Each
boundary carries a strength and a breathability score in ``[0, 1]``.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from ghost_note.utils.syllables import estimate_syllable_count

from .models import BreathPoint, LinePhrasing, PoemPhrasing, Phrase, PhraseBoundary, PreprocessedPoem
from .preprocess import extract_punctuation, tokenize_words

BOUNDARY_PUNCTUATION: Dict[str, str] = {
    ".": "strong",
    "!": "strong",
    "?": "strong",
    ";": "strong",
    "…": "strong",
    ":": "medium",
    "—": "medium",
    "–": "medium",
    ",": "weak",
    "-": "weak",
}

STRENGTH_ORDER: Dict[str, int] = {"weak": 0, "medium": 1, "strong": 2}
PUNCTUATION_BREATHABILITY: Dict[str, float] = {"strong": 1.0, "medium": 0.7, "weak": 0.4}

COORDINATING_CONJUNCTIONS = frozenset({"and", "but", "or", "nor", "for", "yet", "so"})
SUBORDINATING_CONJUNCTIONS = frozenset(
    {
        "although", "because", "before", "after", "while", "when", "where", "if",
        "unless", "until", "though", "since", "as", "whereas", "whenever",
        "wherever", "whether", "once",
    }
)
PREPOSITIONS = frozenset(
    {
        "in", "on", "at", "by", "to", "for", "with", "from", "of", "into", "onto",
        "upon", "within", "without", "through", "throughout", "across", "along",
        "among", "between", "beside", "besides", "before", "after", "above",
        "below", "beneath", "under", "over", "during", "toward", "towards",
        "against", "about",
    }
)
RELATIVE_PRONOUNS = frozenset({"who", "whom", "whose", "which", "that", "where", "when"})
DETERMINERS = frozenset({"a", "an", "the", "my", "your", "his", "her", "its", "our", "their"})

TARGET_PHRASE_SYLLABLES = 8
MAX_PHRASE_SYLLABLES = 12
MIN_PHRASE_SYLLABLES = 3
MIN_BREATHABILITY = 0.3
MIN_LINES_BETWEEN_BREAKS = 2

_TERMINAL_PUNCTUATION = re.compile(r"[.!?;:]$")
_LETTERS = re.compile(r"[A-Za-z]")

Span = Tuple[int, int]


def phrase_syllables(word: str) -> int:
    """Heuristic syllable count; words without letters count as zero."""

    if not word or not _LETTERS.search(word):
        return 0
    return estimate_syllable_count(word)


def _total_syllables(words: Sequence[str]) -> int:
    return sum(phrase_syllables(word) for word in words)


def _word_spans(line: str, words: Sequence[str]) -> List[Span]:
    # Words are located left to right; a word that cannot be found keeps the cursor.
    lowered = line.lower()
    spans: List[Span] = []
    cursor = 0
    for word in words:
        start = lowered.find(word.lower(), cursor)
        if start < 0:
            spans.append((cursor, cursor))
            continue
        end = start + len(word)
        spans.append((start, end))
        cursor = end
    return spans


def _is_inner_hyphen(line: str, position: int) -> bool:
    before = line[position - 1] if position > 0 else ""
    after = line[position + 1] if position + 1 < len(line) else ""
    return before.isalnum() and after.isalnum()


def _punctuation_boundaries(line: str, spans: Sequence[Span]) -> List[PhraseBoundary]:
    boundaries: List[PhraseBoundary] = []
    for mark in extract_punctuation(line):
        strength = BOUNDARY_PUNCTUATION.get(mark.char)
        if strength is None:
            continue
        if mark.char == "-" and _is_inner_hyphen(line, mark.position):
            continue
        for index, (start, end) in enumerate(spans):
            if start <= mark.position <= end + 1:
                boundaries.append(
                    PhraseBoundary(
                        position=index,
                        char_position=mark.position,
                        type="punctuation",
                        strength=strength,
                        trigger=mark.char,
                        breathability=PUNCTUATION_BREATHABILITY[strength],
                    )
                )
                break
    return boundaries


def _conjunction_boundaries(words: Sequence[str], spans: Sequence[Span]) -> List[PhraseBoundary]:
    boundaries: List[PhraseBoundary] = []
    for index in range(1, len(words)):
        word = words[index].lower()
        for vocabulary, breathability in (
            (COORDINATING_CONJUNCTIONS, 0.6),
            (SUBORDINATING_CONJUNCTIONS, 0.65),
        ):
            if word in vocabulary:
                boundaries.append(
                    PhraseBoundary(
                        position=index - 1,
                        char_position=spans[index][0] - 1,
                        type="conjunction",
                        strength="medium",
                        trigger=words[index],
                        breathability=breathability,
                    )
                )
    return boundaries


def _semantic_boundaries(words: Sequence[str], spans: Sequence[Span]) -> List[PhraseBoundary]:
    boundaries: List[PhraseBoundary] = []
    for index in range(1, len(words)):
        word = words[index].lower()
        if (
            word in PREPOSITIONS
            and index > 1
            and _total_syllables(words[:index]) >= MIN_PHRASE_SYLLABLES
        ):
            boundaries.append(
                PhraseBoundary(
                    position=index - 1,
                    char_position=spans[index][0] - 1,
                    type="semantic",
                    strength="weak",
                    trigger=words[index],
                    breathability=0.35,
                )
            )
        if word in RELATIVE_PRONOUNS:
            boundaries.append(
                PhraseBoundary(
                    position=index - 1,
                    char_position=spans[index][0] - 1,
                    type="semantic",
                    strength="weak",
                    trigger=words[index],
                    breathability=0.4,
                )
            )
    return boundaries


def _length_split_boundaries(
    words: Sequence[str],
    spans: Sequence[Span],
    existing: Sequence[PhraseBoundary],
) -> List[PhraseBoundary]:
    taken = {boundary.position for boundary in existing}
    edges = [-1, *sorted(taken), len(words) - 1]
    splits: List[PhraseBoundary] = []

    for left, right in zip(edges, edges[1:]):
        start, end = left + 1, right
        if _total_syllables(words[start : end + 1]) <= MAX_PHRASE_SYLLABLES:
            continue
        running = 0
        for index in range(start, end):
            running += phrase_syllables(words[index])
            # keep at least two words after the split
            if running >= TARGET_PHRASE_SYLLABLES and index not in taken and end - index >= 2:
                splits.append(
                    PhraseBoundary(
                        position=index,
                        char_position=spans[index][1],
                        type="length_split",
                        strength="weak",
                        trigger=f"[length>{TARGET_PHRASE_SYLLABLES}]",
                        breathability=MIN_BREATHABILITY,
                    )
                )
                taken.add(index)
                running = 0
    return splits


def _strongest_per_position(boundaries: Sequence[PhraseBoundary]) -> List[PhraseBoundary]:
    chosen: Dict[int, PhraseBoundary] = {}
    for boundary in boundaries:
        current = chosen.get(boundary.position)
        if current is None or STRENGTH_ORDER[boundary.strength] > STRENGTH_ORDER[current.strength]:
            chosen[boundary.position] = boundary
    return list(chosen.values())


def _extract_phrases(words: Sequence[str], boundaries: Sequence[PhraseBoundary]) -> List[Phrase]:
    phrases: List[Phrase] = []
    start = 0
    for boundary in boundaries:
        end = boundary.position
        if end < start:
            continue
        chunk = list(words[start : end + 1])
        phrases.append(
            Phrase(
                text=" ".join(chunk),
                words=chunk,
                start_word_index=start,
                end_word_index=end,
                syllable_count=_total_syllables(chunk),
                ends_at_line_break=boundary.type == "line_break",
            )
        )
        start = end + 1
    return phrases


def detect_enjambment(line: Optional[str], next_line: Optional[str] = None) -> bool:
    """True when the sense of ``line`` runs on into ``next_line``."""

    if not line or not next_line:
        return False
    if _TERMINAL_PUNCTUATION.search(line.strip()):
        return False
    stripped_next = next_line.strip()
    if stripped_next and stripped_next[0].islower():
        return True
    words = tokenize_words(line)
    if not words:
        return False
    last = words[-1].lower()
    return last in PREPOSITIONS or last in COORDINATING_CONJUNCTIONS or last in DETERMINERS


def analyze_line_phrases(line: Optional[str], line_index: int, next_line: Optional[str] = None) -> LinePhrasing:
    text = line or ""
    words = tokenize_words(text)
    if not words:
        return LinePhrasing(text=text, line_index=line_index)

    spans = _word_spans(text, words)
    boundaries = _strongest_per_position(
        _punctuation_boundaries(text, spans)
        + _conjunction_boundaries(words, spans)
        + _semantic_boundaries(words, spans)
    )
    boundaries.extend(_length_split_boundaries(words, spans, boundaries))
    boundaries.sort(key=lambda boundary: boundary.position)

    last_index = len(words) - 1
    if not any(boundary.position == last_index for boundary in boundaries):
        boundaries.append(
            PhraseBoundary(
                position=last_index,
                char_position=len(text),
                type="line_break",
                strength="strong",
                trigger="[line end]",
                breathability=0.9,
            )
        )

    return LinePhrasing(
        text=text,
        line_index=line_index,
        boundaries=boundaries,
        phrases=_extract_phrases(words, boundaries),
        combine_with_next=detect_enjambment(text, next_line),
    )


def analyze_poem_phrases(poem: PreprocessedPoem) -> PoemPhrasing:
    """Phrase every line, then derive major breaks and breath points.

    A line is a major break when it holds at least one phrase and does not
    run on into the next line.
    """

    lines = [line for stanza in poem.stanzas for line in stanza]
    analyses = [
        analyze_line_phrases(line, index, lines[index + 1] if index + 1 < len(lines) else None)
        for index, line in enumerate(lines)
    ]

    phrases = [phrase for analysis in analyses for phrase in analysis.phrases]
    average = sum(phrase.syllable_count for phrase in phrases) / len(phrases) if phrases else 0.0

    return PoemPhrasing(
        lines=analyses,
        major_break_lines=[
            analysis.line_index
            for analysis in analyses
            if analysis.phrases and not analysis.combine_with_next
        ],
        average_phrase_length=average,
        breath_points=[
            BreathPoint(line_index=analysis.line_index, word_index=boundary.position, strength=boundary.strength)
            for analysis in analyses
            for boundary in analysis.boundaries
            if boundary.breathability >= MIN_BREATHABILITY
        ],
    )


def get_best_breath_points(analysis: LinePhrasing, max_points: int = 3) -> List[PhraseBoundary]:
    ranked = sorted(analysis.boundaries, key=lambda boundary: boundary.breathability, reverse=True)
    return ranked[:max_points]


def combine_short_phrases(phrases: Sequence[Phrase]) -> List[Phrase]:
    """Merge a short phrase forward while the merged phrase stays singable."""

    if len(phrases) <= 1:
        return list(phrases)

    combined: List[Phrase] = []
    pending: Optional[Phrase] = None
    for phrase in phrases:
        if pending is None:
            if phrase.syllable_count < MIN_PHRASE_SYLLABLES and not phrase.ends_at_line_break:
                pending = phrase
            else:
                combined.append(phrase)
            continue
        if pending.syllable_count + phrase.syllable_count <= TARGET_PHRASE_SYLLABLES:
            pending = Phrase(
                text=f"{pending.text} {phrase.text}",
                words=[*pending.words, *phrase.words],
                start_word_index=pending.start_word_index,
                end_word_index=phrase.end_word_index,
                syllable_count=pending.syllable_count + phrase.syllable_count,
                ends_at_line_break=phrase.ends_at_line_break,
            )
        else:
            combined.append(pending)
            pending = phrase

    if pending is not None:
        combined.append(pending)
    return combined


def get_phrase_boundary_positions(text: str) -> List[int]:
    return [boundary.position for boundary in analyze_line_phrases(text, 0).boundaries]


def is_natural_boundary(text: str, word_index: int) -> bool:
    if not 0 <= word_index < len(tokenize_words(text)):
        return False
    return word_index in get_phrase_boundary_positions(text)


def get_breathability_at_position(analysis: LinePhrasing, word_index: int) -> float:
    for boundary in analysis.boundaries:
        if boundary.position == word_index:
            return boundary.breathability
    return 0.0


def suggest_melody_phrase_breaks(phrasing: PoemPhrasing) -> List[int]:
    """Major break lines, thinned so breaks are at least two lines apart."""

    breaks: List[int] = []
    last_break = -MIN_LINES_BETWEEN_BREAKS - 1
    for line_index in phrasing.major_break_lines:
        if line_index - last_break >= MIN_LINES_BETWEEN_BREAKS:
            breaks.append(line_index)
            last_break = line_index
    return breaks


__all__ = [
    "BOUNDARY_PUNCTUATION",
    "COORDINATING_CONJUNCTIONS",
    "MAX_PHRASE_SYLLABLES",
    "MIN_PHRASE_SYLLABLES",
    "PREPOSITIONS",
    "RELATIVE_PRONOUNS",
    "SUBORDINATING_CONJUNCTIONS",
    "TARGET_PHRASE_SYLLABLES",
    "analyze_line_phrases",
    "analyze_poem_phrases",
    "combine_short_phrases",
    "detect_enjambment",
    "get_best_breath_points",
    "get_breathability_at_position",
    "get_phrase_boundary_positions",
    "is_natural_boundary",
    "phrase_syllables",
    "suggest_melody_phrase_breaks",
]
