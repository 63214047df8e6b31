"""Song structure: stanza similarity, refrains and verse/chorus/bridge labels."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .dictionary import PronunciationDictionary, default_dictionary
from .meter import string_similarity
from .models import AnalyzedStanza, Refrain, Section, StanzaSimilarity, StructureAnalysis
from .phonetics import line_stress_pattern
from .preprocess import tokenize_words
from .stress import classify_foot

CHORUS_SIMILARITY_THRESHOLD = 0.85
VERSE_SIMILARITY_THRESHOLD = 0.6
REFRAIN_SIMILARITY_THRESHOLD = 0.95
MIN_REFRAIN_OCCURRENCES = 2

_BRIDGE_MAX_SIMILARITY = 0.4
_BRIDGE_POSITION = (0.4, 0.8)
_REFRAIN_CHORUS_RATIO = 0.5
_MIN_REFRAIN_LENGTH = 3

_COMPARISON_PUNCTUATION = re.compile(r"[.,!?;:'\"—–\-()\[\]{}…]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class _Group:
    indices: List[int] = field(default_factory=list)
    similarity: float = 0.0


def normalize_text_for_comparison(text: str) -> str:
    text = _COMPARISON_PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def calculate_line_similarity(line1: str, line2: str) -> float:
    """0.6 edit similarity plus 0.4 word-set Jaccard, on normalised text."""

    first = normalize_text_for_comparison(line1)
    second = normalize_text_for_comparison(line2)
    if not first or not second:
        return 0.0
    if first == second:
        return 1.0

    words1 = {word.lower() for word in tokenize_words(first)}
    words2 = {word.lower() for word in tokenize_words(second)}
    union = words1 | words2
    jaccard = len(words1 & words2) / len(union) if union else 0.0
    return string_similarity(first, second) * 0.6 + jaccard * 0.4


def calculate_stanza_text_similarity(stanza1: Sequence[str], stanza2: Sequence[str]) -> float:
    if not stanza1 or not stanza2:
        return 0.0
    shorter = min(len(stanza1), len(stanza2))
    ratio = shorter / max(len(stanza1), len(stanza2))
    average = sum(calculate_line_similarity(a, b) for a, b in zip(stanza1, stanza2)) / shorter
    return average * (0.7 + 0.3 * ratio)


def get_stanza_foot_type(stress_patterns: Sequence[str]) -> str:
    """Most common known foot across the stanza's lines."""

    counts: Dict[str, int] = {}
    for pattern in stress_patterns:
        foot = classify_foot(pattern)
        if foot != "unknown":
            counts[foot] = counts.get(foot, 0) + 1
    if not counts:
        return "unknown"
    return max(counts, key=counts.__getitem__)


def calculate_meter_similarity(patterns1: Sequence[str], patterns2: Sequence[str]) -> float:
    """Mean aligned stress-pattern similarity, plus 0.1 when the feet agree."""

    if not patterns1 or not patterns2:
        return 0.0
    shorter = min(len(patterns1), len(patterns2))
    average = sum(string_similarity(a, b) for a, b in zip(patterns1, patterns2)) / shorter
    foot = get_stanza_foot_type(patterns1)
    bonus = 0.1 if foot != "unknown" and foot == get_stanza_foot_type(patterns2) else 0.0
    return min(1.0, average + bonus)


def compare_stanzas(
    stanza1: Sequence[str],
    stanza2: Sequence[str],
    index1: int,
    index2: int,
    patterns1: Sequence[str],
    patterns2: Sequence[str],
) -> StanzaSimilarity:
    text_similarity = calculate_stanza_text_similarity(stanza1, stanza2)
    meter_similarity = calculate_meter_similarity(patterns1, patterns2)
    foot = get_stanza_foot_type(patterns1)
    return StanzaSimilarity(
        stanza1=index1,
        stanza2=index2,
        overall_similarity=text_similarity * 0.7 + meter_similarity * 0.3,
        text_similarity=text_similarity,
        meter_similarity=meter_similarity,
        line_count_match=len(stanza1) == len(stanza2),
        foot_type_match=foot != "unknown" and foot == get_stanza_foot_type(patterns2),
    )


def build_similarity_matrix(
    stanzas: Sequence[Sequence[str]], stress_patterns: Sequence[Sequence[str]]
) -> List[StanzaSimilarity]:
    """Every unordered stanza pair, ``(0, 1), (0, 2), ..., (1, 2), ...``."""

    return [
        compare_stanzas(stanzas[i], stanzas[j], i, j, stress_patterns[i], stress_patterns[j])
        for i in range(len(stanzas))
        for j in range(i + 1, len(stanzas))
    ]


def detect_refrains(stanzas: Sequence[Sequence[str]]) -> List[Refrain]:
    """Lines repeated, exactly or nearly, in at least two stanzas."""

    exact: Dict[str, Tuple[str, List[Tuple[int, int]]]] = {}
    for stanza_index, stanza in enumerate(stanzas):
        for line_index, line in enumerate(stanza):
            normalized = normalize_text_for_comparison(line)
            if len(normalized) < _MIN_REFRAIN_LENGTH:
                continue
            exact.setdefault(normalized, (line, []))[1].append((stanza_index, line_index))

    refrains: List[Refrain] = []
    for normalized, (original, occurrences) in exact.items():
        if len({stanza for stanza, _ in occurrences}) >= MIN_REFRAIN_OCCURRENCES:
            refrains.append(Refrain(text=original, occurrences=occurrences, normalized_text=normalized))

    known = {refrain.normalized_text for refrain in refrains}
    processed = set()
    for stanza_index, stanza in enumerate(stanzas):
        for line_index, line in enumerate(stanza):
            normalized = normalize_text_for_comparison(line)
            if normalized in processed or len(normalized) < _MIN_REFRAIN_LENGTH:
                continue
            processed.add(normalized)

            similar: List[Tuple[int, int]] = [(stanza_index, line_index)]
            for other_s, other_stanza in enumerate(stanzas):
                for other_l, other in enumerate(other_stanza):
                    if (other_s, other_l) == (stanza_index, line_index):
                        continue
                    if normalize_text_for_comparison(other) == normalized:
                        continue
                    if calculate_line_similarity(line, other) >= REFRAIN_SIMILARITY_THRESHOLD:
                        similar.append((other_s, other_l))

            if len({index for index, _ in similar}) >= MIN_REFRAIN_OCCURRENCES and normalized not in known:
                refrains.append(Refrain(text=line, occurrences=similar, normalized_text=normalized))
                known.add(normalized)
    return refrains


def _find_chorus_groups(similarities: Sequence[StanzaSimilarity]) -> List[_Group]:
    groups: List[_Group] = []
    for sim in similarities:
        if sim.overall_similarity < CHORUS_SIMILARITY_THRESHOLD:
            continue
        for group in groups:
            if sim.stanza1 in group.indices or sim.stanza2 in group.indices:
                for index in (sim.stanza1, sim.stanza2):
                    if index not in group.indices:
                        group.indices.append(index)
                group.similarity = (group.similarity + sim.overall_similarity) / 2
                break
        else:
            groups.append(_Group([sim.stanza1, sim.stanza2], sim.overall_similarity))
    return [_Group(sorted(group.indices), group.similarity) for group in groups if len(group.indices) >= 2]


def _count_refrain_lines(stanza_index: int, stanza: Sequence[str], refrains: Sequence[Refrain]) -> int:
    return sum(
        1
        for line_index in range(len(stanza))
        if any((stanza_index, line_index) in refrain.occurrences for refrain in refrains)
    )


def _average_similarity(stanza_index: int, similarities: Sequence[StanzaSimilarity]) -> float:
    relevant = [s.overall_similarity for s in similarities if stanza_index in (s.stanza1, s.stanza2)]
    return sum(relevant) / len(relevant) if relevant else 0.5


def _best_unassigned_similarity(
    stanza_index: int, similarities: Sequence[StanzaSimilarity], assigned: Sequence[bool]
) -> float:
    best = 0.0
    for sim in similarities:
        if stanza_index in (sim.stanza1, sim.stanza2) and not assigned[sim.stanza1] and not assigned[sim.stanza2]:
            best = max(best, sim.overall_similarity)
    return best


def classify_sections(
    stanzas: Sequence[Sequence[str]],
    similarities: Sequence[StanzaSimilarity],
    refrains: Sequence[Refrain],
) -> List[Section]:
    """Label every stanza as chorus, bridge or verse, in stanza order.

    Choruses are groups of near-identical stanzas, or stanzas made mostly of
    refrain lines. A bridge is a stanza unlike the others sitting between
    40% and 80% of the way through a poem of three or more stanzas. The rest
    are verses, numbered in order of appearance.
    """

    if not stanzas:
        return []

    sections: List[Section] = []
    assigned = [False] * len(stanzas)

    for group in _find_chorus_groups(similarities):
        sections.append(Section(type="chorus", stanza_indices=group.indices, label="Chorus", confidence=group.similarity))
        for index in group.indices:
            assigned[index] = True

    for index, stanza in enumerate(stanzas):
        if assigned[index] or len(stanza) < 2:
            continue
        ratio = _count_refrain_lines(index, stanza, refrains) / len(stanza)
        if ratio > _REFRAIN_CHORUS_RATIO:
            sections.append(Section(type="chorus", stanza_indices=[index], label="Chorus", confidence=ratio))
            assigned[index] = True

    if len(stanzas) > 2:
        low, high = _BRIDGE_POSITION
        for index in range(len(stanzas)):
            if assigned[index]:
                continue
            average = _average_similarity(index, similarities)
            position = index / len(stanzas)
            if average < _BRIDGE_MAX_SIMILARITY and low < position < high:
                sections.append(Section(type="bridge", stanza_indices=[index], label="Bridge", confidence=1 - average))
                assigned[index] = True

    verse_scores = {
        index: _best_unassigned_similarity(index, similarities, assigned)
        for index in range(len(stanzas))
        if not assigned[index]
    }
    for index, score in verse_scores.items():
        sections.append(
            Section(type="verse", stanza_indices=[index], label="Verse", confidence=score if score > 0 else 0.5)
        )

    sections.sort(key=lambda section: section.stanza_indices[0])
    verse_number = 1
    for section in sections:
        if section.type == "verse":
            section.label = f"Verse {verse_number}"
            verse_number += 1
    return sections


def generate_structure_pattern(sections: Sequence[Section], stanza_count: int) -> str:
    """One letter per stanza; every chorus shares the first chorus letter."""

    if stanza_count == 0 or not sections:
        return ""

    by_stanza: Dict[int, Section] = {}
    for section in sections:
        for index in section.stanza_indices:
            by_stanza[index] = section

    letters: Dict[str, str] = {}
    chorus_letter: Optional[str] = None
    next_letter = "A"
    pattern: List[str] = []
    for index in range(stanza_count):
        section = by_stanza.get(index)
        if section is None:
            pattern.append("?")
            continue
        if section.type == "chorus":
            if chorus_letter is None:
                chorus_letter = next_letter
                next_letter = chr(ord(next_letter) + 1)
            pattern.append(chorus_letter)
            continue
        key = f"{section.type}-{index}"
        if key not in letters:
            letters[key] = next_letter
            next_letter = chr(ord(next_letter) + 1)
        pattern.append(letters[key])
    return "".join(pattern)


def generate_summary(sections: Sequence[Section], refrains: Sequence[Refrain], has_verse_chorus: bool) -> str:
    counts = {section_type: 0 for section_type in ("verse", "chorus", "bridge", "refrain", "intro", "outro")}
    for section in sections:
        counts[section.type] = counts.get(section.type, 0) + 1

    parts: List[str] = []
    if has_verse_chorus:
        parts.append("Verse/chorus structure detected")
    elif counts["verse"]:
        parts.append("Verse-based structure")
    if counts["verse"]:
        parts.append(f"{counts['verse']} verse{'s' if counts['verse'] > 1 else ''}")
    if counts["chorus"]:
        parts.append(f"{counts['chorus']} chorus section{'s' if counts['chorus'] > 1 else ''}")
    if counts["bridge"]:
        parts.append(f"{counts['bridge']} bridge")
    if refrains:
        parts.append(f"{len(refrains)} refrain line{'s' if len(refrains) > 1 else ''}")
    return ", ".join(parts) or "No clear structure detected"


def analyze_structure(
    stanzas: Sequence[Sequence[str]],
    stress_patterns: Optional[Sequence[Sequence[str]]] = None,
    dictionary: Optional[PronunciationDictionary] = None,
) -> StructureAnalysis:
    """Analyse stanza texts.

    ``stress_patterns`` holds one pattern per line, stanza by stanza; when it
    is omitted the patterns are derived from ``dictionary``.
    """

    if not stanzas:
        return StructureAnalysis(summary="No stanzas to analyze")
    if len(stanzas) == 1:
        return StructureAnalysis(
            sections=[Section(type="verse", stanza_indices=[0], label="Verse 1", confidence=1.0)],
            structure_pattern="A",
            summary="Single stanza poem",
        )

    if stress_patterns is None:
        lookup = dictionary or default_dictionary()
        stress_patterns = [
            [line_stress_pattern(tokenize_words(line), lookup) for line in stanza]
            for stanza in stanzas
        ]

    similarities = build_similarity_matrix(stanzas, stress_patterns)
    refrains = detect_refrains(stanzas)
    sections = classify_sections(stanzas, similarities, refrains)
    has_verse_chorus = any(s.type == "chorus" for s in sections) and any(s.type == "verse" for s in sections)

    return StructureAnalysis(
        sections=sections,
        refrains=refrains,
        similarities=similarities,
        has_verse_chorus_structure=has_verse_chorus,
        structure_pattern=generate_structure_pattern(sections, len(stanzas)),
        summary=generate_summary(sections, refrains, has_verse_chorus),
    )


def analyze_structure_from_analyzed(stanzas: Sequence[AnalyzedStanza]) -> StructureAnalysis:
    """Structure of already analysed stanzas, reusing their stress patterns."""

    return analyze_structure(
        [[line.text for line in stanza.lines] for stanza in stanzas],
        [[line.stress_pattern for line in stanza.lines] for stanza in stanzas],
    )


def get_section_info_for_stanza(analysis: StructureAnalysis, stanza_index: int) -> Optional[Section]:
    for section in analysis.sections:
        if stanza_index in section.stanza_indices:
            return section
    return None


def get_section_for_stanza(analysis: StructureAnalysis, stanza_index: int) -> str:
    section = get_section_info_for_stanza(analysis, stanza_index)
    return section.type if section else "verse"


def is_repeat_section(analysis: StructureAnalysis, stanza_index: int) -> bool:
    section = get_section_info_for_stanza(analysis, stanza_index)
    return section is not None and section.stanza_indices[0] != stanza_index


def is_section_transition(analysis: StructureAnalysis, stanza_index: int) -> bool:
    """True when the next stanza belongs to a different section."""

    current = get_section_info_for_stanza(analysis, stanza_index)
    following = get_section_info_for_stanza(analysis, stanza_index + 1)
    if current is None or following is None:
        return False
    return current.type != following.type or current.stanza_indices != following.stanza_indices


__all__ = [
    "CHORUS_SIMILARITY_THRESHOLD",
    "MIN_REFRAIN_OCCURRENCES",
    "REFRAIN_SIMILARITY_THRESHOLD",
    "VERSE_SIMILARITY_THRESHOLD",
    "analyze_structure",
    "analyze_structure_from_analyzed",
    "build_similarity_matrix",
    "calculate_line_similarity",
    "calculate_meter_similarity",
    "calculate_stanza_text_similarity",
    "classify_sections",
    "compare_stanzas",
    "detect_refrains",
    "generate_structure_pattern",
    "generate_summary",
    "get_section_for_stanza",
    "get_section_info_for_stanza",
    "get_stanza_foot_type",
    "is_repeat_section",
    "is_section_transition",
    "normalize_text_for_comparison",
]
