"""Per-line stress patterns and foot classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from .dictionary import PronunciationDictionary
from .meter import FOOT_PATTERNS, LINE_LENGTH_NAMES, METRICAL_FEET, foot_type_to_adjective, to_binary_stress
from .models import AnalyzedLine
from .phonetics import line_stress_pattern

_FOOT_MATCH_THRESHOLD = 0.7
_DOMINANT_FOOT_SHARE = 0.4
_REGULAR_DEVIATION_RATE = 0.1


@dataclass
class StressAnalysis:
    pattern: str = ""
    syllable_stresses: List[str] = field(default_factory=list)
    foot_type: str = "unknown"
    deviations: List[int] = field(default_factory=list)


def _foot_match(binary_pattern: str, foot: str) -> float:
    if not binary_pattern or not foot:
        return 0.0
    hits = sum(1 for index, char in enumerate(binary_pattern) if char == foot[index % len(foot)])
    return hits / len(binary_pattern)


def classify_foot(pattern: str) -> str:
    """Name the foot that best explains ``pattern``.

    Two-syllable patterns map directly; longer ones need at least 70% of
    positions to agree with the repeated foot.
    """

    binary = to_binary_stress(pattern or "")
    if len(binary) < 2:
        return "unknown"
    if len(binary) == 2:
        return {"01": "iamb", "10": "trochee", "11": "spondee"}.get(binary, "unknown")

    best_foot, best_score = "unknown", 0.0
    for foot_type in METRICAL_FEET:
        score = _foot_match(binary, FOOT_PATTERNS[foot_type])
        if score > best_score:
            best_foot, best_score = foot_type, score
    return best_foot if best_score >= _FOOT_MATCH_THRESHOLD else "unknown"


def detect_deviations(pattern: str, expected_foot: str) -> List[int]:
    foot = FOOT_PATTERNS.get(expected_foot, "")
    if not pattern or not foot:
        return []
    binary = to_binary_stress(pattern)
    return [index for index, char in enumerate(binary) if char != foot[index % len(foot)]]


def analyze_pattern(pattern: str) -> StressAnalysis:
    if not pattern:
        return StressAnalysis()
    foot_type = classify_foot(pattern)
    return StressAnalysis(
        pattern=pattern,
        syllable_stresses=[char if char in "012" else "0" for char in pattern],
        foot_type=foot_type,
        deviations=detect_deviations(pattern, foot_type),
    )


def analyze_line_stress(words: Sequence[str], dictionary: PronunciationDictionary) -> StressAnalysis:
    """Stress analysis for a tokenised line."""

    return analyze_pattern(line_stress_pattern(words, dictionary) if words else "")


def analyze_lines(lines: Iterable[AnalyzedLine]) -> List[StressAnalysis]:
    """Stress analyses that reuse the syllables already built for each line."""

    return [analyze_pattern(line.stress_pattern) for line in lines]


def get_meter_name(foot_type: str, feet_count: int) -> str:
    if foot_type == "unknown":
        return "irregular"
    length = LINE_LENGTH_NAMES.get(feet_count, f"{feet_count}-foot")
    return f"{foot_type_to_adjective(foot_type)}_{length}"


def count_feet(pattern: str, foot_type: str) -> int:
    foot = FOOT_PATTERNS.get(foot_type, "")
    size = len(foot) if foot else 2
    return -(-len(pattern) // size)


def calculate_confidence(pattern: str, foot_type: str) -> float:
    if not pattern or foot_type == "unknown":
        return 0.0
    return _foot_match(to_binary_stress(pattern), FOOT_PATTERNS.get(foot_type, ""))


def is_regular_pattern(pattern: str) -> bool:
    if not pattern or len(pattern) < 2:
        return True
    foot_type = classify_foot(pattern)
    if foot_type == "unknown":
        return False
    return len(detect_deviations(pattern, foot_type)) / len(pattern) <= _REGULAR_DEVIATION_RATE


def get_dominant_foot(analyses: Sequence[StressAnalysis]) -> str:
    """Most common known foot, provided it covers at least 40% of lines."""

    if not analyses:
        return "unknown"
    counts: Dict[str, int] = {}
    for analysis in analyses:
        if analysis.foot_type != "unknown":
            counts[analysis.foot_type] = counts.get(analysis.foot_type, 0) + 1
    if not counts:
        return "unknown"
    dominant = max(METRICAL_FEET, key=lambda foot: counts.get(foot, 0))
    return dominant if counts[dominant] >= len(analyses) * _DOMINANT_FOOT_SHARE else "unknown"


__all__ = [
    "StressAnalysis",
    "analyze_line_stress",
    "analyze_lines",
    "analyze_pattern",
    "calculate_confidence",
    "classify_foot",
    "count_feet",
    "detect_deviations",
    "get_dominant_foot",
    "get_meter_name",
    "is_regular_pattern",
]
