"""Meter classification by edit distance against ideal foot patterns."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

FOOT_PATTERNS: Dict[str, str] = {
    "iamb": "01",
    "trochee": "10",
    "anapest": "001",
    "dactyl": "100",
    "spondee": "11",
    "unknown": "",
}

METRICAL_FEET: Tuple[str, ...] = ("iamb", "trochee", "anapest", "dactyl", "spondee")

LINE_LENGTH_NAMES: Dict[int, str] = {
    1: "monometer",
    2: "dimeter",
    3: "trimeter",
    4: "tetrameter",
    5: "pentameter",
    6: "hexameter",
    7: "heptameter",
    8: "octameter",
}

FOOT_ADJECTIVES: Dict[str, str] = {
    "iamb": "iambic",
    "trochee": "trochaic",
    "anapest": "anapestic",
    "dactyl": "dactylic",
    "spondee": "spondaic",
    "unknown": "irregular",
}

_MIN_MATCH_SCORE = 0.3
_SHORT_PATTERN_PENALTY = 0.7


@dataclass(frozen=True)
class MeterMatch:
    meter: str
    score: float
    pattern: str
    foot_type: str
    feet_count: int


@dataclass(frozen=True)
class LineMeter:
    """Meter reading for one stress pattern (or the dominant one of a poem)."""

    foot_type: str
    line_length: str
    feet_per_line: int
    pattern: str
    regularity: float
    confidence: float
    meter_name: str


def levenshtein_distance(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def string_similarity(a: str, b: str) -> float:
    """``1 - distance / longer length``; identical strings score 1."""

    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


def to_binary_stress(pattern: str) -> str:
    """Secondary stress counts as stressed."""

    return pattern.replace("2", "1")


def _ideal_pattern(foot_type: str, length: int) -> str:
    foot = FOOT_PATTERNS.get(foot_type, "")
    if not foot or length <= 0:
        return ""
    return (foot * (length // len(foot) + 1))[:length]


def classify_line_length(syllable_count: int, foot_type: str = "iamb") -> str:
    if syllable_count <= 0:
        return "monometer"
    per_foot = len(FOOT_PATTERNS.get(foot_type) or FOOT_PATTERNS["iamb"])
    feet = max(1, min(8, int(math.floor(syllable_count / per_foot + 0.5))))
    return LINE_LENGTH_NAMES[feet]


def calculate_regularity(pattern: str, foot_type: str) -> float:
    """Similarity of ``pattern`` to the foot repeated to the same length."""

    ideal = _ideal_pattern(foot_type, len(pattern))
    if not pattern or not ideal:
        return 0.0
    return string_similarity(pattern, ideal)


def find_deviations(pattern: str, foot_type: str) -> List[int]:
    """Syllable offsets where ``pattern`` departs from the ideal foot sequence."""

    binary = to_binary_stress(pattern or "")
    ideal = _ideal_pattern(foot_type, len(binary))
    if not ideal:
        return []
    return [index for index, (actual, expected) in enumerate(zip(binary, ideal)) if actual != expected]


def find_best_meter_match(pattern: str) -> List[MeterMatch]:
    """Rank candidate meters for ``pattern``, best first, one entry per name."""

    if not pattern:
        return []

    matches: List[MeterMatch] = []
    for foot_type in METRICAL_FEET:
        foot = FOOT_PATTERNS[foot_type]
        per_foot = len(foot)
        for feet_count in (len(pattern) // per_foot, -(-len(pattern) // per_foot)):
            if feet_count < 1 or feet_count > 8:
                continue
            ideal = foot * feet_count
            score = string_similarity(pattern, ideal)
            if score > _MIN_MATCH_SCORE:
                name = f"{FOOT_ADJECTIVES[foot_type]} {LINE_LENGTH_NAMES[feet_count]}"
                matches.append(MeterMatch(name, score, ideal, foot_type, feet_count))

    matches.sort(key=lambda match: -match.score)
    seen = set()
    unique: List[MeterMatch] = []
    for match in matches:
        if match.meter in seen:
            continue
        seen.add(match.meter)
        unique.append(match)
    return unique


def _empty_meter() -> LineMeter:
    return LineMeter("unknown", "monometer", 0, "", 0.0, 0.0, "irregular")


def detect_meter(stress_pattern: str) -> LineMeter:
    """Classify a single stress pattern."""

    if not stress_pattern:
        return _empty_meter()

    pattern = to_binary_stress(stress_pattern)
    matches = find_best_meter_match(pattern)
    if not matches:
        return LineMeter(
            foot_type="unknown",
            line_length=classify_line_length(len(pattern)),
            feet_per_line=-(-len(pattern) // 2),
            pattern=pattern,
            regularity=0.0,
            confidence=0.0,
            meter_name="irregular",
        )

    best = matches[0]
    confidence = best.score
    if len(matches) > 1:
        confidence = min(1.0, confidence + (best.score - matches[1].score) * 0.5)
    if len(pattern) < 4:
        confidence *= _SHORT_PATTERN_PENALTY

    return LineMeter(
        foot_type=best.foot_type,
        line_length=LINE_LENGTH_NAMES[best.feet_count],
        feet_per_line=best.feet_count,
        pattern=pattern,
        regularity=calculate_regularity(pattern, best.foot_type),
        confidence=max(0.0, min(1.0, confidence)),
        meter_name=best.meter,
    )


def analyze_multi_line_meter(stress_patterns: Sequence[str]) -> LineMeter:
    """Pick the most frequent line meter and score how consistently it holds.

    Ties go to the meter seen first.
    """

    if not stress_patterns:
        return _empty_meter()

    readings = [detect_meter(pattern) for pattern in stress_patterns]
    counts: Dict[str, int] = {}
    first_seen: Dict[str, LineMeter] = {}
    for reading in readings:
        counts[reading.meter_name] = counts.get(reading.meter_name, 0) + 1
        first_seen.setdefault(reading.meter_name, reading)

    # max() keeps the first maximum in insertion order
    dominant_name = max(counts, key=counts.__getitem__)
    dominant = first_seen[dominant_name]

    consistency = counts[dominant_name] / len(stress_patterns)
    matching = [reading.regularity for reading in readings if reading.meter_name == dominant_name]
    average_regularity = sum(matching) / len(matching) if matching else 0.0

    return LineMeter(
        foot_type=dominant.foot_type,
        line_length=dominant.line_length,
        feet_per_line=dominant.feet_per_line,
        pattern=dominant.pattern,
        regularity=consistency * 0.5 + average_regularity * 0.5,
        confidence=dominant.confidence * consistency,
        meter_name=dominant.meter_name,
    )


def create_meter_pattern(foot_type: str, feet_count: int) -> str:
    return (FOOT_PATTERNS.get(foot_type) or FOOT_PATTERNS["iamb"]) * feet_count


def foot_type_to_adjective(foot_type: str) -> str:
    return FOOT_ADJECTIVES.get(foot_type, "irregular")


def parse_meter_name(meter_name: str) -> Optional[Tuple[str, str]]:
    """Split ``"iambic pentameter"`` into ``("iamb", "pentameter")``."""

    parts = (meter_name or "").strip().lower().split()
    if len(parts) != 2:
        return None
    adjective, length = parts
    feet = {value: key for key, value in FOOT_ADJECTIVES.items() if key != "unknown"}
    if adjective not in feet or length not in LINE_LENGTH_NAMES.values():
        return None
    return feet[adjective], length


__all__ = [
    "FOOT_ADJECTIVES",
    "FOOT_PATTERNS",
    "LINE_LENGTH_NAMES",
    "METRICAL_FEET",
    "LineMeter",
    "MeterMatch",
    "analyze_multi_line_meter",
    "calculate_regularity",
    "classify_line_length",
    "create_meter_pattern",
    "detect_meter",
    "find_best_meter_match",
    "find_deviations",
    "foot_type_to_adjective",
    "levenshtein_distance",
    "parse_meter_name",
    "string_similarity",
    "to_binary_stress",
]
