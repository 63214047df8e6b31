"""How easy a line is to sing: vowel openness, clusters and problem spots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .dictionary import PronunciationDictionary, base_phoneme, is_consonant, is_vowel
from .models import LineSoundPatterns, SingabilityProblem, SingabilityScore, Syllable, SyllabifiedWord
from .sound_patterns import calculate_singability_impact

VOWEL_OPENNESS: Dict[str, float] = {
    "AA": 1.0,
    "AO": 0.9,
    "AE": 0.8,
    "OW": 0.8,
    "AY": 0.7,
    "EY": 0.7,
    "AW": 0.7,
    "OY": 0.65,
    "EH": 0.6,
    "ER": 0.5,
    "AH": 0.5,
    "IY": 0.4,
    "UW": 0.4,
    "IH": 0.3,
    "UH": 0.3,
}

DIFFICULT_CLUSTERS: Tuple[Tuple[str, ...], ...] = (
    ("S", "T", "R"),
    ("S", "K", "R"),
    ("S", "P", "R"),
    ("S", "P", "L"),
    ("N", "G", "TH", "S"),
    ("K", "S", "T", "S"),
    ("L", "F", "TH", "S"),
    ("S", "T", "S"),
    ("S", "K", "S"),
    ("K", "S"),
    ("T", "S"),
    ("K", "T"),
    ("P", "T"),
    ("B", "D"),
    ("N", "K"),
    ("N", "G", "K"),
    ("M", "P", "T"),
    ("F", "TH"),
    ("TH", "S"),
)

CLUSTER_SUGGESTIONS: Dict[str, str] = {
    "S-T-R": 'Consider "st-" or softer opening',
    "N-G-TH-S": "Very difficult cluster; consider rephrasing",
    "K-S-T-S": "Multiple sibilants; consider simpler word",
    "S-T-S": 'Sibilant cluster; consider "-st" ending word',
    "S-K-S": "Harsh combination; consider rephrasing",
    "K-T": "Consider word ending in single consonant",
    "P-T": "Consider word ending in single consonant",
    "F-TH": "Difficult fricative combo; consider simpler word",
}

VOWEL_SUGGESTIONS: Dict[str, str] = {
    "IH": 'Short "i" is hard to sustain; consider open vowel',
    "UH": 'Short "u" is hard to sustain; consider open vowel',
    "IY": 'Long "ee" can be sustained but is brighter; consider "ah" or "oh"',
    "UW": 'Long "oo" can be sustained; consider if warmth is needed',
}

ISSUE_LABELS: Dict[str, str] = {
    "consonant_cluster": "Consonant cluster",
    "closed_vowel": "Closed vowel",
    "awkward_transition": "Awkward transition",
}

SEVERITY_ORDER: Dict[str, int] = {"low": 0, "medium": 1, "high": 2}
SEVERITY_PENALTIES: Dict[str, float] = {"high": 0.15, "medium": 0.08, "low": 0.03}

SONORANT_CODAS = frozenset({"L", "M", "N", "NG", "R"})
ESTIMATED_SYLLABLE_SCORE = 0.5
_MAX_PROBLEM_PENALTY = 0.5
_AWKWARD_CODA_LENGTH = 3


@dataclass(frozen=True)
class ProblemSpot:
    position: int
    word: str
    issue: str
    severity: str
    suggestion: Optional[str] = None

    def describe(self) -> str:
        description = f'{ISSUE_LABELS.get(self.issue, "Issue")} in "{self.word}"'
        if self.suggestion:
            description += f": {self.suggestion}"
        return description

    def to_problem(self) -> SingabilityProblem:
        return SingabilityProblem(position=self.position, issue=self.describe(), severity=self.severity)


def score_vowel_openness(phonemes: Sequence[str]) -> float:
    """Openness of the first vowel; unknown vowels count as mid (0.5)."""

    for phoneme in phonemes or ():
        if is_vowel(phoneme):
            return VOWEL_OPENNESS.get(base_phoneme(phoneme), 0.5)
    return 0.0


def _is_subsequence(pattern: Sequence[str], target: Sequence[str]) -> bool:
    if len(pattern) > len(target):
        return False
    remaining = iter(target)
    return all(item in remaining for item in pattern)


def _consonant_clusters(phonemes: Sequence[str]) -> List[List[str]]:
    clusters: List[List[str]] = []
    current: List[str] = []
    for phoneme in phonemes:
        if is_consonant(phoneme):
            current.append(phoneme)
            continue
        if len(current) > 1:
            clusters.append(current)
        current = []
    if len(current) > 1:
        clusters.append(current)
    return clusters


def score_consonant_clusters(phonemes: Sequence[str]) -> float:
    """Penalty in [0, 1] for runs of two or more consonants."""

    clusters = _consonant_clusters(phonemes or ())
    if not clusters:
        return 0.0

    largest = max(len(cluster) for cluster in clusters)
    if largest == 2:
        penalty = 0.2
    elif largest == 3:
        penalty = 0.5
    else:
        penalty = 0.8

    for cluster in clusters:
        for difficult in DIFFICULT_CLUSTERS:
            if _is_subsequence(difficult, cluster):
                penalty = min(1.0, penalty + 0.1)
    return min(1.0, penalty)


def score_sustainability(syllable: Syllable) -> float:
    """How long the syllable can be held on a note, in [0, 1]."""

    if syllable.estimated or not syllable.phonemes:
        return ESTIMATED_SYLLABLE_SCORE

    bonus = 0.0
    if syllable.is_open:
        bonus = 0.15
    elif syllable.phonemes[-1] in SONORANT_CODAS:
        bonus = 0.1

    penalty = score_consonant_clusters(syllable.phonemes) * 0.3
    return min(1.0, max(0.0, score_vowel_openness(syllable.phonemes) + bonus - penalty))


def find_difficult_cluster(phonemes: Sequence[str]) -> Optional[str]:
    consonants = [p for p in phonemes if is_consonant(p)]
    for pattern in DIFFICULT_CLUSTERS:
        if _is_subsequence(pattern, consonants):
            return "-".join(pattern)
    return None


def _word_problems(word: str, phonemes: Sequence[str], position: int) -> List[ProblemSpot]:
    problems: List[ProblemSpot] = []

    cluster_penalty = score_consonant_clusters(phonemes)
    if cluster_penalty >= 0.5:
        key = find_difficult_cluster(phonemes)
        if key:
            suggestion = CLUSTER_SUGGESTIONS.get(key, f'Difficult consonant cluster in "{word}"')
        else:
            suggestion = f'Consider simpler word instead of "{word}"'
        problems.append(
            ProblemSpot(
                position=position,
                word=word,
                issue="consonant_cluster",
                severity="high" if cluster_penalty >= 0.7 else "medium",
                suggestion=suggestion,
            )
        )

    openness = score_vowel_openness(phonemes)
    if openness <= 0.35:
        vowels = [base_phoneme(p) for p in phonemes if is_vowel(p)]
        vowel = vowels[0] if vowels else ""
        problems.append(
            ProblemSpot(
                position=position,
                word=word,
                issue="closed_vowel",
                severity="medium" if openness <= 0.3 else "low",
                suggestion=VOWEL_SUGGESTIONS.get(vowel, f'Closed vowel in "{word}" may be hard to sustain'),
            )
        )
    return problems


def _coda(syllable: Syllable) -> List[str]:
    for index, phoneme in enumerate(syllable.phonemes):
        if is_vowel(phoneme):
            return list(syllable.phonemes[index + 1 :])
    return []


def identify_problem_spots(words: Sequence[SyllabifiedWord]) -> List[ProblemSpot]:
    """Problem spots for a line; positions are syllable offsets in the line.

    Estimated words have no phonemes and never produce problems.
    """

    problems: List[ProblemSpot] = []
    position = 0
    for word in words:
        phonemes = [p for syllable in word.syllables for p in syllable.phonemes]
        if phonemes:
            problems.extend(_word_problems(word.text, phonemes, position))

            for index, syllable in enumerate(word.syllables[:-1]):
                if not syllable.is_open and len(_coda(syllable)) >= _AWKWARD_CODA_LENGTH:
                    problems.append(
                        ProblemSpot(
                            position=position + index,
                            word=word.text,
                            issue="awkward_transition",
                            severity="low",
                            suggestion=f'Transition within "{word.text}" may be choppy',
                        )
                    )
        position += len(word.syllables)
    return problems


def _line_score(syllable_scores: Sequence[float], problems: Sequence[ProblemSpot]) -> float:
    if not syllable_scores:
        return 0.0
    average = sum(syllable_scores) / len(syllable_scores)
    penalty = min(_MAX_PROBLEM_PENALTY, sum(SEVERITY_PENALTIES.get(p.severity, 0.0) for p in problems))
    return max(0.0, average - penalty)


def analyze_line_singability(words: Sequence[SyllabifiedWord]) -> SingabilityScore:
    """Per-syllable scores, the penalised line score and readable problems."""

    if not words:
        return SingabilityScore()

    scores = [score_sustainability(s) for word in words for s in word.syllables]
    problems = identify_problem_spots(words)
    return SingabilityScore(
        syllable_scores=scores,
        line_score=_line_score(scores, problems),
        problem_spots=[problem.to_problem() for problem in problems],
    )


def score_word_singability(word: str, dictionary: PronunciationDictionary) -> Optional[float]:
    """Openness minus half the cluster penalty, or ``None`` for unknown words."""

    if not word or not word.strip():
        return None
    phonemes = dictionary.lookup(word)
    if not phonemes:
        return None
    return max(0.0, score_vowel_openness(phonemes) - score_consonant_clusters(phonemes) * 0.5)


def get_primary_vowel(word: str, dictionary: PronunciationDictionary) -> Optional[str]:
    phonemes = dictionary.lookup(word)
    if not phonemes:
        return None
    vowels = [p for p in phonemes if is_vowel(p)]
    for phoneme in vowels:
        if phoneme.endswith("1"):
            return phoneme
    return vowels[0] if vowels else None


def has_difficult_clusters(word: str, dictionary: PronunciationDictionary) -> bool:
    phonemes = dictionary.lookup(word)
    return bool(phonemes) and score_consonant_clusters(phonemes) >= 0.4


def calculate_average_singability(scores: Sequence[SingabilityScore]) -> float:
    if not scores:
        return 0.0
    return sum(score.line_score for score in scores) / len(scores)


def collect_problem_spots(
    scores: Sequence[SingabilityScore],
    min_severity: str = "low",
) -> List[Tuple[int, SingabilityProblem]]:
    """``(line index, problem)`` pairs at or above ``min_severity``."""

    floor = SEVERITY_ORDER[min_severity]
    return [
        (line_index, problem)
        for line_index, score in enumerate(scores)
        for problem in score.problem_spots
        if SEVERITY_ORDER.get(problem.severity, 0) >= floor
    ]


def adjust_singability_for_sound_patterns(
    score: SingabilityScore, patterns: LineSoundPatterns
) -> SingabilityScore:
    """Copy of ``score`` with the line score shifted by the sound-pattern impact."""

    adjusted = min(1.0, max(0.0, score.line_score + calculate_singability_impact(patterns)))
    return SingabilityScore(
        syllable_scores=list(score.syllable_scores),
        line_score=adjusted,
        problem_spots=list(score.problem_spots),
    )


__all__ = [
    "CLUSTER_SUGGESTIONS",
    "DIFFICULT_CLUSTERS",
    "ISSUE_LABELS",
    "VOWEL_OPENNESS",
    "VOWEL_SUGGESTIONS",
    "ProblemSpot",
    "adjust_singability_for_sound_patterns",
    "analyze_line_singability",
    "calculate_average_singability",
    "collect_problem_spots",
    "find_difficult_cluster",
    "get_primary_vowel",
    "has_difficult_clusters",
    "identify_problem_spots",
    "score_consonant_clusters",
    "score_sustainability",
    "score_vowel_openness",
    "score_word_singability",
]
