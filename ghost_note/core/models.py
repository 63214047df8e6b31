"""Result records produced by the analysis pipeline.

Every record is a plain dataclass. :class:`Record` adds ``to_dict`` and
``from_dict`` so a :class:`PoemAnalysis` can round-trip through JSON for the
cache: ``PoemAnalysis.from_dict(json.loads(json.dumps(a.to_dict()))) == a``.
Dictionary keys are emitted in camelCase.
"""

from __future__ import annotations

import dataclasses
import typing
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar


FOOT_TYPES: Tuple[str, ...] = ("iamb", "trochee", "anapest", "dactyl", "spondee", "unknown")
RHYME_TYPES: Tuple[str, ...] = ("perfect", "slant", "assonance", "consonance", "none")
PROBLEM_TYPES: Tuple[str, ...] = ("stress_mismatch", "singability", "syllable_variance", "rhyme_break")
SEVERITIES: Tuple[str, ...] = ("low", "medium", "high")
SECTION_TYPES: Tuple[str, ...] = ("verse", "chorus", "bridge", "refrain", "intro", "outro")
FORM_CATEGORIES: Tuple[str, ...] = ("fixed_form", "syllabic", "stanzaic", "metrical", "free", "unknown")
BOUNDARY_TYPES: Tuple[str, ...] = ("punctuation", "conjunction", "line_break", "semantic", "length_split")
BOUNDARY_STRENGTHS: Tuple[str, ...] = ("weak", "medium", "strong")

R = TypeVar("R", bound="Record")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


@lru_cache(maxsize=None)
def _field_hints(cls: type) -> Tuple[Tuple[str, str, Any], ...]:
    hints = typing.get_type_hints(cls)
    return tuple(
        (f.name, _camel(f.name), hints[f.name])
        for f in dataclasses.fields(cls)
    )


def _dump(value: Any) -> Any:
    if isinstance(value, Record):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {str(key): _dump(item) for key, item in value.items()}
    return value


def _load(hint: Any, value: Any) -> Any:
    if value is None:
        return None
    origin = typing.get_origin(hint)
    args = typing.get_args(hint)
    if origin is typing.Union:
        inner = [arg for arg in args if arg is not type(None)]
        return _load(inner[0], value) if inner else value
    if origin in (list, List):
        return [_load(args[0] if args else Any, item) for item in value]
    if origin in (tuple, Tuple):
        if len(args) == 2 and args[1] is Ellipsis:
            return tuple(_load(args[0], item) for item in value)
        if args:
            return tuple(_load(arg, item) for arg, item in zip(args, value))
        return tuple(value)
    if origin in (dict, Dict):
        value_hint = args[1] if len(args) == 2 else Any
        return {key: _load(value_hint, item) for key, item in value.items()}
    if isinstance(hint, type) and issubclass(hint, Record):
        return hint.from_dict(value)
    if hint is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


class Record:
    """Mixin giving dataclasses a JSON-safe dictionary form."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: _dump(getattr(self, name))
            for name, key, _ in _field_hints(type(self))
        }

    @classmethod
    def from_dict(cls: Type[R], payload: Dict[str, Any]) -> R:
        if not isinstance(payload, Mapping):
            raise TypeError(f"{cls.__name__} expects a mapping, got {type(payload).__name__}")
        kwargs: Dict[str, Any] = {}
        for name, key, hint in _field_hints(cls):
            if key in payload:
                kwargs[name] = _load(hint, payload[key])
            elif name in payload:
                kwargs[name] = _load(hint, payload[name])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Preprocessing and phonetics
# ---------------------------------------------------------------------------


@dataclass
class PreprocessedPoem(Record):
    original: str
    stanzas: List[List[str]]
    line_count: int
    stanza_count: int


@dataclass
class Syllable(Record):
    """One syllable; ``estimated`` syllables carry no phonemes."""

    phonemes: List[str]
    stress: int
    vowel_phoneme: str
    is_open: bool
    estimated: bool = False


@dataclass
class SyllabifiedWord(Record):
    text: str
    syllables: List[Syllable]
    in_dictionary: bool = True

    @property
    def syllable_count(self) -> int:
        return len(self.syllables)

    @property
    def stress_pattern(self) -> str:
        return "".join(str(syllable.stress) for syllable in self.syllables)


@dataclass
class SingabilityProblem(Record):
    position: int
    issue: str
    severity: str


@dataclass
class SingabilityScore(Record):
    syllable_scores: List[float] = field(default_factory=list)
    line_score: float = 0.0
    problem_spots: List[SingabilityProblem] = field(default_factory=list)


@dataclass
class AnalyzedLine(Record):
    text: str
    words: List[SyllabifiedWord]
    stress_pattern: str
    syllable_count: int
    singability: SingabilityScore


@dataclass
class AnalyzedStanza(Record):
    lines: List[AnalyzedLine]


@dataclass
class PoemStructure(Record):
    stanzas: List[AnalyzedStanza] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Prosody
# ---------------------------------------------------------------------------


@dataclass
class MeterAnalysis(Record):
    pattern: str = ""
    detected_meter: str = "irregular"
    foot_type: str = "unknown"
    feet_per_line: int = 0
    confidence: float = 0.0
    deviations: List[int] = field(default_factory=list)


@dataclass
class RhymeGroup(Record):
    lines: List[int]
    rhyme_type: str
    end_words: List[str]


@dataclass
class InternalRhyme(Record):
    line: int
    positions: List[int]
    words: List[str]


@dataclass
class RhymeAnalysis(Record):
    scheme: str = ""
    rhyme_groups: Dict[str, RhymeGroup] = field(default_factory=dict)
    internal_rhymes: List[InternalRhyme] = field(default_factory=list)


@dataclass
class ProsodyAnalysis(Record):
    meter: MeterAnalysis = field(default_factory=MeterAnalysis)
    rhyme: RhymeAnalysis = field(default_factory=RhymeAnalysis)
    regularity: float = 0.0


# ---------------------------------------------------------------------------
# Sound patterns
# ---------------------------------------------------------------------------


@dataclass
class SoundPatternOccurrence(Record):
    type: str
    sound: str
    words: List[str]
    positions: List[int]
    line_number: int
    strength: float


@dataclass
class LineSoundPatterns(Record):
    line_number: int
    text: str
    alliterations: List[SoundPatternOccurrence] = field(default_factory=list)
    assonances: List[SoundPatternOccurrence] = field(default_factory=list)
    consonances: List[SoundPatternOccurrence] = field(default_factory=list)


@dataclass
class SoundPatternSummary(Record):
    alliteration_count: int = 0
    assonance_count: int = 0
    consonance_count: int = 0
    density: float = 0.0
    prominent_alliterations: List[str] = field(default_factory=list)
    prominent_assonances: List[str] = field(default_factory=list)


@dataclass
class SoundPatternAnalysis(Record):
    lines: List[LineSoundPatterns] = field(default_factory=list)
    summary: SoundPatternSummary = field(default_factory=SoundPatternSummary)


# ---------------------------------------------------------------------------
# Emotion
# ---------------------------------------------------------------------------


@dataclass
class EmotionalArcEntry(Record):
    stanza: int
    sentiment: float
    keywords: List[str]


@dataclass
class SuggestedMusicParams(Record):
    mode: str = "major"
    tempo_range: Tuple[int, int] = (80, 120)
    register: str = "middle"


@dataclass
class EmotionalAnalysis(Record):
    overall_sentiment: float = 0.0
    arousal: float = 0.5
    dominant_emotions: List[str] = field(default_factory=list)
    emotional_arc: List[EmotionalArcEntry] = field(default_factory=list)
    suggested_music_params: SuggestedMusicParams = field(default_factory=SuggestedMusicParams)


# ---------------------------------------------------------------------------
# Song structure
# ---------------------------------------------------------------------------


@dataclass
class Section(Record):
    type: str
    stanza_indices: List[int]
    label: str
    confidence: float
    repeat_of: Optional[int] = None


@dataclass
class Refrain(Record):
    text: str
    occurrences: List[Tuple[int, int]]
    normalized_text: str


@dataclass
class StanzaSimilarity(Record):
    stanza1: int
    stanza2: int
    overall_similarity: float
    text_similarity: float
    meter_similarity: float
    line_count_match: bool
    foot_type_match: bool


@dataclass
class StructureAnalysis(Record):
    sections: List[Section] = field(default_factory=list)
    refrains: List[Refrain] = field(default_factory=list)
    similarities: List[StanzaSimilarity] = field(default_factory=list)
    has_verse_chorus_structure: bool = False
    structure_pattern: str = ""
    summary: str = "No structure analyzed"


# ---------------------------------------------------------------------------
# Form detection
# ---------------------------------------------------------------------------


@dataclass
class FormEvidence(Record):
    line_count_match: bool = False
    stanza_structure_match: bool = False
    meter_match: bool = False
    rhyme_scheme_match: bool = False
    syllable_pattern_match: bool = False
    notes: List[str] = field(default_factory=list)


@dataclass
class AlternativeForm(Record):
    form_type: str
    form_name: str
    confidence: float


@dataclass
class FormDetectionResult(Record):
    form_type: str = "unknown"
    form_name: str = "Unknown"
    category: str = "unknown"
    confidence: float = 0.0
    evidence: FormEvidence = field(default_factory=FormEvidence)
    alternatives: List[AlternativeForm] = field(default_factory=list)
    description: str = "No content to analyze."


# ---------------------------------------------------------------------------
# Phrasing
# ---------------------------------------------------------------------------


@dataclass
class PhraseBoundary(Record):
    """A phrase ends after word ``position`` (inclusive)."""

    position: int
    char_position: int
    type: str
    strength: str
    trigger: str
    breathability: float


@dataclass
class Phrase(Record):
    text: str
    words: List[str]
    start_word_index: int
    end_word_index: int
    syllable_count: int
    ends_at_line_break: bool = False


@dataclass
class LinePhrasing(Record):
    text: str
    line_index: int
    boundaries: List[PhraseBoundary] = field(default_factory=list)
    phrases: List[Phrase] = field(default_factory=list)
    combine_with_next: bool = False


@dataclass
class BreathPoint(Record):
    line_index: int
    word_index: int
    strength: str


@dataclass
class PoemPhrasing(Record):
    lines: List[LinePhrasing] = field(default_factory=list)
    major_break_lines: List[int] = field(default_factory=list)
    average_phrase_length: float = 0.0
    breath_points: List[BreathPoint] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Whole-poem result
# ---------------------------------------------------------------------------


@dataclass
class ProblemReport(Record):
    line: int
    position: int
    type: str
    severity: str
    description: str
    suggested_fix: Optional[str] = None


@dataclass
class MelodySuggestions(Record):
    time_signature: str = "4/4"
    tempo: int = 100
    key: str = "C"
    mode: str = "major"
    phrase_breaks: List[int] = field(default_factory=list)


@dataclass
class MetaInfo(Record):
    line_count: int = 0
    stanza_count: int = 0
    word_count: int = 0
    syllable_count: int = 0
    title: Optional[str] = None


@dataclass
class PoemAnalysis(Record):
    meta: MetaInfo = field(default_factory=MetaInfo)
    structure: PoemStructure = field(default_factory=PoemStructure)
    prosody: ProsodyAnalysis = field(default_factory=ProsodyAnalysis)
    sound_patterns: SoundPatternAnalysis = field(default_factory=SoundPatternAnalysis)
    emotion: EmotionalAnalysis = field(default_factory=EmotionalAnalysis)
    form: FormDetectionResult = field(default_factory=FormDetectionResult)
    problems: List[ProblemReport] = field(default_factory=list)
    melody_suggestions: MelodySuggestions = field(default_factory=MelodySuggestions)
    song_structure: StructureAnalysis = field(default_factory=StructureAnalysis)

    @classmethod
    def empty(cls) -> "PoemAnalysis":
        """The analysis reported for empty or whitespace-only input."""

        return cls()


@dataclass
class CachedAnalysisEntry(Record):
    hash: str
    timestamp: float
    analysis: PoemAnalysis


__all__ = [
    "FOOT_TYPES",
    "RHYME_TYPES",
    "PROBLEM_TYPES",
    "SEVERITIES",
    "SECTION_TYPES",
    "FORM_CATEGORIES",
    "BOUNDARY_TYPES",
    "BOUNDARY_STRENGTHS",
    "Record",
    "PreprocessedPoem",
    "Syllable",
    "SyllabifiedWord",
    "SingabilityProblem",
    "SingabilityScore",
    "AnalyzedLine",
    "AnalyzedStanza",
    "PoemStructure",
    "MeterAnalysis",
    "RhymeGroup",
    "InternalRhyme",
    "RhymeAnalysis",
    "ProsodyAnalysis",
    "SoundPatternOccurrence",
    "LineSoundPatterns",
    "SoundPatternSummary",
    "SoundPatternAnalysis",
    "EmotionalArcEntry",
    "SuggestedMusicParams",
    "EmotionalAnalysis",
    "Section",
    "Refrain",
    "StanzaSimilarity",
    "StructureAnalysis",
    "FormEvidence",
    "AlternativeForm",
    "FormDetectionResult",
    "PhraseBoundary",
    "Phrase",
    "LinePhrasing",
    "BreathPoint",
    "PoemPhrasing",
    "ProblemReport",
    "MelodySuggestions",
    "MetaInfo",
    "PoemAnalysis",
    "CachedAnalysisEntry",
]
