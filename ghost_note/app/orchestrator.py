"""Poem analysis pipeline.

:class:`PoemAnalyzer` runs the nine analysis stages in a fixed order
(preprocess, phonetic, stress, meter, rhyme, sound patterns, singability,
emotion, structure), then detects the poem form, collects problems and
derives melody suggestions. Results are cached by content hash.

The entry points are coroutines only so hosts can interleave progress
rendering: every stage yields to the event loop once before it runs.
"""

from __future__ import annotations

import asyncio
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from ghost_note.core.dictionary import PronunciationDictionary, default_dictionary
from ghost_note.core.emotion import analyze_emotion
from ghost_note.core.forms import create_form_detection_input, detect_form
from ghost_note.core.meter import analyze_multi_line_meter, find_deviations, foot_type_to_adjective
from ghost_note.core.models import (
    AnalyzedLine,
    AnalyzedStanza,
    FormDetectionResult,
    MelodySuggestions,
    MeterAnalysis,
    MetaInfo,
    PoemAnalysis,
    PoemStructure,
    PreprocessedPoem,
    ProblemReport,
    ProsodyAnalysis,
    SingabilityScore,
    StructureAnalysis,
)
from ghost_note.core.phonetics import resolve_word
from ghost_note.core.preprocess import count_words, get_all_lines, preprocess_poem, tokenize_words
from ghost_note.core.rhyme import analyze_rhymes
from ghost_note.core.singability import analyze_line_singability, calculate_average_singability
from ghost_note.core.sound_patterns import analyze_sound_patterns
from ghost_note.core.stress import analyze_lines, count_feet, get_dominant_foot
from ghost_note.core.structure import analyze_structure_from_analyzed, is_section_transition
from ghost_note.utils.observability import (
    StructuredLoggerAdapter,
    add_span_attributes,
    create_counter,
    create_histogram,
    null_logger,
    record_exception,
    start_span,
)
from ghost_note.utils.telemetry import StructuredTelemetry

from .cache import AnalysisCache, create_store
from .config import AnalysisSettings

ProgressCallback = Callable[[str, int, str], None]

ANALYSIS_STAGES: Tuple[Tuple[str, int, str], ...] = (
    ("preprocess", 5, "Preprocessing poem text..."),
    ("phonetic", 20, "Looking up phonetics..."),
    ("stress", 15, "Analyzing stress patterns..."),
    ("meter", 15, "Detecting meter..."),
    ("rhyme", 10, "Analyzing rhyme scheme..."),
    ("soundPatterns", 10, "Detecting sound patterns..."),
    ("singability", 10, "Scoring singability..."),
    ("emotion", 10, "Analyzing emotional content..."),
    ("structure", 15, "Detecting verse/chorus structure..."),
)

TERNARY_FEET = frozenset({"anapest", "dactyl"})
BINARY_FEET = frozenset({"iamb", "trochee", "spondee"})
_STRESS_DEVIATION_SHARE = 0.3
_SYLLABLE_VARIANCE_SHARE = 0.4


def _round_half_up(value: float) -> int:
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


def hash_text(text: str) -> str:
    """djb2 variant (``h * 33 ^ c``) over UTF-16 code units, as 32-bit hex."""

    encoded = (text or "").encode("utf-16-le", "surrogatepass")
    value = 5381
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        value = ((value * 33) & 0xFFFFFFFF) ^ code_unit
    return format(value, "x")


class _ProgressTracker:
    """Turns stage starts into cumulative, weighted percentages."""

    def __init__(
        self,
        callback: Optional[ProgressCallback],
        logger: StructuredLoggerAdapter,
        telemetry: StructuredTelemetry,
    ) -> None:
        self._callback = callback
        self._logger = logger
        self._telemetry = telemetry
        self._weights = {name: weight for name, weight, _ in ANALYSIS_STAGES}
        self._messages = {name: message for name, _, message in ANALYSIS_STAGES}
        self._total = sum(self._weights.values())
        self._completed = 0

    def notify(self, stage: str, percent: int, message: str) -> None:
        self._telemetry.record_progress(stage, percent)
        if self._callback is None:
            return
        try:
            self._callback(stage, percent, message)
        except Exception as exc:
            self._logger.warning(
                "Progress callback failed",
                context={"stage": stage, "percent": percent, "error": str(exc)},
            )

    def start(self, stage: str) -> None:
        percent = _round_half_up(self._completed / self._total * 100)
        self._logger.debug("Stage started", context={"stage": stage, "percent": percent})
        self.notify(stage, percent, self._messages[stage])

    def complete(self, stage: str) -> None:
        self._completed += self._weights[stage]

    def finish(self) -> None:
        self.notify("complete", 100, "Analysis complete!")

    def cached(self) -> None:
        self.notify("cached", 100, "Loaded from cache")


# ---------------------------------------------------------------------------
# Pipeline building blocks
# ---------------------------------------------------------------------------


def syllabify_line(line_text: str, dictionary: PronunciationDictionary) -> AnalyzedLine:
    """Words, stress pattern and syllable count for one line; no singability yet."""

    words = [resolve_word(word, dictionary) for word in tokenize_words(line_text)]
    return AnalyzedLine(
        text=line_text,
        words=words,
        stress_pattern="".join(word.stress_pattern for word in words),
        syllable_count=sum(word.syllable_count for word in words),
        singability=SingabilityScore(),
    )


def build_analyzed_line(line_text: str, dictionary: PronunciationDictionary) -> AnalyzedLine:
    line = syllabify_line(line_text, dictionary)
    line.singability = analyze_line_singability(line.words)
    return line


def build_meter_analysis(stress_patterns: Sequence[str]) -> Tuple[MeterAnalysis, float]:
    """Poem-level meter and its regularity from per-line stress patterns."""

    reading = analyze_multi_line_meter(stress_patterns)
    if stress_patterns:
        total_feet = sum(count_feet(pattern, reading.foot_type) for pattern in stress_patterns)
        feet_per_line = _round_half_up(total_feet / len(stress_patterns))
    else:
        feet_per_line = 0

    combined = "".join(stress_patterns)
    meter = MeterAnalysis(
        pattern=combined,
        detected_meter=reading.meter_name,
        foot_type=reading.foot_type,
        feet_per_line=feet_per_line,
        confidence=reading.confidence,
        deviations=find_deviations(combined, reading.foot_type) if reading.foot_type != "unknown" else [],
    )
    return meter, reading.regularity


def identify_problems(stanzas: Sequence[AnalyzedStanza], meter: MeterAnalysis) -> List[ProblemReport]:
    """Stress mismatches, severe singability issues and syllable variance."""

    problems: List[ProblemReport] = []
    syllables_per_foot = 3 if meter.foot_type in TERNARY_FEET else 2
    expected_syllables = meter.feet_per_line * syllables_per_foot

    lines = [line for stanza in stanzas for line in stanza.lines]
    for line_index, line in enumerate(lines):
        if meter.foot_type != "unknown":
            deviations = find_deviations(line.stress_pattern, meter.foot_type)
            if len(deviations) > len(line.stress_pattern) * _STRESS_DEVIATION_SHARE:
                problems.extend(
                    ProblemReport(
                        line=line_index,
                        position=position,
                        type="stress_mismatch",
                        severity="medium",
                        description=(
                            f"Stress deviation at syllable {position + 1} "
                            f"breaks {foot_type_to_adjective(meter.foot_type)} pattern"
                        ),
                    )
                    for position in deviations
                )

        for spot in line.singability.problem_spots:
            if spot.severity != "low":
                problems.append(
                    ProblemReport(
                        line=line_index,
                        position=spot.position,
                        type="singability",
                        severity=spot.severity,
                        description=spot.issue,
                    )
                )

        if expected_syllables > 0:
            if abs(line.syllable_count - expected_syllables) > expected_syllables * _SYLLABLE_VARIANCE_SHARE:
                problems.append(
                    ProblemReport(
                        line=line_index,
                        position=0,
                        type="syllable_variance",
                        severity="low",
                        description=(
                            f"Line has {line.syllable_count} syllables "
                            f"(expected ~{expected_syllables})"
                        ),
                    )
                )
    return problems


def determine_time_signature(meter: MeterAnalysis) -> str:
    if meter.foot_type in TERNARY_FEET:
        return "6/8"
    if meter.foot_type in BINARY_FEET:
        return "4/4" if meter.feet_per_line >= 4 else "2/4"
    return "4/4"


def determine_tempo(arousal: float, tempo_range: Tuple[int, int]) -> int:
    low, high = tempo_range
    return _round_half_up(low + (high - low) * arousal)


def compute_phrase_breaks(stanzas: Sequence[AnalyzedStanza], song_structure: StructureAnalysis) -> List[int]:
    """Global line indices after which a melodic phrase should end.

    Breaks fall at stanza ends, after every second line of a stanza and at
    the end of a stanza that closes a section.
    """

    breaks: List[int] = []
    line_index = 0
    for stanza_index, stanza in enumerate(stanzas):
        last = len(stanza.lines) - 1
        for position in range(len(stanza.lines)):
            stanza_end = position == last
            section_end = stanza_end and is_section_transition(song_structure, stanza_index)
            if stanza_end or (position + 1) % 2 == 0 or section_end:
                breaks.append(line_index)
            line_index += 1
    return breaks


def detect_poem_form(
    preprocessed: PreprocessedPoem,
    stanzas: Sequence[AnalyzedStanza],
    meter: MeterAnalysis,
    regularity: float,
    rhyme_scheme: str,
) -> FormDetectionResult:
    data = create_form_detection_input(
        line_count=preprocessed.line_count,
        stanza_count=preprocessed.stanza_count,
        lines_per_stanza=[len(stanza) for stanza in preprocessed.stanzas],
        meter_foot_type=meter.foot_type,
        meter_name=meter.detected_meter,
        meter_confidence=meter.confidence,
        rhyme_scheme=rhyme_scheme,
        syllables_per_line=[line.syllable_count for stanza in stanzas for line in stanza.lines],
        regularity=regularity,
    )
    return detect_form(data)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class PoemAnalyzer:
    """Runs the analysis pipeline with caching, progress and instrumentation."""

    def __init__(
        self,
        dictionary: Optional[PronunciationDictionary] = None,
        cache: Optional[AnalysisCache] = None,
        settings: Optional[AnalysisSettings] = None,
        logger: Optional[StructuredLoggerAdapter] = None,
        telemetry: Optional[StructuredTelemetry] = None,
    ) -> None:
        self.settings = settings or AnalysisSettings.from_env()
        self._logger = (logger or null_logger()).bind(component="poem_analyzer")

        if dictionary is not None:
            self.dictionary = dictionary
        elif self.settings.cmudict_path:
            self.dictionary = PronunciationDictionary(self.settings.cmudict_path)
        else:
            self.dictionary = default_dictionary()

        self.cache = cache if cache is not None else AnalysisCache(
            create_store(self.settings.cache_path),
            ttl=self.settings.cache_ttl_seconds,
            logger=self._logger,
        )
        self.telemetry = telemetry or StructuredTelemetry()

        self._metric_analyses = create_counter(
            "analyses_total",
            "Poem analyses requested.",
        )
        self._metric_failures = create_counter(
            "analysis_failures_total",
            "Poem analyses that raised an exception.",
        )
        self._metric_cache_hits = create_counter(
            "cache_hits_total",
            "Analyses served from the cache.",
        )
        self._metric_cache_misses = create_counter(
            "cache_misses_total",
            "Analyses that missed the cache.",
        )
        self._metric_stage_duration = create_histogram(
            "stage_seconds",
            "Duration of individual analysis stages.",
            label_names=("stage",),
        )

    # Cache -----------------------------------------------------------------
    def _lookup_cache(self, content_hash: str, ttl: float) -> Optional[PoemAnalysis]:
        cached = self.cache.get(content_hash, ttl)
        if cached is None:
            self._metric_cache_misses.inc()
            self.telemetry.increment("analysis.cache_miss")
            return None
        self._metric_cache_hits.inc()
        self.telemetry.increment("analysis.cache_hit")
        self._logger.info("Returning cached analysis", context={"hash": content_hash})
        return cached

    def _resolve_options(
        self, use_cache: Optional[bool], cache_ttl: Optional[float]
    ) -> Tuple[bool, float]:
        return (
            self.settings.use_cache if use_cache is None else use_cache,
            self.settings.cache_ttl_seconds if cache_ttl is None else cache_ttl,
        )

    # Public API ------------------------------------------------------------
    async def analyze(
        self,
        text: str,
        *,
        use_cache: Optional[bool] = None,
        cache_ttl: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PoemAnalysis:
        """Analyse ``text``; ``cache_ttl`` is in seconds."""

        caching, ttl = self._resolve_options(use_cache, cache_ttl)
        progress = _ProgressTracker(on_progress, self._logger, self.telemetry)
        self._metric_analyses.inc()
        self.telemetry.start_trace("analyze_poem")

        if not text or not text.strip():
            self._logger.info("Empty text, returning default analysis")
            progress.finish()
            return PoemAnalysis.empty()

        content_hash = hash_text(text)
        self.telemetry.annotate("content_hash", content_hash)

        if caching:
            cached = self._lookup_cache(content_hash, ttl)
            if cached is not None:
                progress.cached()
                return cached

        with start_span(
            "ghost_note.analyze",
            {"text_length": len(text), "use_cache": caching},
        ) as span:
            try:
                analysis = await self._run_pipeline(text, progress)
            except Exception as exc:
                self._metric_failures.inc()
                record_exception(span, exc)
                self._logger.error(
                    "Poem analysis failed",
                    context={"hash": content_hash, "error": str(exc)},
                )
                raise
            add_span_attributes(
                span,
                {
                    "line_count": analysis.meta.line_count,
                    "form": analysis.form.form_type,
                },
            )

        if caching:
            self.cache.set(content_hash, analysis)

        progress.finish()
        self._logger.info(
            "Analysis complete",
            context={
                "hash": content_hash,
                "line_count": analysis.meta.line_count,
                "form": analysis.form.form_type,
                "problems": len(analysis.problems),
            },
        )
        return analysis

    async def analyze_incrementally(
        self,
        text: str,
        previous: Optional[PoemAnalysis],
        *,
        use_cache: Optional[bool] = None,
        cache_ttl: Optional[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PoemAnalysis:
        """Cache-gated full re-analysis.

        No part of ``previous`` is reused; an unchanged text is answered by the
        single cache lookup inside :meth:`analyze`.
        """

        if previous is not None:
            self._logger.debug(
                "Re-analysing edited poem",
                context={"previous_lines": previous.meta.line_count},
            )
        return await self.analyze(text, use_cache=use_cache, cache_ttl=cache_ttl, on_progress=on_progress)

    def get_latest_telemetry(self) -> Dict[str, Any]:
        return self.telemetry.latest_snapshot()

    # Pipeline --------------------------------------------------------------
    async def _stage(self, progress: _ProgressTracker, name: str) -> None:
        progress.start(name)
        await asyncio.sleep(0)

    @contextmanager
    def _measure(self, name: str) -> Iterator[None]:
        with self.telemetry.timer(f"analysis.{name}"), self._metric_stage_duration.labels(stage=name).time():
            yield

    async def _run_pipeline(self, text: str, progress: _ProgressTracker) -> PoemAnalysis:
        dictionary = self.dictionary

        await self._stage(progress, "preprocess")
        with self._measure("preprocess"):
            preprocessed = preprocess_poem(text)
            lines = get_all_lines(preprocessed)
        progress.complete("preprocess")

        await self._stage(progress, "phonetic")
        with self._measure("phonetic"):
            stanzas = [
                AnalyzedStanza(lines=[build_analyzed_line(line, dictionary) for line in stanza])
                for stanza in preprocessed.stanzas
            ]
            analyzed_lines = [line for stanza in stanzas for line in stanza.lines]
        progress.complete("phonetic")

        await self._stage(progress, "stress")
        with self._measure("stress"):
            stress_analyses = analyze_lines(analyzed_lines)
            stress_patterns = [analysis.pattern for analysis in stress_analyses]
        self.telemetry.annotate("dominant_foot", get_dominant_foot(stress_analyses))
        progress.complete("stress")

        await self._stage(progress, "meter")
        with self._measure("meter"):
            meter, regularity = build_meter_analysis(stress_patterns)
        progress.complete("meter")

        await self._stage(progress, "rhyme")
        with self._measure("rhyme"):
            rhyme = analyze_rhymes(lines, dictionary)
        progress.complete("rhyme")

        await self._stage(progress, "soundPatterns")
        with self._measure("soundPatterns"):
            sound_patterns = analyze_sound_patterns(lines, dictionary)
        progress.complete("soundPatterns")

        await self._stage(progress, "singability")
        with self._measure("singability"):
            average_singability = calculate_average_singability(
                [line.singability for line in analyzed_lines]
            )
        self.telemetry.annotate("average_singability", round(average_singability, 3))
        progress.complete("singability")

        await self._stage(progress, "emotion")
        with self._measure("emotion"):
            emotion = analyze_emotion(text, preprocessed.stanzas)
        progress.complete("emotion")

        await self._stage(progress, "structure")
        with self._measure("structure"):
            song_structure = analyze_structure_from_analyzed(stanzas)
        progress.complete("structure")

        form = detect_poem_form(preprocessed, stanzas, meter, regularity, rhyme.scheme)
        self.telemetry.record_form(
            form.form_type,
            form.confidence,
            [(alternative.form_type, alternative.confidence) for alternative in form.alternatives],
        )
        music = emotion.suggested_music_params

        return PoemAnalysis(
            meta=MetaInfo(
                line_count=preprocessed.line_count,
                stanza_count=preprocessed.stanza_count,
                word_count=count_words(preprocessed),
                syllable_count=sum(line.syllable_count for line in analyzed_lines),
            ),
            structure=PoemStructure(stanzas=stanzas),
            prosody=ProsodyAnalysis(meter=meter, rhyme=rhyme, regularity=regularity),
            sound_patterns=sound_patterns,
            emotion=emotion,
            form=form,
            problems=identify_problems(stanzas, meter),
            melody_suggestions=MelodySuggestions(
                time_signature=determine_time_signature(meter),
                tempo=determine_tempo(emotion.arousal, music.tempo_range),
                key="Am" if music.mode == "minor" else "C",
                mode=music.mode,
                phrase_breaks=compute_phrase_breaks(stanzas, song_structure),
            ),
            song_structure=song_structure,
        )


_DEFAULT_ANALYZER: Optional[PoemAnalyzer] = None
_DEFAULT_LOCK = threading.Lock()


def default_analyzer() -> PoemAnalyzer:
    """Shared analyzer configured from the environment."""

    global _DEFAULT_ANALYZER
    with _DEFAULT_LOCK:
        if _DEFAULT_ANALYZER is None:
            _DEFAULT_ANALYZER = PoemAnalyzer()
        return _DEFAULT_ANALYZER


async def analyze_poem(
    text: str,
    *,
    use_cache: Optional[bool] = None,
    cache_ttl: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> PoemAnalysis:
    return await default_analyzer().analyze(
        text, use_cache=use_cache, cache_ttl=cache_ttl, on_progress=on_progress
    )


async def analyze_incrementally(
    text: str,
    previous: Optional[PoemAnalysis],
    *,
    use_cache: Optional[bool] = None,
    cache_ttl: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> PoemAnalysis:
    return await default_analyzer().analyze_incrementally(
        text, previous, use_cache=use_cache, cache_ttl=cache_ttl, on_progress=on_progress
    )


__all__ = [
    "ANALYSIS_STAGES",
    "PoemAnalyzer",
    "ProgressCallback",
    "analyze_incrementally",
    "analyze_poem",
    "build_analyzed_line",
    "build_meter_analysis",
    "compute_phrase_breaks",
    "default_analyzer",
    "detect_poem_form",
    "determine_tempo",
    "determine_time_signature",
    "hash_text",
    "identify_problems",
    "syllabify_line",
]
