import asyncio
import json

import pytest

from ghost_note.app.cache import AnalysisCache, MemoryCacheStore, NullCacheStore
from ghost_note.app.config import AnalysisSettings
from ghost_note.app.orchestrator import (
    PoemAnalyzer,
    build_analyzed_line,
    build_meter_analysis,
    compute_phrase_breaks,
    determine_tempo,
    determine_time_signature,
    hash_text,
    identify_problems,
    syllabify_line,
)
from ghost_note.core.models import AnalyzedStanza, MeterAnalysis, PoemAnalysis, StructureAnalysis

SONNET = """alone above again away tonight
believe become return begin agree
because before about across delight
arise awake complete descend degree
forget pursue suppose retreat around
release alive adore asleep remain
aloud among afraid alone profound
above again away believe explain
become return begin because untold
before about across arise belong
awake complete descend forget behold
pursue suppose retreat release along
alive adore asleep aloud enjoy
among afraid alone above destroy"""

HAIKU = "An old silent pond\nA frog jumps into the lake\nSplash! Silence returns."

EXPECTED_STAGES = [
    ("preprocess", 0),
    ("phonetic", 5),
    ("stress", 23),
    ("meter", 36),
    ("rhyme", 50),
    ("soundPatterns", 59),
    ("singability", 68),
    ("emotion", 77),
    ("structure", 86),
    ("complete", 100),
]


class ExplodingDictionary:
    def lookup(self, word):
        raise RuntimeError("dictionary unavailable")

    def lookup_all(self, word):
        raise RuntimeError("dictionary unavailable")


def _analyzer(dictionary, store=None):
    return PoemAnalyzer(
        dictionary=dictionary,
        cache=AnalysisCache(store if store is not None else MemoryCacheStore()),
        settings=AnalysisSettings(),
    )


def _recorder():
    events = []

    def on_progress(stage, percent, message):
        events.append((stage, percent, message))

    return events, on_progress


def test_hash_text_is_deterministic_32_bit_hex():
    assert hash_text("") == "1505"
    assert hash_text("a") == "2b5c4"
    assert hash_text("a poem") == hash_text("a poem")
    assert hash_text("a poem") != hash_text("a poem.")
    assert int(hash_text("x" * 500), 16) < 2 ** 32
    assert hash_text("\U0001F600") != hash_text("")


def test_empty_text_returns_empty_analysis(stub_dictionary):
    events, on_progress = _recorder()
    analyzer = _analyzer(stub_dictionary)

    result = asyncio.run(analyzer.analyze("  \n\t ", on_progress=on_progress))

    assert result == PoemAnalysis.empty()
    assert events == [("complete", 100, "Analysis complete!")]


def test_progress_reports_weighted_stages(stub_dictionary):
    events, on_progress = _recorder()
    analyzer = _analyzer(stub_dictionary)

    asyncio.run(analyzer.analyze("the cat\nthe hat", on_progress=on_progress))

    assert [(stage, percent) for stage, percent, _ in events] == EXPECTED_STAGES
    assert events[0][2] == "Preprocessing poem text..."
    assert events[-1][2] == "Analysis complete!"


def test_second_call_is_served_from_cache(stub_dictionary):
    store = MemoryCacheStore()
    analyzer = _analyzer(stub_dictionary, store)
    first = asyncio.run(analyzer.analyze("the cat\nthe hat"))

    events, on_progress = _recorder()
    second = asyncio.run(analyzer.analyze("the cat\nthe hat", on_progress=on_progress))

    assert second == first
    assert events == [("cached", 100, "Loaded from cache")]
    assert len(store) == 1
    assert analyzer.get_latest_telemetry()["counters"]["analysis.cache_hit"] == 1.0


def test_cache_can_be_bypassed_per_call(stub_dictionary):
    store = MemoryCacheStore()
    analyzer = _analyzer(stub_dictionary, store)

    asyncio.run(analyzer.analyze("the cat", use_cache=False))
    assert len(store) == 0

    events, on_progress = _recorder()
    asyncio.run(analyzer.analyze("the cat", use_cache=False, on_progress=on_progress))
    assert events[-1][0] == "complete"
    assert len(events) == len(EXPECTED_STAGES)


def test_failing_progress_callback_does_not_abort(stub_dictionary):
    def on_progress(stage, percent, message):
        raise ValueError("renderer crashed")

    result = asyncio.run(_analyzer(stub_dictionary).analyze("the cat", on_progress=on_progress))

    assert result.meta.line_count == 1


def test_pipeline_errors_propagate():
    analyzer = _analyzer(ExplodingDictionary(), NullCacheStore())

    with pytest.raises(RuntimeError, match="dictionary unavailable"):
        asyncio.run(analyzer.analyze("the cat"))


def test_analysis_records_stage_timings(stub_dictionary):
    analyzer = _analyzer(stub_dictionary)
    asyncio.run(analyzer.analyze("the cat\nthe hat"))

    telemetry = analyzer.get_latest_telemetry()
    assert list(telemetry["timings"]) == [f"analysis.{stage}" for stage, _ in EXPECTED_STAGES[:-1]]
    assert telemetry["metadata"]["content_hash"] == hash_text("the cat\nthe hat")
    assert "dominant_foot" in telemetry["metadata"]


def test_meta_counts(stub_dictionary):
    result = asyncio.run(_analyzer(stub_dictionary).analyze("the cat sat\n\ntable blue"))

    assert result.meta.line_count == 2
    assert result.meta.stanza_count == 2
    assert result.meta.word_count == 5
    assert result.meta.syllable_count == 6
    assert len(result.structure.stanzas) == 2


def test_sonnet_end_to_end(dictionary):
    result = asyncio.run(_analyzer(dictionary).analyze(SONNET))

    assert result.prosody.rhyme.scheme == "ABABCDCDEFEFGG"
    assert result.prosody.meter.detected_meter == "iambic pentameter"
    assert result.prosody.meter.feet_per_line == 5
    assert result.form.form_type == "shakespearean_sonnet"
    assert result.form.confidence == pytest.approx(1.0)
    assert result.melody_suggestions.time_signature == "4/4"
    assert result.melody_suggestions.phrase_breaks == [1, 3, 5, 7, 9, 11, 13]
    assert result.song_structure.summary == "Single stanza poem"


def test_haiku_end_to_end(dictionary):
    result = asyncio.run(_analyzer(dictionary).analyze(HAIKU))

    syllables = [line.syllable_count for line in result.structure.stanzas[0].lines]
    assert syllables == [5, 7, 5]
    assert result.prosody.rhyme.scheme == "ABC"
    assert result.form.form_type == "haiku"
    assert all(alt.confidence < result.form.confidence for alt in result.form.alternatives)


def test_incremental_analysis_uses_cache_when_previous_given(stub_dictionary):
    analyzer = _analyzer(stub_dictionary)
    previous = asyncio.run(analyzer.analyze_incrementally("the cat", None))

    events, on_progress = _recorder()
    again = asyncio.run(analyzer.analyze_incrementally("the cat", previous, on_progress=on_progress))
    assert again == previous
    assert events == [("cached", 100, "Loaded from cache")]

    events, on_progress = _recorder()
    changed = asyncio.run(analyzer.analyze_incrementally("the hat", previous, on_progress=on_progress))
    assert changed.structure.stanzas[0].lines[0].text == "the hat"
    assert events[-1] == ("complete", 100, "Analysis complete!")


def test_incremental_analysis_honours_use_cache(stub_dictionary):
    analyzer = _analyzer(stub_dictionary)
    previous = asyncio.run(analyzer.analyze("the cat"))

    events, on_progress = _recorder()
    asyncio.run(analyzer.analyze_incrementally("the cat", previous, use_cache=False, on_progress=on_progress))

    assert len(events) == len(EXPECTED_STAGES)


def test_build_meter_analysis():
    meter, regularity = build_meter_analysis(["0101010101", "0101010101"])

    assert meter.detected_meter == "iambic pentameter"
    assert meter.feet_per_line == 5
    assert meter.pattern == "0101010101" * 2
    assert meter.deviations == []
    assert regularity == pytest.approx(1.0)

    empty, empty_regularity = build_meter_analysis([])
    assert empty.detected_meter == "irregular"
    assert empty.feet_per_line == 0
    assert empty_regularity == 0.0


def test_identify_problems_reports_each_kind(stub_dictionary):
    stanza = AnalyzedStanza(lines=[build_analyzed_line("strengths", stub_dictionary)])
    meter = MeterAnalysis(detected_meter="iambic pentameter", foot_type="iamb", feet_per_line=5)

    problems = identify_problems([stanza], meter)

    assert [problem.type for problem in problems] == ["stress_mismatch", "singability", "syllable_variance"]
    assert problems[0].description == "Stress deviation at syllable 1 breaks iambic pattern"
    assert problems[1].severity == "high"
    assert problems[1].description == 'Consonant cluster in "strengths": Consider "st-" or softer opening'
    assert problems[2].description == "Line has 1 syllables (expected ~10)"


def test_unknown_meter_skips_stress_and_variance_checks(stub_dictionary):
    stanza = AnalyzedStanza(lines=[build_analyzed_line("cat", stub_dictionary)])

    assert identify_problems([stanza], MeterAnalysis()) == []


def test_syllabify_line_leaves_singability_empty(stub_dictionary):
    line = syllabify_line("table cat", stub_dictionary)

    assert line.stress_pattern == "101"
    assert line.syllable_count == 3
    assert line.singability.line_score == 0.0


def test_time_signature_and_tempo():
    assert determine_time_signature(MeterAnalysis(foot_type="dactyl", feet_per_line=4)) == "6/8"
    assert determine_time_signature(MeterAnalysis(foot_type="iamb", feet_per_line=5)) == "4/4"
    assert determine_time_signature(MeterAnalysis(foot_type="trochee", feet_per_line=3)) == "2/4"
    assert determine_time_signature(MeterAnalysis()) == "4/4"
    assert determine_tempo(0.5, (60, 80)) == 70
    assert determine_tempo(0.25, (100, 140)) == 110
    assert determine_tempo(0.0125, (60, 80)) == 60


def test_phrase_breaks_follow_couplets_and_stanza_ends(stub_dictionary):
    stanzas = [
        AnalyzedStanza(lines=[syllabify_line(text, stub_dictionary) for text in ("cat", "hat", "bat")]),
        AnalyzedStanza(lines=[syllabify_line(text, stub_dictionary) for text in ("dog", "fog", "blue")]),
    ]

    assert compute_phrase_breaks(stanzas, StructureAnalysis()) == [1, 2, 4, 5]


def test_settings_drive_default_cache(stub_dictionary):
    analyzer = PoemAnalyzer(dictionary=stub_dictionary, settings=AnalysisSettings(use_cache=False))
    asyncio.run(analyzer.analyze("the cat"))

    assert isinstance(analyzer.cache.store, MemoryCacheStore)
    assert len(analyzer.cache.store) == 0


def test_settings_select_sqlite_cache(tmp_path, stub_dictionary):
    settings = AnalysisSettings(cache_path=str(tmp_path / "cache.db"), cache_ttl_seconds=60)
    analyzer = PoemAnalyzer(dictionary=stub_dictionary, settings=settings)
    first = asyncio.run(analyzer.analyze("the cat"))

    reopened = PoemAnalyzer(dictionary=stub_dictionary, settings=settings)
    assert reopened.cache.ttl == 60
    assert asyncio.run(reopened.analyze("the cat")) == first


def test_incremental_analysis_picks_up_added_lines(stub_dictionary):
    analyzer = _analyzer(stub_dictionary)
    previous = asyncio.run(analyzer.analyze_incrementally("the cat", None))

    grown = asyncio.run(analyzer.analyze_incrementally("the cat\nthe hat\nthe dog", previous))

    assert grown.meta.line_count == previous.meta.line_count + 2
    assert [line.text for line in grown.structure.stanzas[0].lines] == ["the cat", "the hat", "the dog"]
    assert analyzer.get_latest_telemetry()["counters"] == {"analysis.cache_miss": 1.0}


def _long_poem(line_total):
    words = ["cat", "hat", "dog", "fog", "table", "blue", "sing", "song"]
    return "\n".join(f"the {words[index % len(words)]}" for index in range(line_total))


@pytest.mark.parametrize(
    "text",
    [
        "...\n!!!",
        "the cat\r\nthe hat",
        "the cat\rthe hat\r\rthe dog",
        "table, blue!\n--\nthe cat",
        _long_poem(60),
    ],
    ids=["punctuation-only", "crlf", "cr", "mixed", "sixty-lines"],
)
def test_result_invariants_hold(stub_dictionary, text):
    result = asyncio.run(_analyzer(stub_dictionary).analyze(text))

    lines = [line for stanza in result.structure.stanzas for line in stanza.lines]
    assert len(lines) == result.meta.line_count
    assert sum(len(line.stress_pattern) for line in lines) == result.meta.syllable_count
    assert all(len(line.stress_pattern) == line.syllable_count for line in lines)
    assert len(result.prosody.rhyme.scheme) == result.meta.line_count

    strengths = [
        occurrence.strength
        for line in result.sound_patterns.lines
        for occurrence in line.alliterations + line.assonances + line.consonances
    ]
    scores = [
        result.prosody.regularity,
        result.prosody.meter.confidence,
        result.form.confidence,
        *(alternative.confidence for alternative in result.form.alternatives),
        *strengths,
    ]
    assert all(0.0 <= score <= 1.0 for score in scores)


def test_malformed_cache_record_is_replaced_by_fresh_analysis(stub_dictionary):
    store = MemoryCacheStore()
    analyzer = _analyzer(stub_dictionary, store)
    key = analyzer.cache.key_for(hash_text("the cat"))
    store.set(key, json.dumps({"hash": hash_text("the cat"), "timestamp": "yesterday", "analysis": {}}))

    events, on_progress = _recorder()
    result = asyncio.run(analyzer.analyze("the cat", on_progress=on_progress))

    assert result.meta.line_count == 1
    assert events[-1] == ("complete", 100, "Analysis complete!")
    assert json.loads(store.get(key))["analysis"]["meta"]["lineCount"] == 1


def test_singability_stage_reports_average(stub_dictionary):
    analyzer = _analyzer(stub_dictionary)
    result = asyncio.run(analyzer.analyze("the cat\nthe hat"))

    lines = result.structure.stanzas[0].lines
    assert all(line.singability.syllable_scores for line in lines)
    expected = sum(line.singability.line_score for line in lines) / len(lines)
    metadata = analyzer.get_latest_telemetry()["metadata"]
    assert metadata["average_singability"] == pytest.approx(round(expected, 3))


def test_telemetry_keeps_progress_timeline(stub_dictionary):
    analyzer = _analyzer(stub_dictionary)

    asyncio.run(analyzer.analyze("the cat\nthe hat"))
    assert analyzer.telemetry.progress_timeline() == EXPECTED_STAGES

    asyncio.run(analyzer.analyze("the cat\nthe hat"))
    assert analyzer.telemetry.progress_timeline() == [("cached", 100)]
    assert analyzer.get_latest_telemetry()["progress"][0]["stage"] == "cached"


def test_telemetry_records_detected_form(dictionary):
    analyzer = _analyzer(dictionary)
    result = asyncio.run(analyzer.analyze(HAIKU))

    form = analyzer.get_latest_telemetry()["form"]
    assert form["form_type"] == "haiku"
    assert form["confidence"] == pytest.approx(result.form.confidence, abs=1e-4)
    assert [entry["form_type"] for entry in form["alternatives"]] == [
        alternative.form_type for alternative in result.form.alternatives
    ]


def test_trochaic_problem_description(stub_dictionary):
    stanza = AnalyzedStanza(lines=[build_analyzed_line("about", stub_dictionary)])
    meter = MeterAnalysis(detected_meter="trochaic dimeter", foot_type="trochee", feet_per_line=1)

    problems = identify_problems([stanza], meter)

    assert problems[0].type == "stress_mismatch"
    assert problems[0].description.endswith("breaks trochaic pattern")
