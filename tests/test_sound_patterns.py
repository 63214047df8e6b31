import pytest

from ghost_note.core.models import LineSoundPatterns, SoundPatternOccurrence
from ghost_note.core.sound_patterns import (
    analyze_sound_patterns,
    calculate_pattern_strength,
    calculate_singability_impact,
    describe_sound_pattern,
    detect_alliteration,
    detect_assonance,
    detect_consonance,
    filter_by_strength,
    get_all_patterns,
    get_strongest_pattern,
    has_sound_patterns,
)


def _occurrence(pattern_type, sound, words, strength):
    return SoundPatternOccurrence(
        type=pattern_type,
        sound=sound,
        words=words,
        positions=list(range(len(words))),
        line_number=0,
        strength=strength,
    )


def test_peter_piper_alliterates_on_p(dictionary):
    patterns = detect_alliteration("Peter Piper picked a peck of pickled peppers", 0, dictionary)

    p_sounds = [pattern for pattern in patterns if pattern.sound == "P"]
    assert len(p_sounds) == 1
    assert p_sounds[0].words == ["peter", "piper", "picked", "peck", "pickled", "peppers"]
    assert p_sounds[0].type == "alliteration"


def test_alliteration_uses_first_onset_consonant(stub_dictionary):
    patterns = detect_alliteration("sing song strengths", 2, stub_dictionary)

    assert [(p.sound, p.words) for p in patterns] == [("S", ["sing", "song", "strengths"])]
    assert patterns[0].positions == [0, 5, 10]
    assert patterns[0].line_number == 2


def test_assonance_groups_shared_vowels(stub_dictionary):
    patterns = detect_assonance("cat hat bat", 0, stub_dictionary)

    assert [(p.sound, p.words) for p in patterns] == [("AE", ["cat", "hat", "bat"])]


def test_common_consonants_need_three_words_and_weigh_less(stub_dictionary):
    patterns = detect_consonance("cat hat bat", 0, stub_dictionary)

    assert [p.sound for p in patterns] == ["T"]
    expected = calculate_pattern_strength([0, 4, 8], len("cat hat bat"), 3) * 0.7
    assert patterns[0].strength == pytest.approx(expected)
    assert detect_consonance("cat hat", 0, stub_dictionary) == []


def test_pattern_strength():
    assert calculate_pattern_strength([0], 10, 1) == 0.0
    assert calculate_pattern_strength([0, 4, 8], 11, 3) == pytest.approx(0.5 * (1 - (8 / 11) * 0.5))
    assert calculate_pattern_strength([0, 1], 0, 2) == 0.0


def test_analyze_sound_patterns_summary(stub_dictionary):
    analysis = analyze_sound_patterns(["cat hat bat", "xyzzy"], stub_dictionary)
    summary = analysis.summary

    assert summary.alliteration_count == 0
    assert summary.assonance_count == 1
    assert summary.consonance_count == 1
    assert summary.density == pytest.approx(0.2)
    assert summary.prominent_assonances == ["AE"]
    assert [line.line_number for line in analysis.lines] == [0, 1]
    assert not has_sound_patterns(analysis.lines[1])
    assert analyze_sound_patterns([], stub_dictionary).summary.density == 0.0


def test_singability_impact_rewards_moderate_patterns():
    patterns = LineSoundPatterns(
        line_number=0,
        text="",
        alliterations=[_occurrence("alliteration", "P", ["a", "b"], 0.8)],
    )
    assert calculate_singability_impact(patterns) == pytest.approx(0.07)

    crowded = LineSoundPatterns(
        line_number=0,
        text="",
        alliterations=[_occurrence("alliteration", str(i), ["a", "b"], 0.1) for i in range(10)],
    )
    assert calculate_singability_impact(crowded) == pytest.approx(-0.14)


def test_describe_and_strongest_pattern():
    weak = _occurrence("alliteration", "P", ["peter", "piper", "picked", "peck"], 0.4)
    strong = _occurrence("assonance", "AE", ["cat", "hat"], 0.9)

    assert describe_sound_pattern(weak) == 'Alliteration on "p" sound: peter, piper, picked (+1 more)'
    assert describe_sound_pattern(strong) == 'Assonance with "a" vowel: cat, hat'

    patterns = LineSoundPatterns(line_number=0, text="", alliterations=[weak], assonances=[strong])
    assert get_strongest_pattern(patterns) is strong
    assert get_strongest_pattern(LineSoundPatterns(line_number=0, text="")) is None


def test_filter_by_strength_keeps_patterns_at_or_above_threshold():
    weak = _occurrence("consonance", "T", ["cat", "hat"], 0.3)
    edge = _occurrence("alliteration", "S", ["sing", "song"], 0.5)
    strong = _occurrence("assonance", "AE", ["cat", "hat"], 0.9)
    patterns = LineSoundPatterns(
        line_number=0, text="", alliterations=[edge], assonances=[strong], consonances=[weak]
    )

    assert filter_by_strength(get_all_patterns(patterns), 0.5) == [edge, strong]
    assert filter_by_strength([], 0.1) == []
