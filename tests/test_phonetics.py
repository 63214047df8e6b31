from ghost_note.core.dictionary import PronunciationDictionary, base_phoneme, is_consonant, is_vowel, stress_digit
from ghost_note.core.phonetics import build_syllables, estimate_syllables, resolve_word, word_stress_pattern
from ghost_note.utils.syllables import estimate_stress_pattern, estimate_syllable_count


def test_phoneme_helpers():
    assert base_phoneme("AE1") == "AE"
    assert is_vowel("IY0")
    assert not is_vowel("K")
    assert is_consonant("NG")
    assert stress_digit("EY2") == 2
    assert stress_digit("T") is None


def test_stub_dictionary_reads_cmudict_file(stub_dictionary):
    assert stub_dictionary.lookup("Cat") == ["K", "AE1", "T"]
    assert stub_dictionary.lookup("cat,") == ["K", "AE1", "T"]
    assert stub_dictionary.lookup("pronouncing") is None
    assert "dog" in stub_dictionary
    assert stub_dictionary.lookup_all("away") == [["AH0", "W", "EY1"], ["AH0", "W", "EY2"]]


def test_dictionary_joins_hyphenated_compounds(stub_dictionary):
    assert stub_dictionary.lookup("cat-dog") == ["K", "AE1", "T", "D", "AO1", "G"]
    assert stub_dictionary.lookup("cat-zebra") is None


def test_missing_dictionary_file_leaves_lookup_empty(tmp_path):
    dictionary = PronunciationDictionary(tmp_path / "missing.txt", use_pronouncing=False)
    assert dictionary.lookup("cat") is None


def test_build_syllables_groups_codas_with_preceding_vowel():
    syllables = build_syllables(["T", "EY1", "B", "AH0", "L"])

    assert [s.phonemes for s in syllables] == [["T", "EY1", "B"], ["AH0", "L"]]
    assert [s.stress for s in syllables] == [1, 0]
    assert [s.vowel_phoneme for s in syllables] == ["EY", "AH"]
    assert not syllables[0].is_open


def test_build_syllables_marks_open_syllables():
    syllables = build_syllables(["B", "L", "UW1"])

    assert len(syllables) == 1
    assert syllables[0].is_open
    assert build_syllables([]) == []


def test_resolve_word_uses_dictionary(stub_dictionary):
    word = resolve_word("table", stub_dictionary)

    assert word.in_dictionary
    assert word.syllable_count == 2
    assert word.stress_pattern == "10"
    assert not any(s.estimated for s in word.syllables)


def test_resolve_word_estimates_unknown_words(stub_dictionary):
    word = resolve_word("glorbin", stub_dictionary)

    assert not word.in_dictionary
    assert word.stress_pattern == "10"
    assert all(s.estimated and s.phonemes == [] for s in word.syllables)
    assert word.syllables[-1].is_open
    assert word_stress_pattern("glorbin", stub_dictionary) == "10"


def test_estimated_syllables_follow_shared_helper():
    for word in ("celebration", "happily", "zorblax", "a"):
        syllables = estimate_syllables(word)
        assert len(syllables) == estimate_syllable_count(word)
        assert "".join(str(s.stress) for s in syllables) == estimate_stress_pattern(word)


def test_syllable_estimation_rules():
    assert estimate_syllable_count("") == 1
    assert estimate_syllable_count("make") == 1
    assert estimate_syllable_count("table") == 2
    assert estimate_syllable_count("jumped") == 1
    assert estimate_syllable_count("wanted") == 2
    assert estimate_stress_pattern("celebration") == "0010"
