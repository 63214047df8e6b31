from ghost_note.core.rhyme import (
    analyze_rhymes,
    calculate_rhyme_density,
    classify_rhyme,
    detect_rhyme_scheme,
    does_rhyme,
    find_internal_rhymes,
    find_rhyming_words,
    get_last_word,
    get_rhyming_part,
    identify_rhyme_form,
    is_perfect_rhyme,
    rhyme_quality_score,
    scheme_label,
)


def test_rhyming_part_starts_at_last_stressed_vowel():
    assert get_rhyming_part(["T", "EY1", "B", "AH0", "L"]) == ["EY1", "B", "AH0", "L"]
    assert get_rhyming_part(["AH0", "W", "EY2"]) == ["EY2"]
    assert get_rhyming_part(["AH0", "L"]) == ["AH0", "L"]
    assert get_rhyming_part([]) == []


def test_classify_rhyme(stub_dictionary):
    assert classify_rhyme("cat", "hat", stub_dictionary) == "perfect"
    assert is_perfect_rhyme("dog", "fog", stub_dictionary)
    assert classify_rhyme("sing", "song", stub_dictionary) == "slant"
    assert classify_rhyme("cat", "dog", stub_dictionary) == "none"
    assert classify_rhyme("cat", "zebra", stub_dictionary) == "none"
    assert does_rhyme("sing", "song", stub_dictionary)
    assert rhyme_quality_score("cat", "hat", stub_dictionary) == 1.0
    assert rhyme_quality_score("sing", "song", stub_dictionary) == 0.75


def test_get_last_word_strips_punctuation():
    assert get_last_word("Hello, World!") == "world"
    assert get_last_word("...") == ""
    assert get_last_word("   ") == ""


def test_scheme_labels_extend_past_the_alphabet():
    assert scheme_label(0) == "A"
    assert scheme_label(25) == "Z"
    assert scheme_label(26) == "a"
    assert scheme_label(52) == chr(0x100)


def test_detect_rhyme_scheme_alternating(stub_dictionary):
    lines = ["Here sat the cat", "beside a dog", "who wore a hat", "inside the fog"]
    assert detect_rhyme_scheme(lines, stub_dictionary) == "ABAB"


def test_unknown_and_empty_end_words_get_fresh_letters(stub_dictionary):
    assert detect_rhyme_scheme(["xyzzy", "plugh"], stub_dictionary) == "AB"
    assert detect_rhyme_scheme(["cat", "...", "hat"], stub_dictionary) == "ABA"


def test_analyze_rhymes_builds_groups(stub_dictionary):
    analysis = analyze_rhymes(["the cat", "a dog", "the hat", "the fog"], stub_dictionary)

    assert analysis.scheme == "ABAB"
    group = analysis.rhyme_groups["A"]
    assert group.lines == [0, 2]
    assert group.rhyme_type == "perfect"
    assert group.end_words == ["cat", "hat"]
    assert analyze_rhymes([], stub_dictionary).scheme == ""


def test_internal_rhymes_report_positions(stub_dictionary):
    rhymes = find_internal_rhymes("the cat and hat", stub_dictionary, line_number=3)

    assert len(rhymes) == 1
    assert rhymes[0].line == 3
    assert rhymes[0].words == ["cat", "hat"]
    assert rhymes[0].positions == [4, 12]


def test_rhyme_density_and_search(stub_dictionary):
    assert calculate_rhyme_density("cat hat dog", stub_dictionary) == 1 / 3
    assert calculate_rhyme_density("cat", stub_dictionary) == 0.0
    assert find_rhyming_words("sing", ["song", "cat", "sing", "dog"], stub_dictionary) == [("song", "slant")]
    assert find_rhyming_words("sing", ["song"], stub_dictionary, min_type="perfect") == []


def test_identify_rhyme_form():
    assert identify_rhyme_form("AABB") == "couplets"
    assert identify_rhyme_form("AABBCCDDEE") == "couplets"
    assert identify_rhyme_form("ABAB") == "alternate"
    assert identify_rhyme_form("ABABCDCDEFEFGG") == "Shakespearean sonnet"
    assert identify_rhyme_form("ABCDEFGHIJ") == "free verse (minimal rhyme)"
    assert identify_rhyme_form("") == "none"
