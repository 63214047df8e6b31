from ghost_note.core.preprocess import (
    count_words,
    detect_stanzas,
    extract_punctuation,
    get_line,
    get_stanza,
    normalize_whitespace,
    preprocess_poem,
    reconstruct_text,
    tokenize_words,
)


def test_preprocess_splits_stanzas_on_blank_lines():
    poem = preprocess_poem("Roses are red\nViolets are blue\n\n\nSugar is sweet\r\n")

    assert poem.stanzas == [["Roses are red", "Violets are blue"], ["Sugar is sweet"]]
    assert poem.line_count == 3
    assert poem.stanza_count == 2
    assert poem.original.startswith("Roses")


def test_empty_and_whitespace_input_have_no_lines():
    for text in ("", "   \n\t\n  ", None):
        poem = preprocess_poem(text)
        assert poem.line_count == 0
        assert poem.stanza_count == 0
        assert poem.stanzas == []


def test_normalize_whitespace_collapses_spaces_and_tabs():
    assert normalize_whitespace("a\t b   c  \r\nd") == "a b c\nd"


def test_detect_stanzas_ignores_leading_blank_lines():
    assert detect_stanzas("\n\none\ntwo\n\nthree") == [["one", "two"], ["three"]]


def test_tokenize_words_keeps_contractions_and_dropped_g():
    assert tokenize_words("Don't stop believin', friend") == ["Don't", "stop", "believin'", "friend"]


def test_tokenize_words_keeps_hyphenated_compounds():
    assert tokenize_words("a well-known, rock-solid tune") == ["a", "well-known", "rock-solid", "tune"]


def test_tokenize_words_strips_punctuation():
    assert tokenize_words('"Hello," she said; "goodbye!"') == ["Hello", "she", "said", "goodbye"]
    assert tokenize_words("   ") == []


def test_extract_punctuation_reports_positions():
    marks = extract_punctuation("Wait, what?")
    assert [(mark.char, mark.position) for mark in marks] == [(",", 4), ("?", 10)]


def test_poem_helpers_round_trip_text():
    poem = preprocess_poem("one two\nthree\n\nfour five six")

    assert count_words(poem) == 6
    assert get_line(poem, 2) == "four five six"
    assert get_line(poem, 3) is None
    assert get_stanza(poem, 1) == ["four five six"]
    assert get_stanza(poem, -1) is None
    assert reconstruct_text(poem.stanzas) == "one two\nthree\n\nfour five six"
