import pytest

from ghost_note.core.forms import (
    FORM_DEFINITIONS,
    FORM_PRIORITY,
    create_form_detection_input,
    detect_form,
    get_all_form_types,
    get_form_description,
    get_form_name,
    get_forms_by_category,
    is_sonnet_form,
)
from ghost_note.core.models import FormDetectionResult


def _sonnet_input(**overrides):
    values = dict(
        line_count=14,
        stanza_count=1,
        lines_per_stanza=[14],
        meter_foot_type="iamb",
        meter_name="iambic pentameter",
        meter_confidence=0.9,
        rhyme_scheme="ABABCDCDEFEFGG",
        syllables_per_line=[10] * 14,
        regularity=0.95,
    )
    values.update(overrides)
    return create_form_detection_input(**values)


def test_shakespearean_sonnet_scores_full_confidence():
    result = detect_form(_sonnet_input())

    assert result.form_type == "shakespearean_sonnet"
    assert result.form_name == "Shakespearean Sonnet"
    assert result.category == "fixed_form"
    assert result.confidence == pytest.approx(1.0)
    assert result.evidence.line_count_match
    assert result.evidence.rhyme_scheme_match
    assert result.evidence.meter_match
    assert result.evidence.syllable_pattern_match
    assert "Has 14 lines" in result.evidence.notes


def test_alternatives_rank_by_confidence_then_priority():
    result = detect_form(_sonnet_input())

    assert [(alt.form_type, round(alt.confidence, 2)) for alt in result.alternatives] == [
        ("sonnet", 0.9),
        ("heroic_couplet", 0.65),
        ("blank_verse", 0.65),
    ]


def test_petrarchan_octave_and_sestet():
    result = detect_form(
        _sonnet_input(stanza_count=2, lines_per_stanza=[8, 6], rhyme_scheme="ABBAABBACDECDE")
    )

    assert result.form_type == "petrarchan_sonnet"
    assert result.confidence == pytest.approx(1.0)
    assert result.evidence.stanza_structure_match


def test_haiku():
    data = create_form_detection_input(3, 1, [3], "unknown", "irregular", 0.2, "ABC", [5, 7, 5], 0.3)
    result = detect_form(data)

    assert data.avg_syllables_per_line == pytest.approx(17 / 3)
    assert result.form_type == "haiku"
    assert result.confidence == pytest.approx(1.0)
    assert [alt.form_type for alt in result.alternatives[:2]] == ["tercet", "free_verse"]
    assert result.alternatives[0].confidence == pytest.approx(0.7)
    assert result.alternatives[2].confidence == pytest.approx(0.35)


def test_limerick():
    data = create_form_detection_input(
        5, 1, [5], "anapest", "anapestic trimeter", 0.8, "AABBA", [9, 9, 6, 6, 9], 0.8
    )
    result = detect_form(data)

    assert result.form_type == "limerick"
    assert result.confidence == pytest.approx(1.0)


def test_tanka_and_cinquain_use_syllable_shapes():
    tanka = create_form_detection_input(5, 1, [5], "unknown", "irregular", 0.2, "ABCDE", [5, 7, 5, 7, 7], 0.3)
    cinquain = create_form_detection_input(5, 1, [5], "unknown", "irregular", 0.2, "ABCDE", [2, 4, 6, 8, 2], 0.3)

    assert detect_form(tanka).form_type == "tanka"
    assert detect_form(cinquain).form_type == "cinquain"


def test_irregular_unrhymed_text_is_free_verse():
    data = create_form_detection_input(
        7, 2, [3, 4], "unknown", "irregular", 0.1, "ABCDEFG", [3, 12, 7, 9, 4, 15, 6], 0.2
    )
    result = detect_form(data)

    assert result.form_type == "free_verse"
    assert result.category == "free"


def test_empty_input_returns_default_result():
    data = create_form_detection_input(0, 0, [], "unknown", "irregular", 0.0, "", [], 0.0)

    assert data.avg_syllables_per_line == 0.0
    assert detect_form(data) == FormDetectionResult()


def test_input_properties():
    data = _sonnet_input()

    assert data.is_iambic_pentameter
    assert data.rhyme_variety == pytest.approx(0.5)
    assert not _sonnet_input(meter_foot_type="trochee").is_iambic_pentameter


def test_form_catalogue_helpers():
    assert set(FORM_PRIORITY) == set(FORM_DEFINITIONS)
    assert get_all_form_types()[0] == "shakespearean_sonnet"
    assert get_all_form_types()[-1] == "free_verse"
    assert get_form_name("haiku") == "Haiku"
    assert get_form_name("nope") == "Unknown Form"
    assert get_form_description("blank_verse") == "Unrhymed iambic pentameter."
    assert get_form_description("nope") == ""
    assert get_forms_by_category("syllabic") == ["haiku", "tanka", "cinquain"]
    assert is_sonnet_form("sonnet")
    assert is_sonnet_form("spenserian_sonnet")
    assert not is_sonnet_form("haiku")
