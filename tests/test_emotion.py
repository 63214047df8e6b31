import pytest

from ghost_note.core.emotion import (
    EMOTION_TO_MUSIC,
    SentimentScore,
    analyze_emotion,
    analyze_emotional_arc,
    analyze_sentiment,
    blend_keyword_emotions,
    detect_emotional_keywords,
    determine_trajectory,
    map_to_valence_arousal,
    nearest_emotion,
    suggest_musical_parameters,
)
from ghost_note.core.models import EmotionalArcEntry


def _arc(*sentiments):
    return [EmotionalArcEntry(stanza=i, sentiment=value, keywords=[]) for i, value in enumerate(sentiments)]


def test_sentiment_polarity():
    assert analyze_sentiment("I love the bright sunshine and joy").compound > 0.5
    assert analyze_sentiment("Sorrow and tears, I grieve in despair").compound < -0.5
    assert analyze_sentiment("   ") == SentimentScore()


def test_positive_words_are_reported():
    assert "love" in analyze_sentiment("I love you").polar_words


def test_keywords_keep_first_seen_order_and_multiple_emotions():
    keywords = detect_emotional_keywords("Dream, dream of love")

    assert [(k.word, k.emotion, k.intensity) for k in keywords] == [
        ("dream", "peaceful", 0.6),
        ("dream", "hopeful", 0.7),
        ("love", "loving", 1.0),
    ]
    assert detect_emotional_keywords("") == []


def test_happy_text_suggests_bright_music():
    analysis = analyze_emotion("I love the bright sunshine and joy", [["I love the bright sunshine and joy"]])

    assert analysis.overall_sentiment > 0
    assert analysis.dominant_emotions == ["happy", "loving"]
    assert analysis.suggested_music_params.mode == "major"
    assert analysis.suggested_music_params.tempo_range == EMOTION_TO_MUSIC["happy"].tempo_range
    assert len(analysis.emotional_arc) == 1


def test_sad_text_suggests_minor_mode():
    analysis = analyze_emotion("Sorrow and tears, I grieve in despair", [["Sorrow and tears, I grieve in despair"]])

    assert analysis.dominant_emotions == ["sad"]
    assert analysis.suggested_music_params.mode == "minor"
    assert analysis.suggested_music_params.tempo_range == (60, 80)
    assert analysis.suggested_music_params.register == "low"


def test_text_without_keywords_falls_back_to_nearest_emotion():
    analysis = analyze_emotion("the table is on the floor", [["the table is on the floor"]])

    assert len(analysis.dominant_emotions) == 1
    assert 0.0 <= analysis.arousal <= 1.0


def test_valence_arousal_helpers():
    assert map_to_valence_arousal(SentimentScore(compound=1.0, polar_words=["a"] * 5)) == (1.0, 1.0)
    assert map_to_valence_arousal(SentimentScore()) == (0.5, 0.0)
    assert blend_keyword_emotions([]) == (0.5, 0.5)
    assert nearest_emotion(0.5, 0.3) == "nostalgic"
    assert nearest_emotion(0.9, 0.7) == "happy"


def test_mode_follows_polarity_not_emotion():
    params = suggest_musical_parameters(-0.2, 0.5, 0.5, ["happy"])

    assert params.mode == "minor"
    assert params.tempo_range == (100, 140)
    assert params.register == "high"


def test_trajectory():
    assert determine_trajectory(_arc(-0.5, 0.0, 0.5)) == "rising"
    assert determine_trajectory(_arc(0.5, 0.0, -0.5)) == "falling"
    assert determine_trajectory(_arc(0.8, -0.8, 0.8)) == "varied"
    assert determine_trajectory(_arc(0.1, 0.1, 0.1)) == "stable"
    assert determine_trajectory(_arc(0.9)) == "stable"


def test_emotional_arc_per_stanza():
    arc = analyze_emotional_arc([["I am so happy and glad"], ["I am sad and full of sorrow"]])

    assert [entry.stanza for entry in arc.entries] == [0, 1]
    assert arc.entries[0].sentiment > 0 > arc.entries[1].sentiment
    assert arc.entries[0].keywords == ["happy", "glad"]
    assert arc.trajectory == "falling"
    assert arc.range == pytest.approx(arc.entries[0].sentiment - arc.entries[1].sentiment)
    assert analyze_emotional_arc([]).entries == []
