"""Sentiment, arousal and named emotions, mapped onto musical parameters.

Polarity comes from VADER's compound score; the named emotions come from a
small intensity-weighted lexicon. Both are placed in valence/arousal space
and blended, and the blend picks the emotion whose music settings seed the
melody suggestions.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, List, Sequence, Tuple

from vaderSentiment.vaderSentiment import SentimentIntensityAnalyzer

from .models import EmotionalAnalysis, EmotionalArcEntry, SuggestedMusicParams

EMOTION_LEXICON: Dict[str, Dict[str, float]] = {
    "happy": {
        "joy": 1.0, "happy": 1.0, "joyful": 1.0, "delight": 0.9, "delighted": 0.9,
        "cheerful": 0.8, "merry": 0.8, "glad": 0.7, "pleased": 0.7, "content": 0.6,
        "smile": 0.7, "laugh": 0.8, "laughter": 0.8, "celebrate": 0.9, "bliss": 1.0,
        "blissful": 1.0, "ecstatic": 1.0, "elated": 0.9, "jubilant": 0.9, "radiant": 0.8,
        "bright": 0.6, "sunshine": 0.7, "wonderful": 0.8, "amazing": 0.8, "fantastic": 0.8,
        "brilliant": 0.7,
    },
    "sad": {
        "sad": 1.0, "sadness": 1.0, "sorrow": 1.0, "grief": 1.0, "grieve": 1.0,
        "mourn": 0.9, "mourning": 0.9, "weep": 0.9, "weeping": 0.9, "cry": 0.8,
        "crying": 0.8, "tears": 0.7, "tear": 0.6, "melancholy": 0.9, "melancholic": 0.9,
        "despair": 1.0, "hopeless": 0.9, "gloomy": 0.7, "gloom": 0.7, "misery": 1.0,
        "miserable": 1.0, "heartbreak": 1.0, "heartbroken": 1.0, "woe": 0.9, "lament": 0.8,
        "anguish": 1.0, "dejected": 0.8, "somber": 0.7, "bleak": 0.8,
    },
    "angry": {
        "angry": 1.0, "anger": 1.0, "rage": 1.0, "fury": 1.0, "furious": 1.0,
        "wrath": 1.0, "hate": 0.9, "hatred": 0.9, "loathe": 0.9, "despise": 0.8,
        "bitter": 0.7, "bitterness": 0.7, "resentment": 0.8, "resent": 0.7, "outrage": 0.9,
        "outraged": 0.9, "enraged": 1.0, "hostile": 0.8, "fierce": 0.7, "violent": 0.9,
        "vengeance": 0.9, "revenge": 0.8, "scorn": 0.7, "contempt": 0.8,
    },
    "peaceful": {
        "peace": 1.0, "peaceful": 1.0, "calm": 0.9, "calming": 0.9, "serene": 1.0,
        "serenity": 1.0, "tranquil": 1.0, "tranquility": 1.0, "quiet": 0.7, "stillness": 0.8,
        "still": 0.6, "gentle": 0.8, "soft": 0.6, "soothing": 0.9, "relaxed": 0.8,
        "rest": 0.6, "resting": 0.6, "harmony": 0.9, "harmonious": 0.9, "placid": 0.8,
        "mellow": 0.7, "ease": 0.7, "comfortable": 0.6, "content": 0.7, "dream": 0.6,
        "dreaming": 0.6,
    },
    "tense": {
        "tense": 1.0, "tension": 1.0, "anxious": 0.9, "anxiety": 0.9, "nervous": 0.8,
        "worry": 0.8, "worried": 0.8, "stress": 0.8, "stressed": 0.8, "restless": 0.7,
        "uneasy": 0.7, "dread": 0.9, "apprehension": 0.8, "suspense": 0.7, "agitated": 0.8,
        "turmoil": 0.9, "chaos": 0.8, "conflict": 0.7, "struggle": 0.7, "fight": 0.6,
        "storm": 0.7, "stormy": 0.7, "dark": 0.5, "darkness": 0.6, "shadow": 0.5,
        "shadows": 0.5,
    },
    "nostalgic": {
        "nostalgic": 1.0, "nostalgia": 1.0, "memory": 0.7, "memories": 0.7, "remember": 0.7,
        "remembrance": 0.8, "yesterday": 0.6, "past": 0.5, "ago": 0.4, "once": 0.4,
        "childhood": 0.7, "youth": 0.6, "young": 0.5, "old": 0.5, "ancient": 0.5,
        "forgotten": 0.7, "faded": 0.6, "bygone": 0.7, "longing": 0.8, "wistful": 0.9,
        "bittersweet": 0.8, "reminisce": 0.8, "echo": 0.5, "echoes": 0.5, "ghost": 0.6,
        "ghosts": 0.6,
    },
    "hopeful": {
        "hope": 1.0, "hopeful": 1.0, "hoping": 0.9, "dream": 0.7, "dreams": 0.7,
        "dreaming": 0.7, "wish": 0.7, "wishing": 0.7, "aspire": 0.8, "aspiration": 0.8,
        "believe": 0.8, "faith": 0.9, "trust": 0.7, "promise": 0.7, "tomorrow": 0.6,
        "future": 0.6, "new": 0.5, "begin": 0.6, "beginning": 0.6, "dawn": 0.7,
        "sunrise": 0.7, "light": 0.6, "rise": 0.6, "rising": 0.6, "grow": 0.5,
        "growing": 0.5, "bloom": 0.7, "spring": 0.6,
    },
    "fearful": {
        "fear": 1.0, "fearful": 1.0, "afraid": 1.0, "scared": 0.9, "terrified": 1.0,
        "terror": 1.0, "horror": 1.0, "horrified": 1.0, "dread": 0.9, "dreading": 0.9,
        "panic": 0.9, "fright": 0.8, "frightened": 0.8, "nightmare": 0.9, "haunt": 0.7,
        "haunted": 0.7, "creep": 0.6, "creeping": 0.6, "shiver": 0.6, "tremble": 0.7,
        "trembling": 0.7, "chill": 0.5, "cold": 0.4, "danger": 0.7, "dangerous": 0.7,
        "threat": 0.7, "doom": 0.9,
    },
    "loving": {
        "love": 1.0, "loving": 1.0, "beloved": 1.0, "adore": 0.9, "adoring": 0.9,
        "cherish": 0.9, "cherished": 0.9, "affection": 0.8, "affectionate": 0.8, "tender": 0.8,
        "tenderness": 0.8, "warm": 0.6, "warmth": 0.7, "embrace": 0.7, "embracing": 0.7,
        "kiss": 0.7, "caress": 0.7, "heart": 0.6, "sweetheart": 0.8, "darling": 0.8,
        "dear": 0.6, "devotion": 0.9, "devoted": 0.9, "passion": 0.9, "passionate": 0.9,
        "romance": 0.8, "romantic": 0.8,
    },
    "lonely": {
        "lonely": 1.0, "loneliness": 1.0, "alone": 0.8, "solitary": 0.7, "solitude": 0.6,
        "isolated": 0.8, "isolation": 0.8, "abandoned": 0.9, "forsaken": 0.9, "deserted": 0.8,
        "empty": 0.6, "emptiness": 0.7, "void": 0.7, "lost": 0.6, "missing": 0.6,
        "apart": 0.5, "distant": 0.5, "distance": 0.5, "far": 0.4, "away": 0.4,
        "gone": 0.5, "leaving": 0.5, "left": 0.5, "farewell": 0.6, "goodbye": 0.6,
        "parting": 0.6,
    },
}

# (valence, arousal), both in [0, 1]
EMOTION_TO_VA: Dict[str, Tuple[float, float]] = {
    "happy": (0.9, 0.7),
    "sad": (0.2, 0.3),
    "angry": (0.2, 0.9),
    "peaceful": (0.7, 0.2),
    "tense": (0.3, 0.8),
    "nostalgic": (0.4, 0.3),
    "hopeful": (0.8, 0.5),
    "fearful": (0.1, 0.8),
    "loving": (0.9, 0.5),
    "lonely": (0.2, 0.2),
}


@dataclass(frozen=True)
class MusicParams:
    mode: str
    tempo_range: Tuple[int, int]
    register: str


EMOTION_TO_MUSIC: Dict[str, MusicParams] = {
    "happy": MusicParams("major", (100, 140), "high"),
    "sad": MusicParams("minor", (60, 80), "low"),
    "angry": MusicParams("minor", (120, 160), "varied"),
    "peaceful": MusicParams("major", (60, 90), "middle"),
    "tense": MusicParams("minor", (80, 110), "middle"),
    "nostalgic": MusicParams("minor", (70, 90), "middle"),
    "hopeful": MusicParams("major", (90, 120), "middle"),
    "fearful": MusicParams("minor", (90, 130), "varied"),
    "loving": MusicParams("major", (70, 100), "middle"),
    "lonely": MusicParams("minor", (60, 80), "low"),
}

_WORD_SPLIT = re.compile(r"\W+")
_SENTIMENT_WEIGHT = 0.4
_KEYWORD_WEIGHT = 0.6
_DOMINANT_LIMIT = 3
_TRAJECTORY_THRESHOLD = 0.15
_VARIED_VARIANCE = 0.15


@dataclass
class SentimentScore:
    compound: float = 0.0
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 0.0
    polar_words: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class EmotionKeyword:
    word: str
    emotion: str
    intensity: float


@dataclass
class EmotionArc:
    entries: List[EmotionalArcEntry] = field(default_factory=list)
    trajectory: str = "stable"
    range: float = 0.0
    peak_stanza: int = 0


@lru_cache(maxsize=1)
def _sentiment_analyzer() -> SentimentIntensityAnalyzer:
    return SentimentIntensityAnalyzer()


def _words(text: str) -> List[str]:
    return [word for word in _WORD_SPLIT.split(text.lower()) if word]


def analyze_sentiment(text: str) -> SentimentScore:
    """VADER polarity for ``text`` plus the words its lexicon scored."""

    if not text or not text.strip():
        return SentimentScore()

    analyzer = _sentiment_analyzer()
    scores = analyzer.polarity_scores(text)
    return SentimentScore(
        compound=scores["compound"],
        positive=scores["pos"],
        negative=scores["neg"],
        neutral=scores["neu"],
        polar_words=[word for word in _words(text) if word in analyzer.lexicon],
    )


def detect_emotional_keywords(text: str) -> List[EmotionKeyword]:
    """Lexicon hits in first-seen order; a word may count for several emotions."""

    if not text:
        return []
    keywords: List[EmotionKeyword] = []
    for word in dict.fromkeys(_words(text)):
        for emotion, lexicon in EMOTION_LEXICON.items():
            if word in lexicon:
                keywords.append(EmotionKeyword(word, emotion, lexicon[word]))
    return keywords


def map_to_valence_arousal(sentiment: SentimentScore) -> Tuple[float, float]:
    valence = (max(-1.0, min(1.0, sentiment.compound)) + 1) / 2
    word_intensity = min(len(sentiment.polar_words) / 5, 1.0)
    arousal = (abs(sentiment.compound) + word_intensity) / 2
    return valence, arousal


def blend_keyword_emotions(keywords: Sequence[EmotionKeyword]) -> Tuple[float, float]:
    total = sum(keyword.intensity for keyword in keywords)
    if not keywords or total <= 0:
        return 0.5, 0.5
    valence = sum(EMOTION_TO_VA[k.emotion][0] * k.intensity for k in keywords) / total
    arousal = sum(EMOTION_TO_VA[k.emotion][1] * k.intensity for k in keywords) / total
    return valence, arousal


def nearest_emotion(valence: float, arousal: float) -> str:
    best, best_distance = "peaceful", math.inf
    for emotion, (target_valence, target_arousal) in EMOTION_TO_VA.items():
        distance = math.hypot(valence - target_valence, arousal - target_arousal)
        if distance < best_distance:
            best, best_distance = emotion, distance
    return best


def suggest_musical_parameters(
    overall_sentiment: float,
    valence: float,
    arousal: float,
    dominant_emotions: Sequence[str],
) -> SuggestedMusicParams:
    """Tempo range and register from the leading emotion, mode from polarity."""

    if dominant_emotions and dominant_emotions[0] in EMOTION_TO_MUSIC:
        params = EMOTION_TO_MUSIC[dominant_emotions[0]]
    else:
        params = EMOTION_TO_MUSIC[nearest_emotion(valence, arousal)]
    return SuggestedMusicParams(
        mode="major" if overall_sentiment >= 0 else "minor",
        tempo_range=params.tempo_range,
        register=params.register,
    )


def determine_trajectory(entries: Sequence[EmotionalArcEntry]) -> str:
    if len(entries) < 2:
        return "stable"

    third = math.ceil(len(entries) / 3)
    first = entries[:third]
    last = entries[-third:]
    difference = sum(e.sentiment for e in last) / len(last) - sum(e.sentiment for e in first) / len(first)
    if abs(difference) > _TRAJECTORY_THRESHOLD:
        return "rising" if difference > 0 else "falling"

    mean = sum(e.sentiment for e in entries) / len(entries)
    variance = sum((e.sentiment - mean) ** 2 for e in entries) / len(entries)
    if variance > _VARIED_VARIANCE:
        return "varied"
    return "stable"


def analyze_emotional_arc(stanzas: Sequence[Sequence[str]]) -> EmotionArc:
    if not stanzas:
        return EmotionArc()

    entries: List[EmotionalArcEntry] = []
    peak, peak_strength = 0, 0.0
    for index, stanza in enumerate(stanzas):
        text = " ".join(stanza)
        sentiment = max(-1.0, min(1.0, analyze_sentiment(text).compound))
        if abs(sentiment) > peak_strength:
            peak, peak_strength = index, abs(sentiment)
        entries.append(
            EmotionalArcEntry(
                stanza=index,
                sentiment=sentiment,
                keywords=[keyword.word for keyword in detect_emotional_keywords(text)],
            )
        )

    sentiments = [entry.sentiment for entry in entries]
    return EmotionArc(
        entries=entries,
        trajectory=determine_trajectory(entries),
        range=max(sentiments) - min(sentiments),
        peak_stanza=peak,
    )


def analyze_emotion(text: str, stanzas: Sequence[Sequence[str]]) -> EmotionalAnalysis:
    """Overall polarity, arousal, up to three dominant emotions and the arc."""

    sentiment = analyze_sentiment(text)
    keywords = detect_emotional_keywords(text)

    sentiment_valence, sentiment_arousal = map_to_valence_arousal(sentiment)
    keyword_valence, keyword_arousal = blend_keyword_emotions(keywords)
    valence = sentiment_valence * _SENTIMENT_WEIGHT + keyword_valence * _KEYWORD_WEIGHT
    arousal = sentiment_arousal * _SENTIMENT_WEIGHT + keyword_arousal * _KEYWORD_WEIGHT

    totals: Dict[str, float] = {}
    for keyword in keywords:
        totals[keyword.emotion] = totals.get(keyword.emotion, 0.0) + keyword.intensity
    ranked = sorted(totals.items(), key=lambda item: -item[1])
    dominant = [emotion for emotion, _ in ranked[:_DOMINANT_LIMIT]]
    if not dominant:
        dominant = [nearest_emotion(valence, arousal)]

    overall = max(-1.0, min(1.0, sentiment.compound))
    return EmotionalAnalysis(
        overall_sentiment=overall,
        arousal=max(0.0, min(1.0, arousal)),
        dominant_emotions=dominant,
        emotional_arc=analyze_emotional_arc(stanzas).entries,
        suggested_music_params=suggest_musical_parameters(overall, valence, arousal, dominant),
    )


__all__ = [
    "EMOTION_LEXICON",
    "EMOTION_TO_MUSIC",
    "EMOTION_TO_VA",
    "EmotionArc",
    "EmotionKeyword",
    "MusicParams",
    "SentimentScore",
    "analyze_emotion",
    "analyze_emotional_arc",
    "analyze_sentiment",
    "blend_keyword_emotions",
    "detect_emotional_keywords",
    "determine_trajectory",
    "map_to_valence_arousal",
    "nearest_emotion",
    "suggest_musical_parameters",
]
