"""Core poem analysis: phonetics, prosody, sound, emotion, structure and form."""

from .dictionary import PronunciationDictionary, default_dictionary
from .emotion import analyze_emotion, analyze_sentiment
from .forms import (
    FORM_DEFINITIONS,
    FORM_PRIORITY,
    FormDetectionInput,
    create_form_detection_input,
    detect_form,
)
from .meter import analyze_multi_line_meter, detect_meter
from .models import PoemAnalysis, Record
from .phonetics import build_syllables, resolve_word
from .phrases import analyze_line_phrases, analyze_poem_phrases
from .preprocess import preprocess_poem
from .rhyme import analyze_rhymes, detect_rhyme_scheme
from .singability import analyze_line_singability
from .sound_patterns import analyze_sound_patterns
from .stress import classify_foot
from .structure import analyze_structure

__all__ = [
    "FORM_DEFINITIONS",
    "FORM_PRIORITY",
    "FormDetectionInput",
    "PoemAnalysis",
    "PronunciationDictionary",
    "Record",
    "analyze_emotion",
    "analyze_line_phrases",
    "analyze_line_singability",
    "analyze_multi_line_meter",
    "analyze_poem_phrases",
    "analyze_rhymes",
    "analyze_sentiment",
    "analyze_sound_patterns",
    "analyze_structure",
    "build_syllables",
    "classify_foot",
    "create_form_detection_input",
    "default_dictionary",
    "detect_form",
    "detect_meter",
    "detect_rhyme_scheme",
    "preprocess_poem",
    "resolve_word",
]
