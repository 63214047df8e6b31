"""Text normalisation, stanza detection and word tokenisation."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

from .models import PreprocessedPoem

PUNCTUATION_PATTERN = re.compile(r"[.,!?;:'\"—–\-()\[\]{}…]")

_CONTRACTION_PATTERN = re.compile(r"^[a-zA-Z]+'[a-zA-Z]+$")
_CONTRACTION_EDGES = re.compile(r"^[^\w']+|[^\w']+$", re.ASCII)
_HYPHEN_EDGES = re.compile(r"^[^\w-]+|[^\w-]+$", re.ASCII)
_WORD_PATTERN = re.compile(r"[\w']+", re.ASCII)
_DROPPED_G_PATTERN = re.compile(r"[aeiouy]n'$", re.IGNORECASE)
_MULTI_SPACE_PATTERN = re.compile(r" {2,}")

COMMON_CONTRACTIONS = frozenset(
    {
        "don't", "doesn't", "didn't", "won't", "wouldn't", "couldn't", "shouldn't",
        "can't", "isn't", "aren't", "wasn't", "weren't", "hasn't", "haven't", "hadn't",
        "i'm", "i've", "i'll", "i'd",
        "you're", "you've", "you'll", "you'd",
        "he's", "he'll", "he'd",
        "she's", "she'll", "she'd",
        "it's", "it'll",
        "we're", "we've", "we'll", "we'd",
        "they're", "they've", "they'll", "they'd",
        "that's", "that'll", "that'd",
        "who's", "who'll", "who'd",
        "what's", "what'll", "what'd",
        "where's", "where'll", "where'd",
        "when's", "when'll", "when'd",
        "why's", "why'll", "why'd",
        "how's", "how'll", "how'd",
        "there's", "there'll", "there'd",
        "here's", "let's", "ain't",
        "'tis", "'twas",
        "o'er", "e'er", "ne'er",
        "ma'am", "y'all",
    }
)


@dataclass
class PunctuationMark:
    char: str
    position: int


@dataclass
class TokenizedLine:
    words: List[str] = field(default_factory=list)
    punctuation: List[PunctuationMark] = field(default_factory=list)


def normalize_whitespace(text: Optional[str]) -> str:
    """Unify line endings and spacing without touching blank-line stanza breaks."""

    if not text:
        return ""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " ")
    lines = [_MULTI_SPACE_PATTERN.sub(" ", line.rstrip()) for line in normalized.split("\n")]
    return "\n".join(lines).strip("\n")


def split_lines(text: str) -> List[str]:
    return text.split("\n") if text else []


def detect_stanzas(text: str) -> List[List[str]]:
    """Group non-blank lines into stanzas separated by blank lines."""

    stanzas: List[List[str]] = []
    current: List[str] = []
    for line in split_lines(text):
        if line.strip():
            current.append(line)
        elif current:
            stanzas.append(current)
            current = []
    if current:
        stanzas.append(current)
    return stanzas


def is_contraction(token: str) -> bool:
    return token.lower() in COMMON_CONTRACTIONS or bool(_CONTRACTION_PATTERN.match(token))


def tokenize_words(line: Optional[str]) -> List[str]:
    """Split ``line`` into words, keeping contractions and hyphenated compounds."""

    if not line or not line.strip():
        return []

    words: List[str] = []
    for token in line.split():
        if is_contraction(token):
            cleaned = _CONTRACTION_EDGES.sub("", token)
            if cleaned:
                words.append(cleaned)
            continue

        if "-" in token and not token.startswith("-") and not token.endswith("-"):
            hyphenated = _HYPHEN_EDGES.sub("", token)
            if "-" in hyphenated:
                cleaned = hyphenated.strip("-")
                if cleaned:
                    words.append(cleaned)
                continue

        for match in _WORD_PATTERN.findall(token):
            cleaned = match.lstrip("'")
            if not _DROPPED_G_PATTERN.search(cleaned):
                cleaned = cleaned.rstrip("'")
            if cleaned:
                words.append(cleaned)
    return words


def extract_punctuation(line: Optional[str]) -> List[PunctuationMark]:
    if not line:
        return []
    return [PunctuationMark(m.group(0), m.start()) for m in PUNCTUATION_PATTERN.finditer(line)]


def tokenize_line(line: str) -> TokenizedLine:
    return TokenizedLine(words=tokenize_words(line), punctuation=extract_punctuation(line))


def preprocess_poem(text: Optional[str]) -> PreprocessedPoem:
    """Normalise ``text`` and split it into stanzas of lines.

    Empty or whitespace-only input yields zero stanzas and zero lines.
    """

    original = text or ""
    stanzas = detect_stanzas(normalize_whitespace(original))
    return PreprocessedPoem(
        original=original,
        stanzas=stanzas,
        line_count=sum(len(stanza) for stanza in stanzas),
        stanza_count=len(stanzas),
    )


def reconstruct_text(stanzas: List[List[str]]) -> str:
    return "\n\n".join("\n".join(stanza) for stanza in stanzas)


def count_words(preprocessed: PreprocessedPoem) -> int:
    return sum(len(tokenize_words(line)) for line in get_all_lines(preprocessed))


def get_all_lines(preprocessed: PreprocessedPoem) -> List[str]:
    return [line for stanza in preprocessed.stanzas for line in stanza]


def get_line(preprocessed: PreprocessedPoem, line_index: int) -> Optional[str]:
    lines = get_all_lines(preprocessed)
    return lines[line_index] if 0 <= line_index < len(lines) else None


def get_stanza(preprocessed: PreprocessedPoem, stanza_index: int) -> Optional[List[str]]:
    if 0 <= stanza_index < len(preprocessed.stanzas):
        return preprocessed.stanzas[stanza_index]
    return None


__all__ = [
    "COMMON_CONTRACTIONS",
    "PUNCTUATION_PATTERN",
    "PunctuationMark",
    "TokenizedLine",
    "count_words",
    "detect_stanzas",
    "extract_punctuation",
    "get_all_lines",
    "get_line",
    "get_stanza",
    "is_contraction",
    "normalize_whitespace",
    "preprocess_poem",
    "reconstruct_text",
    "split_lines",
    "tokenize_line",
    "tokenize_words",
]
