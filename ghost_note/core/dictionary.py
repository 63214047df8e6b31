"""Pronunciation lookups backed by the CMU pronouncing dictionary."""

from __future__ import annotations

import re
import threading
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

import pronouncing

VOWEL_PHONEMES: FrozenSet[str] = frozenset(
    {
        "AA", "AE", "AH", "AO", "AW", "AY", "EH", "ER",
        "EY", "IH", "IY", "OW", "OY", "UH", "UW",
    }
)

CONSONANT_PHONEMES: FrozenSet[str] = frozenset(
    {
        "B", "CH", "D", "DH", "F", "G", "HH", "JH", "K", "L", "M", "N",
        "NG", "P", "R", "S", "SH", "T", "TH", "V", "W", "Y", "Z", "ZH",
    }
)

_WORD_VARIANT_PATTERN = re.compile(r"\(\d+\)$")
_STRESS_SUFFIX_PATTERN = re.compile(r"[012]$")
_EDGE_PUNCTUATION_PATTERN = re.compile(r"^[^\w']+|[^\w']+$")


def base_phoneme(phoneme: str) -> str:
    """Strip the stress digit from an ARPABET symbol."""

    return _STRESS_SUFFIX_PATTERN.sub("", phoneme)


def is_vowel(phoneme: str) -> bool:
    return base_phoneme(phoneme) in VOWEL_PHONEMES


def is_consonant(phoneme: str) -> bool:
    return phoneme in CONSONANT_PHONEMES


def stress_digit(phoneme: str) -> Optional[int]:
    """Return 0, 1 or 2 for a vowel phoneme, ``None`` for anything else."""

    if not is_vowel(phoneme):
        return None
    last = phoneme[-1:]
    return int(last) if last in ("0", "1", "2") else 0


def _normalise_word(word: str) -> str:
    return _EDGE_PUNCTUATION_PATTERN.sub("", (word or "").strip().lower())


class PronunciationDictionary:
    """Case-insensitive word to phoneme lookup.

    Entries come from an optional cmudict-format file (``WORD  PH1 PH2 ...``,
    ``;;;`` comments, ``WORD(2)`` variants) and then from the
    :mod:`pronouncing` package. The file is read lazily on first use; a
    missing file leaves the dictionary unloaded so a later call can retry.
    Results are memoised per instance.
    """

    def __init__(
        self,
        dict_path: Optional[Path | str] = None,
        *,
        use_pronouncing: bool = True,
    ) -> None:
        self.dict_path: Optional[Path] = Path(dict_path) if dict_path is not None else None
        self.use_pronouncing = use_pronouncing
        self._entries: Dict[str, Tuple[Tuple[str, ...], ...]] = {}
        self._memo: Dict[str, Tuple[Tuple[str, ...], ...]] = {}
        self._loaded = False
        self._lock = threading.RLock()

    def _ensure_loaded(self) -> None:
        if self._loaded or self.dict_path is None:
            return
        if not self.dict_path.exists():
            return

        entries: Dict[str, List[Tuple[str, ...]]] = {}
        try:
            with self.dict_path.open("r", encoding="utf-8") as handle:
                for line in handle:
                    entry = line.strip()
                    if not entry or entry.startswith(";;;"):
                        continue
                    raw_word, *phones = entry.split()
                    if not phones:
                        continue
                    word = _WORD_VARIANT_PATTERN.sub("", raw_word).lower()
                    if word:
                        entries.setdefault(word, []).append(tuple(phones))
        except (OSError, UnicodeDecodeError):
            return

        self._entries = {word: tuple(variants) for word, variants in entries.items()}
        self._loaded = True

    def _resolve(self, word: str) -> Tuple[Tuple[str, ...], ...]:
        with self._lock:
            if word in self._memo:
                return self._memo[word]
            self._ensure_loaded()
            variants = self._entries.get(word, ())
            if not variants and self.use_pronouncing:
                variants = tuple(
                    tuple(phones.split()) for phones in pronouncing.phones_for_word(word)
                )
            if not variants and "-" in word:
                variants = self._resolve_compound(word)
            self._memo[word] = variants
            return variants

    def _resolve_compound(self, word: str) -> Tuple[Tuple[str, ...], ...]:
        parts = [part for part in word.split("-") if part]
        if len(parts) < 2:
            return ()
        joined: List[str] = []
        for part in parts:
            part_variants = self._resolve(part)
            if not part_variants:
                return ()
            joined.extend(part_variants[0])
        return (tuple(joined),)

    def lookup(self, word: str) -> Optional[List[str]]:
        """Return the primary pronunciation of ``word`` or ``None``."""

        normalized = _normalise_word(word)
        if not normalized:
            return None
        variants = self._resolve(normalized)
        return list(variants[0]) if variants else None

    def lookup_all(self, word: str) -> List[List[str]]:
        normalized = _normalise_word(word)
        if not normalized:
            return []
        return [list(variant) for variant in self._resolve(normalized)]

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and self.lookup(word) is not None

    is_vowel = staticmethod(is_vowel)
    is_consonant = staticmethod(is_consonant)
    stress_digit = staticmethod(stress_digit)


_DEFAULT_DICTIONARY: Optional[PronunciationDictionary] = None
_DEFAULT_LOCK = threading.Lock()


def default_dictionary() -> PronunciationDictionary:
    """Shared dictionary instance backed by :mod:`pronouncing`."""

    global _DEFAULT_DICTIONARY
    with _DEFAULT_LOCK:
        if _DEFAULT_DICTIONARY is None:
            _DEFAULT_DICTIONARY = PronunciationDictionary()
        return _DEFAULT_DICTIONARY


__all__ = [
    "VOWEL_PHONEMES",
    "CONSONANT_PHONEMES",
    "PronunciationDictionary",
    "base_phoneme",
    "default_dictionary",
    "is_consonant",
    "is_vowel",
    "stress_digit",
]
