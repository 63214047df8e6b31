"""Poem form detection.

Each known form is a :class:`FormDefinition` whose ``check`` scores a
:class:`FormDetectionInput` and explains the score with
:class:`FormEvidence`. :data:`FORM_PRIORITY` lists the forms in the order
used to break confidence ties: specific fixed forms first, catch-alls last.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .models import AlternativeForm, FormDetectionResult, FormEvidence

_ALTERNATIVE_LIMIT = 3
_ALTERNATIVE_MIN_CONFIDENCE = 0.3
_FREE_VERSE_METER_CEILING = 0.7

SONNET_FORMS = frozenset({"shakespearean_sonnet", "petrarchan_sonnet", "spenserian_sonnet", "sonnet"})


@dataclass(frozen=True)
class FormDetectionInput:
    line_count: int
    stanza_count: int
    lines_per_stanza: List[int]
    meter_foot_type: str
    meter_name: str
    meter_confidence: float
    rhyme_scheme: str
    syllables_per_line: List[int]
    avg_syllables_per_line: float
    regularity: float

    @property
    def is_iambic_pentameter(self) -> bool:
        return self.meter_foot_type == "iamb" and "pentameter" in self.meter_name.lower()

    @property
    def rhyme_variety(self) -> float:
        """Distinct rhyme letters per line; 1.0 means nothing rhymes."""

        return len(set(self.rhyme_scheme.upper())) / max(1, len(self.rhyme_scheme))


CheckResult = Tuple[float, FormEvidence]


@dataclass(frozen=True)
class FormDefinition:
    type: str
    name: str
    category: str
    description: str
    check: Callable[[FormDetectionInput], CheckResult] = field(repr=False, compare=False)


class _Score:
    """Accumulates confidence and evidence notes for one form check."""

    def __init__(self) -> None:
        self.confidence = 0.0
        self.evidence = FormEvidence()

    def add(self, amount: float, note: str, flag: Optional[str] = None) -> None:
        self.confidence += amount
        self.evidence.notes.append(note)
        if flag:
            setattr(self.evidence, flag, True)

    def result(self) -> CheckResult:
        return min(1.0, self.confidence), self.evidence


def _scheme_is(scheme: str, expected: str) -> bool:
    return scheme.upper() == expected.upper()


def _scheme_matches(scheme: str, *patterns: str) -> bool:
    return any(re.fullmatch(pattern, scheme, re.IGNORECASE) for pattern in patterns)


def _syllables_match(actual: Sequence[int], expected: Sequence[int], tolerance: int = 1) -> bool:
    if len(actual) != len(expected):
        return False
    return all(abs(count - target) <= tolerance for count, target in zip(actual, expected))


def _pairs_rhyme(scheme: str) -> bool:
    return all(scheme[i] == scheme[i + 1] for i in range(0, len(scheme) - 1, 2))


def _all_stanzas(lines_per_stanza: Sequence[int], size: int) -> bool:
    return all(lines == size for lines in lines_per_stanza)


def _check_shakespearean_sonnet(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 14:
        score.add(0.25, "Has 14 lines", "line_count_match")
    elif 12 <= data.line_count <= 16:
        score.add(0.1, f"Has {data.line_count} lines (expected 14)")

    if _scheme_is(data.rhyme_scheme, "ABABCDCDEFEFGG"):
        score.add(0.35, "Perfect Shakespearean rhyme scheme ABABCDCDEFEFGG", "rhyme_scheme_match")
    elif _scheme_matches(data.rhyme_scheme, r"ABAB.?CDCD.?EFEF.?GG"):
        score.add(0.25, "Approximate Shakespearean rhyme scheme", "rhyme_scheme_match")
    elif data.rhyme_scheme.upper().endswith("GG"):
        score.add(0.1, "Ends with couplet")

    if data.is_iambic_pentameter:
        score.add(0.25, "Uses iambic pentameter", "meter_match")
    elif data.meter_foot_type == "iamb":
        score.add(0.1, "Uses iambic meter")

    if _syllables_match(data.syllables_per_line, [10] * 14, 2):
        score.add(0.15, "~10 syllables per line", "syllable_pattern_match")
    elif 8 <= data.avg_syllables_per_line <= 12:
        score.add(0.05, f"Average {data.avg_syllables_per_line:.1f} syllables per line")
    return score.result()


def _check_petrarchan_sonnet(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 14:
        score.add(0.25, "Has 14 lines", "line_count_match")

    sestets = ("CDCDCD", "CDECDE", "CDDCEE", "CDDECE")
    if _scheme_matches(data.rhyme_scheme, *(f"ABBAABBA{sestet}" for sestet in sestets)):
        score.add(0.35, "Perfect Petrarchan rhyme scheme", "rhyme_scheme_match")
    elif data.rhyme_scheme.upper().startswith("ABBAABBA"):
        score.add(0.25, "Has Petrarchan octave ABBAABBA", "rhyme_scheme_match")

    if data.is_iambic_pentameter:
        score.add(0.25, "Uses iambic pentameter", "meter_match")

    if data.stanza_count == 2 and list(data.lines_per_stanza) == [8, 6]:
        score.add(0.15, "Has octave and sestet structure", "stanza_structure_match")
    return score.result()


def _check_spenserian_sonnet(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 14:
        score.add(0.25, "Has 14 lines", "line_count_match")

    if _scheme_is(data.rhyme_scheme, "ABABBCBCCDCDEE"):
        score.add(0.4, "Perfect Spenserian rhyme scheme ABABBCBCCDCDEE", "rhyme_scheme_match")
    elif _scheme_matches(data.rhyme_scheme, r"ABAB.?BCBC.?CDCD.?EE"):
        score.add(0.25, "Approximate Spenserian interlocking scheme", "rhyme_scheme_match")

    if data.is_iambic_pentameter:
        score.add(0.25, "Uses iambic pentameter", "meter_match")
    return score.result()


def _check_sonnet(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 14:
        score.add(0.4, "Has 14 lines (sonnet length)", "line_count_match")
    elif 12 <= data.line_count <= 16:
        score.add(0.15, f"Has {data.line_count} lines (near sonnet length)")

    if data.is_iambic_pentameter:
        score.add(0.3, "Uses iambic pentameter", "meter_match")
    elif data.meter_foot_type == "iamb":
        score.add(0.15, "Uses iambic meter", "meter_match")

    if len(data.rhyme_scheme) >= 10 and data.rhyme_variety < 0.7:
        score.add(0.2, "Has structured rhyme scheme", "rhyme_scheme_match")
    return score.result()


def _check_haiku(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 3:
        score.add(0.3, "Has 3 lines", "line_count_match")

    if len(data.syllables_per_line) == 3:
        first, second, third = data.syllables_per_line
        if (first, second, third) == (5, 7, 5):
            score.add(0.6, "Perfect 5-7-5 syllable pattern", "syllable_pattern_match")
        elif _syllables_match(data.syllables_per_line, [5, 7, 5], 1):
            score.add(0.4, f"Near 5-7-5 pattern ({first}-{second}-{third})", "syllable_pattern_match")
        elif 15 <= first + second + third <= 19:
            score.add(0.2, f"Total {first + second + third} syllables (near 17)")

    if len(set(data.rhyme_scheme.upper())) == len(data.rhyme_scheme):
        score.add(0.1, "No rhyme (typical for haiku)")
    return score.result()


def _check_tanka(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 5:
        score.add(0.25, "Has 5 lines", "line_count_match")

    if len(data.syllables_per_line) == 5:
        expected = [5, 7, 5, 7, 7]
        shape = "-".join(str(count) for count in data.syllables_per_line)
        if _syllables_match(data.syllables_per_line, expected, 0):
            score.add(0.6, "Perfect 5-7-5-7-7 syllable pattern", "syllable_pattern_match")
        elif _syllables_match(data.syllables_per_line, expected, 1):
            score.add(0.4, f"Near 5-7-5-7-7 pattern ({shape})", "syllable_pattern_match")
        elif 28 <= sum(data.syllables_per_line) <= 34:
            score.add(0.15, f"Total {sum(data.syllables_per_line)} syllables (near 31)")
    return score.result()


def _check_cinquain(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 5:
        score.add(0.3, "Has 5 lines", "line_count_match")

    if len(data.syllables_per_line) == 5:
        expected = [2, 4, 6, 8, 2]
        s1, s2, s3, s4, s5 = data.syllables_per_line
        if _syllables_match(data.syllables_per_line, expected, 0):
            score.add(0.5, "Perfect 2-4-6-8-2 syllable pattern", "syllable_pattern_match")
        elif _syllables_match(data.syllables_per_line, expected, 1):
            score.add(0.35, "Near 2-4-6-8-2 syllable pattern", "syllable_pattern_match")
        elif s1 < s2 < s3 < s4 and s5 < s4:
            score.add(0.2, "Has building-tapering structure")

    if len(set(data.rhyme_scheme.upper())) >= len(data.rhyme_scheme) - 1:
        score.add(0.1, "Minimal rhyme (typical for cinquain)")
    return score.result()


def _check_limerick(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 5:
        score.add(0.25, "Has 5 lines", "line_count_match")

    scheme = data.rhyme_scheme
    if _scheme_is(scheme, "AABBA"):
        score.add(0.35, "Perfect AABBA rhyme scheme", "rhyme_scheme_match")
    elif (
        _scheme_matches(scheme, r"[A-Z]{2}[B-Z]{2}[A-Z]")
        and scheme[0] == scheme[1] == scheme[4]
        and scheme[2] == scheme[3]
    ):
        score.add(0.25, "Has AABBA-style rhyme pattern", "rhyme_scheme_match")

    if data.meter_foot_type == "anapest":
        score.add(0.25, "Uses anapestic meter", "meter_match")
    elif data.meter_foot_type in ("iamb", "dactyl"):
        score.add(0.1, "Uses compatible meter")

    if len(data.syllables_per_line) == 5:
        s1, s2, s3, s4, s5 = data.syllables_per_line
        if s1 > s3 and s2 > s4 and s5 > s3 and s3 < 7 and s4 < 7:
            score.add(0.15, "Has long-long-short-short-long structure", "syllable_pattern_match")
    return score.result()


def _check_villanelle(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 19:
        score.add(0.3, "Has 19 lines", "line_count_match")
    elif 17 <= data.line_count <= 21:
        score.add(0.1, f"Has {data.line_count} lines (near 19)")

    if data.stanza_count == 6 and list(data.lines_per_stanza) == [3, 3, 3, 3, 3, 4]:
        score.add(0.3, "Has 5 tercets and 1 quatrain", "stanza_structure_match")

    if _scheme_matches(data.rhyme_scheme, r"(ABA){5}ABAA", r"A.A(.{3}){4}.{4}"):
        score.add(0.3, "Has villanelle ABA rhyme pattern", "rhyme_scheme_match")
    elif re.match(r"(ABA)+", data.rhyme_scheme[:15], re.IGNORECASE):
        score.add(0.15, "Has ABA tercet pattern")

    if data.is_iambic_pentameter:
        score.add(0.1, "Uses iambic pentameter", "meter_match")
    return score.result()


def _check_sestina(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.line_count == 39:
        score.add(0.35, "Has 39 lines", "line_count_match")
    elif 36 <= data.line_count <= 42:
        score.add(0.15, f"Has {data.line_count} lines (near 39)")

    if data.stanza_count == 7 and list(data.lines_per_stanza) == [6, 6, 6, 6, 6, 6, 3]:
        score.add(0.35, "Has 6 sextets and 3-line envoi", "stanza_structure_match")
    elif data.stanza_count >= 6 and 6 in data.lines_per_stanza:
        score.add(0.15, "Has six-line stanzas")

    if len(data.rhyme_scheme) >= 36 and len(set(data.rhyme_scheme.upper())) <= 8:
        score.add(0.2, "Has limited rhyme variety (suggests end-word rotation)")

    if data.meter_foot_type == "iamb":
        score.add(0.1, "Uses iambic meter", "meter_match")
    return score.result()


def _check_terza_rima(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if _all_stanzas(data.lines_per_stanza, 3):
        score.add(0.25, "Has 3-line stanzas (tercets)", "stanza_structure_match")

    scheme = data.rhyme_scheme.upper()
    if len(scheme) >= 6 and all(scheme[i + 1] == scheme[i + 3] for i in range(0, len(scheme) - 3, 3)):
        score.add(0.4, "Has interlocking ABA BCB rhyme pattern", "rhyme_scheme_match")

    if data.is_iambic_pentameter:
        score.add(0.2, "Uses iambic pentameter", "meter_match")

    if data.line_count % 3 in (0, 1):
        score.add(0.1, "Line count compatible with tercets", "line_count_match")
    return score.result()


def _check_heroic_couplet(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    letters_only = re.sub(r"[^A-Za-z]", "", data.rhyme_scheme)
    if _scheme_matches(letters_only, r"(AA|BB|CC|DD|EE|FF|GG|HH|II|JJ)+"):
        score.add(0.35, "Has rhyming couplet pattern", "rhyme_scheme_match")
    elif _pairs_rhyme(data.rhyme_scheme) and len(data.rhyme_scheme) >= 4:
        score.add(0.3, "Lines rhyme in pairs", "rhyme_scheme_match")

    if data.is_iambic_pentameter:
        score.add(0.4, "Uses iambic pentameter", "meter_match")
    elif data.meter_foot_type == "iamb":
        score.add(0.2, "Uses iambic meter")

    if 9 <= data.avg_syllables_per_line <= 11:
        score.add(0.15, "~10 syllables per line", "syllable_pattern_match")

    if data.line_count >= 2 and data.line_count % 2 == 0:
        score.add(0.1, "Even number of lines", "line_count_match")
    return score.result()


def _check_blank_verse(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.is_iambic_pentameter:
        score.add(0.45, "Uses iambic pentameter", "meter_match")
    elif data.meter_foot_type == "iamb":
        score.add(0.2, "Uses iambic meter")

    if data.rhyme_variety >= 0.8:
        score.add(0.35, "Unrhymed or minimal rhyme", "rhyme_scheme_match")
    elif data.rhyme_variety >= 0.6:
        score.add(0.15, "Sparse rhyme")

    if 9 <= data.avg_syllables_per_line <= 11:
        score.add(0.15, "~10 syllables per line", "syllable_pattern_match")

    if data.line_count >= 10:
        score.add(0.05, "Substantial length", "line_count_match")
    return score.result()


def _check_common_meter(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if _all_stanzas(data.lines_per_stanza, 4):
        score.add(0.2, "Has 4-line stanzas", "stanza_structure_match")

    if data.meter_foot_type == "iamb":
        score.add(0.25, "Uses iambic meter", "meter_match")

    counts = data.syllables_per_line
    if len(counts) >= 4 and all(abs(count - (8 if i % 2 == 0 else 6)) <= 1 for i, count in enumerate(counts)):
        score.add(0.35, "Has strict 8-6-8-6 syllable pattern", "syllable_pattern_match")

    if _scheme_matches(data.rhyme_scheme, r"(ABAB)+", r"(ABCB)+"):
        score.add(0.2, "Has common meter rhyme pattern", "rhyme_scheme_match")
    return score.result()


def _check_ballad(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if _all_stanzas(data.lines_per_stanza, 4):
        score.add(0.25, "Has 4-line stanzas (quatrains)", "stanza_structure_match")

    if _scheme_matches(data.rhyme_scheme, r"(ABAB)+", r"(ABCB)+", r"(XAXA)+"):
        score.add(0.3, "Has ABAB/ABCB rhyme pattern", "rhyme_scheme_match")

    if data.meter_foot_type == "iamb":
        score.add(0.25, "Uses iambic meter", "meter_match")

    counts = data.syllables_per_line
    if len(counts) >= 4 and all(abs(count - (8 if i % 2 == 0 else 6)) <= 2 for i, count in enumerate(counts)):
        score.add(0.2, "Has alternating 8-6 syllable pattern", "syllable_pattern_match")
    return score.result()


def _check_ode(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if data.stanza_count >= 3:
        score.add(0.15, f"Has {data.stanza_count} stanzas", "stanza_structure_match")

    if data.lines_per_stanza:
        average = sum(data.lines_per_stanza) / len(data.lines_per_stanza)
        if average >= 6:
            score.add(0.15, f"Average {average:.1f} lines per stanza")

    if data.rhyme_scheme and 0.3 < data.rhyme_variety < 0.8:
        score.add(0.2, "Has moderate rhyme scheme complexity", "rhyme_scheme_match")

    if data.meter_foot_type == "iamb":
        score.add(0.15, "Uses iambic meter", "meter_match")

    if data.line_count >= 20:
        score.add(0.15, "Has substantial length", "line_count_match")
    return score.result()


def _check_tercet(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if _all_stanzas(data.lines_per_stanza, 3):
        score.add(0.35, "Has 3-line stanzas", "stanza_structure_match")
    if data.line_count >= 3 and data.line_count % 3 == 0:
        score.add(0.2, "Line count divisible by 3", "line_count_match")
    if len(data.rhyme_scheme) >= 3:
        score.add(0.15, "Has rhyme scheme", "rhyme_scheme_match")
    if data.meter_foot_type != "unknown":
        score.add(0.1, f"Uses {data.meter_foot_type} meter", "meter_match")
    return score.result()


def _check_quatrain(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if _all_stanzas(data.lines_per_stanza, 4):
        score.add(0.35, "Has 4-line stanzas", "stanza_structure_match")
    if data.line_count >= 4 and data.line_count % 4 == 0:
        score.add(0.2, "Line count divisible by 4", "line_count_match")
    if _scheme_matches(data.rhyme_scheme, r"(ABAB)+", r"(AABB)+", r"(ABBA)+", r"(ABCB)+"):
        score.add(0.25, "Has quatrain rhyme pattern", "rhyme_scheme_match")
    if data.meter_foot_type != "unknown":
        score.add(0.1, f"Uses {data.meter_foot_type} meter", "meter_match")
    return score.result()


def _check_couplet(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    if len(data.rhyme_scheme) >= 2 and _pairs_rhyme(data.rhyme_scheme):
        score.add(0.4, "Lines rhyme in pairs", "rhyme_scheme_match")
    if data.line_count >= 2 and data.line_count % 2 == 0:
        score.add(0.2, "Even number of lines", "line_count_match")
    if _all_stanzas(data.lines_per_stanza, 2):
        score.add(0.2, "Has 2-line stanzas", "stanza_structure_match")
    if data.meter_foot_type != "unknown":
        score.add(0.1, f"Uses {data.meter_foot_type} meter", "meter_match")
    return score.result()


def _check_free_verse(data: FormDetectionInput) -> CheckResult:
    score = _Score()
    # catch-all baseline
    score.confidence = 0.2

    if data.regularity < 0.5:
        score.add(0.2, "Irregular meter", "meter_match")

    if data.rhyme_variety >= 0.7:
        score.add(0.2, "Minimal or no rhyme", "rhyme_scheme_match")

    counts = data.syllables_per_line
    if len(counts) >= 3 and max(counts) - min(counts) >= 5:
        score.add(0.15, "Variable line lengths", "syllable_pattern_match")

    if len(data.lines_per_stanza) >= 2 and len(set(data.lines_per_stanza)) > 1:
        score.add(0.1, "Variable stanza structure", "stanza_structure_match")

    if data.meter_confidence > _FREE_VERSE_METER_CEILING:
        score.confidence *= 0.7
        score.evidence.notes.append("Strong meter detected")
    return score.result()


FORM_DEFINITIONS: Dict[str, FormDefinition] = {
    form.type: form
    for form in (
        FormDefinition(
            "shakespearean_sonnet", "Shakespearean Sonnet", "fixed_form",
            "A 14-line poem in iambic pentameter with rhyme scheme ABABCDCDEFEFGG "
            "(three quatrains and a couplet).",
            _check_shakespearean_sonnet,
        ),
        FormDefinition(
            "petrarchan_sonnet", "Petrarchan Sonnet", "fixed_form",
            "A 14-line poem with an octave (ABBAABBA) and sestet (CDCDCD, CDECDE, or similar).",
            _check_petrarchan_sonnet,
        ),
        FormDefinition(
            "spenserian_sonnet", "Spenserian Sonnet", "fixed_form",
            "A 14-line poem with interlocking rhyme scheme ABABBCBCCDCDEE.",
            _check_spenserian_sonnet,
        ),
        FormDefinition(
            "haiku", "Haiku", "syllabic",
            "A Japanese form with 3 lines of 5-7-5 syllables (17 total), traditionally about nature.",
            _check_haiku,
        ),
        FormDefinition(
            "tanka", "Tanka", "syllabic",
            "A Japanese form with 5 lines of 5-7-5-7-7 syllables (31 total).",
            _check_tanka,
        ),
        FormDefinition(
            "cinquain", "Cinquain", "syllabic",
            "A 5-line poem with syllable pattern 2-4-6-8-2.",
            _check_cinquain,
        ),
        FormDefinition(
            "limerick", "Limerick", "fixed_form",
            "A 5-line humorous poem with AABBA rhyme scheme and anapestic meter.",
            _check_limerick,
        ),
        FormDefinition(
            "villanelle", "Villanelle", "fixed_form",
            "A 19-line poem with 5 tercets and a quatrain, using two refrains and ABA rhyme throughout.",
            _check_villanelle,
        ),
        FormDefinition(
            "sestina", "Sestina", "fixed_form",
            "A 39-line poem with 6 six-line stanzas and a 3-line envoi, using end-word rotation.",
            _check_sestina,
        ),
        FormDefinition(
            "terza_rima", "Terza Rima", "fixed_form",
            "Interlocking tercets with ABA BCB CDC... rhyme scheme.",
            _check_terza_rima,
        ),
        FormDefinition(
            "heroic_couplet", "Heroic Couplet", "metrical",
            "Pairs of rhyming lines in iambic pentameter.",
            _check_heroic_couplet,
        ),
        FormDefinition(
            "blank_verse", "Blank Verse", "metrical",
            "Unrhymed iambic pentameter.",
            _check_blank_verse,
        ),
        FormDefinition(
            "common_meter", "Common Meter", "metrical",
            "Alternating lines of iambic tetrameter (8 syllables) and iambic trimeter (6 syllables) "
            "with ABAB or ABCB rhyme.",
            _check_common_meter,
        ),
        FormDefinition(
            "ballad", "Ballad", "stanzaic",
            "A narrative poem with 4-line stanzas, alternating iambic tetrameter and trimeter, "
            "ABAB or ABCB rhyme.",
            _check_ballad,
        ),
        FormDefinition(
            "ode", "Ode", "stanzaic",
            "A lyric poem with elaborate structure, typically praising or addressing a subject.",
            _check_ode,
        ),
        FormDefinition(
            "tercet", "Tercet", "stanzaic",
            "A poem composed of three-line stanzas.",
            _check_tercet,
        ),
        FormDefinition(
            "quatrain", "Quatrain", "stanzaic",
            "A poem composed of four-line stanzas.",
            _check_quatrain,
        ),
        FormDefinition(
            "couplet", "Couplet", "stanzaic",
            "A poem composed of rhyming pairs of lines.",
            _check_couplet,
        ),
        FormDefinition(
            "sonnet", "Sonnet", "fixed_form",
            "A 14-line poem, typically in iambic pentameter with a defined rhyme scheme.",
            _check_sonnet,
        ),
        FormDefinition(
            "free_verse", "Free Verse", "free",
            "Poetry without consistent meter, rhyme scheme, or stanza structure.",
            _check_free_verse,
        ),
    )
}

# Tie-break order for equal confidences. Keep in sync with FORM_DEFINITIONS.
FORM_PRIORITY: Tuple[str, ...] = (
    "shakespearean_sonnet",
    "petrarchan_sonnet",
    "spenserian_sonnet",
    "haiku",
    "tanka",
    "cinquain",
    "limerick",
    "villanelle",
    "sestina",
    "terza_rima",
    "heroic_couplet",
    "blank_verse",
    "common_meter",
    "ballad",
    "ode",
    "tercet",
    "quatrain",
    "couplet",
    "sonnet",
    "free_verse",
)


def detect_form(data: FormDetectionInput) -> FormDetectionResult:
    """Best matching form plus up to three meaningful alternatives.

    Results are ranked by confidence; equal confidences keep the order of
    :data:`FORM_PRIORITY`.
    """

    if data.line_count == 0:
        return FormDetectionResult()

    scored: List[Tuple[float, int, FormDefinition, FormEvidence]] = []
    for priority, form_type in enumerate(FORM_PRIORITY):
        form = FORM_DEFINITIONS[form_type]
        confidence, evidence = form.check(data)
        if confidence > 0:
            scored.append((confidence, priority, form, evidence))

    if not scored:
        return FormDetectionResult(
            form_name="Unknown Form",
            description="Could not identify a specific poem form.",
        )

    scored.sort(key=lambda item: (-item[0], item[1]))
    confidence, _, best, evidence = scored[0]
    alternatives = [
        AlternativeForm(form_type=form.type, form_name=form.name, confidence=score)
        for score, _, form, _ in scored[1 : 1 + _ALTERNATIVE_LIMIT]
        if score >= _ALTERNATIVE_MIN_CONFIDENCE
    ]
    return FormDetectionResult(
        form_type=best.type,
        form_name=best.name,
        category=best.category,
        confidence=confidence,
        evidence=evidence,
        alternatives=alternatives,
        description=best.description,
    )


def create_form_detection_input(
    line_count: int,
    stanza_count: int,
    lines_per_stanza: Sequence[int],
    meter_foot_type: str,
    meter_name: str,
    meter_confidence: float,
    rhyme_scheme: str,
    syllables_per_line: Sequence[int],
    regularity: float,
) -> FormDetectionInput:
    average = sum(syllables_per_line) / line_count if line_count > 0 else 0.0
    return FormDetectionInput(
        line_count=line_count,
        stanza_count=stanza_count,
        lines_per_stanza=list(lines_per_stanza),
        meter_foot_type=meter_foot_type,
        meter_name=meter_name,
        meter_confidence=meter_confidence,
        rhyme_scheme=rhyme_scheme,
        syllables_per_line=list(syllables_per_line),
        avg_syllables_per_line=average,
        regularity=regularity,
    )


def get_form_name(form_type: str) -> str:
    form = FORM_DEFINITIONS.get(form_type)
    return form.name if form else "Unknown Form"


def get_form_description(form_type: str) -> str:
    form = FORM_DEFINITIONS.get(form_type)
    return form.description if form else ""


def get_all_form_types() -> List[str]:
    return list(FORM_PRIORITY)


def get_forms_by_category(category: str) -> List[str]:
    return [form_type for form_type in FORM_PRIORITY if FORM_DEFINITIONS[form_type].category == category]


def is_sonnet_form(form_type: str) -> bool:
    return form_type in SONNET_FORMS


__all__ = [
    "FORM_DEFINITIONS",
    "FORM_PRIORITY",
    "SONNET_FORMS",
    "FormDefinition",
    "FormDetectionInput",
    "create_form_detection_input",
    "detect_form",
    "get_all_form_types",
    "get_form_description",
    "get_form_name",
    "get_forms_by_category",
    "is_sonnet_form",
]
