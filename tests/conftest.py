import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ghost_note.core.dictionary import PronunciationDictionary


STUB_ENTRIES = """\
;;; small cmudict-format sample used by the tests
CAT  K AE1 T
HAT  HH AE1 T
BAT  B AE1 T
DOG  D AO1 G
FOG  F AO1 G
TABLE  T EY1 B AH0 L
STRENGTHS  S T R EH1 NG K TH S
SING  S IH1 NG
SONG  S AO1 NG
ABOUT  AH0 B AW1 T
AWAY  AH0 W EY1
AWAY(2)  AH0 W EY2
BLUE  B L UW1
"""


@pytest.fixture
def stub_dictionary(tmp_path):
    """Dictionary that only knows the words in ``STUB_ENTRIES``."""

    path = tmp_path / "cmudict.txt"
    path.write_text(STUB_ENTRIES, encoding="utf-8")
    return PronunciationDictionary(path, use_pronouncing=False)


@pytest.fixture
def dictionary():
    """Full dictionary backed by the ``pronouncing`` package."""

    return PronunciationDictionary()
