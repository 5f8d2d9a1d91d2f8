import io
import textwrap
from pathlib import Path
import sys

import pytest
from lxml import etree

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from marc_element import XmElem, build_element
from review_records import KEY_HELP, review

MARC_NS = "http://www.loc.gov/MARC21/slim"

SAMPLE_XML = textwrap.dedent(
    """
    <collection xmlns="http://www.loc.gov/MARC21/slim">
      <record>
        <controlfield tag="001">REC1</controlfield>
        <datafield tag="090" ind1=" " ind2=" ">
          <subfield code="a">QA76.1</subfield>
        </datafield>
        <datafield tag="100" ind1="1" ind2=" ">
          <subfield code="a">Gamma, Erich</subfield>
        </datafield>
      </record>
      <record>
        <controlfield tag="001">REC2</controlfield>
        <datafield tag="090" ind1=" " ind2=" ">
          <subfield code="a">PR1583.</subfield>
        </datafield>
      </record>
      <record>
        <controlfield tag="001">REC3</controlfield>
      </record>
    </collection>
    """
).strip()


def _collection() -> XmElem:
    return build_element(etree.fromstring(SAMPLE_XML))


def _run(keys):
    pressed = iter(keys)
    out, tty = io.StringIO(), io.StringIO()
    kept = review(_collection(), out, lambda: next(pressed, ""), tty)
    doc = etree.fromstring(out.getvalue().encode("utf-8"))
    ids = [cf.text for cf in doc.iter(f"{{{MARC_NS}}}controlfield")]
    return kept, ids, tty.getvalue()


def test_keep_and_skip() -> None:
    kept, ids, tty = _run(["\n", " ", "\n"])
    assert kept == 2
    assert ids == ["REC1", "REC3"]
    assert tty.splitlines() == [
        "1. Gamma, Erich na na QA76.1.",
        "2. na na na PR1583.",
        "3. na na na na.",
    ]


@pytest.mark.parametrize(
    "keys, expected",
    [
        (["k"], ["REC1", "REC2", "REC3"]),
        ([" ", "k"], ["REC2", "REC3"]),
        (["\n", "d"], ["REC1"]),
        (["d"], []),
        ([], []),
    ],
)
def test_bulk_keys(keys, expected) -> None:
    kept, ids, _ = _run(keys)
    assert ids == expected
    assert kept == len(expected)


def test_invalid_key_shows_help_and_repeats_record() -> None:
    kept, ids, tty = _run(["x", "\n", "d"])
    assert ids == ["REC1"]
    assert KEY_HELP in tty
    assert tty.count("1. Gamma, Erich") == 2
