import io
import textwrap
from pathlib import Path
import sys

import pytest
from lxml import etree

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from collection_ops import (
    Selector,
    bib_format,
    concat,
    lib_format,
    match,
    parse_pattern,
    rank_order,
    record_keys,
    select_records,
    sort_records,
)
from field_locator import get_data
from marc_element import XmElem, build_element
from marc_errors import SelectorError

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
        <datafield tag="245" ind1="1" ind2="0">
          <subfield code="a">Design Patterns</subfield>
          <subfield code="b">elements of reusable software</subfield>
        </datafield>
        <datafield tag="260" ind1=" " ind2=" ">
          <subfield code="a">Reading, Mass. :</subfield>
          <subfield code="b">Addison-Wesley,</subfield>
          <subfield code="c">1995.</subfield>
        </datafield>
      </record>
      <record>
        <controlfield tag="001">REC2</controlfield>
        <datafield tag="050" ind1="0" ind2="0">
          <subfield code="a">AB12</subfield>
          <subfield code="b">.3</subfield>
        </datafield>
        <datafield tag="130" ind1="0" ind2=" ">
          <subfield code="a">Beowulf</subfield>
        </datafield>
        <datafield tag="245" ind1="0" ind2="0">
          <subfield code="a">Beowulf :</subfield>
          <subfield code="p">a new translation</subfield>
        </datafield>
        <datafield tag="250" ind1=" " ind2=" ">
          <subfield code="a">2nd ed</subfield>
        </datafield>
      </record>
    </collection>
    """
).strip()

OTHER_XML = textwrap.dedent(
    """
    <collection xmlns="http://www.loc.gov/MARC21/slim">
      <record>
        <controlfield tag="001">REC3</controlfield>
      </record>
    </collection>
    """
).strip()


def _collection(xml: str = SAMPLE_XML) -> XmElem:
    return build_element(etree.fromstring(xml))


def _written_ids(output: str):
    doc = etree.fromstring(output.encode("utf-8"))
    return [cf.text for cf in doc.iter(f"{{{MARC_NS}}}controlfield") if cf.get("tag") == "001"]


def _ids(collection: XmElem):
    return [get_data(record, 1, 1, "", 0) for record in collection.children]


def test_parse_pattern() -> None:
    letter, regex = parse_pattern("a=^Gam+a")
    assert letter == "a"
    assert regex.search("Gamma, Erich")

    for bad in ("", "a", "x=foo", "a:foo", "t=("):
        with pytest.raises(SelectorError):
            parse_pattern(bad)


def test_match() -> None:
    assert match("Design Patterns", "Pat")
    assert match("Design Patterns", "^Des.*s$")
    assert not match("Design Patterns", "^Pat")


def test_match_understands_posix_classes() -> None:
    assert match("QA76.1", "^[[:alpha:]]+[[:digit:]]")
    assert match("\u00d6dipus", "^[[:upper:]]")
    assert not match("de la Cruz, Juana", "^[[:upper:]]")
    assert not match("Design Patterns", "[[:digit:]]")


def test_keep_with_posix_class() -> None:
    out = io.StringIO()
    assert select_records(_collection(), Selector.KEEP, "t=^[[:upper:]][[:lower:]]+ [[:upper:]]", out) == 1
    assert _written_ids(out.getvalue()) == ["REC1"]


def test_keep_and_discard() -> None:
    top = _collection()

    keep_out = io.StringIO()
    assert select_records(top, Selector.KEEP, "a=Gamma", keep_out) == 1
    assert _written_ids(keep_out.getvalue()) == ["REC1"]

    discard_out = io.StringIO()
    assert select_records(top, Selector.DISCARD, "a=Gamma", discard_out) == 1
    assert _written_ids(discard_out.getvalue()) == ["REC2"]


@pytest.mark.parametrize("pattern", ["t=Beowulf", "p=ed$", "a=.", "t=^nothing"])
def test_keep_and_discard_partition_records(pattern: str) -> None:
    top = _collection()
    keep_out, discard_out = io.StringIO(), io.StringIO()

    select_records(top, Selector.KEEP, pattern, keep_out)
    select_records(top, Selector.DISCARD, pattern, discard_out)

    kept = set(_written_ids(keep_out.getvalue()))
    discarded = set(_written_ids(discard_out.getvalue()))
    assert kept | discarded == {"REC1", "REC2"}
    assert not kept & discarded


def test_select_rejects_bad_pattern_before_writing() -> None:
    out = io.StringIO()
    with pytest.raises(SelectorError):
        select_records(_collection(), Selector.KEEP, "q=foo", out)
    assert out.getvalue() == ""


def test_concat() -> None:
    out = io.StringIO()
    written = concat(_collection(), _collection(OTHER_XML), out)

    output = out.getvalue()
    assert output.count("<marc:collection") == 1
    assert output.count("</marc:collection>") == 1
    assert _written_ids(output) == ["REC1", "REC2", "REC3"]
    assert written == 27


def test_sort_by_call_number() -> None:
    top = _collection()
    keys = record_keys(top, lambda bib: bib.callnum)
    assert keys == ["QA76.1", "AB12.3"]

    sort_records(top, keys)

    assert _ids(top) == ["REC2", "REC1"]
    assert record_keys(top, lambda bib: bib.callnum) == ["AB12.3", "QA76.1"]


def test_rank_order_keeps_duplicates_in_original_order() -> None:
    keys = ["b", "a", "b", "a", "c"]
    order = rank_order(keys)
    assert order == [1, 3, 0, 2, 4]
    assert order == sorted(range(len(keys)), key=keys.__getitem__)


def test_sort_is_a_permutation() -> None:
    children = [XmElem(tag="record", attributes=[("id", str(i))]) for i in range(6)]
    collection = XmElem(tag="collection", children=list(children))
    keys = ["m", "Z", "a", "m", "", "Za"]

    sort_records(collection, keys)

    assert sorted(map(id, collection.children)) == sorted(map(id, children))
    sorted_keys = [keys[children.index(child)] for child in collection.children]
    assert all(a <= b for a, b in zip(sorted_keys, sorted_keys[1:]))
    assert [child.get("id") for child in collection.children] == ["4", "1", "5", "2", "0", "3"]


def test_sort_records_checks_key_count() -> None:
    with pytest.raises(ValueError):
        sort_records(_collection(), ["only one"])


def test_lib_format() -> None:
    out = io.StringIO()
    assert lib_format(_collection(), out) == 2
    assert out.getvalue() == (
        "\nAB12.3 Beowulf Beowulf :a new translation 2nd ed.\n"
        "\nQA76.1 Gamma, Erich Design Patternselements of reusable software "
        "Reading, Mass. :Addison-Wesley,1995.\n"
    )


def test_bib_format() -> None:
    out = io.StringIO()
    assert bib_format(_collection(), out) == 2
    assert out.getvalue() == (
        "\nBeowulf AB12.3 Beowulf :a new translation 2nd ed.\n"
        "\nGamma, Erich QA76.1 Design Patternselements of reusable software "
        "Reading, Mass. :Addison-Wesley,1995.\n"
    )
