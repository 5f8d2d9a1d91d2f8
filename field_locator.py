"""Locate fields and subfields inside MARCXML ``record`` elements.

Fields are found by the numeric value of their ``tag`` attribute, subfields
by the first character of their ``code`` attribute. Occurrence numbers are
1-based. An occurrence outside the available range is not an error: the
query simply returns ``None``.
"""
import re
from typing import Optional

from marc_element import XmElem
from marc_errors import ContractViolation

CONTROL_FIELD_RANGE = range(0, 10)

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)", re.ASCII)


def parse_tag_number(value: str) -> int:
    """Best-effort integer parse of a ``tag`` value (``atoi`` semantics).

    Leading digits are used, anything non-numeric parses as 0. This means a
    field with a non-numeric tag such as ``"abc"`` matches tag number 0.
    """
    m = _LEADING_INT.match(value)
    return int(m.group(1)) if m else 0


def _require_record(elem: XmElem) -> None:
    if elem.tag != "record":
        raise ContractViolation(f"expected a <record> element, got <{elem.tag}>")


def _has_tag(elem: XmElem, tag: int) -> bool:
    return any(
        name == "tag" and parse_tag_number(value) == tag
        for name, value in elem.attributes
    )


def _has_code(elem: XmElem, code: str) -> bool:
    return any(
        name == "code" and value[:1] == code
        for name, value in elem.attributes
    )


def _count_tag(elem: XmElem, tag: int) -> int:
    count = sum(_count_tag(child, tag) for child in elem.children)
    return count + 1 if _has_tag(elem, tag) else count


def _count_code(elem: XmElem, code: str) -> int:
    count = sum(_count_code(child, code) for child in elem.children)
    return count + 1 if _has_code(elem, code) else count


def _nth_child(elem: XmElem, matches, occurrence: int) -> Optional[int]:
    found = 0
    for i, child in enumerate(elem.children):
        if matches(child):
            found += 1
            if found == occurrence:
                return i
    return None


def count_field(record: XmElem, tag: int) -> int:
    """Count the elements under ``record`` whose ``tag`` attribute equals ``tag``."""
    _require_record(record)
    return _count_tag(record, tag)


def locate_field_child(record: XmElem, tag: int, tnum: int) -> Optional[int]:
    """Return the child index of the ``tnum``-th direct child with ``tag``."""
    _require_record(record)
    return _nth_child(record, lambda child: _has_tag(child, tag), tnum)


def locate_subfield_child(field_elem: XmElem, sub: str, snum: int) -> Optional[int]:
    """Return the child index of the ``snum``-th direct child with code ``sub``."""
    return _nth_child(field_elem, lambda child: _has_code(child, sub), snum)


def count_subfield(record: XmElem, tag: int, tnum: int, sub: str) -> int:
    """Count the ``sub`` subfields inside the ``tnum``-th ``tag`` field of ``record``."""
    if not 1 <= tnum <= count_field(record, tag):
        return 0
    index = locate_field_child(record, tag, tnum)
    if index is None:
        return 0
    return _count_code(record.children[index], sub)


def get_data(record: XmElem, tag: int, tnum: int, sub: str, snum: int) -> Optional[str]:
    """Return the text of subfield ``sub`` #``snum`` in field ``tag`` #``tnum``.

    For control fields (tags 000 to 009) the subfield arguments are ignored
    and the text of the field itself is returned. ``None`` means the data is
    not present.
    """
    _require_record(record)
    if not 1 <= tnum <= count_field(record, tag):
        return None

    index = locate_field_child(record, tag, tnum)
    if index is None:
        return None
    field_elem = record.children[index]

    if tag in CONTROL_FIELD_RANGE:
        return field_elem.text

    if not 1 <= snum <= count_subfield(record, tag, tnum, sub):
        return None
    sub_index = locate_subfield_child(field_elem, sub, snum)
    if sub_index is None:
        return None
    return field_elem.children[sub_index].text
