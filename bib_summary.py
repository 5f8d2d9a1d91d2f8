from typing import List, NamedTuple, Optional, Tuple

from field_locator import get_data
from marc_element import XmElem

NOT_AVAILABLE = "na"


class BibData(NamedTuple):
    author: str
    title: str
    pubinfo: str
    callnum: str


# (tag, subfield code) pieces concatenated for each summary value
AUTHOR_SOURCES: List[List[Tuple[int, str]]] = [[(100, "a")], [(130, "a")]]
TITLE_SOURCES: List[List[Tuple[int, str]]] = [[(245, "a"), (245, "p"), (245, "b")]]
PUBINFO_SOURCES: List[List[Tuple[int, str]]] = [[(260, "a"), (260, "b"), (260, "c"), (250, "a")]]
CALLNUM_SOURCES: List[List[Tuple[int, str]]] = [[(90, "a"), (90, "b")], [(50, "a"), (50, "b")]]

SELECTOR_FIELDS = {"a": "author", "t": "title", "p": "pubinfo"}


def _joined(record: XmElem, pieces: List[Tuple[int, str]]) -> Optional[str]:
    """Concatenate the first occurrence of every piece, ``None`` if none exists."""
    values = [get_data(record, tag, 1, code, 1) for tag, code in pieces]
    if all(v is None for v in values):
        return None
    return "".join(v for v in values if v is not None)


def _first_available(record: XmElem, alternatives: List[List[Tuple[int, str]]]) -> str:
    for pieces in alternatives:
        value = _joined(record, pieces)
        if value is not None:
            return value
    return NOT_AVAILABLE


def derive_bib_summary(record: XmElem) -> BibData:
    """Return author, title, publication info and call number of ``record``.

    Every value falls back to ``"na"`` when the record holds none of its
    source subfields. The summary is computed fresh on each call.
    """
    return BibData(
        author=_first_available(record, AUTHOR_SOURCES),
        title=_first_available(record, TITLE_SOURCES),
        pubinfo=_first_available(record, PUBINFO_SOURCES),
        callnum=_first_available(record, CALLNUM_SOURCES),
    )


marc2bib = derive_bib_summary


def bib_field(bibdata: BibData, letter: str) -> str:
    """Return the summary value selected by ``a``, ``t`` or ``p``."""
    return getattr(bibdata, SELECTOR_FIELDS[letter])
