import logging
import sys
from enum import Enum
from typing import Callable, List, Sequence, TextIO, Tuple

import regex
from tqdm import tqdm

from bib_summary import BibData, SELECTOR_FIELDS, bib_field, derive_bib_summary
from marc_element import XmElem
from marc_errors import SelectorError
from marc_writer import write_element, write_footer, write_header, write_text

logger = logging.getLogger("mxtool.collection")


class Selector(Enum):
    KEEP = "keep"
    DISCARD = "discard"


def parse_pattern(pattern: str) -> Tuple[str, "regex.Pattern"]:
    """Split a ``<field>=<regex>`` pattern into its field letter and regex.

    ``<field>`` is ``a`` (author), ``t`` (title) or ``p`` (publication).
    POSIX bracket classes such as ``[[:upper:]]`` are understood.
    """
    if len(pattern) < 2 or pattern[0] not in SELECTOR_FIELDS or pattern[1] != "=":
        raise SelectorError(
            f"incorrect string match pattern {pattern!r}, should be: <field>=<regex>"
        )
    try:
        compiled = regex.compile(pattern[2:])
    except regex.error as e:
        raise SelectorError(f"regex compilation failed for {pattern[2:]!r}: {e}") from e
    return pattern[0], compiled


def match(data: str, pattern) -> bool:
    """Return ``True`` if ``pattern`` matches anywhere in ``data``."""
    if isinstance(pattern, str):
        pattern = regex.compile(pattern)
    return pattern.search(data) is not None


def select_records(top: XmElem, selector: Selector, pattern: str, out: TextIO) -> int:
    """Write the records of ``top`` that match (keep) or do not match (discard).

    Returns the number of records written.
    """
    letter, compiled = parse_pattern(pattern)
    keep_matches = selector is Selector.KEEP

    write_header(out)
    written = 0
    for child in top.children:
        if child.tag != "record":
            continue
        bibinfo = derive_bib_summary(child)
        if match(bib_field(bibinfo, letter), compiled) == keep_matches:
            write_element(child, out, 1)
            written += 1
    write_footer(out)
    logger.info("%s %s: %d of %d records written", selector.value, pattern, written, len(top.children))
    return written


def concat(top1: XmElem, top2: XmElem, out: TextIO) -> int:
    """Write the children of both collections inside a single envelope."""
    write_header(out)
    written = write_element(top1, out, 0)
    written += write_element(top2, out, 0)
    write_footer(out)
    return written


def rank_order(keys: Sequence[str]) -> List[int]:
    """Return the original index for every position of the sorted ``keys``.

    Each rank takes the first original index with an equal key that no
    earlier rank has used, so duplicate keys keep their original order.
    """
    sorted_keys = sorted(keys)
    used = [False] * len(keys)
    order: List[int] = []
    for key in sorted_keys:
        for i, original in enumerate(keys):
            if not used[i] and original == key:
                used[i] = True
                order.append(i)
                break
    return order


def sort_records(collection: XmElem, keys: Sequence[str]) -> None:
    """Reorder ``collection.children`` in place by ``keys`` (one per child)."""
    if len(keys) != len(collection.children):
        raise ValueError(
            f"got {len(keys)} sort keys for {len(collection.children)} children"
        )
    if len(collection.children) < 2:
        return
    order = rank_order(keys)
    children = list(collection.children)
    collection.children[:] = [children[i] for i in order]
    logger.debug("Sorted %d children", len(order))


def record_keys(
    collection: XmElem,
    key_fn: Callable[[BibData], str],
    progress: bool = False,
) -> List[str]:
    """Compute one sort key per child of ``collection`` from its summary."""
    return [
        key_fn(derive_bib_summary(child))
        for child in tqdm(
            collection.children,
            desc="Sort keys",
            unit="record",
            file=sys.stderr,
            disable=not progress,
        )
    ]


def _format_line(first: str, second: str, title: str, pubinfo: str) -> str:
    line = f"\n{first} {second} {title} {pubinfo}"
    if not pubinfo.endswith("."):
        line += "."
    return line + "\n"


def _listing(
    top: XmElem,
    out: TextIO,
    key_fn: Callable[[BibData], str],
    line_fn: Callable[[BibData], str],
    progress: bool,
) -> int:
    sort_records(top, record_keys(top, key_fn, progress))
    for child in top.children:
        write_text(out, line_fn(derive_bib_summary(child)))
    return len(top.children)


def lib_format(top: XmElem, out: TextIO, progress: bool = False) -> int:
    """Write a listing sorted by call number, call number first."""
    return _listing(
        top,
        out,
        lambda bib: bib.callnum,
        lambda bib: _format_line(bib.callnum, bib.author, bib.title, bib.pubinfo),
        progress,
    )


def bib_format(top: XmElem, out: TextIO, progress: bool = False) -> int:
    """Write a bibliography sorted by author, author first."""
    return _listing(
        top,
        out,
        lambda bib: bib.author,
        lambda bib: _format_line(bib.author, bib.callnum, bib.title, bib.pubinfo),
        progress,
    )
