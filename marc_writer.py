import logging
from typing import Optional, TextIO
from xml.sax.saxutils import escape

from marc_element import XmElem
from marc_errors import ContractViolation, WriteFailure
from marc_utils import MARC_PREFIX, NS, OUTPUT_COMMENT, SCHEMA_LOCATION

logger = logging.getLogger("mxtool.writer")

# Same replacements as libxml2's xmlEncodeSpecialChars
_SPECIAL_CHARS = {'"': "&quot;", "\r": "&#13;"}

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
COLLECTION_OPEN = (
    f'<{MARC_PREFIX}:collection xmlns:marc="{NS["marc"]}" '
    f'xmlns:xsi="{NS["xsi"]}" xsi:schemaLocation="{SCHEMA_LOCATION}">'
)
COLLECTION_CLOSE = f"</{MARC_PREFIX}:collection>"


def encode_special_chars(text: Optional[str]) -> str:
    """Entity-escape ``text`` for use as element content or attribute value."""
    if text is None:
        return ""
    return escape(text, _SPECIAL_CHARS)


def write_text(out: TextIO, data: str) -> None:
    try:
        out.write(data)
    except OSError as e:
        raise WriteFailure(f"could not write to output: {e}") from e


def write_header(out: TextIO) -> None:
    """Write the XML declaration, comment line and opening collection tag."""
    write_text(out, f"{XML_DECLARATION}\n{OUTPUT_COMMENT}\n{COLLECTION_OPEN}\n")


def write_footer(out: TextIO) -> None:
    write_text(out, f"{COLLECTION_CLOSE}\n")


def write_element(elem: XmElem, out: TextIO, depth: int = 0) -> int:
    """Write ``elem`` and its subtree indented by ``depth`` tabs.

    The ``collection`` root only contributes its children, its own tags are
    written by :func:`write_header` and :func:`write_footer`. Returns the
    number of elements written.
    """
    if elem.tag == "collection":
        return sum(write_element(child, out, depth + 1) for child in elem.children)

    indent = "\t" * depth
    attrs = "".join(
        f' {name}="{encode_special_chars(value)}"' for name, value in elem.attributes
    )
    write_text(out, f"{indent}<{MARC_PREFIX}:{elem.tag}{attrs}>")
    written = 1

    if elem.children:
        write_text(out, "\n")
        for child in elem.children:
            written += write_element(child, out, depth + 1)
        write_text(out, f"{indent}</{MARC_PREFIX}:{elem.tag}>\n")
    else:
        write_text(out, f"{encode_special_chars(elem.text)}</{MARC_PREFIX}:{elem.tag}>\n")
    return written


def write_collection(top: XmElem, out: TextIO) -> int:
    """Write the whole collection ``top`` wrapped in the MARCXML envelope."""
    if top.tag != "collection":
        raise ContractViolation(f"invalid root node <{top.tag}>, expected <collection>")
    write_header(out)
    written = write_element(top, out, 0)
    write_footer(out)
    logger.debug("Wrote %d elements", written)
    return written
