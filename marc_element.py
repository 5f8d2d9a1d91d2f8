from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from lxml import etree

from marc_errors import ParseFailure


@dataclass
class XmElem:
    """Generic XML element copied out of a parsed MARCXML document.

    An element either carries ``text`` or has ``children``, never both.
    ``is_blank`` is true when the text is present but whitespace only.
    """

    tag: Optional[str]
    text: Optional[str] = None
    is_blank: bool = False
    attributes: List[Tuple[str, str]] = field(default_factory=list)
    children: List["XmElem"] = field(default_factory=list)
    released: bool = field(default=False, compare=False, repr=False)

    def get(self, name: str) -> Optional[str]:
        """Return the value of the first attribute called ``name``."""
        for attr_name, value in self.attributes:
            if attr_name == name:
                return value
        return None

    def release(self) -> None:
        release(self)

    def __enter__(self) -> "XmElem":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def _local_name(name: str) -> str:
    return etree.QName(name).localname


def _is_element(node) -> bool:
    # comments and processing instructions expose a factory function as tag
    return isinstance(node.tag, str)


def _element_text(node) -> Optional[str]:
    """Concatenate the text of ``node`` including text after inner comments."""
    if node.text is None and len(node) == 0:
        return None
    return (node.text or "") + "".join(child.tail or "" for child in node)


def build_element(node) -> XmElem:
    """Deep-copy the lxml ``node`` into an :class:`XmElem` tree."""
    while node is not None and not _is_element(node):
        node = node.getnext()
    if node is None:
        raise ParseFailure("no element found where an element was expected")

    elem = XmElem(tag=_local_name(node.tag))
    elem.attributes = [(_local_name(name), value) for name, value in node.attrib.items()]

    children = list(node.iterchildren(tag=etree.Element))
    if children:
        elem.children = [build_element(child) for child in children]
    else:
        elem.text = _element_text(node)
        elem.is_blank = elem.text is not None and not elem.text.strip()
    return elem


def release(elem: XmElem) -> None:
    """Release ``elem`` and its whole subtree.

    Children go first, then the element's own attributes, text and tag.
    Calling it again on an already released element does nothing.
    """
    if elem.released:
        return
    for child in elem.children:
        release(child)
    elem.children = []
    elem.attributes = []
    elem.text = None
    elem.is_blank = False
    elem.tag = None
    elem.released = True


def count_elements(elem: XmElem) -> int:
    """Return the number of elements in the subtree rooted at ``elem``."""
    return 1 + sum(count_elements(child) for child in elem.children)
