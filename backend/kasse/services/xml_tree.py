# Overview: Immutable XML element tree and single-pass serialization.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from lxml import etree


_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")
# Characters XML 1.0 does not allow in text content
_INVALID_TEXT_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


@dataclass(frozen=True)
class Element:
    """
    One XML element.

    Either text or children is meaningful; text is stored unescaped and
    escaped once at serialization time.
    """
    name: str
    text: Optional[str] = None
    children: tuple["Element", ...] = ()
    attributes: tuple[tuple[str, str], ...] = field(default=())

    def find(self, name: str) -> Optional["Element"]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def find_all(self, name: str) -> list["Element"]:
        return [child for child in self.children if child.name == name]

    def child_text(self, name: str) -> Optional[str]:
        child = self.find(name)
        return child.text if child is not None else None


def clean_text(value: str) -> str:
    """Drop characters that cannot appear in an XML 1.0 document."""
    return _INVALID_TEXT_CHARS.sub("", value)


def leaf(name: str, value) -> Element:
    """Text element; None becomes an empty string, XML-forbidden characters are dropped."""
    return Element(name=name, text="" if value is None else clean_text(str(value)))


def node(name: str, *children: Optional[Element]) -> Element:
    """Container element; None children are dropped so optional parts can be inlined."""
    return Element(name=name, children=tuple(child for child in children if child is not None))


def node_from(name: str, children: Iterable[Optional[Element]]) -> Element:
    return node(name, *children)


def safe_tag(name: str) -> str:
    """
    Coerce an arbitrary payload key into a valid XML element name.

    Invalid characters become underscores; names that cannot start an XML name
    (digits, '-', '.') or start with "xml" get a leading underscore.
    """
    cleaned = _INVALID_NAME_CHARS.sub("_", str(name)) or "_"
    if not (cleaned[0].isalpha() or cleaned[0] == "_") or cleaned.lower().startswith("xml"):
        cleaned = "_" + cleaned
    return cleaned


def _build(element: Element) -> etree._Element:
    built = etree.Element(element.name, dict(element.attributes))
    if element.children:
        for child in element.children:
            built.append(_build(child))
    elif element.text is not None:
        built.text = element.text
    return built


def to_string(root: Element, encoding: str = "UTF-8") -> str:
    """Serialize the tree as a pretty-printed document with an XML declaration."""
    document = etree.ElementTree(_build(root))
    data = etree.tostring(
        document,
        xml_declaration=True,
        encoding=encoding,
        pretty_print=True,
    )
    return data.decode(encoding)
