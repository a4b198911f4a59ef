"""Helpers for editing XML documents (manifests, config.xml, strings.xml).

Attribute names may be given either in prefixed form (``android:name``) or
in ElementTree's expanded form (``{http://schemas.android.com/apk/res/android}name``).
"""

from __future__ import annotations

import copy
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, List, Mapping, Optional

ANDROID_NS = "http://schemas.android.com/apk/res/android"
KNOWN_NAMESPACES: Dict[str, str] = {"android": ANDROID_NS}

for _prefix, _uri in KNOWN_NAMESPACES.items():
    ET.register_namespace(_prefix, _uri)


def qualify(name: str) -> str:
    """Turn ``prefix:local`` into ElementTree's ``{uri}local`` form."""
    if name.startswith("{") or ":" not in name:
        return name
    prefix, local = name.split(":", 1)
    uri = KNOWN_NAMESPACES.get(prefix)
    if uri is None:
        return name
    return f"{{{uri}}}{local}"


def prefixed(name: str) -> str:
    """Inverse of :func:`qualify` for known namespaces."""
    if not name.startswith("{"):
        return name
    uri, local = name[1:].split("}", 1)
    for prefix, known_uri in KNOWN_NAMESPACES.items():
        if known_uri == uri:
            return f"{prefix}:{local}"
    return name


XML_DECLARATION = "<?xml version='1.0' encoding='utf-8'?>\n"


class XmlDocument(ET.ElementTree):
    """An ElementTree that keeps the text around its root element.

    ``prolog`` holds everything before the root start tag (declaration,
    doctype, comments) and ``epilog`` everything after the root end tag, so
    that writing the document back only changes the root element itself.
    """

    def __init__(self, element: Optional[ET.Element] = None, prolog: str = "", epilog: str = ""):
        super().__init__(element)
        self.prolog = prolog
        self.epilog = epilog


def _skip_markup(text: str, pos: int, opener: str, closer: str) -> int:
    end = text.find(closer, pos + len(opener))
    return len(text) if end < 0 else end + len(closer)


def _prolog_end(text: str) -> int:
    """Index of the root start tag."""
    pos = 0
    while True:
        while pos < len(text) and text[pos].isspace():
            pos += 1
        if text.startswith("<?", pos):
            pos = _skip_markup(text, pos, "<?", "?>")
        elif text.startswith("<!--", pos):
            pos = _skip_markup(text, pos, "<!--", "-->")
        elif text.startswith("<!DOCTYPE", pos):
            close = text.find(">", pos)
            subset = text.find("[", pos)
            if 0 <= subset < close:
                close = text.find(">", text.find("]", subset))
            pos = len(text) if close < 0 else close + 1
        else:
            return pos


def _epilog_start(text: str) -> int:
    """Index just past the root end tag."""
    end = len(text)
    while True:
        stripped = text[:end].rstrip()
        if stripped.endswith("-->"):
            end = stripped.rfind("<!--")
        elif stripped.endswith("?>"):
            end = stripped.rfind("<?")
        else:
            return len(stripped)
        if end < 0:
            return len(stripped)


def parse_document(path: Path) -> XmlDocument:
    """Parse an XML file, keeping comments and the text around the root."""
    data = Path(path).read_bytes()
    parser = ET.XMLParser(target=ET.TreeBuilder(insert_comments=True, insert_pis=True))
    parser.feed(data)
    root = parser.close()
    # Text after the root end tag belongs to the epilog.
    root.tail = None
    text = data.decode("utf-8", errors="surrogateescape")
    return XmlDocument(
        root,
        prolog=text[: _prolog_end(text)],
        epilog=text[_epilog_start(text) :],
    )


def parse_fragment(text: str) -> ET.Element:
    """Parse an XML fragment (a single element with its subtree)."""
    return ET.fromstring(text)


def write_document(tree: ET.ElementTree, path: Path) -> None:
    """Write ``tree`` as UTF-8, restoring the original prolog and epilog if known."""
    if isinstance(tree, XmlDocument):
        prolog, epilog = tree.prolog, tree.epilog
    else:
        prolog, epilog = XML_DECLARATION, "\n"
    body = ET.tostring(tree.getroot(), encoding="unicode")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes((prolog + body + epilog).encode("utf-8", errors="surrogateescape"))


def element_to_string(element: ET.Element) -> str:
    # Drop the tail so the stored fragment is position independent.
    clone = copy.deepcopy(element)
    clone.tail = None
    return ET.tostring(clone, encoding="unicode")


def find_element(root: ET.Element, path: str) -> Optional[ET.Element]:
    """Resolve a parent selector such as ``/manifest/application`` or ``plugins``.

    Absolute selectors must start with the root tag or ``*`` (any root).
    Relative selectors are evaluated with ``Element.find`` from the root.
    """
    selector = path.strip()
    if not selector:
        return None
    if selector.startswith("/"):
        parts = [part for part in selector.split("/") if part]
        if not parts or parts[0] not in ("*", root.tag):
            return None
        if len(parts) == 1:
            return root
        return root.find("/".join(parts[1:]))
    return root.find(selector)


def get_attribute(element: ET.Element, name: str) -> Optional[str]:
    return element.get(qualify(name))


def set_attribute(element: ET.Element, name: str, value: str) -> None:
    element.set(qualify(name), value)


def remove_attribute(element: ET.Element, name: str) -> bool:
    """Remove an attribute; returns whether it was present."""
    return element.attrib.pop(qualify(name), None) is not None


def key_attributes(element: ET.Element) -> Dict[str, str]:
    """Attributes that identify ``element`` among its siblings.

    ``android:name`` alone when present, else ``name`` (plus ``value`` when
    present), else every attribute.
    """
    android_name = get_attribute(element, "android:name")
    if android_name is not None:
        return {"android:name": android_name}
    name = element.get("name")
    if name is not None:
        key = {"name": name}
        value = element.get("value")
        if value is not None:
            key["value"] = value
        return key
    return {prefixed(attr): value for attr, value in element.attrib.items()}


def _matches(element: ET.Element, tag: str, key: Mapping[str, str]) -> bool:
    if element.tag != tag:
        return False
    return all(get_attribute(element, attr) == value for attr, value in key.items())


def find_children_matching(
    parent: ET.Element, tag: str, key: Mapping[str, str]
) -> List[ET.Element]:
    return [child for child in list(parent) if _matches(child, tag, key)]


def add_child(parent: ET.Element, child: ET.Element) -> ET.Element:
    """Append a copy of ``child`` to ``parent`` and return the copy."""
    added = copy.deepcopy(child)
    added.tail = None
    parent.append(added)
    return added


def remove_children_matching(parent: ET.Element, tag: str, key: Mapping[str, str]) -> int:
    """Remove every direct child with ``tag`` whose key attributes equal ``key``."""
    matches = find_children_matching(parent, tag, key)
    for child in matches:
        parent.remove(child)
    return len(matches)


__all__ = [
    "ANDROID_NS",
    "qualify",
    "prefixed",
    "XML_DECLARATION",
    "XmlDocument",
    "parse_document",
    "parse_fragment",
    "write_document",
    "element_to_string",
    "find_element",
    "get_attribute",
    "set_attribute",
    "remove_attribute",
    "key_attributes",
    "find_children_matching",
    "add_child",
    "remove_children_matching",
]
