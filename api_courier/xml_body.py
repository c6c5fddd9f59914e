"""XML-to-dict conversion for response bodies.

XML APIs hand back the same kind of structure as JSON APIs: every element is
keyed by its local name, a tag repeated among siblings holds a list, and a
lone child stays a scalar or mapping. Attributes share the element's mapping
with its children, and text next to attributes or children is kept under
``__content__``.

The body arrives already decoded, so input is always ``str``.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Any

CONTENT_KEY = "__content__"


def xml_to_dict(body: str) -> dict[str, Any]:
    """Convert the XML document in *body* into nested dicts, lists and strings.

    ``<hash><foo>bar</foo></hash>`` becomes ``{"hash": {"foo": "bar"}}``.

    Raises:
        ET.ParseError: If *body* is empty or not well-formed XML.
    """
    parser = ET.XMLPullParser(events=("start", "end"))
    parser.feed(body)
    parser.close()

    # One mapping per open element; the bottom entry collects the root.
    open_nodes: list[dict[str, Any]] = [{}]
    for event, element in parser.read_events():
        if event == "start":
            open_nodes.append(_attributes(element))
            continue
        node = open_nodes.pop()
        _add_child(open_nodes[-1], _local_name(element.tag), _finish(node, element.text))
        element.clear()
    return open_nodes[0]


def _local_name(name: str) -> str:
    return name.rpartition("}")[2]


def _attributes(element: ET.Element) -> dict[str, Any]:
    return {_local_name(name): value for name, value in element.attrib.items()}


def _add_child(node: dict[str, Any], tag: str, value: Any) -> None:
    if tag not in node:
        node[tag] = value
    elif isinstance(node[tag], list):
        node[tag].append(value)
    else:
        node[tag] = [node[tag], value]


def _finish(node: dict[str, Any], text: str | None) -> dict[str, Any] | str | None:
    text = text.strip() if text else ""
    if not text:
        return node or None
    if not node:
        return text
    node[CONTENT_KEY] = text
    return node
