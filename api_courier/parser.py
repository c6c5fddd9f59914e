"""Body parsing - turns response bodies into structured data.

The built-in parser dispatches on a format symbol (xml, json, yaml, html,
plain). A caller may replace it wholesale with any callable taking
``(body, format)``; the request then skips content-type sniffing and lets
that callable decide everything.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any, Callable

import yaml

from api_courier.errors import ParseError
from api_courier.xml_body import xml_to_dict

ParserFunc = Callable[[str, "str | None"], Any]

FORMATS = ("xml", "json", "yaml", "html", "plain")

# Media types are compared without parameters, so "text/xml; charset=utf-8"
# and "text/xml" resolve the same way.
MIMETYPE_FORMATS: dict[str, str] = {
    "text/xml": "xml",
    "application/xml": "xml",
    "text/json": "json",
    "application/json": "json",
    "text/javascript": "json",
    "application/javascript": "json",
}


def media_type(content_type: str | None) -> str:
    """Return the lowercased media type of a Content-Type value, sans parameters."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def format_from_mimetype(content_type: str | None) -> str | None:
    """Map a Content-Type header value to a format symbol, or None if unknown."""
    return MIMETYPE_FORMATS.get(media_type(content_type))


def _parse_xml(body: str) -> Any:
    return xml_to_dict(body)


def _parse_json(body: str) -> Any:
    return json.loads(body)


def _parse_yaml(body: str) -> Any:
    return yaml.safe_load(body)


_PARSERS: dict[str, Callable[[str], Any]] = {
    "xml": _parse_xml,
    "json": _parse_json,
    "yaml": _parse_yaml,
}


def parse(body: str, format: str | None = None) -> Any:
    """Parse *body* according to *format*.

    html, plain and an absent format are pass-through: the body comes back
    unchanged. Malformed bodies raise ParseError rather than falling back to
    the raw text.

    Raises:
        ParseError: If the body is not valid for *format*, or *format* is not
            a known symbol.
    """
    if format is None or format in ("html", "plain"):
        return body

    parse_func = _PARSERS.get(format)
    if parse_func is None:
        raise ParseError(f"Unsupported format: {format!r}", format=format)

    try:
        return parse_func(body)
    except (ET.ParseError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(f"Invalid {format} body: {e}", format=format) from e
