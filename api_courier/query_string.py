"""Query string and form body encoding.

Two normalizers ship with the library:

- ``rails_query_string_normalizer`` (the default): arrays become
  ``key[]=a&key[]=b`` and nested mappings become ``key[sub]=value``.
- ``flat_query_string_normalizer``: arrays become repeated ``key=a&key=b``
  pairs, None values become a bare ``key`` and pairs are ordered by key.

Both leave strings alone, so a pre-built query string passes through as is.
A request may swap in any callable with the same shape.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable
from urllib.parse import quote

QueryStringNormalizer = Callable[[Any], str]


def escape(value: Any) -> str:
    """Percent-encode everything outside the RFC 3986 unreserved set."""
    if value is None:
        return ""
    if isinstance(value, bool):
        value = "true" if value else "false"
    return quote(str(value), safe="")


def _escape_key(key: Any) -> str:
    return quote(str(key), safe="[]")


def normalize_param(key: Any, value: Any) -> list[str]:
    """Expand one key/value into ``key=value`` pairs using bracket notation."""
    if isinstance(value, Mapping):
        pairs: list[str] = []
        for sub_key, sub_value in value.items():
            pairs.extend(normalize_param(f"{key}[{sub_key}]", sub_value))
        return pairs
    if isinstance(value, (list, tuple)):
        pairs = []
        for element in value:
            pairs.extend(normalize_param(f"{key}[]", element))
        return pairs
    return [f"{_escape_key(key)}={escape(value)}"]


def to_params(params: Mapping[str, Any]) -> str:
    """Encode a mapping with bracket notation, keeping insertion order."""
    pairs: list[str] = []
    for key, value in params.items():
        pairs.extend(normalize_param(key, value))
    return "&".join(pairs)


def rails_query_string_normalizer(query: Any) -> str:
    if query is None:
        return ""
    if isinstance(query, str):
        return query
    return to_params(query)


def flat_query_string_normalizer(query: Any) -> str:
    """Encode without brackets: ``{"foo": ["a", "b"]}`` → ``foo=a&foo=b``.

    Pairs are sorted by key only, so repeated values for one key keep the
    order they were given in. Nested mappings still use bracket notation
    since there is no flat way to spell them.
    """
    if query is None:
        return ""
    if isinstance(query, str):
        return query

    keyed: list[tuple[str, str]] = []
    for key, value in query.items():
        key_str = str(key)
        if value is None:
            keyed.append((key_str, _escape_key(key_str)))
        elif isinstance(value, (list, tuple)):
            for element in value:
                keyed.append((key_str, f"{_escape_key(key_str)}={escape(element)}"))
        else:
            for pair in normalize_param(key_str, value):
                keyed.append((key_str, pair))

    keyed.sort(key=lambda item: item[0])
    return "&".join(pair for _, pair in keyed)


DEFAULT_QUERY_STRING_NORMALIZER: QueryStringNormalizer = rails_query_string_normalizer

# Names accepted where a normalizer is chosen from configuration text.
NORMALIZERS: dict[str, QueryStringNormalizer] = {
    "rails": rails_query_string_normalizer,
    "flat": flat_query_string_normalizer,
}
