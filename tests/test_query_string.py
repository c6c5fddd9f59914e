"""Tests for query string normalizers.

Tests cover:
- Rails-style bracket notation for arrays and nested mappings
- Flat-style repeated keys, bare None keys, percent-encoding, ordering
- Strings passing through untouched
- Round trip of the flat style through urllib.parse.parse_qsl
"""

import string
from urllib.parse import parse_qsl, unquote

from hypothesis import given
from hypothesis import strategies as st

from api_courier.query_string import (
    NORMALIZERS,
    escape,
    flat_query_string_normalizer,
    rails_query_string_normalizer,
)


class TestRailsNormalizer:
    """Default bracket-notation encoding."""

    def test_array_uses_brackets(self) -> None:
        query = rails_query_string_normalizer({"foo": ["bar", "baz"]})
        assert unquote(query) == "foo[]=bar&foo[]=baz"

    def test_nested_mapping_uses_brackets(self) -> None:
        query = rails_query_string_normalizer({"user": {"name": "Bob", "tags": ["a", "b"]}})
        assert unquote(query) == "user[name]=Bob&user[tags][]=a&user[tags][]=b"

    def test_keeps_insertion_order(self) -> None:
        assert rails_query_string_normalizer({"b": 1, "a": 2}) == "b=1&a=2"

    def test_values_are_escaped(self) -> None:
        assert rails_query_string_normalizer({"q": "Tim & Jon"}) == "q=Tim%20%26%20Jon"

    def test_none_value_is_empty(self) -> None:
        assert rails_query_string_normalizer({"page": None}) == "page="

    def test_booleans_are_lowercase(self) -> None:
        assert rails_query_string_normalizer({"active": True, "deleted": False}) == (
            "active=true&deleted=false"
        )

    def test_string_passes_through(self) -> None:
        assert rails_query_string_normalizer("foo=bar&foo=baz") == "foo=bar&foo=baz"

    def test_none_query_is_empty(self) -> None:
        assert rails_query_string_normalizer(None) == ""


class TestFlatNormalizer:
    """Bracket-free encoding."""

    def test_does_not_modify_strings(self) -> None:
        assert unquote(flat_query_string_normalizer("foo=bar&foo=baz")) == "foo=bar&foo=baz"

    def test_array_has_no_brackets(self) -> None:
        query = flat_query_string_normalizer({"page": 1, "foo": ["bar", "baz"]})
        assert unquote(query) == "foo=bar&foo=baz&page=1"

    def test_array_values_are_uri_encoded(self) -> None:
        query = flat_query_string_normalizer({"people": ["Bob Marley", "Tim & Jon"]})
        assert query == "people=Bob%20Marley&people=Tim%20%26%20Jon"

    def test_none_values_are_bare_keys(self) -> None:
        assert flat_query_string_normalizer({"page": 1, "per_page": None}) == "page=1&per_page"

    def test_repeated_values_keep_given_order(self) -> None:
        assert flat_query_string_normalizer({"id": ["z", "a"]}) == "id=z&id=a"

    def test_nested_mapping_falls_back_to_brackets(self) -> None:
        assert unquote(flat_query_string_normalizer({"f": {"a": 1}})) == "f[a]=1"


class TestEscape:
    """Percent-encoding of values."""

    def test_everything_but_unreserved_is_encoded(self) -> None:
        assert escape("a b+c/d?e=f&g~h_i.j-k") == "a%20b%2Bc%2Fd%3Fe%3Df%26g~h_i.j-k"

    def test_non_ascii_is_utf8_encoded(self) -> None:
        assert escape("café") == "caf%C3%A9"


def test_named_normalizers() -> None:
    assert NORMALIZERS["rails"] is rails_query_string_normalizer
    assert NORMALIZERS["flat"] is flat_query_string_normalizer


_keys = st.text(alphabet=string.ascii_letters + string.digits + "_-", min_size=1, max_size=8)
_values = st.text(alphabet=st.characters(exclude_categories=("Cs",)), max_size=12)


@given(st.dictionaries(_keys, st.one_of(_values, st.lists(_values, max_size=4)), max_size=5))
def test_flat_normalizer_round_trips_through_parse_qsl(params: dict) -> None:
    """Decoding the flat encoding yields the input pairs.

    Keys come back sorted; repeated values for one key keep their order.
    """
    encoded = flat_query_string_normalizer(params)

    expected = []
    for key in sorted(params):
        value = params[key]
        for item in value if isinstance(value, list) else [value]:
            expected.append((key, item))

    assert parse_qsl(encoded, keep_blank_values=True) == expected
