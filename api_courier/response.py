"""Response - parsed payload plus the metadata of the exchange that produced it."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator

import httpx

if TYPE_CHECKING:
    from api_courier.request import Request


def header_lists(headers: httpx.Headers) -> dict[str, list[str]]:
    """Lowercase header names mapped to every value, in arrival order."""
    result: dict[str, list[str]] = {}
    for key, value in headers.multi_items():
        result.setdefault(key.lower(), []).append(value)
    return result


class Response:
    """The outcome of Request.perform().

    Equality, indexing, membership, iteration, len() and truthiness go to
    ``parsed_response``, so a Response can stand in for the data it carries:

        response = request.perform()
        response["books"]["book"]["id"]   # parsed payload
        response.code, response.headers   # exchange metadata

    When there is no payload (204, 304, empty body) the response compares
    equal to None while ``code`` and ``body`` stay available.
    """

    def __init__(
        self,
        request: Request,
        raw_response: httpx.Response,
        content: bytes,
        body: str,
        parsed_response: Any,
    ) -> None:
        self.request = request
        self.code = raw_response.status_code
        self.message = raw_response.reason_phrase
        self.http_version = raw_response.http_version
        self.headers = header_lists(raw_response.headers)
        self.content = content
        self.body = body
        self.parsed_response = parsed_response

    @property
    def ok(self) -> bool:
        return 200 <= self.code < 300

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Response):
            other = other.parsed_response
        return self.parsed_response == other

    __hash__ = None  # type: ignore[assignment]

    def __getitem__(self, key: Any) -> Any:
        return self.parsed_response[key]

    def __contains__(self, item: Any) -> bool:
        return item in self.parsed_response

    def __iter__(self) -> Iterator[Any]:
        return iter(self.parsed_response)

    def __len__(self) -> int:
        return len(self.parsed_response)

    def __bool__(self) -> bool:
        return bool(self.parsed_response)

    def __repr__(self) -> str:
        return f"<Response [{self.code}] parsed_response={self.parsed_response!r}>"
