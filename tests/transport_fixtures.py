"""Shared transport helpers for api-courier tests.

- make_raw_response: httpx responses whose body is still an unread stream,
  the way a real network transport delivers them
- ScriptedTransport: replays canned replies in order and records requests
"""

from __future__ import annotations

from typing import Any, Iterable

import httpx

# (status_code, body, headers)
Reply = tuple[int, Any, dict[str, str]]


def make_raw_response(
    status_code: int = 200,
    body: bytes | str = b"",
    headers: dict[str, str] | list[tuple[str, str]] | None = None,
) -> httpx.Response:
    """Create an httpx response with an unread body stream.

    Passing ``content=`` would make httpx read (and decompress) the body up
    front; the request pipeline reads the raw stream itself, so tests must
    hand it a stream.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")
    return httpx.Response(status_code, headers=headers or {}, stream=httpx.ByteStream(body))


class ScriptedTransport(httpx.MockTransport):
    """Mock transport answering with canned replies, in order.

    Usage:
        transport = ScriptedTransport([(302, "", {"location": "/foo"}), (200, "ok", {})])
        request = Request("GET", "http://example.com", connector=TransportConnector(transport))
        request.perform()
        transport.requests  # every httpx.Request sent, HEAD challenge requests included

    With repeat_last=True the final reply is served forever.
    """

    def __init__(self, replies: Iterable[Reply], repeat_last: bool = False) -> None:
        self.requests: list[httpx.Request] = []
        self._replies = list(replies)
        self._repeat_last = repeat_last
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._replies:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        if self._repeat_last and len(self._replies) == 1:
            status_code, body, headers = self._replies[0]
        else:
            status_code, body, headers = self._replies.pop(0)
        return make_raw_response(status_code, body, headers)

    @property
    def methods(self) -> list[str]:
        return [request.method for request in self.requests]
