"""Request - executes one logical HTTP call and returns a parsed Response.

perform() runs a small loop over immutable Hop values:

    validate options -> build hop -> send -> redirect? -> next hop
                                          -> decompress -> parse -> Response

One Connection serves the whole loop and is closed on every exit path. It
is only replaced when a redirect crosses between http and https, since TLS
settings (client certificate included) depend on the scheme.

Redirects are followed up to ``options.limit`` times. Each follow-up hop
resolves the Location header against the current URI, merges Set-Cookie
into the Cookie header and, unless maintain_method_across_redirects is set,
switches to GET without a body.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from api_courier import auth
from api_courier.cookies import merge_cookie_header
from api_courier.deflation import inflate
from api_courier.errors import ConfigurationError, RedirectionTooDeepError, TransportError
from api_courier.models import Hop, RequestOptions
from api_courier.parser import ParserFunc, format_from_mimetype, parse
from api_courier.query_string import DEFAULT_QUERY_STRING_NORMALIZER, QueryStringNormalizer
from api_courier.response import Response
from api_courier.transport import Connection, TransportConnector

_LOGGER = logging.getLogger(__name__)

# Verbs whose query must be a mapping, since a string query would be
# ambiguous next to a form-encoded body.
BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

# Statuses that never carry a body worth parsing.
NO_CONTENT_STATUSES = frozenset({204, 304})

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _find_header(headers: Mapping[str, str], name: str) -> str | None:
    """Return the key under which *name* is stored, ignoring case."""
    lower = name.lower()
    for key in headers:
        if key.lower() == lower:
            return key
    return None


def _decode_text(content: bytes, charset: str | None) -> str:
    try:
        return content.decode(charset or "utf-8", errors="replace")
    except LookupError:
        return content.decode("utf-8", errors="replace")


def _is_redirect(response: httpx.Response) -> bool:
    return 300 <= response.status_code < 400


class Request:
    """One logical HTTP call.

    Usage:
        request = Request("GET", "http://api.foo.com/v1", RequestOptions(format="xml"))
        response = request.perform()
        response["hash"]["foo"]
        str(response.request.uri)   # final URI after redirects

    After perform(), ``http_method``, ``path``, ``uri`` and ``headers``
    describe the final hop, so a redirected DELETE reads back as GET.
    Calling perform() again starts over from the verb and path the request
    was created with. Assigning ``http_method`` or ``path`` replaces those
    and discards the previous hop.
    """

    def __init__(
        self,
        http_method: str,
        path: str,
        options: RequestOptions | None = None,
        connector: TransportConnector | None = None,
    ) -> None:
        self.hop: Hop | None = None
        self._location: str | None = None
        self.http_method = http_method
        self.path = path
        self.options = options if options is not None else RequestOptions()
        self._connector = connector or TransportConnector()
        self.last_response: httpx.Response | None = None

    @property
    def http_method(self) -> str:
        if self.hop is not None:
            return self.hop.method
        return self._http_method

    @http_method.setter
    def http_method(self, value: str) -> None:
        self._http_method = value.upper()
        self._forget_hops()

    @property
    def path(self) -> str:
        """The requested path, or the last Location followed."""
        if self._location is not None:
            return self._location
        return self._path

    @path.setter
    def path(self, value: str) -> None:
        self._path = value
        self._forget_hops()

    @property
    def parser(self) -> ParserFunc:
        """The caller's parser if one was given, else the built-in one."""
        return self.options.parser or parse

    @property
    def uri(self) -> httpx.URL:
        """The URI of the current hop, or the composed URI before perform()."""
        if self.hop is not None:
            return self.hop.uri
        return self._compose_uri()

    @property
    def base_uri(self) -> str:
        """Scheme and authority of the current URI, e.g. ``http://api.foo.com``."""
        uri = self.uri
        return f"{uri.scheme}://{uri.netloc.decode('ascii')}"

    @property
    def headers(self) -> dict[str, str]:
        """Headers of the current hop; cookies set by redirects accumulate here."""
        if self.hop is not None:
            return dict(self.hop.headers)
        return dict(self.options.headers)

    @property
    def format(self) -> str | None:
        """Explicit format, else the one implied by the last response, else None."""
        if self.options.format:
            return self.options.format
        if self.last_response is None:
            return None
        return self.format_from_mimetype(self.last_response.headers.get("content-type"))

    def format_from_mimetype(self, content_type: str | None) -> str | None:
        """Like parser.format_from_mimetype, but a custom parser opts out of sniffing."""
        if self.options.parser is not None:
            return None
        return format_from_mimetype(content_type)

    @property
    def query_string_normalizer(self) -> QueryStringNormalizer:
        return self.options.query_string_normalizer or DEFAULT_QUERY_STRING_NORMALIZER

    def perform(self) -> Response:
        """Execute the request, following redirects, and return the Response.

        Raises:
            ConfigurationError: Invalid option combination (before any I/O).
            RedirectionTooDeepError: More than ``options.limit`` redirects.
            TransportError: Connection failure, TLS failure or timeout.
            ParseError: Body malformed for its resolved format.
            AuthenticationError: Digest challenge request without a usable challenge.
        """
        self._forget_hops()
        self._validate()

        hop = self._initial_hop()
        redirects = 0
        connection: Connection | None = None
        try:
            while True:
                connection = self._connection_for(hop, connection)
                self.hop = hop
                raw_response, content = self._execute(connection, hop)
                self.last_response = raw_response

                if not self._is_followable_redirect(raw_response):
                    return self._build_response(raw_response, content)

                redirects += 1
                if redirects > self.options.limit:
                    raise RedirectionTooDeepError(raw_response, self.options.limit)
                hop = self._next_hop(hop, raw_response)
        finally:
            if connection is not None:
                connection.close()

    def _forget_hops(self) -> None:
        self.hop = None
        self._location = None

    def _validate(self) -> None:
        options = self.options

        if options.basic_auth is not None and options.digest_auth is not None:
            raise ConfigurationError(
                "only one authentication method, basic_auth or digest_auth may be used at a time"
            )
        if options.basic_auth is not None and not isinstance(options.basic_auth, Mapping):
            raise ConfigurationError("basic_auth must be a mapping")
        if options.digest_auth is not None and not isinstance(options.digest_auth, Mapping):
            raise ConfigurationError("digest_auth must be a mapping")

        self._check_query_type()
        if self.http_method in BODY_METHODS and isinstance(options.query, str):
            raise ConfigurationError(
                f"query must be a mapping when using HTTP {self.http_method}"
            )

    def _check_query_type(self) -> None:
        query = self.options.query
        if query is not None and not isinstance(query, (Mapping, str)):
            raise ConfigurationError(
                f"query must be a mapping or a string, not {type(query).__name__}"
            )

    def _compose_uri(self) -> httpx.URL:
        """Join path onto base_uri (if relative) and append the query string."""
        url = httpx.URL(self._path)
        if url.is_relative_url:
            base = self.options.base_uri
            if not base:
                raise ConfigurationError(f"Relative path {self._path!r} requires a base_uri")
            if "://" not in base:
                base = f"http://{base}"
            url = httpx.URL(base.rstrip("/") + "/" + self._path.lstrip("/"))

        query_string = self._query_string(url.query.decode("ascii"))
        if query_string:
            url = url.copy_with(query=query_string.encode("utf-8"))
        return url

    def _query_string(self, existing: str) -> str:
        self._check_query_type()
        normalizer = self.query_string_normalizer
        default_params = self.options.default_params or {}
        query = self.options.query

        parts = [existing] if existing else []
        if isinstance(query, Mapping):
            parts.append(normalizer({**default_params, **query}))
        else:
            if default_params:
                parts.append(normalizer(default_params))
            if query is not None:
                parts.append(query)
        return "&".join(part for part in parts if part)

    def _encoded_body(self) -> tuple[bytes | None, str | None]:
        """Return the body bytes and the content type they imply, if any."""
        body = self.options.body
        if body is None:
            return None, None
        if isinstance(body, Mapping):
            return self.query_string_normalizer(body).encode("utf-8"), FORM_CONTENT_TYPE
        if isinstance(body, bytes):
            return body, None
        return str(body).encode("utf-8"), None

    def _initial_hop(self) -> Hop:
        headers = dict(self.options.headers)
        body, content_type = self._encoded_body()
        if content_type and _find_header(headers, "content-type") is None:
            headers["Content-Type"] = content_type
        return Hop(uri=self._compose_uri(), method=self._http_method, headers=headers, body=body)

    def _connection_for(self, hop: Hop, current: Connection | None) -> Connection:
        """Keep *current* unless the hop switches between http and https."""
        use_ssl = hop.uri.scheme == "https"
        if current is not None:
            if current.use_ssl == use_ssl:
                return current
            _LOGGER.debug("Scheme changed to %s, reopening connection", hop.uri.scheme)
            current.close()
        return self._connector.connection_for(hop.uri, self.options)

    def _execute(self, connection: Connection, hop: Hop) -> tuple[httpx.Response, bytes]:
        """Send one hop and return the response with its raw (still encoded) body."""
        _LOGGER.debug("%s %s", hop.method, hop.uri)
        try:
            raw_request = connection.client.build_request(
                hop.method, hop.uri, headers=hop.headers, content=hop.body
            )
            auth.apply(raw_request, self.options, connection)
            raw_response = connection.client.send(raw_request, stream=True)
            try:
                content = b"".join(raw_response.iter_raw())
            finally:
                raw_response.close()
        except httpx.TimeoutException as e:
            raise TransportError(f"Request timeout for {hop.uri}: {e}") from e
        except httpx.ConnectError as e:
            raise TransportError(f"Connection error for {hop.uri}: {e}") from e
        except httpx.RequestError as e:
            raise TransportError(f"Request error for {hop.uri}: {e}") from e

        _LOGGER.debug("%s %s -> %s", hop.method, hop.uri, raw_response.status_code)
        return raw_response, content

    def _is_followable_redirect(self, response: httpx.Response) -> bool:
        return (
            self.options.follow_redirects
            and _is_redirect(response)
            and "location" in response.headers
        )

    def _next_hop(self, hop: Hop, response: httpx.Response) -> Hop:
        location = response.headers["location"]
        uri = hop.uri.join(location)

        headers = dict(hop.headers)
        set_cookies = response.headers.get_list("set-cookie")
        if set_cookies:
            cookie_key = _find_header(headers, "cookie") or "Cookie"
            headers[cookie_key] = merge_cookie_header(headers.get(cookie_key), set_cookies)

        method, body = hop.method, hop.body
        if not self.options.maintain_method_across_redirects:
            method, body = "GET", None
            for name in ("content-type", "content-length"):
                key = _find_header(headers, name)
                if key is not None:
                    del headers[key]

        _LOGGER.debug(
            "Following %s redirect from %s to %s (%s)",
            response.status_code, hop.uri, uri, method,
        )
        self._location = location
        return Hop(uri=uri, method=method, headers=headers, body=body)

    def _build_response(self, raw_response: httpx.Response, content: bytes) -> Response:
        if raw_response.status_code in NO_CONTENT_STATUSES or not content:
            return Response(
                self, raw_response, content,
                _decode_text(content, raw_response.charset_encoding), None,
            )

        content = inflate(content, raw_response.headers)
        body = _decode_text(content, raw_response.charset_encoding)
        if not content:
            parsed: Any = None
        elif _is_redirect(raw_response):
            # A redirect that is not followed is handed back as text.
            parsed = body
        else:
            parsed = self.parser(body, self.format)
        return Response(self, raw_response, content, body, parsed)
