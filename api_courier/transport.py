"""Transport connector - builds configured httpx clients for one hop.

TLS is decided by the URI scheme alone: ``https://host:123`` gets TLS and
``http://host:443`` does not. Client certificates (PEM), proxy routing,
timeouts and the debug sink all come from RequestOptions; the environment
(proxy variables, netrc) is never consulted.
"""

from __future__ import annotations

import logging
import numbers
import ssl
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

import httpx

from api_courier.errors import ConfigurationError
from api_courier.models import RequestOptions

_LOGGER = logging.getLogger(__name__)


@dataclass
class Connection:
    """An httpx client plus the settings it was built with.

    The settings are kept for introspection; the client already carries them.
    Use as a context manager so the client is closed on every exit path.
    """

    client: httpx.Client
    use_ssl: bool
    ssl_context: ssl.SSLContext | None = None
    open_timeout: float | None = None
    read_timeout: float | None = None
    proxy_address: str | None = None
    proxy_port: int | None = None
    proxy_user: str | None = None
    proxy_pass: str | None = None
    debug_output: TextIO | None = None

    @property
    def verify_mode(self) -> ssl.VerifyMode | None:
        if self.ssl_context is None:
            return None
        return self.ssl_context.verify_mode

    def __enter__(self) -> "Connection":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()


def numeric_timeout(value: Any) -> float | None:
    """Return *value* as seconds if it is a real number, else None.

    Booleans are numbers to Python but never a sensible timeout.
    """
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    return float(value)


def load_pem_context(pem: str | bytes, password: str | None = None) -> ssl.SSLContext:
    """Build an SSL context presenting the certificate and key in *pem*.

    The ssl module only loads key material from files, so the PEM text is
    written to a private temporary directory for the duration of the load.
    Peer verification is always on.

    Raises:
        ConfigurationError: If the PEM does not contain a usable cert/key pair.
    """
    context = ssl.create_default_context()
    with tempfile.TemporaryDirectory() as tmp_dir:
        pem_path = Path(tmp_dir) / "client.pem"
        if isinstance(pem, bytes):
            pem_path.write_bytes(pem)
        else:
            pem_path.write_text(pem, encoding="utf-8")
        try:
            context.load_cert_chain(str(pem_path), password=password)
        except (ssl.SSLError, OSError) as e:
            raise ConfigurationError(f"Invalid PEM certificate or key: {e}") from e
    context.verify_mode = ssl.CERT_REQUIRED
    return context


def _debug_hooks(sink: TextIO) -> dict[str, list[Any]]:
    """Event hooks that write request and response heads to *sink*."""

    def log_request(request: httpx.Request) -> None:
        sink.write(f'-> "{request.method} {request.url.raw_path.decode("ascii")} HTTP/1.1"\n')
        for name, value in request.headers.items():
            sink.write(f'-> "{name}: {value}"\n')

    def log_response(response: httpx.Response) -> None:
        sink.write(
            f'<- "{response.http_version} {response.status_code} {response.reason_phrase}"\n'
        )
        for name, value in response.headers.items():
            sink.write(f'<- "{name}: {value}"\n')

    return {"request": [log_request], "response": [log_response]}


class TransportConnector:
    """Creates one Connection per hop from a URI and RequestOptions.

    Usage:
        connector = TransportConnector()
        with connector.connection_for(uri, options) as connection:
            response = connection.client.send(request)

    Passing an httpx transport (e.g. ``httpx.MockTransport``) routes every
    client it builds through that transport.
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def connection_for(self, uri: httpx.URL | str, options: RequestOptions) -> Connection:
        url = httpx.URL(str(uri))
        use_ssl = url.scheme == "https"

        kwargs: dict[str, Any] = {
            "follow_redirects": False,
            "trust_env": False,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport

        ssl_context: ssl.SSLContext | None = None
        if use_ssl and options.pem:
            ssl_context = load_pem_context(options.pem, options.pem_password)
            kwargs["verify"] = ssl_context

        timeout = numeric_timeout(options.timeout)
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(None, connect=timeout, read=timeout)
        elif options.timeout is not None:
            _LOGGER.debug("Ignoring non-numeric timeout %r", options.timeout)

        if options.http_proxyaddr and options.http_proxyport:
            proxy_auth = None
            if options.http_proxyuser:
                proxy_auth = (options.http_proxyuser, options.http_proxypass or "")
            kwargs["proxy"] = httpx.Proxy(
                f"http://{options.http_proxyaddr}:{options.http_proxyport}",
                auth=proxy_auth,
            )

        if options.debug_output is not None:
            kwargs["event_hooks"] = _debug_hooks(options.debug_output)

        _LOGGER.debug("Opening connection for %s (tls=%s)", url, use_ssl)
        return Connection(
            client=httpx.Client(**kwargs),
            use_ssl=use_ssl,
            ssl_context=ssl_context,
            open_timeout=timeout,
            read_timeout=timeout,
            proxy_address=options.http_proxyaddr if "proxy" in kwargs else None,
            proxy_port=options.http_proxyport if "proxy" in kwargs else None,
            proxy_user=options.http_proxyuser if "proxy" in kwargs else None,
            proxy_pass=options.http_proxypass if "proxy" in kwargs else None,
            debug_output=options.debug_output,
        )
