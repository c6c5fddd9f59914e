"""Authentication injection for outgoing requests.

Both schemes are computed by httpx's own auth classes. Digest auth needs the
server's challenge first, so a HEAD challenge request goes to the target over the same
connection and its response is handed to ``httpx.DigestAuth``; the flow's
next request carries the Authorization header that is copied onto ours.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from api_courier.errors import AuthenticationError
from api_courier.models import RequestOptions
from api_courier.transport import Connection


def _credentials(auth: Mapping[str, Any]) -> tuple[str, str]:
    return str(auth.get("username", "")), str(auth.get("password", ""))


def basic_authorization(raw_request: httpx.Request, username: str, password: str) -> str:
    """Authorization value httpx.BasicAuth would send for *raw_request*."""
    flow = httpx.BasicAuth(username, password).sync_auth_flow(raw_request)
    return next(flow).headers["Authorization"]


def digest_authorization(
    raw_request: httpx.Request,
    challenge_response: httpx.Response,
    username: str,
    password: str,
) -> str:
    """Answer the digest challenge in *challenge_response* for *raw_request*.

    Raises:
        AuthenticationError: If the response is not a 401 carrying a
            parseable Digest challenge.
    """
    flow = httpx.DigestAuth(username, password).sync_auth_flow(raw_request)
    next(flow)
    try:
        authed = flow.send(challenge_response)
    except StopIteration:
        raise AuthenticationError(
            f"Digest challenge request to {raw_request.url} returned {challenge_response.status_code} "
            f"without a Digest WWW-Authenticate challenge"
        ) from None
    except httpx.ProtocolError as e:
        raise AuthenticationError(f"Unusable digest challenge from {raw_request.url}: {e}") from e
    finally:
        flow.close()
    return authed.headers["Authorization"]


def apply(raw_request: httpx.Request, options: RequestOptions, connection: Connection) -> None:
    """Set the Authorization header on *raw_request* if options ask for auth.

    Options are assumed validated: at most one of basic_auth/digest_auth is
    set and it is a mapping.

    Raises:
        AuthenticationError: If the HEAD challenge request returns no usable challenge.
    """
    if options.basic_auth is not None:
        username, password = _credentials(options.basic_auth)
        raw_request.headers["Authorization"] = basic_authorization(
            raw_request, username, password
        )
    elif options.digest_auth is not None:
        username, password = _credentials(options.digest_auth)
        challenge_response = connection.client.head(raw_request.url)
        raw_request.headers["Authorization"] = digest_authorization(
            raw_request, challenge_response, username, password
        )
