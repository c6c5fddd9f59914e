"""Data models for api-courier.

RequestOptions uses Pydantic v2. Fields that must accept caller mistakes so
they can be reported at perform() time (auth maps, query, timeout) are typed
loosely on purpose; Request validates them before touching the network.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from api_courier.query_string import NORMALIZERS

DEFAULT_REDIRECT_LIMIT = 5


class RequestOptions(BaseModel):
    """Everything a single request needs, merged by the caller beforehand.

    Nothing here is read from global state. Mutating an instance between
    requests is allowed; Request reads it at perform() time.
    """

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    format: Literal["xml", "json", "yaml", "html", "plain"] | None = Field(
        default=None, description="Explicit body format; skips content-type sniffing"
    )
    parser: Callable[..., Any] | None = Field(
        default=None, description="Replacement parser called as parser(body, format)"
    )
    base_uri: str | None = Field(default=None, description="Prefix for relative paths")
    default_params: dict[str, Any] | None = Field(
        default=None, description="Query parameters merged under every query"
    )
    query: Any = Field(default=None, description="Query parameters (mapping or string)")
    body: Any = Field(default=None, description="Body (mapping, string or bytes)")
    headers: dict[str, str] = Field(default_factory=dict, description="Request headers")
    basic_auth: Any = Field(default=None, description="{'username': ..., 'password': ...}")
    digest_auth: Any = Field(default=None, description="{'username': ..., 'password': ...}")
    pem: str | bytes | None = Field(
        default=None, description="PEM text holding the client certificate and key"
    )
    pem_password: str | None = Field(default=None, description="Password for the PEM key")
    timeout: Any = Field(
        default=None, description="Connect/read timeout in seconds; non-numbers are ignored"
    )
    http_proxyaddr: str | None = Field(default=None, description="Proxy host")
    http_proxyport: int | None = Field(default=None, description="Proxy port")
    http_proxyuser: str | None = Field(default=None, description="Proxy username")
    http_proxypass: str | None = Field(default=None, description="Proxy password")
    debug_output: Any = Field(default=None, description="Writable sink for wire-level debug lines")
    maintain_method_across_redirects: bool = Field(
        default=False, description="Keep the verb and body when following redirects"
    )
    follow_redirects: bool = Field(
        default=True, description="When False, 3xx responses are returned as-is"
    )
    limit: int = Field(
        default=DEFAULT_REDIRECT_LIMIT, ge=0, description="Maximum number of redirects to follow"
    )
    query_string_normalizer: Callable[[Any], str] | None = Field(
        default=None, description="Replacement query string encoder"
    )

    @field_validator("query_string_normalizer", mode="before")
    @classmethod
    def resolve_named_normalizer(cls, value: Any) -> Any:
        """Allow 'rails' or 'flat' where a callable cannot be written (YAML config)."""
        if isinstance(value, str):
            try:
                return NORMALIZERS[value]
            except KeyError:
                valid = ", ".join(sorted(NORMALIZERS))
                raise ValueError(
                    f"Unknown query_string_normalizer '{value}'. Valid options: {valid}"
                ) from None
        return value


@dataclass(frozen=True)
class Hop:
    """One request/response exchange in a redirect chain.

    Each redirect produces a new Hop; nothing is mutated in place.
    """

    uri: httpx.URL
    method: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
