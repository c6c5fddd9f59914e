"""Cookie header merging across redirect hops.

This is not a cookie jar. Cookies are plain name=value pairs with no domain,
path or expiry matching; a later value for a name replaces an earlier one.
"""

from __future__ import annotations

import re

# Set-Cookie attributes that describe a cookie rather than being one.
CLIENT_COOKIE_ATTRIBUTES = frozenset(
    {"path", "expires", "domain", "secure", "httponly", "max-age", "samesite", "version", "comment"}
)

_COOKIE_SPLIT = re.compile(r"[;,]\s?")


class CookieHash(dict):
    """Ordered name -> value mapping built from Cookie/Set-Cookie strings."""

    def add_cookies(self, value: str | None) -> None:
        """Merge every ``name=value`` pair found in *value*.

        Attributes such as ``Path`` or ``HttpOnly`` are dropped, as are
        fragments without ``=`` (which also covers the date half of an
        ``Expires`` value that the comma split cuts in two).
        """
        if not value:
            return
        for fragment in _COOKIE_SPLIT.split(value):
            name, sep, cookie_value = fragment.strip().partition("=")
            name = name.strip()
            if not sep or not name or name.lower() in CLIENT_COOKIE_ATTRIBUTES:
                continue
            self[name] = cookie_value.strip()

    def to_cookie_string(self) -> str:
        return "; ".join(f"{name}={value}" for name, value in self.items())


def merge_cookie_header(cookie_header: str | None, set_cookie_values: list[str]) -> str:
    """Combine an existing Cookie header with Set-Cookie values from a response.

    Names in *set_cookie_values* override same-named entries; names not
    mentioned keep their previous value.
    """
    cookies = CookieHash()
    cookies.add_cookies(cookie_header)
    for set_cookie in set_cookie_values:
        cookies.add_cookies(set_cookie)
    return cookies.to_cookie_string()
