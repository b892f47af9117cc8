"""Client-side FreeIPA session state."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from pyipa.protocol import BEARER_TOKEN_PREFIX, SESSION_COOKIE, SESSION_TOKEN_LENGTH
from pyipa.utils.exceptions import InvalidSessionCookie

if TYPE_CHECKING:
    from pyipa.kerberos import KerberosCredential

_SESSION_COOKIE_RE = re.compile(rf"^\s*{SESSION_COOKIE}=([^;]*)")


def is_session_token(value: str) -> bool:
    """True for a 32-character session id or a MagBearerToken value."""
    return len(value) == SESSION_TOKEN_LENGTH or value.startswith(BEARER_TOKEN_PREFIX)


def extract_session_token(set_cookie_headers: Iterable[str]) -> str | None:
    """Return the ipa_session token from Set-Cookie headers.

    Headers for other cookies are ignored and ``None`` means the response did
    not touch the session. An ipa_session value that is not a token raises
    InvalidSessionCookie.
    """
    for header in set_cookie_headers:
        match = _SESSION_COOKIE_RE.match(header)
        if match is None:
            continue
        token = match.group(1).strip()
        if not is_session_token(token):
            raise InvalidSessionCookie(header)
        return token
    return None


@dataclass
class Session:
    """Host, realm and the credentials presented on each RPC call.

    ``token`` wins over ``credential`` when both are present. Writes are not
    synchronized: concurrent renewals resolve last-write-wins.
    """
    host: str
    realm: str
    token: str | None = None
    credential: KerberosCredential | None = None
    sticky: bool = True

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    def update_from_cookies(self, set_cookie_headers: Iterable[str]) -> bool:
        """Store a new token from Set-Cookie; returns True when it changed."""
        if not self.sticky:
            return False
        token = extract_session_token(set_cookie_headers)
        if token is None or token == self.token:
            return False
        self.token = token
        logger.debug("FreeIPA session token updated for {}", self.host)
        return True

    def clear(self) -> None:
        self.token = None

    def adopt_credential(self, credential: KerberosCredential) -> None:
        """Switch to a fresh Kerberos credential, dropping any stale token."""
        self.credential = credential
        self.token = None
