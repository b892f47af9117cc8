"""
Exception hierarchy and error helpers for pyipa.

Provides:
- One base exception with an error code and a category tag
- Typed sentinels for the FreeIPA error codes callers branch on
- Mapping from a server error envelope to the matching exception
- Redaction of secrets before messages reach the logs
"""

from __future__ import annotations

import re
from enum import Enum, IntEnum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    DECODING = "decoding"


class ErrorCode(IntEnum):
    """FreeIPA numeric error codes with a dedicated sentinel."""
    NOT_FOUND = 4001
    DUPLICATE_ENTRY = 4002
    ALREADY_ACTIVE = 4009
    ALREADY_INACTIVE = 4010
    EMPTY_MODLIST = 4202


class IPAError(Exception):
    """Base exception for all pyipa errors."""

    def __init__(
        self,
        message: str,
        code: str = "IPA_ERROR",
        category: ErrorCategory = ErrorCategory.PROTOCOL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class TransportError(IPAError):
    """HTTP level failure: network error, timeout, non-200 status or bad cookie."""

    def __init__(self, message: str, code: str = "HTTP_ERROR", status_code: int | None = None):
        details = {"status_code": status_code} if status_code is not None else {}
        super().__init__(message, code=code, category=ErrorCategory.TRANSPORT, details=details)
        self.status_code = status_code


class InvalidSessionCookie(TransportError):
    """Set-Cookie carried an ipa_session value that is not a session token."""

    def __init__(self, cookie: str):
        super().__init__("invalid set-cookie header", code="INVALID_SESSION_COOKIE")
        self.details["cookie"] = sanitize_error_message(cookie)


class DecodingError(IPAError):
    """The server answered 200 but the body is not a valid JSON-RPC envelope."""

    def __init__(self, message: str, body: str | None = None):
        details = {"body": body[:200]} if body else {}
        super().__init__(message, code="BAD_RESPONSE", category=ErrorCategory.DECODING, details=details)


class AuthenticationError(IPAError):
    """Credentials were rejected or could not be obtained."""

    def __init__(self, message: str, code: str = "AUTHENTICATION_ERROR"):
        super().__init__(message, code=code, category=ErrorCategory.AUTHENTICATION)


class PasswordExpired(AuthenticationError):
    def __init__(self, message: str = "password expired"):
        super().__init__(message, code="PASSWORD_EXPIRED")


class InvalidPassword(AuthenticationError):
    def __init__(self, message: str = "invalid current password"):
        super().__init__(message, code="INVALID_PASSWORD")


class Unauthorized(AuthenticationError):
    def __init__(self, message: str = "unauthorized"):
        super().__init__(message, code="UNAUTHORIZED")


class PasswordPolicyError(AuthenticationError):
    def __init__(self, message: str = "password does not conform to policy"):
        super().__init__(message, code="PASSWORD_POLICY")


class PasswordChangeError(AuthenticationError):
    """change_password answered with a status we do not recognize."""

    def __init__(self, status: str):
        super().__init__(f"change password failed. Unknown status: {status}", code="PASSWORD_CHANGE_FAILED")
        self.status = status


class KerberosError(AuthenticationError):
    """Kerberos configuration, keytab or credential cache problem."""

    def __init__(self, message: str):
        super().__init__(message, code="KERBEROS_ERROR")


class RemoteError(IPAError):
    """Error envelope returned by the FreeIPA server.

    ``ipa_code`` is the server's numeric code; unknown codes are passed
    through unchanged so callers can still inspect them.
    """

    def __init__(self, ipa_code: int, message: str, name: str | None = None, data: Any = None):
        details: dict[str, Any] = {"ipa_code": ipa_code}
        if name:
            details["name"] = name
        if data:
            details["data"] = data
        super().__init__(message, code=f"IPA_{ipa_code}", category=ErrorCategory.PROTOCOL, details=details)
        self.ipa_code = ipa_code
        self.name = name

    def __str__(self) -> str:
        return f"ipa: error {self.ipa_code} - {self.message}"


class RemoteAuthenticationError(RemoteError):
    """Codes 1000-1999."""


class RemoteAuthorizationError(RemoteError):
    """Codes 2000-2999."""


class InvocationError(RemoteError):
    """Codes 3000-3999."""


class ExecutionError(RemoteError):
    """Codes 4000-4999."""


class RemoteGenericError(RemoteError):
    """Codes 5000-5999."""


class NotFound(ExecutionError):
    pass


class DuplicateEntry(ExecutionError):
    pass


class AlreadyActive(ExecutionError):
    pass


class AlreadyInactive(ExecutionError):
    pass


class EmptyModlist(ExecutionError):
    """No modifications to be performed."""


_CODE_SENTINELS: dict[int, type[RemoteError]] = {
    ErrorCode.NOT_FOUND: NotFound,
    ErrorCode.DUPLICATE_ENTRY: DuplicateEntry,
    ErrorCode.ALREADY_ACTIVE: AlreadyActive,
    ErrorCode.ALREADY_INACTIVE: AlreadyInactive,
    ErrorCode.EMPTY_MODLIST: EmptyModlist,
}

_CODE_RANGES: list[tuple[int, int, type[RemoteError]]] = [
    (1000, 1999, RemoteAuthenticationError),
    (2000, 2999, RemoteAuthorizationError),
    (3000, 3999, InvocationError),
    (4000, 4999, ExecutionError),
    (5000, 5999, RemoteGenericError),
]


def error_for_code(ipa_code: int, message: str, name: str | None = None, data: Any = None) -> RemoteError:
    """Build the most specific RemoteError for a server error code."""
    cls = _CODE_SENTINELS.get(ipa_code)
    if cls is None:
        for low, high, range_cls in _CODE_RANGES:
            if low <= ipa_code <= high:
                cls = range_cls
                break
        else:
            cls = RemoteError
    return cls(ipa_code, message, name=name, data=data)


# Each pattern captures the text to keep in group 1 and the secret in group 2.
_SENSITIVE_PATTERNS = [
    re.compile(r"((?:password|otp|secret)['\"]?\s*[=:]\s*)(\"[^\"]*\"|'[^']*'|[^\s&'\",}]+)", re.IGNORECASE),
    re.compile(r"(ipa_session=)([^;\s]+)", re.IGNORECASE),
    re.compile(r"(negotiate\s+)([a-zA-Z0-9+/]+=*)", re.IGNORECASE),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove passwords, session tokens and SPNEGO blobs from a message."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(lambda m: m.group(1) + replacement, sanitized)
    return sanitized


SENSITIVE_KEYS = frozenset(
    {
        "password",
        "current_password",
        "old_password",
        "new_password",
        "otp",
        "randompassword",
        "userpassword",
        "ipatokenotpkey",
        "krbprincipalkey",
    }
)


def _is_sensitive_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    lowered = key.lower()
    return lowered in SENSITIVE_KEYS or "password" in lowered


def redact_secrets(value: Any, replacement: str = "[REDACTED]") -> Any:
    """Copy a decoded JSON value with every secret-bearing field replaced.

    Keys are matched case-insensitively against SENSITIVE_KEYS or anything
    containing "password"; nested lists and dicts are walked and strings
    go through sanitize_error_message.
    """
    if isinstance(value, dict):
        return {
            key: replacement if _is_sensitive_key(key) else redact_secrets(item, replacement)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [redact_secrets(item, replacement) for item in value]
    if isinstance(value, str):
        return sanitize_error_message(value, replacement)
    return value
