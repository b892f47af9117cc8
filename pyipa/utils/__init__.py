"""Utility functions for pyipa."""

from pyipa.utils.exceptions import (
    IPAError,
    ErrorCategory,
    ErrorCode,
    TransportError,
    InvalidSessionCookie,
    DecodingError,
    AuthenticationError,
    PasswordExpired,
    InvalidPassword,
    Unauthorized,
    PasswordPolicyError,
    PasswordChangeError,
    KerberosError,
    RemoteError,
    RemoteAuthenticationError,
    RemoteAuthorizationError,
    InvocationError,
    ExecutionError,
    RemoteGenericError,
    NotFound,
    DuplicateEntry,
    AlreadyActive,
    AlreadyInactive,
    EmptyModlist,
    error_for_code,
    redact_secrets,
    sanitize_error_message,
)

__all__ = [
    "IPAError",
    "ErrorCategory",
    "ErrorCode",
    "TransportError",
    "InvalidSessionCookie",
    "DecodingError",
    "AuthenticationError",
    "PasswordExpired",
    "InvalidPassword",
    "Unauthorized",
    "PasswordPolicyError",
    "PasswordChangeError",
    "KerberosError",
    "RemoteError",
    "RemoteAuthenticationError",
    "RemoteAuthorizationError",
    "InvocationError",
    "ExecutionError",
    "RemoteGenericError",
    "NotFound",
    "DuplicateEntry",
    "AlreadyActive",
    "AlreadyInactive",
    "EmptyModlist",
    "error_for_code",
    "redact_secrets",
    "sanitize_error_message",
]
