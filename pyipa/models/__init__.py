"""Typed FreeIPA records."""

from pyipa.models.group import GroupRecord, GroupRecordNotInitialized
from pyipa.models.otp import (
    ALGORITHM_SHA1,
    ALGORITHM_SHA256,
    ALGORITHM_SHA384,
    ALGORITHM_SHA512,
    TOKEN_TYPE_HOTP,
    TOKEN_TYPE_TOTP,
    OTPToken,
)
from pyipa.models.ssh import SSHAuthorizedKey, fingerprint_sha256
from pyipa.models.user import User

__all__ = [
    "GroupRecord",
    "GroupRecordNotInitialized",
    "OTPToken",
    "ALGORITHM_SHA1",
    "ALGORITHM_SHA256",
    "ALGORITHM_SHA384",
    "ALGORITHM_SHA512",
    "TOKEN_TYPE_HOTP",
    "TOKEN_TYPE_TOTP",
    "SSHAuthorizedKey",
    "fingerprint_sha256",
    "User",
]
