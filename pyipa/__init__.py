"""pyipa - FreeIPA JSON-RPC client with Kerberos and session-cookie auth."""

__version__ = "0.1.0"

from pyipa.client import IPAClient
from pyipa.config import IPAConfig, load_config
from pyipa.models import GroupRecord, OTPToken, SSHAuthorizedKey, User
from pyipa.utils.exceptions import (
    AuthenticationError,
    DecodingError,
    DuplicateEntry,
    EmptyModlist,
    IPAError,
    NotFound,
    RemoteError,
    TransportError,
)

__all__ = [
    "__version__",
    "IPAClient",
    "IPAConfig",
    "load_config",
    "GroupRecord",
    "OTPToken",
    "SSHAuthorizedKey",
    "User",
    "IPAError",
    "TransportError",
    "DecodingError",
    "AuthenticationError",
    "RemoteError",
    "NotFound",
    "DuplicateEntry",
    "EmptyModlist",
]
