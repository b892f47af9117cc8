"""Configuration schema using Pydantic.

Replaces process-wide defaults read from /etc/ipa with one explicit object
that is built once and handed to the client.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CA_CERT = Path("/etc/ipa/ca.crt")
DEFAULT_IPA_CONF = Path("/etc/ipa/default.conf")
DEFAULT_KRB5_CONF = Path("/etc/krb5.conf")
DEFAULT_REALM = "LOCAL"
ENV_PREFIX = "IPA_"


class IPAConfig(BaseSettings):
    """Connection settings for one FreeIPA server.

    Every field can be set from the environment with the ``IPA_`` prefix,
    e.g. ``IPA_HOST=ipa.example.com``.
    """
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, extra="ignore")

    host: str = ""  # FreeIPA server hostname, no scheme
    realm: str = DEFAULT_REALM
    ca_cert: Path = DEFAULT_CA_CERT  # PEM bundle used as the TLS trust store when present
    ipa_conf: Path = DEFAULT_IPA_CONF
    krb5_conf: Path = DEFAULT_KRB5_CONF
    timeout: float = Field(default=60.0, gt=0)  # Whole-request deadline in seconds
    sticky_session: bool = True  # Persist ipa_session cookies between calls
    verify_ssl: bool = True
