"""Kerberos credentials and SPNEGO headers.

Credentials come from a password, a keytab or an existing credential cache
and are held as GSSAPI initiator credentials. ``gssapi`` is an optional
dependency (``pip install pyipa[kerberos]``); it is imported on first use so
session-cookie users never need the system Kerberos libraries.

Every login exports ``krb5_conf`` as the process-wide ``KRB5_CONFIG`` (see
load_kerberos_config); clients with different krb5.conf files should not
log in concurrently in one process.
"""

from __future__ import annotations

import base64
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from pyipa.utils.exceptions import KerberosError

SPNEGO_MECH_OID = "1.3.6.1.5.5.2"
HTTP_SERVICE = "HTTP"


def _gssapi() -> Any:
    try:
        import gssapi
        import gssapi.raw
    except ImportError as exc:
        raise KerberosError("Kerberos login requires the gssapi package: pip install pyipa[kerberos]") from exc
    return gssapi


def load_kerberos_config(path: Path) -> Path:
    """Point the Kerberos library at ``path``; it must be a readable file.

    This sets the process-wide ``KRB5_CONFIG`` environment variable, which
    every later Kerberos call in the process will see. It is left alone when
    it already names ``path``.
    """
    path = Path(path)
    if not path.is_file() or not os.access(path, os.R_OK):
        raise KerberosError(f"cannot load kerberos configuration: {path}")
    if os.environ.get("KRB5_CONFIG") != str(path):
        logger.debug("Setting KRB5_CONFIG to {} (was {})", path, os.environ.get("KRB5_CONFIG", "unset"))
        os.environ["KRB5_CONFIG"] = str(path)
    return path


@dataclass(frozen=True)
class KerberosCredential:
    """Immutable initiator credentials that can sign SPNEGO headers."""
    principal: str
    source: str  # password | keytab | ccache
    creds: Any

    def spnego_header(self, host: str) -> str:
        """Return an ``Authorization`` header value for HTTP@host."""
        gssapi = _gssapi()
        try:
            target = gssapi.Name(f"{HTTP_SERVICE}@{host}", gssapi.NameType.hostbased_service)
            context = gssapi.SecurityContext(
                name=target,
                creds=self.creds,
                usage="initiate",
                mech=gssapi.OID.from_int_seq(SPNEGO_MECH_OID),
            )
            token = context.step()
        except gssapi.exceptions.GSSError as e:
            raise KerberosError(f"failed to create SPNEGO token for {host}: {e}") from e
        return "Negotiate " + base64.b64encode(token or b"").decode("ascii")


def _principal(username: str, realm: str) -> str:
    if "@" in username:
        return username
    return f"{username}@{realm}"


def login_with_password(username: str, realm: str, password: str, krb5_conf: Path) -> KerberosCredential:
    """Obtain a TGT with a password (AS exchange performed immediately).

    Sets KRB5_CONFIG to ``krb5_conf`` for the whole process.
    """
    load_kerberos_config(krb5_conf)
    gssapi = _gssapi()
    principal = _principal(username, realm)
    try:
        name = gssapi.Name(principal, gssapi.NameType.kerberos_principal)
        acquired = gssapi.raw.acquire_cred_with_password(name, password.encode("utf-8"), usage="initiate")
        creds = gssapi.Credentials(acquired.creds)
    except gssapi.exceptions.GSSError as e:
        raise KerberosError(f"kerberos login failed for {principal}: {e}") from e
    logger.debug("Kerberos password login succeeded for {}", principal)
    return KerberosCredential(principal=principal, source="password", creds=creds)


def login_with_keytab(username: str, realm: str, keytab: Path, krb5_conf: Path) -> KerberosCredential:
    """Obtain a TGT from a keytab into a private in-memory ccache.

    Sets KRB5_CONFIG to ``krb5_conf`` for the whole process.
    """
    load_kerberos_config(krb5_conf)
    keytab = Path(keytab)
    if not keytab.is_file():
        raise KerberosError(f"cannot load keytab: {keytab}")
    gssapi = _gssapi()
    principal = _principal(username, realm)
    store = {
        "client_keytab": str(keytab),
        "ccache": f"MEMORY:pyipa-{uuid.uuid4().hex}",
    }
    try:
        name = gssapi.Name(principal, gssapi.NameType.kerberos_principal)
        creds = gssapi.Credentials(name=name, usage="initiate", store=store)
        # Inquiring the lifetime forces the initial ticket request.
        creds.lifetime
    except gssapi.exceptions.GSSError as e:
        raise KerberosError(f"kerberos keytab login failed for {principal}: {e}") from e
    logger.debug("Kerberos keytab login succeeded for {}", principal)
    return KerberosCredential(principal=principal, source="keytab", creds=creds)


def login_from_ccache(ccache: Path, krb5_conf: Path, assume_preauthenticated: bool = True) -> KerberosCredential:
    """Adopt tickets from an existing credential cache file.

    With ``assume_preauthenticated`` the cached TGT is used as is; otherwise
    an expired ticket is reported instead of failing later at SPNEGO time.
    Sets KRB5_CONFIG to ``krb5_conf`` for the whole process.
    """
    load_kerberos_config(krb5_conf)
    ccache = Path(ccache)
    if not ccache.is_file():
        raise KerberosError(f"cannot load credential cache: {ccache}")
    gssapi = _gssapi()
    try:
        creds = gssapi.Credentials(usage="initiate", store={"ccache": f"FILE:{ccache}"})
        principal = str(creds.name)
        if not assume_preauthenticated and not creds.lifetime:
            raise KerberosError(f"credential cache {ccache} holds an expired ticket")
    except gssapi.exceptions.GSSError as e:
        raise KerberosError(f"cannot use credential cache {ccache}: {e}") from e
    logger.debug("Kerberos credentials adopted from {} for {}", ccache, principal)
    return KerberosCredential(principal=principal, source="ccache", creds=creds)
