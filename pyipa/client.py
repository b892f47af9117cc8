"""FreeIPA JSON-RPC client."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from pyipa import kerberos
from pyipa.config import IPAConfig, build_ssl_context, get_config
from pyipa.models import GroupRecord, OTPToken, User
from pyipa.operations import OPERATIONS, decode_result
from pyipa.protocol import RpcResponse
from pyipa.session import Session
from pyipa.transport import Transport
from pyipa.utils.exceptions import EmptyModlist, IPAError


class IPAClient:
    """Client for one FreeIPA server.

    Authenticate with one of ``login``, ``login_with_keytab``,
    ``login_from_ccache`` or ``remote_login``, or start from an existing
    session id. Calls are synchronous and never retried.
    """

    def __init__(
        self,
        config: IPAConfig,
        *,
        http_client: httpx.Client | None = None,
        session_id: str | None = None,
    ):
        self.config = config
        self.session = Session(
            host=config.host,
            realm=config.realm,
            token=session_id or None,
            sticky=config.sticky_session,
        )
        self._owns_http = http_client is None
        if http_client is None:
            http_client = httpx.Client(timeout=config.timeout, verify=build_ssl_context(config))
        self.transport = Transport(self.session, http_client)

    @classmethod
    def for_host(cls, host: str, realm: str, *, http_client: httpx.Client | None = None) -> "IPAClient":
        """Client for an explicit host and realm; other settings use defaults."""
        return cls(IPAConfig(host=host, realm=realm), http_client=http_client)

    @classmethod
    def default_client(cls, *, session_id: str | None = None, config_path: Path | None = None) -> "IPAClient":
        """Client using host and realm from /etc/ipa/default.conf."""
        return cls(get_config(config_path=config_path), session_id=session_id)

    def __enter__(self) -> "IPAClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self.transport.http.close()

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------

    @property
    def host(self) -> str:
        return self.session.host

    @property
    def realm(self) -> str:
        return self.session.realm

    @property
    def session_id(self) -> str:
        return self.session.token or ""

    def clear_session(self) -> None:
        self.session.clear()

    def sticky_session(self, enable: bool) -> None:
        self.session.sticky = enable

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> None:
        """Kerberos login with username and password.

        The Kerberos logins set the process-wide KRB5_CONFIG to
        ``config.krb5_conf``.
        """
        credential = kerberos.login_with_password(username, self.realm, password, self.config.krb5_conf)
        self.session.adopt_credential(credential)

    def login_with_keytab(self, keytab: str | Path, username: str) -> None:
        credential = kerberos.login_with_keytab(username, self.realm, Path(keytab), self.config.krb5_conf)
        self.session.adopt_credential(credential)

    def login_from_ccache(self, ccache: str | Path, *, assume_preauthenticated: bool = True) -> None:
        credential = kerberos.login_from_ccache(
            Path(ccache),
            self.config.krb5_conf,
            assume_preauthenticated=assume_preauthenticated,
        )
        self.session.adopt_credential(credential)

    def remote_login(self, username: str, password: str) -> None:
        """Web login with uid/password; sets the session id for later calls."""
        self.transport.login_password(username, password)
        logger.debug("FreeIPA remote login succeeded for {}", username)

    def set_password(self, username: str, old_password: str, new_password: str, otp: str = "") -> None:
        """Change a password without leaving it expired.

        FreeIPA marks passwords set by an administrator as expired. Calling
        ``reset_password`` and then this method with the random password lets
        an administrator set a usable password; see
        https://www.freeipa.org/page/Self-Service_Password_Reset for the
        security trade-offs.
        """
        self.transport.change_password(username, old_password, new_password, otp)

    # ------------------------------------------------------------------
    # RPC
    # ------------------------------------------------------------------

    def call(self, method: str, args: list[Any] | None = None, options: dict[str, Any] | None = None) -> RpcResponse:
        """Call any FreeIPA command with positional args and options."""
        return self.transport.call(method, args, options)

    def invoke(self, operation: str, *args: Any, **options: Any) -> Any:
        """Run an entry of the operation table and decode its result."""
        op = OPERATIONS[operation]
        response = self.transport.call(op.method, op.build_args(args), op.build_options(options))
        return decode_result(op.result, response)

    def ping(self) -> RpcResponse:
        return self.invoke("ping")

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def user_show(self, username: str) -> User:
        return self.invoke("user_show", username)

    def user_find(self, **options: Any) -> list[User]:
        return self.invoke("user_find", **options)

    def user_add(self, user: User, random: bool = False) -> User:
        """Add a user; DuplicateEntry is raised when the account exists.

        Requires the "User Administrators" privilege.
        """
        if not user.username:
            raise ValueError("Username is required")
        options = user.to_options()
        if random:
            options["random"] = True
        return self.invoke("user_add", user.username, **options)

    def user_add_with_password(self, user: User, password: str) -> User:
        """Add a user and give it a non-expired password."""
        if not user.username:
            raise ValueError("Username is required")
        if not password:
            raise ValueError("password is required")
        rec = self.user_add(user, random=True)
        self.set_password(rec.username, rec.random_password, password)
        return rec

    def user_mod(self, user: User) -> User:
        """Modify mail, names, home, shell, ssh keys, phone numbers and class.

        When the server reports nothing to modify the given user is returned.
        """
        if not user.username:
            raise ValueError("Username is required")
        try:
            return self.invoke("user_mod", user.username, **user.to_options())
        except EmptyModlist:
            return user

    def user_delete(self, *usernames: str, preserve: bool = False, stop_on_error: bool = True) -> None:
        """Delete users, or move them to the preserved container."""
        self.invoke("user_del", *usernames, **{"continue": not stop_on_error, "preserve": preserve})

    def user_disable(self, username: str) -> None:
        self.invoke("user_disable", username)

    def user_enable(self, username: str) -> None:
        self.invoke("user_enable", username)

    def reset_password(self, username: str) -> str:
        """Reset a password and return the new random password."""
        rec = self.invoke("user_reset_password", username)
        if not rec.random_password:
            raise IPAError(
                "failed to reset user password. empty random password returned",
                code="EMPTY_RANDOM_PASSWORD",
            )
        return rec.random_password

    def change_password(self, username: str, old_password: str, new_password: str, otp: str = "") -> None:
        """Run the passwd command as the user, with an OTP when required."""
        options: dict[str, Any] = {"current_password": old_password, "password": new_password}
        if otp:
            options["otp"] = otp
        self.invoke("passwd", username, **options)

    def passwd(self, username: str, new_password: str) -> None:
        """Set a password as an administrator."""
        self.invoke("passwd", username, password=new_password)

    def set_auth_types(self, username: str, types: list[str]) -> None:
        self.invoke("user_set_auth_types", username, ipauserauthtype=list(types) if types else "")

    def update_ssh_pub_keys(self, username: str, keys: list[str]) -> list[str]:
        """Replace a user's SSH keys and return the stored fingerprints."""
        rec = self.invoke("user_update_ssh_keys", username, ipasshpubkey=list(keys) if keys else "")
        return [key.fingerprint for key in rec.ssh_auth_keys]

    # ------------------------------------------------------------------
    # OTP tokens
    # ------------------------------------------------------------------

    def add_otp_token(self, token: OTPToken | None = None) -> OTPToken:
        token = token or OTPToken.default_totp()
        return self.invoke("otptoken_add", **token.to_options())

    def remove_otp_token(self, token_uuid: str) -> None:
        self.invoke("otptoken_del", token_uuid)

    def fetch_otp_tokens(self, owner: str) -> list[OTPToken]:
        return self.invoke("otptoken_find", ipatokenowner=owner)

    def enable_otp_token(self, token_uuid: str) -> None:
        self.invoke("otptoken_enable", token_uuid)

    def disable_otp_token(self, token_uuid: str) -> None:
        self.invoke("otptoken_disable", token_uuid)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def group_add(self, cn: str) -> GroupRecord:
        return self.invoke("group_add", cn)

    def group_delete(self, cn: str) -> None:
        self.invoke("group_del", cn)

    def group_show(self, cn: str) -> GroupRecord:
        return self.invoke("group_show", cn)

    def add_user_to_group(self, group_cn: str, user_uid: str) -> GroupRecord:
        return self.invoke("group_add_member", group_cn, user=[user_uid])

    def remove_user_from_group(self, group_cn: str, user_uid: str) -> None:
        self.invoke("group_remove_member", group_cn, user=[user_uid])

    def check_user_member_of_group(self, username: str, group_name: str) -> bool:
        return self.group_show(group_name).has_user(username)

    # ------------------------------------------------------------------
    # Hosts and host groups
    # ------------------------------------------------------------------

    def host_add(self, fqdn: str, force: bool = False, ip_address: str = "") -> None:
        options: dict[str, Any] = {"force": force}
        if ip_address:
            options["ip_address"] = ip_address
        self.invoke("host_add", fqdn, **options)

    def host_exists(self, name: str) -> bool:
        return self.invoke("host_find", name)

    def host_delete(self, fqdn: str) -> None:
        self.invoke("host_del", fqdn)

    def hostgroup_add(self, cn: str) -> GroupRecord:
        return self.invoke("hostgroup_add", cn)

    def hostgroup_add_member(self, group_cn: str, host: str) -> GroupRecord:
        return self.invoke("hostgroup_add_member", group_cn, host=[host])

    def hostgroup_remove_member(self, group_cn: str, host: str) -> None:
        self.invoke("hostgroup_remove_member", group_cn, host=[host])

    def hostgroup_delete(self, cn: str) -> None:
        self.invoke("hostgroup_del", cn)

    # ------------------------------------------------------------------
    # HBAC and sudo rules
    # ------------------------------------------------------------------

    def hbacrule_add(self, name: str) -> None:
        self.invoke("hbacrule_add", name)

    def hbacrule_add_host(self, rule: str, hostgroup: str) -> None:
        self.invoke("hbacrule_add_host", rule, hostgroup=hostgroup)

    def hbacrule_add_service(self, rule: str, hbacsvcgroup: str) -> None:
        self.invoke("hbacrule_add_service", rule, hbacsvcgroup=hbacsvcgroup)

    def hbacrule_delete(self, name: str) -> None:
        self.invoke("hbacrule_del", name)

    def hbacrule_add_user(self, rule: str, *groups: str) -> None:
        self.invoke("hbacrule_add_user", rule, group=list(groups))

    def hbacrule_remove_user(self, rule: str, *groups: str) -> None:
        self.invoke("hbacrule_remove_user", rule, group=list(groups))

    def sudorule_add_user(self, rule: str, group: str) -> None:
        self.invoke("sudorule_add_user", rule, group=group)
