"""FreeIPA user records."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from pyipa.decoding import (
    ZERO_DATETIME,
    unwrap_bool,
    unwrap_datetime,
    unwrap_list,
    unwrap_str,
)
from pyipa.models.ssh import SSHAuthorizedKey
from pyipa.utils.exceptions import DecodingError

OTP_AUTH_TYPE = "otp"


class User(BaseModel):
    """User data returned from the user_* commands."""
    uuid: str = ""
    dn: str = ""
    first: str = ""
    last: str = ""
    display_name: str = ""
    principal: str = ""
    username: str = ""
    uid: str = ""
    gid: str = ""
    groups: list[str] = Field(default_factory=list)
    ssh_auth_keys: list[SSHAuthorizedKey] = Field(default_factory=list)
    auth_types: list[str] = Field(default_factory=list)
    has_keytab: bool = False
    has_password: bool = False
    locked: bool = False
    preserved: bool = False
    home_dir: str = ""
    email: str = ""
    telephone_number: str = ""
    mobile: str = ""
    shell: str = ""
    category: str = ""
    sudo_rules: list[str] = Field(default_factory=list)
    hbac_rules: list[str] = Field(default_factory=list)
    last_passwd_change: datetime = ZERO_DATETIME
    passwd_expire: datetime = ZERO_DATETIME
    principal_expire: datetime = ZERO_DATETIME
    last_login_success: datetime = ZERO_DATETIME
    last_login_fail: datetime = ZERO_DATETIME
    random_password: str = ""

    @classmethod
    def from_record(cls, raw: Any) -> "User":
        if not isinstance(raw, dict):
            raise DecodingError("invalid user record json")

        keys: list[SSHAuthorizedKey] = []
        for line in unwrap_list(raw.get("ipasshpubkey")):
            try:
                keys.append(SSHAuthorizedKey.parse(line))
            except ValueError as e:
                logger.debug("Skipping unparsable ssh key for {}: {}", unwrap_str(raw.get("uid")), e)

        return cls(
            uuid=unwrap_str(raw.get("ipauniqueid")),
            dn=unwrap_str(raw.get("dn")),
            first=unwrap_str(raw.get("givenname")),
            last=unwrap_str(raw.get("sn")),
            display_name=unwrap_str(raw.get("displayname")),
            principal=unwrap_str(raw.get("krbprincipalname")),
            username=unwrap_str(raw.get("uid")),
            uid=unwrap_str(raw.get("uidnumber")),
            gid=unwrap_str(raw.get("gidnumber")),
            groups=unwrap_list(raw.get("memberof_group")),
            ssh_auth_keys=keys,
            auth_types=unwrap_list(raw.get("ipauserauthtype")),
            has_keytab=unwrap_bool(raw.get("has_keytab")),
            has_password=unwrap_bool(raw.get("has_password")),
            locked=unwrap_bool(raw.get("nsaccountlock")),
            preserved=unwrap_bool(raw.get("preserved")),
            home_dir=unwrap_str(raw.get("homedirectory")),
            email=unwrap_str(raw.get("mail")),
            telephone_number=unwrap_str(raw.get("telephonenumber")),
            mobile=unwrap_str(raw.get("mobile")),
            shell=unwrap_str(raw.get("loginshell")),
            category=unwrap_str(raw.get("userclass")),
            sudo_rules=unwrap_list(raw.get("memberofindirect_sudorule")),
            hbac_rules=unwrap_list(raw.get("memberof_hbacrule")) + unwrap_list(raw.get("memberofindirect_hbacrule")),
            last_passwd_change=unwrap_datetime(raw.get("krblastpwdchange")),
            passwd_expire=unwrap_datetime(raw.get("krbpasswordexpiration")),
            principal_expire=unwrap_datetime(raw.get("krbprincipalexpiration")),
            last_login_success=unwrap_datetime(raw.get("krblastsuccessfulauth")),
            last_login_fail=unwrap_datetime(raw.get("krblastfailedauth")),
            random_password=unwrap_str(raw.get("randompassword")),
        )

    def otp_only(self) -> bool:
        """True if OTP is the only authentication type enabled."""
        return self.auth_types == [OTP_AUTH_TYPE]

    def has_group(self, group: str) -> bool:
        return group in self.groups

    def remove_ssh_authorized_key(self, fingerprint: str) -> None:
        for i, key in enumerate(self.ssh_auth_keys):
            if key.fingerprint == fingerprint:
                del self.ssh_auth_keys[i]
                return

    def add_ssh_authorized_key(self, key: SSHAuthorizedKey) -> None:
        """Add a key, replacing an existing key with the same fingerprint."""
        for i, existing in enumerate(self.ssh_auth_keys):
            if existing.fingerprint == key.fingerprint:
                self.ssh_auth_keys[i] = key
                return
        self.ssh_auth_keys.append(key)

    def format_ssh_authorized_keys(self) -> list[str]:
        return [str(key) for key in self.ssh_auth_keys]

    def to_options(self) -> dict[str, Any]:
        """Attributes sent by user_add and user_mod."""
        return {
            "mail": self.email,
            "givenname": self.first,
            "sn": self.last,
            "homedirectory": self.home_dir,
            "loginshell": self.shell,
            "displayname": self.display_name,
            "ipasshpubkey": self.format_ssh_authorized_keys(),
            "telephonenumber": self.telephone_number,
            "mobile": self.mobile,
            "userclass": self.category,
        }
