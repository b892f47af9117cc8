"""FreeIPA group and host group records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from pyipa.decoding import unwrap_list, unwrap_str
from pyipa.utils.exceptions import DecodingError, IPAError


class GroupRecordNotInitialized(IPAError):
    def __init__(self) -> None:
        super().__init__("group record is not initialized", code="GROUP_NOT_INITIALIZED")


class GroupRecord(BaseModel):
    """Multi-valued attributes are kept as lists, as the server sends them."""
    dn: str = ""
    cn: list[str] = Field(default_factory=list)
    ipauniqueid: list[str] = Field(default_factory=list)
    gidnumber: list[str] = Field(default_factory=list)
    objectclass: list[str] = Field(default_factory=list)
    users: list[str] = Field(default_factory=list)
    hosts: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, raw: Any) -> "GroupRecord":
        if not isinstance(raw, dict):
            raise DecodingError("invalid group record json")
        return cls(
            dn=unwrap_str(raw.get("dn")),
            cn=unwrap_list(raw.get("cn")),
            ipauniqueid=unwrap_list(raw.get("ipauniqueid")),
            gidnumber=unwrap_list(raw.get("gidnumber")),
            objectclass=unwrap_list(raw.get("objectclass")),
            users=unwrap_list(raw.get("member_user")),
            hosts=unwrap_list(raw.get("member_host")),
        )

    @property
    def name(self) -> str:
        if not self.cn:
            raise GroupRecordNotInitialized()
        return self.cn[0]

    def has_user(self, username: str) -> bool:
        return username in self.users
