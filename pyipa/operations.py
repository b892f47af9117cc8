"""Declarative table of the FreeIPA commands wrapped by the client.

Each entry names the server method, how positional arguments are shaped,
the default options sent with it and how the result payload is decoded.
Client methods are thin adapters over ``IPAClient.invoke``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pyipa.models import GroupRecord, OTPToken, User
from pyipa.protocol import RpcResponse
from pyipa.utils.exceptions import DecodingError


class ArgShape(str, Enum):
    NONE = "none"  # no positional arguments
    ONE = "one"  # exactly one primary key
    MANY = "many"  # one or more primary keys
    SEARCH = "search"  # optional search criteria, "" when absent


class ResultShape(str, Enum):
    NONE = "none"
    RAW = "raw"
    USER = "user"
    USERS = "users"
    OTPTOKEN = "otptoken"
    OTPTOKENS = "otptokens"
    GROUP = "group"
    EXISTS = "exists"


@dataclass(frozen=True)
class Operation:
    method: str
    args: ArgShape = ArgShape.ONE
    options: dict[str, Any] = field(default_factory=dict)
    pinned: dict[str, Any] = field(default_factory=dict)  # Applied over caller options
    result: ResultShape = ResultShape.NONE

    def build_args(self, values: Sequence[Any]) -> list[Any]:
        if self.args is ArgShape.NONE:
            if values:
                raise ValueError(f"{self.method} takes no positional arguments")
            return []
        if self.args is ArgShape.ONE:
            if len(values) != 1:
                raise ValueError(f"{self.method} takes exactly one positional argument")
            return [values[0]]
        if self.args is ArgShape.MANY:
            if not values:
                raise ValueError(f"{self.method} needs at least one positional argument")
            return list(values)
        return list(values) if values else [""]

    def build_options(self, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        options = dict(self.options)
        options.update(overrides or {})
        options.update(self.pinned)
        return options


_MEMBERS = {"no_members": False, "all": True}
_GROUP_VIEW = {"no_members": False, "raw": False, "all": False}

OPERATIONS: dict[str, Operation] = {
    "ping": Operation("ping", ArgShape.NONE, result=ResultShape.RAW),
    # users
    "user_show": Operation("user_show", options=_MEMBERS, result=ResultShape.USER),
    "user_find": Operation("user_find", ArgShape.SEARCH, pinned=_MEMBERS, result=ResultShape.USERS),
    "user_add": Operation("user_add", result=ResultShape.USER),
    "user_mod": Operation("user_mod", result=ResultShape.USER),
    "user_reset_password": Operation(
        "user_mod", options={"no_members": False, "random": True, "all": True}, result=ResultShape.USER
    ),
    "user_set_auth_types": Operation("user_mod", options={"no_members": False, "all": False}),
    "user_update_ssh_keys": Operation("user_mod", options={"no_members": False, "all": False}, result=ResultShape.USER),
    "user_del": Operation("user_del", ArgShape.MANY),
    "user_disable": Operation("user_disable"),
    "user_enable": Operation("user_enable"),
    "passwd": Operation("passwd"),
    # otp tokens
    "otptoken_add": Operation(
        "otptoken_add",
        ArgShape.NONE,
        options={"no_qrcode": True, "qrcode": False, "no_members": False, "all": True},
        result=ResultShape.OTPTOKEN,
    ),
    "otptoken_del": Operation("otptoken_del"),
    "otptoken_find": Operation("otptoken_find", ArgShape.NONE, options={"all": True}, result=ResultShape.OTPTOKENS),
    "otptoken_enable": Operation("otptoken_mod", options={"ipatokendisabled": False, "all": False}),
    "otptoken_disable": Operation("otptoken_mod", options={"ipatokendisabled": True, "all": False}),
    # groups
    "group_add": Operation("group_add", result=ResultShape.GROUP),
    "group_del": Operation("group_del"),
    "group_show": Operation("group_show", options={**_GROUP_VIEW, "rights": False}, result=ResultShape.GROUP),
    "group_add_member": Operation("group_add_member", options=_GROUP_VIEW, result=ResultShape.GROUP),
    "group_remove_member": Operation("group_remove_member", options=_GROUP_VIEW),
    # hosts
    "host_add": Operation("host_add"),
    "host_find": Operation("host_find", ArgShape.SEARCH, result=ResultShape.EXISTS),
    "host_del": Operation("host_del"),
    "hostgroup_add": Operation("hostgroup_add", result=ResultShape.GROUP),
    "hostgroup_add_member": Operation("hostgroup_add_member", options={"all": True}, result=ResultShape.GROUP),
    "hostgroup_remove_member": Operation("hostgroup_remove_member", options={"all": True}),
    "hostgroup_del": Operation("hostgroup_del"),
    # access rules
    "hbacrule_add": Operation("hbacrule_add"),
    "hbacrule_add_host": Operation("hbacrule_add_host"),
    "hbacrule_add_service": Operation("hbacrule_add_service"),
    "hbacrule_del": Operation("hbacrule_del"),
    "hbacrule_add_user": Operation("hbacrule_add_user", options={"all": True}),
    "hbacrule_remove_user": Operation("hbacrule_remove_user", options={"all": True}),
    "sudorule_add_user": Operation("sudorule_add_user"),
}


def _records(data: Any) -> list[Any]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise DecodingError("expected a list of records")
    return data


def decode_result(shape: ResultShape, response: RpcResponse) -> Any:
    """Turn ``result.result`` into the value a client method returns."""
    data = response.data
    if shape is ResultShape.NONE:
        return None
    if shape is ResultShape.RAW:
        return response
    if shape is ResultShape.USER:
        return User.from_record(data)
    if shape is ResultShape.USERS:
        return [User.from_record(item) for item in _records(data)]
    if shape is ResultShape.OTPTOKEN:
        return OTPToken.from_record(data)
    if shape is ResultShape.OTPTOKENS:
        return [OTPToken.from_record(item) for item in _records(data)]
    if shape is ResultShape.GROUP:
        return GroupRecord.from_record(data)
    if shape is ResultShape.EXISTS:
        return bool(data)
    raise ValueError(f"unknown result shape: {shape}")
