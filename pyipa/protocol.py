"""FreeIPA JSON-RPC envelope definitions."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

API_VERSION = "2.237"

RPC_PATH = "/ipa/json"
SESSION_RPC_PATH = "/ipa/session/json"
LOGIN_PASSWORD_PATH = "/ipa/session/login_password"
CHANGE_PASSWORD_PATH = "/ipa/session/change_password"

SESSION_COOKIE = "ipa_session"
BEARER_TOKEN_PREFIX = "MagBearerToken"
SESSION_TOKEN_LENGTH = 32

REJECTION_REASON_HEADER = "X-IPA-Rejection-Reason"
PWCHANGE_RESULT_HEADER = "X-IPA-Pwchange-Result"


class RpcRequest(BaseModel):
    """Request envelope: ``params`` is ``[args, options]``."""
    id: int = 0
    method: str
    args: list[Any] = Field(default_factory=list, exclude=True)
    options: dict[str, Any] = Field(default_factory=dict, exclude=True)

    @model_validator(mode="after")
    def _stamp_version(self) -> "RpcRequest":
        self.options = {**self.options, "version": API_VERSION}
        return self

    def to_payload(self) -> dict[str, Any]:
        return {"id": self.id, "method": self.method, "params": [list(self.args), dict(self.options)]}


class RpcErrorPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: int
    message: str = ""
    name: str | None = None
    data: Any = None


class RpcResult(BaseModel):
    """The ``result`` member of a successful response.

    ``result`` holds the command payload: a record dict for show/add/mod,
    a list of records for find, or a bool/None for others.
    """
    model_config = ConfigDict(extra="allow")

    summary: str | None = None
    value: Any = None
    result: Any = None
    count: int | None = None
    truncated: bool | None = None


class RpcResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int | None = None
    error: RpcErrorPayload | None = None
    result: RpcResult | None = None
    principal: str = ""
    version: str = ""

    @model_validator(mode="after")
    def _one_of_error_or_result(self) -> "RpcResponse":
        if self.error is None and self.result is None:
            raise ValueError("response carries neither error nor result")
        return self

    @property
    def data(self) -> Any:
        """Command payload, ``result.result``."""
        return self.result.result if self.result is not None else None
