"""FreeIPA OTP tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from pyipa.decoding import (
    ZERO_DATETIME,
    is_zero_datetime,
    unwrap_datetime,
    unwrap_int,
    unwrap_str,
    wrap_datetime,
)
from pyipa.utils.exceptions import DecodingError

ALGORITHM_SHA1 = "sha1"
ALGORITHM_SHA256 = "sha256"
ALGORITHM_SHA384 = "sha384"
ALGORITHM_SHA512 = "sha512"

TOKEN_TYPE_TOTP = "totp"
TOKEN_TYPE_HOTP = "hotp"


class OTPToken(BaseModel):
    dn: str = ""
    uuid: str = ""
    algorithm: str = ""
    digits: int = 0
    owner: str = ""
    time_step: int = 0
    clock_offset: int = 0
    managed_by: str = ""
    enabled: bool = True
    type: str = ""
    uri: str = ""
    description: str = ""
    vendor: str = ""
    model: str = ""
    serial: str = ""
    not_before: datetime = ZERO_DATETIME
    not_after: datetime = ZERO_DATETIME

    @classmethod
    def default_totp(cls) -> "OTPToken":
        return cls(type=TOKEN_TYPE_TOTP, algorithm=ALGORITHM_SHA1, digits=6, time_step=30)

    @classmethod
    def from_record(cls, raw: Any) -> "OTPToken":
        if not isinstance(raw, dict):
            raise DecodingError("invalid otp token record json")
        return cls(
            dn=unwrap_str(raw.get("dn")),
            uuid=unwrap_str(raw.get("ipatokenuniqueid")),
            algorithm=unwrap_str(raw.get("ipatokenotpalgorithm")),
            digits=unwrap_int(raw.get("ipatokenotpdigits")),
            owner=unwrap_str(raw.get("ipatokenowner")),
            time_step=unwrap_int(raw.get("ipatokentotptimestep")),
            clock_offset=unwrap_int(raw.get("ipatokentotpclockoffset")),
            managed_by=unwrap_str(raw.get("managedby_user")),
            enabled=unwrap_str(raw.get("ipatokendisabled")) != "TRUE",
            type=unwrap_str(raw.get("type")),
            uri=unwrap_str(raw.get("uri")),
            description=unwrap_str(raw.get("description")),
            vendor=unwrap_str(raw.get("ipatokenvendor")),
            model=unwrap_str(raw.get("ipatokenmodel")),
            serial=unwrap_str(raw.get("ipatokenserial")),
            not_before=unwrap_datetime(raw.get("ipatokennotbefore")),
            not_after=unwrap_datetime(raw.get("ipatokennotafter")),
        )

    def display_name(self) -> str:
        if len(self.uuid) == 36:
            return f"{self.owner}-{self.uuid[-6:]}"
        return self.uuid

    def to_options(self) -> dict[str, Any]:
        """Options for otptoken_add, with TOTP defaults for unset fields."""
        defaults = OTPToken.default_totp()
        options: dict[str, Any] = {
            "type": self.type or defaults.type,
            "ipatokenotpalgorithm": self.algorithm or defaults.algorithm,
            "ipatokenotpdigits": self.digits or defaults.digits,
            "ipatokentotptimestep": self.time_step or defaults.time_step,
        }
        optional = {
            "ipatokenowner": self.owner,
            "description": self.description,
            "ipatokenvendor": self.vendor,
            "ipatokenmodel": self.model,
            "ipatokenserial": self.serial,
        }
        options.update({k: v for k, v in optional.items() if v})
        if not is_zero_datetime(self.not_before):
            options["ipatokennotbefore"] = wrap_datetime(self.not_before)
        if not is_zero_datetime(self.not_after):
            options["ipatokennotafter"] = wrap_datetime(self.not_after)
        return options
