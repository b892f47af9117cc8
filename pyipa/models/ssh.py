"""SSH public keys as stored in FreeIPA's ipasshpubkey attribute."""

from __future__ import annotations

import base64
import binascii
import hashlib
import struct

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import load_ssh_public_key
from pydantic import BaseModel, Field

# Security-key types are checked structurally only; the crypto backend may
# not load them.
SK_KEY_TYPES = {
    "sk-ssh-ed25519@openssh.com",
    "sk-ecdsa-sha2-nistp256@openssh.com",
}
KEY_TYPES = {
    "ssh-rsa",
    "ssh-dss",
    "ssh-ed25519",
    "ecdsa-sha2-nistp256",
    "ecdsa-sha2-nistp384",
    "ecdsa-sha2-nistp521",
} | SK_KEY_TYPES


def _split_options(line: str) -> tuple[str, str]:
    """Split a leading options field off an authorized_keys line.

    Options end at the first whitespace outside double quotes.
    """
    in_quote = False
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
        elif ch == '"':
            in_quote = not in_quote
        elif ch.isspace() and not in_quote:
            return line[:i], line[i:].strip()
    return line, ""


def _parse_option_list(field: str) -> list[str]:
    options: list[str] = []
    current: list[str] = []
    in_quote = False
    for ch in field:
        if ch == '"':
            in_quote = not in_quote
        if ch == "," and not in_quote:
            options.append("".join(current))
            current = []
            continue
        current.append(ch)
    if current:
        options.append("".join(current))
    return [opt for opt in options if opt]


def _blob_key_type(blob: bytes) -> str:
    if len(blob) < 4:
        raise ValueError("ssh key blob is truncated")
    (length,) = struct.unpack(">I", blob[:4])
    if length > len(blob) - 4:
        raise ValueError("ssh key blob is truncated")
    return blob[4 : 4 + length].decode("ascii", errors="replace")


def fingerprint_sha256(blob: bytes) -> str:
    """OpenSSH style ``SHA256:`` fingerprint of a raw key blob."""
    digest = hashlib.sha256(blob).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


class SSHAuthorizedKey(BaseModel):
    """One authorized_keys entry: options, key type, base64 blob and comment."""
    key_type: str
    key_data: str
    comment: str = ""
    options: list[str] = Field(default_factory=list)
    fingerprint: str = ""

    @classmethod
    def parse(cls, line: str) -> "SSHAuthorizedKey":
        """Parse an authorized_keys line; raises ValueError when it is not a key."""
        text = (line or "").strip()
        if not text or text.startswith("#"):
            raise ValueError("no ssh public key found")

        options: list[str] = []
        first = text.split(None, 1)[0]
        if first not in KEY_TYPES:
            option_field, text = _split_options(text)
            options = _parse_option_list(option_field)

        parts = text.split(None, 2)
        if len(parts) < 2 or parts[0] not in KEY_TYPES:
            raise ValueError("no ssh public key found")
        key_type, key_data = parts[0], parts[1]
        comment = parts[2].strip() if len(parts) > 2 else ""

        try:
            blob = base64.b64decode(key_data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"invalid ssh key data: {e}") from e
        if _blob_key_type(blob) != key_type:
            raise ValueError(f"ssh key type mismatch: {key_type}")
        if key_type not in SK_KEY_TYPES:
            try:
                load_ssh_public_key(f"{key_type} {key_data}".encode("ascii"))
            except (ValueError, UnsupportedAlgorithm) as e:
                raise ValueError(f"invalid ssh public key: {e}") from e

        return cls(
            key_type=key_type,
            key_data=key_data,
            comment=comment,
            options=options,
            fingerprint=fingerprint_sha256(blob),
        )

    def __str__(self) -> str:
        out: list[str] = []
        if self.options:
            out.append(",".join(self.options))
        out.append(f"{self.key_type} {self.key_data}")
        if self.comment:
            out.append(self.comment)
        return " ".join(out)
