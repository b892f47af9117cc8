"""Pytest hooks and fixtures."""

from __future__ import annotations

import json
import os
from types import SimpleNamespace
from typing import Any

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from pyipa.client import IPAClient
from pyipa.config import IPAConfig

IPA_HOST = "ipa.example.test"
IPA_REALM = "EXAMPLE.TEST"
SESSION_TOKEN = "0123456789abcdef0123456789abcdef"


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "requires_kerberos: needs a reachable KDC and the gssapi package (skipped in CI)",
    )


def pytest_collection_modifyitems(config, items):
    """Skip requires_kerberos tests when running in CI (no KDC available)."""
    if os.environ.get("CI") != "true":
        return
    skip = pytest.mark.skip(reason="Requires a Kerberos KDC (skipped in CI)")
    for item in items:
        if "requires_kerberos" in item.keywords:
            item.add_marker(skip)


def rpc_result(data: Any = None, **extra: Any) -> dict[str, Any]:
    """Successful FreeIPA envelope around ``data``."""
    result = {"result": data, "summary": None, "value": "", **extra}
    return {"result": result, "error": None, "id": 0, "principal": f"admin@{IPA_REALM}", "version": "4.9.8"}


def rpc_error(code: int, message: str, name: str = "") -> dict[str, Any]:
    return {
        "result": None,
        "error": {"code": code, "message": message, "name": name, "data": {}},
        "id": 0,
        "principal": f"admin@{IPA_REALM}",
        "version": "4.9.8",
    }


class FakeIPAServer:
    """Queue of canned responses served through httpx.MockTransport."""

    host = IPA_HOST
    realm = IPA_REALM
    session_token = SESSION_TOKEN
    result = staticmethod(rpc_result)
    error = staticmethod(rpc_error)

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._responses: list[Any] = []

    def queue(
        self,
        status_code: int = 200,
        json_body: Any = None,
        headers: list[tuple[str, str]] | None = None,
        text: str | None = None,
    ) -> None:
        self._responses.append((status_code, json_body, headers or [], text))

    def queue_exception(self, exc: Exception) -> None:
        self._responses.append(exc)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._responses:
            return httpx.Response(200, json=rpc_result(None))
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        status_code, json_body, headers, text = item
        if text is not None:
            return httpx.Response(status_code, text=text, headers=headers)
        if json_body is None:
            return httpx.Response(status_code, headers=headers)
        return httpx.Response(status_code, json=json_body, headers=headers)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.last.content)


@pytest.fixture
def ipa_server() -> FakeIPAServer:
    return FakeIPAServer()


@pytest.fixture
def ipa_config(tmp_path) -> IPAConfig:
    krb5_conf = tmp_path / "krb5.conf"
    krb5_conf.write_text("[libdefaults]\n default_realm = EXAMPLE.TEST\n", encoding="utf-8")
    return IPAConfig(host=IPA_HOST, realm=IPA_REALM, krb5_conf=krb5_conf, verify_ssl=False)


@pytest.fixture
def http_client(ipa_server: FakeIPAServer):
    client = httpx.Client(transport=httpx.MockTransport(ipa_server.handler))
    yield client
    client.close()


@pytest.fixture
def ipa_client(ipa_config: IPAConfig, http_client: httpx.Client) -> IPAClient:
    return IPAClient(ipa_config, http_client=http_client)


@pytest.fixture
def make_ssh_key():
    """Factory for real ed25519 authorized_keys lines."""

    def _make(comment: str = "", options: str = "") -> str:
        public_key = ed25519.Ed25519PrivateKey.generate().public_key()
        line = public_key.public_bytes(
            serialization.Encoding.OpenSSH,
            serialization.PublicFormat.OpenSSH,
        ).decode("ascii")
        if options:
            line = f"{options} {line}"
        if comment:
            line = f"{line} {comment}"
        return line

    return _make


class FakeGSSError(Exception):
    pass


class _FakeName:
    def __init__(self, base: str, name_type: Any = None) -> None:
        self.base = base
        self.name_type = name_type

    def __str__(self) -> str:
        return self.base


def make_fake_gssapi(
    *,
    lifetime: int = 3600,
    ccache_principal: str = f"alice@{IPA_REALM}",
    fail_on: str | None = None,
    token: bytes = b"spnego-token",
) -> SimpleNamespace:
    """Stand-in for the gssapi module recording what the code asked for."""
    calls: dict[str, Any] = {"contexts": [], "credentials": [], "passwords": []}

    class _Credentials:
        def __init__(self, base: Any = None, name: Any = None, usage: str | None = None, store: Any = None):
            if fail_on == "credentials":
                raise FakeGSSError("no credentials found")
            self.base = base
            self.name = name or _FakeName(ccache_principal)
            self.usage = usage
            self.store = store
            calls["credentials"].append(self)

        @property
        def lifetime(self) -> int:
            if fail_on == "lifetime":
                raise FakeGSSError("keytab has no matching entry")
            return lifetime

    class _SecurityContext:
        def __init__(self, name: Any, creds: Any, usage: str, mech: Any):
            self.name = name
            self.creds = creds
            self.usage = usage
            self.mech = mech
            calls["contexts"].append(self)

        def step(self) -> bytes:
            if fail_on == "step":
                raise FakeGSSError("server not found in kerberos database")
            return token

    def _acquire_cred_with_password(name: Any, password: bytes, usage: str = "both"):
        if fail_on == "password":
            raise FakeGSSError("preauthentication failed")
        calls["passwords"].append((str(name), password, usage))
        return SimpleNamespace(creds=f"raw:{name}")

    return SimpleNamespace(
        Name=_FakeName,
        NameType=SimpleNamespace(hostbased_service="hostbased", kerberos_principal="principal"),
        Credentials=_Credentials,
        SecurityContext=_SecurityContext,
        OID=SimpleNamespace(from_int_seq=lambda seq: f"oid:{seq}"),
        raw=SimpleNamespace(acquire_cred_with_password=_acquire_cred_with_password),
        exceptions=SimpleNamespace(GSSError=FakeGSSError),
        calls=calls,
    )


@pytest.fixture
def install_gssapi(monkeypatch):
    """Install a fake gssapi built with the given options; KRB5_CONFIG is restored afterwards."""
    import pyipa.kerberos as kerberos

    monkeypatch.setenv("KRB5_CONFIG", "/nonexistent/krb5.conf")

    def _install(**options: Any) -> SimpleNamespace:
        fake = make_fake_gssapi(**options)
        monkeypatch.setattr(kerberos, "_gssapi", lambda: fake)
        return fake

    return _install


@pytest.fixture
def fake_gssapi(install_gssapi):
    return install_gssapi()
