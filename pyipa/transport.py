"""HTTPS transport for the FreeIPA JSON-RPC and session endpoints."""

from __future__ import annotations

import json
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from pyipa.protocol import (
    CHANGE_PASSWORD_PATH,
    LOGIN_PASSWORD_PATH,
    PWCHANGE_RESULT_HEADER,
    REJECTION_REASON_HEADER,
    RPC_PATH,
    SESSION_COOKIE,
    SESSION_RPC_PATH,
    RpcRequest,
    RpcResponse,
)
from pyipa.session import Session
from pyipa.utils.exceptions import (
    DecodingError,
    InvalidPassword,
    PasswordChangeError,
    PasswordExpired,
    PasswordPolicyError,
    TransportError,
    Unauthorized,
    error_for_code,
    redact_secrets,
    sanitize_error_message,
)


class Transport:
    """Sends requests for one Session over a shared httpx.Client.

    No retries: every failure is raised to the caller of the current call.
    """

    def __init__(self, session: Session, http_client: httpx.Client):
        self.session = session
        self.http = http_client

    def _url(self, path: str) -> str:
        return f"https://{self.session.host}{path}"

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = self._url(path)
        try:
            response = self.http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise TransportError(f"FreeIPA timeout: {method} {path}", code="TIMEOUT") from exc
        except httpx.RequestError as exc:
            raise TransportError(f"FreeIPA network error: {method} {path}: {exc}", code="NETWORK_ERROR") from exc
        finally:
            # The session token is replayed only through the explicit Cookie
            # header; the client's own jar must never resend it.
            self.http.cookies.clear()
        return response

    def _store_session(self, response: httpx.Response) -> None:
        self.session.update_from_cookies(response.headers.get_list("set-cookie"))

    def _auth_headers(self) -> dict[str, str]:
        if self.session.has_token:
            return {"Cookie": f"{SESSION_COOKIE}={self.session.token}"}
        if self.session.credential is not None:
            return {"Authorization": self.session.credential.spnego_header(self.session.host)}
        return {}

    def call(self, method: str, args: list[Any] | None = None, options: dict[str, Any] | None = None) -> RpcResponse:
        """Invoke one FreeIPA command and return the decoded envelope."""
        if not method:
            raise ValueError("method name is required")
        request = RpcRequest(method=method, args=list(args or []), options=dict(options or {}))
        payload = request.to_payload()

        path = SESSION_RPC_PATH if self.session.has_token else RPC_PATH
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Referer": self._url("/ipa/xml"),
            **self._auth_headers(),
        }
        logger.debug("FreeIPA RPC {} via {}", method, path)
        logger.opt(lazy=True).trace("FreeIPA RPC request: {}", lambda: json.dumps(redact_secrets(payload)))

        response = self._send("POST", path, content=json.dumps(payload).encode("utf-8"), headers=headers)
        if response.status_code != 200:
            raise TransportError(
                f"IPA RPC call failed with HTTP status code: {response.status_code}",
                status_code=response.status_code,
            )
        self._store_session(response)

        logger.opt(lazy=True).trace("FreeIPA JSON response: {}", lambda: _redacted_body(response))
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> RpcResponse:
        try:
            body = response.json()
        except ValueError as exc:
            raise DecodingError("FreeIPA returned a non-JSON body", body=response.text) from exc
        if not isinstance(body, dict):
            raise DecodingError("FreeIPA response is not a JSON object", body=response.text)
        try:
            envelope = RpcResponse.model_validate(body)
        except ValidationError as exc:
            raise DecodingError(f"malformed FreeIPA envelope: {exc.error_count()} error(s)", body=response.text) from exc

        if envelope.error is not None:
            err = envelope.error
            raise error_for_code(err.code, err.message, name=err.name, data=err.data)
        return envelope

    def login_password(self, username: str, password: str) -> None:
        """Form login; the resulting ipa_session cookie becomes the session token."""
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "text/plain",
            "Referer": self._url("/ipa"),
        }
        response = self._send(
            "POST",
            LOGIN_PASSWORD_PATH,
            data={"user": username, "password": password},
            headers=headers,
        )
        logger.trace(
            "FreeIPA login response: {} {}",
            response.status_code,
            sanitize_error_message(str(dict(response.headers))),
        )

        reason = response.headers.get(REJECTION_REASON_HEADER, "")
        if response.status_code == 401:
            if reason == "password-expired":
                raise PasswordExpired()
            if reason == "invalid-password":
                raise InvalidPassword()
            raise Unauthorized()
        if response.status_code != 200:
            raise TransportError(
                f"IPA login failed with HTTP status code: {response.status_code}",
                status_code=response.status_code,
            )

        self._store_session(response)
        if not self.session.has_token:
            logger.warning("FreeIPA login for {} returned no session cookie", username)

    def change_password(self, username: str, old_password: str, new_password: str, otp: str = "") -> None:
        """Password change through the form endpoint; the outcome is a header."""
        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "text/plain",
            "Referer": self._url("/ipa"),
        }
        form = {
            "user": username,
            "otp": otp,
            "old_password": old_password,
            "new_password": new_password,
        }
        response = self._send("POST", CHANGE_PASSWORD_PATH, data=form, headers=headers)
        logger.trace(
            "FreeIPA change_password response: {} {}",
            response.status_code,
            sanitize_error_message(str(dict(response.headers))),
        )

        if response.status_code != 200:
            raise TransportError(
                f"change password failed with HTTP status code: {response.status_code}",
                status_code=response.status_code,
            )

        status = response.headers.get(PWCHANGE_RESULT_HEADER, "")
        if status == "policy-error":
            raise PasswordPolicyError()
        if status == "invalid-password":
            raise InvalidPassword()
        if status.lower() != "ok":
            raise PasswordChangeError(status)


def _redacted_body(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return sanitize_error_message(response.text)
    return json.dumps(redact_secrets(body))
