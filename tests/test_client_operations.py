import httpx
import pytest
from loguru import logger

from pyipa.client import IPAClient
from pyipa.config import IPAConfig
from pyipa.models import OTPToken, User
from pyipa.operations import OPERATIONS, ArgShape, Operation
from pyipa.protocol import API_VERSION
from pyipa.utils.exceptions import (
    AlreadyActive,
    DuplicateEntry,
    IPAError,
    NotFound,
    Unauthorized,
)

TOKEN_UUID = "3f1e5b9a-6c2d-4e8f-9a0b-1c2d3e4f5a6b"


def _params(ipa_server):
    payload = ipa_server.last_payload()
    args, options = payload["params"]
    assert options.pop("version") == API_VERSION
    return payload["method"], args, options


def test_operation_arg_shapes() -> None:
    assert Operation("ping", ArgShape.NONE).build_args(()) == []
    assert Operation("user_show").build_args(("alice",)) == ["alice"]
    assert Operation("user_del", ArgShape.MANY).build_args(("a", "b")) == ["a", "b"]
    assert Operation("user_find", ArgShape.SEARCH).build_args(()) == [""]
    with pytest.raises(ValueError):
        Operation("user_show").build_args(())
    with pytest.raises(ValueError):
        Operation("user_del", ArgShape.MANY).build_args(())
    with pytest.raises(ValueError):
        Operation("ping", ArgShape.NONE).build_args(("x",))


def test_operation_defaults_are_not_mutated() -> None:
    op = OPERATIONS["user_show"]
    options = op.build_options({"all": False})
    assert options["all"] is False
    assert op.options["all"] is True


def test_client_from_host_and_session_id(http_client, ipa_server) -> None:
    client = IPAClient(IPAConfig(host=ipa_server.host, realm=ipa_server.realm), http_client=http_client, session_id=ipa_server.session_token)
    assert client.host == ipa_server.host
    assert client.realm == ipa_server.realm
    assert client.session_id == ipa_server.session_token

    client.ping()
    assert ipa_server.last.headers["cookie"] == f"ipa_session={ipa_server.session_token}"

    client.clear_session()
    assert client.session_id == ""
    client.ping()
    assert str(ipa_server.last.url) == f"https://{ipa_server.host}/ipa/json"


def test_for_host_builds_default_config(ipa_server) -> None:
    with IPAClient.for_host(ipa_server.host, ipa_server.realm) as client:
        assert client.config.host == ipa_server.host
        assert client.config.timeout == 60.0
        assert isinstance(client.transport.http, httpx.Client)


def test_default_client_uses_cached_config(ipa_server, monkeypatch) -> None:
    import pyipa.client as client_module

    seen = {}

    def _fake_get_config(*, config_path=None, force_reload=False):
        seen["path"] = config_path
        return IPAConfig(host=ipa_server.host, realm=ipa_server.realm, sticky_session=False)

    monkeypatch.setattr(client_module, "get_config", _fake_get_config)

    with IPAClient.default_client(session_id=ipa_server.session_token) as client:
        assert client.host == ipa_server.host
        assert client.session_id == ipa_server.session_token
        assert client.session.sticky is False
    assert seen["path"] is None


def test_sticky_session_toggle(ipa_client, ipa_server) -> None:
    ipa_client.sticky_session(False)
    ipa_server.queue(json_body=ipa_server.result(None), headers=[("set-cookie", f"ipa_session={ipa_server.session_token}")])
    ipa_client.ping()
    assert ipa_client.session_id == ""

    ipa_client.sticky_session(True)
    ipa_server.queue(json_body=ipa_server.result(None), headers=[("set-cookie", f"ipa_session={ipa_server.session_token}")])
    ipa_client.ping()
    assert ipa_client.session_id == ipa_server.session_token


def test_call_passes_through_arbitrary_commands(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result([{"cn": ["dns"]}], count=1, truncated=False))

    response = ipa_client.call("dnszone_find", [], {"sizelimit": 10})

    method, args, options = _params(ipa_server)
    assert (method, args, options) == ("dnszone_find", [], {"sizelimit": 10})
    assert response.result.count == 1
    assert response.data == [{"cn": ["dns"]}]


def test_user_show(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"], "givenname": ["Alice"]}))

    user = ipa_client.user_show("alice")

    assert _params(ipa_server) == ("user_show", ["alice"], {"no_members": False, "all": True})
    assert user.username == "alice"
    assert user.first == "Alice"


def test_user_show_not_found(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.error(4001, "alice: user not found", "NotFound"))

    with pytest.raises(NotFound):
        ipa_client.user_show("alice")


def test_user_find(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result([{"uid": ["alice"]}, {"uid": ["bob"]}], count=2))

    users = ipa_client.user_find(mail="bob@example.test")

    method, args, options = _params(ipa_server)
    assert method == "user_find"
    assert args == [""]
    assert options["mail"] == "bob@example.test"
    assert [u.username for u in users] == ["alice", "bob"]


def test_user_find_keeps_member_options_fixed(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result([], count=0))

    ipa_client.user_find(all=False, no_members=True, uid="alice")

    _, _, options = _params(ipa_server)
    assert options == {"uid": "alice", "all": True, "no_members": False}


def test_user_add_sends_attributes(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"], "randompassword": "Rand0m!"}))

    rec = ipa_client.user_add(User(username="alice", first="Alice", last="Liddell"), random=True)

    method, args, options = _params(ipa_server)
    assert method == "user_add"
    assert args == ["alice"]
    assert options["givenname"] == "Alice"
    assert options["sn"] == "Liddell"
    assert options["random"] is True
    assert rec.random_password == "Rand0m!"


def test_user_add_existing_user_is_duplicate_entry(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.error(4002, 'user with name "alice" already exists', "DuplicateEntry"))

    with pytest.raises(DuplicateEntry) as exc_info:
        ipa_client.user_add(User(username="alice"))
    assert not isinstance(exc_info.value, Unauthorized)


def test_user_add_requires_username(ipa_client) -> None:
    with pytest.raises(ValueError):
        ipa_client.user_add(User(first="Nobody"))


def test_user_add_with_password_changes_random_password(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"], "randompassword": "Rand0m!"}))
    ipa_server.queue(headers=[("X-IPA-Pwchange-Result", "ok")])

    rec = ipa_client.user_add_with_password(User(username="alice"), "N3w-password")

    assert rec.username == "alice"
    assert str(ipa_server.last.url).endswith("/ipa/session/change_password")
    body = ipa_server.last.content.decode("utf-8")
    assert "old_password=Rand0m%21" in body
    assert "new_password=N3w-password" in body


def test_user_mod_empty_modlist_returns_input(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.error(4202, "no modifications to be performed", "EmptyModlist"))
    user = User(username="alice", email="alice@example.test")

    assert ipa_client.user_mod(user) is user


def test_user_mod_returns_updated_record(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"], "loginshell": ["/bin/zsh"]}))

    rec = ipa_client.user_mod(User(username="alice", shell="/bin/zsh"))

    method, args, options = _params(ipa_server)
    assert (method, args) == ("user_mod", ["alice"])
    assert options["loginshell"] == "/bin/zsh"
    assert rec.shell == "/bin/zsh"


def test_user_delete_options(ipa_client, ipa_server) -> None:
    ipa_client.user_delete("alice", "bob", preserve=True, stop_on_error=False)

    assert _params(ipa_server) == ("user_del", ["alice", "bob"], {"continue": True, "preserve": True})


def test_user_disable_and_enable(ipa_client, ipa_server) -> None:
    ipa_client.user_disable("alice")
    assert _params(ipa_server) == ("user_disable", ["alice"], {})

    ipa_server.queue(json_body=ipa_server.error(4009, "This entry is already enabled", "AlreadyActive"))
    with pytest.raises(AlreadyActive):
        ipa_client.user_enable("alice")


def test_reset_password(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"], "randompassword": "Xyz123"}))

    assert ipa_client.reset_password("alice") == "Xyz123"
    assert _params(ipa_server) == ("user_mod", ["alice"], {"no_members": False, "random": True, "all": True})


def test_reset_password_empty_random_password(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"]}))

    with pytest.raises(IPAError) as exc_info:
        ipa_client.reset_password("alice")
    assert exc_info.value.code == "EMPTY_RANDOM_PASSWORD"


def test_change_password_and_passwd(ipa_client, ipa_server) -> None:
    ipa_client.change_password("alice", "old", "new", otp="654321")
    assert _params(ipa_server) == (
        "passwd",
        ["alice"],
        {"current_password": "old", "password": "new", "otp": "654321"},
    )

    ipa_client.passwd("alice", "admin-set")
    assert _params(ipa_server) == ("passwd", ["alice"], {"password": "admin-set"})


def test_trace_log_never_contains_secrets(ipa_client, ipa_server) -> None:
    lines: list[str] = []
    handler_id = logger.add(lambda message: lines.append(str(message)), level="TRACE")
    try:
        ipa_server.queue(
            json_body=ipa_server.result(
                {
                    "ipatokenuniqueid": [TOKEN_UUID],
                    "ipatokenotpkey": [{"__base64__": "SEKRITKEYB64"}],
                    "uri": "otpauth://totp/alice?secret=SEKRITURISECRET&issuer=EXAMPLE.TEST",
                }
            )
        )
        ipa_client.add_otp_token(OTPToken(owner="alice"))
        ipa_client.passwd("alice", "has space pw")
    finally:
        logger.remove(handler_id)

    text = "".join(lines)
    assert "FreeIPA RPC request" in text
    assert "FreeIPA JSON response" in text
    assert "SEKRITKEYB64" not in text
    assert "SEKRITURISECRET" not in text
    assert "space pw" not in text
    assert "[REDACTED]" in text


def test_set_auth_types(ipa_client, ipa_server) -> None:
    ipa_client.set_auth_types("alice", ["otp", "password"])
    _, _, options = _params(ipa_server)
    assert options["ipauserauthtype"] == ["otp", "password"]

    ipa_client.set_auth_types("alice", [])
    _, _, options = _params(ipa_server)
    assert options["ipauserauthtype"] == ""


def test_update_ssh_pub_keys_returns_fingerprints(ipa_client, ipa_server, make_ssh_key) -> None:
    first, second = make_ssh_key(comment="a"), make_ssh_key(comment="b")
    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"], "ipasshpubkey": [first, second]}))

    fingerprints = ipa_client.update_ssh_pub_keys("alice", [first, second])

    _, _, options = _params(ipa_server)
    assert options["ipasshpubkey"] == [first, second]
    assert len(fingerprints) == 2
    assert all(fp.startswith("SHA256:") for fp in fingerprints)

    ipa_server.queue(json_body=ipa_server.result({"uid": ["alice"]}))
    assert ipa_client.update_ssh_pub_keys("alice", []) == []
    _, _, options = _params(ipa_server)
    assert options["ipasshpubkey"] == ""


def test_add_otp_token_defaults(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"ipatokenuniqueid": [TOKEN_UUID], "uri": "otpauth://totp/x"}))

    token = ipa_client.add_otp_token(OTPToken(owner="alice"))

    method, args, options = _params(ipa_server)
    assert method == "otptoken_add"
    assert args == []
    assert options["type"] == "totp"
    assert options["ipatokenowner"] == "alice"
    assert options["no_qrcode"] is True
    assert token.uuid == TOKEN_UUID
    assert token.uri == "otpauth://totp/x"


def test_fetch_otp_tokens(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result([{"ipatokenuniqueid": [TOKEN_UUID], "ipatokendisabled": ["TRUE"]}], count=1))

    tokens = ipa_client.fetch_otp_tokens("alice")

    assert _params(ipa_server) == ("otptoken_find", [], {"all": True, "ipatokenowner": "alice"})
    assert len(tokens) == 1
    assert tokens[0].enabled is False


def test_otp_token_lifecycle(ipa_client, ipa_server) -> None:
    ipa_client.enable_otp_token(TOKEN_UUID)
    assert _params(ipa_server) == ("otptoken_mod", [TOKEN_UUID], {"ipatokendisabled": False, "all": False})

    ipa_client.disable_otp_token(TOKEN_UUID)
    assert _params(ipa_server) == ("otptoken_mod", [TOKEN_UUID], {"ipatokendisabled": True, "all": False})

    ipa_client.remove_otp_token(TOKEN_UUID)
    assert _params(ipa_server) == ("otptoken_del", [TOKEN_UUID], {})


def test_group_membership(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"cn": ["devs"], "member_user": ["alice"]}))
    group = ipa_client.add_user_to_group("devs", "alice")
    method, args, options = _params(ipa_server)
    assert (method, args, options["user"]) == ("group_add_member", ["devs"], ["alice"])
    assert group.has_user("alice")

    ipa_server.queue(json_body=ipa_server.result({"cn": ["devs"], "member_user": ["alice"]}))
    assert ipa_client.check_user_member_of_group("alice", "devs") is True
    assert _params(ipa_server)[0] == "group_show"

    ipa_server.queue(json_body=ipa_server.result({"cn": ["devs"]}))
    assert ipa_client.check_user_member_of_group("alice", "devs") is False

    ipa_client.remove_user_from_group("devs", "alice")
    method, args, options = _params(ipa_server)
    assert (method, args, options["user"]) == ("group_remove_member", ["devs"], ["alice"])


def test_group_add_and_delete(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"cn": ["devs"], "gidnumber": ["1200005"]}))
    assert ipa_client.group_add("devs").name == "devs"

    ipa_client.group_delete("devs")
    assert _params(ipa_server) == ("group_del", ["devs"], {})


def test_host_operations(ipa_client, ipa_server) -> None:
    ipa_client.host_add("web1.example.test", force=True, ip_address="10.0.0.5")
    assert _params(ipa_server) == ("host_add", ["web1.example.test"], {"force": True, "ip_address": "10.0.0.5"})

    ipa_client.host_add("web2.example.test")
    assert _params(ipa_server) == ("host_add", ["web2.example.test"], {"force": False})

    ipa_server.queue(json_body=ipa_server.result([{"fqdn": ["web1.example.test"]}], count=1))
    assert ipa_client.host_exists("web1.example.test") is True
    ipa_server.queue(json_body=ipa_server.result([], count=0))
    assert ipa_client.host_exists("nope.example.test") is False

    ipa_client.host_delete("web1.example.test")
    assert _params(ipa_server) == ("host_del", ["web1.example.test"], {})


def test_hostgroup_operations(ipa_client, ipa_server) -> None:
    ipa_server.queue(json_body=ipa_server.result({"cn": ["webservers"]}))
    assert ipa_client.hostgroup_add("webservers").name == "webservers"

    ipa_server.queue(json_body=ipa_server.result({"cn": ["webservers"], "member_host": ["web1.example.test"]}))
    group = ipa_client.hostgroup_add_member("webservers", "web1.example.test")
    assert _params(ipa_server) == ("hostgroup_add_member", ["webservers"], {"all": True, "host": ["web1.example.test"]})
    assert group.hosts == ["web1.example.test"]

    ipa_client.hostgroup_remove_member("webservers", "web1.example.test")
    assert _params(ipa_server)[0] == "hostgroup_remove_member"

    ipa_client.hostgroup_delete("webservers")
    assert _params(ipa_server) == ("hostgroup_del", ["webservers"], {})


def test_hbac_and_sudo_rules(ipa_client, ipa_server) -> None:
    ipa_client.hbacrule_add("allow_web")
    assert _params(ipa_server) == ("hbacrule_add", ["allow_web"], {})

    ipa_client.hbacrule_add_host("allow_web", "webservers")
    assert _params(ipa_server) == ("hbacrule_add_host", ["allow_web"], {"hostgroup": "webservers"})

    ipa_client.hbacrule_add_service("allow_web", "web")
    assert _params(ipa_server) == ("hbacrule_add_service", ["allow_web"], {"hbacsvcgroup": "web"})

    ipa_client.hbacrule_add_user("allow_web", "devs", "ops")
    assert _params(ipa_server) == ("hbacrule_add_user", ["allow_web"], {"all": True, "group": ["devs", "ops"]})

    ipa_client.hbacrule_remove_user("allow_web", "ops")
    assert _params(ipa_server) == ("hbacrule_remove_user", ["allow_web"], {"all": True, "group": ["ops"]})

    ipa_client.hbacrule_delete("allow_web")
    assert _params(ipa_server) == ("hbacrule_del", ["allow_web"], {})

    ipa_client.sudorule_add_user("admins_all", "devs")
    assert _params(ipa_server) == ("sudorule_add_user", ["admins_all"], {"group": "devs"})
