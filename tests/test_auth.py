"""
tests/test_auth.py — Credential store, token encoding, privilege escalation.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from hoist.oci.auth import (
    decode_auth, encode_auth, encode_all, encode_single,
    encoded_auth_for, privilege_func,
)
from hoist.oci.credentials import (
    Credential, CredentialStore, auth_config_key, convert_to_hostname,
    resolve_auth_config,
)
from hoist.oci.errors import AuthEncodingError, LoginError
from hoist.oci.reference import (
    INDEX_SERVER, IndexInfo, parse_reference, resolve_registry_identity,
)


@pytest.fixture
def store():
    return CredentialStore({
        INDEX_SERVER: Credential("hub-user", "hub-secret"),
        "registry.example.com": Credential("bot", "token"),
        "other.example.org": Credential("ops", "hunter2"),
    })


# ─────────────────────────────────────────────
# CREDENTIAL STORE
# ─────────────────────────────────────────────
class TestCredentialStore:
    def test_resolve_exact(self, store):
        assert store.resolve("registry.example.com").username == "bot"

    def test_resolve_missing(self, store):
        assert store.resolve("nowhere.example.net") is None

    def test_resolve_url_key_by_hostname(self):
        s = CredentialStore({
            "https://Registry.Example.com/v2/": Credential("bot", "token"),
        })
        assert s.resolve("registry.example.com").username == "bot"

    def test_all_is_snapshot(self, store):
        snapshot = store.all()
        snapshot.clear()
        assert len(store) == 3

    def test_upsert_replaces(self, store):
        store.upsert("registry.example.com", Credential("bot2", "new"))
        assert store.resolve("registry.example.com").username == "bot2"
        assert len(store) == 3

    def test_upsert_replaces_differently_formatted_key(self):
        s = CredentialStore({"https://registry.example.com": Credential("a", "1")})
        s.upsert("registry.example.com", Credential("b", "2"))
        assert len(s) == 1
        assert s.all() == {"registry.example.com": Credential("b", "2")}

    def test_constructor_keeps_one_entry_per_host(self):
        s = CredentialStore({
            "registry.example.com": Credential("a", "1"),
            "https://registry.example.com/v2/": Credential("b", "2"),
        })
        assert len(s) == 1
        assert s.resolve("registry.example.com") == Credential("b", "2")

    def test_remove(self, store):
        assert store.remove("other.example.org")
        assert "other.example.org" not in store
        assert not store.remove("other.example.org")

    def test_convert_to_hostname(self):
        assert convert_to_hostname("https://index.docker.io/v1/") == "index.docker.io"
        assert convert_to_hostname("Registry.Example.com:5000") == "registry.example.com:5000"

    def test_auth_config_key(self):
        assert auth_config_key(IndexInfo("docker.io", official=True)) == INDEX_SERVER
        assert auth_config_key(IndexInfo("registry.example.com")) == "registry.example.com"

    def test_resolve_auth_config_anonymous(self):
        cred = resolve_auth_config(CredentialStore(), IndexInfo("registry.example.com"))
        assert cred.empty


# ─────────────────────────────────────────────
# ENCODER
# ─────────────────────────────────────────────
class TestEncoder:
    def test_single(self):
        token = encode_single("registry.example.com", Credential("bot", "token"))
        assert decode_auth(token) == {
            "registry.example.com": {"username": "bot", "password": "token"},
        }

    def test_all(self, store):
        assert set(decode_auth(encode_all(store))) == set(store.all())

    def test_token_is_urlsafe(self, store):
        token = encode_all(store)
        assert "+" not in token and "/" not in token

    def test_optional_fields(self):
        cred = Credential("bot", "token", email="bot@example.com",
                          server_address="registry.example.com")
        data = decode_auth(encode_single("registry.example.com", cred))
        entry = data["registry.example.com"]
        assert entry["email"] == "bot@example.com"
        assert entry["serveraddress"] == "registry.example.com"

    def test_serialization_error(self):
        with pytest.raises(AuthEncodingError):
            encode_auth({"registry.example.com": object()})

    def test_fully_qualified_sends_one_entry(self, store):
        ref = parse_reference("registry.example.com/team/app:v1")
        index = resolve_registry_identity(ref)
        data = decode_auth(encoded_auth_for(ref, index, store))
        assert list(data) == ["registry.example.com"]
        assert data["registry.example.com"]["username"] == "bot"

    def test_fully_qualified_anonymous(self, store):
        ref = parse_reference("unknown.example.net/app")
        index = resolve_registry_identity(ref)
        data = decode_auth(encoded_auth_for(ref, index, store))
        assert data == {"unknown.example.net": {"username": "", "password": ""}}

    def test_short_name_sends_everything(self, store):
        ref = parse_reference("team/app")
        index = resolve_registry_identity(ref)
        data = decode_auth(encoded_auth_for(ref, index, store))
        assert set(data) == {INDEX_SERVER, "registry.example.com", "other.example.org"}

    def test_same_store_same_token(self, store):
        for name in ("team/app", "registry.example.com/team/app"):
            ref = parse_reference(name)
            index = resolve_registry_identity(ref)
            assert encoded_auth_for(ref, index, store) == encoded_auth_for(ref, index, store)


# ─────────────────────────────────────────────
# PRIVILEGE ESCALATION
# ─────────────────────────────────────────────
class TestPrivilegeFunc:
    def _login(self, calls, credential=None):
        def login(key):
            calls.append(key)
            return credential or Credential("fresh", "fresh-secret")
        return login

    def test_single_auth(self, store):
        calls, out = [], []
        request = privilege_func(
            store, IndexInfo("registry.example.com"), "push", True,
            self._login(calls), out.append,
        )
        data = decode_auth(request())
        assert calls == ["registry.example.com"]
        assert data == {
            "registry.example.com": {"username": "fresh", "password": "fresh-secret"},
        }
        assert "Please login prior to push (registry.example.com):" in out[0]

    def test_all_auths_include_new_credential(self, store):
        calls = []
        request = privilege_func(
            store, IndexInfo("docker.io", official=True), "push", False,
            self._login(calls), lambda s: None,
        )
        data = decode_auth(request())
        assert calls == [INDEX_SERVER]
        assert set(data) == {INDEX_SERVER, "registry.example.com", "other.example.org"}
        assert data[INDEX_SERVER]["username"] == "fresh"

    def test_login_error_propagates(self, store):
        def login(key):
            raise LoginError("Wrong login/password, please try again")

        request = privilege_func(
            store, IndexInfo("registry.example.com"), "push", True,
            login, lambda s: None,
        )
        with pytest.raises(LoginError, match="Wrong login/password"):
            request()
        assert store.resolve("registry.example.com").username == "bot"
