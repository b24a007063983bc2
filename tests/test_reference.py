"""
tests/test_reference.py — Reference parsing and registry resolution.
"""

import os
import sys
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from hoist.oci.errors import ReferenceParseError, RegistryResolveError
from hoist.oci.reference import (
    INDEX_NAME, parse_reference, resolve_registry_identity, index_info_for,
)

DIGEST = "sha256:" + "a" * 64


# ─────────────────────────────────────────────
# PARSING
# ─────────────────────────────────────────────
class TestParse:
    def test_short_name(self):
        ref = parse_reference("app")
        assert ref.path == "app"
        assert ref.domain is None
        assert ref.tag is None
        assert not ref.fully_qualified

    def test_short_name_with_tag(self):
        ref = parse_reference("team/app:v1")
        assert ref.path == "team/app"
        assert ref.tag == "v1"
        assert not ref.fully_qualified

    def test_fully_qualified(self):
        ref = parse_reference("registry.example.com/team/app:v1")
        assert ref.domain == "registry.example.com"
        assert ref.path == "team/app"
        assert ref.tag == "v1"
        assert ref.fully_qualified
        assert ref.name == "registry.example.com/team/app"
        assert str(ref) == "registry.example.com/team/app:v1"

    def test_port_is_not_a_tag(self):
        ref = parse_reference("localhost:5000/app")
        assert ref.domain == "localhost:5000"
        assert ref.tag is None

    def test_port_and_tag(self):
        ref = parse_reference("localhost:5000/app:1.0")
        assert ref.domain == "localhost:5000"
        assert ref.tag == "1.0"

    def test_localhost_without_port(self):
        assert parse_reference("localhost/app").domain == "localhost"

    def test_digest(self):
        ref = parse_reference(f"registry.example.com/app@{DIGEST}")
        assert ref.digest == DIGEST
        assert ref.tag is None

    def test_uppercase_path_rejected(self):
        with pytest.raises(ReferenceParseError, match="lowercase"):
            parse_reference("Team/App")

    def test_bad_tag(self):
        with pytest.raises(ReferenceParseError, match="tag"):
            parse_reference("app:-bad")

    def test_non_ascii_tag_rejected(self):
        with pytest.raises(ReferenceParseError, match="tag"):
            parse_reference("app:vé1")

    def test_bad_digest(self):
        with pytest.raises(ReferenceParseError, match="digest"):
            parse_reference("app@sha256:xyz")

    def test_empty(self):
        with pytest.raises(ReferenceParseError):
            parse_reference("   ")

    def test_too_long(self):
        with pytest.raises(ReferenceParseError, match="255"):
            parse_reference("a" * 256)


# ─────────────────────────────────────────────
# REGISTRY IDENTITY
# ─────────────────────────────────────────────
class TestResolve:
    def test_short_name_uses_default_index(self):
        index = resolve_registry_identity(parse_reference("team/app"))
        assert index.name == INDEX_NAME
        assert index.official

    def test_short_name_with_configured_default(self):
        index = resolve_registry_identity(
            parse_reference("team/app"), "registry.example.com",
        )
        assert index.name == "registry.example.com"
        assert not index.official

    def test_official_aliases(self):
        for host in ("docker.io", "index.docker.io", "registry-1.docker.io"):
            index = resolve_registry_identity(parse_reference(f"{host}/library/app"))
            assert index.name == INDEX_NAME
            assert index.official

    def test_hostname_is_lowercased(self):
        index = resolve_registry_identity(parse_reference("Registry.Example.com/app"))
        assert index.name == "registry.example.com"

    def test_loopback_is_insecure(self):
        assert not index_info_for("localhost:5000").secure
        assert not index_info_for("127.0.0.1:5000").secure
        assert index_info_for("registry.example.com").secure

    def test_url_form(self):
        index = index_info_for("https://index.docker.io/v1/")
        assert index.official

    def test_invalid_default(self):
        with pytest.raises(RegistryResolveError):
            resolve_registry_identity(parse_reference("app"), "not a host")
