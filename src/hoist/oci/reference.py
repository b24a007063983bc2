"""
hoist.oci.reference — Image reference parsing and registry resolution.

Reference grammar:

    [DOMAIN/]PATH[:TAG][@DIGEST]

  registry.example.com/team/app:v1    → fully qualified (domain given)
  localhost:5000/app                  → fully qualified, insecure
  team/app:v1                         → short name, resolved against
                                        the default registry

A component before the first "/" is a domain only if it contains a "."
or a ":" or is "localhost"; otherwise the whole string is a path.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass

from hoist.oci.errors import ReferenceParseError, RegistryResolveError

INDEX_NAME = "docker.io"
INDEX_SERVER = "https://index.docker.io/v1/"

# Hostnames that all mean the official index
_OFFICIAL_ALIASES = {"docker.io", "index.docker.io", "registry-1.docker.io"}

_DOMAIN_COMPONENT = r"(?:[a-zA-Z0-9]|[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9])"
_DOMAIN_RE = re.compile(
    rf"^{_DOMAIN_COMPONENT}(?:\.{_DOMAIN_COMPONENT})*(?::[0-9]+)?$"
)
_PATH_COMPONENT_RE = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|[-]+)[a-z0-9]+)*$")
_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_DIGEST_RE = re.compile(
    r"^[A-Za-z][A-Za-z0-9]*(?:[-_+.][A-Za-z][A-Za-z0-9]*)*:[0-9a-fA-F]{32,}$"
)

NAME_TOTAL_LENGTH_MAX = 255


@dataclass(frozen=True)
class Reference:
    """A parsed image reference. Immutable once parsed."""
    path: str
    domain: str | None = None
    tag: str | None = None
    digest: str | None = None

    @property
    def name(self) -> str:
        if self.domain:
            return f"{self.domain}/{self.path}"
        return self.path

    @property
    def fully_qualified(self) -> bool:
        return self.domain is not None

    def __str__(self) -> str:
        s = self.name
        if self.tag:
            s += f":{self.tag}"
        if self.digest:
            s += f"@{self.digest}"
        return s


@dataclass(frozen=True)
class IndexInfo:
    """Registry endpoint a reference resolves to."""
    name: str
    official: bool = False
    secure: bool = True


def parse_reference(name: str) -> Reference:
    """Parse NAME[:TAG][@DIGEST].

    Raises:
        ReferenceParseError: malformed name, tag or digest
    """
    s = name.strip()
    if not s:
        raise ReferenceParseError("Repository name must not be empty")

    digest = None
    if "@" in s:
        s, digest = s.split("@", 1)
        if not _DIGEST_RE.match(digest):
            raise ReferenceParseError(f"Invalid digest format: {digest}")

    tag = None
    colon = s.rfind(":")
    if colon > s.rfind("/"):
        s, tag = s[:colon], s[colon + 1:]
        if not _TAG_RE.match(tag):
            raise ReferenceParseError(f"Invalid tag format: {tag}")

    if len(s) > NAME_TOTAL_LENGTH_MAX:
        raise ReferenceParseError(
            f"Repository name must not be more than "
            f"{NAME_TOTAL_LENGTH_MAX} characters"
        )

    domain = None
    first, sep, rest = s.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        if not _DOMAIN_RE.match(first):
            raise ReferenceParseError(f"Invalid registry domain: {first}")
        domain, s = first, rest

    for component in s.split("/"):
        if not _PATH_COMPONENT_RE.match(component):
            raise ReferenceParseError(
                f"Invalid reference format: repository name must be "
                f"lowercase: {name!r}"
            )

    return Reference(path=s, domain=domain, tag=tag, digest=digest)


def resolve_registry_identity(
    ref: Reference,
    default_index: str = INDEX_NAME,
) -> IndexInfo:
    """Map a reference to the registry endpoint it will be pushed to.

    Short names resolve to default_index.
    """
    return index_info_for(ref.domain or default_index)


def index_info_for(server: str) -> IndexInfo:
    """IndexInfo for a registry given as hostname[:port] or URL."""
    hostname = _normalize_index_name(server)
    if not _DOMAIN_RE.match(hostname):
        raise RegistryResolveError(f"Invalid registry endpoint: {server!r}")

    hostname = hostname.lower()
    official = hostname in _OFFICIAL_ALIASES
    if official:
        hostname = INDEX_NAME
    return IndexInfo(
        name=hostname,
        official=official,
        secure=not _is_loopback(hostname),
    )


def _normalize_index_name(value: str) -> str:
    """https://index.docker.io/v1/ → index.docker.io"""
    value = value.strip()
    if "://" in value:
        value = value.split("://", 1)[1]
    return value.split("/", 1)[0]


def _is_loopback(hostname: str) -> bool:
    host = hostname.rsplit(":", 1)[0] if hostname.count(":") == 1 else hostname
    if host.lower() == "localhost":
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False
