"""
hoist.oci.credentials — Stored registry credentials.

The store maps a registry identity key to one Credential:

    https://index.docker.io/v1/   → official index
    registry.example.com          → any other registry (hostname[:port])

Lookups fall back to hostname comparison so that keys saved as URLs
("https://registry.example.com/v2/") still match a bare hostname.
Persistence lives in hoist.oci.config; this module is in-memory only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hoist.oci.reference import INDEX_SERVER, IndexInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """Username/secret pair for one registry."""
    username: str = ""
    secret: str = ""
    email: str = ""
    server_address: str = ""

    @property
    def empty(self) -> bool:
        return not self.username and not self.secret

    def to_dict(self) -> dict[str, str]:
        """Auth-config shape sent to the engine."""
        data = {"username": self.username, "password": self.secret}
        if self.email:
            data["email"] = self.email
        if self.server_address:
            data["serveraddress"] = self.server_address
        return data


def auth_config_key(index: IndexInfo) -> str:
    """Store key for a registry: the index server URL for the official
    index, the bare registry name for everything else."""
    if index.official:
        return INDEX_SERVER
    return index.name


def convert_to_hostname(url: str) -> str:
    """https://Registry.Example.com/v2/ → registry.example.com"""
    stripped = url.strip()
    if "://" in stripped:
        stripped = stripped.split("://", 1)[1]
    return stripped.split("/", 1)[0].lower()


class CredentialStore:
    """Mapping of identity key → Credential, at most one per key."""

    def __init__(self, auths: dict[str, Credential] | None = None):
        self._auths: dict[str, Credential] = {}
        for key, credential in (auths or {}).items():
            self.upsert(key, credential)

    def resolve(self, key: str) -> Credential | None:
        existing = self._matching_key(key)
        if existing is None:
            return None
        return self._auths[existing]

    def all(self) -> dict[str, Credential]:
        return dict(self._auths)

    def upsert(self, key: str, credential: Credential) -> None:
        # One entry per host, whatever format the old key was saved in
        existing = self._matching_key(key)
        if existing is not None and existing != key:
            del self._auths[existing]
        self._auths[key] = credential
        logger.debug("Stored credential for %s", key)

    def remove(self, key: str) -> bool:
        existing = self._matching_key(key)
        if existing is None:
            return False
        del self._auths[existing]
        logger.debug("Removed credential for %s", existing)
        return True

    def _matching_key(self, key: str) -> str | None:
        if key in self._auths:
            return key
        wanted = convert_to_hostname(key)
        for stored_key in self._auths:
            if convert_to_hostname(stored_key) == wanted:
                return stored_key
        return None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._matching_key(key) is not None

    def __len__(self) -> int:
        return len(self._auths)

    def __repr__(self) -> str:
        return f"CredentialStore(keys={sorted(self._auths)!r})"


def resolve_auth_config(store: CredentialStore, index: IndexInfo) -> Credential:
    """Credential that applies to index; an empty one means anonymous."""
    credential = store.resolve(auth_config_key(index))
    if credential is None:
        return Credential()
    return credential

