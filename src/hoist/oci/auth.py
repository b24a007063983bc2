"""
hoist.oci.auth — Auth token encoding and privilege escalation.

A token is the URL-safe base64 of a JSON mapping
{identity key: {"username", "password", ...}} sent to the engine in the
X-Registry-Auth header.

Which credentials go in the token:
  fully qualified reference → only the target registry's credential
  short name                → the whole store (the engine picks the
                              registry, the client cannot know it yet)
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Callable, Mapping

from hoist.oci.credentials import (
    Credential, CredentialStore, auth_config_key, resolve_auth_config,
)
from hoist.oci.errors import AuthEncodingError
from hoist.oci.reference import IndexInfo, Reference

logger = logging.getLogger(__name__)

# login(identity_key) -> Credential, raises LoginError
LoginFunc = Callable[[str], Credential]
RequestPrivilegeFunc = Callable[[], str]


def encode_auth(auths: Mapping[str, Credential]) -> str:
    """Serialize credentials as a base64 JSON token."""
    try:
        payload = {key: cred.to_dict() for key, cred in auths.items()}
        buf = json.dumps(payload, sort_keys=True).encode("utf-8")
    except (TypeError, ValueError, AttributeError, UnicodeEncodeError) as e:
        raise AuthEncodingError(f"Cannot encode auth config: {e}") from e
    return base64.urlsafe_b64encode(buf).decode("ascii")


def decode_auth(token: str) -> dict[str, dict[str, str]]:
    """Inverse of encode_auth (engine side, tests, debugging)."""
    return json.loads(base64.urlsafe_b64decode(token.encode("ascii")))


def encode_single(key: str, credential: Credential) -> str:
    return encode_auth({key: credential})


def encode_all(store: CredentialStore) -> str:
    return encode_auth(store.all())


def encoded_auth_for(
    ref: Reference,
    index: IndexInfo,
    store: CredentialStore,
) -> str:
    """Token for the first push attempt of ref."""
    if ref.fully_qualified:
        key = auth_config_key(index)
        logger.debug("Encoding single auth entry for %s", key)
        return encode_single(key, resolve_auth_config(store, index))
    logger.debug("Encoding all %d stored auth entries", len(store))
    return encode_all(store)


def privilege_func(
    store: CredentialStore,
    index: IndexInfo,
    cmd_name: str,
    single_auth: bool,
    login: LoginFunc,
    echo: Callable[[str], None],
) -> RequestPrivilegeFunc:
    """Build the callback that re-authenticates against index.

    The returned function prompts, runs login for the index key and
    returns a fresh token. LoginError propagates unchanged.
    """

    def request_privilege() -> str:
        key = auth_config_key(index)
        echo(f"\nPlease login prior to {cmd_name} ({key}):")
        credential = login(key)
        store.upsert(key, credential)
        if single_auth:
            return encode_single(key, credential)
        return encode_all(store)

    return request_privilege
