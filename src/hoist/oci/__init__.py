"""hoist.oci — registry credentials, auth tokens and push orchestration."""

from hoist.oci.errors import (
    HoistError, ReferenceParseError, InvalidReferenceError,
    RegistryResolveError, AuthEncodingError, TransportError,
    AuthorizationError, LoginError, ConfigError, PushStateError,
)
from hoist.oci.reference import (
    Reference, IndexInfo, parse_reference, resolve_registry_identity,
    index_info_for, INDEX_NAME, INDEX_SERVER,
)
from hoist.oci.credentials import (
    Credential, CredentialStore, auth_config_key, resolve_auth_config,
)
from hoist.oci.auth import (
    encode_auth, decode_auth, encode_single, encode_all,
    encoded_auth_for, privilege_func,
)
from hoist.oci.config import (
    HoistConfig, load_config, save_config, HOIST_HOME,
)
from hoist.oci.client import (
    ProgressMessage, PushStream, Transport, EngineTransport,
    transport_from_config,
)
from hoist.oci.push import (
    PushState, PushEvent, PushResult, Pusher, transition, confirm_push,
)

__all__ = [
    "HoistError", "ReferenceParseError", "InvalidReferenceError",
    "RegistryResolveError", "AuthEncodingError", "TransportError",
    "AuthorizationError", "LoginError", "ConfigError", "PushStateError",
    "Reference", "IndexInfo", "parse_reference", "resolve_registry_identity",
    "index_info_for",
    "INDEX_NAME", "INDEX_SERVER",
    "Credential", "CredentialStore", "auth_config_key", "resolve_auth_config",
    "encode_auth", "decode_auth", "encode_single", "encode_all",
    "encoded_auth_for", "privilege_func",
    "HoistConfig", "load_config", "save_config", "HOIST_HOME",
    "ProgressMessage", "PushStream", "Transport", "EngineTransport",
    "transport_from_config",
    "PushState", "PushEvent", "PushResult", "Pusher", "transition",
    "confirm_push",
]
