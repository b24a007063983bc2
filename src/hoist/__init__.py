"""
hoist — push images to container registries, re-authenticating when
the registry refuses.
"""

from hoist.oci import (
    Credential,
    CredentialStore,
    Pusher,
    PushResult,
    PushState,
    HoistError,
)

__version__ = "0.1.0"

__all__ = [
    "Credential",
    "CredentialStore",
    "Pusher",
    "PushResult",
    "PushState",
    "HoistError",
]
