"""
hoist.oci.errors — Error types.

Everything raised by hoist derives from HoistError so the CLI can report
it with a single handler. AuthorizationError is the only kind the push
orchestrator recovers from.
"""

from __future__ import annotations


class HoistError(Exception):
    pass


class ReferenceParseError(HoistError):
    """The name is not a valid NAME[:TAG] or NAME@DIGEST reference."""
    pass


class InvalidReferenceError(HoistError):
    """The reference is valid but cannot be used for this operation."""
    pass


class RegistryResolveError(HoistError):
    """The registry endpoint of a reference cannot be determined."""
    pass


class AuthEncodingError(HoistError):
    pass


class TransportError(HoistError):
    """Engine or registry failure unrelated to authorization."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthorizationError(TransportError):
    """The remote refused the push (401/403)."""
    pass


class LoginError(HoistError):
    pass


class ConfigError(HoistError):
    pass


class PushStateError(HoistError):
    """Illegal push state transition."""
    pass
