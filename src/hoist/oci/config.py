"""
hoist.oci.config — Global config management.

~/.hoist/config.yaml:

    auths:
      https://index.docker.io/v1/:
        auth: dXNlcjpzZWNyZXQ=        # base64("user:secret")
        email: me@example.com
      registry.example.com:
        auth: Ym90OnRva2Vu

    default_registry: registry.example.com   # optional, see below
    engine_url: http://localhost:2375

Default registry lookup order (used for short names and for
login/logout without a server argument):
  1. HOIST_DEFAULT_REGISTRY env var
  2. default_registry in config.yaml
  3. the engine's /info IndexServerName (login/logout only, caller supplied)
  4. docker.io
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from hoist.oci.credentials import Credential, CredentialStore
from hoist.oci.errors import ConfigError, HoistError
from hoist.oci.reference import INDEX_NAME

logger = logging.getLogger(__name__)

HOIST_HOME = Path.home() / ".hoist"
DEFAULT_ENGINE_URL = "http://localhost:2375"


@dataclass
class HoistConfig:
    """Global hoist config."""
    auths: CredentialStore = field(default_factory=CredentialStore)
    default_registry: str | None = None
    engine_url: str = DEFAULT_ENGINE_URL

    def resolved_engine_url(self) -> str:
        return os.environ.get("HOIST_ENGINE_URL") or self.engine_url

    def resolved_default_registry(
        self,
        engine_lookup: Callable[[], str] | None = None,
    ) -> str:
        """Default registry name; engine_lookup is only called when
        neither the environment nor the config names one."""
        env = os.environ.get("HOIST_DEFAULT_REGISTRY")
        if env:
            return env
        if self.default_registry:
            return self.default_registry
        if engine_lookup is not None:
            try:
                return engine_lookup()
            except HoistError as e:
                logger.warning(
                    "Failed to get default registry endpoint from engine "
                    "(%s). Using system default: %s", e, INDEX_NAME,
                )
        return INDEX_NAME


def config_path() -> Path:
    return HOIST_HOME / "config.yaml"


def load_config() -> HoistConfig:
    """Read ~/.hoist/config.yaml."""
    cp = config_path()
    if not cp.exists():
        return HoistConfig()

    try:
        with open(cp) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse {cp}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping: {cp}")

    cfg = HoistConfig()
    cfg.default_registry = data.get("default_registry")
    cfg.engine_url = data.get("engine_url", DEFAULT_ENGINE_URL)

    for key, entry in (data.get("auths") or {}).items():
        if isinstance(entry, dict):
            cfg.auths.upsert(key, _decode_entry(key, entry))

    return cfg


def save_config(cfg: HoistConfig) -> None:
    """Write ~/.hoist/config.yaml (mode 0600, it holds secrets)."""
    HOIST_HOME.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {}

    auths = cfg.auths.all()
    if auths:
        data["auths"] = {
            key: _encode_entry(cred) for key, cred in auths.items()
        }

    if cfg.default_registry:
        data["default_registry"] = cfg.default_registry

    if cfg.engine_url != DEFAULT_ENGINE_URL:
        data["engine_url"] = cfg.engine_url

    cp = config_path()
    try:
        with open(cp, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        cp.chmod(0o600)
    except OSError as e:
        raise ConfigError(f"Failed to save config {cp}: {e}") from e


def _encode_entry(cred: Credential) -> dict[str, str]:
    raw = f"{cred.username}:{cred.secret}".encode("utf-8")
    entry = {"auth": base64.b64encode(raw).decode("ascii")}
    if cred.email:
        entry["email"] = cred.email
    return entry


def _decode_entry(key: str, entry: dict[str, Any]) -> Credential:
    try:
        raw = base64.b64decode(entry.get("auth", ""), validate=True)
        username, sep, secret = raw.decode("utf-8").partition(":")
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ConfigError(f"Invalid auth entry for {key}: {e}") from e
    if raw and not sep:
        raise ConfigError(f"Invalid auth entry for {key}: missing ':'")
    return Credential(
        username=username,
        secret=secret,
        email=entry.get("email", ""),
        server_address=key,
    )
