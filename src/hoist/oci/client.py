"""
hoist.oci.client — Engine API transport.

The push itself is performed by a Docker-compatible engine:

    POST {engine}/images/{name}/push?tag=TAG&force=1
    X-Registry-Auth: <token>

The engine answers with a stream of JSON lines:

    {"status": "Preparing", "id": "5f70bf18a086"}
    {"status": "Pushing", "id": "5f70bf18a086", "progress": "[==> ] 1MB/4MB"}
    {"status": "v1: digest: sha256:... size: 528"}
    {"error": "denied: requested access to the resource is denied"}

401/403 on the request itself is reported as AuthorizationError, every
other failure as TransportError. An "error" line inside the stream
raises TransportError while iterating.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Protocol
from urllib.parse import quote

import requests

from hoist.oci.errors import AuthorizationError, TransportError
from hoist.oci.reference import Reference

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class ProgressMessage:
    """One JSON progress line from the engine."""
    status: str = ""
    id: str = ""
    progress: str = ""
    error: str = ""
    aux: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProgressMessage:
        error = data.get("error") or ""
        detail = data.get("errorDetail")
        if not error and isinstance(detail, dict):
            error = detail.get("message", "")
        return cls(
            status=data.get("status", ""),
            id=data.get("id", ""),
            progress=data.get("progress", ""),
            error=error,
            aux=data.get("aux"),
        )

    def __str__(self) -> str:
        parts = []
        if self.id:
            parts.append(f"{self.id}:")
        if self.status:
            parts.append(self.status)
        if self.progress:
            parts.append(self.progress)
        return " ".join(parts)


class PushStream:
    """Lazily decoded progress messages of one push.

    Single pass: once exhausted, failed or closed it yields nothing more.
    Closing releases the underlying response; use it as a context manager.
    """

    def __init__(
        self,
        lines: Iterable[Any],
        close: Callable[[], None] | None = None,
    ):
        self._lines = iter(lines)
        self._close = close
        self._closed = False

    def __iter__(self) -> Iterator[ProgressMessage]:
        return self

    def __next__(self) -> ProgressMessage:
        if self._closed:
            raise StopIteration
        try:
            message = self._next_message()
        except BaseException:
            self.close()
            raise
        if message.error:
            self.close()
            raise TransportError(message.error)
        return message

    def _next_message(self) -> ProgressMessage:
        while True:
            try:
                raw = next(self._lines)
            except requests.RequestException as e:
                raise TransportError(f"Progress stream interrupted: {e}") from e
            if isinstance(raw, ProgressMessage):
                return raw
            if isinstance(raw, dict):
                return ProgressMessage.from_dict(raw)
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            raw = raw.strip()
            if not raw:
                continue
            try:
                return ProgressMessage.from_dict(json.loads(raw))
            except (json.JSONDecodeError, AttributeError) as e:
                raise TransportError(f"Malformed progress message: {raw!r}") from e

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._close is not None:
            self._close()

    def __enter__(self) -> PushStream:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Transport(Protocol):
    """Performs the remote push for one attempt."""

    def push(
        self,
        token: str,
        ref: Reference,
        tag: str | None,
        force: bool,
    ) -> PushStream:
        ...


class EngineTransport:
    """Transport backed by a Docker-compatible engine HTTP API."""

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def push(
        self,
        token: str,
        ref: Reference,
        tag: str | None,
        force: bool,
    ) -> PushStream:
        url = f"{self.base_url}/images/{quote(ref.name, safe='/:')}/push"
        params = {"force": "1" if force else "0"}
        if tag:
            params["tag"] = tag
        logger.debug("POST %s params=%s", url, params)

        try:
            response = self.session.post(
                url,
                params=params,
                headers={"X-Registry-Auth": token},
                stream=True,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Push of {ref} failed: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            status = response.status_code
            response.close()
            if status in (401, 403):
                raise AuthorizationError(message, status_code=status)
            raise TransportError(message, status_code=status)

        return PushStream(response.iter_lines(), close=response.close)

    def index_server_name(self) -> str:
        """Default registry the engine resolves short names against."""
        url = f"{self.base_url}/info"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            name = response.json().get("IndexServerName", "")
        except (requests.RequestException, ValueError) as e:
            raise TransportError(f"Engine info request failed: {e}") from e
        if not name:
            raise TransportError("Engine did not report an index server")
        return name


def _error_message(response: requests.Response) -> str:
    """Engine errors come as {"message": ...}; fall back to the body."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        text = data["message"]
    else:
        text = response.text.strip() or response.reason or "unknown error"
    return f"Error response from engine (status {response.status_code}): {text}"


def transport_from_config(cfg) -> EngineTransport:
    """EngineTransport for the configured engine URL."""
    return EngineTransport(cfg.resolved_engine_url())
