"""
hoist.oci.push — Push orchestration.

One push runs this state machine:

    PENDING ──accepted──▶ SUCCEEDED
       │ ──error───────▶ FAILED
       │ ──forbidden───▶ FAILED          (caller passed force)
       └─forbidden─▶ FORBIDDEN ──declined──▶ DECLINED
                         └─confirmed─▶ CONFIRMED ──error──▶ FAILED
                                          └─escalated─▶ ESCALATED
                                                 └─retry─▶ RETRIED
                                    RETRIED ──accepted──▶ SUCCEEDED
                                    RETRIED ──error/forbidden──▶ FAILED

The retry is reachable only through the confirmation step, so a push
is attempted at most twice.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable

import click

from hoist.oci.auth import LoginFunc, encoded_auth_for, privilege_func
from hoist.oci.client import PushStream, Transport
from hoist.oci.credentials import CredentialStore
from hoist.oci.errors import (
    AuthorizationError, HoistError, InvalidReferenceError, PushStateError,
    TransportError,
)
from hoist.oci.reference import (
    INDEX_NAME, Reference, parse_reference, resolve_registry_identity,
)

logger = logging.getLogger(__name__)

CONFIRM_PROMPT = "Do you really want to push to public registry? [y/n]: "


class PushState(enum.Enum):
    PENDING = "pending"
    FORBIDDEN = "forbidden"
    CONFIRMED = "confirmed"
    ESCALATED = "escalated"
    RETRIED = "retried"
    SUCCEEDED = "succeeded"
    DECLINED = "declined"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (PushState.SUCCEEDED, PushState.DECLINED, PushState.FAILED)


class PushEvent(enum.Enum):
    ACCEPTED = "accepted"
    FORBIDDEN = "forbidden"
    ERROR = "error"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    ESCALATED = "escalated"
    RETRY = "retry"


_TRANSITIONS: dict[tuple[PushState, PushEvent], PushState] = {
    (PushState.PENDING, PushEvent.ACCEPTED): PushState.SUCCEEDED,
    (PushState.PENDING, PushEvent.FORBIDDEN): PushState.FORBIDDEN,
    (PushState.PENDING, PushEvent.ERROR): PushState.FAILED,
    (PushState.FORBIDDEN, PushEvent.DECLINED): PushState.DECLINED,
    (PushState.FORBIDDEN, PushEvent.CONFIRMED): PushState.CONFIRMED,
    (PushState.CONFIRMED, PushEvent.ESCALATED): PushState.ESCALATED,
    (PushState.CONFIRMED, PushEvent.ERROR): PushState.FAILED,
    (PushState.ESCALATED, PushEvent.RETRY): PushState.RETRIED,
    (PushState.RETRIED, PushEvent.ACCEPTED): PushState.SUCCEEDED,
    (PushState.RETRIED, PushEvent.FORBIDDEN): PushState.FAILED,
    (PushState.RETRIED, PushEvent.ERROR): PushState.FAILED,
}


def transition(state: PushState, event: PushEvent, forced: bool = False) -> PushState:
    """Next state of a push.

    forced: the caller asked for force up front; a forbidden first
    attempt is then a hard failure instead of a confirmation prompt.
    """
    if state is PushState.PENDING and event is PushEvent.FORBIDDEN and forced:
        return PushState.FAILED
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise PushStateError(
            f"Illegal push transition: {state.value} --{event.value}-->"
        ) from None


def confirm_push(
    read_answer: Callable[[str], str],
    echo: Callable[[str], None],
) -> bool:
    """Ask until the answer is y or n (case-insensitive, trimmed)."""
    answer = ""
    echo("")
    while answer not in ("y", "n"):
        answer = read_answer(CONFIRM_PROMPT).strip().lower()
    if answer == "n":
        echo("Nothing pushed.")
    return answer == "y"


@dataclass
class PushResult:
    """Outcome of Pusher.push.

    stream is None unless state is SUCCEEDED; the caller owns it and must
    close it (use it in a with block).
    """
    reference: Reference
    state: PushState
    stream: PushStream | None = None
    attempts: int = 0

    @property
    def declined(self) -> bool:
        return self.state is PushState.DECLINED


class Pusher:
    """Drives one push: initial attempt, confirmation, escalation, retry.

    Args:
        transport: performs the remote push
        store: credentials the tokens are built from
        confirm: asks the user whether to push anyway after a refusal
        login: obtains a fresh credential for an identity key
        echo: user-facing output
        default_index: registry short names resolve to
    """

    def __init__(
        self,
        transport: Transport,
        store: CredentialStore,
        confirm: Callable[[], bool],
        login: LoginFunc,
        echo: Callable[[str], None] = click.echo,
        default_index: str = INDEX_NAME,
        cmd_name: str = "push",
    ):
        self.transport = transport
        self.store = store
        self.confirm = confirm
        self.login = login
        self.echo = echo
        self.default_index = default_index
        self.cmd_name = cmd_name

    def push(self, name: str, force: bool = False) -> PushResult:
        """Push NAME[:TAG].

        Raises:
            InvalidReferenceError: name carries a digest
            ReferenceParseError, RegistryResolveError, AuthEncodingError:
                before any network call
            TransportError, AuthorizationError, LoginError: from the
                attempt or the escalation, unchanged
        """
        ref = parse_reference(name)
        if ref.digest:
            raise InvalidReferenceError("cannot push a digest reference")

        index = resolve_registry_identity(ref, self.default_index)
        request_privilege = privilege_func(
            self.store, index, self.cmd_name,
            ref.fully_qualified, self.login, self.echo,
        )
        token = encoded_auth_for(ref, index, self.store)

        state = PushState.PENDING
        attempts = 0
        stream: PushStream | None = None
        error: HoistError | None = None

        while True:
            if state in (PushState.PENDING, PushState.RETRIED):
                attempts += 1
                logger.debug("Push attempt %d of %s (force=%s)", attempts, ref, force)
                event, stream, error = self._attempt(token, ref, force)
            elif state is PushState.FORBIDDEN:
                event = PushEvent.CONFIRMED if self.confirm() else PushEvent.DECLINED
            elif state is PushState.CONFIRMED:
                force = True
                try:
                    token = request_privilege()
                    event = PushEvent.ESCALATED
                except HoistError as e:
                    event, error = PushEvent.ERROR, e
            else:
                event = PushEvent.RETRY

            new_state = transition(state, event, forced=force)
            logger.debug("Push %s: %s --%s--> %s",
                         ref, state.value, event.value, new_state.value)
            state = new_state

            if state is PushState.FAILED:
                if error is None:
                    raise PushStateError(f"Push of {ref} failed without an error")
                raise error
            if state.terminal:
                return PushResult(ref, state, stream, attempts)

    def _attempt(
        self,
        token: str,
        ref: Reference,
        force: bool,
    ) -> tuple[PushEvent, PushStream | None, HoistError | None]:
        try:
            return PushEvent.ACCEPTED, self.transport.push(token, ref, ref.tag, force), None
        except AuthorizationError as e:
            logger.debug("Push of %s refused: %s", ref, e)
            return PushEvent.FORBIDDEN, None, e
        except TransportError as e:
            return PushEvent.ERROR, None, e
