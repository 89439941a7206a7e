from __future__ import annotations

from enum import StrEnum


# Canonical delivery item lifecycle states.
#
# Keep ALLOWED_TRANSITIONS and TERMINAL_STATES synchronized with this enum.
class DeliveryState(StrEnum):
    PENDING = "pending"
    PULLING = "pulling"
    SENDING = "sending"
    RETRY_WAITING = "retry_waiting"

    # Terminal states.
    SUCCEEDED = "succeeded"
    EMPTY = "empty"
    FAILED = "failed"


class DeliveryStatus(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"


TERMINAL_STATES: frozenset[DeliveryState] = frozenset(
    {DeliveryState.SUCCEEDED, DeliveryState.EMPTY, DeliveryState.FAILED}
)


ALLOWED_TRANSITIONS: dict[DeliveryState, set[DeliveryState]] = {
    DeliveryState.PENDING: {DeliveryState.PULLING},
    DeliveryState.PULLING: {DeliveryState.SENDING, DeliveryState.EMPTY, DeliveryState.FAILED},
    DeliveryState.SENDING: {DeliveryState.SUCCEEDED, DeliveryState.RETRY_WAITING, DeliveryState.FAILED},
    DeliveryState.RETRY_WAITING: {DeliveryState.SENDING},
    DeliveryState.SUCCEEDED: set(),
    DeliveryState.EMPTY: set(),
    DeliveryState.FAILED: set(),
}


STATE_TO_STATUS: dict[DeliveryState, DeliveryStatus] = {
    DeliveryState.PENDING: DeliveryStatus.NOT_STARTED,
    DeliveryState.PULLING: DeliveryStatus.RUNNING,
    DeliveryState.SENDING: DeliveryStatus.RUNNING,
    DeliveryState.RETRY_WAITING: DeliveryStatus.RUNNING,
    DeliveryState.SUCCEEDED: DeliveryStatus.SUCCESS,
    # Nothing to deliver is a completed firing, not a failed one.
    DeliveryState.EMPTY: DeliveryStatus.SUCCESS,
    DeliveryState.FAILED: DeliveryStatus.FAILURE,
}


def is_terminal(state: DeliveryState) -> bool:
    return state in TERMINAL_STATES
