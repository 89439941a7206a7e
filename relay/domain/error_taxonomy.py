from __future__ import annotations

from typing import Literal

# Canonical failure vocabulary for delivery items.
FailureReason = Literal[
    "pull_failure",
    "send_failure",
    "send_giveup",
    "construction_fault",
    "postprocess_failure",
]

RetryClassification = Literal["recoverable", "terminal"]

CANONICAL_FAILURE_REASONS: tuple[FailureReason, ...] = (
    "pull_failure",
    "send_failure",
    "send_giveup",
    "construction_fault",
    "postprocess_failure",
)

# Only endpoint failures are retried, and only inside the item's own budget.
# A failed pull is left to the next scheduled firing.
RECOVERABLE_FAILURE_REASONS: frozenset[FailureReason] = frozenset({"send_failure"})


def is_canonical_failure_reason(reason: str) -> bool:
    return reason in CANONICAL_FAILURE_REASONS


def classify_failure(reason: FailureReason) -> RetryClassification:
    if reason in RECOVERABLE_FAILURE_REASONS:
        return "recoverable"
    return "terminal"
