from __future__ import annotations

from typing import TYPE_CHECKING

from relay.domain.error_taxonomy import FailureReason, is_canonical_failure_reason

if TYPE_CHECKING:
    from relay.delivery.item import DeliveryItem


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class DomainDependencyError(DomainError):
    pass


class DataSourceError(DomainDependencyError):
    pass


class EndpointError(DomainDependencyError):
    pass


class EndpointTransportError(EndpointError):
    pass


class EndpointHTTPError(EndpointError):
    def __init__(self, status_code: int, detail: str = "") -> None:
        super().__init__(f"HTTP {status_code}" + (f": {detail}" if detail else ""))
        self.status_code = status_code
        self.detail = detail


class DeliveryFailure(DomainError):
    """Terminal (or surfaced) failure of one delivery item."""

    def __init__(self, *, reason: FailureReason, error: BaseException, item: DeliveryItem) -> None:
        if not is_canonical_failure_reason(reason):
            raise DomainInvariantError(f"unknown delivery failure reason: {reason}")
        super().__init__(f"{reason}: {error}")
        self.reason = reason
        self.error = error
        self.item = item
