from __future__ import annotations

import base64
from datetime import date, datetime, time
from decimal import Decimal
import json
from uuid import UUID

from relay.config import EndpointSettings
from relay.domain.models import DeliveryRequest, Row


def build_delivery_request(settings: EndpointSettings, rows: list[Row]) -> DeliveryRequest:
    """Build the outbound request for one pulled row-set.

    Raises TypeError/ValueError when the rows or the auth settings cannot be
    encoded; callers treat that as a construction fault, not a send failure.
    """
    headers = {"Content-Type": "application/json"}
    if settings.basic_auth is not None:
        credentials = f"{settings.basic_auth.user}:{settings.basic_auth.password}".encode("utf-8")
        headers["Authorization"] = f"Basic {base64.b64encode(credentials).decode('ascii')}"

    body = json.dumps(rows, default=_json_default, ensure_ascii=False).encode("utf-8")
    return DeliveryRequest(
        method=settings.method,
        url=settings.url,
        headers=headers,
        body=body,
    )


def _json_default(value: object) -> object:
    # asyncpg hands back native types for timestamp/numeric/uuid columns.
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    raise TypeError(f"row value of type {type(value).__name__} is not JSON serializable")
