from __future__ import annotations

import importlib

ulid_module = importlib.import_module("ulid")


def new_delivery_id() -> str:
    return f"dlv_{ulid_module.new().str}"
