from __future__ import annotations

from pathlib import Path
import subprocess
import sys

import pytest


@pytest.mark.integration
def test_relay_starts_via_dry_run(tmp_path: Path) -> None:
    config_file = tmp_path / "relay.yaml"
    config_file.write_text(
        "endpoint:\n"
        "  url: https://receiver.test/ingest\n"
        "jobs:\n"
        "  orders:\n"
        "    sql: SELECT 1\n"
        "    interval_ms: 1000\n",
        encoding="utf-8",
    )

    proc = subprocess.run(
        [sys.executable, "-m", "relay.main", "--config", str(config_file), "--dry-run-startup"],
        capture_output=True,
        text=True,
        check=False,
    )

    assert proc.returncode == 0, proc.stderr
    assert "dry-run startup complete" in proc.stdout


@pytest.mark.integration
def test_example_config_is_valid() -> None:
    proc = subprocess.run(
        [sys.executable, "-m", "relay.main", "--config", "relay.example.yaml", "--dry-run-startup"],
        capture_output=True,
        text=True,
        check=False,
    )

    assert proc.returncode == 0, proc.stderr
