from __future__ import annotations

from pathlib import Path

import pytest

from relay.main import run


@pytest.mark.unit
def test_cli_returns_non_zero_for_invalid_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_file = tmp_path / "relay.yaml"
    config_file.write_text("endpoint:\n  url: https://receiver.test/ingest\njobs: {}\n", encoding="utf-8")

    exit_code = run(["--config", str(config_file), "--dry-run-startup"])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "ERROR:" in captured.err
    assert "at least one job" in captured.err


@pytest.mark.unit
def test_cli_returns_non_zero_for_missing_config(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run(["--config", str(tmp_path / "absent.yaml"), "--dry-run-startup"])

    assert exit_code == 2
    assert "cannot read relay config" in capsys.readouterr().err


@pytest.mark.unit
def test_cli_dry_run_succeeds_for_valid_config(tmp_path: Path) -> None:
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

    assert run(["--config", str(config_file), "--dry-run-startup"]) == 0
