from __future__ import annotations

import argparse
import logging
import os
import sys
import uuid

import uvicorn

from relay.api.http_app import build_app
from relay.config import config_path_from_env, load_relay_config
from relay.domain.errors import DomainValidationError
from relay.logging_setup import configure_logging
from relay.services.bootstrap import build_runtime_container


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Periodic row relay to an HTTP endpoint")
    parser.add_argument("--config", default=str(config_path_from_env()), help="Relay YAML config path")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=8100)
    parser.add_argument(
        "--report-dir",
        default=os.getenv("RELAY_REPORT_DIR", "."),
        help="Directory for the job report written at shutdown",
    )
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Validate config and exit",
    )
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    try:
        config = load_relay_config(file_path=args.config)
    except DomainValidationError as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2

    configure_logging()
    run_id = str(uuid.uuid4())
    logger = logging.getLogger("relay")

    logger.info(
        "runtime initialized",
        extra={"run_id": run_id, "job": ",".join(job.name for job in config.jobs)},
    )

    if args.dry_run_startup:
        logger.info("dry-run startup complete", extra={"run_id": run_id})
        return 0

    container = build_runtime_container(config)
    app = build_app(container, run_id=run_id, report_dir=args.report_dir)
    uvicorn.run(app, host=args.host, port=args.port, log_level="warning")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
