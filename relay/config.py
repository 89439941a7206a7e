from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

import yaml

from relay.domain.errors import DomainValidationError
from relay.domain.models import PostprocessPolicy

SUPPORTED_METHODS = ("POST", "PUT", "PATCH")
DEFAULT_CONFIG_PATH = "relay.yaml"


@dataclass(frozen=True)
class RetrySettings:
    limit: int = 3
    interval_ms: int = 5000

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000


@dataclass(frozen=True)
class BasicAuth:
    user: str
    password: str


@dataclass(frozen=True)
class EndpointSettings:
    url: str
    method: str = "POST"
    timeout_seconds: float = 20.0
    basic_auth: BasicAuth | None = None
    retry: RetrySettings = RetrySettings()


@dataclass(frozen=True)
class JobConfig:
    name: str
    pull_query: str
    interval_ms: int
    postprocess_query: str | None = None


@dataclass(frozen=True)
class RelayConfig:
    endpoint: EndpointSettings
    jobs: tuple[JobConfig, ...]
    database_dsn: str | None = None
    postprocess_policy: PostprocessPolicy = PostprocessPolicy.FIRE_AND_FORGET


def config_path_from_env() -> Path:
    return Path(os.getenv("RELAY_CONFIG", DEFAULT_CONFIG_PATH))


def load_relay_config(*, file_path: str | Path) -> RelayConfig:
    path = Path(file_path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise DomainValidationError(f"cannot read relay config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise DomainValidationError(f"relay config {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise DomainValidationError("relay config must be a YAML object")
    config = parse_relay_config(data, base_dir=path.parent)

    # Keep secrets out of committed config files.
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        config = RelayConfig(
            endpoint=config.endpoint,
            jobs=config.jobs,
            database_dsn=database_url,
            postprocess_policy=config.postprocess_policy,
        )
    return config


def parse_relay_config(data: dict[str, object], *, base_dir: Path | None = None) -> RelayConfig:
    base = base_dir or Path(".")

    database_dsn: str | None = None
    database_raw = data.get("database")
    if database_raw is not None:
        if not isinstance(database_raw, dict):
            raise DomainValidationError("database must be object")
        database_dsn = _optional_str(database_raw, "dsn")

    endpoint = _parse_endpoint(_required_obj(data, "endpoint"))

    policy_raw = data.get("postprocess_policy", PostprocessPolicy.FIRE_AND_FORGET.value)
    try:
        policy = PostprocessPolicy(policy_raw)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in PostprocessPolicy)
        raise DomainValidationError(f"postprocess_policy must be one of: {allowed}") from exc

    jobs_raw = _required_obj(data, "jobs")
    if not jobs_raw:
        raise DomainValidationError("jobs must contain at least one job")
    jobs = tuple(_parse_job(name, job_raw, base=base) for name, job_raw in jobs_raw.items())

    return RelayConfig(
        endpoint=endpoint,
        jobs=jobs,
        database_dsn=database_dsn,
        postprocess_policy=policy,
    )


def _parse_endpoint(raw: dict[str, object]) -> EndpointSettings:
    url = _required_str(raw, "url")
    if not url.startswith(("http://", "https://")):
        raise DomainValidationError("endpoint.url must be an http(s) URL")

    method = str(raw.get("method", "POST")).upper()
    if method not in SUPPORTED_METHODS:
        raise DomainValidationError(f"endpoint.method must be one of: {', '.join(SUPPORTED_METHODS)}")

    timeout_seconds = _optional_number(raw, "timeout_seconds")

    basic_auth: BasicAuth | None = None
    auth_raw = raw.get("auth")
    if auth_raw is not None:
        if not isinstance(auth_raw, dict):
            raise DomainValidationError("endpoint.auth must be object")
        basic_raw = auth_raw.get("basic")
        if basic_raw is not None:
            if not isinstance(basic_raw, dict):
                raise DomainValidationError("endpoint.auth.basic must be object")
            basic_auth = BasicAuth(
                user=_required_str(basic_raw, "user"),
                password=_required_str(basic_raw, "password"),
            )

    retry = RetrySettings()
    retry_raw = raw.get("retry")
    if retry_raw is not None:
        if not isinstance(retry_raw, dict):
            raise DomainValidationError("endpoint.retry must be object")
        limit = _optional_int(retry_raw, "limit")
        interval_ms = _optional_int(retry_raw, "interval_ms")
        retry = RetrySettings(
            limit=retry.limit if limit is None else limit,
            interval_ms=retry.interval_ms if interval_ms is None else interval_ms,
        )
        if retry.limit < 0:
            raise DomainValidationError("endpoint.retry.limit must be >= 0")
        if retry.interval_ms <= 0:
            raise DomainValidationError("endpoint.retry.interval_ms must be > 0")

    return EndpointSettings(
        url=url,
        method=method,
        timeout_seconds=20.0 if timeout_seconds is None else timeout_seconds,
        basic_auth=basic_auth,
        retry=retry,
    )


def _parse_job(name: object, raw: object, *, base: Path) -> JobConfig:
    if not isinstance(name, str) or not name:
        raise DomainValidationError("job names must be non-empty strings")
    if not isinstance(raw, dict):
        raise DomainValidationError(f"jobs.{name} must be object")

    pull_query = _inline_or_file(raw, inline_key="sql", file_key="file", base=base, job=name)
    if pull_query is None:
        raise DomainValidationError(f"jobs.{name} requires either 'sql' or 'file'")
    postprocess_query = _inline_or_file(
        raw,
        inline_key="postprocess_sql",
        file_key="postprocess_file",
        base=base,
        job=name,
    )

    interval_ms = _optional_int(raw, "interval_ms")
    if interval_ms is None or interval_ms <= 0:
        raise DomainValidationError(f"jobs.{name}.interval_ms is required and must be > 0")

    return JobConfig(
        name=name,
        pull_query=pull_query,
        interval_ms=interval_ms,
        postprocess_query=postprocess_query,
    )


def _inline_or_file(
    raw: dict[str, object],
    *,
    inline_key: str,
    file_key: str,
    base: Path,
    job: str,
) -> str | None:
    inline = _optional_str(raw, inline_key)
    if inline is not None:
        return inline.strip()
    file_name = _optional_str(raw, file_key)
    if file_name is None:
        return None
    sql_path = base / file_name
    try:
        return sql_path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise DomainValidationError(f"jobs.{job}.{file_key}: cannot read {sql_path}") from exc


def _required_str(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise DomainValidationError(f"{key} is required and must be non-empty string")
    return value


def _optional_str(data: dict[str, object], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value:
        raise DomainValidationError(f"{key} must be non-empty string or null")
    return value


def _optional_int(data: dict[str, object], key: str) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise DomainValidationError(f"{key} must be integer or null")
    return value


def _optional_number(data: dict[str, object], key: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DomainValidationError(f"{key} must be number or null")
    return float(value)


def _required_obj(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise DomainValidationError(f"{key} is required and must be object")
    return value
