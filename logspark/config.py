"""Run configuration and environment overrides."""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from logspark.queries import DEFAULT_FAILED_MIN_COUNT, DEFAULT_FAILED_STATUSES

ENV_PREFIX = "LOGSPARK_"


def parse_statuses(value: str) -> frozenset[int]:
    """
    Parse a comma-separated list of status codes.

    Raises:
        ValueError: If an entry is not an integer or the list is empty.
    """
    parts = [p.strip() for p in value.split(",") if p.strip()]
    if not parts:
        raise ValueError("status list must not be empty")
    try:
        return frozenset(int(p) for p in parts)
    except ValueError:
        raise ValueError(f"Invalid status list: {value!r}") from None


def _positive_int(name: str, value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise ValueError(f"{name} must be >= 1, got {number}")
    return number


@dataclass(frozen=True)
class DriverConfig:
    """
    Settings for one pipeline run.

    Attributes:
        delimiter: Field delimiter of the input lines.
        workers: Parser threads. 1 parses on the calling thread.
        top_n: Number of rows returned by top_urls.
        failed_statuses: Status codes counted by failed_ips.
        failed_min_count: failed_ips keeps IPs with a count above this.
    """

    delimiter: str = ","
    workers: int = 1
    top_n: int = 10
    failed_statuses: frozenset[int] = field(default=DEFAULT_FAILED_STATUSES)
    failed_min_count: int = DEFAULT_FAILED_MIN_COUNT

    def __post_init__(self):
        if not self.delimiter:
            raise ValueError("delimiter must be a non-empty string")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
        if self.top_n < 1:
            raise ValueError("top_n must be >= 1")
        if self.failed_min_count < 0:
            raise ValueError("failed_min_count must be >= 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DriverConfig":
        """
        Build a config from LOGSPARK_* environment variables.

        Recognized variables: LOGSPARK_DELIMITER, LOGSPARK_WORKERS,
        LOGSPARK_TOP_N, LOGSPARK_FAILED_STATUSES (comma-separated) and
        LOGSPARK_FAILED_MIN_COUNT. Unset variables keep their defaults.

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        overrides: dict = {}

        delimiter = env.get(ENV_PREFIX + "DELIMITER")
        if delimiter:
            overrides["delimiter"] = delimiter
        workers = env.get(ENV_PREFIX + "WORKERS")
        if workers:
            overrides["workers"] = _positive_int("LOGSPARK_WORKERS", workers)
        top_n = env.get(ENV_PREFIX + "TOP_N")
        if top_n:
            overrides["top_n"] = _positive_int("LOGSPARK_TOP_N", top_n)
        statuses = env.get(ENV_PREFIX + "FAILED_STATUSES")
        if statuses:
            overrides["failed_statuses"] = parse_statuses(statuses)
        min_count = env.get(ENV_PREFIX + "FAILED_MIN_COUNT")
        if min_count:
            try:
                overrides["failed_min_count"] = int(min_count)
            except ValueError:
                raise ValueError(
                    f"LOGSPARK_FAILED_MIN_COUNT must be an integer, got {min_count!r}"
                ) from None

        return cls(**overrides)

    def with_overrides(self, **kwargs) -> "DriverConfig":
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})
