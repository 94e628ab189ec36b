"""Batch driver: parse, partition, aggregate."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional, Union

from logspark import queries
from logspark.config import DriverConfig
from logspark.errors import EncodingError, InputError, ParseError, StateError
from logspark.partition import PartitionedStore, partition
from logspark.records import LogRecord, minute_bucket, parse

logger = logging.getLogger(__name__)


class RunState(Enum):
    """Lifecycle of one pipeline run.

    Attributes:
        IDLE: Created, nothing done yet.
        PARSING: Turning raw lines into records.
        PARTITIONING: Bucketing records by status code.
        AGGREGATING: Computing the metrics.
        DONE: Finished; a RunReport is available.
        FAILED: Stopped by an unrecoverable error.
    """

    IDLE = auto()
    PARSING = auto()
    PARTITIONING = auto()
    AGGREGATING = auto()
    DONE = auto()
    FAILED = auto()


_TRANSITIONS = {
    RunState.IDLE: {RunState.PARSING, RunState.FAILED},
    RunState.PARSING: {RunState.PARTITIONING, RunState.FAILED},
    RunState.PARTITIONING: {RunState.AGGREGATING, RunState.FAILED},
    RunState.AGGREGATING: {RunState.DONE, RunState.FAILED},
    RunState.DONE: set(),
    RunState.FAILED: set(),
}

ParseOutcome = tuple[int, Union[LogRecord, ParseError]]


def _check_encoding(line: str) -> None:
    # Undecodable input bytes survive reading as lone surrogates
    try:
        line.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise EncodingError(
            f"invalid UTF-8 at position {exc.start}", line=line.rstrip("\r\n")
        ) from None


@dataclass
class RunReport:
    """Everything one run produced."""

    total_requests: int
    requests_by_status: dict[int, int]
    top_urls: list[tuple[str, int]]
    top_user_agents: list[tuple[str, int]]
    failed_ips: list[tuple[str, int]]
    requests_over_time: list[tuple[str, int]]
    errors: list[tuple[int, ParseError]] = field(default_factory=list)
    lines_read: int = 0
    state: RunState = RunState.DONE

    @property
    def skipped(self) -> int:
        """Number of lines rejected by the parser."""
        return len(self.errors)


class LogPipeline:
    """
    Runs one batch of raw log lines through the pipeline.

    A LogPipeline is single-use: the state only moves forward, so a second
    run() raises StateError. Create a new instance per batch.

    Example:
        >>> report = LogPipeline().run(["1.1.1.1,2024-02-25 12:34:56,/home,200,UA1"])
        >>> report.total_requests
        1
    """

    def __init__(self, config: Optional[DriverConfig] = None):
        self.config = config or DriverConfig()
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    def _transition(self, new_state: RunState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise StateError(
                f"Illegal transition {self._state.name} -> {new_state.name}"
            )
        logger.debug("Run state %s -> %s", self._state.name, new_state.name)
        self._state = new_state

    def run_file(self, path: str) -> RunReport:
        """
        Read a file and run it as one batch.

        Raises:
            InputError: If the file cannot be opened or read. No stage has
                run and the state is FAILED.

        Bytes that are not valid UTF-8 only affect their own line, which
        is reported as an EncodingError.
        """
        if self._state != RunState.IDLE:
            raise StateError(f"Cannot start a run in state {self._state.name}")
        try:
            with open(path, encoding="utf-8", errors="surrogateescape", newline="") as f:
                lines = f.readlines()
        except OSError as exc:
            self._transition(RunState.FAILED)
            logger.error("Cannot read input %s: %s", path, exc)
            raise InputError(f"Cannot read input {path}: {exc}") from exc

        logger.info("Read %d lines from %s", len(lines), path)
        return self.run(lines)

    def run(self, lines: Iterable[str]) -> RunReport:
        """
        Parse, partition and aggregate a batch of raw lines.

        Malformed lines are logged, collected in RunReport.errors with
        their 1-based line number, and otherwise ignored.

        Args:
            lines: Raw input lines, with or without line terminators.

        Returns:
            RunReport with every metric and the skipped lines.
        """
        lines = list(lines)
        self._transition(RunState.PARSING)
        try:
            records, errors = self._parse_all(lines)

            self._transition(RunState.PARTITIONING)
            store = partition(records)
            logger.debug("Partitioned %d records into %d partitions", len(records), len(store))

            self._transition(RunState.AGGREGATING)
            report = self._aggregate(store)
        except Exception:
            self._transition(RunState.FAILED)
            raise

        report.errors = errors
        report.lines_read = len(lines)
        self._transition(RunState.DONE)
        report.state = self._state

        logger.info(
            "Processed %d lines: %d records, %d skipped",
            len(lines),
            report.total_requests,
            len(errors),
        )
        return report

    def _parse_line(self, number: int, line: str) -> ParseOutcome:
        try:
            _check_encoding(line)
            record = parse(line, delimiter=self.config.delimiter)
            # Records that cannot be bucketed by minute are rejected up front
            minute_bucket(record.timestamp)
        except ParseError as exc:
            if exc.line is None:
                exc.line = line.rstrip("\r\n")
            return number, exc
        return number, record

    def _parse_all(
        self, lines: list[str]
    ) -> tuple[list[LogRecord], list[tuple[int, ParseError]]]:
        numbered = list(enumerate(lines, start=1))

        if self.config.workers > 1 and len(numbered) > 1:
            outcomes = self._parse_parallel(numbered)
        else:
            outcomes = [self._parse_line(number, line) for number, line in numbered]

        records = []
        errors = []
        for number, outcome in outcomes:
            if isinstance(outcome, ParseError):
                logger.warning(
                    "Skipping line %d (%s): %s -- %r",
                    number,
                    outcome.kind,
                    outcome,
                    outcome.line,
                )
                errors.append((number, outcome))
            else:
                records.append(outcome)
        return records, errors

    def _parse_parallel(self, numbered: list[tuple[int, str]]) -> list[ParseOutcome]:
        logger.debug("Parsing %d lines with %d workers", len(numbered), self.config.workers)
        with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
            futures = [
                pool.submit(self._parse_line, number, line) for number, line in numbered
            ]
            outcomes = [future.result() for future in as_completed(futures)]
        # Completion order is arbitrary; restore input order before partitioning
        outcomes.sort(key=lambda outcome: outcome[0])
        return outcomes

    def _aggregate(self, store: PartitionedStore) -> RunReport:
        config = self.config
        return RunReport(
            total_requests=queries.total_requests(store),
            requests_by_status=queries.requests_by_status(store),
            top_urls=queries.top_urls(store, config.top_n),
            top_user_agents=queries.top_user_agents(store),
            failed_ips=queries.failed_ips(
                store,
                statuses=config.failed_statuses,
                min_count=config.failed_min_count,
            ),
            requests_over_time=queries.requests_over_time(store),
        )


def run_batch(lines: Iterable[str], config: Optional[DriverConfig] = None) -> RunReport:
    """Run one batch of lines through a fresh LogPipeline."""
    return LogPipeline(config).run(lines)
