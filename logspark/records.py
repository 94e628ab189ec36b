"""Typed log records and the line parser that produces them."""

import re
from dataclasses import astuple, dataclass
from functools import lru_cache

from logspark.errors import FieldCountError, InvalidStatusError, ShortTimestampError
from logspark.formats import FormatHandler, get_format_handler

# Column order of the raw input format
FIELDS = ("ip", "timestamp", "url", "status", "user_agent")

MIN_STATUS = 100
MAX_STATUS = 599

# "YYYY-MM-DD HH:MM"
MINUTE_BUCKET_LENGTH = 16

_STATUS_RE = re.compile(r"[0-9]{3}")


@dataclass(frozen=True)
class LogRecord:
    """One parsed access-log line.

    The timestamp is kept exactly as it appeared in the input; it is only
    ever sliced, never parsed as a date.
    """

    ip: str
    timestamp: str
    url: str
    status: int
    user_agent: str

    @property
    def minute_bucket(self) -> str:
        """Timestamp truncated to minute granularity."""
        return minute_bucket(self.timestamp)

    def get(self, column: str):
        """
        Return the value of a named column.

        Besides the five record fields, the computed column ``minute``
        returns the minute bucket.

        Raises:
            KeyError: If the column is unknown.
        """
        if column == "minute":
            return self.minute_bucket
        if column in FIELDS:
            return getattr(self, column)
        raise KeyError(column)


@lru_cache(maxsize=8)
def _handler(delimiter: str) -> FormatHandler:
    return get_format_handler("csv", delimiter=delimiter)


def minute_bucket(timestamp: str) -> str:
    """
    Truncate a raw timestamp to its first 16 characters.

    Args:
        timestamp: Raw timestamp, e.g. "2024-02-25 12:34:56".

    Returns:
        Minute bucket, e.g. "2024-02-25 12:34".

    Raises:
        ShortTimestampError: If the timestamp has fewer than 16 characters.
    """
    if len(timestamp) < MINUTE_BUCKET_LENGTH:
        raise ShortTimestampError(
            f"timestamp {timestamp!r} is shorter than {MINUTE_BUCKET_LENGTH} characters"
        )
    return timestamp[:MINUTE_BUCKET_LENGTH]


def parse_status(value: str) -> int:
    """
    Parse an HTTP status code field.

    Exactly three ASCII digits are accepted; signs, padding and surrounding
    whitespace are rejected.

    Raises:
        InvalidStatusError: If the value is not an integer in [100, 599].
    """
    if not _STATUS_RE.fullmatch(value):
        raise InvalidStatusError(f"status {value!r} is not a three-digit integer")
    status = int(value)
    if not MIN_STATUS <= status <= MAX_STATUS:
        raise InvalidStatusError(
            f"status {status} is outside [{MIN_STATUS}, {MAX_STATUS}]"
        )
    return status


def parse(line: str, delimiter: str = ",") -> LogRecord:
    """
    Parse one raw input line into a LogRecord.

    A trailing line terminator is dropped; nothing else is trimmed.

    Args:
        line: Raw line in ``ip,timestamp,url,status,user_agent`` form.
        delimiter: Field delimiter. Default is ",".

    Returns:
        The parsed LogRecord.

    Raises:
        FieldCountError: If the line does not have exactly five fields.
        InvalidStatusError: If the status field is invalid.

    Example:
        >>> parse("1.1.1.1,2024-02-25 12:34:56,/home,200,UA1").status
        200
    """
    raw = line.rstrip("\r\n")
    fields = _handler(delimiter).split(raw)
    if len(fields) != len(FIELDS):
        raise FieldCountError(
            f"expected {len(FIELDS)} fields, got {len(fields)}", line=raw
        )

    ip, timestamp, url, status, user_agent = fields
    try:
        code = parse_status(status)
    except InvalidStatusError as exc:
        exc.line = raw
        raise

    return LogRecord(
        ip=ip,
        timestamp=timestamp,
        url=url,
        status=code,
        user_agent=user_agent,
    )


def serialize(record: LogRecord, delimiter: str = ",") -> str:
    """Join a record back into a raw line (no trailing newline)."""
    return _handler(delimiter).join([str(value) for value in astuple(record)])
