"""Exception types raised by LogSpark."""

from typing import Optional


class LogSparkError(Exception):
    """Base class for all LogSpark errors."""

    pass


class ParseError(LogSparkError, ValueError):
    """
    A raw input line could not be turned into a LogRecord.

    Parse errors are recoverable: the driver records the line number and
    error, then moves on to the next line.

    Attributes:
        kind: Short machine-readable error category.
        line: The offending raw line, if known.
    """

    kind = "parse"

    def __init__(self, message: str, line: Optional[str] = None):
        super().__init__(message)
        self.line = line


class FieldCountError(ParseError):
    """Line did not split into exactly five fields."""

    kind = "field_count"


class InvalidStatusError(ParseError):
    """Status field is not an integer in [100, 599]."""

    kind = "invalid_status"


class ShortTimestampError(ParseError):
    """Timestamp is too short to be truncated to a minute bucket."""

    kind = "short_timestamp"


class EncodingError(ParseError):
    """Line contains bytes that are not valid UTF-8."""

    kind = "encoding"


class InputError(LogSparkError):
    """The input source could not be read at all."""

    pass


class StateError(LogSparkError, RuntimeError):
    """Illegal driver state transition."""

    pass
