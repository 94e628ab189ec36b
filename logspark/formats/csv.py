"""Delimited (CSV-like) format handler."""

from logspark.formats.base import FormatHandler


class DelimitedHandler(FormatHandler):
    """
    Format handler for plain delimited lines.

    Fields are cut on every occurrence of the delimiter. There is no
    quoting or escaping, so a delimiter inside a field always produces
    an extra field.
    """

    def __init__(self, delimiter: str = ","):
        """
        Create a delimited format handler.

        Args:
            delimiter: Field delimiter (default: ",").

        Raises:
            ValueError: If the delimiter is empty.
        """
        if not delimiter:
            raise ValueError("delimiter must be a non-empty string")
        self._delimiter = delimiter

    @property
    def delimiter(self) -> str:
        return self._delimiter

    def split(self, line: str) -> list[str]:
        return line.split(self._delimiter)

    def join(self, fields: list[str]) -> str:
        return self._delimiter.join(fields)

    def __repr__(self) -> str:
        return f"DelimitedHandler(delimiter={self._delimiter!r})"
