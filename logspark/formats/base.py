"""Abstract base class for format handlers."""

from abc import ABC, abstractmethod


class FormatHandler(ABC):
    """
    Abstract base class for format handlers.

    Format handlers know how to cut a raw input line into fields and
    how to put fields back together into a line.
    """

    @abstractmethod
    def split(self, line: str) -> list[str]:
        """
        Split a raw line (without its line terminator) into fields.

        Args:
            line: Raw input line.

        Returns:
            List of field strings, in input order.
        """
        pass

    @abstractmethod
    def join(self, fields: list[str]) -> str:
        """
        Join fields back into a single line.

        Args:
            fields: Field strings, in output order.

        Returns:
            Line without a trailing newline.
        """
        pass

    @property
    @abstractmethod
    def delimiter(self) -> str:
        """Return the field delimiter."""
        pass
