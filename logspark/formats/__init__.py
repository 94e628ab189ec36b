"""Format handlers for raw log lines."""

from logspark.formats.base import FormatHandler
from logspark.formats.csv import DelimitedHandler

__all__ = ["FormatHandler", "DelimitedHandler", "get_format_handler"]


def get_format_handler(format_name: str, **kwargs) -> FormatHandler:
    """
    Factory function to create format handlers.

    Args:
        format_name: Format name ("csv", "tsv").
        **kwargs: Format-specific options.
            For CSV: delimiter (str).

    Returns:
        FormatHandler instance for the specified format.

    Raises:
        ValueError: If format is unknown.
    """
    format_name = format_name.lower()

    if format_name == "csv":
        delimiter = kwargs.get("delimiter", ",")
        return DelimitedHandler(delimiter=delimiter)
    elif format_name == "tsv":
        return DelimitedHandler(delimiter="\t")
    else:
        raise ValueError(
            f"Unknown format: {format_name}. Supported formats: csv, tsv"
        )
