"""Rendering and writing of run results."""

import csv
import logging
import os
from typing import Iterable

from logspark.driver import RunReport

logger = logging.getLogger(__name__)


def tables(report: RunReport) -> dict[str, tuple[list[str], list[tuple]]]:
    """
    Return every result as a ``(header, rows)`` table, keyed by table name.

    Status rows are ordered by status code; every other table keeps the
    order its query produced.
    """
    return {
        "total_requests": (["total_requests"], [(report.total_requests,)]),
        "requests_by_status": (
            ["status", "count"],
            sorted(report.requests_by_status.items()),
        ),
        "top_urls": (["url", "count"], list(report.top_urls)),
        "top_user_agents": (["user_agent", "count"], list(report.top_user_agents)),
        "failed_ips": (["ip", "count"], list(report.failed_ips)),
        "requests_over_time": (["minute", "count"], list(report.requests_over_time)),
    }


def _section(title: str, header: list[str], rows: Iterable[tuple]) -> list[str]:
    rows = list(rows)
    lines = [title, "-" * 50]
    if not rows:
        lines.append("  (no rows)")
        return lines
    width = max(len(str(row[0])) for row in rows)
    width = max(width, len(header[0]))
    lines.append(f"  {header[0]:<{width}}  {header[-1]:>8}")
    for row in rows:
        lines.append(f"  {str(row[0]):<{width}}  {row[-1]:>8,}")
    return lines


def render_text(report: RunReport) -> str:
    """Format a run report as a plain-text summary."""
    lines = [
        f"Total lines read:   {report.lines_read:,}",
        f"Total requests:     {report.total_requests:,}",
        f"Skipped lines:      {report.skipped:,}",
        "",
    ]
    titles = {
        "requests_by_status": "Requests by status",
        "top_urls": "Top URLs",
        "top_user_agents": "Top user agents",
        "failed_ips": "IPs with repeated failures",
        "requests_over_time": "Requests per minute",
    }
    for name, (header, rows) in tables(report).items():
        if name not in titles:
            continue
        lines.extend(_section(titles[name], header, rows))
        lines.append("")

    if report.errors:
        lines.append("Skipped lines")
        lines.append("-" * 50)
        for number, error in report.errors:
            lines.append(f"  line {number}: {error.kind}: {error}")
        lines.append("")

    return "\n".join(lines)


def write_tables(report: RunReport, outdir: str) -> list[str]:
    """
    Write every result table as CSV plus a text summary.

    Args:
        report: Finished run report.
        outdir: Output directory; created if missing.

    Returns:
        Paths of the written files.
    """
    os.makedirs(outdir, exist_ok=True)
    written = []
    for name, (header, rows) in tables(report).items():
        path = os.path.join(outdir, f"{name}.csv")
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(header)
            w.writerows(rows)
        written.append(path)

    summary_path = os.path.join(outdir, "summary.txt")
    with open(summary_path, "w", encoding="utf-8") as f:
        f.write(render_text(report))
        f.write("\n")
    written.append(summary_path)

    logger.info("Wrote %d files to %s", len(written), outdir)
    return written
