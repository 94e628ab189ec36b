"""Command-line interface for LogSpark."""

import argparse
import logging
import sys
from typing import Optional

from logspark import queries
from logspark.config import DriverConfig, parse_statuses
from logspark.driver import LogPipeline
from logspark.errors import InputError
from logspark.generate import generate_lines
from logspark.report import render_text, write_tables

log = logging.getLogger("logspark")

LOG_FORMAT = "%(asctime)s [%(levelname)s] {%(filename)s:%(lineno)d} - %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logspark",
        description="Partitioned aggregation of comma-delimited access logs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Compute the six metrics for a log file")
    analyze.add_argument("input", help="Path to ip,timestamp,url,status,user_agent lines")
    analyze.add_argument("--outdir", default=None, help="Write CSV tables to this directory")
    analyze.add_argument("--top", type=int, default=None, help="Rows returned by top URLs")
    analyze.add_argument("--workers", type=int, default=None, help="Parser threads")
    analyze.add_argument(
        "--min-count",
        type=int,
        default=None,
        help="Failed-IP threshold (count must be greater)",
    )
    analyze.add_argument(
        "--statuses",
        type=parse_statuses,
        default=None,
        help="Comma-separated failure statuses, e.g. 404,500",
    )
    analyze.add_argument("--delimiter", default=None, help="Field delimiter")

    generate = sub.add_parser("generate", help="Print synthetic log lines")
    generate.add_argument("count", type=int, help="Number of lines")
    generate.add_argument("--seed", type=int, default=None)

    sub.add_parser("explain", help="Print the optimized plan of every metric")
    return parser


def _analyze(args: argparse.Namespace) -> int:
    try:
        config = DriverConfig.from_env().with_overrides(
            top_n=args.top,
            workers=args.workers,
            failed_min_count=args.min_count,
            failed_statuses=args.statuses,
            delimiter=args.delimiter,
        )
    except ValueError as exc:
        log.error("Invalid configuration: %s", exc)
        return 2

    try:
        report = LogPipeline(config).run_file(args.input)
    except InputError as exc:
        log.error("%s", exc)
        return 1

    print(render_text(report))
    if args.outdir:
        for path in write_tables(report, args.outdir):
            print(f"  wrote {path}")
    return 0


def _explain() -> int:
    config = DriverConfig.from_env()
    pipelines = {
        "total_requests": queries.total_requests_pipeline([]),
        "requests_by_status": queries.requests_by_status_pipeline([]),
        "top_urls": queries.top_urls_pipeline([], config.top_n),
        "top_user_agents": queries.top_user_agents_pipeline([]),
        "failed_ips": queries.failed_ips_pipeline(
            [], config.failed_statuses, config.failed_min_count
        ),
        "requests_over_time": queries.requests_over_time_pipeline([]),
    }
    for name, pipeline in pipelines.items():
        print(f"== {name}")
        print(pipeline.explain())
        print()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    if args.command == "analyze":
        return _analyze(args)
    if args.command == "generate":
        for line in generate_lines(args.count, seed=args.seed):
            print(line)
        return 0
    return _explain()


if __name__ == "__main__":
    sys.exit(main())
