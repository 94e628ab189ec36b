"""LogSpark - Partitioned aggregation of access logs, in memory."""

from logspark.records import LogRecord, parse, serialize, minute_bucket
from logspark.partition import PartitionedStore, partition
from logspark.pipeline import Pipeline
from logspark.ast import (
    Scan,
    Filter,
    GroupBy,
    Having,
    Aggregation,
    Sort,
    SortOrder,
    Limit,
)
from logspark.aggregations import (
    count_,
    min_,
    max_,
    first_,
    last_,
    countdistinct_,
)
from logspark.optimizer import QueryOptimizer
from logspark.queries import (
    total_requests,
    requests_by_status,
    top_urls,
    top_user_agents,
    failed_ips,
    requests_over_time,
)
from logspark.config import DriverConfig
from logspark.driver import LogPipeline, RunReport, RunState, run_batch
from logspark.errors import (
    LogSparkError,
    ParseError,
    FieldCountError,
    InvalidStatusError,
    ShortTimestampError,
    EncodingError,
    InputError,
    StateError,
)

__version__ = "0.1.0"
__all__ = [
    # Records
    "LogRecord",
    "parse",
    "serialize",
    "minute_bucket",
    # Partitioning
    "PartitionedStore",
    "partition",
    # Query plans
    "Pipeline",
    "Scan",
    "Filter",
    "GroupBy",
    "Having",
    "Aggregation",
    "Sort",
    "SortOrder",
    "Limit",
    "QueryOptimizer",
    # Aggregation helpers
    "count_",
    "min_",
    "max_",
    "first_",
    "last_",
    "countdistinct_",
    # Metrics
    "total_requests",
    "requests_by_status",
    "top_urls",
    "top_user_agents",
    "failed_ips",
    "requests_over_time",
    # Driver
    "DriverConfig",
    "LogPipeline",
    "RunReport",
    "RunState",
    "run_batch",
    # Errors
    "LogSparkError",
    "ParseError",
    "FieldCountError",
    "InvalidStatusError",
    "ShortTimestampError",
    "EncodingError",
    "InputError",
    "StateError",
]
