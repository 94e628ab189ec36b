#!/usr/bin/env python3
"""Access log aggregation demo.

Demonstrates parsing, partitioning, the six metrics, and partition pruning.

Usage:
    python demo/access_log_demo.py [LINES]
"""

import time
import sys
import os

# Add parent directory to path for local development
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from logspark import Pipeline, count_, run_batch
from logspark.generate import generate_lines
from logspark.records import parse
from logspark.partition import partition
from logspark.report import render_text

n = int(sys.argv[1]) if len(sys.argv) > 1 else 20_000
generated = list(generate_lines(n, seed=7))
lines = list(generated)
# A couple of broken lines to show error collection
lines.insert(3, "10.0.0.1,2024-02-25 12:00:01,/home,200")
lines.insert(10, "10.0.0.1,2024-02-25 12:00:09,/home,2xx,curl/8.4.0")

print("=== Access Log Demo ===")
print("Source data (first 5 lines):")
print("-" * 70)
for line in lines[:5]:
    print(line)
print("...")
print()

start = time.time()
report = run_batch(lines)
elapsed = time.time() - start

print(render_text(report))
print(f"Completed in {elapsed:.3f} seconds")
print()

print("=== Partition pruning ===")
store = partition(parse(line) for line in generated)
server_errors = (
    Pipeline(store)
    .filter(status__in={500, 502})
    .group_by("url")
    .agg(count=count_())
    .sort("count", desc=True)
)
print(server_errors.explain())
result = server_errors.run_result()
print(f"Scanned {result.scanned:,} of {store.record_count:,} records")
for row in result.rows:
    print(f"  {row['url']:<16} {row['count']:>6}")
