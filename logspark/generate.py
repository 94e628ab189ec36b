"""Generate realistic access-log lines in the five-column input format."""

import random
from datetime import datetime, timedelta
from typing import Iterator, Optional

PATHS = [
    "/", "/home", "/login", "/logout", "/search", "/cart", "/checkout",
    "/api/users", "/api/orders", "/api/products", "/health", "/about",
]

STATUS_WEIGHTS = {
    200: 70, 201: 5, 301: 3, 304: 4,  # Success / redirects
    400: 3, 401: 2, 403: 2, 404: 7,  # Client errors
    500: 3, 502: 1,  # Server errors
}

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64)",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 13_4)",
    "Mozilla/5.0 (X11; Linux x86_64)",
    "curl/8.4.0",
    "python-requests/2.31",
    "Googlebot/2.1",
]

START = datetime(2024, 2, 25, 12, 0, 0)


def generate_line(rng: random.Random, timestamp: datetime) -> str:
    status = rng.choices(list(STATUS_WEIGHTS.keys()), list(STATUS_WEIGHTS.values()))[0]
    # A small pool of clients makes repeated failures from one IP likely
    ip = f"10.0.{rng.randint(0, 3)}.{rng.randint(1, 20)}"
    return ",".join([
        ip,
        timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        rng.choice(PATHS),
        str(status),
        rng.choice(USER_AGENTS),
    ])


def generate_lines(count: int, seed: Optional[int] = None) -> Iterator[str]:
    """
    Yield ``count`` synthetic log lines with non-decreasing timestamps.

    Args:
        count: Number of lines to produce.
        seed: Seed for reproducible output.
    """
    rng = random.Random(seed)
    timestamp = START
    for _ in range(count):
        timestamp += timedelta(seconds=rng.randint(0, 15))
        yield generate_line(rng, timestamp)
