import pytest

from logspark.errors import ShortTimestampError
from logspark.generate import generate_lines
from logspark.partition import partition
from logspark.queries import (
    failed_ips,
    requests_by_status,
    requests_over_time,
    top_urls,
    top_user_agents,
    total_requests,
)
from logspark.records import LogRecord, parse


def _records(*rows):
    return [
        LogRecord(ip=ip, timestamp=ts, url=url, status=status, user_agent=ua)
        for ip, ts, url, status, ua in rows
    ]


@pytest.fixture(params=["flat", "store"])
def source(request, scenario_records):
    if request.param == "store":
        return partition(scenario_records)
    return scenario_records


@pytest.fixture(scope="module")
def generated():
    return [parse(line) for line in generate_lines(3000, seed=11)]


class TestScenario:
    def test_total_requests(self, source):
        assert total_requests(source) == 6

    def test_requests_by_status(self, source):
        assert requests_by_status(source) == {200: 1, 500: 1, 404: 4}

    def test_top_urls(self, source):
        assert top_urls(source, 2) == [("/login", 4), ("/home", 2)]

    def test_top_user_agents(self, source):
        assert top_user_agents(source) == [("UA2", 5), ("UA1", 1)]

    def test_failed_ips(self, source):
        assert failed_ips(source, min_count=3) == [("1.1.1.2", 5)]

    def test_failed_ips_threshold_is_strict(self, source):
        assert failed_ips(source, min_count=5) == []
        assert failed_ips(source, statuses={404}, min_count=3) == [("1.1.1.2", 4)]
        assert failed_ips(source, statuses={404}, min_count=4) == []

    def test_requests_over_time(self, source):
        assert requests_over_time(source) == [
            ("2024-02-25 12:34", 1),
            ("2024-02-25 12:35", 1),
            ("2024-02-25 12:36", 1),
            ("2024-02-25 12:37", 1),
            ("2024-02-25 12:38", 1),
            ("2024-02-25 12:39", 1),
        ]


class TestTieBreaks:
    def test_equal_counts_keep_first_seen_order(self):
        records = _records(
            ("1", "2024-02-25 12:00:00", "/b", 200, "x"),
            ("1", "2024-02-25 12:00:00", "/a", 200, "y"),
            ("1", "2024-02-25 12:00:00", "/a", 200, "y"),
            ("1", "2024-02-25 12:00:00", "/b", 200, "x"),
            ("1", "2024-02-25 12:00:00", "/c", 200, "z"),
        )
        assert top_urls(records, 3) == [("/b", 2), ("/a", 2), ("/c", 1)]
        assert top_urls(records, 1) == [("/b", 2)]
        assert top_user_agents(records) == [("x", 2), ("y", 2), ("z", 1)]

    def test_failed_ips_ties(self):
        rows = []
        for ip in ("9.9.9.9", "8.8.8.8"):
            rows.extend((ip, "2024-02-25 12:00:00", "/", 500, "UA") for _ in range(4))
        rows.extend(("7.7.7.7", "2024-02-25 12:00:00", "/", 404, "UA") for _ in range(6))
        assert failed_ips(partition(_records(*rows))) == [
            ("7.7.7.7", 6),
            ("9.9.9.9", 4),
            ("8.8.8.8", 4),
        ]


class TestExactMatching:
    def test_no_url_normalization(self):
        records = _records(
            ("1", "2024-02-25 12:00:00", "/Home", 200, "UA"),
            ("1", "2024-02-25 12:00:00", "/home", 200, "UA"),
            ("1", "2024-02-25 12:00:00", "/home/", 200, "UA"),
        )
        assert len(top_urls(records, 10)) == 3


class TestEmptyInput:
    def test_empty_results(self):
        assert total_requests([]) == 0
        assert requests_by_status([]) == {}
        assert top_urls([], 5) == []
        assert top_user_agents([]) == []
        assert failed_ips([]) == []
        assert requests_over_time([]) == []

    def test_empty_store(self):
        store = partition([])
        assert total_requests(store) == 0
        assert failed_ips(store) == []


class TestProperties:
    def test_total_matches_status_counts(self, generated):
        assert total_requests(generated) == sum(requests_by_status(generated).values())

    def test_top_urls_non_increasing(self, generated):
        counts = [count for _, count in top_urls(generated, 5)]
        assert len(counts) == 5
        assert counts == sorted(counts, reverse=True)

    def test_top_urls_returns_all_groups_for_large_n(self, generated):
        distinct = {r.url for r in generated}
        result = top_urls(generated, len(distinct) + 10)
        assert {url for url, _ in result} == distinct
        assert sum(count for _, count in result) == len(generated)

    def test_failed_ips_above_threshold(self, generated):
        result = failed_ips(generated)
        assert result
        assert all(count > 3 for _, count in result)

    def test_requests_over_time_ascending(self, generated):
        buckets = [bucket for bucket, _ in requests_over_time(generated)]
        assert buckets == sorted(buckets)
        assert len(buckets) == len(set(buckets))

    def test_store_matches_flat(self, generated):
        store = partition(generated)
        assert requests_by_status(store) == requests_by_status(generated)
        assert top_urls(store, 4) == top_urls(generated, 4)
        assert top_user_agents(store) == top_user_agents(generated)
        assert failed_ips(store) == failed_ips(generated)
        assert requests_over_time(store) == requests_over_time(generated)


def test_top_urls_zero_is_empty(scenario_records):
    assert top_urls(scenario_records, 0) == []
    assert top_urls(partition(scenario_records), 0) == []


def test_top_urls_rejects_negative_n(scenario_records):
    with pytest.raises(ValueError):
        top_urls(scenario_records, -1)


def test_requests_over_time_short_timestamp():
    records = _records(("1", "2024-02-25", "/", 200, "UA"))
    with pytest.raises(ShortTimestampError):
        requests_over_time(records)
