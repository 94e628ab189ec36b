from logspark.generate import generate_lines
from logspark.partition import PartitionedStore, partition
from logspark.records import LogRecord, parse


def _record(status, ip="1.1.1.1"):
    return LogRecord(ip=ip, timestamp="2024-02-25 12:00:00", url="/", status=status, user_agent="UA")


def test_buckets_by_status(scenario_records):
    store = partition(scenario_records)
    assert isinstance(store, PartitionedStore)
    assert store.keys() == [200, 500, 404]
    assert len(store) == 3
    assert len(store[404]) == 4
    assert 500 in store
    assert 302 not in store


def test_completeness_on_generated_data():
    records = [parse(line) for line in generate_lines(2000, seed=3)]
    store = partition(records)
    assert sum(len(bucket) for bucket in store.values()) == len(records)
    assert store.record_count == len(records)
    for status, bucket in store.items():
        assert all(r.status == status for r in bucket)


def test_bucket_preserves_insertion_order():
    records = [_record(404, ip=f"10.0.0.{i}") for i in range(5)]
    records.insert(2, _record(200))
    store = partition(records)
    assert [r.ip for r in store[404]] == [f"10.0.0.{i}" for i in range(5)]


def test_scan_replays_input_order():
    records = [_record(s, ip=str(i)) for i, s in enumerate([200, 404, 200, 500, 404])]
    store = partition(records)
    assert [r.ip for r in store.scan()] == ["0", "1", "2", "3", "4"]
    assert [r.ip for r in store.scan({200, 404})] == ["0", "1", "2", "4"]
    assert [r.ip for r in store.scan([500])] == ["3"]


def test_scan_unknown_partition():
    store = partition([_record(200)])
    assert list(store.scan({418})) == []
    assert list(store.scan(set())) == []


def test_empty_input():
    store = partition([])
    assert len(store) == 0
    assert store.record_count == 0
    assert list(store.scan()) == []


def test_buckets_are_read_only_copies(scenario_records):
    store = partition(scenario_records)
    bucket = store[404]
    assert isinstance(bucket, tuple)
    assert len(store[404]) == 4
