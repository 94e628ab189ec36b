import pytest

from logspark.aggregations import count_, countdistinct_, first_, last_, max_, min_
from logspark.ast import Filter, FilterOp, GroupBy, Limit, Scan, Sort, SortOrder, format_plan
from logspark.optimizer import QueryOptimizer
from logspark.partition import partition
from logspark.pipeline import Pipeline


class TestBuilder:
    def test_filter_without_group_returns_records(self, scenario_records):
        rows = Pipeline(scenario_records).filter(url__eq="/login").run()
        assert len(rows) == 4
        assert all(r.url == "/login" for r in rows)

    def test_filter_ops(self, scenario_records):
        assert Pipeline(scenario_records).filter(status__ge=500).count() == 1
        assert Pipeline(scenario_records).filter(status__not_in=[404]).count() == 2
        assert Pipeline(scenario_records).filter(url__startswith="/lo").count() == 4
        assert Pipeline(scenario_records).filter(user_agent__endswith="1").count() == 1
        assert Pipeline(scenario_records).filter(timestamp__contains="12:3").count() == 6
        assert Pipeline(scenario_records).filter(minute__regex=r"12:3[89]$").count() == 2

    def test_group_by_with_helpers(self, scenario_records):
        rows = (
            Pipeline(scenario_records)
            .group_by("ip")
            .agg(
                hits=count_(),
                first_seen=min_("timestamp"),
                last_seen=max_("timestamp"),
                entry=first_("url"),
                exit=last_("url"),
                urls=countdistinct_("url"),
            )
            .run()
        )
        assert rows[1] == {
            "ip": "1.1.1.2",
            "hits": 5,
            "first_seen": "2024-02-25 12:35:10",
            "last_seen": "2024-02-25 12:39:10",
            "entry": "/home",
            "exit": "/login",
            "urls": 2,
        }

    def test_helpers_over_partitioned_store(self, scenario_records):
        rows = (
            Pipeline(partition(scenario_records))
            .filter(status__in={200, 500})
            .group_by("url")
            .agg(low=min_("status"), high=max_("status"), ips=countdistinct_("ip"))
            .run()
        )
        assert rows == [{"url": "/home", "low": 200, "high": 500, "ips": 2}]
        assert count_("url") == count_("url")
        assert first_("ip").column == last_("ip").column == "ip"

    def test_tuple_aggregation_syntax(self, scenario_records):
        rows = Pipeline(scenario_records).group_by("url").agg(n=("*", "count")).run()
        assert rows == [{"url": "/home", "n": 2}, {"url": "/login", "n": 4}]

    def test_group_by_multiple_keys(self, scenario_records):
        rows = Pipeline(scenario_records).group_by("ip", "status").agg(n=count_()).run()
        assert rows == [
            {"ip": "1.1.1.1", "status": 200, "n": 1},
            {"ip": "1.1.1.2", "status": 500, "n": 1},
            {"ip": "1.1.1.2", "status": 404, "n": 4},
        ]

    def test_sort_is_stable_descending(self, scenario_records):
        rows = (
            Pipeline(scenario_records)
            .group_by("status")
            .agg(n=count_())
            .sort("n", desc=True)
            .run()
        )
        assert [r["status"] for r in rows] == [404, 200, 500]

    def test_limit_with_offset(self, scenario_records):
        rows = Pipeline(scenario_records).limit(2, offset=1).run()
        assert [r.status for r in rows] == [500, 404]

    def test_having(self, scenario_records):
        rows = Pipeline(scenario_records).group_by("url").agg(n=count_()).having(n__gt=2).run()
        assert rows == [{"url": "/login", "n": 4}]

    @pytest.mark.parametrize(
        "build, error",
        [
            (lambda p: p.filter(status=200), ValueError),
            (lambda p: p.filter(status__like=200), ValueError),
            (lambda p: p.filter(status__in="404"), TypeError),
            (lambda p: p.agg(n=count_()), ValueError),
            (lambda p: p.group_by(), ValueError),
            (lambda p: p.group_by("ip").agg(), ValueError),
            (lambda p: p.group_by("ip").agg(n=("url", "sum")), ValueError),
            (lambda p: p.group_by("ip").agg(n=5), TypeError),
            (lambda p: p.group_by("ip").agg(n=("*", "min")), ValueError),
            (lambda p: p.having(n__gt=1), ValueError),
            (lambda p: p.limit(-1), ValueError),
            (lambda p: p.limit(1, offset=-1), ValueError),
        ],
    )
    def test_invalid_usage(self, scenario_records, build, error):
        with pytest.raises(error):
            build(Pipeline(scenario_records))

    def test_group_by_without_agg_cannot_run(self, scenario_records):
        with pytest.raises(ValueError, match="agg"):
            Pipeline(scenario_records).group_by("ip").run()

    def test_unknown_column(self, scenario_records):
        with pytest.raises(ValueError, match="Unknown column 'referrer'"):
            Pipeline(scenario_records).filter(referrer__eq="-").run()

    def test_empty_source(self):
        assert Pipeline([]).count() == 0
        assert Pipeline([]).group_by("url").agg(n=count_()).run() == []


class TestPartitionPruning:
    def test_store_scans_only_selected_partitions(self, scenario_records):
        store = partition(scenario_records)
        result = (
            Pipeline(store)
            .filter(status__in={404, 500})
            .group_by("ip")
            .agg(n=count_())
            .run_result()
        )
        assert result.scanned == 5
        assert result.rows == [{"ip": "1.1.1.2", "n": 5}]

    def test_flat_and_store_agree(self, scenario_records):
        store = partition(scenario_records)
        for source in (scenario_records, store):
            assert Pipeline(source).filter(status__eq=404).count() == 4
            assert Pipeline(source).filter(status__in=[200, 302]).count() == 1

    def test_pruned_scan_keeps_input_order(self, scenario_records):
        store = partition(scenario_records)
        rows = Pipeline(store).filter(status__in={200, 404}).run()
        assert [r.timestamp[-8:] for r in rows] == [
            "12:34:56", "12:36:10", "12:37:10", "12:38:10", "12:39:10",
        ]


class TestOptimizer:
    def test_status_filter_folds_into_scan(self):
        plan = Pipeline([]).filter(status__in={404, 500}).group_by("ip").agg(n=count_()).plan()
        assert isinstance(plan, GroupBy)
        assert plan.child == Scan(statuses=frozenset({404, 500}))

    def test_status_filter_pushed_below_other_filters(self):
        plan = Pipeline([]).filter(url__eq="/x").filter(status__eq=404).plan()
        assert plan == Filter(
            child=Scan(statuses=frozenset({404})), column="url", op=FilterOp.EQ, value="/x"
        )

    def test_status_filters_intersect(self):
        plan = Pipeline([]).filter(status__in={404, 500}).filter(status__eq=404).plan()
        assert plan == Scan(statuses=frozenset({404}))

    def test_range_filter_is_not_pruned(self):
        plan = Pipeline([]).filter(status__ge=500).plan()
        assert isinstance(plan, Filter)
        assert plan.child == Scan()

    def test_filter_not_moved_past_group_by(self):
        plan = Pipeline([]).group_by("status").agg(n=count_()).filter(status__eq=404).plan()
        assert isinstance(plan, Filter)
        assert isinstance(plan.child, GroupBy)

    def test_duplicate_filters_removed(self):
        plan = Pipeline([]).filter(url__eq="/x").filter(url__eq="/x").plan()
        assert plan == Filter(child=Scan(), column="url", op=FilterOp.EQ, value="/x")

    def test_consecutive_limits_merge(self):
        plan = Pipeline([]).limit(10, offset=2).limit(3).plan()
        assert plan == Limit(child=Scan(), count=3, offset=2)

    def test_original_tree_unchanged(self):
        pipeline = Pipeline([]).filter(status__eq=404)
        QueryOptimizer().optimize(pipeline.ast)
        assert isinstance(pipeline.ast, Filter)

    def test_plan_is_reused_until_the_pipeline_changes(self):
        pipeline = Pipeline([]).filter(status__eq=404)
        first = pipeline.plan()
        assert pipeline.plan() is first
        pipeline.filter(url__eq="/login")
        assert pipeline.plan() is not first
        assert pipeline.plan() is pipeline.plan()

    def test_plans_are_not_shared_between_pipelines(self):
        first = Pipeline([]).filter(status__eq=404).plan()
        second = Pipeline([]).filter(status__eq=404).plan()
        assert first == second
        assert first is not second

    def test_limit_zero_returns_no_rows(self, scenario_records):
        assert Pipeline(scenario_records).limit(0).run() == []


def test_format_plan():
    plan = Sort(
        child=Limit(child=Scan(statuses=frozenset({500, 404})), count=5),
        columns=(("n", SortOrder.DESC),),
    )
    assert format_plan(plan) == (
        "Sort(n DESC)\n"
        "  Limit(count=5, offset=0)\n"
        "    Scan(statuses=[404, 500])"
    )


def test_explain(scenario_records):
    text = Pipeline(scenario_records).filter(status__in={404}).group_by("ip").agg(n=count_()).explain()
    assert text.splitlines() == [
        "GroupBy(keys=['ip'], n=COUNT(*))",
        "  Scan(statuses=[404])",
    ]
