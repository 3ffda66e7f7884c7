"""Check and CheckCatalog tests.

TestCheck        — the three recording modes, mode enforcement, results
TestCheckCatalog — defaults, duplicates, env overrides, fresh sinks
"""

import threading

import pytest

from checks import catalog as checks
from checks.catalog import DEFAULT_CHECKS, CheckCatalog
from checks.check import Check, CheckConfig, CheckMode


# ── Helpers ───────────────────────────────────────────────────────────────────

def make_check(mode=CheckMode.ITEM_SET, threshold=10.0, message="") -> Check:
    return Check(CheckConfig(id="test_check", title="Test", threshold=threshold, mode=mode, message=message))


# ── Check ─────────────────────────────────────────────────────────────────────

class TestCheck:
    def test_item_set_dedups_and_keeps_insertion_order(self):
        check = make_check()
        for name in ["pg-2", "pg-0", "pg-2", "pg-1", "pg-0"]:
            check.add_item(name)
        assert check.items == ["pg-2", "pg-0", "pg-1"]

    def test_counter_accumulates(self):
        check = make_check(CheckMode.COUNTER)
        check.inc(3)
        check.inc(4)
        assert check.count == 7

    def test_last_value_wins(self):
        check = make_check(CheckMode.LAST_VALUE)
        check.set_value(100)
        check.set_value(42)
        assert check.value == 42

    def test_mode_is_enforced(self):
        with pytest.raises(ValueError):
            make_check(CheckMode.ITEM_SET).inc(1)
        with pytest.raises(ValueError):
            make_check(CheckMode.COUNTER).set_value(1)
        with pytest.raises(ValueError):
            make_check(CheckMode.LAST_VALUE).add_item("pg-0")

    def test_check_does_not_evaluate_the_threshold_on_record(self):
        # Recording is the caller's decision; a value below threshold is still kept
        check = make_check(CheckMode.LAST_VALUE, threshold=100)
        check.set_value(5)
        assert check.value == 5
        assert not check.fired()

    def test_untouched_checks_are_ok(self):
        for mode in CheckMode:
            result = make_check(mode).result()
            assert result.status == "ok"
            assert result.message == ""

    def test_item_set_result_warns_with_items(self):
        check = make_check(message="{items} instances are slow")
        check.add_item("pg-0")
        check.add_item("pg-1")
        result = check.result()
        assert result.status == "warning"
        assert result.items == ["pg-0", "pg-1"]
        assert result.message == "2 instances are slow"

    def test_counter_result_warns_above_threshold(self):
        check = make_check(CheckMode.COUNTER, threshold=10, message="{count} errors occurred")
        check.inc(10)
        assert check.result().status == "ok"
        check.inc(1)
        result = check.result()
        assert result.status == "warning"
        assert result.count == 11
        assert result.message == "11 errors occurred"

    def test_last_value_result(self):
        check = make_check(CheckMode.LAST_VALUE, threshold=0)
        assert check.result().value is None
        check.set_value(600)
        result = check.result()
        assert result.status == "warning"
        assert result.value == 600

    def test_concurrent_recording_is_safe(self):
        check = make_check(CheckMode.COUNTER)

        def work():
            for _ in range(1000):
                check.inc(1)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert check.count == 8000


# ── CheckCatalog ──────────────────────────────────────────────────────────────

class TestCheckCatalog:
    def test_default_catalog_has_every_check(self):
        catalog = CheckCatalog.default()
        assert len(catalog) == len(DEFAULT_CHECKS)
        for check_id in (
            checks.POSTGRES_AVAILABILITY,
            checks.POSTGRES_LATENCY,
            checks.POSTGRES_ERRORS,
            checks.POSTGRES_REPLICATION_LAG,
            checks.POSTGRES_CONNECTIONS,
            checks.DEPLOYMENT_STATUS,
        ):
            assert check_id in catalog

    def test_modes_match_usage(self):
        catalog = CheckCatalog.default()
        assert catalog.get(checks.POSTGRES_ERRORS).mode is CheckMode.COUNTER
        assert catalog.get(checks.DEPLOYMENT_STATUS).mode is CheckMode.LAST_VALUE
        assert catalog.get(checks.POSTGRES_LATENCY).mode is CheckMode.ITEM_SET

    def test_duplicate_id_rejected(self):
        config = CheckConfig(id="dup", title="Dup", threshold=1)
        with pytest.raises(ValueError):
            CheckCatalog([config, config])

    def test_unknown_id_raises_key_error(self):
        with pytest.raises(KeyError):
            CheckCatalog.default().get("no_such_check")

    def test_configs_are_immutable(self):
        config = CheckCatalog.default().get(checks.POSTGRES_LATENCY)
        with pytest.raises(Exception):
            config.threshold = 5

    def test_env_overrides_threshold(self):
        catalog = CheckCatalog.from_env({"AUDIT_THRESHOLD_POSTGRES_LATENCY": "0.25"})
        assert catalog.get(checks.POSTGRES_LATENCY).threshold == pytest.approx(0.25)
        # untouched checks keep their default
        assert catalog.get(checks.POSTGRES_CONNECTIONS).threshold == 90

    def test_invalid_env_override_is_ignored(self):
        catalog = CheckCatalog.from_env({"AUDIT_THRESHOLD_POSTGRES_CONNECTIONS": "ninety"})
        assert catalog.get(checks.POSTGRES_CONNECTIONS).threshold == 90

    def test_create_returns_fresh_sinks(self):
        catalog = CheckCatalog.default()
        first = catalog.create(checks.POSTGRES_LATENCY)
        first.add_item("pg-0")
        second = catalog.create(checks.POSTGRES_LATENCY)
        assert second.items == []
        assert second.threshold == first.threshold
