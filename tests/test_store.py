"""Tests for the bounded log store."""

import logging
import threading

import pytest

from applog.models import ErrorInfo, LogLevel, RuntimeMode
from applog.store import CONSOLE_LOGGER_NAME, LogStore


def _console_records(caplog):
    return [r for r in caplog.records if r.name == CONSOLE_LOGGER_NAME]


def _messages(store):
    return [e.message for e in store.get_logs()]


class TestCapacity:
    def test_keeps_most_recent_in_order(self, clock):
        store = LogStore(max_logs=3, clock=clock)
        for msg in ("a", "b", "c", "d"):
            store.info(msg)
        assert _messages(store) == ["b", "c", "d"]

    def test_two_entry_scenario(self, clock):
        store = LogStore(max_logs=2, clock=clock)
        store.info("first")
        store.info("second")
        store.info("third")

        logs = store.get_logs()
        assert len(logs) == 2
        assert [e.message for e in logs] == ["second", "third"]

    def test_length_never_exceeds_bound(self, clock):
        store = LogStore(max_logs=5, clock=clock)
        levels = list(LogLevel)
        for i in range(23):
            store.record(levels[i % 4], f"msg-{i}")
            assert len(store.get_logs()) <= 5

    def test_overflow_by_many_keeps_last_window(self, clock):
        store = LogStore(max_logs=10, clock=clock)
        for i in range(35):
            store.debug(str(i))
        assert _messages(store) == [str(i) for i in range(25, 35)]

    def test_default_capacity(self):
        assert LogStore().max_logs == 1000

    @pytest.mark.parametrize("bad", [0, -1, 2.5, True])
    def test_rejects_invalid_capacity(self, bad):
        with pytest.raises(ValueError):
            LogStore(max_logs=bad)

    def test_total_recorded_counts_evicted(self, clock):
        store = LogStore(max_logs=2, clock=clock)
        for i in range(5):
            store.info(str(i))
        assert store.total_recorded == 5
        assert store.size == 2


class TestEntries:
    def test_entry_fields(self, clock):
        store = LogStore(clock=clock)
        entry = store.warn("disk low", {"free_mb": 12})

        assert entry.level is LogLevel.WARN
        assert entry.message == "disk low"
        assert entry.context == {"free_mb": 12}
        assert entry.error is None
        assert entry.timestamp == 1_705_307_025_000
        assert entry.id.startswith("log-1705307025000-")

    def test_timestamps_follow_insertion_order(self, clock):
        store = LogStore(clock=clock)
        for i in range(5):
            store.info(str(i))
        stamps = [e.timestamp for e in store.get_logs()]
        assert stamps == sorted(stamps)

    def test_ids_unique(self):
        store = LogStore(max_logs=500)
        for i in range(500):
            store.info(str(i))
        ids = {e.id for e in store.get_logs()}
        assert len(ids) == 500

    def test_error_captures_exception(self, clock):
        store = LogStore(clock=clock)
        try:
            raise KeyError("missing")
        except KeyError as exc:
            entry = store.error("lookup failed", exc, {"key": "missing"})

        assert entry.level is LogLevel.ERROR
        assert entry.error.type == "KeyError"
        assert "missing" in entry.error.message
        assert "Traceback" in entry.error.stack
        assert entry.context == {"key": "missing"}

    def test_context_stored_as_is(self, clock):
        store = LogStore(clock=clock)
        weird = {"obj": object(), "nested": {"deep": [1, 2, {"x": None}]}}
        entry = store.debug("opaque", weird)
        assert entry.context is weird

    def test_unknown_level_does_not_raise(self, clock):
        store = LogStore(clock=clock)
        assert store.record("verbose", "nope") is None
        assert store.get_logs() == ()

    def test_level_counts(self, clock):
        store = LogStore(clock=clock)
        store.info("a")
        store.info("b")
        store.error("c")
        assert store.level_counts() == {"debug": 0, "info": 2, "warn": 0, "error": 1}


class TestSnapshotAndClear:
    def test_get_logs_is_a_copy(self, clock):
        store = LogStore(clock=clock)
        store.info("one")
        snapshot = store.get_logs()
        assert isinstance(snapshot, tuple)

        mutable = list(snapshot)
        mutable.clear()
        store.info("two")

        assert snapshot == store.get_logs()[:1]
        assert _messages(store) == ["one", "two"]

    def test_clear_empties(self, clock):
        store = LogStore(max_logs=3, clock=clock)
        for i in range(7):
            store.info(str(i))
        store.clear_logs()
        assert store.get_logs() == ()

    def test_clear_on_empty_store(self):
        store = LogStore()
        store.clear_logs()
        assert store.get_logs() == ()

    def test_clear_keeps_capacity(self, clock):
        store = LogStore(max_logs=2, clock=clock)
        store.info("a")
        store.clear_logs()
        for msg in ("b", "c", "d"):
            store.info(msg)
        assert store.max_logs == 2
        assert _messages(store) == ["c", "d"]


class TestConsole:
    def test_development_debug_emits_once(self, caplog, clock):
        store = LogStore(mode=RuntimeMode.DEVELOPMENT, clock=clock)
        store.debug("x")

        records = _console_records(caplog)
        assert len(records) == 1
        assert records[0].levelno == logging.DEBUG
        assert records[0].getMessage() == "[2024-01-15T08:23:45.000Z] [DEBUG] x"

    def test_development_emits_every_level(self, caplog, clock):
        store = LogStore(mode=RuntimeMode.DEVELOPMENT, clock=clock)
        store.debug("d")
        store.info("i")
        store.warn("w")
        store.error("e")

        records = _console_records(caplog)
        assert [r.levelname for r in records] == ["DEBUG", "INFO", "WARNING", "ERROR"]
        assert "[WARN] w" in records[2].getMessage()

    def test_production_suppresses_non_errors(self, caplog, clock):
        store = LogStore(mode=RuntimeMode.PRODUCTION, clock=clock)
        store.debug("x")
        store.info("y")
        store.warn("z")

        assert _console_records(caplog) == []
        assert _messages(store) == ["x", "y", "z"]

    def test_production_still_emits_errors(self, caplog, clock):
        store = LogStore(mode=RuntimeMode.PRODUCTION, clock=clock)
        store.error("boom", ValueError("bad input"))

        records = _console_records(caplog)
        assert len(records) == 1
        assert "[ERROR] boom" in records[0].getMessage()
        assert "ValueError: bad input" in records[0].getMessage()

    def test_context_appended(self, caplog, clock):
        store = LogStore(clock=clock)
        store.info("hello", {"user": "u1"})
        assert _console_records(caplog)[0].getMessage().endswith("hello {'user': 'u1'}")

    def test_error_without_exception_falls_back_to_context(self, caplog, clock):
        store = LogStore(clock=clock)
        store.error("failed", None, {"step": 3})
        assert _console_records(caplog)[0].getMessage().endswith("failed {'step': 3}")

    def test_mode_accepts_string(self):
        assert LogStore(mode="production").mode is RuntimeMode.PRODUCTION


class TestSinkRouting:
    def test_production_forwards_every_entry(self, recording_sink, clock):
        store = LogStore(sink=recording_sink, mode=RuntimeMode.PRODUCTION, clock=clock)
        store.debug("a")
        store.info("b")
        store.error("c")

        assert store.dispatcher.wait_idle(timeout=2.0)
        assert sorted(e.message for e in recording_sink.received) == ["a", "b", "c"]
        store.close()

    def test_development_never_forwards(self, recording_sink, clock):
        store = LogStore(sink=recording_sink, mode=RuntimeMode.DEVELOPMENT, clock=clock)
        store.error("c")
        store.info("d")

        assert store.dispatcher.dispatched == 0
        assert recording_sink.received == []
        store.close()

    def test_no_sink_no_dispatcher(self):
        store = LogStore(mode=RuntimeMode.PRODUCTION)
        assert store.dispatcher is None
        store.info("fine")
        store.close()

    def test_failing_sink_never_raises(self, failing_sink, clock):
        store = LogStore(sink=failing_sink, mode=RuntimeMode.PRODUCTION, clock=clock)
        entry = store.info("kept")

        assert store.dispatcher.wait_idle(timeout=2.0)
        assert failing_sink.calls == 1
        assert store.dispatcher.failed == 1
        assert store.get_logs() == (entry,)
        store.close()

    def test_synchronously_raising_sink_never_raises(self, sync_raising_sink, clock):
        store = LogStore(sink=sync_raising_sink, mode=RuntimeMode.PRODUCTION, clock=clock)
        store.warn("still here")

        assert store.dispatcher.wait_idle(timeout=2.0)
        assert _messages(store) == ["still here"]
        assert store.dispatcher.failed == 1
        store.close()

    def test_forwarded_entry_survives_eviction(self, recording_sink, clock):
        store = LogStore(max_logs=1, sink=recording_sink, mode=RuntimeMode.PRODUCTION, clock=clock)
        store.info("a")
        store.info("b")

        assert store.dispatcher.wait_idle(timeout=2.0)
        assert len(recording_sink.received) == 2
        assert _messages(store) == ["b"]
        store.close()

    def test_error_info_passes_through(self, clock):
        store = LogStore(clock=clock)
        info = ErrorInfo(type="Timeout", message="after 30s")
        assert store.error("slow", info).error is info


class TestConcurrency:
    def test_parallel_writers_respect_bound(self):
        store = LogStore(max_logs=50, mode=RuntimeMode.PRODUCTION)
        errors = []

        def writer(n):
            try:
                for i in range(200):
                    store.info(f"{n}-{i}")
                    assert len(store.get_logs()) <= 50
            except AssertionError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert store.size == 50
        assert store.total_recorded == 800

    def test_clear_during_writes(self):
        store = LogStore(max_logs=20, mode=RuntimeMode.PRODUCTION)
        stop = threading.Event()

        def writer():
            i = 0
            while not stop.is_set():
                store.debug(str(i))
                i += 1

        t = threading.Thread(target=writer)
        t.start()
        try:
            for _ in range(50):
                store.clear_logs()
                assert len(store.get_logs()) <= 20
        finally:
            stop.set()
            t.join()

    def test_timestamps_follow_insertion_order_with_slow_clock(self):
        entered = threading.Event()
        release = threading.Event()
        readings = iter([100, 101])

        def slow_clock():
            value = next(readings)
            if value == 100:
                entered.set()
                release.wait(timeout=2.0)
            return value

        store = LogStore(clock=slow_clock, mode=RuntimeMode.PRODUCTION)
        first = threading.Thread(target=store.info, args=("A",))
        first.start()
        assert entered.wait(timeout=2.0)

        second = threading.Thread(target=store.info, args=("B",))
        second.start()
        second.join(timeout=0.1)
        release.set()
        first.join(timeout=2.0)
        second.join(timeout=2.0)

        assert [(e.message, e.timestamp) for e in store.get_logs()] == [("A", 100), ("B", 101)]

    def test_parallel_writers_keep_timestamps_sorted(self):
        store = LogStore(max_logs=1000, mode=RuntimeMode.PRODUCTION)

        def writer(n):
            for i in range(100):
                store.info(f"{n}-{i}")

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stamps = [e.timestamp for e in store.get_logs()]
        assert len(stamps) == 400
        assert stamps == sorted(stamps)


class TestConsoleLevel:
    def test_existing_level_is_respected(self, caplog, clock):
        console = logging.getLogger(CONSOLE_LOGGER_NAME)
        previous = console.level
        console.setLevel(logging.WARNING)
        try:
            store = LogStore(mode=RuntimeMode.DEVELOPMENT, clock=clock)
            store.debug("hidden")
            store.warn("shown")
            assert console.level == logging.WARNING
            assert [r.levelname for r in _console_records(caplog)] == ["WARNING"]
        finally:
            console.setLevel(previous)
