"""Tests for stilo.observability — event log and stack collector."""

import threading

from stilo.observability.collector import StackCollector
from stilo.observability.events import (
    BuildFinished,
    ClientConnected,
    ClientDisconnected,
    DeliveryFailed,
    MessageBroadcast,
    TreeRebuilt,
    WatcherFailed,
    now_ns,
)
from stilo.observability.log import EventLog


def _rebuilt(path: str) -> TreeRebuilt:
    return TreeRebuilt(
        trigger_path=path, change_kind="file-added", entries=2,
        duration_ms=0.1, timestamp_ns=now_ns(),
    )


# ---------------------------------------------------------------------------
# EventLog
# ---------------------------------------------------------------------------


class TestEventLog:
    """Tests for the event log store."""

    def test_append_and_len(self) -> None:
        log = EventLog()
        assert len(log) == 0
        log.append(_rebuilt("a.html"))
        assert len(log) == 1

    def test_max_events_enforced(self) -> None:
        log = EventLog(max_events=5)
        for i in range(10):
            log.append(_rebuilt(f"{i}.html"))
        assert len(log) == 5
        assert log.query(limit=1)[0].trigger_path == "9.html"

    def test_latest_by_type(self) -> None:
        log = EventLog()
        assert log.latest(TreeRebuilt) is None
        log.append(_rebuilt("a.html"))
        log.append(_rebuilt("b.html"))
        log.append(ClientConnected(client_id="c1", timestamp_ns=now_ns()))

        latest = log.latest(TreeRebuilt)
        assert isinstance(latest, TreeRebuilt)
        assert latest.trigger_path == "b.html"

    def test_query_by_type(self) -> None:
        log = EventLog()
        log.append(_rebuilt("a.html"))
        log.append(ClientConnected(client_id="c1", timestamp_ns=now_ns()))

        (event,) = log.query(event_type=ClientConnected)
        assert event.client_id == "c1"

    def test_query_most_recent_first_with_limit(self) -> None:
        log = EventLog()
        for i in range(5):
            log.append(_rebuilt(f"{i}.html"))
        results = log.query(limit=2)
        assert [e.trigger_path for e in results] == ["4.html", "3.html"]

    def test_query_by_path(self) -> None:
        log = EventLog()
        log.append(_rebuilt("notes/a.html"))
        log.append(_rebuilt("b.html"))
        log.append(BuildFinished(
            source="src/style.scss", outcome="success", returncode=0,
            duration_ms=1.0, timestamp_ns=now_ns(),
        ))

        assert len(log.query(path="notes/")) == 1
        assert len(log.query(path="style.scss")) == 1

    def test_query_since(self) -> None:
        log = EventLog()
        for path, ts in (("old.html", 10), ("new.html", 100)):
            log.append(TreeRebuilt(
                trigger_path=path, change_kind="file-changed", entries=1,
                duration_ms=0.1, timestamp_ns=ts,
            ))

        (event,) = log.query(since_ns=50)
        assert event.trigger_path == "new.html"

    def test_stats(self) -> None:
        log = EventLog(max_events=50)
        log.append(_rebuilt("a.html"))
        log.append(_rebuilt("b.html"))
        log.append(ClientConnected(client_id="c1", timestamp_ns=now_ns()))

        stats = log.stats()
        assert stats["total"] == 3
        assert stats["max_events"] == 50
        assert stats["by_type"] == {"TreeRebuilt": 2, "ClientConnected": 1}
        assert stats["last_rebuild"] == {"trigger_path": "b.html", "entries": 2}
        assert stats["last_build"] is None

    def test_stats_last_build_outcome(self) -> None:
        log = EventLog()
        for outcome in ("success", "failure"):
            log.append(BuildFinished(
                source="src/style.scss", outcome=outcome, returncode=1,
                duration_ms=1.0, timestamp_ns=now_ns(),
            ))
        stats = log.stats()
        assert stats["last_build"] == "failure"
        assert stats["last_rebuild"] is None

    def test_concurrent_append(self) -> None:
        log = EventLog()

        def _writer(n: int) -> None:
            for i in range(100):
                log.append(_rebuilt(f"{n}-{i}.html"))

        threads = [threading.Thread(target=_writer, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(log) == 400


# ---------------------------------------------------------------------------
# StackCollector
# ---------------------------------------------------------------------------


class TestStackCollector:
    """Tests for the typed recording methods."""

    def test_default_log(self) -> None:
        assert isinstance(StackCollector().log, EventLog)

    def test_record_passthrough(self) -> None:
        log = EventLog()
        collector = StackCollector(log)
        event = ClientConnected(client_id="raw", timestamp_ns=now_ns())
        collector.record(event)
        assert log.latest(ClientConnected) is event

    def test_record_rebuild(self) -> None:
        collector = StackCollector()
        collector.record_rebuild("notes", change_kind="dir-added", entries=3, duration_ms=1.5)
        (event,) = collector.log.query(event_type=TreeRebuilt)
        assert event.trigger_path == "notes"
        assert event.change_kind == "dir-added"
        assert event.entries == 3

    def test_record_rebuild_default_kind(self) -> None:
        collector = StackCollector()
        collector.record_rebuild("")
        (event,) = collector.log.query(event_type=TreeRebuilt)
        assert event.change_kind == "snapshot"

    def test_record_broadcast(self) -> None:
        collector = StackCollector()
        collector.record_broadcast("fileChanged", clients_notified=2, clients_failed=1, path="a.html")
        (event,) = collector.log.query(event_type=MessageBroadcast)
        assert (event.clients_notified, event.clients_failed, event.path) == (2, 1, "a.html")

    def test_record_delivery_failure(self) -> None:
        collector = StackCollector()
        collector.record_delivery_failure("c1", "styleChanged", "stalled")
        (event,) = collector.log.query(event_type=DeliveryFailed)
        assert event.reason == "stalled"

    def test_record_connection_lifecycle(self) -> None:
        collector = StackCollector()
        collector.record_connect("c1")
        collector.record_disconnect("c1")
        assert collector.log.query(event_type=ClientConnected)[0].client_id == "c1"
        assert collector.log.query(event_type=ClientDisconnected)[0].client_id == "c1"

    def test_record_watcher_error(self) -> None:
        collector = StackCollector()
        collector.record_watcher_error("samples", "inotify limit reached")
        (event,) = collector.log.query(event_type=WatcherFailed)
        assert event.source == "samples"

    def test_record_build(self) -> None:
        collector = StackCollector()
        collector.record_build("", outcome="failure", returncode=1, duration_ms=12.0)
        (event,) = collector.log.query(event_type=BuildFinished)
        assert event.outcome == "failure"
        assert event.returncode == 1
