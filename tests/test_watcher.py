"""Tests for the WatchLoop."""

from unittest.mock import MagicMock

import pytest

from kubehosts.errors import FileAccessError, ListError, SubscribeError
from kubehosts.models import WatchEvent
from kubehosts.reconciler import FileReconciler
from kubehosts.watcher import WatchLoop, WatchState, reconcile_cycle

from conftest import FakeCluster, make_record

LISTING = [
    make_record("web", "10.0.0.1", ["web.example.com"]),
    make_record("api", "10.0.0.1", ["api.example.com"]),
]
EXPECTED_BOOK = {"10.0.0.1": ["web.example.com", "api.example.com"]}


def event(kind, name="from-event"):
    return WatchEvent(type=kind, name=name)


class TestReconcileCycle:
    """Tests for reconcile_cycle."""

    def test_lists_aggregates_and_writes(self):
        """One cycle lists, aggregates and reconciles."""
        cluster = FakeCluster(listings=[LISTING])
        reconciler = MagicMock(spec=FileReconciler)

        book = reconcile_cycle(cluster, reconciler)

        assert book == EXPECTED_BOOK
        reconciler.reconcile.assert_called_once_with(EXPECTED_BOOK)

    def test_list_error_propagates(self):
        """Listing failures reach the caller and nothing is written."""
        cluster = FakeCluster(listings=[ListError("down")])
        reconciler = MagicMock(spec=FileReconciler)

        with pytest.raises(ListError):
            reconcile_cycle(cluster, reconciler)
        reconciler.reconcile.assert_not_called()


class TestWatchLoop:
    """Tests for WatchLoop."""

    @pytest.fixture
    def reconciler(self):
        """A reconciler that records calls."""
        return MagicMock(spec=FileReconciler)

    def test_only_added_and_modified_reconcile(self, reconciler):
        """Deletes are ignored; each qualifying event re-lists."""
        cluster = FakeCluster(
            listings=[LISTING],
            subscriptions=[[event("ADDED"), event("DELETED"), event("MODIFIED")]],
        )
        loop = WatchLoop(cluster, reconciler)

        with pytest.raises(SubscribeError):
            loop.run()

        assert cluster.list_calls == 2
        assert reconciler.reconcile.call_count == 2
        assert loop.reconciliations == 2
        for call in reconciler.reconcile.call_args_list:
            assert call.args == (EXPECTED_BOOK,)

    def test_uses_fresh_listing_for_each_event(self, reconciler):
        """The address book reflects the listing at event time."""
        second = [make_record("new", "10.0.0.2", ["new.example.com"])]
        cluster = FakeCluster(
            listings=[LISTING, second],
            subscriptions=[[event("ADDED"), event("MODIFIED")]],
        )

        with pytest.raises(SubscribeError):
            WatchLoop(cluster, reconciler).run()

        assert [c.args[0] for c in reconciler.reconcile.call_args_list] == [
            EXPECTED_BOOK,
            {"10.0.0.2": ["new.example.com"]},
        ]

    @pytest.mark.parametrize("kind", ["DELETED", "BOOKMARK", "ERROR", ""])
    def test_other_event_types_ignored(self, kind, reconciler):
        """Only ADDED and MODIFIED trigger a reconciliation."""
        cluster = FakeCluster(subscriptions=[[event(kind)]])

        with pytest.raises(SubscribeError):
            WatchLoop(cluster, reconciler).run()

        assert cluster.list_calls == 0
        reconciler.reconcile.assert_not_called()

    def test_resubscribes_after_stream_closes(self, reconciler):
        """A closed stream is replaced by a new subscription."""
        cluster = FakeCluster(
            listings=[LISTING],
            subscriptions=[[event("ADDED")], [], [event("MODIFIED")]],
        )
        loop = WatchLoop(cluster, reconciler)

        with pytest.raises(SubscribeError):
            loop.run()

        assert loop.subscriptions == 3
        assert cluster.watch_calls == 4
        assert loop.reconciliations == 2

    def test_subscribe_failure_is_fatal(self, reconciler):
        """A failure to open the first watch ends the loop immediately."""
        cluster = FakeCluster()
        loop = WatchLoop(cluster, reconciler)

        with pytest.raises(SubscribeError):
            loop.run()

        assert cluster.watch_calls == 1
        assert loop.subscriptions == 0
        assert loop.state == WatchState.SUBSCRIBING

    def test_list_failure_is_fatal(self, reconciler):
        """No error budget applies inside the stream."""
        cluster = FakeCluster(
            listings=[ListError("api down")],
            subscriptions=[[event("ADDED"), event("MODIFIED")]],
        )
        loop = WatchLoop(cluster, reconciler)

        with pytest.raises(ListError):
            loop.run()

        assert cluster.list_calls == 1
        assert cluster.watch_calls == 1
        assert loop.state == WatchState.STREAMING

    def test_write_failure_is_fatal(self, reconciler):
        """A file error during an event ends the loop."""
        reconciler.reconcile.side_effect = FileAccessError("read-only file system")
        cluster = FakeCluster(
            listings=[LISTING],
            subscriptions=[[event("ADDED"), event("MODIFIED")], [event("ADDED")]],
        )

        with pytest.raises(FileAccessError):
            WatchLoop(cluster, reconciler).run()

        assert reconciler.reconcile.call_count == 1
        assert cluster.watch_calls == 1

    def test_writes_real_file(self, hosts_file):
        """End to end against a file on disk."""
        cluster = FakeCluster(listings=[LISTING], subscriptions=[[event("ADDED")]])
        reconciler = FileReconciler(str(hosts_file))

        with pytest.raises(SubscribeError):
            WatchLoop(cluster, reconciler).run()

        assert hosts_file.read_bytes().endswith(b"10.0.0.1\t web.example.com api.example.com\n")
