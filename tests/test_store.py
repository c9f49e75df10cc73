"""Tests for the reactive Store."""

import logging

import pytest

from torrent_panel.store import Store


class TestGetSet:
    """Tests for reading and replacing the value."""

    def test_get_returns_initial_value(self) -> None:
        """Test that a new store holds its initial value."""
        assert Store(42).get() == 42

    def test_set_replaces_value(self) -> None:
        """Test that set replaces the whole value."""
        store = Store({"a": 1})
        store.set({"b": 2})
        assert store.get() == {"b": 2}

    def test_update_merges_into_new_value(self) -> None:
        """Test read-copy-merge through update."""
        store = Store({"a": 1})
        before = store.get()
        store.update(lambda current: {**current, "b": 2})
        assert store.get() == {"a": 1, "b": 2}
        assert before == {"a": 1}


class TestSubscribe:
    """Tests for notifications."""

    def test_each_subscriber_notified_once_in_order(self) -> None:
        """Test that every subscriber gets exactly one call with the new value."""
        store = Store(0)
        received: list[tuple[str, int]] = []
        store.subscribe(lambda v: received.append(("first", v)))
        store.subscribe(lambda v: received.append(("second", v)))

        store.set(7)

        assert received == [("first", 7), ("second", 7)]

    def test_unsubscribe_stops_notifications(self) -> None:
        """Test that an unsubscribed callback is no longer called."""
        store = Store(0)
        received: list[int] = []
        unsubscribe = store.subscribe(received.append)
        store.set(1)
        unsubscribe()
        store.set(2)
        assert received == [1]

    def test_unsubscribe_twice_is_noop(self) -> None:
        """Test that the unsubscribe function is idempotent."""
        store = Store(0)
        unsubscribe = store.subscribe(lambda v: None)
        unsubscribe()
        unsubscribe()
        assert store.subscriber_count == 0

    def test_same_callback_subscribed_twice(self) -> None:
        """Test that each subscription is independent."""
        store = Store(0)
        received: list[int] = []
        first = store.subscribe(received.append)
        store.subscribe(received.append)
        first()
        store.set(3)
        assert received == [3]

    def test_unsubscribe_during_own_callback(self) -> None:
        """Test that a subscriber removing itself gets no further notifications."""
        store = Store(0)
        received: list[int] = []

        def once(value: int) -> None:
            received.append(value)
            unsubscribe()

        unsubscribe = store.subscribe(once)
        store.set(1)
        store.set(2)
        assert received == [1]

    def test_subscriber_added_during_notification_waits(self) -> None:
        """Test that a subscriber added mid-notification misses that value."""
        store = Store(0)
        late: list[int] = []

        def adder(value: int) -> None:
            if value == 1:
                store.subscribe(late.append)

        store.subscribe(adder)
        store.set(1)
        assert late == []
        store.set(2)
        assert late == [2]

    def test_subscriber_removed_by_another_is_skipped(self) -> None:
        """Test that removal during notification takes effect immediately."""
        store = Store(0)
        received: list[int] = []
        handles = {}

        def remover(value: int) -> None:
            handles["victim"]()

        store.subscribe(remover)
        handles["victim"] = store.subscribe(received.append)
        store.set(1)
        assert received == []

    def test_failing_subscriber_does_not_block_others(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that one broken consumer does not starve the rest."""
        store = Store(0, name="numbers")
        received: list[int] = []

        def broken(value: int) -> None:
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(received.append)

        with caplog.at_level(logging.ERROR):
            store.set(5)

        assert received == [5]
        assert "Subscriber of numbers failed" in caplog.text
