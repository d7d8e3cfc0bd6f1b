"""Tests for snapshot subscriptions and their server-sent event rendering."""

import json
import threading
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from bucketly.core.realtime import (
    ADDED,
    MODIFIED,
    ChangeEvent,
    Subscription,
    event_stream,
)


class FakeTarget:
    """Captures the snapshot callback the way a query or document would."""

    def __init__(self):
        self.callback = None
        self.watch = MagicMock()

    def on_snapshot(self, callback):
        self.callback = callback
        return self.watch

    def push(self, *changes):
        self.callback([], list(changes), None)


def change(kind, doc_id, data):
    document = MagicMock()
    document.id = doc_id
    document.to_dict.return_value = data
    return SimpleNamespace(type=SimpleNamespace(name=kind.upper()), document=document)


class SubscriptionTestCase(unittest.TestCase):
    def setUp(self):
        self.target = FakeTarget()

    def test_initial_snapshot_is_skipped(self):
        subscription = Subscription(self.target)
        self.target.push(change(ADDED, "n1", {"title": "old"}))
        self.target.push(change(ADDED, "n2", {"title": "new"}))

        event = subscription.next_event(timeout=0.1)
        self.assertEqual(event, ChangeEvent(ADDED, "n2", {"title": "new"}))
        self.assertIsNone(subscription.next_event(timeout=0.01))

    def test_initial_snapshot_can_be_delivered(self):
        subscription = Subscription(self.target, skip_initial=False)
        self.target.push(change(ADDED, "n1", {}))
        self.assertEqual(subscription.next_event(timeout=0.1).doc_id, "n1")

    def test_kinds_filter(self):
        subscription = Subscription(self.target, kinds=(MODIFIED,))
        self.target.push()
        self.target.push(change(ADDED, "a", {}), change(MODIFIED, "b", {"x": 1}))
        self.assertEqual(subscription.next_event(timeout=0.1).doc_id, "b")
        self.assertIsNone(subscription.next_event(timeout=0.01))

    def test_transform_errors_drop_the_change(self):
        def transform(doc_id, data):
            if doc_id == "bad":
                raise ValueError("boom")
            return {**data, "seen": True}

        subscription = Subscription(self.target, transform=transform)
        self.target.push()
        self.target.push(change(ADDED, "bad", {}), change(ADDED, "good", {}))
        event = subscription.next_event(timeout=0.1)
        self.assertEqual(event.doc_id, "good")
        self.assertTrue(event.data["seen"])

    def test_unsubscribe_is_idempotent_and_stops_delivery(self):
        subscription = Subscription(self.target)
        self.target.push()
        subscription.unsubscribe()
        subscription.unsubscribe()

        self.target.watch.unsubscribe.assert_called_once()
        self.assertTrue(subscription.closed)
        self.target.push(change(ADDED, "late", {}))
        self.assertIsNone(subscription.next_event(timeout=0.01))

    def test_iteration_ends_after_unsubscribe(self):
        with Subscription(self.target) as subscription:
            self.target.push()
            self.target.push(change(ADDED, "a", {}))
            iterator = iter(subscription)
            self.assertEqual(next(iterator).doc_id, "a")
        self.assertEqual(list(iterator), [])

    def test_every_reader_sees_the_end_of_a_closed_subscription(self):
        subscription = Subscription(self.target)
        subscription.unsubscribe()
        self.assertIsNone(subscription.next_event(timeout=0.1))

        drained = []
        reader = threading.Thread(target=lambda: drained.extend(subscription))
        reader.start()
        reader.join(timeout=1)

        self.assertFalse(reader.is_alive())
        self.assertEqual(drained, [])
        self.assertEqual(list(subscription), [])


def test_event_stream_renders_events_and_keep_alives():
    target = FakeTarget()
    subscription = Subscription(target)
    target.push()
    target.push(change(ADDED, "n1", {"title": "Hello"}))

    stream = event_stream(subscription, heartbeat=0.01)
    assert next(stream) == ": connected\n\n"

    frame = next(stream)
    header, data = frame.strip().split("\n")
    assert header == "event: added"
    assert json.loads(data[len("data: "):]) == {"id": "n1", "title": "Hello"}

    assert next(stream) == ": keep-alive\n\n"
    stream.close()
    target.watch.unsubscribe.assert_called_once()
