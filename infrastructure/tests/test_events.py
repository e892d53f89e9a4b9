"""
Event Bus Tests
================

Unit tests for the in-memory and Redis event buses.
"""

import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from infrastructure.events import InMemoryEventBus, RedisEventBus, get_event_bus, reset_event_bus


class InMemoryEventBusTest(TestCase):
    def setUp(self):
        self.bus = InMemoryEventBus()

    def test_publish_records_envelope(self):
        self.bus.publish("order.placed", {"order_id": "abc"})

        self.assertEqual(len(self.bus.published), 1)
        message = self.bus.published[0]
        self.assertEqual(message["event_type"], "order.placed")
        self.assertEqual(message["payload"], {"order_id": "abc"})
        self.assertIn("occurred_at", message)

    def test_subscribers_receive_only_their_events(self):
        handler = MagicMock()
        self.bus.subscribe("order.cancelled", handler)

        self.bus.publish("order.placed", {"order_id": "1"})
        self.bus.publish("order.cancelled", {"order_id": "2"})

        handler.assert_called_once()
        self.assertEqual(handler.call_args[0][0]["payload"], {"order_id": "2"})
        self.assertEqual(len(self.bus.events_of_type("order.placed")), 1)

    def test_handler_failure_does_not_propagate(self):
        failing = MagicMock(side_effect=RuntimeError("boom"))
        following = MagicMock()
        self.bus.subscribe("order.placed", failing)
        self.bus.subscribe("order.placed", following)

        self.bus.publish("order.placed", {})

        following.assert_called_once()

    def test_clear(self):
        self.bus.publish("order.placed", {})
        self.bus.clear()

        self.assertEqual(self.bus.published, [])


class RedisEventBusTest(TestCase):
    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_publish_to_prefixed_channel(self, mock_from_url):
        client = MagicMock()
        mock_from_url.return_value = client
        bus = RedisEventBus(redis_url="redis://example:6379/1")

        bus.publish("order.status_changed", {"order_id": "abc", "new_status": "shipped"})

        mock_from_url.assert_called_once_with("redis://example:6379/1")
        channel, body = client.publish.call_args[0]
        self.assertEqual(channel, "events.order.status_changed")
        message = json.loads(body)
        self.assertEqual(message["event_type"], "order.status_changed")
        self.assertEqual(message["payload"]["new_status"], "shipped")

    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_publish_failure_is_logged_not_raised(self, mock_from_url):
        client = MagicMock()
        client.publish.side_effect = ConnectionError("redis down")
        mock_from_url.return_value = client

        RedisEventBus().publish("order.placed", {"order_id": "abc"})

    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_handle_message_dispatches_envelope(self, mock_from_url):
        bus = RedisEventBus()
        handler = MagicMock()
        bus.subscribe("order.placed", handler)
        envelope = {"event_type": "order.placed", "occurred_at": "2024-01-01T00:00:00", "payload": {"id": 1}}

        bus._handle_message({"type": "message", "data": json.dumps(envelope)})

        handler.assert_called_once_with(envelope)

    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_malformed_message_is_discarded(self, mock_from_url):
        bus = RedisEventBus()
        handler = MagicMock()
        bus.subscribe("order.placed", handler)

        bus._handle_message({"type": "message", "data": "not json"})
        bus._handle_message({"type": "subscribe", "data": 1})

        handler.assert_not_called()

    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_publish_serializes_decimals(self, mock_from_url):
        client = MagicMock()
        mock_from_url.return_value = client

        RedisEventBus().publish("order.placed", {"grand_total": Decimal("240.00")})

        body = client.publish.call_args[0][1]
        self.assertEqual(json.loads(body)["payload"]["grand_total"], "240.00")


class GetEventBusTest(TestCase):
    def setUp(self):
        reset_event_bus()

    def tearDown(self):
        reset_event_bus()

    @override_settings(EVENT_BUS_BACKEND="memory")
    def test_memory_backend_is_cached(self):
        bus = get_event_bus()

        self.assertIsInstance(bus, InMemoryEventBus)
        self.assertIs(get_event_bus(), bus)

    @override_settings(EVENT_BUS_BACKEND="redis")
    @patch("infrastructure.events.redis_event_bus.redis.from_url")
    def test_redis_backend(self, mock_from_url):
        self.assertIsInstance(get_event_bus(), RedisEventBus)

    @override_settings(EVENT_BUS_BACKEND="kafka")
    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            get_event_bus()
