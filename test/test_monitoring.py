# Copyright 2024-present MongoDB, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
from __future__ import annotations

import datetime
import io
import sys

sys.path[0:0] = [""]

from test import MockClientTest, unittest
from test.utils import EventListener, MockTransport, bulk_write_reply
from unittest.mock import patch

from mongobulk import MongoBulkClient, monitoring
from mongobulk.errors import ClientBulkWriteException
from mongobulk.operations import InsertOne


class TestCommandMonitoring(MockClientTest):
    def test_started_simple(self):
        self.client.bulk_write([InsertOne({"_id": 1}, namespace="db.coll")])
        started = self.listener.started_events[0]
        succeeded = self.listener.succeeded_events[0]
        self.assertIsInstance(started, monitoring.CommandStartedEvent)
        self.assertIsInstance(succeeded, monitoring.CommandSucceededEvent)
        self.assertEqual(started.command_name, "bulkWrite")
        self.assertEqual(started.database_name, "admin")
        self.assertEqual(started.connection_id, ("localhost", 27017))
        self.assertEqual(started.command["ops"], [{"insert": 0, "document": {"_id": 1}}])
        self.assertEqual(succeeded.command_name, "bulkWrite")
        self.assertEqual(succeeded.database_name, "admin")
        self.assertEqual(succeeded.request_id, started.request_id)
        self.assertEqual(succeeded.operation_id, started.operation_id)
        self.assertEqual(succeeded.reply["nInserted"], 1)
        self.assertGreaterEqual(succeeded.duration_micros, 0)
        self.assertEqual(self.listener.failed_events, [])

    def test_failed(self):
        self.transport.replies.append({"ok": 0, "code": 8, "errmsg": "UnknownError"})
        with self.assertRaises(ClientBulkWriteException):
            self.client.bulk_write([InsertOne({"_id": 1}, namespace="db.coll")])
        self.assertEqual(len(self.listener.started_events), 1)
        self.assertEqual(self.listener.succeeded_events, [])
        failed = self.listener.failed_events[0]
        self.assertIsInstance(failed, monitoring.CommandFailedEvent)
        self.assertEqual(failed.command_name, "bulkWrite")
        self.assertEqual(failed.failure, {"ok": 0, "code": 8, "errmsg": "UnknownError"})
        self.assertEqual(failed.operation_id, self.listener.started_events[0].operation_id)

    def test_operation_id_shared_by_cursor_commands(self):
        self.transport.replies.append(
            bulk_write_reply([{"ok": 0, "idx": 0, "code": 2, "errmsg": "bad"}], cursor_id=4)
        )
        with self.assertRaises(ClientBulkWriteException):
            self.client.bulk_write([InsertOne({}, namespace="db.coll")])
        self.assertEqual(self.listener.started_command_names(), ["bulkWrite", "killCursors"])
        self.assertEqual(len({e.operation_id for e in self.listener.events}), 1)

    def test_operation_id_differs_between_calls(self):
        with patch("mongobulk.client_bulk._randint", side_effect=[1, 2]):
            self.client.bulk_write([InsertOne({}, namespace="db.coll")])
            self.client.bulk_write([InsertOne({}, namespace="db.coll")])
        self.assertEqual([e.operation_id for e in self.listener.started_events], [1, 2])

    def test_listener_errors_are_printed(self):
        class BadListener(EventListener):
            def started(self, event):
                raise ValueError("listener bug")

        listener = BadListener()
        client = MongoBulkClient(MockTransport(), event_listeners=[listener])
        with patch("sys.stderr", new_callable=io.StringIO) as stderr:
            result = client.bulk_write([InsertOne({}, namespace="db.coll")])
        self.assertEqual(result.inserted_count, 1)
        self.assertIn("listener bug", stderr.getvalue())
        self.assertEqual(len(listener.succeeded_events), 1)

    def test_no_listeners(self):
        client = MongoBulkClient(MockTransport())
        self.assertEqual(client.event_listeners, [])
        self.assertFalse(client._event_listeners.enabled_for_commands)

    def test_invalid_listeners(self):
        self.assertRaises(TypeError, MongoBulkClient, MockTransport(), event_listeners=object())
        self.assertRaises(TypeError, MongoBulkClient, MockTransport(), event_listeners=[object()])


class TestCommandEvents(unittest.TestCase):
    def test_started_event(self):
        event = monitoring.CommandStartedEvent(
            {"bulkWrite": 1, "ops": []}, "admin", 7, ("localhost", 27017), 3
        )
        self.assertEqual(event.command_name, "bulkWrite")
        self.assertEqual(event.request_id, 7)
        self.assertEqual(event.operation_id, 3)
        self.assertIn("command: 'bulkWrite'", repr(event))
        self.assertRaises(ValueError, monitoring.CommandStartedEvent, {}, "admin", 7, None, 3)

    def test_succeeded_event_duration(self):
        event = monitoring.CommandSucceededEvent(
            datetime.timedelta(seconds=1), {"ok": 1}, "getMore", 7, ("localhost", 27017), 3
        )
        self.assertEqual(event.duration_micros, 1000000)
        self.assertEqual(event.database_name, "")

    def test_publish_without_operation_id(self):
        listener = EventListener()
        listeners = monitoring._EventListeners([listener])
        listeners.publish_command_start({"ping": 1}, "admin", 11, ("localhost", 27017))
        self.assertEqual(listener.started_events[0].operation_id, 11)


if __name__ == "__main__":
    unittest.main()
