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

"""Test suite for mongobulk."""
from __future__ import annotations

import unittest
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from mongobulk import MongoBulkClient
from mongobulk.limits import Limits

__all__ = ["MongoBulkTestCase", "MockClientTest", "sanitize_cmd", "unittest"]


def sanitize_cmd(cmd: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of `cmd` without the fields that differ between batches."""
    cp = dict(cmd)
    cp.pop("ops", None)
    cp.pop("nsInfo", None)
    return cp


class MongoBulkTestCase(unittest.TestCase):
    def assertEqualCommand(self, expected, actual, msg=None):
        self.assertEqual(sanitize_cmd(expected), sanitize_cmd(actual), msg)

    def assertNsInfo(self, command, namespaces, msg=None):
        self.assertEqual([entry["ns"] for entry in command["nsInfo"]], namespaces, msg)


class MockClientTest(MongoBulkTestCase):
    """Base class for tests that run bulk writes against a MockTransport."""

    limits: Optional[Limits] = None

    def setUp(self):
        from test.utils import MockTransport, OvertCommandListener

        self.transport = MockTransport(limits=self.limits)
        self.listener = OvertCommandListener()
        self.client = MongoBulkClient(self.transport, event_listeners=[self.listener])

    @contextmanager
    def fail_point(self, command_args: Mapping[str, Any]) -> Iterator[None]:
        """Make the transport fail commands, like the server's failCommand."""
        self.transport.configure_fail_point(command_args)
        try:
            yield
        finally:
            self.transport.configure_fail_point(None)
