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

"""Test the option validators and the server limits."""
from __future__ import annotations

import sys

sys.path[0:0] = [""]

from test import unittest

from mongobulk import common
from mongobulk.errors import ConfigurationError, InvalidOperation
from mongobulk.limits import Limits


class TestValidators(unittest.TestCase):
    def test_validate_boolean(self):
        self.assertTrue(common.validate_boolean("ordered", True))
        self.assertRaises(TypeError, common.validate_boolean, "ordered", 1)
        self.assertIsNone(common.validate_boolean_or_none("bypass", None))

    def test_validate_integers(self):
        self.assertEqual(common.validate_positive_integer("n", 1), 1)
        self.assertRaises(ConfigurationError, common.validate_positive_integer, "n", 0)
        self.assertRaises(TypeError, common.validate_positive_integer, "n", True)
        self.assertEqual(common.validate_non_negative_integer("n", 0), 0)
        self.assertRaises(ConfigurationError, common.validate_non_negative_integer, "n", -1)

    def test_validate_timeout_or_none(self):
        self.assertIsNone(common.validate_timeout_or_none("timeout", None))
        self.assertEqual(common.validate_timeout_or_none("timeout", 2), 2.0)
        self.assertRaises(ValueError, common.validate_timeout_or_none, "timeout", -0.5)
        self.assertRaises(TypeError, common.validate_timeout_or_none, "timeout", "1")
        self.assertRaises(TypeError, common.validate_timeout_or_none, "timeout", False)

    def test_validate_namespace(self):
        self.assertEqual(common.validate_namespace("db.coll"), "db.coll")
        self.assertEqual(common.validate_namespace("db.coll.sub"), "db.coll.sub")
        for bad in ("db", "db.", ".coll", ""):
            self.assertRaises(InvalidOperation, common.validate_namespace, bad)
        self.assertRaises(InvalidOperation, common.validate_namespace, None)
        self.assertRaises(TypeError, common.validate_namespace, b"db.coll")


class TestLimits(unittest.TestCase):
    def test_defaults(self):
        limits = Limits()
        self.assertEqual(limits.max_write_batch_size, 100000)
        self.assertEqual(limits.max_message_size, 48000000)
        self.assertEqual(limits.max_bson_size, 16 * 1024 * 1024)
        self.assertEqual(limits.message_overhead, 1000)
        self.assertEqual(limits.max_batch_bytes, 48000000 - 1000)

    def test_from_hello(self):
        limits = Limits.from_hello(
            {"maxWriteBatchSize": 10, "maxMessageSizeBytes": 5000, "maxBsonObjectSize": 2000}
        )
        self.assertEqual(limits, Limits(10, 5000, 2000))
        self.assertEqual(Limits.from_hello({}), Limits())
        self.assertNotEqual(Limits.from_hello({"maxWriteBatchSize": 10}), Limits())

    def test_invalid(self):
        self.assertRaises(ConfigurationError, Limits, max_write_batch_size=0)
        self.assertRaises(TypeError, Limits, max_bson_size=1.5)
        self.assertRaises(ConfigurationError, Limits, max_message_size=1000)
        self.assertRaises(ConfigurationError, Limits, message_overhead=-1)

    def test_repr(self):
        self.assertEqual(
            repr(Limits(1, 2000, 3, 4)),
            "Limits(max_write_batch_size=1, max_message_size=2000, "
            "max_bson_size=3, message_overhead=4)",
        )


if __name__ == "__main__":
    unittest.main()
