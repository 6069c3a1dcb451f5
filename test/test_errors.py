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

import pickle
import sys
import traceback

sys.path[0:0] = [""]

from test import MongoBulkTestCase, unittest

from bson.errors import InvalidDocument
from mongobulk.errors import (
    AutoReconnect,
    ClientBulkWriteException,
    CursorError,
    DocumentTooLarge,
    ExecutionTimeout,
    MongoBulkError,
    NetworkTimeout,
    OperationFailure,
    WriteError,
)


class TestErrors(MongoBulkTestCase):
    def test_auto_reconnect(self):
        exc = AutoReconnect("not primary", {"errmsg": "error", "errorLabels": ["Label"]})
        self.assertEqual(exc.details, {"errmsg": "error", "errorLabels": ["Label"]})
        self.assertTrue(exc.has_error_label("Label"))
        self.assertFalse(exc.timeout)
        self.assertTrue(NetworkTimeout("timed out").timeout)

    def test_operation_failure(self):
        exc = OperationFailure("operation failure test", 10, {"errmsg": "error"})
        self.assertIn("full error", str(exc))
        try:
            raise exc
        except OperationFailure:
            self.assertIn("full error", traceback.format_exc())

    def test_unicode_strs_operation_failure(self):
        exc = OperationFailure("unicode \U0001f40d", 10, {"errmsg": "unicode \U0001f40d"})
        self.assertEqual(
            "unicode \U0001f40d, full error: {'errmsg': 'unicode \U0001f40d'}", str(exc)
        )

    def test_error_labels(self):
        exc = OperationFailure("error", 1, {"errorLabels": ["A"]})
        self.assertTrue(exc.has_error_label("A"))
        self.assertFalse(exc.has_error_label("B"))

    def test_timeout(self):
        self.assertTrue(ExecutionTimeout("time limit", 50).timeout)
        self.assertTrue(OperationFailure("time limit", 50).timeout)
        self.assertFalse(OperationFailure("other", 8).timeout)

    def test_document_too_large(self):
        self.assertTrue(issubclass(DocumentTooLarge, InvalidDocument))
        self.assertFalse(issubclass(DocumentTooLarge, MongoBulkError))

    def test_write_error(self):
        err_info = {"reason": "validation"}
        doc = {"idx": 3, "code": 121, "errmsg": "Document failed validation", "errInfo": err_info}
        exc = WriteError(doc, "db.coll", {"insert": -1, "document": {}})
        self.assertEqual(exc.index, 3)
        self.assertEqual(exc.code, 121)
        self.assertIs(exc.details, err_info)
        self.assertEqual(exc.namespace, "db.coll")
        self.assertEqual(exc.document, doc)
        self.assertIn("index=3", repr(exc))

    def test_cursor_error(self):
        cause = ExecutionTimeout("time limit", 50)
        exc = CursorError(cause, 5, "admin.$cmd.bulkWrite", 2)
        self.assertIs(exc.cause, cause)
        self.assertEqual(exc.code, 50)
        self.assertTrue(exc.timeout)
        self.assertIn("after 2 documents", str(exc))
        self.assertIsNone(CursorError(ValueError("x"), 5, "db.c", 0).code)

    def test_client_bulk_write_exception(self):
        details = {
            "error": ExecutionTimeout("time limit", 50),
            "writeErrors": [{"idx": 1, "code": 11000, "errmsg": "dup", "ns": "db.c", "op": {}}],
            "writeConcernErrors": [{"code": 64, "errmsg": "wtimeout"}],
            "nInserted": 1,
            "nAttempted": 2,
            "nTotal": 5,
        }
        exc = ClientBulkWriteException(details, verbose=False)
        self.assertEqual(exc.code, 65)
        self.assertTrue(exc.timeout)
        self.assertEqual(exc.unattempted, [2, 3, 4])
        self.assertEqual(exc.write_errors[0].index, 1)
        self.assertEqual(exc.write_errors[0].namespace, "db.c")
        self.assertEqual(exc.write_concern_errors[0].code, 64)
        self.assertEqual(exc.partial_result.inserted_count, 1)
        self.assertEqual(exc.partial_result.deleted_count, 0)

    def assertMongoBulkErrorEqual(self, exc1, exc2):
        self.assertEqual(exc1._message, exc2._message)
        self.assertEqual(exc1._error_labels, exc2._error_labels)
        self.assertEqual(exc1.args, exc2.args)
        self.assertEqual(str(exc1), str(exc2))

    def assertOperationFailureEqual(self, exc1, exc2):
        self.assertMongoBulkErrorEqual(exc1, exc2)
        self.assertEqual(exc1.code, exc2.code)
        self.assertEqual(exc1.details, exc2.details)

    def test_pickle_AutoReconnect(self):
        exc = AutoReconnect("not primary", {"errmsg": "error"})
        exc2 = pickle.loads(pickle.dumps(exc))
        self.assertMongoBulkErrorEqual(exc, exc2)
        self.assertEqual(exc.details, exc2.details)

    def test_pickle_OperationFailure(self):
        exc = OperationFailure("error", code=5, details={})
        self.assertOperationFailureEqual(exc, pickle.loads(pickle.dumps(exc)))

    def test_pickle_WriteError(self):
        exc = WriteError({"idx": 0, "code": 2, "errmsg": "bad"}, "db.c", {"delete": -1})
        exc2 = pickle.loads(pickle.dumps(exc))
        self.assertOperationFailureEqual(exc, exc2)
        self.assertEqual(exc2.namespace, "db.c")
        self.assertEqual(exc2.op, {"delete": -1})

    def test_pickle_CursorError(self):
        cause = OperationFailure("error", code=8, details={})
        exc = CursorError(cause, 7, "admin.$cmd.bulkWrite", 3)
        exc2 = pickle.loads(pickle.dumps(exc))
        self.assertMongoBulkErrorEqual(exc, exc2)
        self.assertOperationFailureEqual(cause, exc2.cause)
        self.assertEqual(exc2.documents_consumed, 3)

    def test_pickle_ClientBulkWriteException(self):
        exc = ClientBulkWriteException({"error": None, "nInserted": 2}, verbose=True)
        exc2 = pickle.loads(pickle.dumps(exc))
        self.assertOperationFailureEqual(exc, exc2)
        self.assertTrue(exc2.verbose)


if __name__ == "__main__":
    unittest.main()
