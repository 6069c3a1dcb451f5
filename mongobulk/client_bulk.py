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

"""The client-level bulk write operations interface."""
from __future__ import annotations

import copy
from typing import (
    TYPE_CHECKING,
    Any,
    Mapping,
    MutableMapping,
    Optional,
    Union,
)

from bson.objectid import ObjectId
from bson.raw_bson import RawBSONDocument
from mongobulk import _csot, common
from mongobulk._client_bulk_shared import (
    _merge_command,
    _new_full_result,
    _record_result,
    _throw_client_bulk_write_exception,
)
from mongobulk.command_cursor import _BulkWriteResultsCursor
from mongobulk.common import (
    validate_is_document_type,
    validate_ok_for_replace,
    validate_ok_for_update,
)
from mongobulk.errors import ExecutionTimeout, InvalidOperation, OperationCancelled
from mongobulk.logger import _BULK_LOGGER, _BulkStatusMessage, _debug_log
from mongobulk.message import _Batch, _ClientBulkWriteContext, _plan_batches, _randint
from mongobulk.results import ClientBulkWriteResult

if TYPE_CHECKING:
    from mongobulk.mongo_client import MongoBulkClient
    from mongobulk.typings import _DocumentOut, _Op, _Pipeline


class _ClientBulk:
    """The private guts of the client-level bulk write API."""

    def __init__(
        self,
        client: MongoBulkClient,
        ordered: bool = True,
        bypass_document_validation: Optional[bool] = None,
        comment: Optional[Any] = None,
        let: Optional[Any] = None,
        verbose_results: bool = False,
    ) -> None:
        """Initialize a _ClientBulk instance."""
        self.client = client
        self.let = let
        if self.let is not None:
            common.validate_is_document_type("let", self.let)
        self.ordered = common.validate_boolean("ordered", ordered)
        self.bypass_doc_val = common.validate_boolean_or_none(
            "bypass_document_validation", bypass_document_validation
        )
        self.comment = comment
        self.verbose_results = common.validate_boolean("verbose_results", verbose_results)
        self.ops: list[_Op] = []
        self.namespaces: list[str] = []
        self.total_ops: int = 0
        self.executed = False

    def add_insert(self, namespace: str, document: _DocumentOut) -> None:
        """Add an insert document to the list of ops."""
        validate_is_document_type("document", document)
        # Generate ObjectId client side, on a copy of the caller's document.
        if not (isinstance(document, RawBSONDocument) or "_id" in document):
            document = copy.copy(document)
            document["_id"] = ObjectId()
        cmd = {"insert": -1, "document": document}
        self.ops.append(("insert", cmd))
        self.namespaces.append(namespace)
        self.total_ops += 1

    def add_update(
        self,
        namespace: str,
        selector: Mapping[str, Any],
        update: Union[Mapping[str, Any], _Pipeline],
        multi: bool,
        upsert: Optional[bool] = None,
        collation: Optional[Mapping[str, Any]] = None,
        array_filters: Optional[list[Mapping[str, Any]]] = None,
        hint: Union[str, Mapping[str, Any], None] = None,
        sort: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Create an update document and add it to the list of ops."""
        validate_ok_for_update(update)
        cmd: dict[str, Any] = {
            "update": -1,
            "filter": selector,
            "updateMods": update,
            "multi": multi,
        }
        if upsert is not None:
            cmd["upsert"] = upsert
        if array_filters is not None:
            cmd["arrayFilters"] = array_filters
        if hint is not None:
            cmd["hint"] = hint
        if collation is not None:
            cmd["collation"] = collation
        if sort is not None:
            cmd["sort"] = sort
        self.ops.append(("update", cmd))
        self.namespaces.append(namespace)
        self.total_ops += 1

    def add_replace(
        self,
        namespace: str,
        selector: Mapping[str, Any],
        replacement: Mapping[str, Any],
        upsert: Optional[bool] = None,
        collation: Optional[Mapping[str, Any]] = None,
        hint: Union[str, Mapping[str, Any], None] = None,
        sort: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Create a replace document and add it to the list of ops."""
        validate_ok_for_replace(replacement)
        cmd: dict[str, Any] = {
            "update": -1,
            "filter": selector,
            "updateMods": replacement,
            "multi": False,
        }
        if upsert is not None:
            cmd["upsert"] = upsert
        if hint is not None:
            cmd["hint"] = hint
        if collation is not None:
            cmd["collation"] = collation
        if sort is not None:
            cmd["sort"] = sort
        self.ops.append(("replace", cmd))
        self.namespaces.append(namespace)
        self.total_ops += 1

    def add_delete(
        self,
        namespace: str,
        selector: Mapping[str, Any],
        multi: bool,
        collation: Optional[Mapping[str, Any]] = None,
        hint: Union[str, Mapping[str, Any], None] = None,
    ) -> None:
        """Create a delete document and add it to the list of ops."""
        cmd: dict[str, Any] = {"delete": -1, "filter": selector, "multi": multi}
        if hint is not None:
            cmd["hint"] = hint
        if collation is not None:
            cmd["collation"] = collation
        self.ops.append(("delete", cmd))
        self.namespaces.append(namespace)
        self.total_ops += 1

    def _bulk_write_command(self) -> dict[str, Any]:
        """Construct the server command, specifying the relevant options."""
        cmd: dict[str, Any] = {"bulkWrite": 1}
        cmd["errorsOnly"] = not self.verbose_results
        cmd["ordered"] = self.ordered
        if self.bypass_doc_val is not None:
            cmd["bypassDocumentValidation"] = self.bypass_doc_val
        if self.comment:
            cmd["comment"] = self.comment
        if self.let:
            cmd["let"] = self.let
        return cmd

    def write_command(
        self,
        bwc: _ClientBulkWriteContext,
        cmd: MutableMapping[str, Any],
        batch: _Batch,
    ) -> dict[str, Any]:
        """Send one batch. Failures of the whole command are returned under
        the ``error`` key rather than raised.
        """
        try:
            reply = bwc.write_command(cmd, batch)
        except Exception as exc:
            # Top-level error will be embedded in ClientBulkWriteException.
            return {"error": exc}
        return dict(reply)

    def _process_results_cursor(
        self,
        bwc: _ClientBulkWriteContext,
        full_result: MutableMapping[str, Any],
        result: MutableMapping[str, Any],
        batch: _Batch,
        cancellation: Optional[Any],
    ) -> None:
        """Internal helper for processing the server reply command cursor."""
        if not result.get("cursor"):
            return
        cmd_cursor = _BulkWriteResultsCursor(
            bwc,
            result["cursor"],
            comment=self.comment,
            cancellation=cancellation,
        )
        # Iterate the cursor to get individual write results.
        try:
            for doc in cmd_cursor:
                if not doc["ok"]:
                    result["writeErrors"].append(doc)
                    if self.ordered:
                        break
                elif self.verbose_results:
                    # Record individual write result.
                    _record_result(self.ops, batch.offset, full_result, doc)
        except Exception as exc:
            # The error becomes the top-level error of the bulk write.
            result["error"] = exc
        finally:
            if cmd_cursor.alive:
                cmd_cursor.close()

    def _execute_command(
        self,
        session: Optional[Any],
        op_id: int,
        batches: list[_Batch],
        full_result: MutableMapping[str, Any],
        cancellation: Optional[Any],
    ) -> None:
        """Internal helper for executing batches of bulkWrite commands."""
        bwc = _ClientBulkWriteContext(
            "admin",
            "bulkWrite",
            self.client.transport,
            op_id,
            self.client._event_listeners,
            session,
        )

        for batch in batches:
            try:
                _csot.check(cancellation)
            except (ExecutionTimeout, OperationCancelled) as exc:
                full_result["error"] = exc
                break

            cmd = self._bulk_write_command()
            full_result["nAttempted"] += len(batch)
            result = self.write_command(bwc, cmd, batch)

            # Top-level server/network error.
            if result.get("error"):
                _merge_command(self.ops, self.namespaces, batch.offset, full_result, result)
                break

            result["error"] = None
            result["writeErrors"] = []

            # Process the server reply as a command cursor.
            self._process_results_cursor(bwc, full_result, result, batch, cancellation)

            # Merge this batch's results with the full results.
            _merge_command(self.ops, self.namespaces, batch.offset, full_result, result)

            # We halt execution if we hit a top-level error,
            # or an individual error in an ordered bulk write.
            if full_result["error"] or (self.ordered and full_result["writeErrors"]):
                break

        if full_result["nAttempted"] < self.total_ops:
            _debug_log(
                _BULK_LOGGER,
                message=_BulkStatusMessage.HALTED,
                operationId=op_id,
                nAttempted=full_result["nAttempted"],
                totalOps=self.total_ops,
                error=repr(full_result["error"]) if full_result["error"] else None,
            )

    def execute_command(
        self,
        session: Optional[Any],
        cancellation: Optional[Any] = None,
    ) -> MutableMapping[str, Any]:
        """Plan every batch, then send them one at a time."""
        full_result = _new_full_result(self.total_ops)
        op_id = _randint()
        limits = self.client.transport.limits
        # Raises DocumentTooLarge before anything is sent.
        batches = _plan_batches(
            self.ops, self.namespaces, limits, op_id, self.client._encoded_size
        )
        if batches:
            self._execute_command(session, op_id, batches, full_result, cancellation)

        if full_result["error"] or full_result["writeErrors"] or full_result["writeConcernErrors"]:
            _throw_client_bulk_write_exception(full_result, self.verbose_results)
        return full_result

    def execute(
        self,
        session: Optional[Any],
        cancellation: Optional[Any] = None,
    ) -> ClientBulkWriteResult:
        """Execute operations."""
        if self.executed:
            raise InvalidOperation("Bulk operations can only be executed once.")
        self.executed = True
        result = self.execute_command(session, cancellation)
        return ClientBulkWriteResult(result, self.verbose_results)
