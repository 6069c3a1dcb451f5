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

"""Tools for splitting client-level bulk writes into ``bulkWrite`` commands.

.. warning:: This module is not part of the public API.
"""
from __future__ import annotations

import random
from typing import (
    TYPE_CHECKING,
    Any,
    Mapping,
    MutableMapping,
    NoReturn,
    Optional,
    Sequence,
)

import bson
from mongobulk.common import COMMAND_OVERHEAD
from mongobulk.errors import DocumentTooLarge
from mongobulk.logger import _BULK_LOGGER, _BulkStatusMessage, _debug_log
from mongobulk.network import command

if TYPE_CHECKING:
    from mongobulk.limits import Limits
    from mongobulk.monitoring import _EventListeners
    from mongobulk.transport import Transport
    from mongobulk.typings import _EncodedSize, _Op

MAX_INT32 = 2147483647
MIN_INT32 = -2147483648


def _randint() -> int:
    """Generate a pseudo random 32 bit integer."""
    return random.randint(MIN_INT32, MAX_INT32)  # noqa: S311


def _default_encoded_size(doc: Mapping[str, Any]) -> int:
    """The encoded BSON size of `doc`, in bytes."""
    return len(bson.encode(doc))


def _raise_document_too_large(operation: str, doc_size: int, max_size: int) -> NoReturn:
    """Internal helper for raising DocumentTooLarge."""
    if operation in ("insert", "replace"):
        raise DocumentTooLarge(
            "BSON document too large (%d bytes)"
            " - the connected server supports"
            " BSON document sizes up to %d"
            " bytes." % (doc_size, max_size)
        )
    else:
        # There's nothing intelligent we can say
        # about size for update and delete
        raise DocumentTooLarge(f"{operation!r} command document too large")


class _NamespaceRegistry:
    """The ``nsInfo`` entries of the batch being built.

    Each namespace is listed once, in first-seen order. Operations refer to
    a namespace by its position in the list.
    """

    __slots__ = ("_indexes", "_entries", "_encoded_size")

    def __init__(self, encoded_size: _EncodedSize) -> None:
        self._indexes: dict[str, int] = {}
        self._entries: list[Mapping[str, Any]] = []
        self._encoded_size = encoded_size

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, namespace: str) -> bool:
        return namespace in self._indexes

    @property
    def entries(self) -> list[Mapping[str, Any]]:
        """A copy of the ``nsInfo`` documents registered so far."""
        return list(self._entries)

    def peek(self, namespace: str) -> tuple[int, int]:
        """Return what :meth:`get_or_assign_index` would, without registering."""
        index = self._indexes.get(namespace)
        if index is not None:
            return index, 0
        return len(self._entries), self._encoded_size({"ns": namespace})

    def get_or_assign_index(self, namespace: str) -> tuple[int, int]:
        """Return the index of `namespace` and the bytes its entry adds.

        The added size is 0 when the namespace is already registered.
        """
        index, size = self.peek(namespace)
        if namespace not in self._indexes:
            self._indexes[namespace] = index
            self._entries.append({"ns": namespace})
        return index, size

    def reset(self) -> None:
        self._indexes.clear()
        self._entries = []


class _Batch:
    """A contiguous run of operations sent as one ``bulkWrite`` command."""

    __slots__ = ("offset", "ops", "ns_info", "size", "operation_id")

    def __init__(self, offset: int, operation_id: int) -> None:
        self.offset = offset
        self.ops: list[MutableMapping[str, Any]] = []
        self.ns_info: list[Mapping[str, Any]] = []
        self.size = 0
        self.operation_id = operation_id

    def __len__(self) -> int:
        return len(self.ops)

    def __repr__(self) -> str:
        return "{}(offset={}, ops={}, ns_info={}, size={})".format(
            self.__class__.__name__,
            self.offset,
            len(self.ops),
            [entry["ns"] for entry in self.ns_info],
            self.size,
        )

    @property
    def indexes(self) -> range:
        """The original indices of the operations in this batch."""
        return range(self.offset, self.offset + len(self.ops))


def _with_index(op: Mapping[str, Any], index: int) -> MutableMapping[str, Any]:
    """Copy the operation template `op`, pointing it at nsInfo entry `index`."""
    doc = dict(op)
    # The operation type is the first key.
    doc[next(iter(op))] = index
    return doc


def _check_payload_size(
    op_type: str, op: Mapping[str, Any], limits: Limits, encoded_size: _EncodedSize
) -> None:
    """Raise DocumentTooLarge if the document being written is too large."""
    if op_type == "insert":
        payload = op["document"]
    elif op_type == "replace":
        payload = op["updateMods"]
    else:
        return
    size = encoded_size(payload)
    if size > limits.max_bson_size:
        _raise_document_too_large(op_type, size, limits.max_bson_size)


def _plan_batches(
    ops: Sequence[_Op],
    namespaces: Sequence[str],
    limits: Limits,
    operation_id: int,
    encoded_size: _EncodedSize = _default_encoded_size,
) -> list[_Batch]:
    """Split `ops` into the batches a bulk write will send, in order.

    Each operation is appended to the current batch unless doing so would
    exceed ``limits.max_write_batch_size`` operations or
    ``limits.max_batch_bytes`` bytes of operations and namespace entries,
    in which case a new batch is started. Every operation is sized before
    anything is sent, so :exc:`~mongobulk.errors.DocumentTooLarge` is raised
    before the first command goes out.
    """
    max_count = limits.max_write_batch_size
    max_bytes = limits.max_batch_bytes
    max_op_size = limits.max_bson_size + COMMAND_OVERHEAD
    registry = _NamespaceRegistry(encoded_size)
    batches: list[_Batch] = []
    batch = _Batch(0, operation_id)

    for idx, ((op_type, template), namespace) in enumerate(zip(ops, namespaces)):
        ns_index, ns_size = registry.peek(namespace)
        doc = _with_index(template, ns_index)
        op_size = encoded_size(doc)
        # The op document always contains the payload, so only re-measure
        # the payload when the op document itself is over the cap.
        if op_size > limits.max_bson_size:
            _check_payload_size(op_type, template, limits, encoded_size)
        if op_size > max_op_size:
            _raise_document_too_large(op_type, op_size, max_op_size)

        if batch.ops and (
            len(batch.ops) + 1 > max_count or batch.size + op_size + ns_size > max_bytes
        ):
            batch.ns_info = registry.entries
            batches.append(batch)
            batch = _Batch(idx, operation_id)
            registry.reset()
            ns_index, ns_size = registry.peek(namespace)
            doc = _with_index(template, ns_index)
            op_size = encoded_size(doc)

        if op_size + ns_size > max_bytes:
            # Does not fit even in an empty batch.
            _raise_document_too_large(op_type, op_size + ns_size, max_bytes)

        registry.get_or_assign_index(namespace)
        batch.ops.append(doc)
        batch.size += op_size + ns_size

    if batch.ops:
        batch.ns_info = registry.entries
        batches.append(batch)

    _debug_log(
        _BULK_LOGGER,
        message=_BulkStatusMessage.PLANNED,
        operationId=operation_id,
        totalOps=len(ops),
        batchCount=len(batches),
        batchSizes=[len(b) for b in batches],
    )
    return batches


class _ClientBulkWriteContext:
    """Sends the commands of one client-level bulk write.

    Every command sent through a context shares its operation id and the
    caller's session.
    """

    __slots__ = (
        "db_name",
        "name",
        "transport",
        "op_id",
        "listeners",
        "session",
    )

    def __init__(
        self,
        database_name: str,
        cmd_name: str,
        transport: Transport,
        operation_id: int,
        listeners: _EventListeners,
        session: Optional[Any],
    ):
        self.db_name = database_name
        self.name = cmd_name
        self.transport = transport
        self.op_id = operation_id
        self.listeners = listeners
        self.session = session

    def batch_command(
        self, cmd: MutableMapping[str, Any], batch: _Batch
    ) -> MutableMapping[str, Any]:
        """Attach the operations and namespaces of `batch` to `cmd`."""
        cmd["ops"] = batch.ops
        cmd["nsInfo"] = batch.ns_info
        return cmd

    def command(self, dbname: str, spec: MutableMapping[str, Any]) -> Mapping[str, Any]:
        """Run `spec` with this bulk write's session and operation id."""
        return command(
            self.transport,
            dbname,
            spec,
            self.session,
            self.listeners,
            self.op_id,
        )

    def write_command(self, cmd: MutableMapping[str, Any], batch: _Batch) -> Mapping[str, Any]:
        """Send `batch` as a ``bulkWrite`` command and return the reply."""
        return self.command(self.db_name, self.batch_command(cmd, batch))
