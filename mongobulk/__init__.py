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

"""Client-level bulk writes for MongoDB."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, ContextManager, Optional, Sequence

__all__ = [
    "ClientBulkWriteResult",
    "DeleteMany",
    "DeleteOne",
    "InsertOne",
    "Limits",
    "MongoBulkClient",
    "ReplaceOne",
    "Transport",
    "UpdateMany",
    "UpdateOne",
    "bulk_write",
    "get_version_string",
    "timeout",
    "version",
    "version_tuple",
]

from mongobulk import _csot
from mongobulk._version import __version__, get_version_string, version, version_tuple
from mongobulk.common import validate_timeout_or_none
from mongobulk.limits import Limits
from mongobulk.mongo_client import MongoBulkClient
from mongobulk.operations import (
    DeleteMany,
    DeleteOne,
    InsertOne,
    ReplaceOne,
    UpdateMany,
    UpdateOne,
)
from mongobulk.results import ClientBulkWriteResult
from mongobulk.transport import Transport

if TYPE_CHECKING:
    from mongobulk.operations import _WriteModel


def timeout(seconds: Optional[float]) -> ContextManager[Any]:
    """**(Provisional)** Apply the given timeout for a block of operations.

    Every bulk write started inside the block, and every command it sends,
    must complete before the deadline::

      with mongobulk.timeout(5):
          client.bulk_write(models)
          client.bulk_write(more_models)

    When the deadline passes no further command is sent, and the bulk write
    raises :exc:`~mongobulk.errors.ClientBulkWriteException` whose
    :attr:`~mongobulk.errors.ClientBulkWriteException.error` is an
    :exc:`~mongobulk.errors.ExecutionTimeout`. Use
    :attr:`~mongobulk.errors.MongoBulkError.timeout` to tell::

      try:
          with mongobulk.timeout(5):
              client.bulk_write(models)
      except MongoBulkError as exc:
          if exc.timeout:
              print(f"block timed out: {exc!r}")

    Blocks can be nested; the inner deadline can only shorten the outer one.

    :param seconds: A non-negative floating point number expressing seconds,
        or None. ``None`` or ``0`` means no timeout.
    """
    seconds = validate_timeout_or_none("seconds", seconds)
    return _csot._TimeoutContext(seconds)


def bulk_write(transport: Transport, models: Sequence[_WriteModel], **kwargs: Any) -> ClientBulkWriteResult:
    """Run :meth:`MongoBulkClient.bulk_write` with a client built around `transport`.

    Keyword arguments are passed to
    :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.
    """
    return MongoBulkClient(transport).bulk_write(models, **kwargs)
