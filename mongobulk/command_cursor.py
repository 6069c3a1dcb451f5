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

"""Cursor class to iterate over the results of a ``bulkWrite`` command."""
from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Optional

from mongobulk import _csot
from mongobulk.errors import (
    ConnectionFailure,
    CursorError,
    ExecutionTimeout,
    OperationCancelled,
    OperationFailure,
)

if TYPE_CHECKING:
    from mongobulk.message import _ClientBulkWriteContext

_CURSOR_CLOSED_ERRORS = frozenset(
    [
        43,  # CursorNotFound
        175,  # QueryPlanKilled
        237,  # CursorKilled
    ]
)


class _BulkWriteResultsCursor:
    """A cursor over the per-operation results of one ``bulkWrite`` batch.

    Documents from the reply's ``firstBatch`` are returned first. When they
    run out and the server left the cursor open, one ``getMore`` is sent at a
    time until the cursor id comes back as 0.
    """

    def __init__(
        self,
        bwc: _ClientBulkWriteContext,
        cursor_info: Mapping[str, Any],
        comment: Optional[Any] = None,
        cancellation: Optional[Any] = None,
    ) -> None:
        self._bwc = bwc
        self._id: int = cursor_info["id"]
        self._ns: str = cursor_info.get("ns", f"{bwc.db_name}.$cmd.{bwc.name}")
        self._data = deque(cursor_info.get("firstBatch", []))
        self._comment = comment
        self._cancellation = cancellation
        self._consumed = 0
        self._killed = self._id == 0

    @property
    def alive(self) -> bool:
        """Does this cursor have the potential to return more data?"""
        return bool(len(self._data) or (not self._killed))

    @property
    def cursor_id(self) -> int:
        """Returns the id of the cursor."""
        return self._id

    @property
    def namespace(self) -> str:
        return self._ns

    @property
    def documents_consumed(self) -> int:
        """The number of result documents returned so far."""
        return self._consumed

    def close(self) -> None:
        """Explicitly close / kill this cursor.

        Sends ``killCursors`` if the server may still hold the cursor open.
        Errors from ``killCursors`` are not raised.
        """
        already_killed = self._killed
        self._killed = True
        self._data.clear()
        if self._id and not already_killed:
            dbname, collname = self._ns.split(".", 1)
            try:
                self._bwc.command(dbname, {"killCursors": collname, "cursors": [self._id]})
            except Exception:
                # Already logged and published; the server reaps the cursor.
                pass

    def _send_get_more(self) -> None:
        dbname, collname = self._ns.split(".", 1)
        cmd: dict[str, Any] = {"getMore": self._id, "collection": collname}
        if self._comment is not None:
            cmd["comment"] = self._comment
        try:
            response = self._bwc.command(dbname, cmd)
            cursor = response["cursor"]
            documents = cursor["nextBatch"]
            self._id = cursor["id"]
        except OperationFailure as exc:
            if exc.code in _CURSOR_CLOSED_ERRORS:
                # Don't send killCursors because the cursor is already closed.
                self._killed = True
            cursor_id = self._id
            self.close()
            raise CursorError(exc, cursor_id, self._ns, self._consumed) from exc
        except ConnectionFailure as exc:
            # Don't send killCursors on a broken connection.
            self._killed = True
            raise CursorError(exc, self._id, self._ns, self._consumed) from exc
        except Exception as exc:
            cursor_id = self._id
            self.close()
            raise CursorError(exc, cursor_id, self._ns, self._consumed) from exc

        if self._id == 0:
            self._killed = True
        self._data.extend(documents)

    def _refresh(self) -> int:
        """Refreshes the cursor with more data from the server.

        Returns the length of self._data after refresh. Will exit early if
        self._data is already non-empty. Raises ExecutionTimeout or
        OperationCancelled without contacting the server when the bulk write
        ran out of time, and CursorError when the getMore fails.
        """
        if len(self._data) or self._killed:
            return len(self._data)

        try:
            _csot.check(self._cancellation)
        except (ExecutionTimeout, OperationCancelled):
            # No more network round trips once the deadline passes.
            self._killed = True
            raise
        self._send_get_more()
        return len(self._data)

    def __iter__(self) -> Iterator[Mapping[str, Any]]:
        return self

    def next(self) -> Mapping[str, Any]:
        """Advance the cursor."""
        # Block until a document is returnable.
        while self.alive:
            if self._refresh():
                self._consumed += 1
                return self._data.popleft()

        raise StopIteration

    def __next__(self) -> Mapping[str, Any]:
        return self.next()

    def __enter__(self) -> _BulkWriteResultsCursor:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
