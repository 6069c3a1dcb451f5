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

"""Result class definitions."""
from __future__ import annotations

from typing import Any, Mapping, MutableMapping, cast

from mongobulk.errors import InvalidOperation


class InsertOneResult:
    """The result of one insert inside
    :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.
    """

    __slots__ = ("__inserted_id",)

    def __init__(self, inserted_id: Any) -> None:
        self.__inserted_id = inserted_id

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.__inserted_id!r})"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, InsertOneResult):
            return self.__inserted_id == other.inserted_id
        return NotImplemented

    @property
    def inserted_id(self) -> Any:
        """The inserted document's _id."""
        return self.__inserted_id


class UpdateResult:
    """The result of one update or replace inside
    :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.

    Wraps the per-operation document read from the results cursor.
    """

    __slots__ = ("__raw_result",)

    def __init__(self, raw_result: Mapping[str, Any]) -> None:
        self.__raw_result = raw_result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.__raw_result!r})"

    @property
    def raw_result(self) -> Mapping[str, Any]:
        """The raw result document returned by the server."""
        return self.__raw_result

    @property
    def matched_count(self) -> int:
        """The number of documents matched for this update."""
        return self.__raw_result.get("n", 0)

    @property
    def modified_count(self) -> int:
        """The number of documents modified."""
        return self.__raw_result.get("nModified", 0)

    @property
    def upserted_id(self) -> Any:
        """The _id of the inserted document if an upsert took place. Otherwise
        ``None``.
        """
        if self.__raw_result.get("upserted"):
            return self.__raw_result["upserted"]["_id"]
        return None

    @property
    def did_upsert(self) -> bool:
        """Whether an upsert took place."""
        return "upserted" in self.__raw_result


class DeleteResult:
    """The result of one delete inside
    :meth:`~mongobulk.mongo_client.MongoBulkClient.bulk_write`.
    """

    __slots__ = ("__raw_result",)

    def __init__(self, raw_result: Mapping[str, Any]) -> None:
        self.__raw_result = raw_result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.__raw_result!r})"

    @property
    def raw_result(self) -> Mapping[str, Any]:
        """The raw result document returned by the server."""
        return self.__raw_result

    @property
    def deleted_count(self) -> int:
        """The number of documents deleted."""
        return self.__raw_result.get("n", 0)


class ClientBulkWriteResult:
    """An object wrapper for client-level bulk write results."""

    __slots__ = ("__bulk_api_result", "__has_verbose_results")

    def __init__(
        self,
        bulk_api_result: MutableMapping[str, Any],
        has_verbose_results: bool,
    ) -> None:
        """Create a ClientBulkWriteResult instance.

        :param bulk_api_result: The merged result dict of every batch sent.
        :param has_verbose_results: Should the returned result be verbose?
            If ``False``, then the ``insert_results``, ``update_results``, and
            ``delete_results`` properties of this object will raise
            :exc:`~mongobulk.errors.InvalidOperation`.
        """
        self.__bulk_api_result = bulk_api_result
        self.__has_verbose_results = has_verbose_results

    def __repr__(self) -> str:
        return "{}({!r}, verbose={})".format(
            self.__class__.__name__,
            {k: self.__bulk_api_result.get(k, 0) for k in _COUNTERS},
            self.has_verbose_results,
        )

    def _raise_if_not_verbose(self, property_name: str) -> None:
        """Raise an exception on property access if verbose results are off."""
        if not self.__has_verbose_results:
            raise InvalidOperation(
                f"A value for {property_name} is not available when "
                "the results are not set to be verbose. Check the "
                "verbose_results attribute to avoid this error."
            )

    @property
    def bulk_api_result(self) -> MutableMapping[str, Any]:
        """The raw merged result."""
        return self.__bulk_api_result

    @property
    def has_verbose_results(self) -> bool:
        """Whether the returned results should be verbose."""
        return self.__has_verbose_results

    @property
    def inserted_count(self) -> int:
        """The number of documents inserted."""
        return cast(int, self.__bulk_api_result.get("nInserted", 0))

    @property
    def matched_count(self) -> int:
        """The number of documents matched for an update."""
        return cast(int, self.__bulk_api_result.get("nMatched", 0))

    @property
    def modified_count(self) -> int:
        """The number of documents modified."""
        return cast(int, self.__bulk_api_result.get("nModified", 0))

    @property
    def deleted_count(self) -> int:
        """The number of documents deleted."""
        return cast(int, self.__bulk_api_result.get("nDeleted", 0))

    @property
    def upserted_count(self) -> int:
        """The number of documents upserted."""
        return cast(int, self.__bulk_api_result.get("nUpserted", 0))

    @property
    def insert_results(self) -> Mapping[int, InsertOneResult]:
        """A map of successful insertion operations to their results."""
        self._raise_if_not_verbose("insert_results")
        return cast(
            Mapping[int, InsertOneResult],
            self.__bulk_api_result.get("insertResults", {}),
        )

    @property
    def update_results(self) -> Mapping[int, UpdateResult]:
        """A map of successful update operations to their results."""
        self._raise_if_not_verbose("update_results")
        return cast(
            Mapping[int, UpdateResult],
            self.__bulk_api_result.get("updateResults", {}),
        )

    @property
    def delete_results(self) -> Mapping[int, DeleteResult]:
        """A map of successful delete operations to their results."""
        self._raise_if_not_verbose("delete_results")
        return cast(
            Mapping[int, DeleteResult],
            self.__bulk_api_result.get("deleteResults", {}),
        )


_COUNTERS = ("nInserted", "nUpserted", "nMatched", "nModified", "nDeleted")
