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


"""Folding of per-batch bulkWrite replies into one client-level result."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, MutableMapping, NoReturn, Sequence

from mongobulk.errors import ClientBulkWriteException
from mongobulk.helpers import _get_wce_doc
from mongobulk.results import DeleteResult, InsertOneResult, UpdateResult

if TYPE_CHECKING:
    from mongobulk.typings import _DocumentOut, _Op


def _new_full_result(total_ops: int) -> dict[str, Any]:
    """The empty result every bulk write starts from."""
    return {
        "error": None,
        "writeErrors": [],
        "writeConcernErrors": [],
        "nInserted": 0,
        "nUpserted": 0,
        "nMatched": 0,
        "nModified": 0,
        "nDeleted": 0,
        "insertResults": {},
        "updateResults": {},
        "deleteResults": {},
        "nAttempted": 0,
        "nTotal": total_ops,
    }


def _merge_command(
    ops: Sequence[_Op],
    namespaces: Sequence[str],
    offset: int,
    full_result: MutableMapping[str, Any],
    result: Mapping[str, Any],
) -> None:
    """Merge result of a single bulk write batch into the full result."""
    if result.get("error"):
        full_result["error"] = result["error"]

    full_result["nInserted"] += result.get("nInserted", 0)
    full_result["nDeleted"] += result.get("nDeleted", 0)
    full_result["nMatched"] += result.get("nMatched", 0)
    full_result["nModified"] += result.get("nModified", 0)
    full_result["nUpserted"] += result.get("nUpserted", 0)

    write_errors = result.get("writeErrors")
    if write_errors:
        for doc in write_errors:
            # Leave the server response intact for APM.
            replacement = dict(doc)
            original_index = doc["idx"] + offset
            replacement["idx"] = original_index
            # Add the failed operation to the error document.
            replacement["op"] = ops[original_index][1]
            replacement["ns"] = namespaces[original_index]
            full_result["writeErrors"].append(replacement)

    wce = _get_wce_doc(result)
    if wce:
        full_result["writeConcernErrors"].append(wce)


def _record_result(
    ops: Sequence[_Op],
    offset: int,
    full_result: MutableMapping[str, Any],
    doc: Mapping[str, Any],
) -> None:
    """Record the verbose result of one successful operation."""
    original_index = doc["idx"] + offset
    op_type, op = ops[original_index]
    if op_type == "insert":
        inserted_id = op["document"].get("_id")
        full_result["insertResults"][original_index] = InsertOneResult(inserted_id)
    elif op_type in ("update", "replace"):
        full_result["updateResults"][original_index] = UpdateResult(doc)
    elif op_type == "delete":
        full_result["deleteResults"][original_index] = DeleteResult(doc)


def _throw_client_bulk_write_exception(
    full_result: _DocumentOut, verbose_results: bool
) -> NoReturn:
    """Raise a ClientBulkWriteException from the full result."""
    if full_result["writeErrors"]:
        full_result["writeErrors"].sort(key=lambda error: error["idx"])
    if isinstance(full_result["error"], BaseException):
        raise ClientBulkWriteException(full_result, verbose_results) from full_result["error"]
    raise ClientBulkWriteException(full_result, verbose_results)
