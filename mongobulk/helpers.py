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

"""Bits and pieces used by the engine that don't really fit elsewhere."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from mongobulk.errors import (
    AutoReconnect,
    CursorNotFound,
    ExecutionTimeout,
    OperationFailure,
)

# Server error codes that mean the node can no longer accept writes.
_NOT_PRIMARY_CODES: frozenset[int] = frozenset([10107, 13435, 13436, 11600, 11602, 189, 91])


def _check_command_response(
    response: Mapping[str, Any],
    msg: Optional[str] = None,
) -> None:
    """Check the response to a command for errors."""
    if "ok" not in response:
        # Server didn't recognize our message as a command.
        raise OperationFailure(
            response.get("$err"),  # type: ignore[arg-type]
            response.get("code"),
            response,
        )

    if response["ok"]:
        return

    details = response
    # Mongos returns the error details in a 'raw' object
    # for some errors.
    if "raw" in response:
        for shard in response["raw"].values():
            # Grab the first non-empty raw error from a shard.
            if shard.get("errmsg") and not shard.get("ok"):
                details = shard
                break

    errmsg = details.get("errmsg", "")
    code = details.get("code")

    # Server is "not primary" or "recovering"
    if code in _NOT_PRIMARY_CODES or errmsg.startswith(("not master", "node is recovering")):
        raise AutoReconnect(errmsg, errors=response)

    if code == 43:
        raise CursorNotFound(errmsg, code, response)
    elif code == 50:
        raise ExecutionTimeout(errmsg, code, response)

    msg = msg or "%s"
    raise OperationFailure(msg % errmsg, code, response)


def _get_wce_doc(result: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    """Return the writeConcernError or None."""
    wce = result.get("writeConcernError")
    if wce:
        # The server reports errorLabels at the top level but it's more
        # convenient to attach it to the writeConcernError doc itself.
        error_labels = result.get("errorLabels")
        if error_labels:
            # Copy to avoid changing the original document.
            wce = dict(wce)
            wce["errorLabels"] = error_labels
    return wce
