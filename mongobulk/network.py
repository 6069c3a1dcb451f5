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

"""Internal network layer helper methods."""
from __future__ import annotations

import datetime
import logging
import random
from typing import TYPE_CHECKING, Any, Mapping, MutableMapping, Optional

from mongobulk import helpers
from mongobulk.errors import AutoReconnect, OperationFailure
from mongobulk.logger import _COMMAND_LOGGER, _CommandStatusMessage, _debug_log

if TYPE_CHECKING:
    from mongobulk.monitoring import _EventListeners
    from mongobulk.transport import Transport
    from mongobulk.typings import _DocumentOut


def _request_id() -> int:
    return random.randint(0, 2147483647)  # noqa: S311


def _convert_exception(exception: Exception) -> dict[str, Any]:
    """Convert an Exception into a failure document for publishing."""
    return {"errmsg": str(exception), "errtype": exception.__class__.__name__}


def _failure_document(exc: Exception) -> _DocumentOut:
    if isinstance(exc, OperationFailure) and exc.details is not None:
        return exc.details
    if isinstance(exc, AutoReconnect) and isinstance(exc.details, Mapping):
        return exc.details
    return _convert_exception(exc)


def command(
    transport: Transport,
    dbname: str,
    spec: MutableMapping[str, Any],
    session: Optional[Any] = None,
    listeners: Optional[_EventListeners] = None,
    operation_id: Optional[int] = None,
    check: bool = True,
) -> Mapping[str, Any]:
    """Execute a command through `transport`, publishing and logging it.

    :param transport: a :class:`~mongobulk.transport.Transport`
    :param dbname: name of the database on which to run the command
    :param spec: a command document as an ordered dict type
    :param session: the caller's session, passed through unchanged
    :param listeners: an instance of :class:`~mongobulk.monitoring._EventListeners`
    :param operation_id: the id shared by every command of one bulk write
    :param check: raise OperationFailure if the reply has ``ok: 0``
    """
    name = next(iter(spec))
    request_id = _request_id()
    publish = listeners is not None and listeners.enabled_for_commands
    address = transport.address
    start = datetime.datetime.now()

    if _COMMAND_LOGGER.isEnabledFor(logging.DEBUG):
        _debug_log(
            _COMMAND_LOGGER,
            message=_CommandStatusMessage.STARTED,
            command=spec,
            commandName=name,
            databaseName=dbname,
            requestId=request_id,
            operationId=operation_id,
            serverHost=address[0],
            serverPort=address[1],
        )
    if publish:
        assert listeners is not None
        listeners.publish_command_start(spec, dbname, request_id, address, operation_id)

    try:
        response_doc = transport.command(dbname, spec, session)
        if check:
            helpers._check_command_response(response_doc)
    except Exception as exc:
        duration = datetime.datetime.now() - start
        failure = _failure_document(exc)
        if _COMMAND_LOGGER.isEnabledFor(logging.DEBUG):
            _debug_log(
                _COMMAND_LOGGER,
                message=_CommandStatusMessage.FAILED,
                durationMS=duration,
                failure=failure,
                commandName=name,
                databaseName=dbname,
                requestId=request_id,
                operationId=operation_id,
                serverHost=address[0],
                serverPort=address[1],
                isServerSideError=isinstance(exc, OperationFailure),
            )
        if publish:
            assert listeners is not None
            listeners.publish_command_failure(
                duration,
                failure,
                name,
                request_id,
                address,
                operation_id,
                database_name=dbname,
            )
        raise
    duration = datetime.datetime.now() - start
    if _COMMAND_LOGGER.isEnabledFor(logging.DEBUG):
        _debug_log(
            _COMMAND_LOGGER,
            message=_CommandStatusMessage.SUCCEEDED,
            durationMS=duration,
            reply=response_doc,
            commandName=name,
            databaseName=dbname,
            requestId=request_id,
            operationId=operation_id,
            serverHost=address[0],
            serverPort=address[1],
        )
    if publish:
        assert listeners is not None
        listeners.publish_command_success(
            duration,
            response_doc,
            name,
            request_id,
            address,
            operation_id,
            database_name=dbname,
        )
    return response_doc
