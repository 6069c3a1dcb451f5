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

"""The client that runs bulk writes over a :class:`~mongobulk.transport.Transport`."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from mongobulk import _csot, common
from mongobulk.client_bulk import _ClientBulk
from mongobulk.message import _default_encoded_size
from mongobulk.monitoring import CommandListener, _EventListeners

if TYPE_CHECKING:
    from mongobulk.operations import _WriteModel
    from mongobulk.results import ClientBulkWriteResult
    from mongobulk.transport import Transport
    from mongobulk.typings import _EncodedSize


class MongoBulkClient:
    """Runs client-level bulk writes through a transport.

    :param transport: The :class:`~mongobulk.transport.Transport` every
        command is sent through. Its :attr:`~mongobulk.transport.Transport.limits`
        bound the size of each ``bulkWrite`` command.
    :param event_listeners: A list or tuple of
        :class:`~mongobulk.monitoring.CommandListener` instances, notified of
        every command this client sends.
    :param encoded_size: A callable returning the encoded size, in bytes, of
        a document. Defaults to the length of its BSON encoding.
    """

    def __init__(
        self,
        transport: Transport,
        event_listeners: Optional[Sequence[CommandListener]] = None,
        encoded_size: Optional[_EncodedSize] = None,
    ) -> None:
        if not callable(getattr(transport, "command", None)):
            raise TypeError(f"transport must implement command(), not {type(transport)}")
        if encoded_size is not None and not callable(encoded_size):
            raise TypeError(f"encoded_size must be callable, not {type(encoded_size)}")
        self.__transport = transport
        self._event_listeners = _EventListeners(event_listeners)
        self._encoded_size = encoded_size or _default_encoded_size

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.__transport!r})"

    @property
    def transport(self) -> Transport:
        """The transport commands are sent through."""
        return self.__transport

    @property
    def event_listeners(self) -> list[CommandListener]:
        """The event listeners registered for this client."""
        return self._event_listeners.event_listeners

    def bulk_write(
        self,
        models: Sequence[_WriteModel],
        session: Optional[Any] = None,
        ordered: bool = True,
        verbose_results: bool = False,
        bypass_document_validation: Optional[bool] = None,
        comment: Optional[Any] = None,
        let: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        cancellation: Optional[Any] = None,
    ) -> ClientBulkWriteResult:
        """Send a batch of write operations, potentially across multiple namespaces, to the server.

        Requests are passed as a list of write operation instances (
        :class:`~mongobulk.operations.InsertOne`,
        :class:`~mongobulk.operations.UpdateOne`,
        :class:`~mongobulk.operations.UpdateMany`,
        :class:`~mongobulk.operations.ReplaceOne`,
        :class:`~mongobulk.operations.DeleteOne`, or
        :class:`~mongobulk.operations.DeleteMany`).

          >>> result = client.bulk_write([
          ...     InsertOne({"x": 1}, namespace="db.coll"),
          ...     DeleteOne({"x": 1}, namespace="db.other"),
          ... ])
          >>> result.inserted_count
          1

        The operations are split into as few ``bulkWrite`` commands as the
        transport's limits allow, and the commands are sent one after
        another. Every command of one call is published with the same
        operation id.

        :param models: A list of write operation instances.
        :param session: An opaque session object, passed unchanged to every
            :meth:`~mongobulk.transport.Transport.command` call.
        :param ordered: If ``True`` (the default), requests will be
            performed on the server serially, in the order provided. If an error
            occurs all remaining operations are aborted. If ``False``, requests
            will be still performed on the server serially, in the order provided,
            but all operations will be attempted even if any errors occur.
        :param verbose_results: If ``True``, detailed results for each
            successful operation will be included in the returned
            :class:`~mongobulk.results.ClientBulkWriteResult`. Default is ``False``.
        :param bypass_document_validation: If ``True``, allows the
            write to opt-out of document level validation. Default is ``False``.
        :param comment: A user-provided comment to attach to this
            command.
        :param let: Map of parameter names and values. Values must be
            constant or closed expressions that do not reference document
            fields. Parameters can then be accessed as variables in an
            aggregate expression context (e.g. "$$var").
        :param timeout: Seconds the whole call may take. Checked before every
            command is sent. Nests inside :func:`mongobulk.timeout`.
        :param cancellation: An object with an ``is_set()`` method, such as
            :class:`threading.Event`. Checked before every command is sent.

        :return: An instance of :class:`~mongobulk.results.ClientBulkWriteResult`.

        .. note:: An empty list of models returns a zero-valued result
           without sending anything.
        """
        common.validate_list("models", models)
        timeout = common.validate_timeout_or_none("timeout", timeout)
        if cancellation is not None and not callable(getattr(cancellation, "is_set", None)):
            raise TypeError(f"cancellation must have an is_set() method, not {type(cancellation)}")

        blk = _ClientBulk(
            self,
            ordered=ordered,
            bypass_document_validation=bypass_document_validation,
            comment=comment,
            let=let,
            verbose_results=verbose_results,
        )
        for model in models:
            try:
                model._add_to_client_bulk(blk)
            except AttributeError:
                raise TypeError(f"{model!r} is not a valid request") from None

        if timeout is None:
            return blk.execute(session, cancellation)
        with _csot._TimeoutContext(timeout):
            return blk.execute(session, cancellation)
