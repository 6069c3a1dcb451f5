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

"""The connection a bulk write sends its commands through.

mongobulk does not open sockets, authenticate, or encode wire messages.
Applications hand each :class:`~mongobulk.mongo_client.MongoBulkClient` an
object implementing :class:`Transport`, usually a thin adapter over an
existing driver connection.
"""
from __future__ import annotations

from typing import Any, Mapping, MutableMapping, Optional

from mongobulk.limits import Limits
from mongobulk.typings import _Address


class Transport:
    """Abstract base class for transports."""

    @property
    def address(self) -> _Address:
        """The (host, port) of the server commands are sent to."""
        raise NotImplementedError

    @property
    def limits(self) -> Limits:
        """The :class:`~mongobulk.limits.Limits` of the connected server,
        as learned from its handshake.
        """
        raise NotImplementedError

    def command(
        self,
        dbname: str,
        spec: MutableMapping[str, Any],
        session: Optional[Any] = None,
    ) -> Mapping[str, Any]:
        """Run the command document `spec` on database `dbname`.

        Must return the server's reply document. Replies with ``ok: 0`` may
        be returned as is. Network failures should be raised as
        :exc:`~mongobulk.errors.ConnectionFailure` or one of its subclasses.

        :param dbname: Name of the database to run the command on.
        :param spec: The command document.
        :param session: The caller's session, passed through unchanged.
        """
        raise NotImplementedError
