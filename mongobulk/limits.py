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

"""Server size and count limits that bound every bulkWrite command."""
from __future__ import annotations

from typing import Any, Mapping

from mongobulk import common
from mongobulk.errors import ConfigurationError


class Limits:
    """The limits advertised by a server in its handshake reply.

    :param max_write_batch_size: Most operations allowed in one command.
    :param max_message_size: Largest message, in bytes, the server accepts.
    :param max_bson_size: Largest single document, in bytes.
    :param message_overhead: Bytes of each message reserved for the command
        document itself. Operations and namespace entries must fit in
        ``max_message_size - message_overhead``.
    """

    __slots__ = (
        "__max_write_batch_size",
        "__max_message_size",
        "__max_bson_size",
        "__message_overhead",
    )

    def __init__(
        self,
        max_write_batch_size: int = common.MAX_WRITE_BATCH_SIZE,
        max_message_size: int = common.MAX_MESSAGE_SIZE,
        max_bson_size: int = common.MAX_BSON_SIZE,
        message_overhead: int = common.BULK_WRITE_MESSAGE_OVERHEAD,
    ) -> None:
        self.__max_write_batch_size = common.validate_positive_integer(
            "max_write_batch_size", max_write_batch_size
        )
        self.__max_message_size = common.validate_positive_integer(
            "max_message_size", max_message_size
        )
        self.__max_bson_size = common.validate_positive_integer("max_bson_size", max_bson_size)
        self.__message_overhead = common.validate_non_negative_integer(
            "message_overhead", message_overhead
        )
        if self.__message_overhead >= self.__max_message_size:
            raise ConfigurationError(
                "message_overhead must be smaller than max_message_size"
            )

    @classmethod
    def from_hello(cls, doc: Mapping[str, Any]) -> Limits:
        """Build limits from a ``hello`` reply, using defaults for missing fields."""
        return cls(
            max_write_batch_size=doc.get("maxWriteBatchSize", common.MAX_WRITE_BATCH_SIZE),
            max_message_size=doc.get("maxMessageSizeBytes", common.MAX_MESSAGE_SIZE),
            max_bson_size=doc.get("maxBsonObjectSize", common.MAX_BSON_SIZE),
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(max_write_batch_size={self.__max_write_batch_size}, "
            f"max_message_size={self.__max_message_size}, "
            f"max_bson_size={self.__max_bson_size}, "
            f"message_overhead={self.__message_overhead})"
        )

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Limits):
            return (
                self.__max_write_batch_size,
                self.__max_message_size,
                self.__max_bson_size,
                self.__message_overhead,
            ) == (
                other.max_write_batch_size,
                other.max_message_size,
                other.max_bson_size,
                other.message_overhead,
            )
        return NotImplemented

    def __ne__(self, other: Any) -> bool:
        return not self == other

    @property
    def max_write_batch_size(self) -> int:
        return self.__max_write_batch_size

    @property
    def max_message_size(self) -> int:
        return self.__max_message_size

    @property
    def max_bson_size(self) -> int:
        return self.__max_bson_size

    @property
    def message_overhead(self) -> int:
        return self.__message_overhead

    @property
    def max_batch_bytes(self) -> int:
        """Bytes available to the ``ops`` and ``nsInfo`` payloads of one command."""
        return self.__max_message_size - self.__message_overhead
