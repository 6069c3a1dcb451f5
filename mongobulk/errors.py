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

"""Exceptions raised by mongobulk."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Sequence, Union

from bson.errors import InvalidDocument

if TYPE_CHECKING:
    from mongobulk.results import ClientBulkWriteResult


class MongoBulkError(Exception):
    """Base class for all mongobulk exceptions."""

    def __init__(self, message: str = "", error_labels: Optional[Iterable[str]] = None) -> None:
        super().__init__(message)
        self._message = message
        self._error_labels = set(error_labels or [])

    def has_error_label(self, label: str) -> bool:
        """Return True if this error contains the given label."""
        return label in self._error_labels

    @property
    def timeout(self) -> bool:
        """True if this error was caused by a timeout."""
        return False


class ConnectionFailure(MongoBulkError):
    """Raised when a connection to the database cannot be made or is lost."""


class AutoReconnect(ConnectionFailure):
    """Raised when a connection to the database is lost and an attempt to
    auto-reconnect will be made.

    The operation which caused it has not necessarily succeeded.

    Subclass of :exc:`~mongobulk.errors.ConnectionFailure`.
    """

    errors: Union[Mapping[str, Any], Sequence[Any]]
    details: Union[Mapping[str, Any], Sequence[Any]]

    def __init__(
        self, message: str = "", errors: Optional[Union[Mapping[str, Any], Sequence[Any]]] = None
    ) -> None:
        error_labels = None
        if errors is not None:
            if isinstance(errors, dict):
                error_labels = errors.get("errorLabels")
        super().__init__(message, error_labels)
        self.errors = self.details = errors or []


class NetworkTimeout(AutoReconnect):
    """An operation on an open connection exceeded its socket timeout.

    In the case of a write operation, you cannot know whether it succeeded
    or failed.

    Subclass of :exc:`~mongobulk.errors.AutoReconnect`.
    """

    @property
    def timeout(self) -> bool:
        return True


class ConfigurationError(MongoBulkError):
    """Raised when something is incorrectly configured."""


class InvalidOperation(MongoBulkError):
    """Raised when a client attempts to perform an invalid operation."""


class OperationCancelled(MongoBulkError):
    """Raised when the caller's cancellation token was set before the
    operation could complete.
    """


def _format_detailed_error(message: str, details: Optional[Any]) -> str:
    if details is not None:
        message = f"{message}, full error: {details}"
    return message


class OperationFailure(MongoBulkError):
    """Raised when a database operation fails."""

    def __init__(
        self,
        error: str,
        code: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        error_labels = None
        if isinstance(details, Mapping):
            error_labels = details.get("errorLabels")
        super().__init__(_format_detailed_error(error, details), error_labels=error_labels)
        self.__code = code
        self.__details = details

    @property
    def code(self) -> Optional[int]:
        """The error code returned by the server, if any."""
        return self.__code

    @property
    def details(self) -> Optional[Mapping[str, Any]]:
        """The complete error document returned by the server.

        Depending on the error that occurred, the error document
        may include useful information beyond just the error
        message.
        """
        return self.__details

    @property
    def timeout(self) -> bool:
        return self.__code in (50,)


class CursorNotFound(OperationFailure):
    """Raised while iterating results if the cursor is invalidated on the server."""


class ExecutionTimeout(OperationFailure):
    """Raised when a database operation times out, exceeding the time limit
    set for the bulk write.
    """

    @property
    def timeout(self) -> bool:
        return True


class WriteConcernError(OperationFailure):
    """Raised, or collected, for errors due to write concern."""


class WriteError(OperationFailure):
    """A single failed operation inside an otherwise successful bulk write.

    :attr:`details` is the ``errInfo`` document the server attached to the
    failed operation, exactly as it was received.
    """

    def __init__(
        self,
        document: Mapping[str, Any],
        namespace: Optional[str] = None,
        op: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(document.get("errmsg", ""), document.get("code"), document.get("errInfo"))
        self.__document = document
        self.__namespace = namespace
        self.__op = op

    def __reduce__(self) -> tuple[Any, Any]:
        return self.__class__, (self.__document, self.__namespace, self.__op)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(index={self.index}, code={self.code}, errmsg={self.errmsg!r})"

    @property
    def index(self) -> int:
        """The position of the failed operation in the models passed to bulk_write."""
        return self.__document["idx"]

    @property
    def errmsg(self) -> str:
        """The error message returned by the server."""
        return self.__document.get("errmsg", "")

    @property
    def namespace(self) -> Optional[str]:
        """The namespace the failed operation targeted."""
        return self.__namespace

    @property
    def op(self) -> Optional[Mapping[str, Any]]:
        """The operation document that failed."""
        return self.__op

    @property
    def document(self) -> Mapping[str, Any]:
        """The server's error document, with ``idx`` remapped to the original index."""
        return self.__document


class DocumentTooLarge(InvalidDocument):
    """Raised when an encoded document is too large for the connected server."""


class CursorError(MongoBulkError):
    """Raised when draining a bulk write results cursor fails part way.

    Wraps the underlying error, available via :attr:`cause`, and records how
    many result documents had been consumed before the failure.
    """

    def __init__(
        self,
        cause: BaseException,
        cursor_id: int,
        namespace: str,
        documents_consumed: int,
    ) -> None:
        super().__init__(
            f"results cursor {cursor_id} on {namespace} failed after "
            f"{documents_consumed} documents: {cause}"
        )
        self.__cause = cause
        self.__cursor_id = cursor_id
        self.__namespace = namespace
        self.__documents_consumed = documents_consumed

    def __reduce__(self) -> tuple[Any, Any]:
        return self.__class__, (
            self.__cause,
            self.__cursor_id,
            self.__namespace,
            self.__documents_consumed,
        )

    @property
    def cause(self) -> BaseException:
        """The exception that interrupted the cursor."""
        return self.__cause

    @property
    def code(self) -> Optional[int]:
        """The server error code of the cause, if any."""
        return getattr(self.__cause, "code", None)

    @property
    def cursor_id(self) -> int:
        return self.__cursor_id

    @property
    def namespace(self) -> str:
        return self.__namespace

    @property
    def documents_consumed(self) -> int:
        """Number of result documents read before the failure."""
        return self.__documents_consumed

    @property
    def timeout(self) -> bool:
        if isinstance(self.__cause, MongoBulkError):
            return self.__cause.timeout
        return False


class ClientBulkWriteException(OperationFailure):
    """Exception class for client-level bulk write errors."""

    details: Mapping[str, Any]
    verbose: bool

    def __init__(self, results: Mapping[str, Any], verbose: bool) -> None:
        super().__init__("batch op errors occurred", 65, results)
        self.verbose = verbose

    def __reduce__(self) -> tuple[Any, Any]:
        return self.__class__, (self.details, self.verbose)

    @property
    def error(self) -> Optional[Any]:
        """The top-level error that aborted the bulk write, if any."""
        return self.details.get("error", None)

    @property
    def write_concern_errors(self) -> list[WriteConcernError]:
        """The write concern errors reported by each batch."""
        return [
            WriteConcernError(doc.get("errmsg", ""), doc.get("code"), doc)
            for doc in self.details.get("writeConcernErrors", [])
        ]

    @property
    def write_errors(self) -> list[WriteError]:
        """The failed operations, sorted by their original index."""
        return [
            WriteError(doc, doc.get("ns"), doc.get("op"))
            for doc in self.details.get("writeErrors", [])
        ]

    @property
    def unattempted(self) -> list[int]:
        """Original indices of operations that were never sent to the server."""
        return list(range(self.details.get("nAttempted", 0), self.details.get("nTotal", 0)))

    @property
    def partial_result(self) -> ClientBulkWriteResult:
        """The results of the batches that completed before the error."""
        from mongobulk.results import ClientBulkWriteResult

        return ClientBulkWriteResult(
            self.details,  # type: ignore[arg-type]
            has_verbose_results=self.verbose,
        )

    @property
    def timeout(self) -> bool:
        error = self.error
        if isinstance(error, MongoBulkError):
            return error.timeout
        return False
