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

"""Internal helpers for the call-wide timeout of a bulk write."""
from __future__ import annotations

import time
from contextvars import ContextVar, Token
from typing import Any, Optional, Tuple

from mongobulk.errors import ExecutionTimeout, OperationCancelled

TIMEOUT: ContextVar[Optional[float]] = ContextVar("TIMEOUT", default=None)
DEADLINE: ContextVar[float] = ContextVar("DEADLINE", default=float("inf"))


def get_timeout() -> Optional[float]:
    return TIMEOUT.get(None)


def get_deadline() -> float:
    return DEADLINE.get()


def remaining() -> Optional[float]:
    if not get_timeout():
        return None
    return get_deadline() - time.monotonic()


def check(cancellation: Optional[Any] = None) -> None:
    """Raise if the call-wide deadline passed or the call was cancelled.

    Called before every network round trip of a bulk write.
    """
    if cancellation is not None and cancellation.is_set():
        raise OperationCancelled("bulk write was cancelled")
    timeout = remaining()
    if timeout is not None and timeout <= 0:
        raise ExecutionTimeout(
            f"operation would exceed time limit, remaining timeout:{timeout:.5f}",
            50,
            {"ok": 0, "errmsg": "operation exceeded time limit", "code": 50},
        )


class _TimeoutContext:
    """Internal timeout context manager.

    Use :func:`mongobulk.timeout` instead::

      with mongobulk.timeout(0.5):
          client.bulk_write(models)
    """

    __slots__ = ("_timeout", "_tokens")

    def __init__(self, timeout: Optional[float]):
        self._timeout = timeout
        self._tokens: Optional[Tuple[Token[Optional[float]], Token[float]]] = None

    def __enter__(self) -> _TimeoutContext:
        timeout_token = TIMEOUT.set(self._timeout)
        prev_deadline = DEADLINE.get()
        next_deadline = time.monotonic() + self._timeout if self._timeout else float("inf")
        deadline_token = DEADLINE.set(min(prev_deadline, next_deadline))
        self._tokens = (timeout_token, deadline_token)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._tokens:
            timeout_token, deadline_token = self._tokens
            TIMEOUT.reset(timeout_token)
            DEADLINE.reset(deadline_token)
