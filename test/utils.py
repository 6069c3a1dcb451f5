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

"""Utilities for testing mongobulk without a server."""
from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Any, Callable, Mapping, MutableMapping, Optional, Union

from mongobulk import monitoring
from mongobulk.errors import AutoReconnect
from mongobulk.limits import Limits
from mongobulk.transport import Transport

_Reply = Union[Mapping[str, Any], BaseException, Callable[..., Mapping[str, Any]], None]


class BaseListener:
    def __init__(self):
        self.events = []

    def reset(self):
        self.events = []

    def add_event(self, event):
        self.events.append(event)

    def event_count(self, event_type):
        return len(self.events_by_type(event_type))

    def events_by_type(self, event_type):
        """Return the matching events by event class.

        event_type can be a single class or a tuple of classes.
        """
        return self.matching(lambda e: isinstance(e, event_type))

    def matching(self, matcher):
        """Return the matching events."""
        return [event for event in self.events[:] if matcher(event)]


class EventListener(BaseListener, monitoring.CommandListener):
    def __init__(self):
        super().__init__()
        self.results = defaultdict(list)

    @property
    def started_events(self) -> list[monitoring.CommandStartedEvent]:
        return self.results["started"]

    @property
    def succeeded_events(self) -> list[monitoring.CommandSucceededEvent]:
        return self.results["succeeded"]

    @property
    def failed_events(self) -> list[monitoring.CommandFailedEvent]:
        return self.results["failed"]

    def started(self, event: monitoring.CommandStartedEvent) -> None:
        self.started_events.append(event)
        self.add_event(event)

    def succeeded(self, event: monitoring.CommandSucceededEvent) -> None:
        self.succeeded_events.append(event)
        self.add_event(event)

    def failed(self, event: monitoring.CommandFailedEvent) -> None:
        self.failed_events.append(event)
        self.add_event(event)

    def started_command_names(self) -> list[str]:
        """Return list of command names started."""
        return [event.command_name for event in self.started_events]

    def reset(self) -> None:
        """Reset the state of this listener."""
        self.results.clear()
        super().reset()


class OvertCommandListener(EventListener):
    """A CommandListener that keeps every event it sees, including killCursors."""


def bulk_write_reply(
    first_batch: Optional[list[Mapping[str, Any]]] = None,
    cursor_id: int = 0,
    n_errors: int = 0,
    **counts: int,
) -> dict[str, Any]:
    """Build a ``bulkWrite`` reply.

    Counters not named in `counts` are reported as 0.
    """
    reply: dict[str, Any] = {
        "ok": 1,
        "cursor": {
            "id": cursor_id,
            "firstBatch": list(first_batch or []),
            "ns": "admin.$cmd.bulkWrite",
        },
        "nErrors": n_errors,
        "nInserted": 0,
        "nUpserted": 0,
        "nMatched": 0,
        "nModified": 0,
        "nDeleted": 0,
    }
    reply.update(counts)
    return reply


def get_more_reply(next_batch: list[Mapping[str, Any]], cursor_id: int = 0) -> dict[str, Any]:
    return {
        "ok": 1,
        "cursor": {"id": cursor_id, "nextBatch": list(next_batch), "ns": "admin.$cmd.bulkWrite"},
    }


class MockTransport(Transport):
    """A Transport that answers commands from memory.

    Every command is recorded in :attr:`commands` as ``(dbname, spec,
    session)``. Replies queued in :attr:`replies` are used first, in order:
    a mapping is returned as is, an exception is raised, a callable is called
    with ``(transport, dbname, spec, session)`` and ``None`` falls back to the
    default reply. Once the queue is empty every ``bulkWrite`` succeeds.
    """

    def __init__(
        self,
        limits: Optional[Limits] = None,
        address: tuple[str, int] = ("localhost", 27017),
    ) -> None:
        self._limits = limits or Limits()
        self._address = address
        self.commands: list[tuple[str, dict[str, Any], Any]] = []
        self.replies: deque[_Reply] = deque()
        self._fail_point: Optional[dict[str, Any]] = None
        self._fail_point_times = 0

    @property
    def address(self) -> tuple[str, int]:
        return self._address

    @property
    def limits(self) -> Limits:
        return self._limits

    def command_names(self) -> list[str]:
        return [next(iter(spec)) for _, spec, _ in self.commands]

    def specs(self, name: str) -> list[dict[str, Any]]:
        """The command documents sent for command `name`, in order."""
        return [spec for _, spec, _ in self.commands if next(iter(spec)) == name]

    def configure_fail_point(self, command_args: Optional[Mapping[str, Any]]) -> None:
        """Fail commands the way the server's ``failCommand`` fail point does.

        Supports ``mode`` (``"alwaysOn"`` or ``{"times": n}``) and the
        ``data`` fields ``failCommands``, ``errorCode``, ``closeConnection``,
        ``blockConnection`` with ``blockTimeMS``, and ``writeConcernError``.
        ``None`` turns the fail point off.
        """
        if not command_args:
            self._fail_point = None
            self._fail_point_times = 0
            return
        self._fail_point = dict(command_args["data"])
        mode = command_args.get("mode", "alwaysOn")
        self._fail_point_times = -1 if mode == "alwaysOn" else mode["times"]

    def _check_fail_point(self, name: str) -> Optional[dict[str, Any]]:
        fail_point = self._fail_point
        if not fail_point or name not in fail_point.get("failCommands", []):
            return None
        if self._fail_point_times == 0:
            return None
        if self._fail_point_times > 0:
            self._fail_point_times -= 1
        return fail_point

    def command(
        self,
        dbname: str,
        spec: MutableMapping[str, Any],
        session: Optional[Any] = None,
    ) -> Mapping[str, Any]:
        self.commands.append((dbname, dict(spec), session))
        name = next(iter(spec))

        fail_point = self._check_fail_point(name)
        if fail_point is not None:
            if fail_point.get("blockConnection"):
                time.sleep(fail_point.get("blockTimeMS", 0) / 1000.0)
            if fail_point.get("closeConnection"):
                raise AutoReconnect(f"connection closed while running {name}")
            if "errorCode" in fail_point:
                return {
                    "ok": 0,
                    "code": fail_point["errorCode"],
                    "errmsg": "Failing command via 'failCommand' failpoint",
                }
            if "writeConcernError" in fail_point:
                reply = dict(self.default_reply(dbname, spec))
                reply["writeConcernError"] = fail_point["writeConcernError"]
                return reply

        if self.replies:
            reply = self.replies.popleft()
            if isinstance(reply, BaseException):
                raise reply
            if callable(reply):
                return reply(self, dbname, spec, session)
            if reply is not None:
                return reply
        return self.default_reply(dbname, spec)

    def default_reply(self, dbname: str, spec: Mapping[str, Any]) -> Mapping[str, Any]:
        """Reply as a server would when every operation succeeds."""
        name = next(iter(spec))
        if name == "getMore":
            return get_more_reply([])
        if name != "bulkWrite":
            return {"ok": 1}

        counts = {"nInserted": 0, "nMatched": 0, "nModified": 0, "nDeleted": 0}
        results = []
        for idx, op in enumerate(spec["ops"]):
            op_type = next(iter(op))
            if op_type == "insert":
                counts["nInserted"] += 1
                results.append({"ok": 1, "idx": idx, "n": 1})
            elif op_type == "update":
                counts["nMatched"] += 1
                counts["nModified"] += 1
                results.append({"ok": 1, "idx": idx, "n": 1, "nModified": 1})
            else:
                counts["nDeleted"] += 1
                results.append({"ok": 1, "idx": idx, "n": 1})
        if spec.get("errorsOnly", True):
            results = []
        return bulk_write_reply(results, **counts)
