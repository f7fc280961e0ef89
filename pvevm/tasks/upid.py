"""
Decoding of task identifiers (UPIDs) returned by the management backend.

A UPID has the form

    UPID:<node>:<pid>:<pstart>:<starttime>:<type>:<id>:<user>:

with pid, pstart and starttime in hexadecimal. The pid together with the
process start time (pstart, in clock ticks since boot) identifies the worker
process without being fooled by pid reuse.
"""

import re
from dataclasses import dataclass

_UPID_RE = re.compile(
    r"^UPID:(?P<node>[a-zA-Z0-9](?:[a-zA-Z0-9\-]*[a-zA-Z0-9])?):"
    r"(?P<pid>[0-9A-Fa-f]{8}):(?P<pstart>[0-9A-Fa-f]{8,9}):(?P<starttime>[0-9A-Fa-f]{8}):"
    r"(?P<type>[^:\s]+):(?P<id>[^:\s]*):(?P<user>[^:\s]+):$"
)


class InvalidTaskHandle(ValueError):
    pass


@dataclass(frozen=True)
class TaskHandle:
    """Identity of an in-flight backend task."""

    upid: str
    node: str
    pid: int
    pstart: int
    starttime: int
    task_type: str
    task_id: str
    user: str

    @classmethod
    def parse(cls, upid: str) -> "TaskHandle":
        """
        Decode a UPID string.

        Raises:
            InvalidTaskHandle: If the string is not a well-formed UPID
        """
        match = _UPID_RE.match(upid.strip()) if isinstance(upid, str) else None
        if match is None:
            raise InvalidTaskHandle(f"unable to parse task id '{upid}'")
        return cls(
            upid=upid.strip(),
            node=match.group("node"),
            pid=int(match.group("pid"), 16),
            pstart=int(match.group("pstart"), 16),
            starttime=int(match.group("starttime"), 16),
            task_type=match.group("type"),
            task_id=match.group("id"),
            user=match.group("user"),
        )

    def __str__(self) -> str:
        return self.upid
