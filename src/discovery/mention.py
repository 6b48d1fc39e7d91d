"""Mention: the message published for every discovered repository."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple, Union


@dataclass(frozen=True)
class Mention:
    """Access endpoints of one repository plus whether it is a fork."""

    endpoints: Tuple[str, ...]
    is_fork: bool = False

    def __post_init__(self) -> None:
        endpoints = tuple(self.endpoints)
        if not endpoints:
            raise ValueError("a mention needs at least one endpoint")
        object.__setattr__(self, "endpoints", endpoints)
        object.__setattr__(self, "is_fork", bool(self.is_fork))

    def to_dict(self) -> Dict[str, Any]:
        return {"endpoints": list(self.endpoints), "is_fork": self.is_fork}

    def to_message(self) -> bytes:
        """JSON encoding sent over the queue."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_message(cls, message: Union[bytes, str]) -> "Mention":
        if isinstance(message, bytes):
            message = message.decode("utf-8")
        data = json.loads(message)
        return cls(endpoints=tuple(data["endpoints"]), is_fork=bool(data.get("is_fork", False)))


def new_mention(endpoints: Sequence[str], is_fork: bool) -> Mention:
    return Mention(endpoints=tuple(endpoints), is_fork=is_fork)


__all__ = ["Mention", "new_mention"]
