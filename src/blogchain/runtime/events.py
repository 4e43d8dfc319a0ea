from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from blogchain.runtime.runtime_logging import log_event

Json = Dict[str, Any]

_log = logging.getLogger("blogchain.events")


@dataclass(frozen=True)
class Event:
    type: str
    attributes: Dict[str, str]

    def to_json(self) -> Json:
        return {"type": self.type, "attributes": dict(self.attributes)}


@dataclass
class EventManager:
    """Per-transaction event buffer.

    Services emit into it while applying; the buffer is flushed only after
    the transaction commits, so an aborted tx leaves no events behind.
    """

    events: List[Event] = field(default_factory=list)

    def emit(self, type_: str, **attrs: Any) -> None:
        self.events.append(Event(str(type_), {k: str(v) for k, v in attrs.items()}))

    def to_json(self) -> List[Json]:
        return [e.to_json() for e in self.events]

    def flush(self, *, tx_type: str, signer: str) -> List[Json]:
        """Publish buffered events to the log sink and clear the buffer."""
        out = self.to_json()
        for ev in out:
            log_event(_log, "blog_event", tx_type=tx_type, signer=signer, **ev)
        self.events = []
        return out
