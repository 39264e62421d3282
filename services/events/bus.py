# services/events/bus.py
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, DefaultDict, List, Union

if TYPE_CHECKING:
    from services.scanner.records import CandidateRecord
    from services.verification.client import VerificationResult


class EventName(str, Enum):
    INIT = "init"
    DONE = "done"


@dataclass(frozen=True)
class InitEvent:
    record: "CandidateRecord"


@dataclass(frozen=True)
class DoneEvent:
    record: "CandidateRecord"
    result: "VerificationResult"


Event = Union[InitEvent, DoneEvent]
Handler = Callable[[Event], None]

_PAYLOAD_TYPES = {EventName.INIT: InitEvent, EventName.DONE: DoneEvent}


class EventBus:
    """
    Synchronous publish/subscribe between the scan and the summary widget.

    emit() calls every handler subscribed at emit time, in registration order,
    and only returns once all of them have returned. Nothing is queued.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[EventName, List[Handler]] = defaultdict(list)

    def on(self, name: EventName, handler: Handler) -> None:
        self._handlers[EventName(name)].append(handler)

    def off(self, name: EventName, handler: Handler) -> None:
        handlers = self._handlers.get(EventName(name), [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, name: EventName, event: Event) -> None:
        name = EventName(name)
        expected = _PAYLOAD_TYPES[name]
        if not isinstance(event, expected):
            raise TypeError(f"{name.value!r} expects {expected.__name__}, got {type(event).__name__}")

        for handler in list(self._handlers.get(name, [])):
            handler(event)

    def subscriber_count(self, name: EventName) -> int:
        return len(self._handlers.get(EventName(name), []))
