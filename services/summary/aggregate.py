# services/summary/aggregate.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Optional

from bs4 import Tag

from services.events.bus import DoneEvent, EventBus, EventName, InitEvent
from services.rendering.labels import EN, Labels
from services.rendering.widgets import WidgetRenderer

SUMMARY_MARKER = "data-cheque-summary"


@dataclass
class AggregateCounters:
    total: int = 0
    occurrences: int = 0
    received: int = 0
    not_received: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class SummaryAggregate:
    """
    Header widget counting the cheques of one scan.

    init -> total += 1, not_received += 1
    done -> not_received -= 1, received += 1, occurrences += 1 when the result has one

    Records whose verification failed never get a `done`, so they stay in
    not_received for the life of the widget.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        renderer: Optional[WidgetRenderer] = None,
        labels: Labels = EN,
    ) -> None:
        self.bus = bus
        self.renderer = renderer or WidgetRenderer()
        self.labels = labels
        self.counters = AggregateCounters()
        self.node: Optional[Tag] = None

        bus.on(EventName.INIT, self._on_init)
        bus.on(EventName.DONE, self._on_done)

    def mount(self, container: Tag) -> Tag:
        self.node = self.renderer.summary(counters=self.counters, labels=self.labels)
        container.insert(0, self.node)
        return self.node

    def teardown(self) -> None:
        self.bus.off(EventName.INIT, self._on_init)
        self.bus.off(EventName.DONE, self._on_done)
        if self.node is not None:
            self.node.decompose()
            self.node = None

    def snapshot(self) -> Dict[str, int]:
        return self.counters.to_dict()

    def _on_init(self, event: InitEvent) -> None:
        self.counters.total += 1
        self.counters.not_received += 1
        self._rerender()

    def _on_done(self, event: DoneEvent) -> None:
        self.counters.not_received -= 1
        self.counters.received += 1
        if event.result.has_occurrence:
            self.counters.occurrences += 1
        self._rerender()

    def _rerender(self) -> None:
        if self.node is None:
            return
        fresh = self.renderer.summary(counters=self.counters, labels=self.labels)
        self.node.replace_with(fresh)
        self.node = fresh
