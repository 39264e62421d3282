# services/annotation/projector.py
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from services.dispatch.queue import Completion
from services.events.bus import DoneEvent, EventBus, EventName
from services.rendering.labels import EN, Labels
from services.rendering.widgets import WidgetRenderer
from services.scanner.records import CandidateRecord
from services.verification.client import VerificationResult

logger = logging.getLogger(__name__)


def error_message(error: BaseException) -> str:
    msg = str(error).strip()
    return msg or type(error).__name__


class ResultProjector:
    """Turns a dispatcher Completion into annotation widgets placed right after the record's anchor."""

    def __init__(
        self,
        *,
        bus: EventBus,
        renderer: Optional[WidgetRenderer] = None,
        labels: Labels = EN,
    ) -> None:
        self.bus = bus
        self.renderer = renderer or WidgetRenderer()
        self.labels = labels

    def annotations_for(self, result: VerificationResult) -> List[Tuple[str, str, str]]:
        """(kind, name, value) in declared order."""
        lb = self.labels
        nsf = lb.nsf_found.format(count=result.nsf_count) if result.nsf_count else lb.nsf_none
        protests = (
            lb.protests_found.format(count=result.protest_count) if result.protest_count else lb.protests_none
        )
        return [
            ("nsf", lb.nsf, nsf),
            ("protests", lb.protests, protests),
            ("status", lb.status, str(result.status_text)),
        ]

    def project(self, completion: Completion) -> None:
        record = completion.record
        if not completion.ok:
            msg = error_message(completion.error)
            logger.info("Cheque %s annotated with error: %s", record.code, msg)
            self._insert(record, "error", self.labels.error, msg)
            return

        for kind, name, value in self.annotations_for(completion.result):
            self._insert(record, kind, name, value)

        self.bus.emit(EventName.DONE, DoneEvent(record=record, result=completion.result))

    def _insert(self, record: CandidateRecord, kind: str, name: str, value: str) -> None:
        node = self.renderer.annotation(kind=kind, name=name, value=value, anchor_kind=record.anchor.kind)
        # The anchor's current next sibling is the insertion point every time.
        record.anchor.insert_after(node)
