# services/pipeline.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

from bs4 import BeautifulSoup, Tag

from services.annotation.projector import ResultProjector, error_message
from services.dispatch.queue import BoundedDispatcher, Completion
from services.events.bus import EventBus, EventName, InitEvent
from services.rendering.labels import EN, Labels
from services.rendering.widgets import WidgetRenderer
from services.scanner.records import CandidateRecord
from services.scanner.scanner import DocumentScanner, ScannerConfig
from services.summary.aggregate import SUMMARY_MARKER, SummaryAggregate
from services.verification.client import VerificationResult

logger = logging.getLogger(__name__)


def _root_of(tag: Tag) -> Tag:
    root = tag
    while root.parent is not None:
        root = root.parent
    return root


class PipelineError(RuntimeError):
    """Non-HTTP error for pipeline failures."""


class Verifier(Protocol):
    async def verify(self, amount, due_date, code, document_number) -> VerificationResult: ...


@dataclass(frozen=True)
class PipelineConfig:
    concurrency: int = 2
    summary_container_id: str = "consulta"
    checkbox_class: str = "ObInputCheckBox"
    labels: Labels = EN
    html_parser: str = "lxml"


@dataclass
class ScanReport:
    counters: Dict[str, int]
    records: List[CandidateRecord] = field(default_factory=list)
    outcomes: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": dict(self.counters),
            "records": list(self.outcomes),
        }


class ChequeScanPipeline:
    """
    run_scan(document):
      1) drop the previous summary widget, mount a fresh one (counters at zero)
      2) scan -> emit init -> submit, record by record in document order
      3) project completions as they finish (annotations + done)

    The dispatcher lives as long as the pipeline: a new scan does not cancel
    verifications still running for an earlier one. A scan that fails or is
    cancelled takes its still-queued records out of the dispatcher.
    """

    def __init__(
        self,
        *,
        verifier: Verifier,
        renderer: Optional[WidgetRenderer] = None,
        config: Optional[PipelineConfig] = None,
    ) -> None:
        self.verifier = verifier
        self.config = config or PipelineConfig()
        self.renderer = renderer or WidgetRenderer()
        self.scanner = DocumentScanner(ScannerConfig(checkbox_class=self.config.checkbox_class))
        self.dispatcher = BoundedDispatcher(self._verify_record, concurrency=self.config.concurrency)
        self.summary: Optional[SummaryAggregate] = None

    async def _verify_record(self, record: CandidateRecord) -> VerificationResult:
        return await self.verifier.verify(record.amount, record.due_date, record.code, record.document_number)

    def parse(self, html: str) -> BeautifulSoup:
        try:
            return BeautifulSoup(html, self.config.html_parser)
        except Exception as e:
            raise PipelineError(f"Could not parse document: {e}") from e

    def _summary_container(self, document: BeautifulSoup) -> Tag:
        container = document.find(id=self.config.summary_container_id)
        if isinstance(container, Tag):
            return container
        return document.body or document

    def _reset_summary(self, document: BeautifulSoup) -> SummaryAggregate:
        previous = self.summary
        if previous is not None and previous.node is not None and _root_of(previous.node) is document:
            previous.teardown()
        for stale in document.find_all(attrs={SUMMARY_MARKER: True}):
            stale.decompose()

        bus = EventBus()
        summary = SummaryAggregate(bus, renderer=self.renderer, labels=self.config.labels)
        summary.mount(self._summary_container(document))
        self.summary = summary
        return summary

    async def run_scan(self, document: BeautifulSoup) -> ScanReport:
        summary = self._reset_summary(document)
        bus = summary.bus
        projector = ResultProjector(bus=bus, renderer=self.renderer, labels=self.config.labels)

        records: List[CandidateRecord] = []
        futures = []
        outcomes: List[Dict[str, Any]] = []
        try:
            for record in self.scanner.scan(document):
                bus.emit(EventName.INIT, InitEvent(record=record))
                futures.append(self.dispatcher.submit(record))
                records.append(record)

            logger.info("Scan found %d selected cheque(s)", len(records))

            for next_done in asyncio.as_completed(futures):
                completion: Completion = await next_done
                projector.project(completion)
                outcomes.append(self._outcome(completion))
        except BaseException:
            # The dispatcher outlives this scan; its queued entries must not.
            dropped = self.dispatcher.discard(futures)
            if dropped:
                logger.warning("Scan aborted, dropped %d queued verification(s)", dropped)
            raise

        report = ScanReport(counters=summary.snapshot(), records=records, outcomes=outcomes)
        logger.info("Scan finished: %s", report.counters)
        return report

    async def scan_html(self, html: str) -> Tuple[str, ScanReport]:
        document = self.parse(html)
        report = await self.run_scan(document)
        return str(document), report

    @staticmethod
    def _outcome(completion: Completion) -> Dict[str, Any]:
        out: Dict[str, Any] = {**completion.record.to_dict(), "ok": completion.ok}
        if completion.ok:
            out["result"] = completion.result.to_dict()
        else:
            out["error"] = error_message(completion.error)
        return out
