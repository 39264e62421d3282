from __future__ import annotations

import asyncio

import pytest

import services.pipeline as pipeline_mod
from conftest import CODE_A, CODE_B, CODE_C, FakeVerifier, cheque_row, listing
from services.events.bus import EventName
from services.verification.client import VerificationError, VerificationResult


def counters(doc):
    return {s["data-counter"]: int(s.get_text()) for s in doc.select("[data-cheque-summary] [data-counter]")}


def make_pipeline(verifier, **cfg):
    return pipeline_mod.ChequeScanPipeline(
        verifier=verifier,
        config=pipeline_mod.PipelineConfig(**cfg),
    )


class BusSpy:
    """Wraps EventBus construction so a test can see every event of a scan."""

    def __init__(self, monkeypatch):
        self.events = []
        real = pipeline_mod.EventBus
        spy = self

        class SpyBus(real):
            def emit(self, name, event):
                spy.events.append((EventName(name), event.record.code))
                super().emit(name, event)

        monkeypatch.setattr(pipeline_mod, "EventBus", SpyBus)


@pytest.mark.asyncio
async def test_one_init_per_included_record_and_one_done_per_success(monkeypatch):
    spy = BusSpy(monkeypatch)
    verifier = FakeVerifier({CODE_B: VerificationError("timeout")})
    pipe = make_pipeline(verifier)

    doc = pipe.parse(
        listing([cheque_row(CODE_A), cheque_row(CODE_B), cheque_row(CODE_C, checked=False)])
    )
    report = await pipe.run_scan(doc)

    inits = [c for n, c in spy.events if n is EventName.INIT]
    dones = [c for n, c in spy.events if n is EventName.DONE]
    assert inits == [CODE_A, CODE_B]
    assert dones == [CODE_A]
    # every done comes after its init
    assert spy.events.index((EventName.INIT, CODE_A)) < spy.events.index((EventName.DONE, CODE_A))

    assert sorted(verifier.calls) == [CODE_A, CODE_B]
    assert report.counters == {"total": 2, "occurrences": 0, "received": 1, "not_received": 1}
    assert counters(doc) == report.counters


@pytest.mark.asyncio
async def test_all_inits_are_emitted_before_any_verification_completes(monkeypatch):
    spy = BusSpy(monkeypatch)
    pipe = make_pipeline(FakeVerifier())
    doc = pipe.parse(listing([cheque_row(CODE_A), cheque_row(CODE_B), cheque_row(CODE_C)]))
    await pipe.run_scan(doc)

    names = [n for n, _ in spy.events]
    assert names[:3] == [EventName.INIT] * 3
    assert names[3:] == [EventName.DONE] * 3


@pytest.mark.asyncio
async def test_at_most_two_verifications_in_flight():
    verifier = FakeVerifier(delay=0.01)
    pipe = make_pipeline(verifier)
    codes = [f"{i:07d}0{i:010d}0{i:010d}0" for i in range(1, 7)]
    doc = pipe.parse(listing([cheque_row(c) for c in codes]))

    report = await pipe.run_scan(doc)
    assert verifier.peak == 2
    assert report.counters["received"] == 6


@pytest.mark.asyncio
async def test_error_path_leaves_record_not_received_and_annotates_error():
    pipe = make_pipeline(FakeVerifier({CODE_A: VerificationError("timeout")}))
    doc = pipe.parse(listing([cheque_row(CODE_A)]))
    report = await pipe.run_scan(doc)

    assert report.counters == {"total": 1, "occurrences": 0, "received": 0, "not_received": 1}
    widgets = doc.select("[data-cheque-annotation]")
    assert [w["data-cheque-annotation"] for w in widgets] == ["error"]
    assert widgets[0].select_one(".cheque-annotation-value").get_text(strip=True) == "timeout"

    (outcome,) = report.outcomes
    assert outcome["ok"] is False and outcome["error"] == "timeout"


@pytest.mark.asyncio
async def test_clean_result_counts_received_without_occurrence():
    result = VerificationResult(nsf_count=0, protest_count=0, status_text="OK", query_status=1)
    pipe = make_pipeline(FakeVerifier({CODE_A: result}))
    doc = pipe.parse(listing([cheque_row(CODE_A)]))
    report = await pipe.run_scan(doc)

    assert report.counters["received"] == 1
    assert report.counters["occurrences"] == 0
    kinds = [w["data-cheque-annotation"] for w in doc.select("[data-cheque-annotation]")]
    assert kinds == ["status", "protests", "nsf"]


@pytest.mark.asyncio
async def test_rescan_replaces_summary_and_resets_counters():
    pipe = make_pipeline(FakeVerifier())
    doc = pipe.parse(listing([cheque_row(CODE_A), cheque_row(CODE_B)]))

    await pipe.run_scan(doc)
    first = pipe.summary
    report = await pipe.run_scan(doc)

    assert pipe.summary is not first
    assert first.node is None
    assert len(doc.select("[data-cheque-summary]")) == 1
    assert report.counters == {"total": 2, "occurrences": 0, "received": 2, "not_received": 0}


@pytest.mark.asyncio
async def test_rescan_of_annotated_html_drops_stale_summary():
    pipe = make_pipeline(FakeVerifier())
    html, _ = await pipe.scan_html(listing([cheque_row(CODE_A)]))

    # a different pipeline (e.g. another worker) sees the already annotated page
    other = make_pipeline(FakeVerifier())
    html2, report = await other.scan_html(html)

    doc = other.parse(html2)
    assert len(doc.select("[data-cheque-summary]")) == 1
    assert report.counters["total"] == 1


@pytest.mark.asyncio
async def test_summary_mounts_into_container_or_falls_back_to_body():
    pipe = make_pipeline(FakeVerifier())
    doc = pipe.parse(listing([cheque_row(CODE_A)]))
    await pipe.run_scan(doc)
    assert doc.find(id="consulta").select_one("[data-cheque-summary]") is not None

    doc2 = pipe.parse(listing([cheque_row(CODE_A)], container=False))
    await pipe.run_scan(doc2)
    assert doc2.body.contents[0].get("data-cheque-summary") == "1"


@pytest.mark.asyncio
async def test_empty_document_reports_zero():
    pipe = make_pipeline(FakeVerifier())
    html, report = await pipe.scan_html("<html><body><p>nothing here</p></body></html>")
    assert report.counters == {"total": 0, "occurrences": 0, "received": 0, "not_received": 0}
    assert report.to_dict()["records"] == []
    assert "data-cheque-summary" in html


def test_report_to_dict_shape():
    report = pipeline_mod.ScanReport(counters={"total": 0}, outcomes=[{"code": "x", "ok": True}])
    assert report.to_dict() == {"summary": {"total": 0}, "records": [{"code": "x", "ok": True}]}


@pytest.mark.asyncio
async def test_rescan_while_verifications_are_in_flight(monkeypatch):
    verifier = FakeVerifier(delay=0.02)
    pipe = make_pipeline(verifier)
    doc = pipe.parse(listing([cheque_row(CODE_A), cheque_row(CODE_B)]))

    # counters on the page right before each bus delivers its first init
    first_init_view = {}
    real = pipeline_mod.EventBus

    class ViewBus(real):
        def emit(self, name, event):
            if EventName(name) is EventName.INIT and id(self) not in first_init_view:
                first_init_view[id(self)] = counters(doc)
            super().emit(name, event)

    monkeypatch.setattr(pipeline_mod, "EventBus", ViewBus)

    first = asyncio.create_task(pipe.run_scan(doc))
    await asyncio.sleep(0.005)
    second_report = await pipe.run_scan(doc)
    first_report = await first

    zero = {"total": 0, "occurrences": 0, "received": 0, "not_received": 0}
    assert list(first_init_view.values()) == [zero, zero]

    # the earlier scan was not cancelled
    assert len(first_report.outcomes) == 2
    assert all(o["ok"] for o in first_report.outcomes)
    assert len(verifier.calls) == 4

    assert len(doc.select("[data-cheque-summary]")) == 1
    assert second_report.counters == {"total": 2, "occurrences": 0, "received": 2, "not_received": 0}
    assert counters(doc) == second_report.counters


@pytest.mark.asyncio
async def test_aborted_scan_leaves_no_queued_work_behind():
    verifier = FakeVerifier(delay=0.05)
    pipe = make_pipeline(verifier, concurrency=1)
    doc = pipe.parse(listing([cheque_row(CODE_A), cheque_row(CODE_B), cheque_row(CODE_C)]))

    scan = asyncio.create_task(pipe.run_scan(doc))
    await asyncio.sleep(0.01)
    scan.cancel()
    with pytest.raises(asyncio.CancelledError):
        await scan

    assert pipe.dispatcher.pending == 0
    await asyncio.wait_for(pipe.dispatcher.join(), timeout=1)
    assert verifier.calls == [CODE_A]
