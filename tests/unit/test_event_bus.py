from __future__ import annotations

from decimal import Decimal

import pytest

from services.events.bus import DoneEvent, EventBus, EventName, InitEvent
from services.scanner.records import CandidateRecord
from services.verification.client import VerificationResult


class NullAnchor:
    kind = "tr"

    def insert_after(self, node):
        pass


def make_record(code="341000120180001234500000123456"):
    return CandidateRecord(code=code, due_date=None, amount=Decimal("0"), document_number=None, anchor=NullAnchor())


def test_emit_calls_handlers_in_registration_order():
    bus = EventBus()
    seen = []
    bus.on(EventName.INIT, lambda e: seen.append(("a", e.record.code)))
    bus.on(EventName.INIT, lambda e: seen.append(("b", e.record.code)))

    bus.emit(EventName.INIT, InitEvent(record=make_record("1")))
    assert seen == [("a", "1"), ("b", "1")]


def test_emit_only_reaches_subscribers_of_that_name():
    bus = EventBus()
    inits, dones = [], []
    bus.on(EventName.INIT, inits.append)
    bus.on(EventName.DONE, dones.append)

    rec = make_record()
    bus.emit(EventName.DONE, DoneEvent(record=rec, result=VerificationResult(query_status=1)))
    assert inits == []
    assert len(dones) == 1 and dones[0].record is rec


def test_off_unsubscribes_and_is_tolerant():
    bus = EventBus()
    seen = []
    bus.on(EventName.INIT, seen.append)
    bus.off(EventName.INIT, seen.append)
    bus.off(EventName.INIT, seen.append)  # second removal is a no-op

    bus.emit(EventName.INIT, InitEvent(record=make_record()))
    assert seen == []
    assert bus.subscriber_count(EventName.INIT) == 0


def test_handler_added_during_emit_waits_for_next_emit():
    bus = EventBus()
    late = []

    def first(_e):
        bus.on(EventName.INIT, late.append)

    bus.on(EventName.INIT, first)
    bus.emit(EventName.INIT, InitEvent(record=make_record()))
    assert late == []

    bus.emit(EventName.INIT, InitEvent(record=make_record()))
    assert len(late) == 1


def test_string_names_are_accepted():
    bus = EventBus()
    seen = []
    bus.on("init", seen.append)
    bus.emit(EventName.INIT, InitEvent(record=make_record()))
    assert len(seen) == 1


def test_payload_type_is_checked():
    bus = EventBus()
    with pytest.raises(TypeError):
        bus.emit(EventName.DONE, InitEvent(record=make_record()))
