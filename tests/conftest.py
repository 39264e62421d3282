from __future__ import annotations

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from services.verification.client import VerificationResult

CODE_A = "341000120180001234500000123456"
CODE_B = "237123480180009876500000654321"
CODE_C = "001987650180005555500000111112"


def cheque_row(
    code: str,
    *,
    checked: bool = True,
    document: str = "12.345.678/0001-90",
    amount: str = "1.234,56",
    due: str = "31/12/2024",
    with_checkbox: bool = True,
) -> str:
    box = ""
    if with_checkbox:
        box = '<input type="checkbox" class="ObInputCheckBox"%s>' % (" checked" if checked else "")
    return (
        "<tr>"
        f"<td>{box}</td>"
        f"<td>{document}</td>"
        f"<td>{amount}</td>"
        f"<td>{due}</td>"
        f"<td>{code}</td>"
        "</tr>"
    )


def listing(rows: Sequence[str], *, container: bool = True) -> str:
    head = '<div id="consulta"></div>' if container else ""
    return (
        "<html><body>"
        f"{head}"
        '<table id="cheques"><tbody>'
        + "".join(rows)
        + "</tbody></table></body></html>"
    )


class FakeVerifier:
    """
    Scripted verifier. `results` maps code -> VerificationResult or Exception.
    Records call order and peak concurrency.
    """

    def __init__(self, results: Optional[Dict[str, object]] = None, *, delay: float = 0.0) -> None:
        self.results = results or {}
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.peak = 0

    async def verify(self, amount, due_date, code, document_number):
        self.calls.append(code)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            out = self.results.get(code, VerificationResult(status_text="OK", query_status=1))
            if isinstance(out, BaseException):
                raise out
            return out
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_verifier():
    return FakeVerifier()
