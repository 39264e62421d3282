# services/scanner/records.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

from bs4 import Tag


class InsertionPoint(Protocol):
    """Where annotations for a record go. Implementations reference, never copy, the location."""

    @property
    def kind(self) -> str: ...

    def insert_after(self, node: Any) -> None: ...


class SoupAnchor:
    """InsertionPoint backed by a BeautifulSoup element (usually the cheque's <tr>)."""

    def __init__(self, element: Tag) -> None:
        self.element = element

    @property
    def kind(self) -> str:
        return (self.element.name or "").lower()

    def insert_after(self, node: Any) -> None:
        # bs4 places the node directly after the element, so later inserts sit closest.
        self.element.insert_after(node)

    def __repr__(self) -> str:
        return f"SoupAnchor(<{self.kind}>)"


@dataclass(frozen=True)
class CandidateRecord:
    code: str
    due_date: Optional[date]
    amount: Decimal
    document_number: Optional[str]
    anchor: InsertionPoint = field(compare=False, repr=False)
    included: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "amount": str(self.amount),
            "document_number": self.document_number,
        }
