# services/scanner/scanner.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from services.extraction.normalize import (
    normalize_cmc7,
    normalize_document_number,
    parse_amount,
    parse_due_date,
)
from services.scanner.records import CandidateRecord, SoupAnchor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScannerConfig:
    checkbox_class: str = "ObInputCheckBox"


def _previous_element(tag: Optional[Tag]) -> Optional[Tag]:
    if tag is None:
        return None
    for sib in tag.previous_siblings:
        if isinstance(sib, Tag):
            return sib
    return None


def _cell_text(tag: Optional[Tag]) -> Optional[str]:
    return tag.get_text(strip=True) if tag is not None else None


def _text_nodes(root: Tag) -> List[NavigableString]:
    # Comments, doctypes and CDATA are PreformattedString subclasses; they are not page text.
    return [
        s for s in root.descendants
        if isinstance(s, NavigableString) and not isinstance(s, PreformattedString)
    ]


class DocumentScanner:
    """
    Walks the text of a cheque listing and yields one CandidateRecord per
    selected CMC-7 code.

    Expected row layout (siblings of the code cell, right to left):
      <tr>... <td>document</td> <td>amount</td> <td>due date</td> <td>CMC-7</td> ... checkbox ...</tr>
    """

    def __init__(self, config: Optional[ScannerConfig] = None) -> None:
        self.config = config or ScannerConfig()

    def is_checked(self, row: Tag) -> bool:
        box = row.find(class_=self.config.checkbox_class)
        if not isinstance(box, Tag):
            return False
        return box.has_attr("checked")

    def scan(self, document: BeautifulSoup) -> Iterator[CandidateRecord]:
        root = document.body or document
        # Snapshot: the summary widget re-renders while records are consumed.
        for node in _text_nodes(root):
            code = normalize_cmc7(str(node))
            if code is None:
                continue

            cell = node.parent
            row = cell.parent if isinstance(cell, Tag) else None
            if not isinstance(row, Tag):
                logger.debug("CMC-7 %s has no enclosing row, skipped", code)
                continue

            if not self.is_checked(row):
                logger.debug("CMC-7 %s not selected, skipped", code)
                continue

            yield self._build_record(code, cell, row)

    def _build_record(self, code: str, cell: Tag, row: Tag) -> CandidateRecord:
        due_cell = _previous_element(cell)
        amount_cell = _previous_element(due_cell)
        document_cell = _previous_element(amount_cell)

        return CandidateRecord(
            code=code,
            due_date=parse_due_date(_cell_text(due_cell)),
            amount=parse_amount(_cell_text(amount_cell)),
            document_number=normalize_document_number(_cell_text(document_cell)),
            anchor=SoupAnchor(row),
            included=True,
        )
