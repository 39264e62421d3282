# services/extraction/normalize.py
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


# CMC-7: bank+agency (7), C2 (1), compensation+cheque number+type (10), C1 (1), account (10), C3 (1)
CMC7_RE = re.compile(r"(\d{7})(\d{1})(\d{10})(\d{1})(\d{10})(\d{1})")

_CURRENCY_RE = re.compile(r"R\$|\s")
_AMOUNT_RE = re.compile(r"-?\d+(?:\.\d+)?")
_DUE_DATE_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")

ZERO = Decimal("0")


def _safe_str(x: Any) -> str:
    if x is None:
        return ""
    if isinstance(x, str):
        return x.strip()
    return str(x).strip()


def normalize_cmc7(v: Any) -> Optional[str]:
    """
    Returns the 30-digit code when the whole (stripped) text is a CMC-7, else None.

    The whole text must be the code, not merely contain one. Labelled text such
    as 'CMC7: 341000120180001234500000123456' is not a match, and a longer run
    of digits is not a code either: '34100012018000123450000012345678' -> None.
    """
    s = _safe_str(v)
    if not s:
        return None
    return s if CMC7_RE.fullmatch(s) else None


def parse_amount(v: Any) -> Decimal:
    """
    Brazilian money text -> Decimal.

    Handles:
      - '1.234,56'      -> 1234.56  ('.' thousands, ',' decimals)
      - 'R$ 1.234.567,89' -> 1234567.89
      - '150'           -> 150
    Anything missing or unparsable degrades to 0, never raises.
    """
    s = _CURRENCY_RE.sub("", _safe_str(v))
    if not s:
        return ZERO

    s = s.replace(".", "").replace(",", ".")
    if not _AMOUNT_RE.fullmatch(s):
        return ZERO

    try:
        d = Decimal(s)
    except InvalidOperation:
        return ZERO
    return d if d.is_finite() else ZERO


def parse_due_date(v: Any) -> Optional[date]:
    """
    'DD/MM/YYYY' -> date. Returns None when absent or not a real calendar date.
    """
    s = _safe_str(v)
    m = _DUE_DATE_RE.fullmatch(s)
    if not m:
        return None
    try:
        return datetime.strptime(s, "%d/%m/%Y").date()
    except ValueError:
        return None


def normalize_document_number(v: Any) -> Optional[str]:
    s = _safe_str(v)
    return s or None
