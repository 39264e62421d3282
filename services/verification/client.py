# services/verification/client.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx

from services.validation.schema_validation import validate_with_schema

logger = logging.getLogger(__name__)

DEFAULT_API_URL = (os.getenv("CHEQUES_API_URL") or "").strip()
DEFAULT_API_KEY = (os.getenv("CHEQUES_API_KEY") or "").strip()
DEFAULT_API_PATH = "/cheque-legal"
DEFAULT_TIMEOUT_S = float((os.getenv("CHEQUES_TIMEOUT_S") or "30").strip() or "30")

RESULT_SCHEMA = "verification_result"


class VerificationError(RuntimeError):
    pass


@dataclass(frozen=True)
class VerificationResult:
    nsf_count: int = 0
    protest_count: int = 0
    status_text: str = ""
    query_status: Optional[int] = None

    @property
    def has_occurrence(self) -> bool:
        return bool(self.nsf_count or self.protest_count or self.query_status != 1)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "VerificationResult":
        return cls(
            nsf_count=int(payload.get("ccf") or 0),
            protest_count=int(payload.get("protesto") or 0),
            status_text=str(payload.get("display") or ""),
            query_status=payload.get("queryStatus"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nsf_count": self.nsf_count,
            "protest_count": self.protest_count,
            "status_text": self.status_text,
            "query_status": self.query_status,
            "has_occurrence": self.has_occurrence,
        }


@dataclass(frozen=True)
class VerificationConfig:
    base_url: str = DEFAULT_API_URL
    api_key: str = DEFAULT_API_KEY
    path: str = DEFAULT_API_PATH
    timeout_s: float = DEFAULT_TIMEOUT_S


class IChequesClient:
    """
    Async client for the cheque-legal query (NSF cheques + protests + status).
    Contract:
      - Input: amount, due date, CMC-7 code, issuer document number
      - Output: VerificationResult
      - Raises VerificationError on transport, HTTP, JSON or schema failures
    """

    def __init__(
        self,
        config: Optional[VerificationConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or VerificationConfig()
        self._transport = transport

    async def verify(
        self,
        amount: Decimal,
        due_date: Optional[date],
        code: str,
        document_number: Optional[str],
    ) -> VerificationResult:
        payload = {
            "apiKey": self.config.api_key,
            "cmc": code,
            "valor": float(amount),
            "vencimento": due_date.isoformat() if due_date else None,
            "documento": document_number,
        }
        body = await self._post_json(self._build_url(self.config.path), payload)

        is_valid, msg = validate_with_schema(body, RESULT_SCHEMA)
        if not is_valid:
            raise VerificationError(f"Unexpected verification response: {msg}")

        return VerificationResult.from_payload(body)

    def _build_url(self, path: str) -> str:
        base = (self.config.base_url or "").strip()
        if not base:
            raise VerificationError("Missing verification api_url (CHEQUES_API_URL)")
        return base.rstrip("/") + "/" + path.lstrip("/")

    async def _post_json(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_s, transport=self._transport) as client:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Verification HTTP %s for %s", e.response.status_code, payload.get("cmc"))
            raise VerificationError(f"Verification service returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise VerificationError("Verification service timed out") from e
        except httpx.HTTPError as e:
            logger.warning("Verification request failed for %s: %s", payload.get("cmc"), e)
            raise VerificationError(f"Verification request failed: {e}") from e

        try:
            parsed = resp.json()
        except ValueError as e:
            raise VerificationError(f"Verification HTTP 200 but body was not JSON: {e}") from e

        if not isinstance(parsed, dict):
            raise VerificationError("Verification HTTP 200 but JSON was not an object")

        # The service reports business errors inside a 200 body.
        err = parsed.get("error")
        if isinstance(err, str) and err.strip():
            raise VerificationError(err.strip())
        if isinstance(err, dict) and str(err.get("message") or "").strip():
            raise VerificationError(str(err["message"]).strip())

        return parsed
