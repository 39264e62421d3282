from __future__ import annotations

import asyncio
import logging

from apps.workers.celery_app import celery_app
from apps.workers.pipeline_loader import get_pipeline, get_storage
from services.pipeline import PipelineError

logger = logging.getLogger(__name__)


class BadInputError(ValueError):
    """Non-retriable."""


class TransientWorkerError(RuntimeError):
    """Retriable."""


def decode_html(blob: bytes) -> str:
    try:
        return blob.decode("utf-8")
    except UnicodeDecodeError as e:
        raise BadInputError(f"document is not utf-8: {e}") from e


@celery_app.task(
    name="cheques.scan_from_uri",
    bind=True,
    autoretry_for=(TransientWorkerError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def scan_from_uri(self, job_id: str, input_uri: str) -> dict:
    storage = get_storage()
    try:
        html = decode_html(storage.get_bytes(uri=input_uri))

        pipe = get_pipeline()

        try:
            annotated, report = asyncio.run(pipe.scan_html(html))
        except PipelineError as e:
            raise BadInputError(str(e)) from e
        except Exception as e:
            raise TransientWorkerError(str(e)) from e

        payload = {"ok": True, **report.to_dict(), "html": annotated}
        storage.put_json_atomic(job_id=job_id, obj=payload, name="result.json")
        logger.info("Job %s done: %s", job_id, report.counters)
        return {"ok": True, "summary": report.counters}

    except TransientWorkerError:
        logger.warning("Job %s hit a transient error, retrying", job_id)
        raise

    except BadInputError as e:
        payload = {"ok": False, "error": "bad_input", "detail": str(e)[:300]}
        storage.put_json_atomic(job_id=job_id, obj=payload, name="error.json")
        return payload

    except Exception as e:
        logger.exception("Job %s failed", job_id)
        payload = {"ok": False, "error": "job_failed", "detail": str(e)[:300]}
        storage.put_json_atomic(job_id=job_id, obj=payload, name="error.json")
        return payload
