# apps/api_gateway/app_factory.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import RedirectResponse

from services.pipeline import PipelineError

logger = logging.getLogger(__name__)


def decode_html(contents: bytes) -> str:
    return contents.decode("utf-8")


def create_app(
    *,
    pipeline: Any,
    decode_fn: Callable[[bytes], str] = decode_html,
    max_concurrency: int = 4,
) -> FastAPI:
    app = FastAPI(title="Cheque Legal-Check API Gateway")

    async def scan_single_from_contents(contents: bytes) -> Dict[str, Any]:
        try:
            html = decode_fn(contents)
        except (UnicodeDecodeError, ValueError) as e:
            raise HTTPException(status_code=400, detail="Could not decode document.") from e

        try:
            annotated, report = await pipeline.scan_html(html)
        except PipelineError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except HTTPException:
            raise
        except Exception as e:
            logger.exception("Scan failed")
            raise HTTPException(status_code=500, detail=str(e)) from e

        return {"ok": True, **report.to_dict(), "html": annotated}

    @app.get("/")
    async def root():
        return RedirectResponse(url="/docs")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.post("/scan")
    async def scan_document(file: UploadFile = File(...)):
        contents = await file.read()
        return await scan_single_from_contents(contents)

    @app.post("/scan/batch")
    async def scan_document_batch(files: List[UploadFile] = File(...)):
        sem = asyncio.Semaphore(max_concurrency)

        async def one(f: UploadFile):
            async with sem:
                try:
                    contents = await f.read()
                    out = await scan_single_from_contents(contents)
                    return {"filename": f.filename, "ok": True, "result": out}
                except HTTPException as e:
                    return {"filename": f.filename, "ok": False, "error": e.detail}
                except Exception as e:
                    return {"filename": f.filename, "ok": False, "error": str(e)}

        results = await asyncio.gather(*(one(f) for f in files))
        return {"count": len(results), "results": results}

    return app
