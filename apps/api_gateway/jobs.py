from __future__ import annotations

from typing import Any, Dict, List
from uuid import uuid4

from celery.result import AsyncResult
from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from apps.workers.celery_app import celery_app
from services.ingestion.storage import LocalStorage

SCAN_TASK = "cheques.scan_from_uri"
INPUT_NAME = "input.html"


def _map_celery_state(state: str) -> str:
    s = (state or "").upper()
    if s in ("PENDING", "RECEIVED", "RETRY"):
        return "QUEUED"
    if s in ("STARTED",):
        return "RUNNING"
    if s in ("SUCCESS",):
        return "SUCCEEDED"
    if s in ("FAILURE", "REVOKED"):
        return "FAILED"
    return "UNKNOWN"


def get_job_details(job_id: str, storage: LocalStorage, include_result: bool = True) -> Dict[str, Any]:
    """
    Status of a single job.
    include_result=False keeps batch summaries light (no annotated html).
    """
    meta = storage.get_json_if_exists(job_id=job_id, name="job_meta.json")
    if not meta:
        return {"job_id": job_id, "status": "UNKNOWN", "error": "not_found"}

    r = AsyncResult(str(meta.get("celery_task_id")), app=celery_app)
    status = _map_celery_state(r.status)

    base_resp = {
        "job_id": job_id,
        "status": status,
        "filename": meta.get("filename"),
    }

    if status == "SUCCEEDED":
        res = storage.get_json_if_exists(job_id=job_id, name="result.json")
        if res is None:
            # Celery says success but artifact missing => surface as failed
            return {**base_resp, "status": "FAILED", "ok": False, "error": "missing_result_artifact"}
        if include_result:
            return {**base_resp, **res}
        return {**base_resp, "ok": True, "summary": res.get("summary")}

    if status == "FAILED":
        err = storage.get_json_if_exists(job_id=job_id, name="error.json")
        if err is None:
            return {**base_resp, "ok": False, "error": "job_failed"}
        return {**base_resp, **err}

    return base_resp


def _enqueue(storage: LocalStorage, *, blob: bytes, filename: str | None, batch_id: str | None = None) -> str:
    job_id = str(uuid4())
    stored = storage.put_bytes(job_id=job_id, blob=blob, name=INPUT_NAME)

    # don't force task_id
    async_result = celery_app.send_task(SCAN_TASK, args=[job_id, stored.uri])

    meta = {
        "job_id": job_id,
        "celery_task_id": async_result.id,
        "input_uri": stored.uri,
        "filename": filename,
    }
    if batch_id:
        meta["batch_id"] = batch_id
    storage.put_json_atomic(job_id=job_id, obj=meta, name="job_meta.json")
    return job_id


def create_jobs_router(*, storage: LocalStorage) -> APIRouter:
    router = APIRouter()

    @router.post("/jobs")
    async def submit_job(file: UploadFile = File(...)):
        blob = await file.read()
        job_id = _enqueue(storage, blob=blob, filename=file.filename)
        return JSONResponse(status_code=202, content={"job_id": job_id})

    @router.get("/jobs/{job_id}")
    def job_status(job_id: str):
        info = get_job_details(job_id, storage, include_result=True)
        if info.get("error") == "not_found":
            raise HTTPException(status_code=404, detail="job_not_found")
        return info

    @router.post("/batches")
    async def submit_batch(files: List[UploadFile] = File(...)):
        batch_id = str(uuid4())
        job_ids = []
        for f in files:
            blob = await f.read()
            job_ids.append(_enqueue(storage, blob=blob, filename=f.filename, batch_id=batch_id))

        # batch meta lives under a "virtual" job id
        storage.put_json_atomic(
            job_id=f"batch_{batch_id}",
            obj={"batch_id": batch_id, "jobs": job_ids},
            name="batch_meta.json",
        )

        return JSONResponse(
            status_code=202,
            content={"batch_id": batch_id, "count": len(job_ids), "job_ids": job_ids},
        )

    @router.get("/batches/{batch_id}")
    def batch_status(batch_id: str):
        meta = storage.get_json_if_exists(job_id=f"batch_{batch_id}", name="batch_meta.json")
        if not meta:
            raise HTTPException(status_code=404, detail="batch_not_found")

        jobs_list = meta.get("jobs", [])
        results = []
        counts = {"QUEUED": 0, "RUNNING": 0, "SUCCEEDED": 0, "FAILED": 0, "UNKNOWN": 0}

        for job_id in jobs_list:
            info = get_job_details(job_id, storage, include_result=False)
            status = info.get("status", "UNKNOWN")
            counts[status] = counts.get(status, 0) + 1
            results.append(info)

        total = len(jobs_list)
        if counts["SUCCEEDED"] + counts["FAILED"] == total:
            agg_status = "COMPLETED"
        elif counts["RUNNING"] > 0:
            agg_status = "RUNNING"
        else:
            agg_status = "PENDING"

        return {
            "batch_id": batch_id,
            "status": agg_status,
            "summary": counts,
            "jobs": results,
        }

    return router
