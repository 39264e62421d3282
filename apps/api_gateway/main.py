# apps/api_gateway/main.py
from __future__ import annotations

import logging

from apps.api_gateway.app_factory import create_app
from apps.api_gateway.jobs import create_jobs_router
from apps.common.settings import load_settings
from apps.workers.pipeline_loader import build_pipeline
from services.ingestion.storage import LocalStorage

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

settings = load_settings()
pipeline = build_pipeline(settings)

app = create_app(pipeline=pipeline, max_concurrency=4)
app.include_router(create_jobs_router(storage=LocalStorage(root_dir=str(settings.uploads_dir))))
