from __future__ import annotations

from functools import lru_cache
from typing import Optional

from apps.common.settings import AppSettings, load_settings
from services.ingestion.storage import LocalStorage
from services.pipeline import ChequeScanPipeline, PipelineConfig
from services.rendering.labels import get_labels
from services.verification.client import IChequesClient, VerificationConfig


def build_pipeline(settings: Optional[AppSettings] = None) -> ChequeScanPipeline:
    s = settings or load_settings()

    client = IChequesClient(
        VerificationConfig(
            base_url=s.api_url,
            api_key=s.api_key,
            path=s.api_path,
            timeout_s=s.timeout_s,
        )
    )

    return ChequeScanPipeline(
        verifier=client,
        config=PipelineConfig(
            concurrency=s.concurrency,
            summary_container_id=s.summary_container_id,
            checkbox_class=s.checkbox_class,
            labels=get_labels(s.labels),
        ),
    )


@lru_cache(maxsize=1)
def get_pipeline() -> ChequeScanPipeline:
    return build_pipeline()


@lru_cache(maxsize=1)
def get_storage() -> LocalStorage:
    # same root the gateway reads job artifacts from
    return LocalStorage(root_dir=str(load_settings().uploads_dir))
