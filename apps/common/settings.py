# apps/common/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data or {}


def _env(key: str) -> Optional[str]:
    v = os.getenv(key)
    return v.strip() if isinstance(v, str) and v.strip() else None


def _first(*values: Any) -> Any:
    # 0 is a value, not "unset"
    for v in values:
        if v is not None and v != "":
            return v
    return None


def _as_path(v: str) -> Path:
    return Path(v).expanduser().resolve()


@dataclass(frozen=True)
class AppSettings:
    api_url: str
    api_key: str
    api_path: str = "/cheque-legal"
    timeout_s: float = 30.0
    concurrency: int = 2
    summary_container_id: str = "consulta"
    checkbox_class: str = "ObInputCheckBox"
    labels: str = "en"
    uploads_dir: Path = Path("data/raw/uploads")


def load_settings(config_path: Optional[str] = None) -> AppSettings:
    """
    Resolution order (highest -> lowest):
      1) Explicit function argument
      2) CHEQUES_CONFIG_PATH env var
      3) config/app.yaml
    Individual fields can be overridden via env vars:
      - CHEQUES_API_URL, CHEQUES_API_KEY, CHEQUES_API_PATH
      - CHEQUES_TIMEOUT_S, CHEQUES_CONCURRENCY
      - CHEQUES_SUMMARY_CONTAINER, CHEQUES_CHECKBOX_CLASS
      - CHEQUES_LABELS (en | pt_BR)
      - CHEQUES_UPLOADS_DIR
    """
    cfg_path = (
        Path(config_path)
        if config_path
        else Path(_env("CHEQUES_CONFIG_PATH") or "config/app.yaml")
    )
    cfg = _read_yaml(cfg_path)

    api_url = _env("CHEQUES_API_URL") or cfg.get("api_url")
    api_key = _env("CHEQUES_API_KEY") or cfg.get("api_key")

    missing = []
    if not api_url:
        missing.append("api_url / CHEQUES_API_URL")
    if not api_key:
        missing.append("api_key / CHEQUES_API_KEY")

    if missing:
        raise ValueError(
            "Missing required configuration: " + ", ".join(missing) +
            f". Config file used: {cfg_path}"
        )

    defaults = AppSettings(api_url="", api_key="")

    try:
        timeout_s = float(_first(_env("CHEQUES_TIMEOUT_S"), cfg.get("timeout_s"), defaults.timeout_s))
        concurrency = int(_first(_env("CHEQUES_CONCURRENCY"), cfg.get("concurrency"), defaults.concurrency))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid numeric configuration in {cfg_path}: {e}") from e

    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    return AppSettings(
        api_url=str(api_url),
        api_key=str(api_key),
        api_path=str(_env("CHEQUES_API_PATH") or cfg.get("api_path") or defaults.api_path),
        timeout_s=timeout_s,
        concurrency=concurrency,
        summary_container_id=str(
            _env("CHEQUES_SUMMARY_CONTAINER") or cfg.get("summary_container_id") or defaults.summary_container_id
        ),
        checkbox_class=str(_env("CHEQUES_CHECKBOX_CLASS") or cfg.get("checkbox_class") or defaults.checkbox_class),
        labels=str(_env("CHEQUES_LABELS") or cfg.get("labels") or defaults.labels),
        uploads_dir=_as_path(str(_env("CHEQUES_UPLOADS_DIR") or cfg.get("uploads_dir") or defaults.uploads_dir)),
    )
