from __future__ import annotations

import pytest

from apps.common.settings import load_settings
from services.rendering.labels import EN, PT_BR, get_labels

ENV_KEYS = [
    "CHEQUES_CONFIG_PATH",
    "CHEQUES_API_URL",
    "CHEQUES_API_KEY",
    "CHEQUES_API_PATH",
    "CHEQUES_TIMEOUT_S",
    "CHEQUES_CONCURRENCY",
    "CHEQUES_SUMMARY_CONTAINER",
    "CHEQUES_CHECKBOX_CLASS",
    "CHEQUES_LABELS",
    "CHEQUES_UPLOADS_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for k in ENV_KEYS:
        monkeypatch.delenv(k, raising=False)


def write_cfg(tmp_path, text):
    p = tmp_path / "app.yaml"
    p.write_text(text, encoding="utf-8")
    return str(p)


def test_yaml_values_are_loaded(tmp_path):
    cfg = write_cfg(
        tmp_path,
        "api_url: https://checks.test\napi_key: abc\nconcurrency: 3\nlabels: pt_BR\ntimeout_s: 12.5\n",
    )
    s = load_settings(cfg)
    assert s.api_url == "https://checks.test"
    assert s.api_key == "abc"
    assert s.concurrency == 3
    assert s.timeout_s == 12.5
    assert s.labels == "pt_BR"
    assert s.api_path == "/cheque-legal"
    assert s.summary_container_id == "consulta"


def test_env_overrides_yaml(tmp_path, monkeypatch):
    cfg = write_cfg(tmp_path, "api_url: https://a.test\napi_key: abc\n")
    monkeypatch.setenv("CHEQUES_API_URL", "https://b.test")
    monkeypatch.setenv("CHEQUES_CONCURRENCY", "4")
    monkeypatch.setenv("CHEQUES_UPLOADS_DIR", str(tmp_path / "up"))

    s = load_settings(cfg)
    assert s.api_url == "https://b.test"
    assert s.concurrency == 4
    assert s.uploads_dir == (tmp_path / "up").resolve()


def test_config_path_from_env(tmp_path, monkeypatch):
    cfg = write_cfg(tmp_path, "api_url: https://c.test\napi_key: k\n")
    monkeypatch.setenv("CHEQUES_CONFIG_PATH", cfg)
    assert load_settings().api_url == "https://c.test"


def test_missing_required_values_are_all_named(tmp_path):
    cfg = write_cfg(tmp_path, "api_path: /x\n")
    with pytest.raises(ValueError) as exc:
        load_settings(cfg)
    msg = str(exc.value)
    assert "CHEQUES_API_URL" in msg and "CHEQUES_API_KEY" in msg


@pytest.mark.parametrize("body", ["concurrency: zero\n", "concurrency: 0\n", "concurrency: -1\n", "timeout_s: soon\n"])
def test_invalid_numbers_are_rejected(tmp_path, body):
    cfg = write_cfg(tmp_path, "api_url: https://a.test\napi_key: k\n" + body)
    with pytest.raises(ValueError):
        load_settings(cfg)


def test_get_labels():
    assert get_labels("en") is EN
    assert get_labels("pt_BR") is PT_BR
    assert get_labels("pt-br") is PT_BR
    assert get_labels("pt") is PT_BR
    with pytest.raises(ValueError):
        get_labels("fr")
