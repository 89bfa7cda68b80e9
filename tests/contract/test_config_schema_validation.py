from __future__ import annotations

from pathlib import Path

import pytest

from batch_import.config.loader import ConfigError, load_config


@pytest.mark.parametrize(
    "body",
    [
        "dataset: services\n",  # tenant_id 必須
        "tenant_id: t\ndataset: payroll\n",
        "tenant_id: t\nbatch_size: 0\n",
        "tenant_id: t\nreference_defaults:\n  category: sometimes\n",
        "tenant_id: t\nreference_defaults:\n  vehicle: first\n",
        "tenant_id: t\nunknown_key: 1\n",
    ],
)
def test_invalid_configs_rejected(tmp_path: Path, body: str):
    path = tmp_path / "import.yml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(path)


def test_minimal_config_gets_defaults(tmp_path: Path):
    path = tmp_path / "import.yml"
    path.write_text("tenant_id: t\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.dataset == "services"
    assert cfg.batch_size == 25
    assert cfg.pause_seconds == 0.1
    assert cfg.catalog_file is None


def test_shipped_example_config_is_valid():
    example = Path(__file__).resolve().parents[2] / "config" / "import.yml"
    cfg = load_config(example)
    assert cfg.tenant_id == "demo-tenant"
    assert cfg.reference_defaults["category"] == "first"
