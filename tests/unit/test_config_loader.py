from __future__ import annotations

from pathlib import Path

import pytest

from curriculum_import.config.loader import ConfigError, ImportConfig, load_config, parse_config


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert isinstance(cfg, ImportConfig)
    assert cfg.table == "スケジュール"
    assert cfg.chunk_size == 10
    assert cfg.chunk_delay_seconds == 0
    assert cfg.encodings == ("cp932", "utf-8", "euc_jp")
    assert cfg.database.host == "localhost"
    assert cfg.database.port == 5432


def test_defaults_applied():
    cfg = parse_config({})
    assert cfg == ImportConfig()
    assert cfg.chunk_size == 10
    assert cfg.chunk_delay_seconds == 0.3
    assert cfg.page_size == 1000
    assert cfg.fetch_retries == 3
    assert cfg.retry_backoff_seconds == 1.0
    assert cfg.database.dsn is None


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "missing.yml")


def test_invalid_yaml(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text("table: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p)


def test_root_must_be_mapping(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(p)


def test_empty_file_uses_defaults(temp_workdir: Path):
    p = temp_workdir / "config" / "import.yml"
    p.write_text("", encoding="utf-8")
    assert load_config(p) == ImportConfig()


@pytest.mark.parametrize(
    "data",
    [
        {"chunk_size": 0},
        {"chunk_size": "10"},
        {"chunk_delay_seconds": -1},
        {"encodings": []},
        {"unknown_key": 1},
        {"database": {"hostname": "x"}},
    ],
)
def test_schema_violations(data):
    with pytest.raises(ConfigError, match="config validation failed"):
        parse_config(data)
