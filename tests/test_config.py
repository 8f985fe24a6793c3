# tests/test_config.py
import pytest
import yaml

from hiresignal.config import AppConfig, ConfigManager


def write_config(base_path, data):
    config_dir = base_path / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text(yaml.safe_dump(data), encoding="utf-8")


MINIMAL = {"inference": {"base_url": "http://yaml.test/v1", "model": "yaml-model"}}


def test_load_defaults(tmp_path, monkeypatch):
    """Unspecified sections take their defaults."""
    for name in ("HIRESIGNAL_DATA_DIR", "HIRESIGNAL_INFERENCE_BASE_URL",
                 "HIRESIGNAL_INFERENCE_MODEL", "HIRESIGNAL_INFERENCE_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    write_config(tmp_path, MINIMAL)

    config = ConfigManager(tmp_path).load()

    assert config.inference.model == "yaml-model"
    assert config.ranking.corpus_fetch_limit == 100
    assert config.ranking.prompt_slice == 80
    assert config.kit.min_questions == 8
    assert config.server.allowed_roles == ["recruiter", "admin"]
    assert config.data_dir == tmp_path / "data"
    assert config.inference.api_key is None


def test_env_overrides(tmp_path, monkeypatch):
    """HIRESIGNAL_* variables override the file; the key comes from api_key_env."""
    write_config(tmp_path, {"inference": dict(MINIMAL["inference"], api_key_env="MY_KEY")})
    monkeypatch.setenv("HIRESIGNAL_INFERENCE_MODEL", "env-model")
    monkeypatch.setenv("HIRESIGNAL_DATA_DIR", str(tmp_path / "elsewhere"))
    monkeypatch.setenv("MY_KEY", "s3cret")

    manager = ConfigManager(tmp_path)
    config = manager.load()

    assert config.inference.model == "env-model"
    assert config.data_dir == tmp_path / "elsewhere"
    assert config.inference.api_key == "s3cret"
    summary = manager.get_summary()
    assert summary["api_key_configured"] is True
    assert "s3cret" not in str(summary)


def test_missing_file(tmp_path):
    """A missing config file fails loudly."""
    with pytest.raises(FileNotFoundError):
        ConfigManager(tmp_path).load()


@pytest.mark.parametrize("section,values", [
    ("inference", dict(MINIMAL["inference"], likelihood_temperature=0.9)),
    ("batch", {"max_workers": 0}),
    ("batch", {"max_workers": 12}),
])
def test_invalid_values_rejected(section, values):
    """Temperatures above 0.3 and worker counts outside 1..5 are refused."""
    data = dict(MINIMAL)
    data[section] = values
    with pytest.raises(ValueError):
        AppConfig.from_dict(data)
