"""
Unit tests for comfyfetch configuration.
"""

import json

from comfyfetch.config import ComfyFetchConfig, ResolveConfig, ScanConfig, get_config, reset_config


class TestComfyFetchConfig:
    """Tests for loading and saving configuration."""

    def test_defaults(self, tmp_path):
        config = ComfyFetchConfig.load(tmp_path)

        assert config.default_dialect == "bash"
        assert config.resolve.batch_size == 20
        assert config.resolve.confidence == 0.9
        assert config.resolve.max_workers == 1
        assert config.history_file == tmp_path / "history.json"
        assert config.ai_settings_file == tmp_path / "ai_settings.json"

    def test_save_and_load(self, tmp_path):
        config = ComfyFetchConfig(data_path=tmp_path)
        config.default_dialect = "bat"
        config.scan = ScanConfig(extra_core_nodes=["MyStockNode"])
        config.resolve = ResolveConfig(batch_size=10, max_workers=4, extra_model_hosts=["models.example.org"])
        config.save()

        loaded = ComfyFetchConfig.load(tmp_path)

        assert loaded.default_dialect == "bat"
        assert loaded.scan.extra_core_nodes == ["MyStockNode"]
        assert loaded.resolve.batch_size == 10
        assert loaded.resolve.max_workers == 4
        assert loaded.resolve.extra_model_hosts == ["models.example.org"]

    def test_corrupt_config_uses_defaults(self, tmp_path):
        (tmp_path / "config.json").write_text("{broken", encoding="utf-8")
        config = ComfyFetchConfig.load(tmp_path)
        assert config.resolve.batch_size == 20

    def test_partial_config(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"resolve": {"confidence": 0.5}}), encoding="utf-8")
        config = ComfyFetchConfig.load(tmp_path)

        assert config.resolve.confidence == 0.5
        assert config.resolve.batch_size == 20
        assert config.default_dialect == "bash"


class TestGlobalConfig:
    """Tests for the get_config / reset_config singleton."""

    def test_env_override(self, data_dir):
        config = get_config()
        assert config.data_path == data_dir
        assert get_config() is config

    def test_reset(self, data_dir):
        first = get_config()
        reset_config()
        assert get_config() is not first
