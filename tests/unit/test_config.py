"""Tests for configuration loading."""

import pytest

from convmem import ConfigError, MemoryConfig, Settings, SummarizerConfig


class TestMemoryConfig:
    """Tests for MemoryConfig validation."""

    def test_defaults(self):
        config = MemoryConfig()
        assert config.max_context_tokens == 8000
        assert config.sliding_window_size == 20
        assert config.summary_threshold == 30
        assert config.compression_target == 0.3
        assert config.semantic_search_threshold == 0.7
        assert config.update_timeout_ms == 3000

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_context_tokens", 0),
            ("sliding_window_size", -1),
            ("summary_threshold", True),
            ("update_timeout_ms", 1.5),
        ],
    )
    def test_rejects_non_positive_ints(self, field, value):
        with pytest.raises(ConfigError, match=field):
            MemoryConfig(**{field: value})

    def test_rejects_threshold_out_of_range(self):
        with pytest.raises(ConfigError, match="semantic_search_threshold"):
            MemoryConfig(semantic_search_threshold=1.5)

    def test_rejects_non_positive_compression_target(self):
        with pytest.raises(ConfigError, match="compression_target"):
            MemoryConfig(compression_target=0)


class TestSettingsLoad:
    """Tests for Settings.load."""

    def test_missing_file_gives_defaults(self, tmp_path):
        settings = Settings.load(tmp_path / "convmem.toml")
        assert settings.memory == MemoryConfig()
        assert settings.summarizer is None
        assert settings.telemetry.enabled is False

    def test_full_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CONVMEM_TEST_KEY", "sk-test")
        path = tmp_path / "convmem.toml"
        path.write_text(
            """
[memory]
max_context_tokens = 4000
summary_threshold = 25

[summarizer]
base_url = "http://localhost:8000/v1"
model = "small"
api_key = "${CONVMEM_TEST_KEY}"

[telemetry]
enabled = true
service_name = "chat"
"""
        )

        settings = Settings.load(path)

        assert settings.memory.max_context_tokens == 4000
        assert settings.memory.summary_threshold == 25
        assert settings.memory.sliding_window_size == 20
        assert settings.summarizer == SummarizerConfig(
            base_url="http://localhost:8000/v1", model="small", api_key="sk-test"
        )
        assert settings.telemetry.enabled is True
        assert settings.telemetry.service_name == "chat"

    def test_unset_variable_is_left_alone(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CONVMEM_MISSING", raising=False)
        path = tmp_path / "convmem.toml"
        path.write_text('[summarizer]\nbase_url = "x"\nmodel = "$CONVMEM_MISSING"\n')
        assert Settings.load(path).summarizer.model == "$CONVMEM_MISSING"

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "convmem.toml"
        path.write_text("[memory]\nwindow = 5\n")
        with pytest.raises(ConfigError, match="window"):
            Settings.load(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "convmem.toml"
        path.write_text("[memory]\nmax_context_tokens = -5\n")
        with pytest.raises(ConfigError, match="max_context_tokens"):
            Settings.load(path)

    def test_malformed_toml(self, tmp_path):
        path = tmp_path / "convmem.toml"
        path.write_text("[memory\n")
        with pytest.raises(ConfigError, match="Failed to parse"):
            Settings.load(path)

    def test_summarizer_requires_model(self, tmp_path):
        path = tmp_path / "convmem.toml"
        path.write_text('[summarizer]\nbase_url = "http://localhost/v1"\n')
        with pytest.raises(ConfigError, match="summarizer"):
            Settings.load(path)

    def test_section_must_be_table(self):
        with pytest.raises(ConfigError, match="must be a table"):
            Settings.from_dict({"memory": 5})
