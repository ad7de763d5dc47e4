"""Tests for PublisherConfig and environment loading."""

import pytest

from sidecar.config import DEFAULT_FLUSH_INTERVAL, PublisherConfig, from_env
from sidecar.delivery import DEFAULT_TIMEOUT
from sidecar.errors import ConfigError


class TestPublisherConfig:
    """Tests for PublisherConfig validation."""

    def test_defaults(self):
        """Interval and timeout have defaults."""
        config = PublisherConfig(directory="/spool", endpoint="http://collector/ingest")
        assert config.flush_interval == DEFAULT_FLUSH_INTERVAL == 2.0
        assert config.timeout == DEFAULT_TIMEOUT == 10.0

    @pytest.mark.parametrize(
        "endpoint",
        ["", "collector/ingest", "ftp://collector/ingest", "http://"],
    )
    def test_rejects_bad_endpoint(self, endpoint):
        """The endpoint must be an http(s) URL."""
        with pytest.raises(ConfigError, match="endpoint"):
            PublisherConfig(directory="/spool", endpoint=endpoint)

    def test_rejects_empty_directory(self):
        """A directory is required."""
        with pytest.raises(ConfigError, match="directory"):
            PublisherConfig(directory="", endpoint="http://collector/ingest")

    @pytest.mark.parametrize("field", ["flush_interval", "timeout"])
    @pytest.mark.parametrize("value", [0, -5, float("nan"), float("inf")])
    def test_rejects_non_positive_durations(self, field, value):
        """Durations must be positive and finite."""
        with pytest.raises(ConfigError, match=field):
            PublisherConfig(directory="/spool", endpoint="http://collector/ingest", **{field: value})

    def test_config_error_is_value_error(self):
        """ConfigError can be caught as ValueError."""
        with pytest.raises(ValueError):
            PublisherConfig(directory="/spool", endpoint="nope")


class TestFromEnv:
    """Tests for from_env()."""

    def test_reads_environment(self, clean_env):
        """All settings are read from SIDECAR_* variables."""
        clean_env.setenv("SIDECAR_DIRECTORY", "/var/spool/telemetry")
        clean_env.setenv("SIDECAR_ENDPOINT", "https://collector.example.com/ingest")
        clean_env.setenv("SIDECAR_FLUSH_INTERVAL", "5")
        clean_env.setenv("SIDECAR_TIMEOUT", "2.5")

        config = from_env()

        assert config == PublisherConfig(
            directory="/var/spool/telemetry",
            endpoint="https://collector.example.com/ingest",
            flush_interval=5.0,
            timeout=2.5,
        )

    def test_defaults_when_optional_unset(self, clean_env):
        """Interval and timeout fall back to defaults."""
        clean_env.setenv("SIDECAR_DIRECTORY", "/spool")
        clean_env.setenv("SIDECAR_ENDPOINT", "http://collector/ingest")

        config = from_env()

        assert config.flush_interval == DEFAULT_FLUSH_INTERVAL
        assert config.timeout == DEFAULT_TIMEOUT

    def test_arguments_override_environment(self, clean_env):
        """Explicit arguments win over environment variables."""
        clean_env.setenv("SIDECAR_DIRECTORY", "/env/spool")
        clean_env.setenv("SIDECAR_ENDPOINT", "http://env/ingest")
        clean_env.setenv("SIDECAR_FLUSH_INTERVAL", "30")

        config = from_env(directory="/arg/spool", flush_interval=1.0)

        assert config.directory == "/arg/spool"
        assert config.endpoint == "http://env/ingest"
        assert config.flush_interval == 1.0

    def test_missing_directory(self, clean_env):
        """A missing directory names the variable."""
        clean_env.setenv("SIDECAR_ENDPOINT", "http://collector/ingest")
        with pytest.raises(ConfigError, match="SIDECAR_DIRECTORY"):
            from_env()

    def test_missing_endpoint(self, clean_env):
        """A missing endpoint names the variable."""
        clean_env.setenv("SIDECAR_DIRECTORY", "/spool")
        with pytest.raises(ConfigError, match="SIDECAR_ENDPOINT"):
            from_env()

    def test_malformed_number(self, clean_env):
        """Non-numeric durations are rejected."""
        clean_env.setenv("SIDECAR_DIRECTORY", "/spool")
        clean_env.setenv("SIDECAR_ENDPOINT", "http://collector/ingest")
        clean_env.setenv("SIDECAR_FLUSH_INTERVAL", "soon")
        with pytest.raises(ConfigError, match="SIDECAR_FLUSH_INTERVAL"):
            from_env()

    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf"])
    def test_non_finite_interval_rejected(self, clean_env, raw):
        """Values like nan parse as floats but are not valid durations."""
        clean_env.setenv("SIDECAR_DIRECTORY", "/spool")
        clean_env.setenv("SIDECAR_ENDPOINT", "http://collector/ingest")
        clean_env.setenv("SIDECAR_FLUSH_INTERVAL", raw)
        with pytest.raises(ConfigError, match="flush_interval"):
            from_env()
