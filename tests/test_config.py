"""Tests for configuration module."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from cloudflare_backup.config import (
    DEFAULT_API_BASE_URL,
    ApiConfig,
    Config,
    ConfigValidationError,
    ExportConfig,
    LoggingConfig,
    OutputConfig,
    dict_to_config,
    load_config,
    load_config_from_file,
    merge_config,
    parse_args,
    validate_config_dict,
)
from cloudflare_backup.models import ErrorPolicy


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Keep a developer's ./config.toml out of the tests."""
    monkeypatch.chdir(tmp_path)


class TestApiConfig:
    """Tests for ApiConfig."""

    def test_token(self):
        config = ApiConfig(token="abc")
        assert config.token == "abc"
        assert config.base_url == DEFAULT_API_BASE_URL
        assert config.timeout == 30.0

    def test_key_with_email(self):
        config = ApiConfig(key="k", email="me@example.com")
        assert config.key == "k"

    def test_missing_credential(self):
        with pytest.raises(ValueError, match="API token or an API key is required"):
            ApiConfig()

    def test_both_credentials(self):
        with pytest.raises(ValueError, match="Only one of"):
            ApiConfig(token="t", key="k", email="me@example.com")

    def test_key_without_email_is_a_bearer_key(self):
        config = ApiConfig(key="k")
        assert config.key == "k"
        assert config.uses_global_key is False

    def test_key_with_email_is_a_global_key(self):
        assert ApiConfig(key="k", email="me@example.com").uses_global_key is True

    def test_token_with_email_is_not_a_global_key(self):
        assert ApiConfig(token="t", email="me@example.com").uses_global_key is False

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            ApiConfig(token="t", timeout=0)


class TestOutputConfig:
    """Tests for OutputConfig."""

    def test_default_values(self):
        config = OutputConfig()
        assert config.directory == "output/"
        assert config.directory_as_path == Path("output")


class TestExportConfig:
    """Tests for ExportConfig."""

    def test_default_values(self):
        config = ExportConfig()
        assert config.page_rules is False
        assert config.on_error == ErrorPolicy.ABORT


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_default_values(self):
        config = LoggingConfig()
        assert config.level == "INFO"
        assert config.file_enabled is False
        assert config.file_path == "/var/log/cloudflare-backup.log"


class TestMergeConfig:
    """Tests for merge_config function."""

    def test_simple_merge(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3, "c": 4}
        result = merge_config(base, override)
        assert result == {"a": 1, "b": 3, "c": 4}

    def test_nested_merge(self):
        base = {"api": {"token": "file", "timeout": 10}}
        override = {"api": {"timeout": 5}}
        result = merge_config(base, override)
        assert result == {"api": {"token": "file", "timeout": 5}}
        assert base["api"]["timeout"] == 10


class TestDictToConfig:
    """Tests for dict_to_config function."""

    def test_minimal_dict(self):
        config = dict_to_config({"api": {"token": "t"}})
        assert config.output.directory == "output/"
        assert config.export.on_error == ErrorPolicy.ABORT
        assert config.logging.level == "INFO"

    def test_full_dict(self):
        data = {
            "api": {"key": "k", "email": "me@example.com", "timeout": 5},
            "output": {"directory": "~/backups"},
            "export": {"page_rules": True, "on_error": "continue"},
            "logging": {"level": "DEBUG", "file_enabled": True, "file_path": "/tmp/cb.log"},
        }
        config = dict_to_config(data)
        assert config.api.key == "k"
        assert config.api.timeout == 5.0
        assert config.output.directory == str(Path("~/backups").expanduser())
        assert config.export.page_rules is True
        assert config.export.on_error == ErrorPolicy.CONTINUE
        assert config.logging.file_enabled is True

    def test_missing_api_section_is_validated(self):
        with pytest.raises(ValueError, match="API token or an API key is required"):
            Config()


class TestLoadConfigFromFile:
    """Tests for load_config_from_file function."""

    def test_load_toml_file(self):
        toml_content = """
[api]
token = "file-token"

[output]
directory = "/srv/backups"

[export]
page_rules = true
"""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write(toml_content)
            f.flush()
            config_path = Path(f.name)

        try:
            data = load_config_from_file(config_path)
            assert data["api"]["token"] == "file-token"
            assert data["output"]["directory"] == "/srv/backups"
            assert data["export"]["page_rules"] is True
        finally:
            config_path.unlink()


class TestParseArgs:
    """Tests for parse_args function."""

    def test_default_args(self):
        args = parse_args([])
        assert args.config is None
        assert args.api_token is None
        assert args.api_key is None
        assert args.api_email is None
        assert args.timeout is None
        assert args.output is None
        assert args.page_rules is None
        assert args.on_error is None
        assert args.log_level is None
        assert args.log_file_enabled is None
        assert args.log_file_path is None

    def test_custom_args(self):
        args = parse_args(
            ["--api-token", "t", "--output", "backups/", "--timeout", "5", "--log-level", "DEBUG"],
        )
        assert args.api_token == "t"
        assert args.output == "backups/"
        assert args.timeout == 5.0
        assert args.log_level == "DEBUG"

    def test_token_and_key_are_exclusive(self):
        with pytest.raises(SystemExit):
            parse_args(["--api-token", "t", "--api-key", "k"])

    def test_page_rules_flags(self):
        assert parse_args(["--page-rules"]).page_rules is True
        assert parse_args(["--no-page-rules"]).page_rules is False

    def test_error_policy_flags(self):
        assert parse_args(["--continue-on-error"]).on_error == ErrorPolicy.CONTINUE
        assert parse_args(["--abort-on-error"]).on_error == ErrorPolicy.ABORT

    def test_log_file_path(self):
        args = parse_args(["--log-file-path", "/custom/log.path"])
        assert isinstance(args.log_file_path, Path)
        assert args.log_file_path == Path("/custom/log.path")


class TestLoadConfig:
    """Tests for load_config."""

    def test_cli_only(self):
        config = load_config(parse_args(["--api-token", "cli-token", "--continue-on-error"]))
        assert config.api.token == "cli-token"
        assert config.export.on_error == ErrorPolicy.CONTINUE
        assert config.output.directory == "output/"

    def test_missing_credential(self):
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(parse_args([]))
        error_msg = str(exc_info.value)
        assert "[api]" in error_msg
        assert "API token or an API key is required" in error_msg

    def test_default_config_file_is_used(self, tmp_path):
        (tmp_path / "config.toml").write_text('[api]\ntoken = "file-token"\n')
        config = load_config(parse_args([]))
        assert config.api.token == "file-token"

    def test_cli_overrides_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text(
            '[api]\nkey = "file-key"\nemail = "me@example.com"\n\n[output]\ndirectory = "from-file"\n',
        )
        config = load_config(
            parse_args(["--config", str(path), "--api-token", "cli-token", "--output", "from-cli"]),
        )
        assert config.api.token == "cli-token"
        assert config.api.key is None
        assert config.output.directory == "from-cli"

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(SystemExit):
            load_config(parse_args(["--config", str(tmp_path / "nope.toml")]))

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "broken.toml"
        path.write_text("[api\n")
        with pytest.raises(SystemExit):
            load_config(parse_args(["--config", str(path)]))


class TestConfigValidation:
    """Tests for configuration validation."""

    def test_valid_config(self):
        data = {
            "api": {"token": "t", "timeout": 10},
            "export": {"page_rules": True, "on_error": "abort"},
            "logging": {"level": "DEBUG", "file_enabled": True},
        }
        # Should not raise
        validate_config_dict(data)

    def test_invalid_timeout_type(self):
        data = {"api": {"token": "t", "timeout": "soon"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data, Path("config.toml"))
        error_msg = str(exc_info.value)
        assert "api.timeout" in error_msg
        assert "float" in error_msg
        assert "soon" in error_msg

    def test_invalid_error_policy(self):
        data = {"api": {"token": "t"}, "export": {"on_error": "retry"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data)
        error_msg = str(exc_info.value)
        assert "export.on_error" in error_msg
        assert "retry" in error_msg

    def test_invalid_bool_type(self):
        data = {"api": {"token": "t"}, "export": {"page_rules": "abc"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data)
        error_msg = str(exc_info.value)
        assert "export.page_rules" in error_msg
        assert "bool" in error_msg

    def test_credential_error_does_not_echo_secrets(self):
        data = {"api": {"token": "super-secret-token", "key": "other-secret", "email": "a@b.c"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data)
        error_msg = str(exc_info.value)
        assert "Only one of API token or API key" in error_msg
        assert "super-secret-token" not in error_msg

    def test_error_shows_config_path(self):
        data = {"api": {"token": "t", "timeout": "invalid"}}
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config_dict(data, Path("/path/to/config.toml"))
        error_msg = str(exc_info.value)
        assert "/path/to/config.toml" in error_msg
