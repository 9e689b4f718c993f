"""Tests for PlayerConfig and ConfigManager"""

import pytest
from pydantic import ValidationError

from beats_cli.exceptions import ConfigurationError
from beats_cli.models.config import PlayerConfig
from beats_cli.storage.config_manager import ConfigManager


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "beats-cli" / "config.ini"


def test_defaults():
    config = PlayerConfig()

    assert config.max_concurrent == 8
    assert config.fetch_attempts == 2
    assert config.track_timeout == 0.0
    assert config.default_mime_type == "audio/mpeg"
    assert config.autoplay is False
    assert "config_path" not in PlayerConfig.get_ini_keys()


@pytest.mark.parametrize(
    "field, value",
    [
        ("max_concurrent", 0),
        ("max_concurrent", 33),
        ("fetch_attempts", 6),
        ("fetch_timeout", -1),
        ("track_timeout", -1),
        ("tick_interval", 0.01),
        ("default_mime_type", "video/mp4"),
    ],
)
def test_rejects_out_of_range_values(field, value):
    with pytest.raises(ValidationError):
        PlayerConfig(**{field: value})


def test_track_timeout_may_be_shorter_than_fetch_timeout():
    config = PlayerConfig(fetch_timeout=30, fetch_attempts=2, track_timeout=10)

    assert config.track_timeout == 10
    assert config.fetch_timeout == 30


def test_mime_type_is_normalised():
    config = PlayerConfig(default_mime_type=" Audio/FLAC ")
    assert config.default_mime_type == "audio/flac"


def test_missing_file_uses_defaults(config_file):
    config = ConfigManager(config_file).load_config()

    assert config == PlayerConfig(config_path=str(config_file.parent))


def test_save_then_load(config_file):
    manager = ConfigManager(config_file)
    manager.save_new_config({"catalog_path": "/music/catalog.json", "autoplay": True})

    config = ConfigManager(config_file).load_config()

    assert config.catalog_path == "/music/catalog.json"
    assert config.autoplay is True
    assert config.max_concurrent == 8
    assert config.config_path == str(config_file.parent)


def test_cli_options_override_file(config_file):
    manager = ConfigManager(config_file)
    manager.save_new_config({"max_concurrent": 4})

    config = manager.load_config({"max_concurrent": 2})

    assert config.max_concurrent == 2


def test_migration_adds_missing_keys(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("[DEFAULT]\nmax_concurrent = 3\n", encoding="utf-8")

    config = ConfigManager(config_file).load_config()

    assert config.max_concurrent == 3
    content = config_file.read_text(encoding="utf-8")
    for key in PlayerConfig.get_ini_keys():
        assert key in content


def test_malformed_value_raises_configuration_error(config_file):
    config_file.parent.mkdir(parents=True)
    config_file.write_text("[DEFAULT]\nmax_concurrent = many\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        ConfigManager(config_file).load_config()


def test_invalid_value_raises_configuration_error(config_file):
    ConfigManager(config_file).save_new_config({"tick_interval": 10})

    with pytest.raises(ConfigurationError, match="validation failed"):
        ConfigManager(config_file).load_config()
