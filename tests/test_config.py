import logging
from pathlib import Path

import pytest

from ataeru.config import Config, ConfigError, ensure_storage_layout, load_config
from ataeru.logger_config import LOGGER_NAME, setup_logger


def test_defaults():
    config = Config.from_env({})
    assert config.port == 5605
    assert config.storage_dir == Path("./store")
    assert config.max_file_size == 2
    assert config.max_file_size_bytes == 2 * 1024 * 1024
    assert config.public_upload is True
    assert config.public_host == "localhost"


def test_environment_overrides(tmp_path):
    config = Config.from_env({
        "ATAERU_PORT": "8080",
        "ATAERU_STORAGE_DIR": str(tmp_path),
        "ATAERU_MAX_FILE_SIZE": "10",
        "ATAERU_PUBLIC_UPLOAD": "false",
        "ATAERU_PUBLIC_HOST": "files.example.org",
    })
    assert config.port == 8080
    assert config.storage_dir == tmp_path
    assert config.max_file_size_bytes == 10 << 20
    assert config.public_upload is False
    assert config.public_host == "files.example.org"
    assert config.files_dir == tmp_path / "files"
    assert config.hashes_dir == tmp_path / "hashes"
    assert config.keys_file == tmp_path / "keys"


@pytest.mark.parametrize("value,expected", [
    ("1", True), ("t", True), ("T", True), ("TRUE", True), ("true", True), ("True", True),
    ("0", False), ("f", False), ("F", False), ("FALSE", False), ("false", False), ("False", False),
])
def test_public_upload_values(value, expected):
    assert Config.from_env({"ATAERU_PUBLIC_UPLOAD": value}).public_upload is expected


@pytest.mark.parametrize("env", [
    {"ATAERU_PUBLIC_UPLOAD": "yes"},
    {"ATAERU_PUBLIC_UPLOAD": ""},
    {"ATAERU_MAX_FILE_SIZE": "two"},
    {"ATAERU_MAX_FILE_SIZE": "1.5"},
    {"ATAERU_MAX_FILE_SIZE": "0"},
    {"ATAERU_PORT": "http"},
    {"ATAERU_PORT": "70000"},
])
def test_invalid_values_are_rejected(env):
    with pytest.raises(ConfigError):
        Config.from_env(env)


def test_config_is_immutable():
    config = Config.from_env({})
    with pytest.raises(AttributeError):
        config.port = 1


def test_first_run_creates_layout(tmp_path):
    root = tmp_path / "fresh" / "store"
    config = load_config({"ATAERU_STORAGE_DIR": str(root)})

    assert config.files_dir.is_dir()
    assert config.hashes_dir.is_dir()
    assert config.keys_file.is_file()
    assert config.keys_file.read_text() == ""


def test_existing_layout_is_kept(tmp_path):
    config = Config(port=5605, storage_dir=tmp_path, max_file_size=2, public_upload=False)
    ensure_storage_layout(config)
    config.keys_file.write_text("secret123\n")
    (config.files_dir / "kept.txt").write_text("kept")

    ensure_storage_layout(config)

    assert config.keys_file.read_text() == "secret123\n"
    assert (config.files_dir / "kept.txt").exists()


def test_layout_failure_is_a_config_error(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    config = Config(port=5605, storage_dir=blocker, max_file_size=2, public_upload=True)

    with pytest.raises(ConfigError):
        ensure_storage_layout(config)


def test_setup_logger_is_idempotent(tmp_path):
    logger = logging.getLogger(LOGGER_NAME)
    saved = logger.handlers[:]
    logger.handlers.clear()
    try:
        setup_logger(tmp_path / "logs")
        setup_logger(tmp_path / "logs")
        assert len(logger.handlers) == 2
        assert (tmp_path / "logs" / "ataeru.log").exists()
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers[:] = saved
