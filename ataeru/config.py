"""Configuration settings for the Ataeru upload server."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

# Defaults, overridable through the environment
DEFAULT_PORT = "5605"
DEFAULT_STORAGE_DIR = "./store"
DEFAULT_MAX_FILE_SIZE = "2"  # MB
DEFAULT_PUBLIC_UPLOAD = "true"
DEFAULT_PUBLIC_HOST = "localhost"
DEFAULT_LOG_DIR = "logs"

# Storage layout under the storage root
FILES_DIR_NAME = "files"
HASHES_DIR_NAME = "hashes"
KEYS_FILE_NAME = "keys"

_TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


class ConfigError(Exception):
    """Raised when the server cannot be configured. Fatal at startup."""


def mb_to_bytes(mb: int) -> int:
    return mb << 20


def parse_bool(name: str, value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def parse_int(name: str, value: str) -> int:
    try:
        return int(value, 10)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class Config:
    port: int
    storage_dir: Path
    max_file_size: int  # MB
    public_upload: bool
    public_host: str = DEFAULT_PUBLIC_HOST
    log_dir: Path = Path(DEFAULT_LOG_DIR)

    @property
    def max_file_size_bytes(self) -> int:
        return mb_to_bytes(self.max_file_size)

    @property
    def files_dir(self) -> Path:
        return self.storage_dir / FILES_DIR_NAME

    @property
    def hashes_dir(self) -> Path:
        return self.storage_dir / HASHES_DIR_NAME

    @property
    def keys_file(self) -> Path:
        return self.storage_dir / KEYS_FILE_NAME

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> 'Config':
        """Create Config from ATAERU_* environment variables.

        Raises:
            ConfigError: if a numeric or boolean value cannot be parsed.
        """
        port = parse_int("ATAERU_PORT", environ.get("ATAERU_PORT", DEFAULT_PORT))
        if not 0 < port < 65536:
            raise ConfigError(f"ATAERU_PORT must be between 1 and 65535, got {port}")

        max_file_size = parse_int(
            "ATAERU_MAX_FILE_SIZE",
            environ.get("ATAERU_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE),
        )
        if max_file_size <= 0:
            raise ConfigError(f"ATAERU_MAX_FILE_SIZE must be positive, got {max_file_size}")

        public_upload = parse_bool(
            "ATAERU_PUBLIC_UPLOAD",
            environ.get("ATAERU_PUBLIC_UPLOAD", DEFAULT_PUBLIC_UPLOAD),
        )

        return cls(
            port=port,
            storage_dir=Path(environ.get("ATAERU_STORAGE_DIR", DEFAULT_STORAGE_DIR)),
            max_file_size=max_file_size,
            public_upload=public_upload,
            public_host=environ.get("ATAERU_PUBLIC_HOST", DEFAULT_PUBLIC_HOST),
            log_dir=Path(environ.get("ATAERU_LOG_DIR", DEFAULT_LOG_DIR)),
        )


def ensure_storage_layout(config: Config) -> None:
    """Create the storage root, its files/ and hashes/ directories and an empty keys file."""
    try:
        config.storage_dir.mkdir(parents=True, exist_ok=True)
        config.files_dir.mkdir(exist_ok=True)
        config.hashes_dir.mkdir(exist_ok=True)
        config.keys_file.touch(exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Error while trying to create storage layout in {config.storage_dir}: {e}") from e


def load_config(environ: Mapping[str, str] = os.environ) -> Config:
    config = Config.from_env(environ)
    ensure_storage_layout(config)
    return config
