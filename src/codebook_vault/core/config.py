# Core Module: Settings
#
# Values are read from the environment. A .env file in the working
# directory (or the path given to load_settings) is loaded first via
# python-dotenv; variables already set in the environment win.

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

ENV_DB_PATH = "CODEBOOK_VAULT_DB_PATH"
ENV_AUDIT_DIR = "CODEBOOK_VAULT_AUDIT_DIR"
ENV_BUSY_TIMEOUT = "CODEBOOK_VAULT_BUSY_TIMEOUT_MS"
ENV_PAGE_SIZE = "CODEBOOK_VAULT_PAGE_SIZE"


@dataclass(frozen=True)
class VaultSettings:
    """Runtime settings for the codebook vault.

    Attributes:
        db_path: Default database file used by core.db.connect()
        audit_log_dir: Directory for daily audit log files
        busy_timeout_ms: SQLite busy_timeout applied on connect
        default_page_size: Page size used by get_entries() when none is given
    """
    db_path: Path = Path("data/codebook_vault.db")
    audit_log_dir: Path = Path("./audit_logs")
    busy_timeout_ms: int = 5000
    default_page_size: int = 20


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(env_file: Optional[Union[str, Path]] = None) -> VaultSettings:
    """
    Build settings from the environment.

    Args:
        env_file: Optional .env file to load before reading variables.
                  If None, python-dotenv searches for a .env file.

    Returns:
        VaultSettings

    Raises:
        ValueError: If an integer setting is not a valid integer
    """
    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=False)
    else:
        load_dotenv(override=False)

    defaults = VaultSettings()
    return VaultSettings(
        db_path=Path(os.getenv(ENV_DB_PATH) or defaults.db_path),
        audit_log_dir=Path(os.getenv(ENV_AUDIT_DIR) or defaults.audit_log_dir),
        busy_timeout_ms=_int_env(ENV_BUSY_TIMEOUT, defaults.busy_timeout_ms),
        default_page_size=_int_env(ENV_PAGE_SIZE, defaults.default_page_size),
    )


# Global settings instance
_settings: Optional[VaultSettings] = None


def get_settings() -> VaultSettings:
    """Get global settings (loaded once on first use)."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def set_settings(settings: Optional[VaultSettings]) -> None:
    """Replace the global settings (for testing). None forces a reload."""
    global _settings
    _settings = settings
