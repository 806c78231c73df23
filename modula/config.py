"""Settings and the local config file that holds the bearer token."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import NotAuthenticatedError

logger = logging.getLogger(__name__)


DEFAULT_API_URL = "http://localhost:3031"
API_URL_ENV = "MODULA_API_URL"
CONFIG_DIR_ENV = "MODULA_CONFIG_DIR"
CONFIG_FILENAME = "config.json"


def get_api_url() -> str:
    """Backend base URL, overridable through MODULA_API_URL."""
    return os.environ.get(API_URL_ENV) or DEFAULT_API_URL


def get_config_path() -> Path:
    """Location of the config file (~/.modula/config.json by default)."""
    config_dir = os.environ.get(CONFIG_DIR_ENV)
    base = Path(config_dir).expanduser() if config_dir else Path.home() / ".modula"
    return base / CONFIG_FILENAME


class Config:
    """In-memory view of the persisted config mapping."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self.data: Dict[str, Any] = dict(data or {})

    @property
    def token(self) -> Optional[str]:
        return self.data.get("token") or None

    @token.setter
    def token(self, value: Optional[str]):
        if value:
            self.data["token"] = value
        else:
            self.data.pop("token", None)

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def auth_header(self) -> Dict[str, str]:
        """Authorization header for the stored token; raises if none is stored."""
        if not self.token:
            raise NotAuthenticatedError()
        return {"Authorization": f"Bearer {self.token}"}

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.data)


class ConfigStore:
    """Reads and writes the config mapping as a JSON file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else get_config_path()

    def load(self) -> Config:
        """Load the config, creating an empty file (and its directory) on first access."""
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("{}", encoding="utf-8")
            logger.debug("Created empty config at %s", self.path)
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError:
            logger.warning("Config file %s is corrupted, using defaults", self.path)
            return Config()
        if not isinstance(data, dict):
            logger.warning("Config file %s does not hold a mapping, using defaults", self.path)
            return Config()
        return Config(data)

    def save(self, config: Config) -> None:
        """Write the whole mapping back, replacing the previous contents."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(config.to_dict(), f, indent=2)
            f.write("\n")
        # Only the owner may read the token
        os.chmod(self.path, 0o600)
        logger.debug("Saved config to %s", self.path)


class MemoryConfigStore:
    """Config store kept in memory, with the same interface as ConfigStore."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self.path = None
        self.data: Dict[str, Any] = dict(initial or {})

    def load(self) -> Config:
        return Config(self.data)

    def save(self, config: Config) -> None:
        self.data = config.to_dict()
