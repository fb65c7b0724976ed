from __future__ import annotations
import os
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from modflow.configuration.ai_settings import AISettings
from modflow.configuration.moderation_settings import ModerationSettings
from modflow.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path(os.getenv("MODFLOW_CONFIG") or "./config/app_config.yml").resolve()


class AppConfig:
    """File-lock based accessor around the YAML-based application configuration.

    The class caches contents of ``./config/app_config.yml``, exposes
    dictionary-like access helpers, and wraps the ``ai_settings`` and
    ``moderation`` sections in typed helpers. Uses fcntl file locks for safe
    concurrent access across processes.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            logger.error("[APP CONFIGURATION] Config %s is not a mapping, ignoring it.", self.config_path)
            return {}
        return data

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache; callers should not mutate it.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def ai_settings(self) -> AISettings:
        """Return the AI service settings wrapped in an AISettings helper."""
        return AISettings(self._section("ai_settings"))

    @property
    def moderation_settings(self) -> ModerationSettings:
        """Return the pipeline thresholds wrapped in a ModerationSettings helper."""
        return ModerationSettings(self._section("moderation"))

    @property
    def database_path(self) -> Path:
        value = self._section("storage").get("database_path") or "./data/modflow.db"
        return Path(str(value)).resolve()

    @property
    def blob_directory(self) -> Path:
        value = self._section("storage").get("blob_directory") or "./data/blobs"
        return Path(str(value)).resolve()

    @property
    def public_base_url(self) -> str:
        value = self._section("storage").get("public_base_url") or "http://localhost:8000/blobs"
        return str(value).rstrip("/")


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
