"""
Configuration service for MemeForge.

Settings live as JSON in ~/.config/memeforge/config.json, following the
XDG Base Directory Specification. Missing keys are filled from
DEFAULT_CONFIG and written back, so the file on disk always lists every
setting. A corrupt file is replaced with the defaults.

Nested settings are addressed with dotted keys, e.g. ``editor.default_font``.
The backend location can be overridden with the MEMEFORGE_API_URL and
MEMEFORGE_ASSETS_URL environment variables.
"""

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from memeforge.services.logging_service import get_logger

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "memeforge"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "theme": "dark",
    # REST API root; every request path is relative to this
    "api_url": "http://localhost:7894/api",
    # Root that relative asset paths (e.g. /assets/generated/x.png) are joined onto
    "assets_url": "http://localhost:7894",
    # Seconds before a request or remote image load is abandoned
    "request_timeout": 30.0,
    # Where "Download" writes finished memes
    "default_save_folder": str(Path.home() / "Pictures" / "MemeForge"),
    # Applied to newly added text overlays
    "editor": {
        "default_color": "#FFFFFF",
        "default_font": "Impact",
        "default_font_size": 32,
    },
    "ai": {
        "default_style": "realistic",
        "default_model": "dall-e-3",
    },
}

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "MEMEFORGE_API_URL": "api_url",
    "MEMEFORGE_ASSETS_URL": "assets_url",
}

_MISSING = object()


def merge_into(target: Dict[str, Any], updates: Dict[str, Any]) -> None:
    """Recursively copy ``updates`` into ``target``; nested dicts are merged, not replaced."""
    for key, value in updates.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merge_into(current, value)
        else:
            target[key] = value


class ConfigService:
    """
    Loads, queries and persists the user's settings.

    Reads always succeed: anything missing or unreadable falls back to
    DEFAULT_CONFIG.
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        self._logger = get_logger(__name__)
        self._path = config_path or DEFAULT_CONFIG_FILE
        self._data: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        self.reload()

    @property
    def path(self) -> Path:
        return self._path

    def reload(self) -> None:
        """Re-read the file on top of fresh defaults."""
        self._data = copy.deepcopy(DEFAULT_CONFIG)

        if not self._path.exists():
            self._logger.info(f"No config at {self._path}, writing defaults")
            self.save()
            return

        try:
            stored = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            self._logger.warning(f"Config {self._path} is not valid JSON ({e}), resetting")
            self.save()
            return
        except OSError as e:
            self._logger.warning(f"Cannot read config {self._path} ({e}), using defaults")
            return

        if not isinstance(stored, dict):
            self._logger.warning(f"Config {self._path} is not a JSON object, resetting")
            self.save()
            return

        merge_into(self._data, stored)
        self._logger.info(f"Configuration loaded from {self._path}")
        # Persist keys added since the file was written
        self.save()

    def save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        except OSError as e:
            self._logger.error(f"Could not write config {self._path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key.

        Environment overrides in ENV_OVERRIDES take precedence over the file.
        """
        for env_name, config_key in ENV_OVERRIDES.items():
            if config_key == key and os.environ.get(env_name):
                return os.environ[env_name]

        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict):
                return default
            node = node.get(part, _MISSING)
            if node is _MISSING:
                return default
        return node

    def set(self, key: str, value: Any) -> None:
        """Change a dotted key in memory. Call save() to persist."""
        *parents, leaf = key.split(".")
        node = self._data
        for part in parents:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[leaf] = value
        self._logger.debug(f"Config '{key}' = {value!r}")

    # ─── Backend ──────────────────────────────────────────────────────────

    @property
    def api_url(self) -> str:
        return str(self.get("api_url", DEFAULT_CONFIG["api_url"])).rstrip("/")

    @property
    def assets_url(self) -> str:
        return str(self.get("assets_url", DEFAULT_CONFIG["assets_url"])).rstrip("/")

    @property
    def request_timeout(self) -> float:
        return float(self.get("request_timeout", DEFAULT_CONFIG["request_timeout"]))

    # ─── Appearance / output ──────────────────────────────────────────────

    @property
    def theme(self) -> str:
        return self.get("theme", "dark")

    @property
    def default_save_folder(self) -> str:
        return self.get("default_save_folder", DEFAULT_CONFIG["default_save_folder"])

    # ─── Editor ───────────────────────────────────────────────────────────

    @property
    def default_color(self) -> str:
        return self.get("editor.default_color", "#FFFFFF")

    @property
    def default_font(self) -> str:
        return self.get("editor.default_font", "Impact")

    @property
    def default_font_size(self) -> int:
        return int(self.get("editor.default_font_size", 32))

    # ─── AI generation ────────────────────────────────────────────────────

    @property
    def default_ai_style(self) -> str:
        return self.get("ai.default_style", "realistic")

    @property
    def default_ai_model(self) -> str:
        return self.get("ai.default_model", "dall-e-3")
