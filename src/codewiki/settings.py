"""Settings file I/O and runtime configuration for codewiki.

Manages a JSON settings file at XDG_CONFIG_HOME/codewiki/settings.json.
Effective configuration is resolved as: defaults < settings file < environment.

Import as: import codewiki.settings
"""

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DATA_HOME = os.path.expanduser("~/.local/share/codewiki")


@dataclass(frozen=True)
class WikiConfig:
    db_path: str
    diagram_dir: str
    diagram_url_prefix: str = "/diagrams"
    dot_command: str = "dot"


# setting key -> environment variable that overrides it
ENV_OVERRIDES: dict[str, str] = {
    "db_path": "CODEWIKI_DB_PATH",
    "diagram_dir": "CODEWIKI_DIAGRAM_DIR",
    "diagram_url_prefix": "CODEWIKI_DIAGRAM_URL",
    "dot_command": "CODEWIKI_DOT",
}


def get_config_path() -> Path:
    """Return path to settings file.

    Uses XDG_CONFIG_HOME (default ~/.config) / codewiki / settings.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "codewiki" / "settings.json"


def load_settings() -> dict:
    """Load settings from JSON file. Returns empty dict on missing/corrupt file."""
    path = get_config_path()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: dict) -> None:
    """Atomic write of settings dict to JSON file.

    Creates parent directories if needed. Writes to temp file then renames
    to avoid partial writes on crash.
    """
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def save_setting(key: str, value) -> None:
    """Save a single setting by key (merge into existing settings)."""
    data = load_settings()
    data[key] = value
    save_settings(data)


def load_config(environ: Optional[Mapping[str, str]] = None) -> WikiConfig:
    """Resolve WikiConfig from defaults, the settings file, then environment."""
    env = os.environ if environ is None else environ
    values: dict[str, object] = {
        "db_path": os.path.join(DATA_HOME, "wiki.db"),
        "diagram_dir": os.path.join(DATA_HOME, "diagrams"),
    }
    known = set(WikiConfig.__dataclass_fields__)
    values.update({k: v for k, v in load_settings().items() if k in known})
    for key, env_var in ENV_OVERRIDES.items():
        if env.get(env_var):
            values[key] = env[env_var]
    return WikiConfig(**values)
