import json
import os
from pathlib import Path

from mvc.errors import ConfigError

MVCCONFIG = ".mvcconfig"
GLOBAL_CONFIG_FILE = Path.home() / ".mvc" / "config.json"

DEFAULT_CONFIG = {
    "repository": ".mvc",
    "source": ".",
    # Optional: "name": "...", "email": "..."
}


def load_global_config():
    """Load ~/.mvc/config.json — identity defaults set by mvc config."""
    if GLOBAL_CONFIG_FILE.exists():
        try:
            data = json.loads(GLOBAL_CONFIG_FILE.read_text())
        except (json.JSONDecodeError, OSError):
            return {}
        if isinstance(data, dict):
            return data
    return {}


def save_global_config(updates):
    """Merge updates into ~/.mvc/config.json."""
    existing = load_global_config()
    existing.update(updates)
    GLOBAL_CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    GLOBAL_CONFIG_FILE.write_text(json.dumps(existing, indent=2) + "\n")


def find_config(start=None):
    """Walk up from cwd to find .mvcconfig, like git finds .git."""
    current = Path(start).resolve() if start else Path.cwd()
    for parent in [current, *current.parents]:
        config_path = parent / MVCCONFIG
        if config_path.exists():
            return config_path
    return None


def load_config(start=None):
    # Merge order: defaults → global config → project .mvcconfig
    config = {**DEFAULT_CONFIG, **load_global_config()}

    config_path = find_config(start)
    if config_path:
        try:
            raw = json.loads(config_path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_path}: {e}", path=str(config_path))
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path} must hold a JSON object", path=str(config_path))
        config.update(raw)

    config["project"] = str(config_path.parent if config_path else Path(start or Path.cwd()).resolve())
    return config


def resolve_path(config, key):
    """Resolve a configured path against the project, rendered relative to the cwd.

    Traversal roots must be relative: an absolute root is excluded as a whole.
    """
    return Path(os.path.relpath(Path(config["project"]) / config[key]))


def init_config(path=None, repository=None):
    """Create a .mvcconfig in the given directory."""
    target = Path(path) if path else Path.cwd()
    config_path = target / MVCCONFIG
    init = {
        "repository": repository or DEFAULT_CONFIG["repository"],
        "source": DEFAULT_CONFIG["source"],
    }
    config_path.write_text(json.dumps(init, indent=2))
    return config_path
