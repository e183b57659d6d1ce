"""Configuration management for the depot CLI."""

import os
import json


CONFIG_DIR = os.environ.get("DEPOT_CONFIG_DIR", os.path.expanduser("~/.depot-cli"))
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")

DEFAULT_CONFIG = {
    "http_timeout": 60.0,
    "max_redirects": 5,
    "verify_tls": True,
    "jobs": 1,
}


def ensure_config_exists():
    """Ensure the configuration directory and file exist."""
    if not os.path.exists(CONFIG_DIR):
        os.makedirs(CONFIG_DIR)

    if not os.path.exists(CONFIG_FILE):
        with open(CONFIG_FILE, "w") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)


def get_config():
    """Get the current configuration.

    Reading never creates the configuration file, so build scripts don't
    write into the user's home directory.

    Returns:
        dict: Defaults overlaid with the values stored in the config file.
    """
    config = dict(DEFAULT_CONFIG)
    if os.path.exists(CONFIG_FILE):
        with open(CONFIG_FILE, "r") as f:
            config.update(json.load(f))
    return config


def update_config(updates):
    """Update the configuration with new values.

    Args:
        updates (dict): Dictionary of configuration values to update.
    """
    ensure_config_exists()
    with open(CONFIG_FILE, "r") as f:
        config = json.load(f)
    config.update(updates)

    with open(CONFIG_FILE, "w") as f:
        json.dump(config, f, indent=2)


def parse_setting(key, raw):
    """Convert a command-line string into the type of a known setting.

    Args:
        key (str): Setting name.
        raw (str): Value as typed by the user.

    Returns:
        The converted value.

    Raises:
        ValueError: If the key is unknown or the value doesn't convert.
    """
    if key not in DEFAULT_CONFIG:
        raise ValueError(f"Unknown setting '{key}' (known: {', '.join(sorted(DEFAULT_CONFIG))})")

    default = DEFAULT_CONFIG[key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"Setting '{key}' expects true or false, got '{raw}'")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw
