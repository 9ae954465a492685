"""Screen configuration stored as JSON in the user's home directory."""

import datetime
import json
import logging
import os

import pytz

from src.prayer_calc import DEFAULT_HOLDING_DURATIONS

logger = logging.getLogger(__name__)

PACKAGE_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

DEFAULT_CONFIG = {
    "timezone": "Europe/London",
    "environment": "production",
    "data_dir": os.path.join(PACKAGE_ROOT, "data"),
    "holding_minutes": {},
    "log_level": "INFO",
}

ENV_VAR = "PRAYERBOARD_ENV"

CONFIG_DIR = os.path.join(os.path.expanduser("~"), ".prayerboard")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config.json")


def load_config() -> dict:
    """
    Load the saved configuration merged over DEFAULT_CONFIG.

    A missing or unreadable file yields the defaults. The PRAYERBOARD_ENV
    environment variable, when set, overrides the "environment" key.
    """
    config = dict(DEFAULT_CONFIG)
    if os.path.isfile(CONFIG_FILE):
        try:
            with open(CONFIG_FILE, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                config.update(data)
            else:
                logger.warning(f"Ignoring config file {CONFIG_FILE}: expected a JSON object")
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable config file {CONFIG_FILE}: {e}")
    env = os.environ.get(ENV_VAR)
    if env:
        config["environment"] = env
    return config


def save_config(config: dict) -> None:
    """Write the configuration to the config file."""
    os.makedirs(CONFIG_DIR, exist_ok=True)
    with open(CONFIG_FILE, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)


def clear_config() -> None:
    """Remove the saved configuration file."""
    if os.path.isfile(CONFIG_FILE):
        os.remove(CONFIG_FILE)


def get_timezone(config: dict):
    """Resolve the configured timezone name, falling back to UTC."""
    name = config.get("timezone") or DEFAULT_CONFIG["timezone"]
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"Unknown timezone {name!r}, using UTC")
        return pytz.utc


def is_production(config: dict) -> bool:
    return str(config.get("environment", "production")).lower() == "production"


def get_holding_durations(config: dict) -> dict:
    """
    Build the holding-duration table from the defaults plus configured overrides.

    Overrides are given in minutes under "holding_minutes". Invalid values are
    logged and skipped.
    """
    durations = dict(DEFAULT_HOLDING_DURATIONS)
    overrides = config.get("holding_minutes") or {}
    if not isinstance(overrides, dict):
        logger.warning(f"Ignoring holding_minutes: expected an object, got {overrides!r}")
        return durations
    for prayer, minutes in overrides.items():
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or minutes < 0:
            logger.warning(f"Ignoring holding duration for {prayer}: {minutes!r}")
            continue
        durations[prayer] = datetime.timedelta(minutes=minutes)
    return durations
