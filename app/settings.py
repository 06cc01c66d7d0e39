from constants import CONFIG_DIR, CONFIG_FILE, DEFAULT_SETTINGS, PROVIDER_KEY_ENV
import copy
import yaml
import os

import logging

# Retrieve main logger
logger = logging.getLogger("main")


# Cache variable
_cached_settings = None


def _deep_merge(base, overrides):
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_environment(settings):
    """Provider api keys from the environment win over the file"""
    for provider, env_name in PROVIDER_KEY_ENV.items():
        value = os.environ.get(env_name)
        if value:
            settings["providers"].setdefault(provider, {})["api_key"] = value
    return settings


def load_settings(force=False):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    if os.path.exists(CONFIG_FILE):
        logger.debug(f"Reading configuration file: {CONFIG_FILE}")
        with open(CONFIG_FILE, "r") as yaml_file:
            file_settings = yaml.safe_load(yaml_file) or {}

        # Deep merge with defaults so new keys are always present
        settings = _deep_merge(DEFAULT_SETTINGS, file_settings)

    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        os.makedirs(CONFIG_DIR, exist_ok=True)
        with open(CONFIG_FILE, "w") as yaml_file:
            yaml.dump(settings, yaml_file)
        logger.info(f"Default configuration written to {CONFIG_FILE}")

    _cached_settings = _apply_environment(settings)
    return _cached_settings
