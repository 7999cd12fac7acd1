"""Configuration loading from an optional YAML file, env vars, and CLI args."""

import logging
import os
from dataclasses import dataclass, fields

import yaml

from evtx2bodyfile.extractor import ExtractorOptions
from evtx2bodyfile.formatter import OUTPUT_FORMATS
from evtx2bodyfile.timestamps import SYSTEM_TIME_FORMAT

logger = logging.getLogger(__name__)


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Config:
    output_format: str = "bodyfile"           # "bodyfile" or "json"
    timestamp_format: str = SYSTEM_TIME_FORMAT
    strict_timestamp: bool = True             # round-trip mismatch aborts the file
    track_channel: bool = True
    track_activity_id: bool = True
    fail_fast: bool = False                   # stop the whole run on the first fatal file
    show_progress: bool = True

    def __post_init__(self):
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}"
            )

    def extractor_options(self) -> ExtractorOptions:
        return ExtractorOptions(
            track_channel=self.track_channel,
            track_activity_id=self.track_activity_id,
            timestamp_format=self.timestamp_format,
            strict_timestamp=self.strict_timestamp,
        )


# env var -> (Config field, converter)
_ENV_VARS = {
    "OUTPUT_FORMAT": ("output_format", str),
    "TIMESTAMP_FORMAT": ("timestamp_format", str),
    "STRICT_TIMESTAMP": ("strict_timestamp", _parse_bool),
    "TRACK_CHANNEL": ("track_channel", _parse_bool),
    "TRACK_ACTIVITY_ID": ("track_activity_id", _parse_bool),
    "FAIL_FAST": ("fail_fast", _parse_bool),
    "SHOW_PROGRESS": ("show_progress", _parse_bool),
}

_BOOL_FIELDS = {f.name for f in fields(Config) if f.type in (bool, "bool")}


def load_yaml_config(path: str | None) -> dict:
    """Load settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    logger.info("Loaded YAML config from %s", path)
    return data


def _from_yaml(yaml_data: dict) -> dict:
    known = {f.name for f in fields(Config)}
    settings = {}
    for key, value in yaml_data.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        settings[key] = _parse_bool(value) if key in _BOOL_FIELDS else value
    return settings


def _from_env(environ) -> dict:
    settings = {}
    for var, (name, convert) in _ENV_VARS.items():
        if var in environ:
            settings[name] = convert(environ[var])
    return settings


def _from_cli(cli_args) -> dict:
    if cli_args is None:
        return {}
    settings = {}
    if getattr(cli_args, "json_output", False):
        settings["output_format"] = "json"
    if getattr(cli_args, "timestamp_format", None):
        settings["timestamp_format"] = cli_args.timestamp_format
    if getattr(cli_args, "lenient_timestamps", False):
        settings["strict_timestamp"] = False
    if getattr(cli_args, "no_channel", False):
        settings["track_channel"] = False
    if getattr(cli_args, "no_activity_id", False):
        settings["track_activity_id"] = False
    if getattr(cli_args, "fail_fast", False):
        settings["fail_fast"] = True
    if getattr(cli_args, "no_progress", False):
        settings["show_progress"] = False
    return settings


def load_config(cli_args=None, yaml_data: dict | None = None, environ=None) -> Config:
    """Build Config from defaults, then YAML, then env vars, then CLI flags."""
    settings = {}
    settings.update(_from_yaml(yaml_data or {}))
    settings.update(_from_env(os.environ if environ is None else environ))
    settings.update(_from_cli(cli_args))
    return Config(**settings)
