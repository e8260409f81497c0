"""
Signage Configuration

Loads display settings from a Java-style properties file
(key=value lines, '#' or '!' comments).

Missing mandatory values raise ConfigError; malformed optional values are
logged and fall back to their defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, time
from pathlib import Path
from typing import Dict, List, Optional, Union
import configparser
import logging
import os

from .contracts import OperatingMode
from .errors import ConfigError


logger = logging.getLogger(__name__)

PROPERTIES_ENV = "SIGNAGE_PROPERTIES"
ROOM_ENV = "SIGNAGE_ROOM"

_SECTION = "signage"


@dataclass
class SignageConfig:
    """Everything the sync engine and display loop need to know."""
    data_host: str
    start_date: date
    image_cache: Path = field(default_factory=lambda: Path.home() / ".signage-cache")
    screen_refresh_seconds: int = 60
    data_refresh_minutes: int = 30
    logging_level: str = "INFO"
    mode: OperatingMode = OperatingMode.REAL
    test_day: int = 0
    test_time: time = time(9, 0)
    test_scale: float = 1.0
    fetch_timeout: float = 10.0
    utc_offset_hours: float = 1.0
    work_dir: Path = field(default_factory=lambda: Path("."))
    room_naming: str = "numbered"
    room_file: str = "current-room.txt"

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None) -> 'SignageConfig':
        """Load from `path`, or from the file named by $SIGNAGE_PROPERTIES."""
        if path is None:
            path = os.environ.get(PROPERTIES_ENV)
        if not path:
            raise ConfigError(f"No properties file given (set {PROPERTIES_ENV})")

        logger.info("Loading parameters from %s", path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ConfigError(f"Error reading properties file {path}: {e}") from e

        return cls.from_properties(read_properties(text))

    @classmethod
    def from_properties(cls, props: Dict[str, str]) -> 'SignageConfig':
        host = _first(props, "data-host", "devoxx-host")
        if not host:
            raise ConfigError("No data-host found in config file")

        start = _first(props, "start-date", "devoxx-start-date")
        if not start:
            raise ConfigError("No start-date found in config file")
        try:
            start_date = date.fromisoformat(start)
        except ValueError as e:
            raise ConfigError(f"start-date is not an ISO date: {start}") from e

        config = cls(data_host=host, start_date=start_date)

        if props.get("image-cache"):
            config.image_cache = Path(props["image-cache"]).expanduser()
        if props.get("work-dir"):
            config.work_dir = Path(props["work-dir"]).expanduser()
        if props.get("room-file"):
            config.room_file = props["room-file"]
        if props.get("logging-level"):
            config.logging_level = props["logging-level"].upper()

        config.screen_refresh_seconds = _number(props, "screen-refresh-time", int, config.screen_refresh_seconds)
        config.data_refresh_minutes = _number(props, "data-refresh-time", int, config.data_refresh_minutes)
        config.test_day = _number(props, "test-day", int, config.test_day)
        config.test_scale = _number(props, "test-scale", float, config.test_scale)
        config.fetch_timeout = _number(props, "fetch-timeout", float, config.fetch_timeout)
        config.utc_offset_hours = _number(props, "utc-offset-hours", float, config.utc_offset_hours)

        mode = props.get("operating-mode")
        if mode:
            try:
                config.mode = OperatingMode(mode.strip().upper())
            except ValueError:
                logger.warning("Unrecognized operating-mode: %s", mode)

        naming = props.get("room-naming")
        if naming:
            if naming.strip().lower() in ("numbered", "lettered"):
                config.room_naming = naming.strip().lower()
            else:
                logger.warning("Unrecognized room-naming: %s", naming)

        test_time = props.get("test-time")
        if test_time:
            try:
                config.test_time = time.fromisoformat(test_time.strip())
            except ValueError:
                logger.warning("test-time is not a time of day: %s", test_time)

        return config

    def describe(self) -> List[str]:
        """Human-readable configuration summary."""
        lines = [
            f"logging-level       = {self.logging_level}",
            f"data-refresh-time   = {self.data_refresh_minutes}",
            f"screen-refresh-time = {self.screen_refresh_seconds}",
            f"data-host           = {self.data_host}",
            f"image-cache         = {self.image_cache}",
            f"start-date          = {self.start_date.isoformat()}",
            f"mode                = {self.mode.value}",
        ]
        if self.mode is OperatingMode.TEST:
            lines.append(f"test-scale          = {self.test_scale}")
            lines.append(f"test-day            = {self.test_day}")
            lines.append(f"test-time           = {self.test_time.isoformat()}")
        return lines


def read_properties(text: str) -> Dict[str, str]:
    """Parse properties-file text into a flat dict."""
    parser = configparser.ConfigParser(
        delimiters=("=", ":"),
        comment_prefixes=("#", "!"),
        interpolation=None,
        strict=False
    )
    parser.optionxform = str
    try:
        parser.read_string(f"[{_SECTION}]\n{text}")
    except configparser.Error as e:
        raise ConfigError(f"Unreadable properties: {e}") from e
    return dict(parser.items(_SECTION))


def _number(props: Dict[str, str], key: str, kind, default):
    value = props.get(key)
    if value is None or not value.strip():
        return default
    try:
        return kind(value.strip())
    except ValueError:
        logger.warning("%s is not a number: %s", key, value)
        return default


def _first(props: Dict[str, str], *keys: str) -> str:
    """Value of the first key present and non-blank; older files use devoxx-* names."""
    for key in keys:
        value = (props.get(key) or "").strip()
        if value:
            return value
    return ""
