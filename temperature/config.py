"""
Configuration management for the temperature scrapper.
Secrets and defaults come from the environment (.env); the TOML config
file overrides them and holds the list of locations.
"""

import os
import logging
from pathlib import Path
from typing import List, Optional, Any, Dict

from dotenv import load_dotenv
import pytz
import toml

from .weather.errors import ConfigError
from .weather.models import Coordinate, Location

load_dotenv()

DEFAULT_DATABASE_PATH = "database/temperature.db"
DEFAULT_CONFIG_PATH = "configs/config.toml"
DEFAULT_SCHEDULE = "0 6 * * *"


def _admin_ids_from_value(v: Any) -> List[int]:
    if isinstance(v, list):
        return [int(x) for x in v if str(x).strip().isdigit()]
    if isinstance(v, str) and v:
        return [int(uid.strip()) for uid in v.split(",") if uid.strip().isdigit()]
    return []


def _bool_from_value(v: Any) -> bool:
    return v if isinstance(v, bool) else str(v).lower() in ("true", "1", "yes")


class Config:
    """
    Application configuration.
    Defaults are read from the environment; `set_runtime_config` applies
    the TOML config file on top of them at startup.
    """

    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")
    OPENWEATHER_API_KEY: str = os.getenv("OPENWEATHER_API_KEY", "")
    TIMEZONE: str = os.getenv("TIMEZONE", "UTC")
    SCHEDULE: str = os.getenv("SCHEDULE", DEFAULT_SCHEDULE)
    BATCH_TIMEOUT_SECONDS: float = float(os.getenv("BATCH_TIMEOUT_SECONDS", "60"))
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
    LOG_LEVEL: str = (os.getenv("LOG_LEVEL", "INFO") or "INFO").upper()
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", DEFAULT_DATABASE_PATH)
    CONFIG_PATH: str = os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH)
    ADMIN_USER_IDS: List[int] = _admin_ids_from_value(os.getenv("ADMIN_USER_IDS", ""))
    USE_FAKE_SOURCE: bool = _bool_from_value(os.getenv("USE_FAKE_SOURCE", "false"))
    LOCATIONS: List[Location] = []

    @classmethod
    def set_runtime_config(cls, config: Dict[str, Any]) -> None:
        """Overwrite config from the TOML file. Called at startup after loading it."""
        if "bot_token" in config:
            cls.BOT_TOKEN = str(config["bot_token"] or "")
        if "openweather_api_key" in config:
            cls.OPENWEATHER_API_KEY = str(config["openweather_api_key"] or "")
        if "timezone" in config:
            cls.TIMEZONE = str(config["timezone"] or "UTC")
        if "schedule" in config:
            cls.SCHEDULE = str(config["schedule"] or DEFAULT_SCHEDULE)
        if "batch_timeout_seconds" in config:
            cls.BATCH_TIMEOUT_SECONDS = float(config["batch_timeout_seconds"] or 60)
        if "http_timeout_seconds" in config:
            cls.HTTP_TIMEOUT_SECONDS = float(config["http_timeout_seconds"] or 10)
        if "log_level" in config:
            cls.LOG_LEVEL = (str(config["log_level"] or "INFO")).upper()
        if "database_path" in config:
            cls.DATABASE_PATH = str(config["database_path"] or DEFAULT_DATABASE_PATH)
        if "admin_user_ids" in config:
            cls.ADMIN_USER_IDS = _admin_ids_from_value(config["admin_user_ids"])
        if "use_fake_source" in config:
            cls.USE_FAKE_SOURCE = _bool_from_value(config["use_fake_source"])
        if "locations" in config:
            cls.LOCATIONS = cls.load_locations(config["locations"])

    @classmethod
    def load_file(cls, path: Optional[str] = None) -> Dict[str, Any]:
        """
        Read the TOML config file and apply it.

        Args:
            path: Config file path, CONFIG_PATH by default

        Returns:
            Parsed TOML document

        Raises:
            ConfigError: If the file is missing or cannot be parsed
        """
        path = path or cls.CONFIG_PATH
        try:
            data = toml.load(path)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {path}") from e
        except toml.TomlDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e

        cls.set_runtime_config(data)
        cls.CONFIG_PATH = str(path)
        return data

    @staticmethod
    def load_locations(items: Any) -> List[Location]:
        """
        Build locations from the `[[locations]]` tables of the config file.

        Each entry needs a description and a non-empty list of
        `{lat = ..., lon = ...}` coordinates.

        Raises:
            ConfigError: On a malformed entry or a location without coordinates
        """
        if not isinstance(items, list):
            raise ConfigError("'locations' must be an array of tables")

        locations = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise ConfigError(f"locations[{index}] must be a table")

            description = str(item.get("description") or "").strip()
            if not description:
                raise ConfigError(f"locations[{index}] has no description")

            try:
                coordinates = tuple(
                    Coordinate(latitude=float(point["lat"]), longitude=float(point["lon"]))
                    for point in item.get("coordinates") or []
                )
            except (KeyError, TypeError, ValueError) as e:
                raise ConfigError(
                    f"locations[{index}] ('{description}') has an invalid coordinate: {e}"
                ) from e

            locations.append(Location(description=description, coordinates=coordinates))
        return locations

    @classmethod
    def get_timezone(cls) -> pytz.BaseTzInfo:
        """Get the configured timezone object."""
        try:
            return pytz.timezone(cls.TIMEZONE)
        except pytz.exceptions.UnknownTimeZoneError:
            logging.warning(f"Unknown timezone '{cls.TIMEZONE}', using UTC")
            return pytz.UTC

    @classmethod
    def validate(cls) -> List[str]:
        """
        Validate configuration and return list of errors.
        Returns empty list if configuration is valid.
        """
        errors = []

        if not cls.BOT_TOKEN:
            errors.append("BOT_TOKEN is required")

        if not cls.OPENWEATHER_API_KEY and not cls.USE_FAKE_SOURCE:
            errors.append("OPENWEATHER_API_KEY is required")

        if not cls.LOCATIONS:
            errors.append("At least one location must be configured")

        if len(cls.SCHEDULE.split()) != 5:
            errors.append(f"SCHEDULE must be a crontab expression, got '{cls.SCHEDULE}'")

        if cls.BATCH_TIMEOUT_SECONDS <= 0:
            errors.append("BATCH_TIMEOUT_SECONDS must be positive")

        if cls.HTTP_TIMEOUT_SECONDS <= 0:
            errors.append("HTTP_TIMEOUT_SECONDS must be positive")

        return errors

    @classmethod
    def setup_logging(cls) -> None:
        """Configure logging based on settings."""
        log_level = getattr(logging, cls.LOG_LEVEL, logging.INFO)

        logging.basicConfig(
            level=log_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=[logging.StreamHandler()]
        )

        # Reduce noise from external libraries
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
        logging.getLogger("telegram").setLevel(logging.WARNING)
        logging.getLogger("apscheduler").setLevel(logging.WARNING)
        logging.getLogger("aiohttp").setLevel(logging.WARNING)

    @classmethod
    def ensure_data_dir(cls) -> None:
        """Ensure the data directory exists."""
        db_path = Path(cls.DATABASE_PATH)
        db_path.parent.mkdir(parents=True, exist_ok=True)
