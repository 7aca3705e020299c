"""
Configuration service backed by a JSON file.

JsonConfigSource reads the settings and the keyword list from the same
file. The file is read again on every call, so edits take effect on the
next crawl or dispatch without a restart.

Example config.json:

    {
        "keywords": ["Generative AI", "TypeScript"],
        "regions": "JP,US",
        "language": "ja",
        "limit": 3,
        "delivery_hours": [7, 18]
    }
"""

import json
import logging
import os
from typing import Any, Dict, List, Mapping, Optional

from news_agent.models import Config, ConfigError

logger = logging.getLogger(__name__)

DEFAULT_REGIONS = ["JP"]
DEFAULT_LANGUAGE = "ja"
DEFAULT_LIMIT = 3
DEFAULT_DELIVERY_HOURS = [7]
DEFAULT_MAX_AGE_HOURS = 24


def _split_list(value: Any) -> List[str]:
    """Accepts a JSON list or a comma-separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        raise ConfigError(f"Expected a list or comma-separated string, got {value!r}")
    return [str(v).strip() for v in value if str(v).strip()]


def _as_int(name: str, value: Any, minimum: int = 0, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be an integer, got {value!r}") from e
    if number < minimum or (maximum is not None and number > maximum):
        raise ConfigError(f"'{name}' out of range: {number}")
    return number


def _as_bool(name: str, value: Any) -> bool:
    """Accepts only real JSON booleans."""
    if not isinstance(value, bool):
        raise ConfigError(f"'{name}' must be true or false, got {value!r}")
    return value


class JsonConfigSource:
    """Loads settings and keywords from a JSON file and the environment."""

    def __init__(self, config_path: str, environ: Optional[Mapping[str, str]] = None):
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found at {self.config_path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be an object: {self.config_path}")
        return data

    def load_config(self) -> Config:
        """Reads and validates the current settings."""
        data = self._read()

        regions = _split_list(data.get("regions", DEFAULT_REGIONS)) or DEFAULT_REGIONS
        hours = _split_list(data.get("delivery_hours", DEFAULT_DELIVERY_HOURS))
        mail_to = (
            data.get("mail_to")
            or self.environ.get("EMAIL_RECIPIENT")
            or self.environ.get("EMAIL_USER", "")
        )

        return Config(
            regions=regions,
            language=str(data.get("language") or DEFAULT_LANGUAGE).strip(),
            limit=_as_int("limit", data.get("limit", DEFAULT_LIMIT)),
            mail_to=mail_to,
            user_name=str(data.get("user_name") or "User"),
            delivery_hours=[_as_int("delivery_hours", h, 0, 23) for h in hours]
            or DEFAULT_DELIVERY_HOURS,
            mark_excluded_as_sent=_as_bool(
                "mark_excluded_as_sent", data.get("mark_excluded_as_sent", True)
            ),
            max_age_hours=_as_int(
                "max_age_hours", data.get("max_age_hours", DEFAULT_MAX_AGE_HOURS)
            ),
        )

    def get_keywords(self) -> List[str]:
        """Returns the keyword list with blank entries removed."""
        keywords = _split_list(self._read().get("keywords", []))
        if not keywords:
            logger.warning("No keywords configured in %s.", self.config_path)
        return keywords
