import logging
import os
from dataclasses import dataclass, field

from errorkit.exceptions import ConfigError
from errorkit.settings import (
    DEDUPE_MAX_ENTRIES,
    DEFAULT_LEVEL,
    WEBHOOK_BATCH_SIZE,
    WEBHOOK_FLUSH_INTERVAL,
)


def _parse_bool(value: str) -> bool:
    """Parse a boolean env value ('true'/'false', '1'/'0', 'yes'/'no', 'on'/'off')."""
    lower = value.lower().strip()
    if lower in ("true", "1", "yes", "on"):
        return True
    if lower in ("false", "0", "no", "off", ""):
        return False
    raise ConfigError(f"Invalid boolean value: {value!r}")


def parse_level(value: int | str) -> int:
    """Resolve a logging level given as an int or a name ('warning', 'ERROR')."""
    if isinstance(value, int):
        return value
    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise ConfigError(f"Unknown log level: {value!r}")
    return level


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def _env_level() -> int:
    raw = os.environ.get("ERRORKIT_LEVEL")
    return parse_level(raw) if raw else DEFAULT_LEVEL


@dataclass
class ErrorKitConfig:
    # Deduplication (defaults from ERRORKIT_DEDUPE* env vars)
    dedupe_enabled: bool = field(default_factory=lambda: _parse_bool(os.environ.get("ERRORKIT_DEDUPE", "true")))
    dedupe_max_entries: int = field(
        default_factory=lambda: _env_int("ERRORKIT_DEDUPE_MAX_ENTRIES", DEDUPE_MAX_ENTRIES)
    )

    # Reporting
    default_level: int | str = field(default_factory=_env_level)
    service_name: str = field(default_factory=lambda: os.environ.get("ERRORKIT_SERVICE_NAME", "app"))

    # Rendering
    debug: bool = field(default_factory=lambda: _parse_bool(os.environ.get("ERRORKIT_DEBUG", "false")))
    error_pages: dict[str, str] = field(default_factory=dict)  # "404" / "4xx" / "5xx" -> HTML with $message etc.

    # Webhook reporter (optional)
    webhook_url: str | None = field(default_factory=lambda: os.environ.get("ERRORKIT_WEBHOOK_URL") or None)
    webhook_batch_size: int = WEBHOOK_BATCH_SIZE
    webhook_flush_interval: float = WEBHOOK_FLUSH_INTERVAL

    def __post_init__(self) -> None:
        self.default_level = parse_level(self.default_level)
        if self.dedupe_max_entries <= 0:
            raise ConfigError("dedupe_max_entries must be positive")
        if self.webhook_batch_size <= 0:
            raise ConfigError("webhook_batch_size must be positive")
        if self.webhook_flush_interval <= 0:
            raise ConfigError("webhook_flush_interval must be positive")
        self.error_pages = {str(key).lower(): page for key, page in self.error_pages.items()}
