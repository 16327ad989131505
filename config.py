from dataclasses import dataclass, field
from typing import Optional
import os
import logging

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


def get_env_or_default(key: str, default: str) -> str:
    value = os.getenv(key)
    if value:
        return value
    return default


def get_env_as_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value:
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Invalid integer for {key}: {value!r}, using {default}")
    return default


def get_env_as_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value:
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        logger.warning(f"Invalid boolean for {key}: {value!r}, using {default}")
    return default


@dataclass
class UptimeConfig:
    enabled: bool = True
    tick_interval: int = 30
    max_workers: int = 5
    check_timeout: int = 10
    enforce_interval: bool = True
    alert_recipient: Optional[str] = None
    down_cooldown: int = 3600
    recovery_cooldown: int = 86400
    seed_websites: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class RSSConfig:
    enabled: bool = False
    fetch_interval: int = 3600
    max_concurrent_fetches: int = 5
    user_agent: str = "The Ark RSS Reader/1.0"
    fetch_timeout: int = 30
    max_articles_per_feed: int = 100


@dataclass
class ArkConfig:
    skip_scheduler: bool = False
    uptime: UptimeConfig = field(default_factory=UptimeConfig)
    rss: RSSConfig = field(default_factory=RSSConfig)

    def validate(self) -> None:
        """Raise ConfigError when a value is outside the range the engines support."""
        if self.uptime.tick_interval < 1:
            raise ConfigError("uptime tick interval must be at least 1 second")
        if self.uptime.max_workers < 1 or self.uptime.max_workers > 50:
            raise ConfigError("uptime max workers must be between 1 and 50")
        if self.uptime.check_timeout < 1:
            raise ConfigError("uptime check timeout must be at least 1 second")
        if self.uptime.down_cooldown < 0 or self.uptime.recovery_cooldown < 0:
            raise ConfigError("alert cooldowns must not be negative")

        if self.rss.fetch_interval < 300 or self.rss.fetch_interval > 86400:
            raise ConfigError("fetch interval must be between 300 and 86400 seconds")
        if self.rss.max_articles_per_feed < 10 or self.rss.max_articles_per_feed > 1000:
            raise ConfigError("max articles per feed must be between 10 and 1000")
        if self.rss.max_concurrent_fetches < 1 or self.rss.max_concurrent_fetches > 20:
            raise ConfigError("max concurrent fetches must be between 1 and 20")
        if self.rss.fetch_timeout < 1:
            raise ConfigError("rss fetch timeout must be at least 1 second")


def parse_seed_websites(raw: Optional[str]) -> list[tuple[str, str]]:
    """Parse ``name=url,name=url`` into (name, url) pairs, skipping malformed entries."""
    seeds = []
    if not raw:
        return seeds
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, sep, url = chunk.partition("=")
        if not sep or not name.strip() or not url.strip():
            logger.warning(f"Ignoring malformed seed website entry: {chunk!r}")
            continue
        seeds.append((name.strip(), url.strip()))
    return seeds


def load_config() -> ArkConfig:
    config = ArkConfig(
        skip_scheduler=get_env_as_bool("ARK_SKIP_SCHEDULER", False),
        uptime=UptimeConfig(
            enabled=get_env_as_bool("ARK_ENABLE_UPTIME", True),
            tick_interval=get_env_as_int("ARK_UPTIME_TICK_INTERVAL", 30),
            max_workers=get_env_as_int("ARK_UPTIME_MAX_WORKERS", 5),
            check_timeout=get_env_as_int("ARK_UPTIME_CHECK_TIMEOUT", 10),
            enforce_interval=get_env_as_bool("ARK_UPTIME_ENFORCE_INTERVAL", True),
            alert_recipient=os.getenv("ARK_ALERT_RECIPIENT") or None,
            down_cooldown=get_env_as_int("ARK_ALERT_DOWN_COOLDOWN", 3600),
            recovery_cooldown=get_env_as_int("ARK_ALERT_RECOVERY_COOLDOWN", 86400),
            seed_websites=parse_seed_websites(os.getenv("ARK_SEED_WEBSITES")),
        ),
        rss=RSSConfig(
            enabled=get_env_as_bool("ARK_ENABLE_RSS", False),
            fetch_interval=get_env_as_int("ARK_RSS_FETCH_INTERVAL", 3600),
            max_concurrent_fetches=get_env_as_int("ARK_RSS_MAX_CONCURRENT_FETCHES", 5),
            user_agent=get_env_or_default("ARK_RSS_USER_AGENT", "The Ark RSS Reader/1.0"),
            fetch_timeout=get_env_as_int("ARK_RSS_FETCH_TIMEOUT", 30),
            max_articles_per_feed=get_env_as_int("ARK_RSS_MAX_ARTICLES_PER_FEED", 100),
        ),
    )
    config.validate()
    return config
