import logging
import os
import time
import pytz
import threading
from datetime import date
from typing import Dict, Optional
from dotenv import load_dotenv
from models import ConfigSnapshot, DeliverySettings, DeliveryTier, Holiday, LocationRule, RULE_TYPES
from sheetCredential import get_sheet_data, put_sheet_data, parse_to_config, config_to_rows

load_dotenv()

logger = logging.getLogger(__name__)


def default_config() -> ConfigSnapshot:
    """Built-in configuration used when no sheet is configured"""
    tiers = (
        DeliveryTier(id=1, name="Express", min_days=2, max_days=3, color="green"),
        DeliveryTier(id=2, name="Standard", min_days=3, max_days=4, color="blue"),
        DeliveryTier(id=3, name="Economy", min_days=4, max_days=6, color="orange"),
    )
    districts = ["howrah", "kolkata", "hooghly", "north 24 parganas"]
    cities = ["durgapur", "asansol", "bardhaman", "kharagpur"]
    rules = tuple(
        [LocationRule(id=str(i + 1), type="district", value=name, tier=1) for i, name in enumerate(districts)]
        + [LocationRule(id=str(i + 1 + len(districts)), type="city", value=name, tier=2) for i, name in enumerate(cities)]
    )
    holidays = (
        Holiday(id="1", name="Diwali", date=date(2024, 11, 1)),
        Holiday(id="2", name="Christmas", date=date(2024, 12, 25)),
        Holiday(id="3", name="New Year", date=date(2025, 1, 1)),
    )
    return ConfigSnapshot(tiers=tiers, rules=rules, settings=DeliverySettings(), holidays=holidays)


def sheet_configured() -> bool:
    return bool(os.getenv('SHEET_ID')) and bool(os.getenv('GOOGLE_CREDENTIALS_JSON'))


class ConfigCache:
    """
    Thread-safe configuration cache with TTL

    NOTE: This is a SHARED cache - every shopper and admin sees the same
    delivery configuration. Admin writes go through save_config(), which
    persists first and only then swaps the cached snapshot.
    """

    _cache: Optional[ConfigSnapshot] = None
    _cache_time: Optional[float] = None
    _cache_ttl: int = int(os.getenv('CONFIG_CACHE_TTL', '600'))  # seconds
    _lock = threading.Lock()  # Thread safety for concurrent requests
    _write_lock = threading.Lock()  # Serializes admin read-modify-write cycles
    _fetch_in_progress = False  # Prevent multiple simultaneous fetches

    @classmethod
    def _load_source(cls) -> ConfigSnapshot:
        if not sheet_configured():
            logger.debug("No sheet configured, using built-in configuration")
            return cls._cache if cls._cache is not None else default_config()

        logger.info("Fetching fresh configuration from Google Sheets")
        sheet_data = get_sheet_data()
        if not sheet_data or not sheet_data.get("tiers"):
            raise ValueError("No configuration data available")
        return parse_to_config(sheet_data)

    @classmethod
    def get_config(cls, force_refresh: bool = False) -> Optional[ConfigSnapshot]:
        """
        Get cached configuration or fetch new one if expired
        Thread-safe for multiple concurrent users

        Args:
            force_refresh: If True, bypass cache and fetch fresh config

        Returns:
            Configuration snapshot or None if unavailable
        """
        with cls._lock:
            current_time = time.time()

            if (not force_refresh and
                cls._cache is not None and
                cls._cache_time is not None and
                (current_time - cls._cache_time) < cls._cache_ttl):
                logger.debug("Using cached configuration (shared)")
                return cls._cache

            # If another thread is already fetching, return stale cache
            if cls._fetch_in_progress and cls._cache is not None:
                logger.info("Config fetch already in progress, returning stale cache")
                return cls._cache

            cls._fetch_in_progress = True

        # Fetch outside the lock to avoid blocking other threads
        try:
            config = cls._load_source()

            valid, error = cls.validate_config(config)
            if not valid:
                logger.error(f"Configuration validation failed: {error}")
                with cls._lock:
                    cls._fetch_in_progress = False
                if cls._cache is not None:
                    logger.warning("Using stale cache due to validation failure")
                    return cls._cache
                raise ValueError(f"Invalid configuration structure: {error}")

            with cls._lock:
                cls._cache = config
                cls._cache_time = current_time
                cls._fetch_in_progress = False
                logger.info("Configuration cache updated successfully (shared)")

            return config

        except Exception as e:
            logger.error(f"Error loading configuration: {str(e)}", exc_info=True)
            with cls._lock:
                cls._fetch_in_progress = False
            if cls._cache is not None:
                logger.warning("Using stale cache due to error")
                return cls._cache
            raise

    @classmethod
    def save_config(cls, config: ConfigSnapshot) -> ConfigSnapshot:
        """
        Persist a new configuration snapshot and make it current

        Args:
            config: Snapshot produced by an admin edit

        Returns:
            The saved snapshot

        Raises:
            ValueError: if the snapshot fails structural validation
        """
        valid, error = cls.validate_config(config)
        if not valid:
            raise ValueError(f"Invalid configuration structure: {error}")

        if sheet_configured():
            logger.info("Writing configuration to Google Sheets")
            put_sheet_data(config_to_rows(config))

        with cls._lock:
            cls._cache = config
            cls._cache_time = time.time()
            logger.info("Configuration saved and cache updated (shared)")
        return config

    @classmethod
    def validate_config(cls, config: ConfigSnapshot):
        """
        Validate configuration structure

        Args:
            config: Configuration snapshot to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not isinstance(config, ConfigSnapshot):
            return False, "Configuration must be a ConfigSnapshot"

        if len(config.tiers) == 0:
            return False, "No delivery tiers configured"

        if not config.active_tiers():
            return False, "At least one delivery tier must be active"

        tier_ids = [tier.id for tier in config.tiers]
        if len(set(tier_ids)) != len(tier_ids):
            return False, "Delivery tier ids must be unique"

        for tier in config.tiers:
            if tier.min_days < 1 or tier.max_days < tier.min_days:
                return False, f"Invalid day range for tier {tier.id}: {tier.min_days}-{tier.max_days}"

        for rule in config.rules:
            if rule.type not in RULE_TYPES:
                return False, f"Invalid type for location rule {rule.id}: {rule.type}"
            if not rule.value.strip():
                return False, f"Location rule {rule.id} has a blank value"

        settings = config.settings
        if config.get_tier(settings.default_tier) is None:
            return False, f"Default tier {settings.default_tier} does not exist"

        if settings.weekend_extra_days < 0 or settings.holiday_extra_days < 0:
            return False, "Extra days cannot be negative"

        try:
            pytz.timezone(settings.timezone)
        except Exception as e:
            return False, f"Invalid timezone: {settings.timezone} - {str(e)}"

        logger.debug("Configuration validation passed")
        return True, None

    @classmethod
    def clear_cache(cls):
        """Clear the configuration cache (useful for testing)"""
        with cls._lock:
            cls._cache = None
            cls._cache_time = None
            logger.info("Configuration cache cleared")

    @classmethod
    def get_cache_info(cls) -> Dict:
        """
        Get information about the current cache state

        Returns:
            Dictionary with cache information
        """
        with cls._lock:
            if cls._cache is None:
                return {
                    "cached": False,
                    "cache_age": None,
                    "ttl": cls._cache_ttl,
                    "shared": True
                }

            current_time = time.time()
            cache_age = current_time - cls._cache_time if cls._cache_time else None

            return {
                "cached": True,
                "cache_age_seconds": cache_age,
                "ttl_seconds": cls._cache_ttl,
                "is_stale": cache_age > cls._cache_ttl if cache_age else False,
                "tiers_count": len(cls._cache.tiers),
                "rules_count": len(cls._cache.rules),
                "source": "google_sheets" if sheet_configured() else "built_in",
                "shared": True
            }
