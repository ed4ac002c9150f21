"""
admin.py - Validated edits to the delivery configuration

Every edit takes a snapshot and returns a new one; a rejected edit raises
ConfigValidationError and leaves the stored configuration untouched.
"""

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, Tuple

from config import ConfigCache
from models import (
    ConfigSnapshot, ConfigValidationError, DeliverySettings, DeliveryTier,
    Holiday, LocationRule
)
from validators import ConfigValidator

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def _require(valid: bool, error: str) -> None:
    if not valid:
        raise ConfigValidationError(error)


class DeliveryAdmin:
    """Admin configuration operations on configuration snapshots"""

    # ---- tiers -------------------------------------------------------------

    @staticmethod
    def add_tier(config: ConfigSnapshot, name: Any, min_days: Any, max_days: Any,
                 color: Any = None) -> Tuple[ConfigSnapshot, DeliveryTier]:
        valid, fields, error = ConfigValidator.validate_tier(name, min_days, max_days, color)
        _require(valid, error)

        next_id = max((t.id for t in config.tiers), default=0) + 1
        tier = DeliveryTier(id=next_id, is_active=True, **fields)
        logger.info(f"Adding delivery tier {tier.id} '{tier.name}' ({tier.label})")
        return replace(config, tiers=config.tiers + (tier,)), tier

    @staticmethod
    def update_tier(config: ConfigSnapshot, tier_id: int, **updates) -> Tuple[ConfigSnapshot, DeliveryTier]:
        current = config.get_tier(tier_id)
        _require(current is not None, f"Delivery tier {tier_id} not found")

        allowed = {"name", "min_days", "max_days", "color", "is_active"}
        unknown = set(updates) - allowed
        _require(not unknown, f"Unknown tier fields: {', '.join(sorted(unknown))}")

        valid, fields, error = ConfigValidator.validate_tier(
            updates.get("name", current.name),
            updates.get("min_days", current.min_days),
            updates.get("max_days", current.max_days),
            updates.get("color", current.color)
        )
        _require(valid, error)

        is_active = updates.get("is_active", current.is_active)
        _require(isinstance(is_active, bool), "is_active must be true or false")

        if not is_active and current.is_active:
            _require(
                any(t.is_active for t in config.tiers if t.id != tier_id),
                "Cannot deactivate the last active delivery tier"
            )
            _require(
                config.settings.default_tier != tier_id,
                "Cannot deactivate the default delivery tier"
            )

        tier = replace(current, is_active=is_active, **fields)
        tiers = tuple(tier if t.id == tier_id else t for t in config.tiers)
        logger.info(f"Updating delivery tier {tier_id}: {updates}")
        return replace(config, tiers=tiers), tier

    @staticmethod
    def delete_tier(config: ConfigSnapshot, tier_id: int) -> ConfigSnapshot:
        _require(config.get_tier(tier_id) is not None, f"Delivery tier {tier_id} not found")

        remaining = tuple(t for t in config.tiers if t.id != tier_id)
        _require(any(t.is_active for t in remaining), "Cannot delete the last delivery tier")
        _require(config.settings.default_tier != tier_id, "Cannot delete the default delivery tier")

        orphaned = [r.id for r in config.rules if r.tier == tier_id]
        if orphaned:
            logger.warning(f"Deleting tier {tier_id} leaves {len(orphaned)} location rule(s) without a tier")

        logger.info(f"Deleting delivery tier {tier_id}")
        return replace(config, tiers=remaining)

    # ---- location rules ----------------------------------------------------

    @staticmethod
    def add_rule(config: ConfigSnapshot, rule_type: Any, value: Any, tier: Any) -> Tuple[ConfigSnapshot, LocationRule]:
        valid, fields, error = ConfigValidator.validate_rule(rule_type, value, tier)
        _require(valid, error)
        _require(config.get_tier(fields["tier"]) is not None, f"Delivery tier {fields['tier']} not found")

        rule = LocationRule(id=_new_id(), is_active=True, **fields)
        logger.info(f"Adding location rule {rule.type}='{rule.value}' -> tier {rule.tier}")
        return replace(config, rules=config.rules + (rule,)), rule

    @staticmethod
    def update_rule(config: ConfigSnapshot, rule_id: str, **updates) -> Tuple[ConfigSnapshot, LocationRule]:
        current = next((r for r in config.rules if r.id == rule_id), None)
        _require(current is not None, f"Location rule {rule_id} not found")

        allowed = {"type", "value", "tier", "is_active"}
        unknown = set(updates) - allowed
        _require(not unknown, f"Unknown rule fields: {', '.join(sorted(unknown))}")

        valid, fields, error = ConfigValidator.validate_rule(
            updates.get("type", current.type),
            updates.get("value", current.value),
            updates.get("tier", current.tier)
        )
        _require(valid, error)
        _require(config.get_tier(fields["tier"]) is not None, f"Delivery tier {fields['tier']} not found")

        is_active = updates.get("is_active", current.is_active)
        _require(isinstance(is_active, bool), "is_active must be true or false")

        rule = replace(current, is_active=is_active, **fields)
        rules = tuple(rule if r.id == rule_id else r for r in config.rules)
        logger.info(f"Updating location rule {rule_id}: {updates}")
        return replace(config, rules=rules), rule

    @staticmethod
    def delete_rule(config: ConfigSnapshot, rule_id: str) -> ConfigSnapshot:
        _require(any(r.id == rule_id for r in config.rules), f"Location rule {rule_id} not found")
        logger.info(f"Deleting location rule {rule_id}")
        return replace(config, rules=tuple(r for r in config.rules if r.id != rule_id))

    # ---- holidays ----------------------------------------------------------

    @staticmethod
    def add_holiday(config: ConfigSnapshot, name: Any, date_str: Any) -> Tuple[ConfigSnapshot, Holiday]:
        valid, fields, error = ConfigValidator.validate_holiday(name, date_str)
        _require(valid, error)

        holiday = Holiday(id=_new_id(), is_active=True, **fields)
        logger.info(f"Adding holiday '{holiday.name}' on {holiday.date}")
        return replace(config, holidays=config.holidays + (holiday,)), holiday

    @staticmethod
    def update_holiday(config: ConfigSnapshot, holiday_id: str, **updates) -> Tuple[ConfigSnapshot, Holiday]:
        current = next((h for h in config.holidays if h.id == holiday_id), None)
        _require(current is not None, f"Holiday {holiday_id} not found")

        allowed = {"name", "date", "is_active"}
        unknown = set(updates) - allowed
        _require(not unknown, f"Unknown holiday fields: {', '.join(sorted(unknown))}")

        valid, fields, error = ConfigValidator.validate_holiday(
            updates.get("name", current.name),
            updates.get("date", current.date.isoformat())
        )
        _require(valid, error)

        is_active = updates.get("is_active", current.is_active)
        _require(isinstance(is_active, bool), "is_active must be true or false")

        holiday = replace(current, is_active=is_active, **fields)
        holidays = tuple(holiday if h.id == holiday_id else h for h in config.holidays)
        logger.info(f"Updating holiday {holiday_id}: {updates}")
        return replace(config, holidays=holidays), holiday

    @staticmethod
    def delete_holiday(config: ConfigSnapshot, holiday_id: str) -> ConfigSnapshot:
        _require(any(h.id == holiday_id for h in config.holidays), f"Holiday {holiday_id} not found")
        logger.info(f"Deleting holiday {holiday_id}")
        return replace(config, holidays=tuple(h for h in config.holidays if h.id != holiday_id))

    # ---- settings ----------------------------------------------------------

    @staticmethod
    def update_settings(config: ConfigSnapshot, updates: dict) -> Tuple[ConfigSnapshot, DeliverySettings]:
        valid, fields, error = ConfigValidator.validate_settings(updates)
        _require(valid, error)

        if "default_tier" in fields:
            tier = config.get_tier(fields["default_tier"])
            _require(tier is not None, f"Delivery tier {fields['default_tier']} not found")
            _require(tier.is_active, f"Delivery tier {fields['default_tier']} is inactive")

        settings = replace(config.settings, **fields)
        logger.info(f"Updating delivery settings: {fields}")
        return replace(config, settings=settings), settings


def apply_edit(edit: Callable[[ConfigSnapshot], Any]):
    """
    Run an admin edit against the current configuration and persist it

    Args:
        edit: Callable taking the current snapshot and returning either a new
            snapshot or a (snapshot, record) tuple

    Returns:
        Whatever the edit returned, after the new snapshot is saved
    """
    with ConfigCache._write_lock:
        current = ConfigCache.get_config()
        if current is None:
            raise ValueError("Configuration is None")

        result = edit(current)
        new_config = result[0] if isinstance(result, tuple) else result
        ConfigCache.save_config(new_config)
        return result
