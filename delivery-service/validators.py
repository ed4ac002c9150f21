"""
validators.py - Input Validation and Sanitization
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import pytz

from models import RULE_TYPES, TIER_COLORS

logger = logging.getLogger(__name__)

PINCODE_PATTERN = re.compile(r"[0-9]{6}")


class InputValidator:
    """Validates and sanitizes shopper and admin preview inputs"""

    # Maximum lengths to prevent abuse
    MAX_LOCATION_LENGTH = 100

    @staticmethod
    def validate_pincode(pincode: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a 6-digit postal code

        Args:
            pincode: Raw pincode input

        Returns:
            Tuple of (is_valid, normalized_value, error_message)
        """
        if not pincode:
            return False, None, "Please enter a valid 6-digit pincode"

        if not isinstance(pincode, str):
            return False, None, "Pincode must be a string"

        normalized = pincode.strip()

        if not PINCODE_PATTERN.fullmatch(normalized):
            return False, None, "Please enter a valid 6-digit pincode"

        logger.debug(f"Pincode validated: '{pincode}' -> '{normalized}'")
        return True, normalized, None

    @staticmethod
    def validate_location_name(value: str, label: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate and normalize a district or city name (lower-cased)

        Args:
            value: Raw name
            label: Field label used in error messages

        Returns:
            Tuple of (is_valid, normalized_value, error_message)
        """
        if value is None:
            return True, "", None

        if not isinstance(value, str):
            return False, None, f"{label} must be a string"

        normalized = value.strip().lower()

        if len(normalized) > InputValidator.MAX_LOCATION_LENGTH:
            return False, None, f"{label} too long (max {InputValidator.MAX_LOCATION_LENGTH} characters)"

        return True, normalized, None

    @staticmethod
    def validate_date_string(date_str: str) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Validate date string format (YYYY-MM-DD)

        Args:
            date_str: Date string to validate

        Returns:
            Tuple of (is_valid, normalized_value, error_message)
        """
        if not date_str:
            return False, None, "Date is required"

        if not isinstance(date_str, str):
            return False, None, "Date must be a string"

        try:
            parsed_date = datetime.strptime(date_str.strip(), '%Y-%m-%d')
            normalized = parsed_date.strftime('%Y-%m-%d')
            return True, normalized, None
        except ValueError:
            return False, None, "Invalid date format. Expected: YYYY-MM-DD"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip('-').isdigit():
        return int(value.strip())
    return None


def _as_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class ConfigValidator:
    """Validates admin edits to tiers, rules, holidays and settings"""

    MAX_EXTRA_DAYS = 7
    MAX_NAME_LENGTH = 50

    @staticmethod
    def validate_tier(
        name: Any,
        min_days: Any,
        max_days: Any,
        color: Any = None
    ) -> Tuple[bool, Optional[Dict], Optional[str]]:
        """
        Validate delivery tier fields

        Returns:
            Tuple of (is_valid, normalized_fields, error_message)
        """
        if not name or not isinstance(name, str) or not name.strip():
            return False, None, "Please fill in all tier fields"

        if len(name.strip()) > ConfigValidator.MAX_NAME_LENGTH:
            return False, None, f"Tier name too long (max {ConfigValidator.MAX_NAME_LENGTH} characters)"

        min_value = _as_int(min_days)
        max_value = _as_int(max_days)
        if min_value is None or max_value is None:
            return False, None, "Please fill in all tier fields"

        if min_value < 1:
            return False, None, "Minimum days must be at least 1"

        if max_value < min_value:
            return False, None, "Maximum days cannot be less than minimum days"

        normalized_color = (color or "gray").strip().lower() if isinstance(color, (str, type(None))) else None
        if normalized_color not in TIER_COLORS:
            return False, None, f"Invalid tier color. Allowed colors: {', '.join(TIER_COLORS)}"

        return True, {
            "name": name.strip(),
            "min_days": min_value,
            "max_days": max_value,
            "color": normalized_color
        }, None

    @staticmethod
    def validate_rule(rule_type: Any, value: Any, tier: Any) -> Tuple[bool, Optional[Dict], Optional[str]]:
        """
        Validate a location rule; the matching value is stored lower-cased

        Returns:
            Tuple of (is_valid, normalized_fields, error_message)
        """
        if not rule_type or not value or tier is None or tier == "":
            return False, None, "Please fill in all rule fields"

        if not isinstance(rule_type, str) or rule_type.strip().lower() not in RULE_TYPES:
            return False, None, f"Invalid rule type. Allowed types: {', '.join(RULE_TYPES)}"

        if not isinstance(value, str) or not value.strip():
            return False, None, "Please fill in all rule fields"

        tier_id = _as_int(tier)
        if tier_id is None or tier_id < 1:
            return False, None, "Tier must be a positive integer"

        return True, {
            "type": rule_type.strip().lower(),
            "value": value.strip().lower(),
            "tier": tier_id
        }, None

    @staticmethod
    def validate_holiday(name: Any, date_str: Any) -> Tuple[bool, Optional[Dict], Optional[str]]:
        """
        Validate a holiday registry entry

        Returns:
            Tuple of (is_valid, normalized_fields, error_message)
        """
        if not name or not isinstance(name, str) or not name.strip() or not date_str:
            return False, None, "Please fill in all holiday fields"

        date_valid, normalized_date, date_error = InputValidator.validate_date_string(date_str)
        if not date_valid:
            return False, None, date_error

        return True, {
            "name": name.strip(),
            "date": datetime.strptime(normalized_date, '%Y-%m-%d').date()
        }, None

    @staticmethod
    def validate_settings(updates: Dict[str, Any]) -> Tuple[bool, Optional[Dict], Optional[str]]:
        """
        Validate a partial settings update

        Extra-day values above MAX_EXTRA_DAYS are clamped; negative values
        are rejected.

        Returns:
            Tuple of (is_valid, normalized_updates, error_message)
        """
        bool_fields = (
            "enable_weekend_adjustment", "enable_holiday_adjustment",
            "enable_express_delivery", "enable_cod"
        )
        day_fields = ("weekend_extra_days", "holiday_extra_days")
        amount_fields = (
            "free_delivery_threshold", "standard_delivery_fee",
            "express_delivery_fee", "cod_fee", "max_cod_amount"
        )
        if not isinstance(updates, dict):
            return False, None, "Settings must be an object of field values"

        known = set(bool_fields + day_fields + amount_fields + ("default_tier", "restrict_to_state", "timezone"))

        unknown = [key for key in updates if key not in known]
        if unknown:
            return False, None, f"Unknown settings: {', '.join(sorted(unknown))}"

        normalized: Dict[str, Any] = {}
        for key, value in updates.items():
            if key in bool_fields:
                if not isinstance(value, bool):
                    return False, None, f"{key} must be true or false"
                normalized[key] = value

            elif key in day_fields:
                days = _as_int(value)
                if days is None or days < 0:
                    return False, None, f"{key} must be a whole number of days (0-{ConfigValidator.MAX_EXTRA_DAYS})"
                if days > ConfigValidator.MAX_EXTRA_DAYS:
                    logger.warning(f"{key}={days} clamped to {ConfigValidator.MAX_EXTRA_DAYS}")
                    days = ConfigValidator.MAX_EXTRA_DAYS
                normalized[key] = days

            elif key in amount_fields:
                amount = _as_amount(value)
                if amount is None or amount < 0:
                    return False, None, f"{key} must be a non-negative amount"
                normalized[key] = amount

            elif key == "default_tier":
                tier_id = _as_int(value)
                if tier_id is None or tier_id < 1:
                    return False, None, "default_tier must be a positive integer"
                normalized[key] = tier_id

            elif key == "restrict_to_state":
                if value is None:
                    value = ""
                if not isinstance(value, str):
                    return False, None, "restrict_to_state must be a string"
                normalized[key] = value.strip()

            elif key == "timezone":
                try:
                    pytz.timezone(value)
                except Exception:
                    return False, None, f"Invalid timezone: {value}"
                normalized[key] = value

        return True, normalized, None
