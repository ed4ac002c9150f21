"""
classifier.py - Location to delivery tier classification
"""

import logging
from typing import Optional

from models import ConfigSnapshot, DeliverySettings, ErrorCode, EstimateError, LocationRule

logger = logging.getLogger(__name__)


class LocationClassifier:
    """
    Maps a resolved location to a delivery tier id.

    Precedence: exact district match, then city substring match (first rule
    in stored order wins), then the configured default tier. Pincode rules
    are stored but not consulted.
    """

    @staticmethod
    def check_region(state: str, settings: DeliverySettings) -> None:
        """
        Refuse locations outside the configured service state

        Raises:
            EstimateError: UNSUPPORTED_REGION when the state does not match
        """
        allowed = (settings.restrict_to_state or "").strip()
        if not allowed:
            return

        if (state or "").strip().lower() != allowed.lower():
            logger.info(f"Location in '{state}' is outside service state '{allowed}'")
            raise EstimateError(
                ErrorCode.UNSUPPORTED_REGION,
                f"Sorry, we only deliver within {allowed}."
            )

    @staticmethod
    def _usable(rule: LocationRule, rule_type: str, config: ConfigSnapshot) -> bool:
        if not rule.is_active or rule.type != rule_type or not rule.value:
            return False
        if config.get_tier(rule.tier) is None:
            logger.warning(f"Location rule {rule.id} points at missing tier {rule.tier}, skipping")
            return False
        return True

    @classmethod
    def match_district(cls, district: str, config: ConfigSnapshot) -> Optional[LocationRule]:
        district = (district or "").strip().lower()
        if not district:
            return None
        for rule in config.rules:
            if cls._usable(rule, "district", config) and rule.value == district:
                return rule
        return None

    @classmethod
    def match_city(cls, city: str, config: ConfigSnapshot) -> Optional[LocationRule]:
        city = (city or "").strip().lower()
        if not city:
            return None
        for rule in config.rules:
            if cls._usable(rule, "city", config) and rule.value in city:
                return rule
        return None

    @classmethod
    def classify(cls, district: str, city: str, config: ConfigSnapshot) -> int:
        """
        Determine the delivery tier for a district/city pair

        Args:
            district: District name (any case)
            city: City or post office name (any case)
            config: Configuration snapshot

        Returns:
            Tier id referencing an existing (possibly inactive) tier
        """
        rule = cls.match_district(district, config)
        if rule is not None:
            logger.debug(f"District '{district}' matched rule {rule.id} -> tier {rule.tier}")
            return rule.tier

        rule = cls.match_city(city, config)
        if rule is not None:
            logger.debug(f"City '{city}' matched rule {rule.id} ('{rule.value}') -> tier {rule.tier}")
            return rule.tier

        default_tier = config.settings.default_tier
        logger.debug(f"No rule matched district='{district}' city='{city}', default tier {default_tier}")
        return default_tier
