"""
estimator.py - Location -> tier -> day range -> delivery window pipeline
"""

import logging
from datetime import date
from typing import Optional

from calculator import DeliveryCalculator
from classifier import LocationClassifier
from models import (
    ConfigSnapshot, DayRange, DeliveryDetails, DeliveryEstimate, ErrorCode,
    EstimateError, ResolvedLocation
)
from validators import InputValidator

logger = logging.getLogger(__name__)


def _is_fastest_tier(tier_id: int, config: ConfigSnapshot) -> bool:
    active = config.active_tiers()
    if not active:
        return False
    fastest = min(active, key=lambda t: (t.min_days, t.max_days, t.id))
    return fastest.id == tier_id


def _build_estimate(
    pincode: str,
    location_name: str,
    day_range: DayRange,
    details: DeliveryDetails,
    config: ConfigSnapshot
) -> DeliveryEstimate:
    return DeliveryEstimate(
        pincode=pincode,
        location_name=location_name,
        delivery_tier=day_range.tier_id,
        tier_name=day_range.tier_name,
        delivery_message=day_range.label,
        day_range_text=details.day_range_text,
        min_delivery_date=details.min_date_formatted,
        max_delivery_date=details.max_date_formatted,
        min_delivery_iso=details.min_delivery_date.isoformat(),
        max_delivery_iso=details.max_delivery_date.isoformat(),
        express_available=_is_fastest_tier(day_range.tier_id, config),
        adjustments={
            "base_range": day_range.label,
            "weekend_extra_days": details.weekend_extra_days,
            "holiday_extra_days": details.holiday_extra_days
        }
    )


class DeliveryEstimator:
    """Runs the estimation pipeline against an explicit configuration snapshot"""

    def __init__(self, lookup=None):
        self.lookup = lookup

    @staticmethod
    def estimate_for_tier(
        tier_id: int,
        config: ConfigSnapshot,
        today: date,
        pincode: str = "",
        location_name: str = ""
    ) -> DeliveryEstimate:
        day_range = DeliveryCalculator.resolve_day_range(tier_id, config)
        details = DeliveryCalculator.calculate_delivery_details(
            day_range.min_days, day_range.max_days, today, config.settings
        )
        return _build_estimate(pincode, location_name, day_range, details, config)

    def estimate_for_pincode(
        self,
        pincode: str,
        config: ConfigSnapshot,
        today: date,
        cache=None
    ) -> DeliveryEstimate:
        """
        Full shopper path: validate, geocode, restrict, classify, estimate

        On success the resolved location is written to the cache (if given).

        Raises:
            EstimateError: INVALID_INPUT, LOCATION_NOT_FOUND, UNSUPPORTED_REGION,
                SERVICE_UNAVAILABLE or TIER_NOT_FOUND
        """
        valid, normalized, error = InputValidator.validate_pincode(pincode)
        if not valid:
            raise EstimateError(ErrorCode.INVALID_INPUT, error)

        if self.lookup is None:
            raise EstimateError(ErrorCode.SERVICE_UNAVAILABLE, "Could not verify pincode. Please try again.")

        location = self.lookup.lookup(normalized)
        if location is None:
            raise EstimateError(ErrorCode.LOCATION_NOT_FOUND, "Pincode not found. Please check and try again.")

        LocationClassifier.check_region(location.state, config.settings)

        tier_id = LocationClassifier.classify(location.district, location.name, config)
        estimate = self.estimate_for_tier(
            tier_id, config, today,
            pincode=normalized,
            location_name=location.location_name
        )

        if cache is not None:
            # Cache the classified tier, not the fallback
            classified = config.get_tier(tier_id)
            cache.save(ResolvedLocation(
                pincode=normalized,
                location_name=location.location_name,
                delivery_tier=tier_id,
                delivery_message=classified.label if classified else estimate.delivery_message
            ))

        logger.info(
            f"Pincode {normalized} ({location.location_name}) -> tier {estimate.delivery_tier}, "
            f"{estimate.day_range_text}"
        )
        return estimate

    @staticmethod
    def estimate_for_location(
        district: Optional[str],
        city: Optional[str],
        config: ConfigSnapshot,
        today: date
    ) -> DeliveryEstimate:
        """
        Admin preview path: classify a district/city directly

        No geocoding, no state restriction, nothing cached.
        """
        district_valid, district_name, district_error = InputValidator.validate_location_name(district, "District")
        if not district_valid:
            raise EstimateError(ErrorCode.INVALID_INPUT, district_error)

        city_valid, city_name, city_error = InputValidator.validate_location_name(city, "City")
        if not city_valid:
            raise EstimateError(ErrorCode.INVALID_INPUT, city_error)

        if not district_name and not city_name:
            raise EstimateError(ErrorCode.INVALID_INPUT, "District or city is required")

        tier_id = LocationClassifier.classify(district_name, city_name, config)
        label = ", ".join(part for part in ((city or "").strip(), (district or "").strip()) if part)
        return DeliveryEstimator.estimate_for_tier(tier_id, config, today, location_name=label)

    @staticmethod
    def default_location(config: ConfigSnapshot) -> ResolvedLocation:
        """Location shown before the shopper has checked a pincode"""
        settings = config.settings
        day_range = DeliveryCalculator.resolve_day_range(settings.default_tier, config)
        return ResolvedLocation(
            pincode="",
            location_name=settings.restrict_to_state or "your area",
            delivery_tier=day_range.tier_id,
            delivery_message=day_range.label
        )

    @staticmethod
    def estimate_for_saved(cache, config: ConfigSnapshot, today: date) -> DeliveryEstimate:
        """
        Recompute the estimate for the cached location, or the default location

        The saved tier goes through the same inactive/missing fallback as a
        fresh lookup.
        """
        location = cache.load() if cache is not None else None
        if location is None:
            logger.debug("No saved location, using default location")
            location = DeliveryEstimator.default_location(config)

        return DeliveryEstimator.estimate_for_tier(
            location.delivery_tier, config, today,
            pincode=location.pincode,
            location_name=location.location_name
        )
