"""
calculator.py - Delivery Date Calculations
"""

import logging
import pytz
from datetime import date, datetime, timedelta
from typing import Optional
from holiday_calendar import HolidayCalendar
from models import ConfigSnapshot, DayRange, DeliveryDetails, DeliverySettings, ErrorCode, EstimateError

logger = logging.getLogger(__name__)


class DeliveryCalculator:
    """Handles day-range lookup and calendar adjustment"""

    @staticmethod
    def get_current_datetime(timezone: str = "Asia/Kolkata") -> Optional[datetime]:
        """
        Get current datetime in specified timezone with error handling

        Args:
            timezone: Timezone string (e.g., "Asia/Kolkata")

        Returns:
            Current datetime in specified timezone, or UTC as fallback
        """
        try:
            tz = pytz.timezone(timezone)
            current = datetime.now(tz)
            logger.debug(f"Current time in {timezone}: {current}")
            return current

        except pytz.exceptions.UnknownTimeZoneError:
            logger.error(f"Unknown timezone: {timezone}, falling back to UTC")
            return datetime.now(pytz.UTC)

    @staticmethod
    def resolve_day_range(tier_id: int, config: ConfigSnapshot) -> DayRange:
        """
        Turn a tier id into a (min_days, max_days) pair and label

        Inactive or unknown tiers fall back to the default tier's range.

        Args:
            tier_id: Tier id produced by the classifier
            config: Configuration snapshot

        Returns:
            DayRange for the tier actually used

        Raises:
            EstimateError: TIER_NOT_FOUND if neither tier is usable
        """
        tier = config.get_tier(tier_id)
        if tier is None or not tier.is_active:
            default_id = config.settings.default_tier
            logger.warning(
                f"Tier {tier_id} is {'inactive' if tier else 'missing'}, "
                f"falling back to default tier {default_id}"
            )
            tier = config.get_tier(default_id)
            if tier is None or not tier.is_active:
                logger.error(f"Default tier {default_id} is not usable")
                raise EstimateError(
                    ErrorCode.TIER_NOT_FOUND,
                    "Delivery estimate is currently unavailable."
                )

        return DayRange(
            min_days=tier.min_days,
            max_days=tier.max_days,
            label=tier.label,
            tier_id=tier.id,
            tier_name=tier.name
        )

    @staticmethod
    def format_date(day: date) -> str:
        """Long-form date, e.g. 'July 2, 2025'"""
        return f"{day.strftime('%B')} {day.day}, {day.year}"

    @staticmethod
    def calculate_delivery_details(
        min_days: int,
        max_days: int,
        today: date,
        settings: DeliverySettings
    ) -> DeliveryDetails:
        """
        Apply weekend/holiday adjustment and compute the delivery window

        The weekend adjustment depends only on today's weekday. The holiday
        adjustment is flat whenever it is enabled; registry dates are not
        consulted. Days are added as calendar days.

        Args:
            min_days: Tier minimum transit days
            max_days: Tier maximum transit days
            today: Local date the estimate is made on
            settings: Delivery settings

        Returns:
            DeliveryDetails with range text and both bounding dates
        """
        weekend_extra = 0
        if settings.enable_weekend_adjustment and HolidayCalendar.is_weekend(today):
            weekend_extra = settings.weekend_extra_days

        holiday_extra = 0
        if settings.enable_holiday_adjustment:
            holiday_extra = settings.holiday_extra_days

        text_min_days = min_days + weekend_extra + holiday_extra
        text_max_days = max_days + weekend_extra + holiday_extra

        min_delivery_date = today + timedelta(days=text_min_days)
        max_delivery_date = today + timedelta(days=text_max_days)

        logger.debug(
            f"Delivery window: base={min_days}-{max_days}, weekend=+{weekend_extra}, "
            f"holiday=+{holiday_extra}, dates={min_delivery_date}..{max_delivery_date}"
        )

        return DeliveryDetails(
            text_min_days=text_min_days,
            text_max_days=text_max_days,
            day_range_text=f"{text_min_days}-{text_max_days} days",
            min_delivery_date=min_delivery_date,
            max_delivery_date=max_delivery_date,
            min_date_formatted=DeliveryCalculator.format_date(min_delivery_date),
            max_date_formatted=DeliveryCalculator.format_date(max_delivery_date),
            weekend_extra_days=weekend_extra,
            holiday_extra_days=holiday_extra
        )
