"""
holiday_calendar.py - Weekend checks and the admin holiday registry
"""

import logging
from datetime import date
from typing import Iterable, List

from models import Holiday

logger = logging.getLogger(__name__)


class HolidayCalendar:
    """Calendar helpers used by the adjuster and the admin preview"""

    @classmethod
    def is_weekend(cls, day: date) -> bool:
        """
        Check if a date is a weekend (Saturday or Sunday)

        Args:
            day: Date to check

        Returns:
            True if the date is a weekend
        """
        return day.weekday() in [5, 6]  # Saturday=5, Sunday=6

    @classmethod
    def active_holidays(cls, holidays: Iterable[Holiday]) -> List[Holiday]:
        """Active registry entries sorted by date"""
        return sorted((h for h in holidays if h.is_active), key=lambda h: h.date)

    @classmethod
    def upcoming_holidays(cls, holidays: Iterable[Holiday], today: date) -> List[Holiday]:
        """
        Active holidays ordered for display: upcoming dates first, past ones after

        Args:
            holidays: Holiday registry entries
            today: Reference date

        Returns:
            Ordered list of active holidays
        """
        active = cls.active_holidays(holidays)
        upcoming = [h for h in active if h.date >= today]
        past = [h for h in active if h.date < today]
        logger.debug(f"Holiday registry: {len(upcoming)} upcoming, {len(past)} past")
        return upcoming + past
