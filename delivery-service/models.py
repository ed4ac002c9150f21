"""
models.py - Data Models and Enums
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from enum import Enum
from typing import Optional, Tuple


class ErrorCode(Enum):
    """Error codes for API responses"""
    INVALID_INPUT = "INVALID_INPUT"
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    UNSUPPORTED_REGION = "UNSUPPORTED_REGION"
    TIER_NOT_FOUND = "TIER_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIG_ERROR = "CONFIG_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class EstimateError(Exception):
    """Raised inside the estimation pipeline; translated at the tool boundary"""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "error_code": self.code.value
        }


class ConfigValidationError(Exception):
    """Raised when an admin write fails validation; nothing is persisted"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "error_code": ErrorCode.VALIDATION_ERROR.value
        }


RULE_TYPES = ("district", "city", "pincode")
TIER_COLORS = ("green", "blue", "orange", "red", "purple", "gray")


@dataclass(frozen=True)
class DeliveryTier:
    """A named delivery speed class with a day-count range"""
    id: int
    name: str
    min_days: int
    max_days: int
    is_active: bool = True
    color: str = "gray"

    @property
    def label(self) -> str:
        return f"{self.min_days}-{self.max_days} days"


@dataclass(frozen=True)
class LocationRule:
    """Maps a district/city name or postal code to a tier"""
    id: str
    type: str
    value: str
    tier: int
    is_active: bool = True


@dataclass(frozen=True)
class Holiday:
    id: str
    name: str
    date: date
    is_active: bool = True


@dataclass(frozen=True)
class DeliverySettings:
    """Process-wide delivery configuration (singleton)"""
    enable_weekend_adjustment: bool = True
    weekend_extra_days: int = 2
    enable_holiday_adjustment: bool = True
    holiday_extra_days: int = 1
    default_tier: int = 3
    restrict_to_state: str = "West Bengal"
    timezone: str = "Asia/Kolkata"
    # Checkout pricing; not read by the estimator
    free_delivery_threshold: float = 50.0
    standard_delivery_fee: float = 9.99
    enable_express_delivery: bool = True
    express_delivery_fee: float = 15.0
    enable_cod: bool = True
    cod_fee: float = 5.0
    max_cod_amount: float = 1000.0


@dataclass(frozen=True)
class ConfigSnapshot:
    """Everything the estimator reads, captured at one point in time"""
    tiers: Tuple[DeliveryTier, ...]
    rules: Tuple[LocationRule, ...]
    settings: DeliverySettings
    holidays: Tuple[Holiday, ...] = ()

    def get_tier(self, tier_id: int) -> Optional[DeliveryTier]:
        for tier in self.tiers:
            if tier.id == tier_id:
                return tier
        return None

    def active_tiers(self) -> Tuple[DeliveryTier, ...]:
        return tuple(tier for tier in self.tiers if tier.is_active)


@dataclass(frozen=True)
class GeoLocation:
    """Result of a pincode lookup"""
    pincode: str
    name: str
    district: str
    state: str

    @property
    def location_name(self) -> str:
        return f"{self.name}, {self.district}"


@dataclass(frozen=True)
class DayRange:
    min_days: int
    max_days: int
    label: str
    tier_id: int
    tier_name: str = ""


@dataclass
class ResolvedLocation:
    """The last location a shopper confirmed"""
    pincode: str
    location_name: str
    delivery_tier: int
    delivery_message: str


@dataclass
class DeliveryDetails:
    """Calendar-adjusted delivery window"""
    text_min_days: int
    text_max_days: int
    day_range_text: str
    min_delivery_date: date
    max_delivery_date: date
    min_date_formatted: str
    max_date_formatted: str
    weekend_extra_days: int = 0
    holiday_extra_days: int = 0


@dataclass
class DeliveryEstimate:
    """Delivery estimation result"""
    pincode: str
    location_name: str
    delivery_tier: int
    tier_name: str
    delivery_message: str
    day_range_text: str
    min_delivery_date: str
    max_delivery_date: str
    min_delivery_iso: str
    max_delivery_iso: str
    express_available: bool
    adjustments: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response"""
        return asdict(self)
