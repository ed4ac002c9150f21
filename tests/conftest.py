from datetime import date

import pytest

from config import ConfigCache
from models import ConfigSnapshot, DeliverySettings, DeliveryTier, GeoLocation, Holiday, LocationRule

TUESDAY = date(2025, 7, 1)
SATURDAY = date(2025, 7, 5)
SUNDAY = date(2025, 7, 6)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    monkeypatch.delenv("SHEET_ID", raising=False)
    monkeypatch.delenv("GOOGLE_CREDENTIALS_JSON", raising=False)
    ConfigCache.clear_cache()
    yield
    ConfigCache.clear_cache()


@pytest.fixture
def settings():
    return DeliverySettings(
        enable_weekend_adjustment=False,
        weekend_extra_days=2,
        enable_holiday_adjustment=False,
        holiday_extra_days=1,
        default_tier=3,
        restrict_to_state="West Bengal",
    )


@pytest.fixture
def config(settings):
    return ConfigSnapshot(
        tiers=(
            DeliveryTier(id=1, name="Express", min_days=2, max_days=3),
            DeliveryTier(id=2, name="Standard", min_days=3, max_days=4),
            DeliveryTier(id=3, name="Economy", min_days=4, max_days=6),
        ),
        rules=(
            LocationRule(id="r1", type="district", value="howrah", tier=1),
            LocationRule(id="r2", type="district", value="kolkata", tier=1),
            LocationRule(id="r3", type="city", value="durgapur", tier=2),
            LocationRule(id="r4", type="city", value="asansol", tier=2),
        ),
        settings=settings,
        holidays=(Holiday(id="h1", name="Christmas", date=date(2025, 12, 25)),),
    )


class FakeLookup:
    def __init__(self, locations=None):
        self.locations = locations or {}
        self.calls = []

    def lookup(self, pincode):
        self.calls.append(pincode)
        return self.locations.get(pincode)


@pytest.fixture
def lookup():
    return FakeLookup({
        "711101": GeoLocation(pincode="711101", name="Howrah Maidan", district="Howrah", state="West Bengal"),
        "713201": GeoLocation(pincode="713201", name="Durgapur Steel Plant", district="Paschim Bardhaman", state="West Bengal"),
        "721301": GeoLocation(pincode="721301", name="Unknownplace", district="Paschim Medinipur", state="West Bengal"),
        "110001": GeoLocation(pincode="110001", name="Connaught Place", district="New Delhi", state="Delhi"),
    })
