from dataclasses import replace

import pytest

from estimator import DeliveryEstimator
from location_cache import MemoryKeyValueStore, ResolvedLocationCache
from models import ErrorCode, EstimateError, ResolvedLocation

from conftest import SATURDAY, TUESDAY


def test_howrah_on_a_tuesday_without_adjustments(config, lookup):
    estimate = DeliveryEstimator(lookup).estimate_for_pincode("711101", config, TUESDAY)
    assert estimate.delivery_tier == 1
    assert estimate.day_range_text == "2-3 days"
    assert estimate.location_name == "Howrah Maidan, Howrah"
    assert estimate.min_delivery_date == "July 3, 2025"
    assert estimate.max_delivery_date == "July 4, 2025"
    assert estimate.express_available is True


def test_unmatched_city_on_saturday_uses_default_tier_plus_weekend(config, lookup):
    config = replace(config, settings=replace(config.settings, enable_weekend_adjustment=True, weekend_extra_days=2))
    estimate = DeliveryEstimator(lookup).estimate_for_pincode("721301", config, SATURDAY)
    assert estimate.delivery_tier == 3
    assert estimate.day_range_text == "6-8 days"
    assert estimate.delivery_message == "4-6 days"
    assert estimate.adjustments["weekend_extra_days"] == 2
    assert estimate.express_available is False


def test_non_numeric_pincode_is_rejected_before_lookup(config, lookup):
    with pytest.raises(EstimateError) as exc:
        DeliveryEstimator(lookup).estimate_for_pincode("ABCDEF", config, TUESDAY)
    assert exc.value.code == ErrorCode.INVALID_INPUT
    assert lookup.calls == []


def test_unknown_pincode_is_location_not_found(config, lookup):
    with pytest.raises(EstimateError) as exc:
        DeliveryEstimator(lookup).estimate_for_pincode("999999", config, TUESDAY)
    assert exc.value.code == ErrorCode.LOCATION_NOT_FOUND


def test_other_state_is_unsupported_and_nothing_is_cached(config, lookup):
    cache = ResolvedLocationCache(MemoryKeyValueStore())
    with pytest.raises(EstimateError) as exc:
        DeliveryEstimator(lookup).estimate_for_pincode("110001", config, TUESDAY, cache=cache)
    assert exc.value.code == ErrorCode.UNSUPPORTED_REGION
    assert cache.load() is None


def test_successful_lookup_is_saved_to_cache(config, lookup):
    cache = ResolvedLocationCache(MemoryKeyValueStore())
    DeliveryEstimator(lookup).estimate_for_pincode(" 713201 ", config, TUESDAY, cache=cache)
    assert cache.load() == ResolvedLocation(
        pincode="713201",
        location_name="Durgapur Steel Plant, Paschim Bardhaman",
        delivery_tier=2,
        delivery_message="3-4 days",
    )


def test_missing_lookup_is_service_unavailable(config):
    with pytest.raises(EstimateError) as exc:
        DeliveryEstimator().estimate_for_pincode("711101", config, TUESDAY)
    assert exc.value.code == ErrorCode.SERVICE_UNAVAILABLE


def test_admin_preview_by_district_and_city(config):
    assert DeliveryEstimator.estimate_for_location("Howrah", None, config, TUESDAY).delivery_tier == 1
    assert DeliveryEstimator.estimate_for_location("howrah", None, config, TUESDAY).delivery_tier == 1
    assert DeliveryEstimator.estimate_for_location(None, "Asansol", config, TUESDAY).delivery_tier == 2
    preview = DeliveryEstimator.estimate_for_location("Nadia", "Krishnanagar", config, TUESDAY)
    assert preview.delivery_tier == 3
    assert preview.location_name == "Krishnanagar, Nadia"


def test_admin_preview_requires_a_location(config):
    with pytest.raises(EstimateError) as exc:
        DeliveryEstimator.estimate_for_location("  ", None, config, TUESDAY)
    assert exc.value.code == ErrorCode.INVALID_INPUT


def test_saved_estimate_defaults_to_state_and_default_tier(config):
    cache = ResolvedLocationCache(MemoryKeyValueStore())
    estimate = DeliveryEstimator.estimate_for_saved(cache, config, TUESDAY)
    assert estimate.location_name == "West Bengal"
    assert estimate.delivery_tier == 3
    assert estimate.day_range_text == "4-6 days"


def test_saved_estimate_uses_cached_location(config, lookup):
    cache = ResolvedLocationCache(MemoryKeyValueStore())
    DeliveryEstimator(lookup).estimate_for_pincode("711101", config, TUESDAY, cache=cache)
    estimate = DeliveryEstimator.estimate_for_saved(cache, config, SATURDAY)
    assert estimate.pincode == "711101"
    assert estimate.delivery_tier == 1
    assert estimate.min_delivery_date == "July 7, 2025"


def test_saved_inactive_tier_falls_back_to_default(config):
    cache = ResolvedLocationCache(MemoryKeyValueStore())
    cache.save(ResolvedLocation("711101", "Howrah Maidan, Howrah", 1, "2-3 days"))
    tiers = tuple(replace(t, is_active=False) if t.id == 1 else t for t in config.tiers)
    estimate = DeliveryEstimator.estimate_for_saved(cache, replace(config, tiers=tiers), TUESDAY)
    assert estimate.delivery_tier == 3


def test_estimate_to_dict_is_plain(config, lookup):
    data = DeliveryEstimator(lookup).estimate_for_pincode("711101", config, TUESDAY).to_dict()
    assert data["min_delivery_iso"] == "2025-07-03"
    assert data["adjustments"] == {"base_range": "2-3 days", "weekend_extra_days": 0, "holiday_extra_days": 0}


def test_cache_keeps_classified_tier_while_it_is_inactive(config, lookup):
    tiers = tuple(replace(t, is_active=False) if t.id == 1 else t for t in config.tiers)
    cache = ResolvedLocationCache(MemoryKeyValueStore())

    estimate = DeliveryEstimator(lookup).estimate_for_pincode(
        "711101", replace(config, tiers=tiers), TUESDAY, cache=cache
    )

    assert estimate.delivery_tier == 3
    assert cache.load().delivery_tier == 1
    assert cache.load().delivery_message == "2-3 days"
    assert DeliveryEstimator.estimate_for_saved(cache, config, TUESDAY).delivery_tier == 1
