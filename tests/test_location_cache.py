from location_cache import MemoryKeyValueStore, ResolvedLocationCache, SessionLocationCaches
from models import ResolvedLocation


def test_save_load_and_clear():
    store = MemoryKeyValueStore()
    cache = ResolvedLocationCache(store)
    location = ResolvedLocation("711101", "Howrah Maidan, Howrah", 1, "2-3 days")

    cache.save(location)
    assert store.get("userDeliveryTier") == "1"
    assert cache.load() == location

    cache.clear()
    assert cache.load() is None


def test_incomplete_entry_is_not_loaded():
    store = MemoryKeyValueStore()
    store.set("userPincode", "711101")
    store.set("userDeliveryTier", "1")
    assert ResolvedLocationCache(store).load() is None


def test_bad_tier_value_is_discarded():
    store = MemoryKeyValueStore()
    store.set("userPincode", "711101")
    store.set("userLocationName", "Howrah")
    store.set("userDeliveryTier", "express")
    assert ResolvedLocationCache(store).load() is None


def test_missing_message_defaults_to_empty():
    store = MemoryKeyValueStore()
    store.set("userPincode", "711101")
    store.set("userLocationName", "Howrah")
    store.set("userDeliveryTier", "1")
    assert ResolvedLocationCache(store).load().delivery_message == ""


def test_sessions_are_isolated():
    caches = SessionLocationCaches()
    caches.for_session("a").save(ResolvedLocation("711101", "Howrah", 1, "2-3 days"))
    assert caches.for_session("b").load() is None
    assert caches.for_session("a").load().pincode == "711101"


def test_clear_session_drops_the_store():
    caches = SessionLocationCaches()
    caches.for_session("a").save(ResolvedLocation("711101", "Howrah", 1, "2-3 days"))

    caches.clear_session("a")
    caches.clear_session("never-seen")

    assert "a" not in caches._stores
    assert caches.for_session("a").load() is None
