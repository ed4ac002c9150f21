"""
location_cache.py - Per-session storage of the shopper's resolved location
"""

import logging
import threading
from typing import Dict, Optional

from models import ResolvedLocation

logger = logging.getLogger(__name__)

PINCODE_KEY = "userPincode"
LOCATION_NAME_KEY = "userLocationName"
TIER_KEY = "userDeliveryTier"
MESSAGE_KEY = "userDeliveryMessage"


class MemoryKeyValueStore:
    """Durable-for-the-process key/value store for one shopper"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class ResolvedLocationCache:
    """Reads and writes a ResolvedLocation through a key/value store"""

    def __init__(self, store):
        self.store = store

    def load(self) -> Optional[ResolvedLocation]:
        """
        Return the saved location, or None when pincode, name or tier is missing
        """
        pincode = self.store.get(PINCODE_KEY)
        location_name = self.store.get(LOCATION_NAME_KEY)
        tier = self.store.get(TIER_KEY)

        if not (pincode and location_name and tier):
            return None

        try:
            tier_id = int(tier)
        except ValueError:
            logger.warning(f"Discarding saved location with bad tier value '{tier}'")
            return None

        return ResolvedLocation(
            pincode=pincode,
            location_name=location_name,
            delivery_tier=tier_id,
            delivery_message=self.store.get(MESSAGE_KEY) or ""
        )

    def save(self, location: ResolvedLocation) -> None:
        self.store.set(PINCODE_KEY, location.pincode)
        self.store.set(LOCATION_NAME_KEY, location.location_name)
        self.store.set(TIER_KEY, str(location.delivery_tier))
        self.store.set(MESSAGE_KEY, location.delivery_message)

    def clear(self) -> None:
        for key in (PINCODE_KEY, LOCATION_NAME_KEY, TIER_KEY, MESSAGE_KEY):
            self.store.delete(key)


class SessionLocationCaches:
    """One ResolvedLocationCache per shopper session"""

    def __init__(self):
        self._stores: Dict[str, MemoryKeyValueStore] = {}
        self._lock = threading.Lock()

    def for_session(self, session_id: str) -> ResolvedLocationCache:
        with self._lock:
            store = self._stores.get(session_id)
            if store is None:
                store = MemoryKeyValueStore()
                self._stores[session_id] = store
                logger.debug(f"Created location cache for session {session_id}")
        return ResolvedLocationCache(store)

    def clear_session(self, session_id: str) -> None:
        """Forget everything stored for a session and drop its store"""
        with self._lock:
            store = self._stores.pop(session_id, None)
        if store is not None:
            store.clear()
            logger.debug(f"Dropped location cache for session {session_id}")
