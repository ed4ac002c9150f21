"""
geocoding.py - Pincode lookup against the India Post pincode API
"""

import logging
import os
from typing import Optional

import requests
from dotenv import load_dotenv

from models import ErrorCode, EstimateError, GeoLocation

load_dotenv()

logger = logging.getLogger(__name__)

PINCODE_API_URL = os.getenv('PINCODE_API_URL', 'https://api.postalpincode.in/pincode/')
PINCODE_API_TIMEOUT = float(os.getenv('PINCODE_API_TIMEOUT', '10'))


class PincodeLookup:
    """Single-shot pincode to post office lookup (no retries)"""

    def __init__(self, base_url: str = PINCODE_API_URL, timeout: float = PINCODE_API_TIMEOUT, session=None):
        self.base_url = base_url if base_url.endswith('/') else base_url + '/'
        self.timeout = timeout
        self.session = session or requests.Session()

    def lookup(self, pincode: str) -> Optional[GeoLocation]:
        """
        Resolve a pincode to its first post office

        Args:
            pincode: Validated 6-digit pincode

        Returns:
            GeoLocation, or None when the pincode is unknown

        Raises:
            EstimateError: SERVICE_UNAVAILABLE on network, HTTP or JSON errors
        """
        url = f"{self.base_url}{pincode}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.Timeout:
            logger.error(f"Pincode lookup timed out for {pincode}")
            raise EstimateError(ErrorCode.SERVICE_UNAVAILABLE, "Could not verify pincode. Please try again.")
        except requests.exceptions.RequestException as e:
            logger.error(f"Pincode lookup failed for {pincode}: {e}")
            raise EstimateError(ErrorCode.SERVICE_UNAVAILABLE, "Could not verify pincode. Please try again.")
        except ValueError:
            logger.error(f"Pincode lookup returned invalid JSON for {pincode}")
            raise EstimateError(ErrorCode.SERVICE_UNAVAILABLE, "Could not verify pincode. Please try again.")

        if not isinstance(data, list) or not data:
            logger.info(f"Pincode {pincode}: empty response")
            return None

        result = data[0] or {}
        post_offices = result.get("PostOffice") or []
        if result.get("Status") != "Success" or not post_offices:
            logger.info(f"Pincode {pincode}: not found (status={result.get('Status')})")
            return None

        office = post_offices[0]
        location = GeoLocation(
            pincode=pincode,
            name=office.get("Name", ""),
            district=office.get("District", ""),
            state=office.get("State", "")
        )
        logger.debug(f"Pincode {pincode} resolved to {location}")
        return location
