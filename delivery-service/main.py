from fastmcp import FastMCP
from datetime import datetime
from typing import Optional
from dotenv import load_dotenv
import pytz
import logging
import os
import time

load_dotenv()

# Import our modules
from models import ConfigValidationError, ErrorCode, EstimateError
from config import ConfigCache
from calculator import DeliveryCalculator
from estimator import DeliveryEstimator
from geocoding import PincodeLookup
from holiday_calendar import HolidayCalendar
from location_cache import SessionLocationCaches
from pricing import DeliveryPricing
from admin import DeliveryAdmin, apply_edit

# LOGGING CONFIGURATION

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# INITIALIZE MCP SERVER

mcp = FastMCP("Delivery Estimation Service")

estimator = DeliveryEstimator(lookup=PincodeLookup())
location_caches = SessionLocationCaches()

CONFIG_UNAVAILABLE = {
    "error": "Service temporarily unavailable. Please try again later.",
    "error_code": ErrorCode.CONFIG_ERROR.value
}
UNEXPECTED_ERROR = {
    "error": "An unexpected error occurred",
    "error_code": ErrorCode.INTERNAL_ERROR.value
}


def _request_id() -> str:
    return f"{int(time.time() * 1000)}"


def _load_config(request_id: str):
    try:
        config = ConfigCache.get_config()
        if not config:
            raise ValueError("Configuration is None")
        return config
    except Exception as e:
        logger.error(f"[{request_id}] Configuration error: {str(e)}")
        return None


def _today(config):
    return DeliveryCalculator.get_current_datetime(config.settings.timezone).date()


def _tier_dict(tier) -> dict:
    return {
        "id": tier.id,
        "name": tier.name,
        "min_days": tier.min_days,
        "max_days": tier.max_days,
        "label": tier.label,
        "is_active": tier.is_active,
        "color": tier.color
    }


def _rule_dict(rule) -> dict:
    return {
        "id": rule.id,
        "type": rule.type,
        "value": rule.value,
        "tier": rule.tier,
        "is_active": rule.is_active
    }


def _holiday_dict(holiday) -> dict:
    return {
        "id": holiday.id,
        "name": holiday.name,
        "date": holiday.date.isoformat(),
        "is_active": holiday.is_active
    }


def _admin_write(request_id: str, description: str, edit, render) -> dict:
    logger.info(f"[{request_id}] Admin edit: {description}")
    try:
        result = apply_edit(edit)
        return {"status": "success", **render(result)}

    except ConfigValidationError as e:
        logger.warning(f"[{request_id}] Rejected admin edit: {e.message}")
        return e.to_dict()

    except Exception:
        logger.exception(f"[{request_id}] Failed to save admin edit")
        return {
            "error": "Failed to save settings",
            "error_code": ErrorCode.CONFIG_ERROR.value
        }


# MCP TOOLS - SHOPPER

@mcp.tool()
def delivery_estimate(pincode: str, session_id: str = "default") -> dict:
    """
    Estimate the delivery window for a 6-digit pincode and remember the location.

    Returns:
        Dictionary containing delivery estimation details or error information
    """
    request_id = _request_id()
    logger.info(f"[{request_id}] Delivery estimate request: pincode={pincode}, session={session_id}")

    try:
        config = _load_config(request_id)
        if config is None:
            return CONFIG_UNAVAILABLE

        estimate = estimator.estimate_for_pincode(
            pincode,
            config,
            _today(config),
            cache=location_caches.for_session(session_id)
        )

        logger.info(f"[{request_id}] Delivery estimate completed: {estimate.day_range_text}")
        return estimate.to_dict()

    except EstimateError as e:
        logger.warning(f"[{request_id}] Estimate refused: {e.code.value} - {e.message}")
        return e.to_dict()

    except Exception:
        logger.exception(f"[{request_id}] Unexpected error in delivery_estimate")
        return UNEXPECTED_ERROR


@mcp.tool()
def saved_delivery_estimate(session_id: str = "default") -> dict:
    """
    Delivery estimate for the shopper's saved location (or the default location).
    """
    request_id = _request_id()
    logger.info(f"[{request_id}] Saved estimate request: session={session_id}")

    try:
        config = _load_config(request_id)
        if config is None:
            return CONFIG_UNAVAILABLE

        estimate = DeliveryEstimator.estimate_for_saved(
            location_caches.for_session(session_id),
            config,
            _today(config)
        )
        return estimate.to_dict()

    except EstimateError as e:
        logger.warning(f"[{request_id}] Estimate refused: {e.code.value} - {e.message}")
        return e.to_dict()

    except Exception:
        logger.exception(f"[{request_id}] Unexpected error in saved_delivery_estimate")
        return UNEXPECTED_ERROR


@mcp.tool()
def clear_saved_location(session_id: str = "default") -> dict:
    """Forget the shopper's saved delivery location"""
    location_caches.clear_session(session_id)
    logger.info(f"Cleared saved location for session {session_id}")
    return {"status": "success"}


@mcp.tool()
def delivery_charges(subtotal: float, express: bool = False, cod: bool = False) -> dict:
    """
    Delivery, express and cash-on-delivery charges for an order subtotal.
    """
    request_id = _request_id()
    try:
        config = _load_config(request_id)
        if config is None:
            return CONFIG_UNAVAILABLE

        quote = DeliveryPricing.quote(subtotal, config.settings, express=express, cod=cod)
        return quote.to_dict()

    except EstimateError as e:
        logger.warning(f"[{request_id}] Pricing refused: {e.message}")
        return e.to_dict()

    except Exception:
        logger.exception(f"[{request_id}] Unexpected error in delivery_charges")
        return UNEXPECTED_ERROR


# MCP TOOLS - ADMIN

@mcp.tool()
def preview_location(district: Optional[str] = None, city: Optional[str] = None) -> dict:
    """
    Admin preview: which tier and window a district/city would get today.
    """
    request_id = _request_id()
    try:
        config = _load_config(request_id)
        if config is None:
            return CONFIG_UNAVAILABLE

        estimate = DeliveryEstimator.estimate_for_location(district, city, config, _today(config))
        return estimate.to_dict()

    except EstimateError as e:
        return e.to_dict()

    except Exception:
        logger.exception(f"[{request_id}] Unexpected error in preview_location")
        return UNEXPECTED_ERROR


@mcp.tool()
def add_delivery_tier(name: str, min_days: int, max_days: int, color: Optional[str] = None) -> dict:
    """Add a delivery tier"""
    return _admin_write(
        _request_id(), f"add tier '{name}'",
        lambda config: DeliveryAdmin.add_tier(config, name, min_days, max_days, color),
        lambda result: {"tier": _tier_dict(result[1])}
    )


@mcp.tool()
def update_delivery_tier(
    tier_id: int,
    name: Optional[str] = None,
    min_days: Optional[int] = None,
    max_days: Optional[int] = None,
    color: Optional[str] = None,
    is_active: Optional[bool] = None
) -> dict:
    """Edit a delivery tier; omitted fields are left unchanged"""
    updates = {
        key: value for key, value in {
            "name": name, "min_days": min_days, "max_days": max_days,
            "color": color, "is_active": is_active
        }.items() if value is not None
    }
    return _admin_write(
        _request_id(), f"update tier {tier_id}",
        lambda config: DeliveryAdmin.update_tier(config, tier_id, **updates),
        lambda result: {"tier": _tier_dict(result[1])}
    )


@mcp.tool()
def delete_delivery_tier(tier_id: int) -> dict:
    """Delete a delivery tier (the last active tier cannot be deleted)"""
    return _admin_write(
        _request_id(), f"delete tier {tier_id}",
        lambda config: DeliveryAdmin.delete_tier(config, tier_id),
        lambda result: {"message": "Delivery tier deleted"}
    )


@mcp.tool()
def add_location_rule(rule_type: str, value: str, tier: int) -> dict:
    """Map a district, city or pincode to a delivery tier"""
    return _admin_write(
        _request_id(), f"add rule {rule_type}='{value}'",
        lambda config: DeliveryAdmin.add_rule(config, rule_type, value, tier),
        lambda result: {"rule": _rule_dict(result[1])}
    )


@mcp.tool()
def update_location_rule(
    rule_id: str,
    rule_type: Optional[str] = None,
    value: Optional[str] = None,
    tier: Optional[int] = None,
    is_active: Optional[bool] = None
) -> dict:
    """Edit a location rule; omitted fields are left unchanged"""
    updates = {
        key: val for key, val in {
            "type": rule_type, "value": value, "tier": tier, "is_active": is_active
        }.items() if val is not None
    }
    return _admin_write(
        _request_id(), f"update rule {rule_id}",
        lambda config: DeliveryAdmin.update_rule(config, rule_id, **updates),
        lambda result: {"rule": _rule_dict(result[1])}
    )


@mcp.tool()
def delete_location_rule(rule_id: str) -> dict:
    """Delete a location rule"""
    return _admin_write(
        _request_id(), f"delete rule {rule_id}",
        lambda config: DeliveryAdmin.delete_rule(config, rule_id),
        lambda result: {"message": "Location rule deleted"}
    )


@mcp.tool()
def add_holiday(name: str, date: str) -> dict:
    """Add a holiday to the registry (date as YYYY-MM-DD)"""
    return _admin_write(
        _request_id(), f"add holiday '{name}'",
        lambda config: DeliveryAdmin.add_holiday(config, name, date),
        lambda result: {"holiday": _holiday_dict(result[1])}
    )


@mcp.tool()
def update_holiday(
    holiday_id: str,
    name: Optional[str] = None,
    date: Optional[str] = None,
    is_active: Optional[bool] = None
) -> dict:
    """Edit a holiday; omitted fields are left unchanged"""
    updates = {
        key: val for key, val in {"name": name, "date": date, "is_active": is_active}.items()
        if val is not None
    }
    return _admin_write(
        _request_id(), f"update holiday {holiday_id}",
        lambda config: DeliveryAdmin.update_holiday(config, holiday_id, **updates),
        lambda result: {"holiday": _holiday_dict(result[1])}
    )


@mcp.tool()
def delete_holiday(holiday_id: str) -> dict:
    """Delete a holiday from the registry"""
    return _admin_write(
        _request_id(), f"delete holiday {holiday_id}",
        lambda config: DeliveryAdmin.delete_holiday(config, holiday_id),
        lambda result: {"message": "Holiday deleted"}
    )


@mcp.tool()
def update_delivery_settings(settings: dict) -> dict:
    """
    Update general delivery settings.

    Accepts any of: enable_weekend_adjustment, weekend_extra_days,
    enable_holiday_adjustment, holiday_extra_days, default_tier,
    restrict_to_state, timezone, free_delivery_threshold,
    standard_delivery_fee, enable_express_delivery, express_delivery_fee,
    enable_cod, cod_fee, max_cod_amount.
    """
    return _admin_write(
        _request_id(), "update settings",
        lambda config: DeliveryAdmin.update_settings(config, settings),
        lambda result: {"settings": vars(result[1])}
    )


@mcp.tool()
def settings_preview() -> dict:
    """
    Summary of the current delivery configuration

    Returns:
        Dictionary with tiers, rule counts, adjustment policy, pricing and holidays
    """
    request_id = _request_id()
    try:
        config = _load_config(request_id)
        if config is None:
            return CONFIG_UNAVAILABLE

        settings = config.settings
        today = _today(config)
        tiers = []
        for tier in config.active_tiers():
            rules = [r for r in config.rules if r.tier == tier.id and r.is_active]
            tiers.append({**_tier_dict(tier), "rule_count": len(rules)})

        return {
            "status": "success",
            "tiers": tiers,
            "default_tier": settings.default_tier,
            "restrict_to_state": settings.restrict_to_state,
            "timezone": settings.timezone,
            "weekend_adjustment": (
                f"+{settings.weekend_extra_days} days" if settings.enable_weekend_adjustment else "Disabled"
            ),
            "holiday_adjustment": (
                f"+{settings.holiday_extra_days} days" if settings.enable_holiday_adjustment else "Disabled"
            ),
            "free_delivery_threshold": settings.free_delivery_threshold,
            "express_delivery": (
                f"{settings.express_delivery_fee} fee" if settings.enable_express_delivery else "Disabled"
            ),
            "cod": f"{settings.cod_fee} fee" if settings.enable_cod else "Disabled",
            "max_cod_amount": settings.max_cod_amount,
            "holidays": [
                _holiday_dict(h) for h in HolidayCalendar.upcoming_holidays(config.holidays, today)
            ],
            "rules": [_rule_dict(r) for r in config.rules]
        }

    except Exception:
        logger.exception(f"[{request_id}] Error building settings preview")
        return UNEXPECTED_ERROR


@mcp.tool()
def health_check() -> dict:
    """
    Health check endpoint for monitoring

    Returns:
        Dictionary with service health status
    """
    try:
        config = ConfigCache.get_config()
        config_status = "ok" if config else "error"

        current_time = DeliveryCalculator.get_current_datetime(
            config.settings.timezone if config else "Asia/Kolkata"
        )
        time_status = "ok" if current_time else "error"

        overall_status = "healthy" if (config_status == "ok" and time_status == "ok") else "unhealthy"

        return {
            "status": overall_status,
            "timestamp": datetime.now(pytz.UTC).isoformat(),
            "checks": {
                "configuration": config_status,
                "time_service": time_status
            },
            "cache": ConfigCache.get_cache_info()
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        return {
            "status": "unhealthy",
            "timestamp": datetime.now(pytz.UTC).isoformat(),
            "error": str(e)
        }


@mcp.tool()
def refresh_config() -> dict:
    """
    Manually refresh configuration cache

    Returns:
        Dictionary with refresh status
    """
    try:
        logger.info("Manual configuration refresh requested")
        config = ConfigCache.get_config(force_refresh=True)

        return {
            "status": "success",
            "message": "Configuration refreshed successfully",
            "timestamp": datetime.now(pytz.UTC).isoformat(),
            "tiers": [tier.name for tier in config.active_tiers()] if config else []
        }
    except Exception as e:
        logger.error(f"Configuration refresh failed: {str(e)}")
        return {
            "status": "error",
            "message": f"Failed to refresh configuration: {str(e)}",
            "timestamp": datetime.now(pytz.UTC).isoformat()
        }


# ============================================
# RUN SERVER
# ============================================

if __name__ == "__main__":
    port = int(os.getenv('MCP_PORT', '8080'))
    logger.info("Starting Delivery Estimation Service")
    logger.info(f"Server will run on http://localhost:{port}")

    try:
        # Preload configuration on startup
        config = ConfigCache.get_config()
        if config:
            logger.info(
                f"Configuration loaded: {len(config.tiers)} tiers, {len(config.rules)} location rules"
            )
        else:
            logger.warning("Failed to load initial configuration")

        mcp.run(transport="http", port=port)

    except Exception as e:
        logger.critical(f"Failed to start server: {str(e)}")
        raise
