"""
pricing.py - Delivery charges at checkout
"""

import logging
from dataclasses import dataclass, asdict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from models import DeliverySettings, ErrorCode, EstimateError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass
class DeliveryQuote:
    subtotal: Decimal
    delivery_fee: Decimal
    express_fee: Decimal
    cod_fee: Decimal
    total: Decimal
    free_delivery: bool

    def to_dict(self) -> dict:
        return {key: str(value) if isinstance(value, Decimal) else value for key, value in asdict(self).items()}


class DeliveryPricing:
    """Computes delivery, express and COD charges from delivery settings"""

    @staticmethod
    def quote(subtotal, settings: DeliverySettings, express: bool = False, cod: bool = False) -> DeliveryQuote:
        """
        Price delivery for an order subtotal

        Args:
            subtotal: Order subtotal
            settings: Delivery settings
            express: Express delivery requested
            cod: Cash on delivery requested

        Returns:
            DeliveryQuote

        Raises:
            EstimateError: INVALID_INPUT for bad amounts or unavailable options
        """
        try:
            amount = _money(subtotal)
        except (InvalidOperation, ValueError, TypeError):
            raise EstimateError(ErrorCode.INVALID_INPUT, "Subtotal must be a number")

        if amount < 0:
            raise EstimateError(ErrorCode.INVALID_INPUT, "Subtotal cannot be negative")

        free_delivery = amount > _money(settings.free_delivery_threshold)
        delivery_fee = Decimal("0.00") if free_delivery else _money(settings.standard_delivery_fee)

        express_fee = Decimal("0.00")
        if express:
            if not settings.enable_express_delivery:
                raise EstimateError(ErrorCode.INVALID_INPUT, "Express delivery is not available")
            express_fee = _money(settings.express_delivery_fee)

        cod_fee = Decimal("0.00")
        if cod:
            if not settings.enable_cod:
                raise EstimateError(ErrorCode.INVALID_INPUT, "Cash on delivery is not available")
            if amount > _money(settings.max_cod_amount):
                raise EstimateError(
                    ErrorCode.INVALID_INPUT,
                    f"Cash on delivery is only available for orders up to {_money(settings.max_cod_amount)}"
                )
            cod_fee = _money(settings.cod_fee)

        total = amount + delivery_fee + express_fee + cod_fee
        logger.debug(
            f"Delivery quote: subtotal={amount}, delivery={delivery_fee}, "
            f"express={express_fee}, cod={cod_fee}"
        )
        return DeliveryQuote(
            subtotal=amount,
            delivery_fee=delivery_fee,
            express_fee=express_fee,
            cod_fee=cod_fee,
            total=total,
            free_delivery=free_delivery
        )
