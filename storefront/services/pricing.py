"""
Pricing Calculator

Pure computation shared by the cart preview and checkout:

    subtotal     = sum(unit_price * quantity)
    delivery_fee = 0 for the free descriptor, else the amount after the symbol
    service_fee  = round_half_up(subtotal * service_fee_rate)   (checkout only)
    tax          = round_half_up(subtotal * tax_rate)
    total        = subtotal + delivery_fee + service_fee + tax

Each fee is rounded on its own, half away from zero, before being summed.
Arithmetic goes through Decimal so 19.5 really is 19.5.
"""

import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple, Optional, Union

from storefront.core.config import get_settings
from storefront.schemas import CartWithItems, PriceBreakdown

_AMOUNT_RE = re.compile(r"\d+")


class PricedLine(NamedTuple):
    unit_price: int
    quantity: int


def round_half_up(value: Union[Decimal, int, float]) -> int:
    """Round to the nearest whole currency unit, .5 going up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_delivery_fee(descriptor: str, free_label: Optional[str] = None) -> int:
    """
    Turn a restaurant's delivery-fee descriptor into an amount.

    Args:
        descriptor: "Free" (any case) or a currency-prefixed amount like "₹30"
        free_label: Override for the free sentinel (defaults to settings)

    Returns:
        int: Fee in whole currency units

    Raises:
        ValueError: If the descriptor holds no amount
    """
    free_label = free_label or get_settings().free_delivery_label
    text = (descriptor or "").strip()

    if text.casefold() == free_label.casefold():
        return 0

    match = _AMOUNT_RE.search(text)
    if match is None:
        raise ValueError(f"Unrecognised delivery fee descriptor: {descriptor!r}")
    return int(match.group())


def calculate_totals(
    lines: Iterable[PricedLine],
    delivery_fee: str,
    include_service_fee: bool = False,
    tax_rate: Optional[float] = None,
    service_fee_rate: Optional[float] = None,
) -> PriceBreakdown:
    """
    Compute the price breakdown for a set of lines.

    Args:
        lines: (unit_price, quantity) pairs; order does not matter
        delivery_fee: Restaurant delivery-fee descriptor
        include_service_fee: True at checkout, False for the cart preview
        tax_rate: Override for settings.tax_rate
        service_fee_rate: Override for settings.service_fee_rate

    Returns:
        PriceBreakdown: subtotal, fees, tax and total
    """
    settings = get_settings()
    tax_rate = settings.tax_rate if tax_rate is None else tax_rate
    service_fee_rate = (
        settings.service_fee_rate if service_fee_rate is None else service_fee_rate
    )

    subtotal = sum(line.unit_price * line.quantity for line in lines)
    fee = parse_delivery_fee(delivery_fee)
    tax = round_half_up(Decimal(subtotal) * Decimal(str(tax_rate)))
    service_fee = (
        round_half_up(Decimal(subtotal) * Decimal(str(service_fee_rate)))
        if include_service_fee
        else 0
    )

    return PriceBreakdown(
        subtotal=subtotal,
        delivery_fee=fee,
        service_fee=service_fee,
        tax=tax,
        total=subtotal + fee + service_fee + tax,
    )


def price_cart(cart: CartWithItems, include_service_fee: bool = False) -> PriceBreakdown:
    """Price a joined cart at current menu prices."""
    return calculate_totals(
        (PricedLine(item.menu_item.price, item.quantity) for item in cart.items),
        cart.restaurant.delivery_fee,
        include_service_fee=include_service_fee,
    )


def format_price(amount: int) -> str:
    """Render an amount with the currency symbol and no decimals, e.g. "₹479"."""
    return f"{get_settings().currency_symbol}{amount}"
