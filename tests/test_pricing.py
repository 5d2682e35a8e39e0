from decimal import Decimal

import pytest

from storefront.services.pricing import (
    PricedLine,
    calculate_totals,
    format_price,
    parse_delivery_fee,
    round_half_up,
)


def test_checkout_example_rounds_service_fee_half_up():
    lines = [PricedLine(150, 2), PricedLine(90, 1)]

    totals = calculate_totals(lines, "₹30", include_service_fee=True)

    assert totals.subtotal == 390
    assert totals.delivery_fee == 30
    assert totals.tax == 39
    assert totals.service_fee == 20  # 19.5 rounds up
    assert totals.total == 390 + 30 + 20 + 39


def test_cart_preview_matches_checkout_except_service_fee():
    lines = [PricedLine(150, 2), PricedLine(90, 1)]

    preview = calculate_totals(lines, "₹30")
    checkout = calculate_totals(lines, "₹30", include_service_fee=True)

    assert preview.service_fee == 0
    assert preview.subtotal == checkout.subtotal
    assert preview.tax == checkout.tax
    assert preview.total == 459
    assert checkout.total - preview.total == checkout.service_fee


def test_line_order_is_irrelevant():
    lines = [PricedLine(149, 3), PricedLine(25, 1), PricedLine(333, 2)]

    forward = calculate_totals(lines, "₹20", include_service_fee=True)
    backward = calculate_totals(list(reversed(lines)), "₹20", include_service_fee=True)

    assert forward == backward


def test_fees_are_rounded_independently():
    # subtotal 15: tax 1.5 → 2, service 0.75 → 1; rounding the sum instead would give 17
    totals = calculate_totals([PricedLine(15, 1)], "Free", include_service_fee=True)

    assert totals.tax == 2
    assert totals.service_fee == 1
    assert totals.total == 18


def test_empty_lines_cost_only_delivery():
    totals = calculate_totals([], "₹25")

    assert totals.subtotal == 0
    assert totals.tax == 0
    assert totals.total == 25


@pytest.mark.parametrize(
    "descriptor, expected",
    [
        ("Free", 0),
        ("free", 0),
        ("  FREE ", 0),
        ("₹30", 30),
        ("₹ 45", 45),
        ("40", 40),
    ],
)
def test_parse_delivery_fee(descriptor, expected):
    assert parse_delivery_fee(descriptor) == expected


def test_parse_delivery_fee_rejects_descriptor_without_amount():
    with pytest.raises(ValueError):
        parse_delivery_fee("₹")


@pytest.mark.parametrize(
    "value, expected",
    [
        (Decimal("19.5"), 20),
        (Decimal("19.49"), 19),
        (Decimal("39.0"), 39),
        (Decimal("0.5"), 1),
        (2.5, 3),
    ],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_rates_can_be_overridden():
    totals = calculate_totals(
        [PricedLine(100, 1)], "Free",
        include_service_fee=True, tax_rate=0.18, service_fee_rate=0.0,
    )

    assert totals.tax == 18
    assert totals.service_fee == 0
    assert totals.total == 118


def test_format_price_has_symbol_and_no_decimals():
    assert format_price(479) == "₹479"
