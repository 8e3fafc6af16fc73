"""
Map shop baskets and customer details into a Smart Pay merchant order.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.core.exceptions import UnsupportedBrandError, UnsupportedCountryError
from app.schemas.payments import ShoppingBasket
from app.schemas.smartpay import (
    Address,
    CountryCode,
    MerchantOrder,
    Money,
    OrderItem,
    PaymentBrand,
    PaymentBrandForce,
)

SHIPPING_PREFIX = "shipping_"

# Fields that must all be present for a prefixed (e.g. shipping) address
REQUIRED_ADDRESS_FIELDS = ("street", "zipcode", "city", "country")

PAYMENT_BRAND_MAPPING: Dict[str, PaymentBrand] = {
    "IDEAL": PaymentBrand.IDEAL,
    "AFTERPAY": PaymentBrand.AFTERPAY,
    "PAYPAL": PaymentBrand.PAYPAL,
    "MASTERCARD": PaymentBrand.MASTERCARD,
    "VISA": PaymentBrand.VISA,
    "BANCONTACT": PaymentBrand.BANCONTACT,
    "MAESTRO": PaymentBrand.MAESTRO,
    "V_PAY": PaymentBrand.V_PAY,
    "VPAY": PaymentBrand.V_PAY,
}


def _detail(details: Mapping[str, Any], key: str) -> str:
    value = details.get(key)
    if value is None:
        return ""
    return str(value).strip()


def convert_payment_brand(payment_method: str) -> PaymentBrand:
    brand = PAYMENT_BRAND_MAPPING.get((payment_method or "").strip().upper())
    if brand is None:
        raise UnsupportedBrandError(payment_method)
    return brand


def convert_country_code(country: str) -> CountryCode:  # type: ignore[valid-type]
    try:
        return CountryCode(country.strip().upper())
    except ValueError:
        raise UnsupportedCountryError(country) from None


def create_address(
    customer: Mapping[str, Any], prefix: str = ""
) -> Optional[Address]:
    """
    Build an Address from the customer details.

    With a prefix, a missing street, zipcode, city or country means the
    prefixed address was not provided and None is returned. First and last
    name are never prefixed. Raises UnsupportedCountryError.
    """
    if prefix and any(
        not _detail(customer, f"{prefix}{field}") for field in REQUIRED_ADDRESS_FIELDS
    ):
        return None

    fields: Dict[str, Any] = {
        "first_name": _detail(customer, "firstname") or None,
        "last_name": _detail(customer, "lastname") or None,
        "street": _detail(customer, f"{prefix}street"),
        "postal_code": _detail(customer, f"{prefix}zipcode"),
        "city": _detail(customer, f"{prefix}city"),
        "country_code": convert_country_code(_detail(customer, f"{prefix}country")),
    }

    house_number = _detail(customer, f"{prefix}housenumber")
    if house_number:
        fields["house_number"] = house_number
        addition = _detail(customer, f"{prefix}housenumber_suffix")
        if addition:
            fields["house_number_addition"] = addition

    return Address(**fields)


def create_order_items(
    baskets: Sequence[ShoppingBasket], currency: str = "EUR"
) -> List[OrderItem]:
    items: List[OrderItem] = []
    for basket in baskets:
        for line in basket.lines:
            # Coupons carry no title; fall back to the description
            name = (line.title or "").strip() or (line.description or "").strip()
            items.append(
                OrderItem(
                    id=line.connected_item_id,
                    name=name,
                    description=name,
                    quantity=line.quantity,
                    amount=Money.from_decimal(currency, line.price),
                )
            )
    return items


def calculate_total(baskets: Sequence[ShoppingBasket]) -> Decimal:
    return sum((basket.psp_price_in_vat for basket in baskets), Decimal("0"))


def build_order(
    baskets: Sequence[ShoppingBasket],
    customer: Mapping[str, Any],
    return_url: str,
    invoice_number: str,
    payment_method: str,
    currency: str = "EUR",
) -> MerchantOrder:
    """
    Build the merchant order for one checkout attempt.

    Raises UnsupportedCountryError / UnsupportedBrandError (MappingError).
    """
    billing = create_address(customer)
    shipping = create_address(customer, SHIPPING_PREFIX) or billing

    return MerchantOrder(
        merchant_order_id=invoice_number,
        amount=Money.from_decimal(currency, calculate_total(baskets)),
        merchant_return_url=return_url,
        order_items=create_order_items(baskets, currency),
        billing_detail=billing,
        shipping_detail=shipping,
        payment_brand=convert_payment_brand(payment_method),
        payment_brand_force=PaymentBrandForce.FORCE_ALWAYS,
    )
