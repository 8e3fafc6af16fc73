"""
Pydantic models for the Rabo Smart Pay (OmniKassa) wire format.

Field names are snake_case in Python and camelCase on the wire. Every
signed response exposes ``signature_data()``: the ordered list of string
values the PSP signs, consumed by ``app.services.signing``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ──────────────────────────────────────────────────────────────────────
#  Enumerations
# ──────────────────────────────────────────────────────────────────────


class SmartPayEnvironment(str, Enum):
    SANDBOX = "SANDBOX"
    PRODUCTION = "PRODUCTION"


class PaymentStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_value(cls, value: Optional[str]) -> "PaymentStatus":
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.IN_PROGRESS

    @property
    def code(self) -> int:
        """Numeric code written to the status log."""
        return STATUS_CODES[self]


STATUS_CODES = {
    PaymentStatus.IN_PROGRESS: 0,
    PaymentStatus.COMPLETED: 1,
    PaymentStatus.CANCELLED: 2,
    PaymentStatus.EXPIRED: 3,
    PaymentStatus.UNKNOWN: -1,
}


class PaymentBrand(str, Enum):
    IDEAL = "IDEAL"
    AFTERPAY = "AFTERPAY"
    PAYPAL = "PAYPAL"
    MASTERCARD = "MASTERCARD"
    VISA = "VISA"
    BANCONTACT = "BANCONTACT"
    MAESTRO = "MAESTRO"
    V_PAY = "V_PAY"


class PaymentBrandForce(str, Enum):
    FORCE_ONCE = "FORCE_ONCE"
    FORCE_ALWAYS = "FORCE_ALWAYS"


# ISO 3166-1 alpha-2
_ISO_COUNTRY_CODES = """
AD AE AF AG AI AL AM AO AQ AR AS AT AU AW AX AZ BA BB BD BE BF BG BH BI BJ
BL BM BN BO BQ BR BS BT BV BW BY BZ CA CC CD CF CG CH CI CK CL CM CN CO CR
CU CV CW CX CY CZ DE DJ DK DM DO DZ EC EE EG EH ER ES ET FI FJ FK FM FO FR
GA GB GD GE GF GG GH GI GL GM GN GP GQ GR GS GT GU GW GY HK HM HN HR HT HU
ID IE IL IM IN IO IQ IR IS IT JE JM JO JP KE KG KH KI KM KN KP KR KW KY KZ
LA LB LC LI LK LR LS LT LU LV LY MA MC MD ME MF MG MH MK ML MM MN MO MP MQ
MR MS MT MU MV MW MX MY MZ NA NC NE NF NG NI NL NO NP NR NU NZ OM PA PE PF
PG PH PK PL PM PN PR PS PT PW PY QA RE RO RS RU RW SA SB SC SD SE SG SH SI
SJ SK SL SM SN SO SR SS ST SV SX SY SZ TC TD TF TG TH TJ TK TL TM TN TO TR
TT TV TW TZ UA UG UM US UY UZ VA VC VE VG VI VN VU WF WS YE YT ZA ZM ZW
""".split()

CountryCode = Enum(  # type: ignore[misc]
    "CountryCode",
    {code: code for code in _ISO_COUNTRY_CODES},
    type=str,
)


# ──────────────────────────────────────────────────────────────────────
#  Base model
# ──────────────────────────────────────────────────────────────────────


class SmartPayModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Money(SmartPayModel):
    """Amount in minor units (cents)."""

    currency: str = "EUR"
    amount: int

    @classmethod
    def from_decimal(cls, currency: str, value: Decimal) -> "Money":
        cents = (Decimal(value) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return cls(currency=currency.upper(), amount=int(cents))


# ──────────────────────────────────────────────────────────────────────
#  Merchant order (outbound)
# ──────────────────────────────────────────────────────────────────────


class OrderItem(SmartPayModel):
    id: Optional[str] = None
    name: str
    description: str
    quantity: int = Field(gt=0)
    amount: Money


class Address(SmartPayModel):
    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    street: str
    house_number: Optional[str] = None
    house_number_addition: Optional[str] = None
    postal_code: str
    city: str
    country_code: CountryCode  # type: ignore[valid-type]


class MerchantOrder(SmartPayModel):
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )
    merchant_order_id: str
    amount: Money
    merchant_return_url: str = Field(alias="merchantReturnURL")
    order_items: List[OrderItem] = Field(default_factory=list)
    billing_detail: Address
    shipping_detail: Address
    payment_brand: PaymentBrand
    payment_brand_force: PaymentBrandForce = PaymentBrandForce.FORCE_ALWAYS


class MerchantOrderResponse(SmartPayModel):
    redirect_url: str
    omnikassa_order_id: Optional[str] = None


class AccessToken(SmartPayModel):
    token: str
    valid_until: Optional[str] = None
    duration_in_millis: Optional[int] = None


# ──────────────────────────────────────────────────────────────────────
#  Signed inbound data
# ──────────────────────────────────────────────────────────────────────


class PaymentCompletedResponse(SmartPayModel):
    """The signed tuple the browser carries back on return from the PSP."""

    order_id: str
    status: str
    signature: str

    @property
    def payment_status(self) -> PaymentStatus:
        return PaymentStatus.from_value(self.status)

    def signature_data(self) -> List[str]:
        return [self.order_id, self.status]


class ApiNotification(SmartPayModel):
    """Webhook envelope pushed by the PSP when order results are queued."""

    authentication: str
    expiry: str
    event_name: str
    poi_id: Union[int, str]
    signature: str

    def signature_data(self) -> List[str]:
        return [self.authentication, self.expiry, self.event_name, str(self.poi_id)]


class MerchantOrderResult(SmartPayModel):
    merchant_order_id: str
    omnikassa_order_id: Optional[str] = None
    poi_id: Union[int, str, None] = None
    order_status: str
    order_status_date_time: Optional[str] = None
    error_code: Optional[str] = None
    paid_amount: Optional[Money] = None
    total_amount: Optional[Money] = None

    @property
    def payment_status(self) -> PaymentStatus:
        return PaymentStatus.from_value(self.order_status)

    def signature_data(self) -> List[str]:
        data = [
            self.merchant_order_id,
            self.omnikassa_order_id or "",
            "" if self.poi_id is None else str(self.poi_id),
            self.order_status,
            self.order_status_date_time or "",
            self.error_code or "",
        ]
        for money in (self.paid_amount, self.total_amount):
            data.extend(
                [money.currency, str(money.amount)] if money else ["", ""]
            )
        return data


class MerchantOrderStatusResponse(SmartPayModel):
    more_order_results_available: bool = False
    order_results: List[MerchantOrderResult] = Field(default_factory=list)
    signature: str

    def signature_data(self) -> List[str]:
        data = ["true" if self.more_order_results_available else "false"]
        for result in self.order_results:
            data.extend(result.signature_data())
        return data
