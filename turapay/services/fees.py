"""
Fee and payout computation.

fee   = amount * fee_percentage / 100   (rounded to cents, half-up)
total = amount + fee
payout = amount * exchange_rate          (receiver currency)
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union


MONEY_QUANT = Decimal("0.01")
RATE_QUANT = Decimal("0.000001")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value: Number) -> Decimal:
    return to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def compute_fee(amount: Number, fee_percentage: Number) -> Decimal:
    return to_money(to_decimal(amount) * to_decimal(fee_percentage) / Decimal(100))


def compute_total(amount: Number, fee: Number) -> Decimal:
    return to_money(to_decimal(amount) + to_decimal(fee))


def compute_payout(amount: Number, exchange_rate: Number) -> Decimal:
    return to_money(to_decimal(amount) * to_decimal(exchange_rate))


class Quote:
    def __init__(self, amount, fee, total_amount, fee_percentage, exchange_rate, payout_amount):
        self.amount = amount
        self.fee = fee
        self.total_amount = total_amount
        self.fee_percentage = fee_percentage
        self.exchange_rate = exchange_rate
        self.payout_amount = payout_amount


def build_quote(amount: Number, fee_percentage: Number, exchange_rate: Number) -> Quote:
    amount = to_money(amount)
    fee = compute_fee(amount, fee_percentage)
    rate = to_decimal(exchange_rate).quantize(RATE_QUANT, rounding=ROUND_HALF_UP)
    return Quote(
        amount=amount,
        fee=fee,
        total_amount=compute_total(amount, fee),
        fee_percentage=to_decimal(fee_percentage),
        exchange_rate=rate,
        payout_amount=compute_payout(amount, rate),
    )
