"""
Platform fee rounding shared by the buy and sell quoters.

Fee schedule:
    fee = ceil(amount * fee_rate_bp / 10000)

The fee is charged on the gross side of each trade: the amount spent on a
buy and the (whole-unit) payout of a sell. Rounding is always up, toward
the protocol, matching the ledger's integer settlement, so a trader never
gains from rounding. Arithmetic is done in exact fractions to avoid
floating-point ceil() errors on integer amounts.

Rates run from 0 to 10000 bp. A higher rate would charge more than the
amount it is taken from and is rejected.
"""

import math
from fractions import Fraction
from typing import Tuple, Union

from lmsr_engine.errors import PreconditionViolation

BPS_DENOMINATOR = 10000
DEFAULT_FEE_RATE_BP = 100  # 1%
MAX_FEE_RATE_BP = BPS_DENOMINATOR

Amount = Union[int, float]


def _exact(value, name: str) -> Fraction:
    if isinstance(value, bool) or not isinstance(value, (int, float, Fraction)):
        raise PreconditionViolation(f"{name} must be a number, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise PreconditionViolation(f"{name} must be finite, got {value!r}")
        # Decimal reading of the float, so 0.1 bp means one tenth of a basis point.
        value = Fraction(repr(value))
    value = Fraction(value)
    if value < 0:
        raise PreconditionViolation(f"{name} must be non-negative, got {value}")
    return value


def _rate(fee_rate_bp) -> Fraction:
    rate = _exact(fee_rate_bp, "fee_rate_bp")
    if rate > MAX_FEE_RATE_BP:
        raise PreconditionViolation(
            f"fee_rate_bp must be at most {MAX_FEE_RATE_BP}, got {fee_rate_bp}"
        )
    return rate


def fee_for(amount: Amount, fee_rate_bp: Amount = DEFAULT_FEE_RATE_BP) -> int:
    """Return the fee in whole ledger units charged on *amount*."""
    raw = _exact(amount, "amount") * _rate(fee_rate_bp) / BPS_DENOMINATOR
    return math.ceil(raw)


def net_after_fee(amount: Amount, fee_rate_bp: Amount = DEFAULT_FEE_RATE_BP) -> Tuple[Amount, int]:
    """Split a gross *amount* into ``(net, fee)``.

    Used for the spend of a buy and for the gross payout of a sell. ``net``
    is zero when the fee rounds up to the whole of a whole-unit amount.
    """
    fee = fee_for(amount, fee_rate_bp)
    return amount - fee, fee


def gross_for_net(net: Amount, fee_rate_bp: Amount = DEFAULT_FEE_RATE_BP) -> int:
    """Smallest whole gross amount whose net after fee is at least *net*."""
    target = _exact(net, "net")
    rate = _rate(fee_rate_bp)
    if target == 0:
        return 0
    if rate == BPS_DENOMINATOR:
        raise PreconditionViolation(f"fee rate {fee_rate_bp} bp leaves nothing to spend")
    # g - ceil(g * r) >= net  implies  g >= net / (1 - r); step up past rounding.
    gross = math.ceil(target / (1 - rate / BPS_DENOMINATOR))
    while gross - fee_for(gross, rate) < target:
        gross += 1
    return gross
