"""Core market logic implementing a Logarithmic Market Scoring Rule (LMSR).

This module provides the cost function of a binary LMSR market maker and the
instantaneous prices derived from it. The cost function guarantees
continuous liquidity: a trader can always buy or sell shares without waiting
for a counterparty, and the price of each outcome reflects the distribution
of outstanding YES and NO shares.

Both the cost and the prices are built from a single max-subtracted pair of
exponentials (``_exp_pair``). Deriving them from the same numbers keeps the
trade sizing in :mod:`lmsr_engine.quotes` consistent with the prices it is
checked against.

Outstanding share counts arrive from the ledger as arbitrary precision
integers. They are converted to ``float`` here and nowhere else, so a
quantity is exact up to 2**53 and carries double precision relative error
beyond that.
"""

import math
from typing import Iterable, List, Tuple

from lmsr_engine.errors import PreconditionViolation
from lmsr_engine.models import Outcome, PricePoint, Quantity


def _as_float(name: str, value: Quantity) -> float:
    try:
        return float(value)
    except OverflowError:
        raise PreconditionViolation(f"{name} is too large to price") from None


def check_liquidity(b: float) -> None:
    """Raise ``PreconditionViolation`` unless ``b`` is positive and finite."""
    if isinstance(b, bool) or not isinstance(b, (int, float)):
        raise PreconditionViolation(f"liquidity parameter must be a number, got {b!r}")
    if not math.isfinite(_as_float("liquidity parameter", b)) or b <= 0:
        raise PreconditionViolation(f"liquidity parameter must be positive, got {b!r}")


def check_quantity(name: str, value: Quantity) -> None:
    """Raise ``PreconditionViolation`` unless ``value`` is a non-negative number.

    Integers must also fit in a float, the type the pricing math runs in.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PreconditionViolation(f"{name} must be a number, got {value!r}")
    if not math.isfinite(_as_float(name, value)):
        raise PreconditionViolation(f"{name} must be finite, got {value!r}")
    if value < 0:
        raise PreconditionViolation(f"{name} must be non-negative, got {value!r}")


def _check_market(q_yes: Quantity, q_no: Quantity, b: float) -> None:
    check_liquidity(b)
    check_quantity("q_yes", q_yes)
    check_quantity("q_no", q_no)


def _exp_pair(q_yes: Quantity, q_no: Quantity, b: float) -> Tuple[float, float, float]:
    """Return ``(m, exp(q_yes/b - m), exp(q_no/b - m))`` with ``m`` the larger exponent.

    Subtracting the maximum keeps the larger term at exactly 1.0, so neither
    exponential can overflow and the sum is never smaller than 1.
    """
    x_yes = q_yes / b
    x_no = q_no / b
    m = max(x_yes, x_no)
    return m, math.exp(x_yes - m), math.exp(x_no - m)


def cost_function(q_yes: Quantity, q_no: Quantity, b: float) -> float:
    """Return the total cost required to reach a given share distribution.

    Args:
        q_yes: The total number of YES shares outstanding.
        q_no: The total number of NO shares outstanding.
        b: The liquidity parameter. Larger ``b`` results in smoother price
           changes and requires more capital to move the price.

    Returns:
        The value of the LMSR cost function
        ``C(q_yes, q_no) = b * ln(exp(q_yes/b) + exp(q_no/b))``.

    Raises:
        PreconditionViolation: If ``b`` is not positive or a quantity is
            negative.
    """
    _check_market(q_yes, q_no, b)
    m, exp_yes, exp_no = _exp_pair(q_yes, q_no, b)
    return b * (m + math.log(exp_yes + exp_no))


cost = cost_function


def prices(q_yes: Quantity, q_no: Quantity, b: float) -> Tuple[float, float]:
    """Compute the current market probabilities for YES and NO.

    The YES price is the softmax weight of the YES exponential term; the NO
    price is its complement, so the pair always sums to one. A fresh market
    with no shares outstanding prices both sides at 0.5.

    Args:
        q_yes: Total number of YES shares.
        q_no: Total number of NO shares.
        b: Liquidity parameter.

    Returns:
        ``(p_yes, p_no)``, each between 0 and 1.
    """
    _check_market(q_yes, q_no, b)
    _, exp_yes, exp_no = _exp_pair(q_yes, q_no, b)
    p_yes = exp_yes / (exp_yes + exp_no)
    return p_yes, 1.0 - p_yes


def price_yes(q_yes: Quantity, q_no: Quantity, b: float) -> float:
    """Compute the current market probability for the YES outcome."""
    return prices(q_yes, q_no, b)[0]


def price_no(q_yes: Quantity, q_no: Quantity, b: float) -> float:
    """Compute the current market probability for the NO outcome."""
    return prices(q_yes, q_no, b)[1]


def price_of(outcome, q_yes: Quantity, q_no: Quantity, b: float) -> float:
    p_yes, p_no = prices(q_yes, q_no, b)
    return p_yes if Outcome.parse(outcome) is Outcome.YES else p_no


def shifted(outcome, q_yes: Quantity, q_no: Quantity, delta: Quantity) -> Tuple[Quantity, Quantity]:
    """Return ``(q_yes, q_no)`` with ``delta`` shares added to ``outcome``."""
    if Outcome.parse(outcome) is Outcome.YES:
        return q_yes + delta, q_no
    return q_yes, q_no + delta


def cost_change(outcome, q_yes: Quantity, q_no: Quantity, b: float, delta: float) -> float:
    """Compute ``C(q + delta * e_outcome) - C(q)`` for a trade of ``delta`` shares.

    Positive ``delta`` is a purchase and returns the (positive) amount the
    trader pays; negative ``delta`` is a sale and returns minus the payout.

    Writing ``p`` for the outcome's current price, the difference of the two
    cost evaluations reduces to ``b * ln(1 + p * (exp(delta/b) - 1))``. The
    reduced form is evaluated with ``log1p``/``expm1`` so that a small trade
    against a large outstanding position does not lose its digits to
    cancellation. Its derivative in ``delta`` is exactly the outcome's price
    after the trade, which the share solver relies on.

    Raises:
        PreconditionViolation: If the trade would leave a negative quantity.
    """
    outcome = Outcome.parse(outcome)
    _check_market(q_yes, q_no, b)
    if (
        isinstance(delta, bool)
        or not isinstance(delta, (int, float))
        or not math.isfinite(_as_float("trade size", delta))
    ):
        raise PreconditionViolation(f"trade size must be a finite number, got {delta!r}")
    new_yes, new_no = shifted(outcome, q_yes, q_no, delta)
    if new_yes < 0 or new_no < 0:
        raise PreconditionViolation(
            f"trade of {delta} {outcome.value} shares leaves a negative quantity"
        )
    if delta == 0:
        return 0.0

    p = price_of(outcome, q_yes, q_no, b)
    x = delta / b
    if x <= 1.0:
        arg = p * math.expm1(x)
        if arg > -1.0:
            return b * math.log1p(arg)
    else:
        tail = p + (1.0 - p) * math.exp(-x)
        if tail > 0.0:
            return b * (x + math.log(tail))

    # The price has rounded to 0 or 1; the direct difference is exact enough there.
    return cost_function(new_yes, new_no, b) - cost_function(q_yes, q_no, b)


def max_market_maker_loss(b: float) -> float:
    """Return the worst-case subsidy ``b * ln 2`` of a binary LMSR market."""
    check_liquidity(b)
    return b * math.log(2.0)


def price_series(snapshots: Iterable[Tuple[int, Quantity, Quantity]], b: float) -> List[PricePoint]:
    """Turn ledger snapshots ``(counter, q_yes, q_no)`` into chart points.

    Points are returned in counter order.
    """
    points = []
    for counter, q_yes, q_no in sorted(snapshots, key=lambda s: s[0]):
        p_yes, p_no = prices(q_yes, q_no, b)
        points.append(
            PricePoint(counter=counter, q_yes=q_yes, q_no=q_no, yes_price=p_yes, no_price=p_no)
        )
    return points
