"""Buy and sell quotes against an LMSR market.

A buy is specified by the amount the trader spends; the number of shares it
buys has no closed form and is found by a root-find on the cost function. A
sell is specified by the number of shares and its payout is a closed-form
cost difference. Both sides charge the platform fee through
:mod:`lmsr_engine.fees` and report whole ledger units.
"""

import logging
import math
from typing import Callable, Tuple

from lmsr_engine.config import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE
from lmsr_engine.errors import InsufficientShares, NonConvergence, PreconditionViolation
from lmsr_engine.fees import DEFAULT_FEE_RATE_BP, gross_for_net, net_after_fee
from lmsr_engine.market_logic import check_quantity, cost_change, price_of, shifted
from lmsr_engine.models import BuyQuote, CostQuote, Outcome, PositionValue, SellQuote

logger = logging.getLogger(__name__)

# Below this slope a Newton step is meaningless; hand over to bisection.
MIN_SLOPE = 1e-12
BISECTION_MAX_ITERATIONS = 200


def _bisect(residual: Callable[[float], float], net: float, limit: float) -> Tuple[float, int]:
    lo = 0.0
    hi = max(float(net), 1.0)
    while residual(hi) < 0:
        lo, hi = hi, hi * 2.0
        if not math.isfinite(hi):
            raise NonConvergence(f"no upper bound found for a spend of {net}")

    for iteration in range(1, BISECTION_MAX_ITERATIONS + 1):
        mid = (lo + hi) / 2.0
        if mid <= lo or mid >= hi:
            # Bracket is down to adjacent floats.
            return mid, iteration
        value = residual(mid)
        if abs(value) < limit:
            return mid, iteration
        if value < 0:
            lo = mid
        else:
            hi = mid
    raise NonConvergence(f"bisection did not converge for a spend of {net}")


def solve_shares_for_spend(
    outcome,
    net: float,
    q_yes,
    q_no,
    b: float,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Tuple[float, int, str]:
    """Find ``s >= 0`` with ``C(q + s * e_outcome) - C(q) == net``.

    The left-hand side is increasing and convex in ``s`` with derivative
    equal to the outcome's price after the trade. Since that price never
    exceeds 1, ``s = net`` is never past the root, so Newton's method seeded
    there overshoots at most once and then descends monotonically. If Newton
    stalls the root is bracketed by doubling and bisected.

    The residual tolerance is scaled by ``max(1, net)`` so that large ledger
    amounts stay within reach of double precision.

    Returns:
        ``(shares, iterations, method)`` where ``method`` is ``"newton"`` or
        ``"bisection"``.

    Raises:
        NonConvergence: If bisection also fails, which convexity rules out
            for finite inputs.
    """
    outcome = Outcome.parse(outcome)
    if net <= 0:
        return 0.0, 0, "none"
    limit = tolerance * max(1.0, float(net))

    def residual(s: float) -> float:
        return cost_change(outcome, q_yes, q_no, b, s) - net

    s = float(net)
    value = residual(s)
    iterations = 0
    while abs(value) >= limit and iterations < max_iterations:
        slope = price_of(outcome, *shifted(outcome, q_yes, q_no, s), b)
        if slope < MIN_SLOPE:
            break
        s = max(0.0, s - value / slope)
        if not math.isfinite(s):
            break
        iterations += 1
        value = residual(s)
        logger.debug("newton step %d: s=%r residual=%r", iterations, s, value)

    if math.isfinite(s) and abs(value) < limit:
        return s, iterations, "newton"

    logger.warning(
        "Newton did not converge for %s spend %s after %d steps; bisecting",
        outcome.value, net, iterations,
    )
    try:
        s, steps = _bisect(residual, net, limit)
    except NonConvergence:
        logger.error(
            "share solver failed: outcome=%s net=%s q_yes=%s q_no=%s b=%s",
            outcome.value, net, q_yes, q_no, b,
        )
        raise
    return s, iterations + steps, "bisection"


def quote_buy(
    outcome,
    gross_amount,
    q_yes,
    q_no,
    b: float,
    fee_rate_bp=DEFAULT_FEE_RATE_BP,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> BuyQuote:
    """Quote the shares bought by spending ``gross_amount`` on ``outcome``.

    The fee is taken from the spend first. When it consumes the whole
    amount the quote is for zero shares rather than an error.

    Args:
        outcome: ``Outcome`` or anything ``Outcome.parse`` accepts.
        gross_amount: Amount the trader pays, fee included.
        q_yes: Current number of YES shares.
        q_no: Current number of NO shares.
        b: Liquidity parameter.
        fee_rate_bp: Platform fee in basis points.

    Returns:
        A ``BuyQuote`` whose ``shares`` are the whole shares the ledger would
        issue (the solved root rounded down).

    Raises:
        PreconditionViolation: If ``gross_amount`` or a quantity is negative,
            if ``b`` is not positive, or if ``fee_rate_bp`` exceeds 10000.
    """
    outcome = Outcome.parse(outcome)
    check_quantity("gross_amount", gross_amount)
    price_before = price_of(outcome, q_yes, q_no, b)
    net, fee = net_after_fee(gross_amount, fee_rate_bp)

    if net <= 0:
        return BuyQuote(
            outcome=outcome,
            gross_amount=gross_amount,
            fee=fee,
            net_amount=net,
            shares=0,
            exact_shares=0.0,
            effective_price=0.0,
            price_before=price_before,
            price_after=price_before,
        )

    exact, iterations, method = solve_shares_for_spend(
        outcome, net, q_yes, q_no, b, tolerance=tolerance, max_iterations=max_iterations
    )
    shares = math.floor(exact)
    price_after = price_of(outcome, *shifted(outcome, q_yes, q_no, shares), b)
    return BuyQuote(
        outcome=outcome,
        gross_amount=gross_amount,
        fee=fee,
        net_amount=net,
        shares=shares,
        exact_shares=exact,
        effective_price=gross_amount / shares if shares > 0 else 0.0,
        price_before=price_before,
        price_after=price_after,
        iterations=iterations,
        method=method,
    )


def quote_sell(outcome, shares, q_yes, q_no, b: float, fee_rate_bp=DEFAULT_FEE_RATE_BP) -> SellQuote:
    """Quote the payout for selling ``shares`` of ``outcome`` back to the market.

    The gross payout ``C(q) - C(q - shares * e_outcome)`` is rounded down to
    whole units before the fee is charged on it. ``effective_price`` is what
    the trader receives per share after the fee.

    Raises:
        InsufficientShares: If ``shares`` exceeds the outcome's outstanding
            shares.
        PreconditionViolation: If ``shares`` is negative.
    """
    outcome = Outcome.parse(outcome)
    check_quantity("shares", shares)
    price_before = price_of(outcome, q_yes, q_no, b)
    outstanding = q_yes if outcome is Outcome.YES else q_no
    if shares > outstanding:
        raise InsufficientShares(outcome.value, shares, outstanding)

    if shares == 0:
        return SellQuote(
            outcome=outcome,
            shares=shares,
            exact_payout=0.0,
            gross_payout=0,
            fee=0,
            net_payout=0,
            effective_price=0.0,
            price_before=price_before,
            price_after=price_before,
        )

    exact = max(0.0, -cost_change(outcome, q_yes, q_no, b, -shares))
    gross = math.floor(exact)
    net, fee = net_after_fee(gross, fee_rate_bp)
    return SellQuote(
        outcome=outcome,
        shares=shares,
        exact_payout=exact,
        gross_payout=gross,
        fee=fee,
        net_payout=net,
        effective_price=net / shares,
        price_before=price_before,
        price_after=price_of(outcome, *shifted(outcome, q_yes, q_no, -shares), b),
    )


def quote_cost_for_shares(outcome, shares, q_yes, q_no, b: float, fee_rate_bp=DEFAULT_FEE_RATE_BP) -> CostQuote:
    """Quote the gross spend needed to buy an exact number of shares.

    The net spend is the exact cost difference taken up to the next whole
    unit, and the gross amount is the smallest spend that still leaves that
    much after the fee. Spending ``gross_amount`` through ``quote_buy``
    therefore yields at least ``shares``.
    """
    outcome = Outcome.parse(outcome)
    check_quantity("shares", shares)
    net_cost = cost_change(outcome, q_yes, q_no, b, shares)
    if net_cost <= 0:
        return CostQuote(outcome=outcome, shares=shares, net_cost=0.0, fee=0, gross_amount=0)
    gross = gross_for_net(math.floor(net_cost) + 1, fee_rate_bp)
    _, fee = net_after_fee(gross, fee_rate_bp)
    return CostQuote(outcome=outcome, shares=shares, net_cost=net_cost, fee=fee, gross_amount=gross)


def value_position(
    outcome,
    shares,
    cost_basis: float,
    q_yes,
    q_no,
    b: float,
    fee_rate_bp=DEFAULT_FEE_RATE_BP,
) -> PositionValue:
    """Mark a holding to market at the net payout of selling it back now."""
    if isinstance(cost_basis, bool) or not isinstance(cost_basis, (int, float)):
        raise PreconditionViolation(f"cost_basis must be a number, got {cost_basis!r}")
    sale = quote_sell(outcome, shares, q_yes, q_no, b, fee_rate_bp)
    return PositionValue(
        outcome=sale.outcome,
        shares=shares,
        current_price=sale.price_before,
        value=sale.net_payout,
        cost_basis=cost_basis,
        pnl=sale.net_payout - cost_basis,
    )
