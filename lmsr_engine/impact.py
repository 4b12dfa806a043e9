"""Price impact and slippage of a proposed buy.

These figures are used to warn a trader before a trade is submitted. They
are derived from a buy quote and never touch the ledger.
"""

from typing import Tuple

from lmsr_engine.config import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE
from lmsr_engine.fees import DEFAULT_FEE_RATE_BP
from lmsr_engine.models import BuyQuote, MarketImpact
from lmsr_engine.quotes import quote_buy


def impact_of_quote(quote: BuyQuote) -> MarketImpact:
    """Derive the impact figures from an existing buy quote.

    ``price_impact`` compares the average price paid (spend over shares) to
    the price before the trade; ``slippage`` compares the price right after
    the trade to the price before it. Both are relative to the price before.
    A quote for zero shares has no impact and every field is zero.
    """
    if quote.shares == 0 or quote.price_before <= 0:
        return MarketImpact()
    current = quote.price_before
    effective = quote.gross_amount / quote.shares
    return MarketImpact(
        current_price=current,
        effective_price=effective,
        price_impact=abs(effective - current) / current,
        new_price=quote.price_after,
        slippage=abs(quote.price_after - current) / current,
        shares=quote.shares,
    )


def quote_buy_with_impact(
    outcome,
    gross_amount,
    q_yes,
    q_no,
    b: float,
    fee_rate_bp=DEFAULT_FEE_RATE_BP,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
) -> Tuple[BuyQuote, MarketImpact]:
    """Return a buy quote together with the impact derived from it."""
    quote = quote_buy(
        outcome, gross_amount, q_yes, q_no, b, fee_rate_bp,
        tolerance=tolerance, max_iterations=max_iterations,
    )
    return quote, impact_of_quote(quote)


def impact(outcome, gross_amount, q_yes, q_no, b: float, fee_rate_bp=DEFAULT_FEE_RATE_BP) -> MarketImpact:
    """Compute the price impact, post-trade price and slippage of a buy."""
    return quote_buy_with_impact(outcome, gross_amount, q_yes, q_no, b, fee_rate_bp)[1]


def slippage(outcome, gross_amount, q_yes, q_no, b: float, fee_rate_bp=DEFAULT_FEE_RATE_BP) -> float:
    """Return the relative move of the outcome price caused by a buy."""
    return impact(outcome, gross_amount, q_yes, q_no, b, fee_rate_bp).slippage
