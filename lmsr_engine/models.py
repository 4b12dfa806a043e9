"""Data records exchanged between the quote engine and its callers.

The engine itself is stateless: callers hand it a snapshot of a market's
outstanding shares and receive one of the quote records defined here. All
records are immutable pydantic models so they can be returned directly from
the preview API and compared by value in tests.

Share and amount fields that the ledger settles in whole units are ``int``;
the float solutions they were derived from are kept alongside for callers
that want to display them.
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeFloat, NonNegativeInt

from lmsr_engine.errors import PreconditionViolation
from lmsr_engine.fees import MAX_FEE_RATE_BP


Quantity = Union[int, float]
NonNegativeQuantity = Union[NonNegativeInt, NonNegativeFloat]


class Outcome(str, Enum):
    """The two sides of a binary market."""

    YES = "YES"
    NO = "NO"

    @classmethod
    def parse(cls, value) -> "Outcome":
        """Accept an ``Outcome``, a case-insensitive name or a ledger bet type.

        The ledger encodes bet types as integers with ``1`` for YES and ``0``
        for NO.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise PreconditionViolation(f"unknown outcome {value!r}")
        if isinstance(value, int):
            if value == 1:
                return cls.YES
            if value == 0:
                return cls.NO
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        raise PreconditionViolation(f"unknown outcome {value!r}")


class MarketState(BaseModel):
    """A consistent snapshot of a market as reported by the ledger.

    ``liquidity`` is the LMSR parameter ``b``. ``fee_rate_bp`` may be left
    unset, in which case the deployment's configured rate applies.
    """

    model_config = ConfigDict(frozen=True)

    q_yes: NonNegativeQuantity = Field(0, examples=[2_000_000])
    q_no: NonNegativeQuantity = Field(0, examples=[1_000_000])
    liquidity: float = Field(..., gt=0, examples=[1_000_000.0])
    fee_rate_bp: Optional[float] = Field(None, ge=0, le=MAX_FEE_RATE_BP, examples=[100])


class QuoteRecord(BaseModel):
    model_config = ConfigDict(frozen=True)


class BuyQuote(QuoteRecord):
    """Result of spending ``gross_amount`` on one outcome.

    ``method`` records how the share count was solved: ``"none"`` when the
    fee consumed the whole spend, otherwise ``"newton"`` or ``"bisection"``.
    """

    outcome: Outcome
    gross_amount: Quantity
    fee: int
    net_amount: Quantity
    shares: int
    exact_shares: float
    effective_price: float
    price_before: float
    price_after: float
    iterations: int = 0
    method: str = "none"


class SellQuote(QuoteRecord):
    outcome: Outcome
    shares: Quantity
    exact_payout: float
    gross_payout: int
    fee: int
    net_payout: int
    effective_price: float
    price_before: float
    price_after: float


class CostQuote(QuoteRecord):
    """Gross spend needed to receive an exact number of shares."""

    outcome: Outcome
    shares: Quantity
    net_cost: float
    fee: int
    gross_amount: int


class MarketImpact(QuoteRecord):
    current_price: float = 0.0
    effective_price: float = 0.0
    price_impact: float = 0.0
    new_price: float = 0.0
    slippage: float = 0.0
    shares: int = 0


class PositionValue(QuoteRecord):
    """Mark-to-market view of a holding, valued at its sell-back payout."""

    outcome: Outcome
    shares: Quantity
    current_price: float
    value: int
    cost_basis: float
    pnl: float


class PricePoint(QuoteRecord):
    counter: int
    q_yes: Quantity
    q_no: Quantity
    yes_price: float
    no_price: float
