"""FastAPI application exposing read-only LMSR quotes.

This module lets a UI or script preview what the settlement ledger will
compute for a trade: current prices, buy and sell quotes, the spend needed
for an exact number of shares, price impact and the value of a position.
Every request carries the market snapshot it should be priced against; the
API keeps no state, touches no database and never submits anything to the
ledger.
"""

import logging
from typing import Optional

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from lmsr_engine.config import load_settings
from lmsr_engine.errors import InsufficientShares, NonConvergence, PreconditionViolation
from lmsr_engine.fees import MAX_FEE_RATE_BP
from lmsr_engine.impact import impact
from lmsr_engine.market_logic import prices
from lmsr_engine.models import (
    BuyQuote,
    CostQuote,
    MarketImpact,
    MarketState,
    NonNegativeQuantity,
    Outcome,
    PositionValue,
    SellQuote,
)
from lmsr_engine.quotes import quote_buy, quote_cost_for_shares, quote_sell, value_position

settings = load_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="LMSR Quote API", version="0.1.0")

# No origins are allowed unless LMSR_CORS_ORIGINS lists them.
if settings.cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(PreconditionViolation)
async def precondition_handler(request: Request, exc: PreconditionViolation):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


@app.exception_handler(InsufficientShares)
async def insufficient_shares_handler(request: Request, exc: InsufficientShares):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": str(exc),
            "outcome": exc.outcome,
            "requested": exc.requested,
            "outstanding": exc.outstanding,
        },
    )


@app.exception_handler(NonConvergence)
async def non_convergence_handler(request: Request, exc: NonConvergence):
    logger.error("quote failed to converge for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Quote could not be computed"},
    )


# Request bodies. Each one carries the market snapshot to price against.

class MarketRequest(BaseModel):
    q_yes: NonNegativeQuantity = Field(0, examples=[2_000_000])
    q_no: NonNegativeQuantity = Field(0, examples=[1_000_000])
    liquidity: Optional[float] = Field(None, gt=0, examples=[1_000_000.0])
    fee_rate_bp: Optional[float] = Field(None, ge=0, le=MAX_FEE_RATE_BP, examples=[100])


class TradeRequest(MarketRequest):
    outcome: str = Field(..., pattern="^(YES|NO|yes|no)$", examples=["YES"])


class BuyRequest(TradeRequest):
    amount: NonNegativeQuantity = Field(..., examples=[100_000])


class SharesRequest(TradeRequest):
    shares: NonNegativeQuantity = Field(..., examples=[50_000])


class PositionRequest(SharesRequest):
    cost_basis: float = Field(0.0, examples=[48_000.0])


class PricesResponse(BaseModel):
    price_yes: float
    price_no: float


def _market(request: MarketRequest) -> MarketState:
    """Fill in the configured liquidity and fee rate where the request omits them."""
    return MarketState(
        q_yes=request.q_yes,
        q_no=request.q_no,
        liquidity=request.liquidity if request.liquidity is not None else settings.default_liquidity,
        fee_rate_bp=request.fee_rate_bp if request.fee_rate_bp is not None else settings.fee_rate_bp,
    )


@app.post("/prices", response_model=PricesResponse)
def get_prices(request: MarketRequest):
    """Return the instantaneous YES and NO prices of the market."""
    market = _market(request)
    p_yes, p_no = prices(market.q_yes, market.q_no, market.liquidity)
    return PricesResponse(price_yes=p_yes, price_no=p_no)


@app.post("/quote/buy", response_model=BuyQuote)
def preview_buy(request: BuyRequest):
    """Quote the shares a spend of ``amount`` (fee included) would buy."""
    market = _market(request)
    return quote_buy(
        Outcome.parse(request.outcome),
        request.amount,
        market.q_yes,
        market.q_no,
        market.liquidity,
        market.fee_rate_bp,
        tolerance=settings.newton_tolerance,
        max_iterations=settings.newton_max_iterations,
    )


@app.post("/quote/sell", response_model=SellQuote)
def preview_sell(request: SharesRequest):
    """Quote the net payout for selling shares back to the market.

    Responds 409 when more shares are requested than the market has issued
    for that outcome.
    """
    market = _market(request)
    return quote_sell(
        Outcome.parse(request.outcome),
        request.shares,
        market.q_yes,
        market.q_no,
        market.liquidity,
        market.fee_rate_bp,
    )


@app.post("/quote/cost", response_model=CostQuote)
def preview_cost(request: SharesRequest):
    market = _market(request)
    return quote_cost_for_shares(
        Outcome.parse(request.outcome),
        request.shares,
        market.q_yes,
        market.q_no,
        market.liquidity,
        market.fee_rate_bp,
    )


@app.post("/impact", response_model=MarketImpact)
def preview_impact(request: BuyRequest):
    """Return price impact and slippage for a proposed buy."""
    market = _market(request)
    return impact(
        Outcome.parse(request.outcome),
        request.amount,
        market.q_yes,
        market.q_no,
        market.liquidity,
        market.fee_rate_bp,
    )


@app.post("/position", response_model=PositionValue)
def preview_position(request: PositionRequest):
    market = _market(request)
    return value_position(
        Outcome.parse(request.outcome),
        request.shares,
        request.cost_basis,
        market.q_yes,
        market.q_no,
        market.liquidity,
        market.fee_rate_bp,
    )


@app.get("/")
def root():
    return {"message": "LMSR Quote API is running!"}
