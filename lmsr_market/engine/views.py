from decimal import ROUND_DOWN, Decimal
from typing import List, Optional

from typing_extensions import TypedDict

from .lmsr import price
from .market import Market

class OutcomeView(TypedDict):
    id: int
    short_name: str
    long_name: str
    price: int  # smallest collateral units per share
    probability: float

class MarketView(TypedDict):
    id: int
    title: str
    description: str
    collateral_token: str
    collateral_decimals: int
    deposited_collateral: int
    minimum_deposit: int
    end_time: int
    resolution_time: int
    outcomes: List[OutcomeView]
    shares: List[float]
    liquidity: float
    stage: str
    payouts: Optional[List[int]]
    trade_fee_bps: int
    fees_accrued: int
    volume: int

def calculate_prices(market: Market) -> List[float]:
    if not market['outcomes']:
        return []
    return price(market['liquidity'], market['shares'])

def price_to_units(p: float, decimals: int) -> int:
    """Probability -> collateral smallest units a share trades at, rounded down."""
    return int(Decimal(p).scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))

def into_view(market: Market) -> MarketView:
    prices = calculate_prices(market)
    return MarketView(
        id=market['id'],
        title=market['title'],
        description=market['description'],
        collateral_token=market['collateral_token'],
        collateral_decimals=market['collateral_decimals'],
        deposited_collateral=market['deposited_collateral'],
        minimum_deposit=market['minimum_deposit'],
        end_time=market['end_time'],
        resolution_time=market['resolution_time'],
        outcomes=[
            OutcomeView(
                id=o['id'],
                short_name=o['short_name'],
                long_name=o['long_name'],
                price=price_to_units(p, market['collateral_decimals']),
                probability=p,
            )
            for o, p in zip(market['outcomes'], prices)
        ],
        shares=list(market['shares']),
        liquidity=market['liquidity'],
        stage=market['stage'],
        payouts=list(market['payouts']) if market['payouts'] is not None else None,
        trade_fee_bps=market['trade_fee_bps'],
        fees_accrued=market['fees_accrued'],
        volume=market['volume'],
    )
