import math
from typing import List

from typing_extensions import TypedDict

from lmsr_market.config import EngineParams
from lmsr_market.errors import (
    ArithmeticOverflowError,
    InsufficientPaymentError,
    InvalidOrderError,
    NoFeesAccruedError,
    SlippageExceededError,
)
from lmsr_market.utils import checked_add, checked_mul, checked_pow10, checked_sub
from .ledger import check_quantity, credit, debit
from .lmsr import estimate_cost_delta
from .market import Market, Transfer, assert_outcome, assert_trading_allowed, make_transfer

DIRECTION_BUY = 'BUY'
DIRECTION_SELL = 'SELL'

class BuyResult(TypedDict):
    market_id: int
    account_id: str
    outcome_id: int
    num_shares: int
    base_price: int
    fee: int
    cost: int
    change: int  # owed back to the payer

class SellResult(TypedDict):
    market_id: int
    account_id: str
    outcome_id: int
    num_shares: int
    base_price: int
    fee: int
    sell_amount: int
    transfers: List[Transfer]

def calc_price_without_fee(market: Market, outcome_id: int, num_shares: int, direction: str, params: EngineParams) -> int:
    """
    Collateral (smallest units) for trading num_shares of outcome_id, before fees.

    The absolute LMSR estimate is rounded to `rounding_decimals` places, up for buys
    and down for sells, then scaled to the collateral's smallest unit. E.g. with one
    rounding decimal and 9 collateral decimals: 5.2493 -> 53 -> 5_300_000_000 (buy).
    """
    assert_outcome(market, outcome_id)
    if direction == DIRECTION_BUY:
        multiplier = 1.0
    elif direction == DIRECTION_SELL:
        multiplier = -1.0
    else:
        raise ValueError(f"Unknown order direction: {direction}")

    scale = 10 ** params['rounding_decimals']
    estimate = None
    try:
        estimate = abs(estimate_cost_delta(market['liquidity'], market['shares'], outcome_id, multiplier * float(num_shares)))
        if direction == DIRECTION_BUY:
            rounded = math.ceil(estimate * scale)
        else:
            rounded = math.floor(estimate * scale)
    except (OverflowError, ValueError) as e:
        raise ArithmeticOverflowError(f"price estimate {estimate} for {num_shares} shares") from e

    # The estimate was already scaled by 10**rounding_decimals above.
    unit = checked_pow10(market['collateral_decimals'] - params['rounding_decimals'], params['max_balance'])
    return checked_mul(rounded, unit, params['max_balance'])

def calc_fee(market: Market, base_price: int, params: EngineParams) -> int:
    # trade_fee_bps is applied as a percentage of the base price, not in basis points.
    return checked_mul(base_price // 100, market['trade_fee_bps'], params['max_balance'])

def calc_buy_price(market: Market, outcome_id: int, num_shares: int, params: EngineParams) -> int:
    """Total cost to buy, fee included."""
    base_price = calc_price_without_fee(market, outcome_id, num_shares, DIRECTION_BUY, params)
    return checked_add(base_price, calc_fee(market, base_price, params), params['max_balance'])

def calc_sell_price(market: Market, outcome_id: int, num_shares: int, params: EngineParams) -> int:
    """Net proceeds from selling, fee deducted."""
    base_price = calc_price_without_fee(market, outcome_id, num_shares, DIRECTION_SELL, params)
    return checked_sub(base_price, calc_fee(market, base_price, params), params['max_balance'])

def _check_order(market: Market, outcome_id: int, num_shares: int, current_time: int) -> None:
    assert_trading_allowed(market, current_time)
    assert_outcome(market, outcome_id)
    check_quantity(num_shares)

def buy(
    market: Market,
    account_id: str,
    outcome_id: int,
    num_shares: int,
    payment: int,
    current_time: int,
    params: EngineParams,
) -> BuyResult:
    """
    Buys num_shares of outcome_id for `payment`. The whole order is rejected when
    the payment does not cover base price + fee; there are no partial fills.
    """
    _check_order(market, outcome_id, num_shares, current_time)
    if payment < 0:
        raise InvalidOrderError(f"payment must be >=0, got {payment}")

    limit = params['max_balance']
    base_price = calc_price_without_fee(market, outcome_id, num_shares, DIRECTION_BUY, params)
    fee = calc_fee(market, base_price, params)
    cost = checked_add(base_price, fee, limit)
    if payment < cost:
        raise InsufficientPaymentError(cost, payment)

    change = checked_sub(payment, cost, limit)
    fees_accrued = checked_add(market['fees_accrued'], fee, limit)
    volume = checked_add(market['volume'], base_price, limit)

    credit(market, account_id, outcome_id, num_shares, current_time, params)
    market['fees_accrued'] = fees_accrued
    market['volume'] = volume
    market['collateral_pool'] += base_price

    return BuyResult(
        market_id=market['id'],
        account_id=account_id,
        outcome_id=outcome_id,
        num_shares=num_shares,
        base_price=base_price,
        fee=fee,
        cost=cost,
        change=change,
    )

def sell(
    market: Market,
    account_id: str,
    outcome_id: int,
    num_shares: int,
    min_acceptable: int,
    current_time: int,
    params: EngineParams,
) -> SellResult:
    """Sells num_shares of outcome_id unless the net proceeds fall below min_acceptable."""
    _check_order(market, outcome_id, num_shares, current_time)

    limit = params['max_balance']
    base_price = calc_price_without_fee(market, outcome_id, num_shares, DIRECTION_SELL, params)
    fee = calc_fee(market, base_price, params)
    sell_amount = checked_sub(base_price, fee, limit)
    if sell_amount < min_acceptable:
        raise SlippageExceededError(sell_amount, min_acceptable)

    fees_accrued = checked_add(market['fees_accrued'], fee, limit)
    volume = checked_add(market['volume'], base_price, limit)

    debit(market, account_id, outcome_id, num_shares, current_time, params)
    market['fees_accrued'] = fees_accrued
    market['volume'] = volume
    market['collateral_pool'] -= base_price

    transfers = []
    if sell_amount > 0:
        transfers.append(make_transfer(
            market, account_id, sell_amount,
            f"Paying {sell_amount} for {num_shares} shares to {account_id}",
        ))

    return SellResult(
        market_id=market['id'],
        account_id=account_id,
        outcome_id=outcome_id,
        num_shares=num_shares,
        base_price=base_price,
        fee=fee,
        sell_amount=sell_amount,
        transfers=transfers,
    )

def withdraw_fees(market: Market) -> Transfer:
    """Resets accrued fees to zero and returns the payment owed to the fee owner."""
    fees = market['fees_accrued']
    if fees <= 0:
        raise NoFeesAccruedError(market['id'])
    market['fees_accrued'] = 0
    return make_transfer(
        market, market['fee_owner'], fees,
        f"Withdrawing {fees} fees to {market['fee_owner']}",
    )
