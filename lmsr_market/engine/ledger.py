from typing import List, Optional

from typing_extensions import TypedDict

from lmsr_market.config import EngineParams
from lmsr_market.errors import ArithmeticOverflowError, InsufficientBalanceError, InvalidOrderError
from lmsr_market.utils import checked_add, checked_sub
from .market import Market, OutcomeBalance, assert_outcome, assert_trading_allowed

# Outstanding shares are tracked as floats for pricing; integers stay exact up to 2**53.
MAX_EXACT_SHARES = 2**53

class BalanceView(TypedDict):
    market_id: int
    outcome_id: int
    shares: int

def get_or_create_balances(market: Market, account_id: str) -> OutcomeBalance:
    """
    Returns a copy of the account's balance vector, or a zero vector sized to the
    outcome count if the account never traded this market. Nothing is stored.
    """
    balances = market['accounts'].get(account_id)
    if balances is None:
        return [0] * len(market['outcomes'])
    return list(balances)

def check_quantity(num_shares: int) -> None:
    if num_shares <= 0:
        raise InvalidOrderError(f"num_shares must be >0, got {num_shares}")
    if num_shares > MAX_EXACT_SHARES:
        raise ArithmeticOverflowError(f"num_shares {num_shares} above {MAX_EXACT_SHARES}")

def credit(market: Market, account_id: str, outcome_id: int, num_shares: int, current_time: int, params: EngineParams) -> None:
    """Adds shares to the account and to the outstanding aggregate in one step."""
    assert_trading_allowed(market, current_time)
    assert_outcome(market, outcome_id)
    check_quantity(num_shares)

    balances = get_or_create_balances(market, account_id)
    balances[outcome_id] = checked_add(balances[outcome_id], num_shares, params['max_balance'])
    outstanding = checked_add(int(market['shares'][outcome_id]), num_shares, MAX_EXACT_SHARES)

    market['accounts'][account_id] = balances
    market['shares'][outcome_id] = float(outstanding)

def debit(market: Market, account_id: str, outcome_id: int, num_shares: int, current_time: int, params: EngineParams) -> None:
    """Removes shares from the account and from the outstanding aggregate in one step."""
    assert_trading_allowed(market, current_time)
    assert_outcome(market, outcome_id)
    check_quantity(num_shares)

    balances = get_or_create_balances(market, account_id)
    held = balances[outcome_id]
    if held < num_shares:
        raise InsufficientBalanceError(account_id, outcome_id, num_shares, held)
    balances[outcome_id] = checked_sub(held, num_shares, params['max_balance'])

    market['accounts'][account_id] = balances
    market['shares'][outcome_id] -= float(num_shares)

def outcome_balance(market: Market, account_id: str, outcome_id: int) -> Optional[int]:
    """None when the account never traded in this market."""
    assert_outcome(market, outcome_id)
    balances = market['accounts'].get(account_id)
    if balances is None:
        return None
    return balances[outcome_id]

def burn_balances(market: Market, account_id: str) -> OutcomeBalance:
    """Zeroes the account's holdings (and the aggregate); returns what was held."""
    held = get_or_create_balances(market, account_id)
    if account_id in market['accounts']:
        market['accounts'][account_id] = [0] * len(held)
        for i, quantity in enumerate(held):
            market['shares'][i] -= float(quantity)
    return held

def get_user_balances(market: Market, account_id: str) -> List[BalanceView]:
    balances = market['accounts'].get(account_id)
    if balances is None:
        return []
    return [
        BalanceView(market_id=market['id'], outcome_id=i, shares=quantity)
        for i, quantity in enumerate(balances)
    ]

def validate_ledger_consistency(market: Market) -> None:
    """
    Validate ledger invariants: every vector is sized to the outcome count and the
    outstanding aggregate equals the sum of account balances per outcome.

    Raises:
        ValueError: If any invariant is violated
    """
    n_outcomes = len(market['outcomes'])
    if len(market['shares']) != n_outcomes:
        raise ValueError(f"shares vector has {len(market['shares'])} entries for {n_outcomes} outcomes")

    totals = [0] * n_outcomes
    for account_id, balances in market['accounts'].items():
        if len(balances) != n_outcomes:
            raise ValueError(f"balance vector of {account_id} has {len(balances)} entries for {n_outcomes} outcomes")
        for i, quantity in enumerate(balances):
            if quantity < 0:
                raise ValueError(f"negative balance for {account_id} on outcome {i}: {quantity}")
            totals[i] += quantity

    for i, total in enumerate(totals):
        if market['shares'][i] != float(total):
            raise ValueError(f"outstanding shares {market['shares'][i]} != sum of balances {total} for outcome {i}")
