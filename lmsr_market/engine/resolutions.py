from typing import List, Optional, Sequence

from typing_extensions import TypedDict

from lmsr_market.config import EngineParams
from lmsr_market.errors import InvalidPayoutVectorError, ZeroPayoutError
from lmsr_market.utils import checked_add, checked_mul, checked_pow10
from .ledger import burn_balances, get_or_create_balances
from .market import (
    STAGE_INVALID,
    STAGE_OPEN,
    STAGE_PAUSED,
    STAGE_RESOLVED,
    Market,
    OutcomeBalance,
    Transfer,
    assert_caller,
    assert_finalized,
    assert_stages,
    make_transfer,
)

class RedeemResult(TypedDict):
    market_id: int
    account_id: str
    payout: int
    burned: OutcomeBalance
    transfers: List[Transfer]

def resolve(market: Market, payouts: Sequence[int], params: EngineParams, caller: Optional[str] = None) -> None:
    """
    Finalizes an OPEN or PAUSED market.

    A payout vector summing to 10**collateral_decimals resolves the market with those
    per-share weights. A vector summing to 0 marks it INVALID: no weights are kept and
    the trader collateral held at this moment is snapshotted for pro-rata refunds.
    Any other sum is rejected and the stage is left as it was.
    """
    assert_caller(market, caller, 'oracle')
    assert_stages(market, [STAGE_OPEN, STAGE_PAUSED])

    n_outcomes = len(market['outcomes'])
    if len(payouts) != n_outcomes:
        raise InvalidPayoutVectorError(f"expected {n_outcomes} entries, got {len(payouts)}")
    if any(p < 0 for p in payouts):
        raise InvalidPayoutVectorError(f"negative weight in {list(payouts)}")

    limit = params['max_balance']
    total = 0
    for p in payouts:
        total = checked_add(total, p, limit)
    one = checked_pow10(market['collateral_decimals'], limit)

    if total == one:
        market['payouts'] = list(payouts)
        market['stage'] = STAGE_RESOLVED
    elif total == 0:
        outstanding = 0
        for balances in market['accounts'].values():
            for quantity in balances:
                outstanding = checked_add(outstanding, quantity, limit)
        market['payouts'] = None
        market['refund_pool'] = max(market['collateral_pool'], 0)
        market['refund_shares'] = outstanding
        market['stage'] = STAGE_INVALID
    else:
        raise InvalidPayoutVectorError(f"sum {total} is neither {one} nor 0")

def calc_payout(market: Market, balances: Sequence[int], params: EngineParams) -> int:
    """
    Exact integer payout for a balance vector.

    RESOLVED: sum_i balance[i] * weight[i].
    INVALID: every share, whatever its outcome, refunds refund_pool / refund_shares,
    rounded down once over the account's total.
    """
    limit = params['max_balance']
    if market['stage'] == STAGE_RESOLVED:
        payout = 0
        for quantity, weight in zip(balances, market['payouts']):
            payout = checked_add(payout, checked_mul(quantity, weight, limit), limit)
        return payout

    if market['stage'] == STAGE_INVALID:
        if market['refund_shares'] == 0:
            return 0
        held = 0
        for quantity in balances:
            held = checked_add(held, quantity, limit)
        return checked_mul(held, market['refund_pool'], limit) // market['refund_shares']

    return 0

def redeem(market: Market, account_id: str, params: EngineParams) -> RedeemResult:
    """Burns the account's outcome shares for collateral once the market is finalized."""
    assert_finalized(market)
    if account_id not in market['accounts']:
        raise ZeroPayoutError(account_id)

    payout = calc_payout(market, get_or_create_balances(market, account_id), params)
    if payout == 0:
        raise ZeroPayoutError(account_id)

    burned = burn_balances(market, account_id)
    if market['stage'] == STAGE_RESOLVED:
        memo = f"Redeeming {sum(burned)} shares for {payout} from market {market['id']}"
    else:
        memo = f"Refunding {payout} for {sum(burned)} shares of invalid market {market['id']}"

    return RedeemResult(
        market_id=market['id'],
        account_id=account_id,
        payout=payout,
        burned=burned,
        transfers=[make_transfer(market, account_id, payout, memo)],
    )
