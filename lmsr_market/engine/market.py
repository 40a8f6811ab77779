import math
from typing import Dict, List, Optional, Sequence

from typing_extensions import NotRequired, TypedDict

from lmsr_market.config import EngineParams
from lmsr_market.errors import (
    InvalidOrderError,
    InvalidOutcomeError,
    NotFinalizedError,
    StageError,
    UnauthorizedError,
    ValidationError,
)
from lmsr_market.utils import checked_add, checked_mul, checked_pow10

STAGE_PENDING = 'PENDING'   # never opened
STAGE_OPEN = 'OPEN'         # open for trading
STAGE_PAUSED = 'PAUSED'     # trading paused
STAGE_RESOLVED = 'RESOLVED' # finalized with a payout vector
STAGE_INVALID = 'INVALID'   # finalized without one; holders are refunded

FINALIZED_STAGES = (STAGE_RESOLVED, STAGE_INVALID)

MAX_TRADE_FEE = 100

class Outcome(TypedDict):
    id: int
    short_name: str
    long_name: str

# Outcome share balances of one account, indexed by outcome id.
OutcomeBalance = List[int]

class Market(TypedDict):
    id: int
    title: str
    description: str
    collateral_token: str
    collateral_decimals: int
    deposited_collateral: int
    minimum_deposit: int
    end_time: int  # unix ts, ns
    resolution_time: int  # unix ts, ns
    outcomes: List[Outcome]
    liquidity: float
    shares: List[float]  # outstanding shares per outcome, across all accounts
    # Payout weights per share; sum to 10**collateral_decimals once resolved
    payouts: Optional[List[int]]
    oracle: str
    operator: str
    stage: str
    fee_owner: str
    trade_fee_bps: int
    fees_accrued: int
    volume: int
    collateral_pool: int  # trader collateral held (buys in, sells out), fees excluded
    refund_pool: int
    refund_shares: int
    accounts: Dict[str, OutcomeBalance]

class Transfer(TypedDict):
    """A collateral payment the settlement ledger must make once the mutation is stored."""
    market_id: int
    token: str
    to_account: str
    amount: int
    memo: str

def make_transfer(market: Market, to_account: str, amount: int, memo: str) -> Transfer:
    return Transfer(market_id=market['id'], token=market['collateral_token'], to_account=to_account, amount=amount, memo=memo)

class CreateMarketArgs(TypedDict):
    title: str
    description: str
    collateral_token: str
    collateral_decimals: int
    end_time: int
    resolution_time: int
    trade_fee_bps: int
    outcomes: List[Outcome]
    fee_owner: NotRequired[Optional[str]]
    operator: NotRequired[Optional[str]]
    oracle: NotRequired[Optional[str]]
    liquidity: NotRequired[Optional[float]]

def new_market(market_id: int, args: CreateMarketArgs, creator: str, params: EngineParams) -> Market:
    """
    Build a PENDING market. Fee owner and operator default to the creator,
    the oracle to the operator.
    """
    outcomes = [Outcome(id=o['id'], short_name=o['short_name'], long_name=o['long_name']) for o in args['outcomes']]
    for i, outcome in enumerate(outcomes):
        if outcome['id'] != i:
            raise ValidationError(f"outcome ids must match their position, got {outcome['id']} at {i}")

    decimals = args['collateral_decimals']
    if decimals < params['rounding_decimals']:
        raise ValidationError(f"collateral_decimals {decimals} below rounding precision {params['rounding_decimals']}")
    if not (0 <= args['trade_fee_bps'] <= MAX_TRADE_FEE):
        raise ValidationError(f"trade_fee_bps must be in [0, {MAX_TRADE_FEE}], got {args['trade_fee_bps']}")

    liquidity = args.get('liquidity') or params['default_liquidity']
    if not math.isfinite(liquidity) or liquidity <= 0:
        raise ValidationError(f"liquidity must be a finite value >0, got {liquidity}")

    fee_owner = args.get('fee_owner') or creator
    operator = args.get('operator') or creator
    oracle = args.get('oracle') or operator
    one = checked_pow10(decimals, params['max_balance'])

    return Market(
        id=market_id,
        title=args['title'],
        description=args['description'],
        collateral_token=args['collateral_token'],
        collateral_decimals=decimals,
        deposited_collateral=0,
        minimum_deposit=checked_mul(params['minimum_deposit'], one, params['max_balance']),
        end_time=args['end_time'],
        resolution_time=args['resolution_time'],
        outcomes=outcomes,
        liquidity=float(liquidity),
        shares=[0.0] * len(outcomes),
        payouts=None,
        oracle=oracle,
        operator=operator,
        stage=STAGE_PENDING,
        fee_owner=fee_owner,
        trade_fee_bps=args['trade_fee_bps'],
        fees_accrued=0,
        volume=0,
        collateral_pool=0,
        refund_pool=0,
        refund_shares=0,
        accounts={},
    )

def validate_market(market: Market, current_time: int) -> None:
    """Checks a market is fit to (re)open."""
    if len(market['outcomes']) == 0:
        raise ValidationError("market has no outcomes")
    if market['end_time'] <= current_time:
        raise ValidationError(f"end_time {market['end_time']} is not in the future")
    if market['resolution_time'] <= current_time:
        raise ValidationError(f"resolution_time {market['resolution_time']} is not in the future")
    if market['deposited_collateral'] < market['minimum_deposit']:
        raise ValidationError(
            f"deposited {market['deposited_collateral']} below minimum {market['minimum_deposit']}"
        )

def assert_stages(market: Market, stages: Sequence[str]) -> None:
    if market['stage'] not in stages:
        raise StageError(market['id'], market['stage'], f"expected one of {', '.join(stages)}")

def assert_trading_allowed(market: Market, current_time: int) -> None:
    assert_stages(market, [STAGE_OPEN])
    if current_time >= market['end_time']:
        raise StageError(market['id'], market['stage'], "trading period has ended")

def assert_finalized(market: Market) -> None:
    if not is_finalized(market):
        raise NotFinalizedError(market['id'], market['stage'])

def assert_outcome(market: Market, outcome_id: int) -> None:
    n_outcomes = len(market['outcomes'])
    if not (0 <= outcome_id < n_outcomes):
        raise InvalidOutcomeError(outcome_id, n_outcomes)

def assert_caller(market: Market, caller: Optional[str], role: str) -> None:
    """No-op when the host does not pass a caller identity."""
    if caller is not None and caller != market[role]:
        raise UnauthorizedError(caller, role)

def is_finalized(market: Market) -> bool:
    return market['stage'] in FINALIZED_STAGES

def open_market(market: Market, current_time: int, caller: Optional[str] = None) -> None:
    assert_caller(market, caller, 'operator')
    assert_stages(market, [STAGE_PENDING, STAGE_PAUSED])
    validate_market(market, current_time)
    market['stage'] = STAGE_OPEN

def pause_market(market: Market, caller: Optional[str] = None) -> None:
    assert_caller(market, caller, 'operator')
    assert_stages(market, [STAGE_OPEN])
    market['stage'] = STAGE_PAUSED

def deposit_collateral(market: Market, amount: int, params: EngineParams) -> None:
    assert_stages(market, [STAGE_PENDING])
    if amount <= 0:
        raise InvalidOrderError(f"deposit amount must be >0, got {amount}")
    market['deposited_collateral'] = checked_add(market['deposited_collateral'], amount, params['max_balance'])
